from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Optional, Set

from loguru import logger
from telebot.async_telebot import AsyncTeleBot
from telebot.types import InlineKeyboardButton, InlineKeyboardMarkup

from application.auth_bridge import AuthBridge
from application.points_ledger import TOP_UP_OPTIONS, PointsLedger
from application.record_store import RecordStore
from application.sync_poller import SESSION_POLL_INTERVAL, Subscription, watch_session
from domain.models import CanonicalUser, Role, User
from domain.repositories import AuthAuthority, KeyValueMedium
from interfaces.telegram.callback_data import (
    encode_top_up_cancel,
    encode_top_up_choice,
    is_top_up_cancel,
    parse_top_up_choice,
)
from interfaces.web.login_prefill import (
    MESSAGE_TTL_SECONDS,
    SCRUB_DELAY_SECONDS,
    prefill_from_url,
    scrub_url,
)

GENERIC_ERROR = "An unexpected error occurred. Please try again."


@dataclass
class _ChatView:
    """Everything one Telegram chat (one open "tab") holds on to."""

    store: RecordStore
    auth: AuthBridge
    ledger: PointsLedger
    watcher: Optional[Subscription] = None
    last_render: Optional[str] = None
    tasks: Set[asyncio.Task] = field(default_factory=set)

    def stop_watching(self) -> None:
        if self.watcher is not None:
            self.watcher.cancel()
            self.watcher = None
        self.last_render = None


def render_account(user: User, identity: Optional[CanonicalUser] = None) -> str:
    text = (
        "Account Overview\n"
        f"Username: {user.username}\n"
        f"Phone: {user.phone or '-'}\n"
        f"Status: {user.status.value}\n"
        f"Points: {user.points}"
    )
    if identity is not None and identity.id == user.id and identity.created_at:
        text += f"\nMember since: {identity.created_at}"
    return text


def create_telegram_bot(
    bot_token: str,
    medium: KeyValueMedium,
    authority: AuthAuthority,
    session_poll_interval: float = SESSION_POLL_INTERVAL,
) -> AsyncTeleBot:
    """
    Configure and return an AsyncTeleBot acting as the user-facing site.

    This module contains only Telegram-specific concerns: parsing commands
    and callbacks, and rendering what the store operations return. Each
    chat gets its own session scope on the shared medium.
    """

    bot = AsyncTeleBot(bot_token)
    views: Dict[int, _ChatView] = {}

    def view_for(chat_id: int) -> _ChatView:
        view = views.get(chat_id)
        if view is None:
            scope = f"telegram:{chat_id}"
            store = RecordStore(medium, context_id=scope, scope=scope)
            view = _ChatView(
                store=store,
                auth=AuthBridge(store, authority),
                ledger=PointsLedger(store),
            )
            views[chat_id] = view
        return view

    def spawn(view: _ChatView, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        view.tasks.add(task)
        task.add_done_callback(view.tasks.discard)

    async def delete_quietly(chat_id: int, message_id: int) -> None:
        try:
            await bot.delete_message(chat_id, message_id)
        except Exception as exc:
            logger.warning("Could not delete message {} in chat {}: {}", message_id, chat_id, exc)

    async def delete_later(chat_id: int, message_id: int, delay: float) -> None:
        await asyncio.sleep(delay)
        await delete_quietly(chat_id, message_id)

    def scrub_later(view: _ChatView, message) -> None:
        # Credentials should not linger in the chat history.
        spawn(view, delete_later(message.chat.id, message.message_id, SCRUB_DELAY_SECONDS))

    def dashboard_user(view: _ChatView) -> Optional[User]:
        user = view.store.get_session()
        if user is None or user.role is not Role.USER:
            return None
        return user

    async def login_and_reply(chat_id: int, view: _ChatView, username: str, password: str) -> None:
        result = view.auth.login(username, password)
        if not result.success:
            await bot.send_message(chat_id, f"Login Failed: {result.error_message}")
            return
        await bot.send_message(
            chat_id,
            f"Login Successful. Welcome back, {result.user.username}!\n"
            "Use /me to see your account or /topup to add points.",
        )

    @bot.message_handler(commands=["start", "hello"])
    async def handle_start(message):
        await bot.send_message(
            message.chat.id,
            "Welcome to WagerWave!\n"
            "Use /register to create an account and /login to sign in.\n"
            "Type /help to see available commands.",
        )

    @bot.message_handler(commands=["help"])
    async def handle_help(message):
        await bot.send_message(
            message.chat.id,
            "/register <username> <password> <confirm> [phone] [referral]\n"
            "/login <username> <password>   - sign in\n"
            "/link <url>                    - sign in with a login link\n"
            "/me                            - account overview\n"
            "/topup                         - buy points\n"
            "/watch, /unwatch               - follow your balance live\n"
            "/logout                        - sign out\n",
        )

    @bot.message_handler(commands=["register"])
    async def handle_register(message):
        parts = message.text.split()
        if len(parts) < 4:
            await bot.send_message(
                message.chat.id,
                "Usage: /register <username> <password> <confirm> [phone] [referral]",
            )
            return

        view = view_for(message.chat.id)
        try:
            result = view.auth.register(
                parts[1],
                parts[2],
                parts[4] if len(parts) > 4 else None,
                confirm_password=parts[3],
                referral_code=parts[5] if len(parts) > 5 else "",
            )
        except Exception:
            logger.exception("Registration handler failed")
            await bot.send_message(message.chat.id, GENERIC_ERROR)
            return
        finally:
            scrub_later(view, message)

        if not result.success:
            await bot.send_message(message.chat.id, f"Registration Failed: {result.error_message}")
            return
        await bot.send_message(
            message.chat.id,
            "Registration Successful. Your account has been created, use /login to sign in.",
        )

    @bot.message_handler(commands=["login"])
    async def handle_login(message):
        parts = message.text.split()
        view = view_for(message.chat.id)
        scrub_later(view, message)
        if len(parts) < 3:
            await bot.send_message(message.chat.id, "Usage: /login <username> <password>")
            return

        try:
            await login_and_reply(message.chat.id, view, parts[1], parts[2])
        except Exception:
            logger.exception("Login handler failed")
            await bot.send_message(message.chat.id, GENERIC_ERROR)

    @bot.message_handler(commands=["link"])
    async def handle_link(message):
        parts = message.text.split(maxsplit=1)
        if len(parts) < 2:
            await bot.send_message(message.chat.id, "Usage: /link <login url>")
            return

        view = view_for(message.chat.id)
        scrub_later(view, message)

        url = parts[1].strip()
        prefill = prefill_from_url(url)
        if prefill is None:
            await bot.send_message(message.chat.id, "That link does not carry any credentials.")
            return

        logger.info("Chat {} used login link {}", message.chat.id, scrub_url(url))
        notice = await bot.send_message(message.chat.id, prefill.message)
        spawn(view, delete_later(message.chat.id, notice.message_id, MESSAGE_TTL_SECONDS))
        if not prefill.success:
            return

        try:
            await login_and_reply(message.chat.id, view, prefill.username, prefill.password)
        except Exception:
            logger.exception("Link login failed")
            await bot.send_message(message.chat.id, GENERIC_ERROR)

    @bot.message_handler(commands=["me"])
    async def handle_me(message):
        view = view_for(message.chat.id)
        user = dashboard_user(view)
        if user is None:
            await bot.send_message(message.chat.id, "Please /login first.")
            return
        await bot.send_message(message.chat.id, render_account(user, view.store.get_canonical()))

    @bot.message_handler(commands=["topup"])
    async def handle_top_up(message):
        user = dashboard_user(view_for(message.chat.id))
        if user is None:
            await bot.send_message(message.chat.id, "Please /login first.")
            return

        markup = InlineKeyboardMarkup(row_width=3)
        markup.add(
            *[
                InlineKeyboardButton(f"{amount} points", callback_data=encode_top_up_choice(amount))
                for amount in TOP_UP_OPTIONS
            ]
        )
        markup.add(InlineKeyboardButton("Cancel", callback_data=encode_top_up_cancel()))
        await bot.send_message(
            message.chat.id,
            f"Current points: {user.points}\nChoose how much you want to top up",
            reply_markup=markup,
        )

    @bot.callback_query_handler(func=lambda call: call.data.startswith("topup:"))
    async def handle_top_up_choice(call):
        chat_id = call.message.chat.id
        try:
            if is_top_up_cancel(call.data):
                await bot.answer_callback_query(call.id, "Top-up cancelled.")
                return

            try:
                amount = parse_top_up_choice(call.data)
            except ValueError:
                await bot.answer_callback_query(call.id, "Invalid selection.")
                return

            view = view_for(chat_id)
            user = dashboard_user(view)
            if user is None:
                await bot.answer_callback_query(call.id, "Please /login first.")
                return

            result = view.ledger.top_up(user.id, amount)
            if not result.success:
                await bot.answer_callback_query(call.id, result.error_message)
                return

            await bot.answer_callback_query(call.id, "Top-up successful!")
            await bot.send_message(
                chat_id,
                f"Added {amount} points. New balance: {result.new_balance}",
            )
        finally:
            await delete_quietly(chat_id, call.message.message_id)

    @bot.message_handler(commands=["watch"])
    async def handle_watch(message):
        chat_id = message.chat.id
        view = view_for(chat_id)
        if view.watcher is not None and not view.watcher.cancelled:
            await bot.send_message(chat_id, "Already following your account. Use /unwatch to stop.")
            return
        if dashboard_user(view) is None:
            await bot.send_message(chat_id, "Please /login first.")
            return

        def on_session(user: Optional[User]) -> None:
            text = render_account(user) if user is not None else "You have been logged out."
            if text == view.last_render:
                return
            view.last_render = text
            spawn(view, bot.send_message(chat_id, text))
            if user is None:
                view.stop_watching()

        view.watcher = watch_session(view.store, on_session, session_poll_interval)

    @bot.message_handler(commands=["unwatch"])
    async def handle_unwatch(message):
        view_for(message.chat.id).stop_watching()
        await bot.send_message(message.chat.id, "Stopped following your account.")

    @bot.message_handler(commands=["logout"])
    async def handle_logout(message):
        view = view_for(message.chat.id)
        view.stop_watching()
        view.auth.logout()
        await bot.send_message(message.chat.id, "Logged Out. You have been logged out successfully.")

    return bot
