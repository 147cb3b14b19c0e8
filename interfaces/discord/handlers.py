from __future__ import annotations

import asyncio
from typing import Coroutine, Dict, List, Optional, Set

import discord
from discord.ext import commands
from loguru import logger

from application.auth_bridge import AuthBridge
from application.points_ledger import PointsLedger
from application.record_store import RecordStore
from application.sync_poller import USERS_POLL_INTERVAL, Subscription, watch_users
from domain.models import Role, User
from domain.repositories import AuthAuthority, KeyValueMedium


def render_users_table(users: List[User]) -> str:
    """Plain-text version of the admin users table."""

    if not users:
        return "No users registered yet."

    lines = ["Username | Phone | Points | Status"]
    lines.extend(
        f"{u.username} | {u.phone or '-'} | {u.points} | {u.status.value}" for u in users
    )
    return "```\n" + "\n".join(lines) + "\n```"


class _AdminView:
    """Store, bridge and ledger bound to one Discord author's session."""

    def __init__(self, medium: KeyValueMedium, authority: AuthAuthority, author_id: int) -> None:
        scope = f"discord:{author_id}"
        self.store = RecordStore(medium, context_id=scope, scope=scope)
        self.auth = AuthBridge(self.store, authority)
        self.ledger = PointsLedger(self.store)
        self.watcher: Optional[Subscription] = None
        self.tasks: Set[asyncio.Task] = set()

    def is_admin(self) -> bool:
        session = self.store.get_session()
        return session is not None and session.role is Role.ADMIN

    def spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self.tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self.tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.opt(exception=task.exception()).warning("Background send failed")

    def stop_watching(self) -> None:
        if self.watcher is not None:
            self.watcher.cancel()
            self.watcher = None
        for task in list(self.tasks):
            task.cancel()


def create_discord_bot(
    medium: KeyValueMedium,
    authority: AuthAuthority,
    users_poll_interval: float = USERS_POLL_INTERVAL,
) -> commands.Bot:
    """
    Configure and return a Discord bot acting as the admin dashboard:
    admin login, the users table, points grants and auto-refresh.
    """

    intents = discord.Intents.default()
    intents.message_content = True

    # Disable the default help command so we can provide our own `!help`.
    bot = commands.Bot(command_prefix="!", intents=intents, help_command=None)

    views: Dict[int, _AdminView] = {}

    def view_for(author: discord.abc.User) -> _AdminView:
        view = views.get(author.id)
        if view is None:
            view = _AdminView(medium, authority, author.id)
            views[author.id] = view
        return view

    async def require_admin(ctx: commands.Context) -> Optional[_AdminView]:
        view = view_for(ctx.author)
        if not view.is_admin():
            await ctx.send("Admin access required. Use `!login <username> <password>`.")
            return None
        return view

    @bot.event
    async def on_ready():
        logger.info("Discord admin bot logged in as {} (id={})", bot.user, bot.user.id)

    @bot.event
    async def on_command_error(ctx: commands.Context, error: commands.CommandError):
        if isinstance(error, (commands.MissingRequiredArgument, commands.BadArgument)):
            await ctx.send(f"{error}\nType `!help` to see the expected arguments.")
            return
        if isinstance(error, commands.CommandNotFound):
            return
        logger.opt(exception=error).error("Command {} failed", ctx.command)
        await ctx.send("An unexpected error occurred. Please try again.")

    @bot.command(name="help")
    async def help_cmd(ctx: commands.Context):
        await ctx.send(
            "!login <username> <password>   - admin sign in\n"
            "!users                         - list registered users\n"
            "!refresh                       - reload the users table\n"
            "!grant <username> <amount>     - add points to a user\n"
            "!watch / !unwatch              - auto-refresh the users table\n"
            "!logout                        - sign out\n"
        )

    @bot.command(name="login")
    async def login_cmd(ctx: commands.Context, username: str, password: str):
        view = view_for(ctx.author)
        result = view.auth.admin_login(username, password)
        try:
            await ctx.message.delete()
        except discord.HTTPException as exc:
            logger.warning("Could not delete login message: {}", exc)

        if not result.success:
            await ctx.send(f"Login Failed: {result.error_message}")
            return
        await ctx.send(f"Welcome back, {result.user.username}! Type `!users` to see the table.")

    @bot.command(name="logout")
    async def logout_cmd(ctx: commands.Context):
        view = view_for(ctx.author)
        view.stop_watching()
        view.auth.logout()
        await ctx.send("Logged Out. You have been logged out successfully.")

    @bot.command(name="users")
    async def users_cmd(ctx: commands.Context):
        view = await require_admin(ctx)
        if view is None:
            return
        await ctx.send(render_users_table(view.ledger.regular_users()))

    @bot.command(name="refresh")
    async def refresh_cmd(ctx: commands.Context):
        view = await require_admin(ctx)
        if view is None:
            return
        await ctx.send("User data has been refreshed.\n" + render_users_table(view.ledger.regular_users()))

    @bot.command(name="grant")
    async def grant_cmd(ctx: commands.Context, username: str, amount: int):
        view = await require_admin(ctx)
        if view is None:
            return

        target = next((u for u in view.ledger.regular_users() if u.username == username), None)
        if target is None:
            await ctx.send(f"No user named {username!r}.")
            return

        result = view.ledger.admin_grant(target.id, amount)
        if not result.success:
            await ctx.send(result.error_message)
            return
        await ctx.send(
            f"Successfully added {amount} points to {target.username} "
            f"(new balance: {result.new_balance})."
        )

    @bot.command(name="watch")
    async def watch_cmd(ctx: commands.Context):
        view = await require_admin(ctx)
        if view is None:
            return
        if view.watcher is not None and not view.watcher.cancelled:
            await ctx.send("Already watching. Use `!unwatch` to stop.")
            return

        channel = ctx.channel
        last_render: Dict[str, str] = {}

        def on_users(users: List[User]) -> None:
            if not view.is_admin():
                view.stop_watching()
                return
            text = render_users_table([u for u in users if u.role is Role.USER])
            if last_render.get("text") == text:
                return
            last_render["text"] = text
            view.spawn(channel.send(text))

        view.watcher = watch_users(view.store, on_users, users_poll_interval)

    @bot.command(name="unwatch")
    async def unwatch_cmd(ctx: commands.Context):
        view_for(ctx.author).stop_watching()
        await ctx.send("Stopped watching.")

    return bot
