import asyncio

from infrastructure.config import load_settings
from infrastructure.factory import build_authority, build_medium
from infrastructure.logger import configure_logging
from interfaces.telegram.handlers import create_telegram_bot


def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)

    if not settings.telegram_bot_token:
        raise RuntimeError("TELEGRAM_BOT_TOKEN environment variable is not set.")

    medium = build_medium(settings)
    authority = build_authority(settings)

    bot = create_telegram_bot(
        settings.telegram_bot_token,
        medium,
        authority,
        settings.session_poll_interval,
    )
    asyncio.run(bot.infinity_polling())


if __name__ == "__main__":
    main()
