from infrastructure.config import load_settings
from infrastructure.factory import build_authority, build_medium
from infrastructure.logger import configure_logging
from interfaces.discord.handlers import create_discord_bot


def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)

    if not settings.discord_token:
        raise RuntimeError("DISCORD_TOKEN environment variable is not set.")

    medium = build_medium(settings)
    authority = build_authority(settings)

    bot = create_discord_bot(medium, authority, settings.users_poll_interval)
    bot.run(settings.discord_token, log_handler=None)


if __name__ == "__main__":
    main()
