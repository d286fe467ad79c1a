"""
CultBot
=======

A Discord bot that runs the server's initiation ritual for new members,
moderates chat for spam and disallowed language, and announces when the
channel's YouTube stream goes live.

Run with ``cultbot`` (console script) or ``python run_bot.py``. Paths such as
``config/app_config.yml``, ``data/`` and ``.env`` are relative to the base
directory, so the working directory is switched there before anything reads
them.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """
    ``CULTBOT_HOME`` if set, the executable's directory for frozen builds,
    otherwise the repository root.
    """
    if home := os.getenv("CULTBOT_HOME"):
        return Path(home).resolve()
    if getattr(sys, "frozen", False):
        return Path(sys.argv[0]).resolve().parent
    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio  # noqa: E402
import importlib  # noqa: E402

import discord  # noqa: E402
from dotenv import load_dotenv  # noqa: E402

from cultbot.bot.bot_services import BotServices, build_services  # noqa: E402
from cultbot.configuration.app_configuration import app_config  # noqa: E402
from cultbot.database.database import database  # noqa: E402
from cultbot.util.logger import get_logger  # noqa: E402

logger = get_logger("main")

COG_MODULES = ("events_listener", "member_listener", "message_listener", "live_cmds")


def load_environment() -> tuple[str, str | None]:
    """
    Read ``.env`` and return ``(discord token, youtube api key)``.

    Exits the process when the Discord token is missing; a missing YouTube key
    only disables live detection.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")

    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("DISCORD_BOT_TOKEN is not set; add it to %s", BASE_DIR / ".env")
        sys.exit(1)

    youtube_api_key = os.getenv("YOUTUBE_API_KEY") or None
    if youtube_api_key is None:
        logger.warning("YOUTUBE_API_KEY is not set; the channel will always be reported offline")
    return token, youtube_api_key


def build_intents() -> discord.Intents:
    """Default intents plus the privileged ones: members (joins), presences (games), message content (filters)."""
    intents = discord.Intents.default()
    intents.members = True
    intents.presences = True
    intents.message_content = True
    return intents


def load_cogs(discord_bot_instance: discord.Bot, services: BotServices) -> None:
    for name in COG_MODULES:
        importlib.import_module(f"cultbot.bot.cogs.{name}").setup(discord_bot_instance, services)
    logger.info("Loaded cogs: %s", ", ".join(COG_MODULES))


def create_bot(youtube_api_key: str | None) -> tuple[discord.Bot, BotServices]:
    bot = discord.Bot(intents=build_intents())
    services = build_services(bot, app_config, youtube_api_key)
    load_cogs(bot, services)
    return bot, services


async def shutdown_runtime(bot: discord.Bot | None = None, services: BotServices | None = None) -> None:
    """
    Stop in reverse start order: background loops and the YouTube session,
    then the gateway connection, then the database. Each step runs even if an
    earlier one failed.
    """
    steps = []
    if services is not None:
        steps.append(("background services", services.shutdown))
    if bot is not None and not bot.is_closed():
        steps.append(("Discord client", bot.close))
    steps.append(("database", database.shutdown))

    for label, step in steps:
        try:
            await step()
        except Exception as exc:
            logger.exception("Error stopping %s: %s", label, exc)

    logger.info("Shutdown complete.")


async def async_main() -> int:
    token, youtube_api_key = load_environment()

    if not await database.initialize():
        logger.critical("Database unavailable; CultBot cannot start.")
        return 1

    try:
        bot, services = create_bot(youtube_api_key)
    except Exception as exc:
        logger.critical("Failed to set up the bot: %s", exc, exc_info=True)
        await shutdown_runtime()
        return 1

    exit_code = 0
    logger.info("Connecting to Discord...")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Connection cancelled")
    except discord.LoginFailure as exc:
        logger.critical("Discord rejected the token: %s", exc)
        exit_code = 1
    except Exception as exc:
        logger.critical("Bot stopped with an error: %s", exc, exc_info=True)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, services)

    return exit_code


def main() -> int:
    """Console-script entry point; returns the process exit code."""
    logger.info("Starting CultBot...")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Interrupted; shutting down.")
        return 0
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 1


if __name__ == "__main__":
    sys.exit(main())
