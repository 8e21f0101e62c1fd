"""Entrypoint for the GroupGuard application."""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import suppress
from pathlib import Path

import faulthandler

from bot_core.bot import GroupGuardBot
from utils import path_utils
from utils.config import BotSettings, load_settings
from utils.logging_utils import configure_logging

faulthandler.enable()


async def main(settings: BotSettings) -> int:
    """Start the bot using the provided settings."""

    if settings.data_dir:
        path_utils.set_data_dir(Path(settings.data_dir).expanduser().absolute())
    logging.getLogger(__name__).debug(
        "Application data directory initialised at %s", path_utils.get_data_dir()
    )

    bot = GroupGuardBot(settings)
    return await bot.start()


def _bootstrap() -> int:
    """Load configuration, configure logging and run the asyncio loop."""

    project_root = Path(__file__).parent
    settings = load_settings()

    log_dir = project_root / "logs"
    configure_logging(log_dir, level=settings.log_level)

    logger = logging.getLogger(__name__)
    logger.info("GroupGuard starting up")
    try:
        return asyncio.run(main(settings))
    except KeyboardInterrupt:
        logger.info("GroupGuard interrupted by user")
        return 0
    except Exception:
        logger.exception("GroupGuard stopped due to an unexpected error")
        return 1
    finally:
        # Ensure logging handlers flush buffers before the interpreter exits.
        for handler in logging.getLogger().handlers:
            with suppress(Exception):
                handler.flush()


def run() -> None:
    sys.exit(_bootstrap())


if __name__ == "__main__":
    run()
