"""Configuration helpers for GroupGuard."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Iterable

from dotenv import find_dotenv, load_dotenv


@dataclass(slots=True)
class BotSettings:
    """Runtime settings loaded from the environment."""

    bot_token: str
    owner_id: str = ""
    prefix: str = "."
    log_level: str = "INFO"
    data_dir: str = ""


REQUIRED_ENVIRONMENT_VARIABLES: tuple[str, ...] = ("BOT_TOKEN",)
DEFAULT_PREFIX = "."
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def _load_env_file() -> None:
    """Load variables from a .env file when available."""

    env_file = find_dotenv(usecwd=True)
    if env_file:
        load_dotenv(env_file)
        logging.getLogger(__name__).debug("Loaded environment variables from %s", env_file)
    else:
        logging.getLogger(__name__).debug("No .env file discovered; using process environment")


def _missing_variables(required: Iterable[str]) -> list[str]:
    return [name for name in required if not os.getenv(name)]


def _log_level(raw: str) -> str:
    level = raw.strip().upper()
    if level not in LOG_LEVELS:
        logging.getLogger(__name__).warning("Unknown LOG_LEVEL %r; using INFO", raw)
        return "INFO"
    return level


def load_settings() -> BotSettings:
    """Load settings from the environment and ensure required values exist.

    ``BOT_OWNER`` may be a bare account id or a full address; an empty value
    leaves owner commands disabled.
    """

    _load_env_file()
    missing = _missing_variables(REQUIRED_ENVIRONMENT_VARIABLES)
    if missing:
        raise RuntimeError(
            "Missing required environment variables: " + ", ".join(sorted(missing))
        )

    return BotSettings(
        bot_token=os.environ["BOT_TOKEN"],
        owner_id=os.getenv("BOT_OWNER", "").strip(),
        prefix=os.getenv("BOT_PREFIX", DEFAULT_PREFIX).strip() or DEFAULT_PREFIX,
        log_level=_log_level(os.getenv("LOG_LEVEL", "INFO")),
        data_dir=os.getenv("DATA_DIR", "").strip(),
    )
