"""Logging configuration helpers."""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

_RESERVED_ATTRIBUTES = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime"}

LOG_FILE_PREFIX = "groupguard"
MAX_LOG_BYTES = 5 * 1024 * 1024

# aiogram logs every polled update at INFO
QUIET_LOGGERS = {
    "aiogram.event": "WARNING",
}


class JsonFormatter(logging.Formatter):
    """Serialize log records, including ``extra`` fields, into JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRIBUTES and key not in payload:
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = record.stack_info
        return json.dumps(payload, ensure_ascii=False, default=str)


def build_logging_config(
    log_dir: Path, *, level: str = "INFO", timestamp: Optional[str] = None
) -> Dict[str, Any]:
    """Return the ``dictConfig`` mapping for console, per-run, latest and JSON logs."""

    stamp = timestamp or datetime.now().strftime("%Y%m%d-%H%M%S")
    text_log_path = log_dir / f"{LOG_FILE_PREFIX}-{stamp}.log"
    json_log_path = log_dir / f"{LOG_FILE_PREFIX}-{stamp}.jsonl"
    latest_log_path = log_dir / "latest.log"

    def rotating(path: Path, formatter: str, handler_level: str, backups: int) -> Dict[str, Any]:
        return {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": formatter,
            "filename": str(path),
            "maxBytes": MAX_LOG_BYTES,
            "backupCount": backups,
            "encoding": "utf-8",
            "level": handler_level,
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {
                "format": "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            },
            "detailed": {
                "format": "%(asctime)s | %(levelname)-8s | %(name)s | %(processName)s(%(process)d) | %(message)s",
            },
            "json": {"()": JsonFormatter},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "console",
                "level": level,
            },
            "file": rotating(text_log_path, "detailed", "DEBUG", 5),
            "latest": {
                "class": "logging.FileHandler",
                "formatter": "detailed",
                "filename": str(latest_log_path),
                "mode": "w",
                "encoding": "utf-8",
                "level": "DEBUG",
            },
            "json": rotating(json_log_path, "json", "INFO", 3),
        },
        "loggers": {name: {"level": value} for name, value in QUIET_LOGGERS.items()},
        "root": {
            "handlers": ["console", "file", "latest", "json"],
            "level": "DEBUG",
        },
    }


def configure_logging(log_dir: Path, *, level: str = "INFO") -> None:
    """Configure the logging subsystem with structured and human-readable outputs."""

    log_dir.mkdir(parents=True, exist_ok=True)
    config = build_logging_config(log_dir, level=level)
    logging.config.dictConfig(config)

    logging.getLogger(__name__).debug(
        "Logging configured: text=%s latest=%s json=%s",
        config["handlers"]["file"]["filename"],
        config["handlers"]["latest"]["filename"],
        config["handlers"]["json"]["filename"],
    )
