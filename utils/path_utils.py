"""Utilities for resolving the directory that holds persisted bot data."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Union


data_dir = ""


def set_data_dir(path: Union[str, Path]) -> None:
    """Set the directory used by the store and the content lists."""

    global data_dir
    data_dir = str(path)
    logging.getLogger(__name__).debug("Data directory set to %s", data_dir)


def get_data_dir() -> Path:
    """Return the configured data directory, defaulting to the project root."""

    if not data_dir:
        default = Path(__file__).resolve().parent.parent
        logging.getLogger(__name__).debug(
            "Data directory was not initialised; defaulting to %s", default
        )
        return default
    return Path(data_dir)


def data_file(name: str) -> Path:
    base = get_data_dir()
    base.mkdir(parents=True, exist_ok=True)
    return base / name


def atomic_write_text(path: Path, payload: str) -> None:
    """Replace ``path`` with ``payload`` through a synced temporary file.

    Raises ``OSError`` on failure; the previous file is left untouched.
    """

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_name = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            tmp_name = handle.name
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except OSError:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
