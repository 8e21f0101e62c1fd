"""Persistent JSON store for prefix, per-group moderation settings and mutes."""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from threading import RLock
from typing import Any, Dict, Iterator, Optional

from utils.path_utils import atomic_write_text


logger = logging.getLogger(__name__)


@dataclass
class GroupConfig:
    welcome_enabled: bool = False
    antilink_enabled: bool = False

    @classmethod
    def from_dict(cls, raw: Any) -> "GroupConfig":
        if not isinstance(raw, dict):
            return cls()
        return cls(
            welcome_enabled=bool(raw.get("welcome", False)),
            antilink_enabled=bool(raw.get("antilink", False)),
        )

    def to_dict(self) -> Dict[str, bool]:
        return {"welcome": self.welcome_enabled, "antilink": self.antilink_enabled}


class BotStore:
    """Single JSON document holding ``groups``, ``bans``, ``prefix`` and ``mutes``.

    Every mutation rewrites the whole document through a temporary file and
    ``os.replace`` so a crash mid-write never leaves a truncated store behind.
    Mutations happen inside :meth:`edit_group` (or the other setters) which
    hold the lock for the read-mutate-persist sequence; callers must not await
    while holding it.
    """

    def __init__(self, path: Path, default_prefix: str = ".") -> None:
        self._lock = RLock()
        self._path = Path(path)
        self._default_prefix = default_prefix
        self._groups: Dict[str, GroupConfig] = {}
        # Reserved for ban-list enforcement; nothing populates it yet.
        self._bans: Dict[str, Any] = {}
        self._prefix: Optional[str] = None
        self._mutes: Dict[str, float] = {}

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> "BotStore":
        with self._lock:
            self._reset()
            if not self._path.exists():
                logger.info("Store file %s does not exist; creating it", self._path)
                self.save()
                return self

            try:
                raw_data = json.loads(self._path.read_text(encoding="utf-8"))
            except (json.JSONDecodeError, OSError, UnicodeDecodeError):
                logger.exception(
                    "Failed to load store from %s; continuing with defaults", self._path
                )
                return self

            if not isinstance(raw_data, dict):
                logger.warning(
                    "Unexpected structure in store %s; continuing with defaults", self._path
                )
                return self

            groups = raw_data.get("groups")
            if isinstance(groups, dict):
                self._groups = {
                    str(group_id): GroupConfig.from_dict(config)
                    for group_id, config in groups.items()
                }
            bans = raw_data.get("bans")
            if isinstance(bans, dict):
                self._bans = dict(bans)
            prefix = raw_data.get("prefix")
            if isinstance(prefix, str) and prefix.strip():
                self._prefix = prefix
            mutes = raw_data.get("mutes")
            if isinstance(mutes, dict):
                for group_id, expires_at in mutes.items():
                    try:
                        self._mutes[str(group_id)] = float(expires_at)
                    except (TypeError, ValueError):
                        logger.warning("Dropping malformed mute entry for %s", group_id)
            logger.debug(
                "Loaded store from %s: %d groups, %d pending mutes",
                self._path,
                len(self._groups),
                len(self._mutes),
            )
            return self

    def _reset(self) -> None:
        self._groups = {}
        self._bans = {}
        self._prefix = None
        self._mutes = {}

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "groups": {
                    group_id: config.to_dict() for group_id, config in self._groups.items()
                },
                "bans": dict(self._bans),
                "prefix": self.prefix,
                "mutes": dict(self._mutes),
            }

    def save(self) -> bool:
        """Rewrite the whole document; returns ``False`` when the write failed."""

        with self._lock:
            payload = json.dumps(self.to_dict(), ensure_ascii=False, indent=2)
            try:
                atomic_write_text(self._path, payload)
            except OSError:
                logger.exception("Error saving store to %s", self._path)
                return False
            return True

    @property
    def prefix(self) -> str:
        return self._prefix or self._default_prefix

    def set_prefix(self, prefix: str) -> bool:
        with self._lock:
            self._prefix = prefix
            return self.save()

    def group(self, group_id: str) -> GroupConfig:
        """Return the config for ``group_id``, creating defaults on first reference."""

        with self._lock:
            config = self._groups.get(group_id)
            if config is None:
                config = GroupConfig()
                self._groups[group_id] = config
            return config

    @contextmanager
    def edit_group(self, group_id: str) -> Iterator[GroupConfig]:
        with self._lock:
            config = self.group(group_id)
            yield config
            self.save()

    def bans(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._bans)

    def mutes(self) -> Dict[str, float]:
        with self._lock:
            return dict(self._mutes)

    def set_mute(self, group_id: str, expires_at: float) -> bool:
        with self._lock:
            self._mutes[group_id] = expires_at
            return self.save()

    def clear_mute(self, group_id: str) -> bool:
        with self._lock:
            if self._mutes.pop(group_id, None) is None:
                return True
            return self.save()
