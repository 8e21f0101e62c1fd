"""Flat JSON lists of quotes, jokes and facts."""

from __future__ import annotations

import json
import logging
import random
from pathlib import Path
from threading import RLock
from typing import List, Optional, Sequence

from utils.path_utils import atomic_write_text, data_file

DEFAULT_QUOTES = (
    "The only way to do great work is to love what you do. - Steve Jobs",
    "Innovation distinguishes between a leader and a follower. - Steve Jobs",
)

DEFAULT_JOKES = (
    "Why don't scientists trust atoms? Because they make up everything!",
    "Why did the scarecrow win an award? Because he was outstanding in his field!",
)

DEFAULT_FACTS = (
    "Honey never spoils. Archaeologists have found pots of honey in ancient Egyptian "
    "tombs that are over 3,000 years old and still perfectly edible.",
    "Octopuses have three hearts and blue blood.",
)


class ContentList:
    """One append-only list backed by its own JSON file."""

    def __init__(self, path: Path, defaults: Sequence[str]) -> None:
        self._lock = RLock()
        self.path = Path(path)
        self._defaults = list(defaults)
        self._items: List[str] = []

    @property
    def items(self) -> List[str]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def load(self) -> "ContentList":
        with self._lock:
            if not self.path.exists():
                self._items = list(self._defaults)
                try:
                    self._write(self._items)
                except OSError:
                    logging.exception("Error creating content file %s", self.path)
                return self

            items = self._read()
            if not items:
                logging.warning("Content file %s is empty or invalid; using defaults", self.path)
                items = list(self._defaults)
            self._items = items
            return self

    def _read(self) -> List[str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError):
            logging.exception("Error reading content file %s", self.path)
            return []
        if not isinstance(data, list):
            return []
        return [str(item) for item in data if isinstance(item, str) and item.strip()]

    def _write(self, items: Sequence[str]) -> None:
        atomic_write_text(self.path, json.dumps(list(items), ensure_ascii=False, indent=2))

    def pick_random(self, rng: Optional[random.Random] = None) -> str:
        with self._lock:
            if not self._items:
                raise LookupError(f"Content list {self.path.name} is empty")
            return (rng or random).choice(self._items)

    def append(self, item: str) -> bool:
        """Re-read the file, append ``item`` and rewrite it; ``False`` on IO failure."""

        with self._lock:
            current = (self._read() if self.path.exists() else []) or list(self._items)
            current.append(item)
            try:
                self._write(current)
            except OSError:
                logging.exception("Error writing to content file %s", self.path)
                return False
            self._items = current
            return True


class ContentRegistry:
    def __init__(self, quotes: ContentList, jokes: ContentList, facts: ContentList) -> None:
        self.quotes = quotes
        self.jokes = jokes
        self.facts = facts

    @classmethod
    def from_data_dir(cls) -> "ContentRegistry":
        return cls(
            quotes=ContentList(data_file("quotes.json"), DEFAULT_QUOTES),
            jokes=ContentList(data_file("jokes.json"), DEFAULT_JOKES),
            facts=ContentList(data_file("facts.json"), DEFAULT_FACTS),
        )

    def load(self) -> "ContentRegistry":
        for content in (self.quotes, self.jokes, self.facts):
            content.load()
        return self
