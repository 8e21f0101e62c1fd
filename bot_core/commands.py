"""Command descriptors and the lookup table the dispatcher routes through."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, Iterator, List, Optional

from transport.base import InboundMessage

if TYPE_CHECKING:
    from bot_core.context import EngineContext


class Authority(IntEnum):
    NONE = 0
    GROUP_ADMIN = 1
    OWNER = 2


CATEGORY_CORE = "Core Commands"
CATEGORY_ADMIN = "Admin Commands (Group Only)"
CATEGORY_CONTENT = "Content Management"
CATEGORY_OWNER = "Owner Commands"
CATEGORY_PLACEHOLDER = "Placeholder Commands"


@dataclass(frozen=True)
class Invocation:
    message: InboundMessage
    command: str
    args: str
    spec: "CommandSpec"


Handler = Callable[["EngineContext", Invocation], Awaitable[None]]


@dataclass(frozen=True)
class CommandSpec:
    """Everything the dispatcher needs to know before calling ``handler``.

    ``usage`` and ``missing_args`` may reference ``{prefix}``. When
    ``args_required`` is set and no arguments were given, the dispatcher
    answers with ``missing_args`` (or ``usage``) instead of calling the
    handler.
    """

    name: str
    handler: Handler
    aliases: tuple[str, ...] = ()
    authority: Authority = Authority.NONE
    group_only: bool = False
    requires_bot_admin: bool = False
    args_required: bool = False
    usage: str = ""
    missing_args: str = ""
    summary: str = ""
    category: str = CATEGORY_CORE
    hidden: bool = False

    @property
    def names(self) -> tuple[str, ...]:
        return (self.name, *self.aliases)

    def render_usage(self, prefix: str) -> str:
        template = self.missing_args or f"Usage: {self.usage}"
        return template.format(prefix=prefix)


class CommandRegistry:
    """Case-insensitive mapping from every command name and alias to its spec."""

    def __init__(self) -> None:
        self._by_name: Dict[str, CommandSpec] = {}
        self._ordered: List[CommandSpec] = []

    def add(self, spec: CommandSpec) -> None:
        names = [name.lower() for name in spec.names]
        taken = [name for name in names if name in self._by_name]
        if taken:
            raise ValueError(f"Command name(s) already registered: {', '.join(taken)}")
        for name in names:
            self._by_name[name] = spec
        self._ordered.append(spec)
        logging.getLogger(__name__).debug(
            "Registered command '%s' (aliases=%s, authority=%s)",
            spec.name,
            spec.aliases,
            spec.authority.name,
        )

    def resolve(self, name: str) -> Optional[CommandSpec]:
        return self._by_name.get(name.lower())

    def __iter__(self) -> Iterator[CommandSpec]:
        return iter(self._ordered)

    def __len__(self) -> int:
        return len(self._ordered)

    def by_category(self) -> Dict[str, List[CommandSpec]]:
        grouped: Dict[str, List[CommandSpec]] = {}
        for spec in self._ordered:
            if spec.hidden:
                continue
            grouped.setdefault(spec.category, []).append(spec)
        return grouped
