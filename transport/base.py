"""Transport-facing types consumed by the engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Iterable, Optional, Protocol, Sequence

from utils.identity import AddressScheme


class TransportError(Exception):
    """Raised when the messaging transport cannot perform a request."""


class ParticipantAction(str, Enum):
    ADD = "add"
    REMOVE = "remove"
    PROMOTE = "promote"
    DEMOTE = "demote"


class SendPolicy(str, Enum):
    OPEN = "open"
    ADMINS_ONLY = "admins_only"


@dataclass(frozen=True)
class MessageRef:
    chat: str
    id: str
    from_me: bool = False


@dataclass(frozen=True)
class MediaRef:
    """Opaque handle to downloadable media; ``kind`` is ``image`` or ``sticker``."""

    kind: str
    ref: Any


@dataclass(frozen=True)
class QuotedContext:
    ref: MessageRef
    author: Optional[str]
    media: Optional[MediaRef] = None


@dataclass
class InboundMessage:
    chat: str
    sender: str
    text: Optional[str]
    ref: MessageRef
    is_group: bool = False
    quoted: Optional[QuotedContext] = None
    mentions: list[str] = field(default_factory=list)
    media: Optional[MediaRef] = None

    @property
    def from_me(self) -> bool:
        return self.ref.from_me


@dataclass(frozen=True)
class ParticipantsAdded:
    group: str
    participants: tuple[str, ...]


@dataclass(frozen=True)
class GroupParticipant:
    id: str
    role: Optional[str] = None


@dataclass
class GroupMetadata:
    id: str
    subject: str = ""
    participants: list[GroupParticipant] = field(default_factory=list)


class EventSink(Protocol):
    def on_message(self, message: InboundMessage) -> Awaitable[None]: ...

    def on_participants_added(self, event: ParticipantsAdded) -> Awaitable[None]: ...


class Transport(Protocol):
    """Narrow interface the engine uses to talk to the chat network."""

    scheme: AddressScheme
    self_id: str

    async def send_text(
        self,
        target: str,
        text: str,
        *,
        quoted: Optional[MessageRef] = None,
        mentions: Iterable[str] = (),
    ) -> Optional[MessageRef]: ...

    async def send_media(
        self,
        target: str,
        data: bytes,
        kind: str,
        *,
        caption: Optional[str] = None,
        quoted: Optional[MessageRef] = None,
    ) -> Optional[MessageRef]: ...

    async def send_poll(
        self,
        target: str,
        question: str,
        options: Sequence[str],
        *,
        quoted: Optional[MessageRef] = None,
    ) -> Optional[MessageRef]: ...

    async def delete_message(self, ref: MessageRef) -> None: ...

    async def update_group_participants(
        self, group: str, ids: Sequence[str], action: ParticipantAction
    ) -> None: ...

    async def update_group_send_policy(self, group: str, policy: SendPolicy) -> None: ...

    async def fetch_group_metadata(self, group: str) -> GroupMetadata: ...

    async def list_groups(self) -> list[str]: ...

    async def download_media(self, media: MediaRef) -> bytes: ...
