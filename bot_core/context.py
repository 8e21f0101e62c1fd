"""State and collaborators handed to every handler."""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from bot_core.commands import CommandRegistry
from bot_core.permissions import PermissionResolver
from modules.content.registry import ContentRegistry
from modules.media.codec import StickerCodec
from modules.moderation.mute_scheduler import MuteScheduler
from transport.base import InboundMessage, MessageRef, Transport
from utils.bot_store import BotStore
from utils.config import BotSettings
from utils.identity import AddressScheme


@dataclass
class EngineContext:
    settings: BotSettings
    store: BotStore
    transport: Transport
    permissions: PermissionResolver
    content: ContentRegistry
    mutes: MuteScheduler
    codec: StickerCodec
    registry: CommandRegistry
    rng: random.Random = field(default_factory=random.Random)
    clock: Callable[[], float] = time.time
    stop_callback: Optional[Callable[[int], None]] = None

    @property
    def prefix(self) -> str:
        return self.store.prefix

    @property
    def scheme(self) -> AddressScheme:
        return self.transport.scheme

    async def reply(
        self,
        message: InboundMessage,
        text: str,
        *,
        mentions: Iterable[str] = (),
    ) -> Optional[MessageRef]:
        return await self.transport.send_text(
            message.chat, text, quoted=message.ref, mentions=tuple(mentions)
        )

    async def send(
        self, target: str, text: str, *, mentions: Iterable[str] = ()
    ) -> Optional[MessageRef]:
        return await self.transport.send_text(target, text, mentions=tuple(mentions))

    def mention_label(self, user: str) -> str:
        return f"@{self.scheme.local_part(user)}"

    def request_stop(self, exit_code: int) -> None:
        logging.getLogger(__name__).info("Stop requested with exit code %s", exit_code)
        if self.stop_callback is None:
            logging.getLogger(__name__).warning("No stop callback configured; ignoring")
            return
        self.stop_callback(exit_code)
