"""Entry point for inbound transport events."""

from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import Awaitable, Callable, List, Optional

from bot_core.commands import CommandRegistry
from bot_core.context import EngineContext
from bot_core.dispatcher import CommandDispatcher, parse_command
from bot_core.module_loader import ModuleLoader
from bot_core.permissions import PermissionResolver
from modules.base import Module
from modules.content.registry import ContentRegistry
from modules.media.codec import StickerCodec
from modules.moderation.mute_scheduler import MuteScheduler
from transport.base import InboundMessage, ParticipantsAdded, Transport
from utils.bot_store import BotStore
from utils.config import BotSettings
from utils.path_utils import data_file

STORE_FILE = "bot_store.json"


class Engine:
    """Run module hooks on every event, then dispatch prefixed commands."""

    def __init__(
        self,
        context: EngineContext,
        modules: List[Module],
        dispatcher: CommandDispatcher,
        loader: Optional[ModuleLoader] = None,
    ) -> None:
        self.context = context
        self.modules = modules
        self.dispatcher = dispatcher
        self._loader = loader
        self._logger = logging.getLogger(__name__)

    async def on_message(self, message: InboundMessage) -> None:
        for module in self.modules:
            if not module.enabled:
                continue
            try:
                await module.on_message(self.context, message)
            except Exception:
                self._logger.exception(
                    "Message hook of module '%s' failed in %s", module.name, message.chat
                )

        parsed = parse_command(message.text, self.context.prefix)
        if parsed is None:
            return
        await self.dispatcher.dispatch(self.context, message, parsed)

    async def on_participants_added(self, event: ParticipantsAdded) -> None:
        for module in self.modules:
            if not module.enabled:
                continue
            try:
                await module.on_participants_added(self.context, event)
            except Exception:
                self._logger.exception(
                    "Participants hook of module '%s' failed in %s", module.name, event.group
                )

    async def shutdown(self) -> None:
        if self._loader is not None:
            await self._loader.shutdown()
        await self.context.mutes.shutdown()


async def create_engine(
    settings: BotSettings,
    transport: Transport,
    *,
    stop_callback: Optional[Callable[[int], None]] = None,
    rng: Optional[random.Random] = None,
    clock: Callable[[], float] = time.time,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Engine:
    """Load persisted state, discover modules and start their hooks."""

    store = BotStore(data_file(STORE_FILE), default_prefix=settings.prefix).load()
    registry = CommandRegistry()
    context = EngineContext(
        settings=settings,
        store=store,
        transport=transport,
        permissions=PermissionResolver(transport, settings.owner_id),
        content=ContentRegistry.from_data_dir().load(),
        mutes=MuteScheduler(store, transport, clock=clock, sleep=sleep),
        codec=StickerCodec(),
        registry=registry,
        rng=rng or random.Random(),
        clock=clock,
        stop_callback=stop_callback,
    )
    loader = ModuleLoader(registry)
    modules = await loader.load_all_modules()
    engine = Engine(context, modules, CommandDispatcher(registry), loader)
    await loader.start(context)
    logging.getLogger(__name__).info(
        "Engine ready: %d commands, prefix %r", len(registry), context.prefix
    )
    return engine
