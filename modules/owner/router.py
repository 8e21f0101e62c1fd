"""Bot management commands reserved for the configured owner."""

from __future__ import annotations

import asyncio
import logging

from bot_core.commands import (
    CATEGORY_OWNER,
    Authority,
    CommandRegistry,
    CommandSpec,
    Invocation,
)
from bot_core.context import EngineContext
from modules.base import Module

EXIT_SHUTDOWN = 0
# A supervisor (systemd, docker restart policy) is expected to start us again.
EXIT_RESTART = 1

BROADCAST_DELAY_SECONDS = 0.3


class OwnerModule(Module):
    def __init__(self, broadcast_delay: float = BROADCAST_DELAY_SECONDS) -> None:
        super().__init__("owner", priority=40)
        self.broadcast_delay = broadcast_delay
        self._logger = logging.getLogger(__name__)

    async def register(self, registry: CommandRegistry) -> None:  # type: ignore[override]
        owner = dict(authority=Authority.OWNER, category=CATEGORY_OWNER)
        registry.add(
            CommandSpec(
                name="shutdown",
                handler=self.handle_shutdown,
                summary="Stop the bot",
                **owner,
            )
        )
        registry.add(
            CommandSpec(
                name="restart",
                handler=self.handle_restart,
                summary="Restart the bot",
                **owner,
            )
        )
        registry.add(
            CommandSpec(
                name="broadcast",
                handler=self.handle_broadcast,
                args_required=True,
                usage="{prefix}broadcast <message>",
                summary="Broadcast to all groups",
                **owner,
            )
        )
        registry.add(
            CommandSpec(
                name="setprefix",
                handler=self.handle_set_prefix,
                args_required=True,
                usage="{prefix}setprefix <symbol>",
                summary="Change command prefix",
                **owner,
            )
        )

    async def handle_shutdown(self, ctx: EngineContext, inv: Invocation) -> None:
        await ctx.reply(inv.message, "🛑 Shutting down.")
        ctx.request_stop(EXIT_SHUTDOWN)

    async def handle_restart(self, ctx: EngineContext, inv: Invocation) -> None:
        await ctx.reply(inv.message, "♻️ Restarting...")
        ctx.request_stop(EXIT_RESTART)

    async def handle_broadcast(self, ctx: EngineContext, inv: Invocation) -> None:
        groups = set(await ctx.transport.list_groups())
        groups.update(ctx.store.to_dict()["groups"])
        delivered = 0
        for index, group in enumerate(sorted(groups)):
            if index and self.broadcast_delay:
                await asyncio.sleep(self.broadcast_delay)
            try:
                await ctx.send(group, f"📢 *Broadcast:*\n{inv.args}")
            except Exception:
                self._logger.exception("Broadcast to %s failed", group)
                continue
            delivered += 1
        await ctx.reply(inv.message, f"✅ Broadcast sent to {delivered} group(s).")

    async def handle_set_prefix(self, ctx: EngineContext, inv: Invocation) -> None:
        new_prefix = inv.args.split()[0]
        if not ctx.store.set_prefix(new_prefix):
            self._logger.warning("Prefix %r is active but was not persisted", new_prefix)
        await ctx.reply(inv.message, f"✅ Prefix set to: {new_prefix}")


module = OwnerModule()
priority = module.priority
