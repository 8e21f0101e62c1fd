"""Random quotes, jokes and facts, plus owner-only additions."""

from __future__ import annotations

import logging

from bot_core.commands import (
    CATEGORY_CONTENT,
    Authority,
    CommandRegistry,
    CommandSpec,
    Invocation,
)
from bot_core.context import EngineContext
from modules.base import Module
from modules.content.registry import ContentList


class ContentModule(Module):
    def __init__(self) -> None:
        super().__init__("content", priority=30)
        self._logger = logging.getLogger(__name__)
        # attribute on the registry, reply emoji, label
        self._kinds = {
            "quote": ("quotes", "💬", "Quote"),
            "joke": ("jokes", "😄", "Joke"),
            "fact": ("facts", "🧠", "Fact"),
        }

    async def register(self, registry: CommandRegistry) -> None:  # type: ignore[override]
        for kind in self._kinds:
            registry.add(
                CommandSpec(
                    name=kind,
                    handler=self.handle_random,
                    usage=f"{{prefix}}{kind}",
                    summary=f"Get a random {kind}",
                )
            )
        for kind in self._kinds:
            registry.add(
                CommandSpec(
                    name=f"add{kind}",
                    handler=self.handle_add,
                    authority=Authority.OWNER,
                    args_required=True,
                    usage=f"{{prefix}}add{kind} <text>",
                    missing_args=f"Usage: {{prefix}}add{kind} <your {kind}>",
                    summary=f"Add a new {kind} (Owner only)",
                    category=CATEGORY_CONTENT,
                )
            )

    def _content(self, ctx: EngineContext, kind: str) -> ContentList:
        return getattr(ctx.content, self._kinds[kind][0])

    async def handle_random(self, ctx: EngineContext, inv: Invocation) -> None:
        kind = inv.spec.name
        emoji = self._kinds[kind][1]
        item = self._content(ctx, kind).pick_random(ctx.rng)
        await ctx.reply(inv.message, f"{emoji} {item}")

    async def handle_add(self, ctx: EngineContext, inv: Invocation) -> None:
        kind = inv.spec.name[len("add"):]
        label = self._kinds[kind][2]
        if self._content(ctx, kind).append(inv.args):
            self._logger.info("%s added by %s", label, inv.message.sender)
            await ctx.reply(inv.message, f"✅ {label} added!")
        else:
            await ctx.reply(inv.message, f"❌ Failed to add {kind}.")


module = ContentModule()
priority = module.priority
