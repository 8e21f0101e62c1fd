"""Sticker <-> image conversion of the replied-to media."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from bot_core.commands import CommandRegistry, CommandSpec, Invocation
from bot_core.context import EngineContext
from modules.base import Module
from transport.base import InboundMessage, MediaRef


def find_media(message: InboundMessage, kind: str) -> Optional[MediaRef]:
    """Prefer the quoted message's media, then the message's own attachment."""
    quoted = message.quoted.media if message.quoted is not None else None
    for media in (quoted, message.media):
        if media is not None and media.kind == kind:
            return media
    return None


class MediaModule(Module):
    def __init__(self) -> None:
        super().__init__("media", priority=15)
        self._logger = logging.getLogger(__name__)

    async def register(self, registry: CommandRegistry) -> None:  # type: ignore[override]
        registry.add(
            CommandSpec(
                name="sticker",
                handler=self.handle_sticker,
                usage="{prefix}sticker",
                summary="Convert replied image to sticker",
            )
        )
        registry.add(
            CommandSpec(
                name="toimg",
                handler=self.handle_toimg,
                usage="{prefix}toimg",
                summary="Convert replied sticker to image",
            )
        )

    async def handle_sticker(self, ctx: EngineContext, inv: Invocation) -> None:
        media = find_media(inv.message, "image")
        if media is None:
            await ctx.reply(inv.message, f"Reply to an *image* with {ctx.prefix}sticker")
            return
        try:
            data = await ctx.transport.download_media(media)
            sticker = await asyncio.to_thread(ctx.codec.to_sticker, data)
            await ctx.transport.send_media(
                inv.message.chat, sticker, "sticker", quoted=inv.message.ref
            )
        except Exception:
            self._logger.exception("Sticker creation error in %s", inv.message.chat)
            await ctx.reply(inv.message, "Error creating sticker. Please try again.")

    async def handle_toimg(self, ctx: EngineContext, inv: Invocation) -> None:
        media = find_media(inv.message, "sticker")
        if media is None:
            await ctx.reply(inv.message, f"Reply to a *sticker* with {ctx.prefix}toimg")
            return
        try:
            data = await ctx.transport.download_media(media)
            image = await asyncio.to_thread(ctx.codec.to_image, data)
            await ctx.transport.send_media(
                inv.message.chat,
                image,
                "image",
                caption="Here's your image",
                quoted=inv.message.ref,
            )
        except Exception:
            self._logger.exception("Image conversion error in %s", inv.message.chat)
            await ctx.reply(inv.message, "Error converting sticker to image. Please try again.")


module = MediaModule()
priority = module.priority
