"""Prefix parsing and uniform authority enforcement for text commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from bot_core.commands import Authority, CommandRegistry, Invocation
from bot_core.context import EngineContext
from transport.base import InboundMessage

GROUP_ONLY = "This command works in groups only."
OWNER_NOT_SET = "Owner not set. Set BOT_OWNER env var."
OWNER_ONLY = "Owner only."
BOT_NOT_ADMIN = "I need to be admin."
ADMINS_ONLY = "Admins only."
UNKNOWN_COMMAND = "❓ Unknown command: {prefix}{command}\nTry {prefix}help for available commands."
GENERIC_ERROR = "⚠️ Error while processing command. Please try again later."


@dataclass(frozen=True)
class ParsedCommand:
    name: str
    args: str


def parse_command(text: Optional[str], prefix: str) -> Optional[ParsedCommand]:
    """Split ``<prefix><command> <args>``; ``None`` unless ``text`` starts with ``prefix``."""

    if not text or not prefix or not text.startswith(prefix):
        return None
    body = text[len(prefix):].strip()
    if not body:
        return None
    parts = body.split(maxsplit=1)
    args = parts[1].strip() if len(parts) > 1 else ""
    return ParsedCommand(name=parts[0].lower(), args=args)


class CommandDispatcher:
    """Route parsed commands through the registry and enforce their contracts."""

    def __init__(self, registry: CommandRegistry) -> None:
        self.registry = registry
        self._logger = logging.getLogger(__name__)

    async def dispatch(
        self, ctx: EngineContext, message: InboundMessage, parsed: ParsedCommand
    ) -> None:
        spec = self.registry.resolve(parsed.name)
        if spec is None:
            self._logger.debug("Unknown command '%s' from %s", parsed.name, message.sender)
            await self._reply_safely(
                ctx,
                message,
                UNKNOWN_COMMAND.format(prefix=ctx.prefix, command=parsed.name),
            )
            return

        invocation = Invocation(
            message=message, command=parsed.name, args=parsed.args, spec=spec
        )
        self._logger.info(
            "Command '%s' from %s in %s", spec.name, message.sender, message.chat
        )
        try:
            if not await self._authorize(ctx, invocation):
                return
            if spec.args_required and not parsed.args:
                await ctx.reply(message, spec.render_usage(ctx.prefix))
                return
            await spec.handler(ctx, invocation)
        except Exception:
            self._logger.exception(
                "Command '%s' failed in %s", spec.name, message.chat
            )
            await self._reply_safely(ctx, message, GENERIC_ERROR)

    async def _authorize(self, ctx: EngineContext, invocation: Invocation) -> bool:
        spec = invocation.spec
        message = invocation.message

        if spec.group_only and not message.is_group:
            await ctx.reply(message, GROUP_ONLY)
            return False

        if spec.authority is Authority.OWNER:
            if not ctx.permissions.owner_configured:
                await ctx.reply(message, OWNER_NOT_SET)
                return False
            if not ctx.permissions.is_owner(message.sender):
                self._logger.info(
                    "Rejected owner command '%s' from %s", spec.name, message.sender
                )
                await ctx.reply(message, OWNER_ONLY)
                return False
            return True

        if spec.authority is Authority.GROUP_ADMIN:
            authority = await ctx.permissions.resolve_group_authority(
                message.chat, message.sender
            )
            if spec.requires_bot_admin and not authority.bot_is_admin:
                await ctx.reply(message, BOT_NOT_ADMIN)
                return False
            if not authority.sender_is_admin and not ctx.permissions.is_owner(message.sender):
                self._logger.info(
                    "Rejected admin command '%s' from %s in %s",
                    spec.name,
                    message.sender,
                    message.chat,
                )
                await ctx.reply(message, ADMINS_ONLY)
                return False

        return True

    async def _reply_safely(self, ctx: EngineContext, message: InboundMessage, text: str) -> None:
        try:
            await ctx.reply(message, text)
        except Exception:
            self._logger.exception("Failed to deliver reply to %s", message.chat)
