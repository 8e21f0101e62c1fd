"""Everyday commands: help, tagging, dice, 8ball, delete and polls."""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

from bot_core.commands import (
    CATEGORY_ADMIN,
    CATEGORY_CONTENT,
    CATEGORY_CORE,
    CATEGORY_OWNER,
    CATEGORY_PLACEHOLDER,
    CommandRegistry,
    CommandSpec,
    Invocation,
)
from bot_core.context import EngineContext
from modules.base import Module

EIGHT_BALL_ANSWERS = (
    "It is certain.",
    "Without a doubt.",
    "You may rely on it.",
    "Most likely.",
    "Outlook good.",
    "Yes.",
    "Reply hazy, try again.",
    "Ask again later.",
    "Better not tell you now.",
    "Don't count on it.",
    "My reply is no.",
    "Very doubtful.",
)

PLACEHOLDER_COMMANDS = (
    "google",
    "wiki",
    "ytmp3",
    "ytmp4",
    "weather",
    "news",
    "tts",
    "qr",
    "readqr",
    "ss",
)

HELP_CATEGORIES = (
    CATEGORY_CORE,
    CATEGORY_ADMIN,
    CATEGORY_CONTENT,
    CATEGORY_OWNER,
)

POLL_PATTERN = re.compile(r'"(.+?)"\s+(.+)', re.DOTALL)
POLL_USAGE = 'Usage: {prefix}poll "Question" option1/option2/option3'


def parse_poll(args: str) -> Optional[Tuple[str, List[str]]]:
    """Return ``(question, options)`` or ``None`` when the quoted question is missing."""
    match = POLL_PATTERN.search(args)
    if not match:
        return None
    question = match.group(1).strip()
    options = [option.strip() for option in match.group(2).split("/")]
    return question, [option for option in options if option]


def build_help(ctx: EngineContext) -> str:
    prefix = ctx.prefix
    grouped = ctx.registry.by_category()
    lines = [f"🧭 *GroupGuard Help* (prefix: {prefix})"]
    for category in HELP_CATEGORIES:
        specs = grouped.get(category)
        if not specs:
            continue
        lines.append("")
        lines.append(f"*{category}*")
        for spec in specs:
            usage = (spec.usage or f"{{prefix}}{spec.name}").format(prefix=prefix)
            names = " | ".join([usage, *(f"{prefix}{alias}" for alias in spec.aliases)])
            lines.append(f"{names} - {spec.summary}" if spec.summary else names)
    placeholders = grouped.get(CATEGORY_PLACEHOLDER)
    if placeholders:
        lines.append("")
        lines.append(f"*{CATEGORY_PLACEHOLDER}*")
        lines.append(", ".join(f"{prefix}{spec.name}" for spec in placeholders))
    return "\n".join(lines)


class CoreModule(Module):
    def __init__(self) -> None:
        super().__init__("core", priority=10)
        self._logger = logging.getLogger(__name__)

    async def register(self, registry: CommandRegistry) -> None:  # type: ignore[override]
        registry.add(
            CommandSpec(
                name="help",
                aliases=("menu",),
                handler=self.handle_help,
                summary="Show this help menu",
            )
        )
        registry.add(
            CommandSpec(
                name="tag",
                aliases=("tagall",),
                handler=self.handle_tag_all,
                group_only=True,
                summary="Mention everyone in the group",
            )
        )
        registry.add(
            CommandSpec(
                name="delete",
                aliases=("del",),
                handler=self.handle_delete,
                summary="Delete replied message",
            )
        )
        registry.add(
            CommandSpec(
                name="roll",
                aliases=("dice",),
                handler=self.handle_roll,
                summary="Roll a dice (1-6)",
            )
        )
        registry.add(
            CommandSpec(
                name="8ball",
                handler=self.handle_eight_ball,
                args_required=True,
                usage="{prefix}8ball <question>",
                missing_args="Ask a question: {prefix}8ball Will I pass?",
                summary="Get a fortune answer",
            )
        )
        registry.add(
            CommandSpec(
                name="poll",
                handler=self.handle_poll,
                args_required=True,
                usage='{prefix}poll "Question" opt1/opt2/opt3',
                missing_args=POLL_USAGE,
                summary="Create a poll",
            )
        )
        for name in PLACEHOLDER_COMMANDS:
            registry.add(
                CommandSpec(
                    name=name,
                    handler=self.handle_placeholder,
                    category=CATEGORY_PLACEHOLDER,
                )
            )

    async def handle_help(self, ctx: EngineContext, inv: Invocation) -> None:
        await ctx.send(inv.message.chat, build_help(ctx))

    async def handle_tag_all(self, ctx: EngineContext, inv: Invocation) -> None:
        metadata = await ctx.permissions.fetch_metadata(inv.message.chat)
        if metadata is None or not metadata.participants:
            await ctx.reply(inv.message, "Couldn't load the member list. Please try again.")
            return
        members = [participant.id for participant in metadata.participants]
        names = " ".join(ctx.mention_label(member) for member in members)
        await ctx.send(inv.message.chat, f"📢 {names}", mentions=members)

    async def handle_delete(self, ctx: EngineContext, inv: Invocation) -> None:
        message = inv.message
        if message.quoted is not None:
            await ctx.transport.delete_message(message.quoted.ref)
            return
        if message.from_me:
            await ctx.transport.delete_message(message.ref)
            return
        await ctx.reply(message, "Nothing to delete (reply to a message).")

    async def handle_roll(self, ctx: EngineContext, inv: Invocation) -> None:
        await ctx.reply(inv.message, f"🎲 {ctx.rng.randint(1, 6)}")

    async def handle_eight_ball(self, ctx: EngineContext, inv: Invocation) -> None:
        await ctx.reply(inv.message, f"🎱 {ctx.rng.choice(EIGHT_BALL_ANSWERS)}")

    async def handle_poll(self, ctx: EngineContext, inv: Invocation) -> None:
        parsed = parse_poll(inv.args)
        if parsed is None:
            await ctx.reply(inv.message, POLL_USAGE.format(prefix=ctx.prefix))
            return
        question, options = parsed
        if len(options) < 2:
            await ctx.reply(
                inv.message,
                "Provide at least 2 options.\n" + POLL_USAGE.format(prefix=ctx.prefix),
            )
            return
        await ctx.transport.send_poll(
            inv.message.chat, question, options, quoted=inv.message.ref
        )

    async def handle_placeholder(self, ctx: EngineContext, inv: Invocation) -> None:
        await ctx.reply(
            inv.message,
            f"🧩 {ctx.prefix}{inv.spec.name} requires additional setup. "
            "This feature is a placeholder for now.",
        )


module = CoreModule()
priority = module.priority
