"""Group administration commands and the welcome/antilink protections."""

from __future__ import annotations

import logging
import re
from typing import Optional

from bot_core.commands import (
    CATEGORY_ADMIN,
    Authority,
    CommandRegistry,
    CommandSpec,
    Invocation,
)
from bot_core.context import EngineContext
from modules.base import Module
from modules.moderation.mentions import extract_mentions
from transport.base import InboundMessage, ParticipantAction, ParticipantsAdded, SendPolicy

LINK_PATTERN = re.compile(r"https?://", re.IGNORECASE)
LINK_WARNING = "🚫 Links are not allowed here."

_TRUE_VALUES = {"on", "true", "yes", "enable", "enabled", "1"}
_FALSE_VALUES = {"off", "false", "no", "disable", "disabled", "0"}

_PARTICIPANT_VERBS = {
    ParticipantAction.REMOVE: ("kick", "Removed"),
    ParticipantAction.PROMOTE: ("promote", "Promoted"),
    ParticipantAction.DEMOTE: ("demote", "Demoted"),
}


def parse_toggle(value: str) -> Optional[bool]:
    token = value.strip().split(maxsplit=1)[0].lower() if value.strip() else ""
    if token in _TRUE_VALUES:
        return True
    if token in _FALSE_VALUES:
        return False
    return None


def parse_minutes(value: str) -> int:
    match = re.match(r"\s*(-?\d+)", value or "")
    return int(match.group(1)) if match else 0


class ModerationModule(Module):
    """Kick/promote/demote, toggles, timed mutes and inbound protections."""

    def __init__(self) -> None:
        super().__init__("moderation", priority=20)
        self._logger = logging.getLogger(__name__)

    async def register(self, registry: CommandRegistry) -> None:  # type: ignore[override]
        admin = dict(
            authority=Authority.GROUP_ADMIN,
            group_only=True,
            requires_bot_admin=True,
            category=CATEGORY_ADMIN,
        )
        registry.add(
            CommandSpec(
                name="kick",
                handler=self.handle_kick,
                usage="{prefix}kick @user",
                summary="Remove user from group",
                **admin,
            )
        )
        registry.add(
            CommandSpec(
                name="promote",
                handler=self.handle_promote,
                usage="{prefix}promote @user",
                summary="Make user admin",
                **admin,
            )
        )
        registry.add(
            CommandSpec(
                name="demote",
                handler=self.handle_demote,
                usage="{prefix}demote @user",
                summary="Remove admin privileges",
                **admin,
            )
        )
        registry.add(
            CommandSpec(
                name="welcome",
                handler=self.handle_welcome,
                usage="{prefix}welcome on|off",
                summary="Toggle welcome messages",
                **admin,
            )
        )
        registry.add(
            CommandSpec(
                name="antilink",
                handler=self.handle_antilink,
                usage="{prefix}antilink on|off",
                summary="Toggle link protection",
                **admin,
            )
        )
        registry.add(
            CommandSpec(
                name="mute",
                handler=self.handle_mute,
                usage="{prefix}mute <minutes>",
                summary="Mute group for specified time",
                **admin,
            )
        )
        registry.add(
            CommandSpec(
                name="unmute",
                handler=self.handle_unmute,
                usage="{prefix}unmute",
                summary="Lift a mute before it expires",
                **admin,
            )
        )

    async def on_startup(self, context: EngineContext) -> None:  # type: ignore[override]
        await context.mutes.reconcile()

    # Participant changes

    async def handle_kick(self, ctx: EngineContext, inv: Invocation) -> None:
        await self._update_participants(ctx, inv, ParticipantAction.REMOVE)

    async def handle_promote(self, ctx: EngineContext, inv: Invocation) -> None:
        await self._update_participants(ctx, inv, ParticipantAction.PROMOTE)

    async def handle_demote(self, ctx: EngineContext, inv: Invocation) -> None:
        await self._update_participants(ctx, inv, ParticipantAction.DEMOTE)

    async def _update_participants(
        self, ctx: EngineContext, inv: Invocation, action: ParticipantAction
    ) -> None:
        verb, past = _PARTICIPANT_VERBS[action]
        message = inv.message
        targets = sorted(extract_mentions(message, inv.args, ctx.scheme))
        if not targets:
            await ctx.reply(message, f"Mention users to {verb}.")
            return

        done: list[str] = []
        failed: list[str] = []
        for target in targets:
            try:
                await ctx.transport.update_group_participants(message.chat, [target], action)
            except Exception:
                self._logger.exception("Failed to %s %s in %s", verb, target, message.chat)
                failed.append(target)
            else:
                done.append(target)

        lines = []
        if done:
            lines.append(f"✅ {past}: " + ", ".join(ctx.mention_label(user) for user in done))
        if failed:
            lines.append(
                f"❌ Could not {verb}: " + ", ".join(ctx.mention_label(user) for user in failed)
            )
        await ctx.reply(message, "\n".join(lines), mentions=done + failed)

    # Toggles

    async def handle_welcome(self, ctx: EngineContext, inv: Invocation) -> None:
        enabled = parse_toggle(inv.args)
        if enabled is None:
            await ctx.reply(inv.message, f"Use: {ctx.prefix}welcome on|off")
            return
        with ctx.store.edit_group(inv.message.chat) as config:
            config.welcome_enabled = enabled
        await ctx.reply(inv.message, f"Welcome is now *{'ON' if enabled else 'OFF'}*")

    async def handle_antilink(self, ctx: EngineContext, inv: Invocation) -> None:
        enabled = parse_toggle(inv.args)
        if enabled is None:
            await ctx.reply(inv.message, f"Use: {ctx.prefix}antilink on|off")
            return
        with ctx.store.edit_group(inv.message.chat) as config:
            config.antilink_enabled = enabled
        await ctx.reply(inv.message, f"Antilink is now *{'ON' if enabled else 'OFF'}*")

    # Mutes

    async def handle_mute(self, ctx: EngineContext, inv: Invocation) -> None:
        minutes = parse_minutes(inv.args)
        if minutes <= 0:
            await ctx.reply(inv.message, f"Usage: {ctx.prefix}mute <minutes>")
            return
        group = inv.message.chat
        await ctx.transport.update_group_send_policy(group, SendPolicy.ADMINS_ONLY)
        ctx.mutes.schedule(group, ctx.clock() + minutes * 60)
        await ctx.reply(inv.message, f"🔇 Group muted for {minutes} minute(s).")

    async def handle_unmute(self, ctx: EngineContext, inv: Invocation) -> None:
        if not await ctx.mutes.fire(inv.message.chat):
            await ctx.reply(inv.message, "❌ Failed to unmute the group.")

    # Protections

    async def on_message(self, context: EngineContext, message: InboundMessage) -> None:  # type: ignore[override]
        if not message.is_group or not message.text or message.from_me:
            return
        if not context.store.group(message.chat).antilink_enabled:
            return
        if not LINK_PATTERN.search(message.text):
            return
        if await context.permissions.is_group_admin(message.chat, message.sender):
            return

        self._logger.info("Removing link from %s in %s", message.sender, message.chat)
        try:
            await context.transport.delete_message(message.ref)
            await context.send(message.chat, LINK_WARNING)
        except Exception:
            self._logger.exception("Error handling link protection in %s", message.chat)

    async def on_participants_added(self, context: EngineContext, event: ParticipantsAdded) -> None:  # type: ignore[override]
        if not event.participants or not context.store.group(event.group).welcome_enabled:
            return
        names = ", ".join(context.mention_label(user) for user in event.participants)
        await context.send(
            event.group, f"👋 Welcome {names}!", mentions=event.participants
        )


module = ModerationModule()
priority = module.priority
