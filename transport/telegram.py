"""Telegram transport built on aiogram."""

from __future__ import annotations

import html
import logging
import re
from collections import defaultdict
from typing import Dict, Iterable, Optional, Sequence, Set

from aiogram import Bot, Dispatcher, Router
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ChatMemberStatus, ChatType, ParseMode
from aiogram.exceptions import TelegramAPIError
from aiogram.types import BufferedInputFile, ChatPermissions, Message, ReplyParameters

from middleware.logging_middleware import LoggingMiddleware
from transport.base import (
    EventSink,
    GroupMetadata,
    GroupParticipant,
    InboundMessage,
    MediaRef,
    MessageRef,
    ParticipantAction,
    ParticipantsAdded,
    QuotedContext,
    SendPolicy,
    TransportError,
)
from utils.identity import AddressScheme

TELEGRAM_SCHEME = AddressScheme(user_server="tg", group_server="tg.group")

_GROUP_CHAT_TYPES = {ChatType.GROUP.value, ChatType.SUPERGROUP.value}
_BOLD_PATTERN = re.compile(r"\*([^*\n]+)\*")

_ROLE_BY_STATUS = {
    ChatMemberStatus.CREATOR.value: "superadmin",
    ChatMemberStatus.ADMINISTRATOR.value: "admin",
}

_OPEN_PERMISSIONS = ChatPermissions(
    can_send_messages=True,
    can_send_audios=True,
    can_send_documents=True,
    can_send_photos=True,
    can_send_videos=True,
    can_send_video_notes=True,
    can_send_voice_notes=True,
    can_send_polls=True,
    can_send_other_messages=True,
    can_add_web_page_previews=True,
)
_ADMINS_ONLY_PERMISSIONS = ChatPermissions(
    can_send_messages=False,
    can_send_audios=False,
    can_send_documents=False,
    can_send_photos=False,
    can_send_videos=False,
    can_send_video_notes=False,
    can_send_voice_notes=False,
    can_send_polls=False,
    can_send_other_messages=False,
    can_add_web_page_previews=False,
)
_PROMOTE_RIGHTS = dict(
    can_manage_chat=True,
    can_delete_messages=True,
    can_restrict_members=True,
    can_invite_users=True,
    can_pin_messages=True,
)


def _reply_to(quoted: Optional[MessageRef]) -> Optional[ReplyParameters]:
    if quoted is None:
        return None
    return ReplyParameters(message_id=int(quoted.id), allow_sending_without_reply=True)


def _is_group_type(chat_type) -> bool:
    return str(getattr(chat_type, "value", chat_type)) in _GROUP_CHAT_TYPES


def _status_of(member) -> str:
    status = getattr(member, "status", None)
    return str(getattr(status, "value", status) or "member")


def render_html(text: str, mentions: Iterable[str], scheme: AddressScheme) -> str:
    """Escape ``text`` and turn ``*bold*`` and ``@<id>`` mentions into HTML."""

    rendered = _BOLD_PATTERN.sub(r"<b>\1</b>", html.escape(text, quote=False))
    for user in dict.fromkeys(mentions):
        local = scheme.local_part(user)
        rendered = re.sub(
            rf"@{re.escape(local)}(?!\d)",
            f'<a href="tg://user?id={local}">@{local}</a>',
            rendered,
        )
    return rendered


class TelegramTransport:
    """Adapt aiogram's Bot API calls and updates to the engine's transport interface."""

    scheme = TELEGRAM_SCHEME

    def __init__(self, token: str) -> None:
        self.bot = Bot(token=token, default=DefaultBotProperties(parse_mode=ParseMode.HTML))
        self.dispatcher = Dispatcher()
        self.router = Router(name="transport")
        self.self_id = ""
        self._sink: Optional[EventSink] = None
        self._known_groups: Set[str] = set()
        self._seen_members: Dict[str, Set[str]] = defaultdict(set)
        self._usernames: Dict[str, str] = {}
        self._logger = logging.getLogger(__name__)

        self.router.message.register(self._handle_message)
        self.dispatcher.message.middleware(LoggingMiddleware())
        self.dispatcher.include_router(self.router)

    # Identifiers

    def chat_address(self, chat_id: int, chat_type: Optional[str]) -> str:
        if _is_group_type(chat_type):
            return self.scheme.group(chat_id)
        return self.scheme.user(chat_id)

    def _chat_id(self, address: str) -> int:
        try:
            return int(self.scheme.local_part(address))
        except ValueError as exc:
            raise TransportError(f"Not a Telegram address: {address}") from exc

    # Lifecycle

    async def connect(self) -> None:
        me = await self.bot.me()
        self.self_id = self.scheme.user(me.id)
        self._logger.info("Connected to Telegram as @%s (%s)", me.username, self.self_id)

    async def run(self, sink: EventSink) -> None:
        self._sink = sink
        await self.dispatcher.start_polling(self.bot, handle_signals=False)

    async def stop(self) -> None:
        try:
            await self.dispatcher.stop_polling()
        except RuntimeError:
            self._logger.debug("Polling was not running")

    async def close(self) -> None:
        await self.bot.session.close()

    # Inbound

    def _remember(self, user) -> str:
        """Return the address of an aiogram ``User`` and index its username."""
        address = self.scheme.user(user.id)
        if getattr(user, "username", None):
            self._usernames[user.username.lower()] = address
        return address

    def resolve_username(self, username: str) -> Optional[str]:
        return self._usernames.get(username.lstrip("@").lower())

    def _entity_mentions(self, message: Message) -> list[str]:
        text = message.text or message.caption or ""
        mentions = []
        for entity in message.entities or message.caption_entities or []:
            if entity.type == "text_mention" and entity.user is not None:
                mentions.append(self._remember(entity.user))
            elif entity.type == "mention":
                # Bots only learn usernames from users they have already seen
                user = self.resolve_username(entity.extract_from(text))
                if user is None:
                    self._logger.debug("Unknown username in %r", text)
                else:
                    mentions.append(user)
        return mentions

    def to_inbound(self, message: Message) -> InboundMessage:
        chat = self.chat_address(message.chat.id, message.chat.type)
        if message.from_user is not None:
            sender = self._remember(message.from_user)
        else:
            sender = self.scheme.user(message.chat.id)
        is_group = _is_group_type(message.chat.type)
        if is_group:
            self._known_groups.add(chat)
            self._seen_members[chat].add(sender)

        quoted = None
        reply = message.reply_to_message
        if reply is not None:
            quoted = QuotedContext(
                ref=MessageRef(chat=chat, id=str(reply.message_id)),
                author=self._remember(reply.from_user) if reply.from_user else None,
                media=self._media_of(reply),
            )

        mentions = self._entity_mentions(message)
        return InboundMessage(
            chat=chat,
            sender=sender,
            text=message.text or message.caption,
            ref=MessageRef(chat=chat, id=str(message.message_id), from_me=sender == self.self_id),
            is_group=is_group,
            quoted=quoted,
            mentions=mentions,
            media=self._media_of(message),
        )

    @staticmethod
    def _media_of(message: Message) -> Optional[MediaRef]:
        if message.photo:
            return MediaRef(kind="image", ref=message.photo[-1].file_id)
        if message.sticker is not None:
            return MediaRef(kind="sticker", ref=message.sticker.file_id)
        document = message.document
        if document is not None and (document.mime_type or "").startswith("image/"):
            return MediaRef(kind="image", ref=document.file_id)
        return None

    async def _handle_message(self, message: Message) -> None:
        if self._sink is None:
            return
        if message.new_chat_members:
            group = self.chat_address(message.chat.id, message.chat.type)
            added = tuple(self._remember(member) for member in message.new_chat_members)
            self._known_groups.add(group)
            self._seen_members[group].update(added)
            await self._sink.on_participants_added(ParticipantsAdded(group=group, participants=added))
            return
        await self._sink.on_message(self.to_inbound(message))

    # Outbound

    async def send_text(
        self,
        target: str,
        text: str,
        *,
        quoted: Optional[MessageRef] = None,
        mentions: Iterable[str] = (),
    ) -> Optional[MessageRef]:
        sent = await self.bot.send_message(
            chat_id=self._chat_id(target),
            text=render_html(text, mentions, self.scheme),
            reply_parameters=_reply_to(quoted),
        )
        return MessageRef(chat=target, id=str(sent.message_id), from_me=True)

    async def send_media(
        self,
        target: str,
        data: bytes,
        kind: str,
        *,
        caption: Optional[str] = None,
        quoted: Optional[MessageRef] = None,
    ) -> Optional[MessageRef]:
        chat_id = self._chat_id(target)
        reply_to = _reply_to(quoted)
        if kind == "sticker":
            sent = await self.bot.send_sticker(
                chat_id=chat_id,
                sticker=BufferedInputFile(data, filename="sticker.webp"),
                reply_parameters=reply_to,
            )
        elif kind == "image":
            sent = await self.bot.send_photo(
                chat_id=chat_id,
                photo=BufferedInputFile(data, filename="image.png"),
                caption=html.escape(caption, quote=False) if caption else None,
                reply_parameters=reply_to,
            )
        else:
            raise TransportError(f"Unsupported media kind: {kind}")
        return MessageRef(chat=target, id=str(sent.message_id), from_me=True)

    async def send_poll(
        self,
        target: str,
        question: str,
        options: Sequence[str],
        *,
        quoted: Optional[MessageRef] = None,
    ) -> Optional[MessageRef]:
        sent = await self.bot.send_poll(
            chat_id=self._chat_id(target),
            question=question,
            options=list(options),
            is_anonymous=False,
            reply_parameters=_reply_to(quoted),
        )
        return MessageRef(chat=target, id=str(sent.message_id), from_me=True)

    async def delete_message(self, ref: MessageRef) -> None:
        await self.bot.delete_message(chat_id=self._chat_id(ref.chat), message_id=int(ref.id))

    async def update_group_participants(
        self, group: str, ids: Sequence[str], action: ParticipantAction
    ) -> None:
        chat_id = self._chat_id(group)
        for user in ids:
            user_id = self._chat_id(user)
            if action is ParticipantAction.REMOVE:
                # Kick = ban then immediately unban
                await self.bot.ban_chat_member(chat_id=chat_id, user_id=user_id)
                await self.bot.unban_chat_member(chat_id=chat_id, user_id=user_id)
                self._seen_members[group].discard(self.scheme.normalize(user))
            elif action is ParticipantAction.PROMOTE:
                await self.bot.promote_chat_member(chat_id=chat_id, user_id=user_id, **_PROMOTE_RIGHTS)
            elif action is ParticipantAction.DEMOTE:
                await self.bot.promote_chat_member(
                    chat_id=chat_id,
                    user_id=user_id,
                    **{right: False for right in _PROMOTE_RIGHTS},
                )
            else:
                raise TransportError("Telegram bots cannot add members to a chat")

    async def update_group_send_policy(self, group: str, policy: SendPolicy) -> None:
        permissions = (
            _OPEN_PERMISSIONS if policy is SendPolicy.OPEN else _ADMINS_ONLY_PERMISSIONS
        )
        await self.bot.set_chat_permissions(chat_id=self._chat_id(group), permissions=permissions)

    async def fetch_group_metadata(self, group: str) -> GroupMetadata:
        """Administrators from the Bot API plus members seen in the chat.

        Telegram does not expose the full member list to bots.
        """
        chat_id = self._chat_id(group)
        try:
            chat = await self.bot.get_chat(chat_id)
            administrators = await self.bot.get_chat_administrators(chat_id)
        except TelegramAPIError as exc:
            raise TransportError(f"Cannot fetch metadata for {group}: {exc}") from exc

        participants = {}
        for member in administrators:
            user = self._remember(member.user)
            participants[user] = GroupParticipant(id=user, role=_ROLE_BY_STATUS.get(_status_of(member)))
        for user in sorted(self._seen_members.get(group, ())):
            participants.setdefault(user, GroupParticipant(id=user))
        return GroupMetadata(
            id=group,
            subject=chat.title or "",
            participants=list(participants.values()),
        )

    async def list_groups(self) -> list[str]:
        return sorted(self._known_groups)

    async def download_media(self, media: MediaRef) -> bytes:
        buffer = await self.bot.download(media.ref)
        if buffer is None:
            raise TransportError(f"Nothing downloaded for {media.kind}")
        return buffer.read()
