"""Caller authority checks backed by transport group metadata."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from transport.base import GroupMetadata, Transport

ADMIN_ROLES = frozenset({"admin", "superadmin"})


@dataclass(frozen=True)
class GroupAuthority:
    bot_is_admin: bool = False
    sender_is_admin: bool = False


class PermissionResolver:
    """Resolve owner and group-admin status; every failure resolves to "no"."""

    def __init__(self, transport: Transport, owner_id: str = "") -> None:
        self._transport = transport
        self._owner = transport.scheme.normalize(owner_id) if owner_id else ""
        self._logger = logging.getLogger(__name__)

    @property
    def owner_configured(self) -> bool:
        return bool(self._owner)

    def is_owner(self, sender: Optional[str]) -> bool:
        if not self._owner or not sender:
            return False
        return self._transport.scheme.normalize(sender) == self._owner

    async def fetch_metadata(self, group: str) -> Optional[GroupMetadata]:
        try:
            return await self._transport.fetch_group_metadata(group)
        except Exception:
            self._logger.exception("Error fetching group metadata for %s", group)
            return None

    def is_admin_in(self, metadata: GroupMetadata, user: Optional[str]) -> bool:
        if not user:
            return False
        scheme = self._transport.scheme
        target = scheme.normalize(user)
        for participant in metadata.participants:
            if scheme.normalize(participant.id) == target:
                return (participant.role or "").lower() in ADMIN_ROLES
        return False

    async def resolve_group_authority(self, group: str, sender: str) -> GroupAuthority:
        metadata = await self.fetch_metadata(group)
        if metadata is None:
            return GroupAuthority()
        authority = GroupAuthority(
            bot_is_admin=self.is_admin_in(metadata, self._transport.self_id),
            sender_is_admin=self.is_admin_in(metadata, sender),
        )
        self._logger.debug(
            "Authority in %s for %s: bot_admin=%s sender_admin=%s",
            group,
            sender,
            authority.bot_is_admin,
            authority.sender_is_admin,
        )
        return authority

    async def is_group_admin(self, group: str, user: str) -> bool:
        authority = await self.resolve_group_authority(group, user)
        return authority.sender_is_admin
