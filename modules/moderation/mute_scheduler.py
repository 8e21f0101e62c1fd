"""Timed announcement-only mode with one persisted schedule per group."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Optional

from transport.base import SendPolicy, Transport
from utils.bot_store import BotStore

UNMUTED_NOTICE = "🔊 Group unmuted."


@dataclass
class MuteSchedule:
    group_id: str
    expires_at: float
    task: Optional[asyncio.Task] = field(default=None, repr=False, compare=False)


class MuteScheduler:
    """Own the ``AnnouncementOnly(until) -> Normal`` transition of every group.

    Scheduling a group that already has a pending unmute replaces the old
    timer. Schedules are mirrored in the store so :meth:`reconcile` can
    restore them after a restart.
    """

    def __init__(
        self,
        store: BotStore,
        transport: Transport,
        *,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self._transport = transport
        self._clock = clock
        self._sleep = sleep
        self._schedules: Dict[str, MuteSchedule] = {}
        self._logger = logging.getLogger(__name__)

    def pending(self, group_id: str) -> Optional[MuteSchedule]:
        return self._schedules.get(group_id)

    def pending_groups(self) -> list[str]:
        return list(self._schedules)

    def schedule(self, group_id: str, expires_at: float) -> MuteSchedule:
        replaced = self.cancel(group_id, persist=False)
        if replaced:
            self._logger.info("Replacing pending unmute for %s", group_id)
        if not self._store.set_mute(group_id, expires_at):
            self._logger.warning(
                "Mute for %s is only kept in memory until the next successful save",
                group_id,
            )
        schedule = MuteSchedule(group_id=group_id, expires_at=expires_at)
        schedule.task = asyncio.create_task(
            self._run(schedule), name=f"unmute:{group_id}"
        )
        self._schedules[group_id] = schedule
        self._logger.info(
            "Scheduled unmute for %s in %.0f seconds",
            group_id,
            max(0.0, expires_at - self._clock()),
        )
        return schedule

    def cancel(self, group_id: str, *, persist: bool = True) -> bool:
        """Drop the pending unmute for ``group_id``; ``True`` if one existed."""

        schedule = self._schedules.pop(group_id, None)
        if schedule is not None and schedule.task is not None:
            if schedule.task is not asyncio.current_task():
                schedule.task.cancel()
        if persist:
            self._store.clear_mute(group_id)
        return schedule is not None

    async def _run(self, schedule: MuteSchedule) -> None:
        delay = schedule.expires_at - self._clock()
        if delay > 0:
            await self._sleep(delay)
        if self._schedules.get(schedule.group_id) is not schedule:
            return
        await self.fire(schedule.group_id)

    async def fire(self, group_id: str) -> bool:
        """Restore open sending and announce it; failures are logged, never retried."""

        self.cancel(group_id)
        try:
            await self._transport.update_group_send_policy(group_id, SendPolicy.OPEN)
            await self._transport.send_text(group_id, UNMUTED_NOTICE)
        except Exception:
            self._logger.exception(
                "Failed to unmute %s; the group stays admins-only until fixed manually",
                group_id,
            )
            return False
        self._logger.info("Group %s unmuted", group_id)
        return True

    async def reconcile(self) -> None:
        """Replay mutes persisted by a previous run."""

        now = self._clock()
        for group_id, expires_at in self._store.mutes().items():
            if expires_at <= now:
                self._logger.info("Mute for %s expired while offline; unmuting", group_id)
                await self.fire(group_id)
            else:
                self.schedule(group_id, expires_at)

    async def shutdown(self) -> None:
        """Stop the timers without forgetting the persisted schedules."""

        tasks = [s.task for s in self._schedules.values() if s.task is not None]
        self._schedules.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
