"""Core bot orchestration logic."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from bot_core.engine import Engine, create_engine
from transport.telegram import TelegramTransport
from utils.config import BotSettings


class GroupGuardBot:
    """Wire the Telegram transport to the engine and own the process exit code."""

    def __init__(self, settings: BotSettings, transport: Optional[TelegramTransport] = None) -> None:
        logging.debug("Initialising GroupGuardBot components")
        self.settings = settings
        self.transport = transport or TelegramTransport(settings.bot_token)
        self.engine: Optional[Engine] = None
        self.exit_code = 0
        self._stop_task: Optional[asyncio.Task] = None

    def _request_stop(self, exit_code: int) -> None:
        self.exit_code = exit_code
        # stop_polling is a coroutine; schedule it so the current handler finishes first
        self._stop_task = asyncio.get_running_loop().create_task(self.transport.stop())

    async def _await_stop_task(self) -> None:
        if self._stop_task is None:
            return
        try:
            await self._stop_task
        except Exception:
            logging.exception("Stopping the transport failed")
        finally:
            self._stop_task = None

    async def start(self) -> int:
        """Connect, build the engine and poll until stopped. Returns the exit code."""

        logging.info("Starting GroupGuard bot...")
        await self.transport.connect()
        self.engine = await create_engine(
            self.settings, self.transport, stop_callback=self._request_stop
        )
        try:
            logging.info("Bot started successfully, entering polling loop")
            await self.transport.run(self.engine)
        finally:
            await self.engine.shutdown()
            await self._await_stop_task()
            await self.transport.close()
        logging.info("Polling stopped (exit code %s)", self.exit_code)
        return self.exit_code
