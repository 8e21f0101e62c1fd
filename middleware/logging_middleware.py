"""Inbound update logging for the Telegram transport."""

from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.dispatcher.event.bases import SkipHandler
from aiogram.types import Message, TelegramObject


class LoggingMiddleware(BaseMiddleware):
    """Log incoming messages and how long the engine took to process them."""

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        logger = logging.getLogger("middleware.logging")
        extra: Dict[str, Any] = {"update_type": type(event).__name__}
        if isinstance(event, Message):
            extra.update(
                chat_id=getattr(event.chat, "id", None),
                chat_type=getattr(event.chat, "type", None),
                user_id=getattr(event.from_user, "id", None),
                has_text=bool(event.text or event.caption),
                new_members=len(event.new_chat_members or ()),
            )
            logger.debug("incoming message", extra=extra)

        started = time.perf_counter()
        try:
            return await handler(event, data)
        except SkipHandler:
            raise
        except Exception:
            logger.exception("update processing raised", extra=extra)
            raise
        finally:
            extra["elapsed_ms"] = round((time.perf_counter() - started) * 1000, 1)
            logger.debug("update processed", extra=extra)
