import logging
from abc import ABC
from typing import TYPE_CHECKING

from bot_core.commands import CommandRegistry
from transport.base import InboundMessage, ParticipantsAdded

if TYPE_CHECKING:
    from bot_core.context import EngineContext


class Module(ABC):
    """
    Base class for feature modules.

    Subclasses add their commands to the registry in ``register`` and may hook
    inbound traffic through ``on_message`` and ``on_participants_added``.
    Hooks run for every event, before command dispatch, and never consume it.
    """

    def __init__(self, name: str, priority: int = 100):
        self.name: str = name
        self.priority: int = priority
        self.enabled: bool = True
        logging.debug("Initialised module base '%s' with priority %s", name, priority)

    async def register(self, registry: CommandRegistry):
        """Add command specs to the registry. Override in subclasses as needed."""
        logging.debug("Module '%s' register() not overridden; skipping", self.name)
        return None

    async def on_startup(self, context: "EngineContext"):
        """Called once every module has registered its commands."""
        return None

    async def on_shutdown(self):
        """Called on application shutdown if needed."""
        return None

    async def on_message(self, context: "EngineContext", message: InboundMessage):
        """Inspect every inbound message, prefixed or not."""
        return None

    async def on_participants_added(self, context: "EngineContext", event: ParticipantsAdded):
        return None

    def enable(self):
        """Enable the module"""
        logging.debug("Module '%s' enabled", self.name)
        self.enabled = True

    def disable(self):
        """Disable the module"""
        logging.debug("Module '%s' disabled", self.name)
        self.enabled = False
