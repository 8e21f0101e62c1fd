"""Discovery and lifecycle of feature modules."""

from __future__ import annotations

import importlib
import inspect
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, List, Optional

from bot_core.commands import CommandRegistry
from modules.base import Module

if TYPE_CHECKING:
    from bot_core.context import EngineContext


MODULES_DIR = Path(__file__).resolve().parent.parent / "modules"


class ModuleLoader:
    """
    Import every ``modules/<name>/router.py`` and resolve its module instance from
    - an exported ``module`` variable
    - a ``get_module()`` factory (sync or async)
    - a ``Module`` class
    Modules are registered in priority order (lower number first), which is also
    the order of their message hooks and of the help listing.
    """

    def __init__(
        self,
        registry: CommandRegistry,
        *,
        modules_dir: Path = MODULES_DIR,
        disabled: Iterable[str] = (),
    ) -> None:
        self.registry = registry
        self.modules_dir = modules_dir
        self.disabled = set(disabled)
        self.loaded_modules: List[Module] = []

    async def load_all_modules(self) -> List[Module]:
        candidates = []
        logging.debug("Scanning '%s' for router modules", self.modules_dir)

        for module_path in sorted(self.modules_dir.glob("*/router.py")):
            module_name = module_path.parent.name
            if module_name in self.disabled:
                logging.info("Skipping disabled module '%s'", module_name)
                continue
            module_import_path = f"modules.{module_name}.router"
            try:
                module_spec = importlib.import_module(module_import_path)
            except ImportError:
                logging.exception("Failed to import module '%s'", module_import_path)
                continue

            instance = await self._resolve_module_instance(module_spec)
            if instance is None:
                logging.warning("Module '%s' exposes no module instance", module_name)
                continue
            priority = getattr(instance, "priority", getattr(module_spec, "priority", 100))
            candidates.append((priority, module_name, instance))

        candidates.sort(key=lambda item: (item[0], item[1]))
        logging.debug("Module load order: %s", [name for _, name, _ in candidates])

        for priority, module_name, instance in candidates:
            await self._include_module(module_name, instance, priority)
        return list(self.loaded_modules)

    async def _resolve_module_instance(self, module_spec) -> Optional[Module]:
        if hasattr(module_spec, "module"):
            return getattr(module_spec, "module")

        get_module_fn = getattr(module_spec, "get_module", None)
        if callable(get_module_fn):
            result = get_module_fn()
            if inspect.isawaitable(result):
                result = await result
            return result

        module_class = getattr(module_spec, "Module", None)
        if inspect.isclass(module_class):
            return module_class()
        return None

    async def _include_module(self, module_name: str, instance: Module, priority: int) -> None:
        register = getattr(instance, "register", None)
        if callable(register):
            result = register(self.registry)
            if inspect.isawaitable(result):
                await result
        self.loaded_modules.append(instance)
        logging.info("Module '%s' loaded successfully (priority=%s)", module_name, priority)

    async def start(self, context: "EngineContext") -> None:
        """Call the startup hook of every loaded module."""
        for instance in self.loaded_modules:
            try:
                await instance.on_startup(context)
            except Exception:
                logging.exception("Error in on_startup() for module '%s'", instance.name)

    async def shutdown(self) -> None:
        """Call shutdown hook for all loaded modules."""
        for instance in self.loaded_modules:
            try:
                await instance.on_shutdown()
            except Exception:
                logging.exception("Error during shutdown of module '%s'", instance.name)
