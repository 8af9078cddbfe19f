"""Discovery of forum event listeners.

Listeners come from packages exposing the ``forumkit.plugins`` entry point
group and from ``*.py`` files dropped into a data root's
``.forumkit/plugins/``. Either source may provide a class rather than an
instance; classes are instantiated with no arguments. A listener that fails
to load is logged and skipped, so a broken plugin never stops the forum.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from pathlib import Path
from types import ModuleType

import pluggy

from forumkit.plugins.hookspecs import LIVE_UPDATE_HOOKS, ForumkitHookSpec

PROJECT_NAME = "forumkit"
ENTRY_POINT_GROUP = "forumkit.plugins"

# Hooks grouped by the collaborator that consumes them.
CHANNELS: dict[str, tuple[str, ...]] = {
    "publisher": ("process_event",),
    "live_updates": tuple(sorted(LIVE_UPDATE_HOOKS)),
    "subscriber_mail": ("notify_subscriber",),
}

logger = logging.getLogger(__name__)


class PluginManager:
    """Registry of event listeners, keyed by the hooks they implement."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(ForumkitHookSpec)

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._pm.hook

    def discover_and_load(self, *, local_dir: Path | None = None) -> list[str]:
        """Load installed and local listeners. Returns every registered name."""
        self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        for plugin in list(self._pm.get_plugins()):
            if inspect.isclass(plugin):
                name = self._pm.get_name(plugin) or plugin.__name__
                self._pm.unregister(plugin)
                self._register_class(plugin, name)

        if local_dir is not None and local_dir.is_dir():
            for path in sorted(local_dir.glob("*.py")):
                if not path.name.startswith("_"):
                    self._load_file(path)
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        resolved = name or plugin.__class__.__name__
        self._pm.register(plugin, name=resolved)
        logger.debug("Registered plugin: %s", resolved)

    def list_plugin_names(self) -> list[str]:
        return [self._pm.get_name(p) or p.__class__.__name__ for p in self._pm.get_plugins()]

    def listeners(self, hook_name: str) -> list[str]:
        """Names of the plugins implementing *hook_name*."""
        caller = getattr(self._pm.hook, hook_name, None)
        if caller is None:
            return []
        return [impl.plugin_name for impl in caller.get_hookimpls()]

    def channel_summary(self) -> dict[str, list[str]]:
        """Listener names per channel, e.g. ``{"publisher": ["feed-builtin"], ...}``."""
        return {
            channel: sorted({name for hook in hooks for name in self.listeners(hook)})
            for channel, hooks in CHANNELS.items()
        }

    def _register_class(self, cls: type, name: str) -> None:
        try:
            instance = cls()
        except Exception:
            logger.warning("Failed to instantiate plugin %s", name, exc_info=True)
            return
        self.register_plugin(instance, name=name)

    def _load_file(self, path: Path) -> None:
        module_name = f"forumkit_local_plugin_{path.stem}"
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            logger.warning("Not a loadable plugin file: %s", path)
            return
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception:
            logger.warning("Failed to load local plugin %s", path, exc_info=True)
            sys.modules.pop(module_name, None)
            return
        for cls in _listener_classes(module):
            self._register_class(cls, f"{module_name}.{cls.__name__}")


def _listener_classes(module: ModuleType) -> list[type]:
    """Classes defined in *module* with at least one ``@hookimpl`` method."""
    return [
        obj
        for _, obj in inspect.getmembers(module, inspect.isclass)
        if obj.__module__ == module.__name__ and _implements_hooks(obj)
    ]


def _implements_hooks(cls: type) -> bool:
    marker = f"{PROJECT_NAME}_impl"
    return any(
        getattr(getattr(cls, name, None), marker, None)
        for name in dir(cls)
        if not name.startswith("_")
    )
