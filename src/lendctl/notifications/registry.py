"""Handler registry — notification type -> set of handler callables.

Backed by a pluggy plugin manager: each attached callable is wrapped in a
one-hook adapter plugin, and installed packages can contribute handler
plugins through the ``lendctl.handlers`` entry-point group.

Writes (attach/detach/reset) are expected at startup and in test setup;
reads happen on every dispatch. A lock serializes writes and reads take
a snapshot, so a dispatch never observes a half-applied registration.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

import pluggy

from lendctl.domain.events import NotificationType, hook_name
from lendctl.notifications.hookspecs import PROJECT_NAME, NotificationHookSpec, hookimpl

ENTRY_POINT_GROUP = "lendctl.handlers"

Handler = Callable[[Any], None]

logger = logging.getLogger(__name__)


class _HandlerPlugin:
    """Adapter exposing one plain callable as a pluggy hook implementation."""

    def __init__(self, hook: str, handler: Handler) -> None:
        def _impl(payload: Any) -> None:
            handler(payload)

        setattr(self, hook, hookimpl(_impl))


def handler_label(handler: Handler) -> str:
    """Stable, readable name for *handler* (``module.qualname``)."""
    module = getattr(handler, "__module__", None) or "unknown"
    qualname = getattr(handler, "__qualname__", None) or type(handler).__qualname__
    return f"{module}.{qualname}"


class HandlerRegistry:
    """Registration map from notification type to handlers."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(NotificationHookSpec)
        self._attached: dict[tuple[str, Handler], tuple[str, _HandlerPlugin]] = {}
        self._lock = threading.Lock()

    def attach(self, notification_type: str, handler: Handler) -> str:
        """Register *handler* for *notification_type*. Returns its registered name.

        Attaching the same handler twice for the same type is a no-op.
        """
        ntype = NotificationType(notification_type)
        key = (ntype.value, handler)
        with self._lock:
            existing = self._attached.get(key)
            if existing is not None:
                return existing[0]

            hook = hook_name(ntype)
            base = f"{ntype.value}:{handler_label(handler)}"
            name = base
            suffix = 2
            while self._pm.has_plugin(name):
                name = f"{base}#{suffix}"
                suffix += 1

            plugin = _HandlerPlugin(hook, handler)
            self._pm.register(plugin, name=name)
            self._attached[key] = (name, plugin)
        logger.debug("Attached handler %s", name)
        return name

    def detach(self, notification_type: str, handler: Handler) -> bool:
        """Unregister *handler* from *notification_type*. Returns True if it was attached."""
        key = (NotificationType(notification_type).value, handler)
        with self._lock:
            entry = self._attached.pop(key, None)
            if entry is None:
                return False
            name, plugin = entry
            self._pm.unregister(plugin)
        logger.debug("Detached handler %s", name)
        return True

    def handlers_for(self, notification_type: str) -> list[tuple[str, Handler]]:
        """Snapshot of ``(name, callable)`` pairs registered for *notification_type*."""
        hook = hook_name(notification_type)
        with self._lock:
            impls = getattr(self._pm.hook, hook).get_hookimpls()
            return [(impl.plugin_name, impl.function) for impl in impls]

    def get_handler(self, notification_type: str, name: str) -> Handler | None:
        """Look up a registered handler by the name recorded in the delivery WAL."""
        for registered, fn in self.handlers_for(notification_type):
            if registered == name:
                return fn
        return None

    def count(self, notification_type: str) -> int:
        return len(self.handlers_for(notification_type))

    def load_entrypoints(self) -> list[str]:
        """Load handler plugins published under the ``lendctl.handlers`` group.

        Returns the names of all registered plugins afterwards.
        """
        with self._lock:
            loaded = self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
            names = [self._pm.get_name(p) or type(p).__name__ for p in self._pm.get_plugins()]
        if loaded:
            logger.debug("Loaded %d handler plugin(s) from entry points", loaded)
        return names

    def reset(self) -> None:
        """Drop every registration (test isolation)."""
        with self._lock:
            for plugin in list(self._pm.get_plugins()):
                self._pm.unregister(plugin)
            self._attached.clear()
