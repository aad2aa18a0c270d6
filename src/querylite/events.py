"""Registry for environment signals that trigger refetches.

The host environment (a UI binding, a desktop shell, a network monitor)
reports window focus and reconnect events by calling ``emit_focus`` and
``emit_online``. Each cache key holds at most one pair of listeners;
registering again under the same key replaces the previous pair.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Listeners:
    """Callbacks for one cache key. ``None`` means not subscribed."""

    focus: Callable[[], object] | None = None
    online: Callable[[], object] | None = None


class EventRegistry:
    """Focus/reconnect listeners keyed by cache key."""

    def __init__(self) -> None:
        self._listeners: dict[str, Listeners] = {}

    def register(self, key: str, listeners: Listeners) -> Callable[[], None]:
        """Install listeners for key, replacing any existing pair.

        Returns a callable that removes these listeners. It does nothing once
        they have been replaced by a later registration.
        """
        if key in self._listeners:
            logger.debug("Replacing listeners for %s", key)
        self._listeners[key] = listeners

        def unregister() -> None:
            if self._listeners.get(key) is listeners:
                del self._listeners[key]

        return unregister

    def get(self, key: str) -> Listeners | None:
        return self._listeners.get(key)

    def emit_focus(self, *, visible: bool = True) -> None:
        """Window regained focus. Ignored unless the window is visible."""
        if not visible:
            return
        for listeners in list(self._listeners.values()):
            if listeners.focus is not None:
                listeners.focus()

    def emit_online(self) -> None:
        """Network connectivity came back."""
        for listeners in list(self._listeners.values()):
            if listeners.online is not None:
                listeners.online()

    def __contains__(self, key: object) -> bool:
        return key in self._listeners

    def __len__(self) -> int:
        return len(self._listeners)
