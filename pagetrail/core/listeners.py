"""ListenerSet - synchronous publish/subscribe for store notifications."""

import logging
from typing import Callable, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[T], None]


class ListenerSet(Generic[T]):
    """Ordered set of listeners notified synchronously.

    Listeners run in registration order. A listener that raises is logged and
    skipped; the remaining listeners still receive the value.

    Usage:
        changes = ListenerSet("state")

        @changes.on
        def render(state):
            ...

        unsubscribe = changes.add(other_listener)
        changes.emit(new_state)
        unsubscribe()
    """

    def __init__(self, name: str = "listeners"):
        self._name = name
        self._listeners: List[Listener] = []

    def __len__(self) -> int:
        return len(self._listeners)

    def __contains__(self, listener: Listener) -> bool:
        return listener in self._listeners

    def add(self, listener: Listener) -> Callable[[], bool]:
        """Register a listener.

        Adding the same listener twice has no effect.

        Returns:
            A callable that removes the listener again.
        """
        if listener not in self._listeners:
            self._listeners.append(listener)
        return lambda: self.remove(listener)

    def on(self, listener: Optional[Listener] = None) -> Callable:
        """Decorator form of :meth:`add`."""
        def decorator(fn: Listener) -> Listener:
            self.add(fn)
            return fn

        if listener is not None:
            return decorator(listener)
        return decorator

    def remove(self, listener: Listener) -> bool:
        """Remove a listener.

        Returns:
            True if the listener was found and removed.
        """
        if listener in self._listeners:
            self._listeners.remove(listener)
            return True
        return False

    def clear(self) -> None:
        self._listeners.clear()

    def emit(self, value: T) -> int:
        """Deliver ``value`` to every listener.

        Returns:
            Number of listeners that raised.
        """
        failures = 0
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception:
                failures += 1
                logger.exception("Error in %s listener %r", self._name, listener)
        return failures
