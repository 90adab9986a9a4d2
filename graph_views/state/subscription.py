"""
Listener Registry

Explicit subscription handles. Whoever subscribes owns the returned
`Subscription` and disposes it; there is no process-wide signal source.
"""

from __future__ import annotations
from typing import Callable, Dict, Generic, TypeVar


T = TypeVar('T')


class Subscription:
    """Handle for one registered listener."""

    def __init__(self, dispose: Callable[[], None]):
        self._dispose = dispose
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def dispose(self) -> None:
        if self._active:
            self._active = False
            self._dispose()


class ListenerRegistry(Generic[T]):
    """Ordered listeners, notified synchronously in subscription order."""

    def __init__(self):
        self._listeners: Dict[int, Callable[[T], None]] = {}
        self._next_key = 0

    def subscribe(self, listener: Callable[[T], None]) -> Subscription:
        key = self._next_key
        self._next_key += 1
        self._listeners[key] = listener
        return Subscription(lambda: self._listeners.pop(key, None))

    def notify(self, payload: T) -> int:
        """Call every listener; returns how many were called."""
        listeners = list(self._listeners.values())
        for listener in listeners:
            listener(payload)
        return len(listeners)

    def clear(self) -> None:
        self._listeners.clear()

    def __len__(self) -> int:
        return len(self._listeners)
