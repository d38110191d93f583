"""Minimal event source that hosts use to announce editor events."""

import logging
from typing import Any, Callable, Dict, List, Self

logger = logging.getLogger(__name__)

FILE_OPENED = "file-opened"


class EventSource:
    """Registry of callbacks keyed by event name."""

    def __init__(self: Self) -> None:
        self._subscribers: Dict[str, List[Callable[..., Any]]] = {}

    def subscribe(self: Self, event: str, callback: Callable[..., Any]) -> None:
        """Register ``callback`` for ``event``. Registering twice is a no-op."""
        callbacks = self._subscribers.setdefault(event, [])
        if callback not in callbacks:
            callbacks.append(callback)

    def unsubscribe(self: Self, event: str, callback: Callable[..., Any]) -> None:
        """Remove ``callback`` from ``event`` if it is registered."""
        callbacks = self._subscribers.get(event, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def subscribers(self: Self, event: str) -> List[Callable[..., Any]]:
        return list(self._subscribers.get(event, []))

    def emit(self: Self, event: str, *args: Any) -> None:
        """Call every subscriber of ``event`` in registration order."""
        for callback in self.subscribers(event):
            logger.debug("Dispatching %s to %r", event, callback)
            callback(*args)
