"""
Signal Channel - In-process named event channel.

Mirrors the event API the tunnel supervisor exposes: ``listen`` registers a
handler for a named event and returns a function that removes it,
``emit`` delivers a payload to every handler of that event in registration
order.
"""

import threading
from typing import Callable, Dict, List, Protocol

from loguru import logger

Handler = Callable[[str], None]
Unlisten = Callable[[], None]


class SignalSource(Protocol):
    """Anything the subscription manager can listen on."""

    def listen(self, event: str, handler: Handler) -> Unlisten:
        """Register ``handler`` for ``event``; return a deregistration function."""
        ...


class EventChannel:
    """Thread-safe named event channel."""

    def __init__(self):
        self._lock = threading.Lock()
        self._handlers: Dict[str, List[Handler]] = {}

    def listen(self, event: str, handler: Handler) -> Unlisten:
        with self._lock:
            self._handlers.setdefault(event, []).append(handler)
        logger.debug(f"[EventChannel] Listener added for '{event}'")

        removed = False

        def unlisten():
            nonlocal removed
            with self._lock:
                if removed:
                    return
                removed = True
                handlers = self._handlers.get(event, [])
                if handler in handlers:
                    handlers.remove(handler)
            logger.debug(f"[EventChannel] Listener removed for '{event}'")

        return unlisten

    def emit(self, event: str, payload: str) -> int:
        """
        Deliver ``payload`` to all handlers of ``event``.

        Returns:
            Number of handlers the payload was delivered to
        """
        with self._lock:
            handlers = list(self._handlers.get(event, []))

        if not handlers:
            logger.debug(f"[EventChannel] No listener for '{event}', dropping {payload!r}")
            return 0

        for handler in handlers:
            handler(payload)
        return len(handlers)

    def listener_count(self, event: str) -> int:
        with self._lock:
            return len(self._handlers.get(event, []))
