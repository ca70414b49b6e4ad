"""Synchronous publish/subscribe registry used by the socket client."""

import logging
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List

logger = logging.getLogger(__name__)

Callback = Callable[..., Any]

CONNECTED = "connected"
DISCONNECTED = "disconnected"
ERROR = "error"
RECONNECTING = "reconnecting"
RECONNECT_FAILED = "reconnect_failed"
MESSAGE = "message"
COLLABORATION = "collaboration"
NOTIFICATION = "notification"
PRESENCE = "presence"
WORKFLOW = "workflow"
ANALYTICS = "analytics"


class EventRegistry:
    """
    Map of event name to subscriber callbacks.

    Callbacks run synchronously in registration order. A callback that
    raises is logged and skipped; the remaining callbacks still run.
    """

    def __init__(self) -> None:
        self._subscribers: DefaultDict[str, List[Callback]] = defaultdict(list)

    def on(self, event: str, callback: Callback) -> Callable[[], None]:
        """Subscribe to an event and return a function that unsubscribes."""
        self._subscribers[event].append(callback)

        def unsubscribe() -> None:
            self.off(event, callback)

        return unsubscribe

    def off(self, event: str, callback: Callback) -> None:
        callbacks = self._subscribers.get(event)
        if callbacks and callback in callbacks:
            callbacks.remove(callback)

    def emit(self, event: str, *args: Any) -> int:
        """
        Invoke the subscribers of ``event``.

        Returns:
            int: Number of subscribers invoked
        """
        callbacks = list(self._subscribers.get(event, ()))
        for callback in callbacks:
            try:
                callback(*args)
            except Exception:
                logger.exception(f"Subscriber for '{event}' raised")
        return len(callbacks)

    def subscriber_count(self, event: str) -> int:
        return len(self._subscribers.get(event, ()))
