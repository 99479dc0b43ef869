"""Synchronous publish/subscribe channel for manager events."""
from __future__ import annotations

import logging
from collections.abc import Callable

from producer.protocol.events import ProducerEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[ProducerEvent], None]


class EventBus:
    """Broadcasts each event to every subscriber, in subscription order.

    ``emit`` returns only after all subscribers ran.  A subscriber that
    raises is logged and skipped.
    """

    def __init__(self) -> None:
        self._handlers: list[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """Register ``handler``; the returned callable unsubscribes it."""
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return _unsubscribe

    def emit(self, event: ProducerEvent) -> None:
        logger.debug(f"📣 {event.type}")
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                logger.exception(f"❌ Event subscriber failed on {event.type}")

    def __len__(self) -> int:
        return len(self._handlers)
