"""Best-effort domain event dispatch.

The RoutingEngine publishes events only after the state change has been
stored. Subscribers (e.g. tracking slip generation) run afterwards, each
inside its own error boundary:

    RoutingEngine (business logic)
        | publish()
    EventBus (this module) <- error boundary per subscriber
        |
    subscribers (slip generator, ...)

A failing subscriber is logged and skipped; it never affects other
subscribers and never propagates back into the operation that published.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List, Type

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


class EventBus:
    """Synchronous publish/subscribe keyed by event class."""

    def __init__(self) -> None:
        self._handlers: DefaultDict[Type[Any], List[Handler]] = defaultdict(list)

    def subscribe(self, event_type: Type[Any], handler: Handler) -> None:
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: Type[Any], handler: Handler) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event: Any) -> int:
        """Deliver event to every subscriber of its type (never raises).

        Returns:
            Number of subscribers that handled the event without error
        """
        delivered = 0
        for handler in list(self._handlers.get(type(event), [])):
            try:
                handler(event)
                delivered += 1
            except Exception:
                # Subscriber failure must NOT interrupt the publishing operation
                logger.exception(
                    "Subscriber %s failed for %s",
                    getattr(handler, "__qualname__", repr(handler)),
                    type(event).__name__,
                )
        return delivered
