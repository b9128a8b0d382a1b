from __future__ import annotations

from typing import Callable, TypeAlias

import structlog

from crashround.core.events.base import Event

log = structlog.get_logger()

EventHandler: TypeAlias = Callable[[Event], None]


class EventBus:
    """
    Synchronous fan-out of round and session events.

    - handlers for one event_type run inline, in subscription order
    - publish(a, b) delivers a to all of its handlers before b
    - a raising handler stops delivery and propagates to the publisher
    """

    def __init__(self) -> None:
        self._routes: dict[str, list[EventHandler]] = {}

    def subscribe(self, *, event_type: str, handler: EventHandler) -> None:
        if not event_type:
            raise ValueError("event_type must be non-empty")

        handlers = self._routes.setdefault(event_type, [])
        if handler in handlers:
            raise ValueError(f"handler already subscribed to {event_type!r}")
        handlers.append(handler)

    def publish(self, *events: Event) -> None:
        for event in events:
            handlers = tuple(self._routes.get(event.event_type, ()))
            log.debug("bus.publish", event_type=event.event_type, sequence=event.sequence, handlers=len(handlers))
            for handler in handlers:
                handler(event)
