from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Protocol, Sequence

from crashround.core.events.base import Event
from crashround.core.events.bus import EventBus


class EventComponent(Protocol):
    """
    Anything that listens to round/session events (renderers, recorders, loggers).
    """

    def subscriptions(self) -> Sequence[tuple[str, Callable[[Event], None]]]:
        ...


@dataclass(frozen=True, slots=True)
class WiredHandler:
    component: str
    event_type: str
    handler: str


@dataclass(frozen=True, slots=True)
class RouterWiring:
    """
    What got wired, in wiring order. Written to meta.json for audit.
    """

    handlers: tuple[WiredHandler, ...]

    def as_records(self) -> list[dict[str, str]]:
        return [
            {"component": w.component, "event_type": w.event_type, "handler": w.handler}
            for w in self.handlers
        ]


def wire_components(*, bus: EventBus, components: Iterable[EventComponent]) -> RouterWiring:
    """
    Subscribe each component's handlers, components first-to-last.

    Earlier components see every event before later ones, so the event log
    goes first in a session.
    """
    wired: list[WiredHandler] = []

    for component in components:
        cname = type(component).__name__
        subs = component.subscriptions()
        if not isinstance(subs, Sequence):
            raise TypeError(f"{cname}.subscriptions() must return a Sequence")

        for event_type, handler in subs:
            bus.subscribe(event_type=event_type, handler=handler)
            wired.append(
                WiredHandler(
                    component=cname,
                    event_type=event_type,
                    handler=getattr(handler, "__name__", type(handler).__name__),
                )
            )

    return RouterWiring(handlers=tuple(wired))
