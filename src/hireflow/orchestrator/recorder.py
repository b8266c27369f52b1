"""An event bus decorator that keeps an ordered audit trail of everything published.

The demo runner uses it to report what a scenario emitted, and tests use it to
assert on emitted events without draining the underlying topics.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable

from hireflow.orchestrator.event_bus import Event, EventBus, Subscriber


class RecordingEventBus:
    def __init__(self, bus: EventBus, *, keep: int | None = None) -> None:
        self.bus = bus
        self._trail: deque[Event] = deque(maxlen=keep)

    @property
    def events(self) -> list[Event]:
        return list(self._trail)

    def publish(self, event: Event) -> None:
        self._trail.append(event)
        self.bus.publish(event)

    def subscribe(self, event_type: str, callback: Subscriber) -> Callable[[], None]:
        return self.bus.subscribe(event_type, callback)

    def next_event(self, event_type: str, timeout: float | None = None) -> Event | None:
        return self.bus.next_event(event_type, timeout=timeout)

    def pending(self, event_type: str) -> int:
        return self.bus.pending(event_type)

    def of_type(self, *event_types: str) -> list[Event]:
        return [e for e in self._trail if e.event_type in event_types]

    def for_subject(self, subject_id: str) -> list[Event]:
        return [e for e in self._trail if e.subject_id == subject_id]

    def types(self, events: Iterable[Event] | None = None) -> list[str]:
        """Event types in publish order, e.g. for comparing sequences."""
        return [e.event_type for e in (self._trail if events is None else events)]

    def clear(self) -> None:
        self._trail.clear()
