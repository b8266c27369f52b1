"""In-process event bus for HireFlow."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
import logging
from threading import Condition
import time
from typing import Any, Protocol
from uuid import UUID, uuid4

logger = logging.getLogger(__name__)

DEFAULT_TOPIC_CAPACITY = 1000


@dataclass(slots=True)
class Event:
    """Event envelope for the internal event bus."""

    event_type: str
    payload: dict[str, Any]
    subject_id: str | None = None
    event_id: UUID = field(default_factory=uuid4)
    correlation_id: UUID | None = None


Subscriber = Callable[[Event], None]


class EventBus(Protocol):
    """Fire-and-forget publish with push fan-out and pull-style consumption per topic.

    Every subscriber of a topic sees every event. Pull consumers share the
    topic buffer like a work queue, so each buffered event goes to one of them.
    """

    def publish(self, event: Event) -> None:
        """Publish an event to the bus."""

    def subscribe(self, event_type: str, callback: Subscriber) -> Callable[[], None]:
        """Call ``callback`` for each later event of the type; returns an unsubscribe."""

    def next_event(self, event_type: str, timeout: float | None = None) -> Event | None:
        """Return the oldest pending event of the type, or None if timed out."""

    def pending(self, event_type: str) -> int:
        """Number of undelivered events of the type."""


class InMemoryEventBus:
    """Per-topic bounded buffers.

    Publishing never blocks and never fails because nobody is listening. When
    a topic buffer is full the oldest undelivered event is dropped. Subscribers
    are called synchronously on the publishing thread after the event is
    buffered; one that raises is logged and skipped. ``next_event`` blocks the
    calling thread, so async code should subscribe instead.
    """

    def __init__(self, topic_capacity: int = DEFAULT_TOPIC_CAPACITY) -> None:
        self._capacity = topic_capacity
        self._topics: dict[str, deque[Event]] = {}
        self._cond = Condition()
        self._dropped = 0
        self._subscribers: dict[str, list[Subscriber]] = {}

    @property
    def dropped(self) -> int:
        return self._dropped

    def publish(self, event: Event) -> None:
        with self._cond:
            topic = self._topics.setdefault(event.event_type, deque())
            if len(topic) >= self._capacity:
                topic.popleft()
                self._dropped += 1
                if self._dropped == 1 or self._dropped % self._capacity == 0:
                    logger.warning(
                        "bus.events_dropped",
                        extra={"extra": {"topic": event.event_type, "dropped": self._dropped}},
                    )
            topic.append(event)
            self._cond.notify_all()
            subscribers = list(self._subscribers.get(event.event_type, ()))
        for callback in subscribers:
            try:
                callback(event)
            except Exception:  # noqa: BLE001
                logger.exception(
                    "bus.subscriber_failed",
                    extra={
                        "extra": {"topic": event.event_type, "event_id": str(event.event_id)}
                    },
                )

    def subscribe(self, event_type: str, callback: Subscriber) -> Callable[[], None]:
        with self._cond:
            self._subscribers.setdefault(event_type, []).append(callback)

        def unsubscribe() -> None:
            with self._cond:
                callbacks = self._subscribers.get(event_type, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return unsubscribe

    def next_event(self, event_type: str, timeout: float | None = None) -> Event | None:
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while True:
                topic = self._topics.get(event_type)
                if topic:
                    return topic.popleft()
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    return None
                self._cond.wait(remaining)

    def pending(self, event_type: str) -> int:
        with self._cond:
            return len(self._topics.get(event_type, ()))
