"""Operator-facing notifications published on the bus."""

from __future__ import annotations

from collections import deque
import logging
from typing import Any

from hireflow.contracts.events import AGENT_NOTIFICATION
from hireflow.contracts.models import Notification
from hireflow.contracts.types import AgentType, Severity
from hireflow.orchestrator.clock import Clock, utc_now
from hireflow.orchestrator.event_bus import Event, EventBus

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.SUCCESS: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


class Notifier:
    """Publishes ``agent.notification`` events and keeps the latest ones."""

    def __init__(self, bus: EventBus, *, max_recent: int = 200, clock: Clock = utc_now) -> None:
        self._bus = bus
        self._clock = clock
        self._recent: deque[Notification] = deque(maxlen=max_recent)

    def notify(
        self,
        severity: Severity,
        message: str,
        *,
        agent_type: AgentType | None = None,
        title: str | None = None,
        requires_confirmation: bool = False,
        metadata: dict[str, Any] | None = None,
    ) -> Notification:
        note = Notification(
            severity=severity,
            message=message,
            title=title,
            agent_type=agent_type,
            requires_confirmation=requires_confirmation,
            metadata=dict(metadata or {}),
            created_at=self._clock(),
        )
        self._recent.appendleft(note)
        logger.log(
            _LOG_LEVELS[severity],
            "notification",
            extra={
                "extra": {
                    "severity": severity.value,
                    "agent_type": agent_type.value if agent_type else None,
                    "text": message,
                }
            },
        )
        self._bus.publish(
            Event(event_type=AGENT_NOTIFICATION, payload=note.model_dump(mode="json"))
        )
        return note

    def recent(self, limit: int = 50) -> list[Notification]:
        return list(self._recent)[: max(limit, 0)]
