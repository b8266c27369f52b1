"""Append-only candidate pipeline history."""

from __future__ import annotations

import logging

from hireflow.contracts.models import PipelineEvent, PipelineEventCreate
from hireflow.orchestrator.clock import Clock, utc_now
from hireflow.stores.pipeline_events import PipelineEventStore

logger = logging.getLogger(__name__)


class PipelineEventLog:
    """Records what happened to a candidate, by whom.

    Logging is best-effort: a missing or degraded store is reported in the
    service log and the caller carries on.
    """

    def __init__(self, store: PipelineEventStore | None, *, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    def log_event(self, event: PipelineEventCreate) -> PipelineEvent | None:
        if self._store is None:
            logger.warning(
                "pipeline_events.not_provisioned",
                extra={"extra": {"event_type": event.event_type, "candidate_id": event.candidate_id}},
            )
            return None
        stored = self._store.append(event, self._clock())
        if not stored.ok:
            logger.warning(
                "pipeline_events.append_failed",
                extra={
                    "extra": {
                        "event_type": event.event_type,
                        "candidate_id": event.candidate_id,
                        "reason": stored.degraded.reason if stored.degraded else None,
                    }
                },
            )
            return None
        return stored.value

    def list_for_candidate(self, candidate_id: str, limit: int = 50) -> list[PipelineEvent]:
        if self._store is None:
            return []
        found = self._store.list_for_candidate(candidate_id, limit)
        if not found.ok:
            logger.warning(
                "pipeline_events.read_failed",
                extra={"extra": {"candidate_id": candidate_id}},
            )
            return []
        return found.value or []
