"""Idempotency marks for agent work keyed by (candidate, job, step)."""

from __future__ import annotations

from enum import Enum
import logging
from typing import Any

from hireflow.contracts.models import ProcessingMark
from hireflow.contracts.types import MarkStatus
from hireflow.observability.metrics import MARK_DECISIONS
from hireflow.orchestrator.clock import Clock, utc_now
from hireflow.stores.marks import MarkStore

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 10 * 60


class MarkDecision(str, Enum):
    """Why a step may or may not start."""

    ACQUIRED = "acquired"
    RECLAIMED = "reclaimed"
    FAIL_OPEN = "fail_open"
    SKIPPED_FRESH = "skipped_fresh"
    SKIPPED_COMPLETED = "skipped_completed"

    @property
    def granted(self) -> bool:
        return self in (MarkDecision.ACQUIRED, MarkDecision.RECLAIMED, MarkDecision.FAIL_OPEN)


class ProcessingMarkerService:
    """Decides whether an agent may start a step.

    A completed step is never redone. A started step blocks other attempts
    until it is older than its TTL, after which it is reclaimed. When the
    store is absent or degraded the service fails open: duplicate work is
    preferred over silently dropping candidates.
    """

    def __init__(
        self,
        store: MarkStore | None,
        *,
        default_ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._default_ttl = default_ttl_seconds
        self._clock = clock
        self._warned: set[str] = set()

    def begin_step(
        self,
        candidate_id: str,
        job_id: str,
        step: str,
        *,
        ttl_seconds: float | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        return self.acquire_step(
            candidate_id, job_id, step, ttl_seconds=ttl_seconds, metadata=metadata
        ).granted

    def acquire_step(
        self,
        candidate_id: str,
        job_id: str,
        step: str,
        *,
        ttl_seconds: float | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> MarkDecision:
        """Like ``begin_step`` but says why a refused step was refused."""
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        if self._store is None:
            return self._fail_open(step, "not_provisioned")

        found = self._store.get((candidate_id, job_id, step))
        if not found.ok:
            return self._fail_open(step, found.degraded.reason if found.degraded else "")

        now = self._clock()
        existing = found.value
        decision = MarkDecision.ACQUIRED
        if existing is not None:
            if existing.status == MarkStatus.COMPLETED:
                return self._decided(MarkDecision.SKIPPED_COMPLETED)
            if not existing.is_stale(now, ttl):
                return self._decided(MarkDecision.SKIPPED_FRESH)
            decision = MarkDecision.RECLAIMED
            logger.info(
                "marks.reclaimed",
                extra={
                    "extra": {
                        "candidate_id": candidate_id,
                        "job_id": job_id,
                        "step": step,
                        "age_seconds": (now - existing.updated_at).total_seconds(),
                    }
                },
            )

        written = self._store.upsert(
            ProcessingMark(
                candidate_id=candidate_id,
                job_id=job_id,
                step=step,
                status=MarkStatus.STARTED,
                updated_at=now,
                ttl_seconds=ttl,
                metadata=dict(metadata or {}),
            )
        )
        if not written.ok:
            return self._fail_open(step, written.degraded.reason if written.degraded else "")
        return self._decided(decision)

    def complete_step(
        self,
        candidate_id: str,
        job_id: str,
        step: str,
        *,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Mark the step done. Failures here are logged, never raised."""
        if self._store is None:
            return
        written = self._store.upsert(
            ProcessingMark(
                candidate_id=candidate_id,
                job_id=job_id,
                step=step,
                status=MarkStatus.COMPLETED,
                updated_at=self._clock(),
                metadata=dict(metadata or {}),
            )
        )
        if not written.ok:
            logger.warning(
                "marks.complete_failed",
                extra={
                    "extra": {
                        "candidate_id": candidate_id,
                        "job_id": job_id,
                        "step": step,
                        "reason": written.degraded.reason if written.degraded else None,
                    }
                },
            )

    @staticmethod
    def _decided(decision: MarkDecision) -> MarkDecision:
        MARK_DECISIONS.labels(outcome=decision.value).inc()
        return decision

    def _fail_open(self, step: str, reason: str) -> MarkDecision:
        if reason not in self._warned:
            self._warned.add(reason)
            logger.warning("marks.fail_open", extra={"extra": {"step": step, "reason": reason}})
        return self._decided(MarkDecision.FAIL_OPEN)
