"""Tests for processing mark acquisition, reclaim, and fail-open behaviour."""

from __future__ import annotations

from hireflow.contracts.models import ProcessingMark
from hireflow.contracts.results import StoreResult
from hireflow.contracts.types import MarkStatus
from hireflow.services.processing_marks import MarkDecision, ProcessingMarkerService
from hireflow.stores.marks import InMemoryMarkStore, MarkKey


class DegradedMarkStore:
    """Store that is reachable but refuses every call."""

    def __init__(self) -> None:
        self.writes = 0

    def get(self, key: MarkKey) -> StoreResult[ProcessingMark | None]:
        return StoreResult.unavailable("relation processing_marks does not exist")

    def upsert(self, mark: ProcessingMark) -> StoreResult[ProcessingMark]:
        self.writes += 1
        return StoreResult.unavailable("permission denied")


class ReadOnlyMarkStore(InMemoryMarkStore):
    def upsert(self, mark: ProcessingMark) -> StoreResult[ProcessingMark]:
        return StoreResult.unavailable("read only")


def test_first_begin_acquires_and_second_is_refused(clock) -> None:
    markers = ProcessingMarkerService(InMemoryMarkStore(), clock=clock)

    assert markers.begin_step("cand_1", "job_1", "screening:v1") is True
    assert markers.begin_step("cand_1", "job_1", "screening:v1") is False


def test_completed_step_is_never_redone(clock) -> None:
    markers = ProcessingMarkerService(InMemoryMarkStore(), clock=clock)
    markers.begin_step("cand_1", "job_1", "screening:v1")
    markers.complete_step("cand_1", "job_1", "screening:v1", metadata={"score": 80})

    clock.advance(10 * 24 * 3600)

    assert markers.begin_step("cand_1", "job_1", "screening:v1") is False


def test_stale_started_mark_is_reclaimed(clock) -> None:
    store = InMemoryMarkStore()
    markers = ProcessingMarkerService(store, clock=clock)
    assert markers.begin_step("cand_1", "job_1", "step", ttl_seconds=600)

    clock.advance(599)
    assert markers.begin_step("cand_1", "job_1", "step", ttl_seconds=600) is False

    clock.advance(1)
    assert markers.begin_step("cand_1", "job_1", "step", ttl_seconds=600) is True
    stored = store.get(("cand_1", "job_1", "step")).value
    assert stored is not None
    assert stored.status == MarkStatus.STARTED
    assert stored.updated_at == clock.now


def test_default_ttl_is_ten_minutes(clock) -> None:
    markers = ProcessingMarkerService(InMemoryMarkStore(), clock=clock)
    markers.begin_step("cand_1", "job_1", "step")

    clock.advance(9 * 60)
    assert markers.begin_step("cand_1", "job_1", "step") is False
    clock.advance(60)
    assert markers.begin_step("cand_1", "job_1", "step") is True


def test_steps_are_keyed_independently(clock) -> None:
    markers = ProcessingMarkerService(InMemoryMarkStore(), clock=clock)

    assert markers.begin_step("cand_1", "job_1", "a")
    assert markers.begin_step("cand_1", "job_1", "b")
    assert markers.begin_step("cand_1", "job_2", "a")
    assert markers.begin_step("cand_2", "job_1", "a")


def test_missing_store_fails_open(clock) -> None:
    markers = ProcessingMarkerService(None, clock=clock)

    assert markers.begin_step("cand_1", "job_1", "step") is True
    assert markers.begin_step("cand_1", "job_1", "step") is True
    markers.complete_step("cand_1", "job_1", "step")


def test_degraded_store_fails_open(clock) -> None:
    store = DegradedMarkStore()
    markers = ProcessingMarkerService(store, clock=clock)

    assert markers.begin_step("cand_1", "job_1", "step") is True
    assert markers.begin_step("cand_1", "job_1", "step") is True
    markers.complete_step("cand_1", "job_1", "step")
    assert store.writes == 1


def test_failed_write_still_fails_open(clock) -> None:
    markers = ProcessingMarkerService(ReadOnlyMarkStore(), clock=clock)

    assert markers.begin_step("cand_1", "job_1", "step") is True


def test_acquire_step_reports_the_reason(clock) -> None:
    markers = ProcessingMarkerService(InMemoryMarkStore(), clock=clock)

    assert markers.acquire_step("cand_1", "job_1", "step") == MarkDecision.ACQUIRED
    assert markers.acquire_step("cand_1", "job_1", "step") == MarkDecision.SKIPPED_FRESH
    clock.advance(601)
    assert markers.acquire_step("cand_1", "job_1", "step") == MarkDecision.RECLAIMED
    markers.complete_step("cand_1", "job_1", "step")
    assert markers.acquire_step("cand_1", "job_1", "step") == MarkDecision.SKIPPED_COMPLETED
    assert not MarkDecision.SKIPPED_COMPLETED.granted


def test_fail_open_is_reported_as_granted(clock) -> None:
    decision = ProcessingMarkerService(None, clock=clock).acquire_step("cand_1", "job_1", "step")

    assert decision == MarkDecision.FAIL_OPEN
    assert decision.granted
