from __future__ import annotations

from hireflow.contracts.events import STAGE_MOVED
from hireflow.contracts.models import PipelineEventCreate
from hireflow.contracts.results import StoreResult
from hireflow.contracts.types import ActorType, PipelineStage
from hireflow.services.pipeline_event_log import PipelineEventLog
from hireflow.stores.pipeline_events import InMemoryPipelineEventStore


class FailingEventStore:
    def append(self, event, created_at):
        return StoreResult.unavailable("table missing", not_provisioned=True)

    def list_for_candidate(self, candidate_id, limit):
        return StoreResult.unavailable("table missing", not_provisioned=True)


def _event(candidate_id: str = "cand_ada", summary: str = "moved") -> PipelineEventCreate:
    return PipelineEventCreate(
        candidate_id=candidate_id,
        job_id="job_1",
        event_type=STAGE_MOVED,
        actor_type=ActorType.AGENT,
        actor_id="screening_agent",
        to_stage=PipelineStage.LONG_LIST,
        summary=summary,
    )


def test_events_are_listed_newest_first(clock) -> None:
    log = PipelineEventLog(InMemoryPipelineEventStore(), clock=clock)
    first = log.log_event(_event(summary="first"))
    clock.advance(10)
    second = log.log_event(_event(summary="second"))
    log.log_event(_event(candidate_id="cand_other"))

    listed = log.list_for_candidate("cand_ada")

    assert first is not None and second is not None
    assert [e.summary for e in listed] == ["second", "first"]
    assert second.id > first.id
    assert second.created_at == clock.now


def test_limit_is_respected(clock) -> None:
    log = PipelineEventLog(InMemoryPipelineEventStore(), clock=clock)
    for n in range(5):
        clock.advance(1)
        log.log_event(_event(summary=str(n)))

    assert [e.summary for e in log.list_for_candidate("cand_ada", limit=2)] == ["4", "3"]


def test_missing_store_is_a_quiet_noop(clock, caplog) -> None:
    log = PipelineEventLog(None, clock=clock)

    assert log.log_event(_event()) is None
    assert log.list_for_candidate("cand_ada") == []
    assert "pipeline_events.not_provisioned" in caplog.text


def test_failing_store_does_not_raise(clock) -> None:
    log = PipelineEventLog(FailingEventStore(), clock=clock)

    assert log.log_event(_event()) is None
    assert log.list_for_candidate("cand_ada") == []
