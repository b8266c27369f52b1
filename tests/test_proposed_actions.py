"""Tests for the proposed action queue."""

from __future__ import annotations

from datetime import timedelta

import pytest

from hireflow.contracts.events import AGENT_PROPOSALS_CHANGED
from hireflow.contracts.models import (
    CandidateRef,
    MoveToStagePayload,
    ProposedAction,
    UpdateVerifiedSkillsPayload,
)
from hireflow.contracts.results import StoreResult
from hireflow.contracts.types import AgentType, PipelineStage, ProposalStatus
from hireflow.orchestrator.recorder import RecordingEventBus
from hireflow.services.proposed_actions import ProposedActionQueue
from hireflow.stores.proposals import InMemoryProposalStore

ADA = CandidateRef(id="cand_ada", name="Ada Lovelace")


def _move(stage: PipelineStage, job_id: str = "job_1") -> MoveToStagePayload:
    return MoveToStagePayload(candidate=ADA, job_id=job_id, stage=stage)


def _add(queue: ProposedActionQueue, stage: PipelineStage, **kwargs) -> ProposedAction:
    return queue.add(
        agent_type=kwargs.pop("agent_type", AgentType.SCREENING),
        title=f"Move to {stage.value}",
        description="reason",
        payload=_move(stage, kwargs.pop("job_id", "job_1")),
        **kwargs,
    )


class BrokenProposalStore:
    def __init__(self) -> None:
        self.saves = 0

    def load_all(self) -> StoreResult[list[ProposedAction]]:
        return StoreResult.of([])

    def save_all(self, actions: list[ProposedAction]) -> StoreResult[None]:
        self.saves += 1
        return StoreResult.unavailable("disk full")


def test_add_fills_refs_from_payload(bus: RecordingEventBus, clock) -> None:
    queue = ProposedActionQueue(bus, clock=clock)

    action = _add(queue, PipelineStage.LONG_LIST)

    assert action.candidate_id == "cand_ada"
    assert action.job_id == "job_1"
    assert action.status == ProposalStatus.PROPOSED
    assert action.created_at == clock.now


def test_repeat_proposal_coalesces(bus: RecordingEventBus, clock) -> None:
    queue = ProposedActionQueue(bus, clock=clock)
    first = _add(queue, PipelineStage.LONG_LIST)

    clock.advance(60)
    second = _add(queue, PipelineStage.REJECTED)

    assert second.id == first.id
    assert second.created_at == first.created_at
    assert second.updated_at == clock.now
    assert isinstance(second.payload, MoveToStagePayload)
    assert second.payload.stage == PipelineStage.REJECTED
    assert len(queue.list()) == 1
    changes = [e.payload["type"] for e in bus.of_type(AGENT_PROPOSALS_CHANGED)]
    assert changes == ["added", "updated"]


def test_non_stage_payloads_coalesce_too(bus: RecordingEventBus, clock) -> None:
    queue = ProposedActionQueue(bus, clock=clock)

    def skills(*names: str) -> ProposedAction:
        return queue.add(
            agent_type=AgentType.INTERVIEW,
            title="Verify skills",
            description="from interview",
            payload=UpdateVerifiedSkillsPayload(
                candidate_id="cand_ada", job_id="job_1", verified_skills=list(names)
            ),
        )

    first = skills("Python")
    second = skills("Python", "AWS")

    assert second.id == first.id
    assert len(queue.list()) == 1
    assert queue.list()[0].payload.verified_skills == ["Python", "AWS"]


def test_distinct_keys_stay_separate(bus: RecordingEventBus, clock) -> None:
    queue = ProposedActionQueue(bus, clock=clock)

    _add(queue, PipelineStage.LONG_LIST, job_id="job_1")
    _add(queue, PipelineStage.LONG_LIST, job_id="job_2")
    _add(queue, PipelineStage.LONG_LIST, agent_type=AgentType.SOURCING)

    assert len(queue.list()) == 3


def test_decided_proposals_do_not_absorb_new_ones(bus: RecordingEventBus, clock) -> None:
    queue = ProposedActionQueue(bus, clock=clock)
    first = _add(queue, PipelineStage.LONG_LIST)
    queue.mark_status(first.id, ProposalStatus.DISMISSED)
    clock.advance(1)

    second = _add(queue, PipelineStage.LONG_LIST)

    assert second.id != first.id
    assert [a.status for a in queue.list()] == [ProposalStatus.PROPOSED, ProposalStatus.DISMISSED]


def test_mark_status_is_one_way(bus: RecordingEventBus, clock) -> None:
    queue = ProposedActionQueue(bus, clock=clock)
    action = _add(queue, PipelineStage.LONG_LIST)

    applied = queue.mark_status(action.id, ProposalStatus.APPLIED)
    again = queue.mark_status(action.id, ProposalStatus.DISMISSED)

    assert applied is not None and applied.status == ProposalStatus.APPLIED
    assert again is not None and again.status == ProposalStatus.APPLIED
    assert queue.mark_status("proposal_missing", ProposalStatus.APPLIED) is None
    with pytest.raises(ValueError):
        queue.mark_status(action.id, ProposalStatus.PROPOSED)


def test_list_is_newest_first_and_filters(bus: RecordingEventBus, clock) -> None:
    queue = ProposedActionQueue(bus, clock=clock)
    older = _add(queue, PipelineStage.LONG_LIST, job_id="job_1")
    clock.advance(5)
    newer = _add(queue, PipelineStage.LONG_LIST, job_id="job_2")
    queue.mark_status(older.id, ProposalStatus.APPLIED)

    assert [a.id for a in queue.list()] == [newer.id, older.id]
    assert [a.id for a in queue.list(ProposalStatus.APPLIED)] == [older.id]


def test_list_collapses_duplicates_loaded_from_store(bus: RecordingEventBus, clock) -> None:
    base = ProposedAction(
        agent_type=AgentType.SCREENING,
        title="Move",
        description="old",
        payload=_move(PipelineStage.LONG_LIST),
        candidate_id="cand_ada",
        job_id="job_1",
        created_at=clock.now,
        updated_at=clock.now,
    )
    later = base.model_copy(
        update={
            "id": "proposal_dupe",
            "description": "new",
            "created_at": clock.now + timedelta(minutes=1),
            "updated_at": clock.now + timedelta(minutes=1),
        }
    )
    queue = ProposedActionQueue(bus, InMemoryProposalStore([base, later]), clock=clock)

    listed = queue.list()

    assert len(listed) == 1
    assert listed[0].id == base.id
    assert listed[0].created_at == base.created_at
    assert listed[0].description == "new"


def test_store_receives_changes(bus: RecordingEventBus, clock) -> None:
    store = InMemoryProposalStore()
    queue = ProposedActionQueue(bus, store, clock=clock)

    action = _add(queue, PipelineStage.LONG_LIST)

    reloaded = ProposedActionQueue(bus, store, clock=clock)
    assert [a.id for a in reloaded.list()] == [action.id]


def test_degraded_store_keeps_queue_working(bus: RecordingEventBus, clock) -> None:
    store = BrokenProposalStore()
    queue = ProposedActionQueue(bus, store, clock=clock)

    _add(queue, PipelineStage.LONG_LIST, job_id="job_1")
    _add(queue, PipelineStage.LONG_LIST, job_id="job_2")

    assert queue.local_only is True
    assert store.saves == 1
    assert len(queue.list()) == 2


def test_queue_is_capped(bus: RecordingEventBus, clock) -> None:
    queue = ProposedActionQueue(bus, max_entries=3, clock=clock)
    for n in range(5):
        clock.advance(1)
        _add(queue, PipelineStage.LONG_LIST, job_id=f"job_{n}")

    assert [a.job_id for a in queue.list()] == ["job_4", "job_3", "job_2"]


def test_cap_evicts_settled_entries_before_pending(bus: RecordingEventBus, clock) -> None:
    queue = ProposedActionQueue(bus, max_entries=3, clock=clock)
    oldest = _add(queue, PipelineStage.LONG_LIST, job_id="job_0")
    clock.advance(1)
    applied = _add(queue, PipelineStage.LONG_LIST, job_id="job_1")
    queue.mark_status(applied.id, ProposalStatus.APPLIED)
    clock.advance(1)
    _add(queue, PipelineStage.LONG_LIST, job_id="job_2")
    clock.advance(1)
    _add(queue, PipelineStage.LONG_LIST, job_id="job_3")

    assert queue.get(applied.id) is None
    assert queue.get(oldest.id) is not None
    assert [a.job_id for a in queue.list()] == ["job_3", "job_2", "job_0"]


def test_clear_by_status(bus: RecordingEventBus, clock) -> None:
    queue = ProposedActionQueue(bus, clock=clock)
    kept = _add(queue, PipelineStage.LONG_LIST, job_id="job_1")
    gone = _add(queue, PipelineStage.LONG_LIST, job_id="job_2")
    queue.mark_status(gone.id, ProposalStatus.DISMISSED)

    assert queue.clear(ProposalStatus.DISMISSED) == 1
    assert [a.id for a in queue.list()] == [kept.id]
    assert bus.of_type(AGENT_PROPOSALS_CHANGED)[-1].payload["type"] == "cleared"
