"""File-backed stores and the in-memory pipeline writer."""

from __future__ import annotations

from pathlib import Path

from hireflow.contracts.events import CANDIDATE_STAGED, STAGE_MOVED
from hireflow.contracts.models import (
    CandidateRef,
    MoveToStagePayload,
    PipelineEventCreate,
    ProcessingMark,
    ProposedAction,
    UpdateVerifiedSkillsPayload,
)
from hireflow.contracts.types import ActorType, AgentType, MarkStatus, PipelineStage
from hireflow.orchestrator.recorder import RecordingEventBus
from hireflow.services.processing_marks import ProcessingMarkerService
from hireflow.stores.marks import JsonFileMarkStore
from hireflow.stores.pipeline_events import JsonLinesPipelineEventStore
from hireflow.stores.pipeline_state import InMemoryPipelineWriter
from hireflow.stores.proposals import JsonFileProposalStore

ADA = CandidateRef(id="cand_ada", name="Ada Lovelace")


def test_json_mark_store_persists_between_instances(tmp_path: Path, clock) -> None:
    path = tmp_path / "marks.json"
    first = ProcessingMarkerService(JsonFileMarkStore(path), clock=clock)
    assert first.begin_step("cand_ada", "job_1", "screening:v1")
    first.complete_step("cand_ada", "job_1", "screening:v1")

    second = ProcessingMarkerService(JsonFileMarkStore(path), clock=clock)

    assert second.begin_step("cand_ada", "job_1", "screening:v1") is False
    stored = JsonFileMarkStore(path).get(("cand_ada", "job_1", "screening:v1"))
    assert stored.ok and stored.value is not None
    assert stored.value.status == MarkStatus.COMPLETED


def test_corrupt_mark_file_reports_degraded(tmp_path: Path, clock) -> None:
    path = tmp_path / "marks.json"
    path.write_text("{not json", encoding="utf-8")
    store = JsonFileMarkStore(path)

    read = store.get(("cand_ada", "job_1", "step"))
    written = store.upsert(
        ProcessingMark(
            candidate_id="cand_ada",
            job_id="job_1",
            step="step",
            status=MarkStatus.STARTED,
            updated_at=clock(),
        )
    )

    assert not read.ok and read.degraded is not None
    assert not written.ok
    # fail open: the step still runs
    assert ProcessingMarkerService(store, clock=clock).begin_step("cand_ada", "job_1", "step")


def test_proposal_file_round_trip_keeps_payload_variant(tmp_path: Path, clock) -> None:
    store = JsonFileProposalStore(tmp_path / "proposals.json")
    actions = [
        ProposedAction(
            agent_type=AgentType.SCREENING,
            title="Move",
            description="d",
            candidate_id="cand_ada",
            job_id="job_1",
            payload=MoveToStagePayload(candidate=ADA, job_id="job_1", stage=PipelineStage.LONG_LIST),
            created_at=clock(),
            updated_at=clock(),
        ),
        ProposedAction(
            agent_type=AgentType.INTERVIEW,
            title="Skills",
            description="d",
            candidate_id="cand_ada",
            payload=UpdateVerifiedSkillsPayload(candidate_id="cand_ada", verified_skills=["Go"]),
            created_at=clock(),
            updated_at=clock(),
        ),
    ]

    assert store.save_all(actions).ok
    loaded = store.load_all()

    assert loaded.ok and loaded.value is not None
    assert isinstance(loaded.value[0].payload, MoveToStagePayload)
    assert isinstance(loaded.value[1].payload, UpdateVerifiedSkillsPayload)
    assert loaded.value[0].payload.stage == PipelineStage.LONG_LIST


def test_jsonl_event_store_assigns_sequential_ids(tmp_path: Path, clock) -> None:
    store = JsonLinesPipelineEventStore(tmp_path / "nested" / "events.jsonl")
    create = PipelineEventCreate(
        candidate_id="cand_ada",
        event_type=STAGE_MOVED,
        actor_type=ActorType.USER,
        summary="moved",
    )

    a = store.append(create, clock())
    b = store.append(create, clock())
    listed = store.list_for_candidate("cand_ada", 10)

    assert a.value is not None and b.value is not None
    assert (a.value.id, b.value.id) == (1, 2)
    assert listed.value is not None and [e.id for e in listed.value] == [2, 1]


def test_event_ids_continue_across_store_instances(tmp_path: Path, clock) -> None:
    path = tmp_path / "events.jsonl"
    create = PipelineEventCreate(
        candidate_id="cand_ada", event_type=STAGE_MOVED, actor_type=ActorType.USER, summary="x"
    )
    first = JsonLinesPipelineEventStore(path)
    first.append(create, clock())
    first.append(create, clock())

    second = JsonLinesPipelineEventStore(path)
    third = second.append(create, clock())
    fourth = second.append(create, clock())

    assert third.value is not None and third.value.id == 3
    assert fourth.value is not None and fourth.value.id == 4


def test_unusable_event_directory_degrades_instead_of_raising(tmp_path: Path, clock) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    store = JsonLinesPipelineEventStore(blocker / "events.jsonl")
    create = PipelineEventCreate(
        candidate_id="cand_ada", event_type=STAGE_MOVED, actor_type=ActorType.USER, summary="x"
    )

    written = store.append(create, clock())

    assert not written.ok
    assert written.degraded is not None
    assert "append failed" in written.degraded.reason


def test_writer_reports_previous_stage_and_counts(bus: RecordingEventBus) -> None:
    writer = InMemoryPipelineWriter(bus)
    grace = CandidateRef(id="cand_grace", name="Grace Hopper")
    writer.seed(grace, "job_1", PipelineStage.SCREENING)

    first = writer.move_to_stage(ADA, "job_1", PipelineStage.SOURCED)
    second = writer.move_to_stage(ADA, "job_1", PipelineStage.SCREENING)
    counts = writer.stage_counts(["job_1", "job_2"])

    assert first.value is None
    assert second.value == PipelineStage.SOURCED
    assert counts.value == {"job_1": {"screening": 2}, "job_2": {}}
    staged = bus.of_type(CANDIDATE_STAGED)
    assert [e.payload["stage"] for e in staged] == ["sourced", "screening"]
    assert staged[-1].subject_id == "cand_ada"
