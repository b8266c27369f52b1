"""Integration tests for HireFlow scenarios."""

from __future__ import annotations

from hireflow.contracts.events import ACTION_PROPOSED, BACKGROUND_JOB_RESULT, CANDIDATE_STAGED
from hireflow.contracts.types import AgentMode, PipelineStage, ProposalStatus
from hireflow.demo import fixtures
from hireflow.demo.runner import run_scenario


def test_recommend_mode_only_proposes() -> None:
    result = run_scenario(
        fixtures.hiring_week(),
        AgentMode.RECOMMEND,
        start_metrics=False,
        enable_tracing=False,
    )

    assert all(r.success for r in result.results)
    assert not any(e.event_type == CANDIDATE_STAGED for e in result.events)
    assert result.proposals
    assert all(p.status == ProposalStatus.PROPOSED for p in result.proposals)
    history = result.runtime.events.list_for_candidate("cand_ada", limit=100)
    assert any(e.event_type == ACTION_PROPOSED for e in history)


def test_auto_write_mode_moves_candidates() -> None:
    result = run_scenario(
        fixtures.hiring_week(),
        AgentMode.AUTO_WRITE,
        start_metrics=False,
        enable_tracing=False,
    )

    writer = result.runtime.writer
    assert result.proposals == []
    assert writer.stage_of("cand_ada", "job_backend") == PipelineStage.OFFER
    assert writer.stage_of("cand_barbara", "job_backend") == PipelineStage.REJECTED
    assert writer.stage_of("cand_margaret", "job_data") == PipelineStage.LONG_LIST
    assert writer.stage_of("cand_alan", "job_closed") is None
    job_results = [e for e in result.events if e.event_type == BACKGROUND_JOB_RESULT]
    assert len(job_results) == 5


def test_approve_all_applies_every_proposal() -> None:
    result = run_scenario(
        fixtures.hiring_week(),
        AgentMode.RECOMMEND,
        approve_all=True,
        start_metrics=False,
        enable_tracing=False,
    )

    assert result.proposals
    assert all(p.status == ProposalStatus.APPLIED for p in result.proposals)
    assert result.runtime.writer.stage_of("cand_barbara", "job_backend") == PipelineStage.REJECTED
