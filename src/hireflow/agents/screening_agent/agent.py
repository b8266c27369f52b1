"""Screening agent: scores queued candidates and routes them by band."""

from __future__ import annotations

from collections import deque
import logging
from typing import Any

from hireflow.agents.base import AgentContext, AgentLoop, StageMove, StepOutcome
from hireflow.contracts.domain import ScreeningRequest, ScreeningResult
from hireflow.contracts.events import SCREENING_COMPLETED, SCREENING_REQUESTED
from hireflow.contracts.models import Evidence
from hireflow.contracts.types import (
    AgentMode,
    AgentType,
    JobCategory,
    PipelineStage,
    Recommendation,
    Severity,
)

logger = logging.getLogger(__name__)

SCREENING_INTERVAL_SECONDS = 4 * 60 * 60
SCREENING_STEP = "screening:v1"
SCREENING_MARK_TTL_SECONDS = 30 * 60
STAGE_MOVE_MARK_TTL_SECONDS = 10 * 60
MAX_RESULTS = 500


def _request_key(request: ScreeningRequest) -> str:
    return f"{request.candidate.id}:{request.job.id}"


def screening_recommendation(score: int) -> Recommendation:
    if score >= 85:
        return Recommendation.STRONG_PASS
    if score >= 65:
        return Recommendation.PASS
    if score >= 50:
        return Recommendation.BORDERLINE
    return Recommendation.FAIL


class ScreeningAgent(AgentLoop):
    """Works through the screening queue once per tick."""

    agent_type = AgentType.SCREENING
    job_name = "Autonomous Candidate Screening"
    category = JobCategory.SCREENING
    default_interval_seconds = SCREENING_INTERVAL_SECONDS

    def __init__(self, ctx: AgentContext, *, mode: AgentMode = AgentMode.RECOMMEND) -> None:
        super().__init__(ctx, mode=mode)
        self._queue: list[ScreeningRequest] = []
        self._results: deque[ScreeningResult] = deque(maxlen=MAX_RESULTS)

    @property
    def pending(self) -> int:
        return len(self._queue)

    def results(self) -> list[ScreeningResult]:
        return list(self._results)

    def request_screening(self, request: ScreeningRequest) -> None:
        self._queue.append(request.model_copy(deep=True))
        self.record_event(
            request.candidate,
            request.job,
            SCREENING_REQUESTED,
            f"Screening requested for {request.job.title}",
            to_stage=PipelineStage.SCREENING,
        )
        self.ctx.notifier.notify(
            Severity.INFO,
            f"{request.candidate.name} queued for screening",
            agent_type=self.agent_type,
        )

    async def run_once(self) -> dict[str, Any]:
        counts = await self.process_queue(
            self._queue, self._screen, key=_request_key, what="Screening"
        )
        return {
            "processed": sum(counts.values()),
            "screened": counts[StepOutcome.DONE],
            "deferred": counts[StepOutcome.DEFERRED] + counts[StepOutcome.IN_PROGRESS],
        }

    async def _screen(self, request: ScreeningRequest) -> StepOutcome:
        candidate, job = request.candidate, request.job
        markers = self.ctx.markers
        key = _request_key(request)
        resumed = self.resume(key)
        if resumed is not None:
            if resumed == StepOutcome.DONE:
                markers.complete_step(candidate.id, job.id, SCREENING_STEP)
            return resumed

        decision = markers.acquire_step(
            candidate.id, job.id, SCREENING_STEP, ttl_seconds=SCREENING_MARK_TTL_SECONDS
        )
        if not decision.granted:
            return StepOutcome.refused(decision)

        scored = await self.call_collaborator(
            lambda: self.ctx.inference.score_screening(request),
            what="Screening",
            candidate=candidate,
            job=job,
        )
        if not scored.ok or scored.value is None:
            return self.failure_outcome(scored)

        score = scored.value
        recommendation = screening_recommendation(score.score)
        result = ScreeningResult(
            candidate_id=candidate.id,
            candidate_name=candidate.name,
            job_id=job.id,
            job_title=job.title,
            score=score.score,
            recommendation=recommendation,
            summary=score.summary,
            strengths=list(score.strengths),
            concerns=list(score.concerns),
        )
        self._results.appendleft(result)
        self.record_event(
            candidate,
            job,
            SCREENING_COMPLETED,
            f"Screening {recommendation.value} ({score.score}/100)",
            metadata={"score": score.score, "recommendation": recommendation.value},
        )

        target = (
            PipelineStage.REJECTED
            if recommendation == Recommendation.FAIL
            else PipelineStage.LONG_LIST
        )
        move = StageMove(
            candidate=candidate,
            job=job,
            to_stage=target,
            from_stage=PipelineStage.SCREENING,
            step=f"stage_move:{target.value}:screening:v1",
            reason=f"screening {recommendation.value} ({score.score}/100)",
            ttl_seconds=STAGE_MOVE_MARK_TTL_SECONDS,
            evidence=[
                Evidence(label="Screening score", value=str(score.score)),
                Evidence(label="Summary", value=score.summary),
            ],
            severity=Severity.WARNING if target == PipelineStage.REJECTED else None,
        )
        if self.settle(key, [lambda: self.move_stage(move)]) != StepOutcome.DONE:
            # The score is kept; only the move is retried on later ticks.
            return StepOutcome.DEFERRED
        markers.complete_step(
            candidate.id,
            job.id,
            SCREENING_STEP,
            metadata={"score": score.score, "recommendation": recommendation.value},
        )
        logger.info(
            "screening.completed",
            extra={
                "extra": {
                    "candidate_id": candidate.id,
                    "job_id": job.id,
                    "score": score.score,
                    "recommendation": recommendation.value,
                }
            },
        )
        return StepOutcome.DONE
