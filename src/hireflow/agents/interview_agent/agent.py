"""Interview agent: debriefs finished interviews."""

from __future__ import annotations

from collections import deque
import logging
from typing import Any

from hireflow.agents.base import AgentContext, AgentLoop, StageMove, StepOutcome, Write
from hireflow.contracts.domain import InterviewReport, InterviewSession
from hireflow.contracts.events import INTERVIEW_COMPLETED
from hireflow.contracts.models import Evidence, UpdateVerifiedSkillsPayload
from hireflow.contracts.types import (
    AgentMode,
    AgentType,
    JobCategory,
    PipelineStage,
    Recommendation,
    Severity,
)

logger = logging.getLogger(__name__)

INTERVIEW_INTERVAL_SECONDS = 60 * 60
DEBRIEF_MARK_TTL_SECONDS = 60 * 60
BASE_SCORE = 85
MISSING_ANSWER_PENALTY = 8
MAX_PENALTY = 40
MAX_REPORTS = 200


def debrief_step(session_id: str) -> str:
    return f"interview:debrief:{session_id}:v1"


def interview_score(unanswered: int) -> int:
    return max(0, BASE_SCORE - min(MAX_PENALTY, MISSING_ANSWER_PENALTY * unanswered))


def interview_recommendation(score: int) -> Recommendation:
    if score >= 85:
        return Recommendation.STRONG_PASS
    if score >= 75:
        return Recommendation.PASS
    if score >= 60:
        return Recommendation.BORDERLINE
    return Recommendation.FAIL


class InterviewAgent(AgentLoop):
    """Scores finished sessions and records verified skills."""

    agent_type = AgentType.INTERVIEW
    job_name = "Autonomous Interview Debrief"
    category = JobCategory.INTERVIEW
    default_interval_seconds = INTERVIEW_INTERVAL_SECONDS

    def __init__(self, ctx: AgentContext, *, mode: AgentMode = AgentMode.RECOMMEND) -> None:
        super().__init__(ctx, mode=mode)
        self._finished: list[InterviewSession] = []
        self._reports: deque[InterviewReport] = deque(maxlen=MAX_REPORTS)

    @property
    def pending(self) -> int:
        return len(self._finished)

    def end_session(self, session: InterviewSession) -> None:
        """Queue a finished session for debrief on the next run."""
        self._finished.append(session.model_copy(deep=True))

    def reports(self) -> list[InterviewReport]:
        return list(self._reports)

    async def run_once(self) -> dict[str, Any]:
        counts = await self.process_queue(
            self._finished, self._debrief, key=lambda s: s.id, what="Interview debrief"
        )
        return {
            "processed": sum(counts.values()),
            "debriefed": counts[StepOutcome.DONE],
            "deferred": counts[StepOutcome.DEFERRED] + counts[StepOutcome.IN_PROGRESS],
        }

    async def _debrief(self, session: InterviewSession) -> StepOutcome:
        candidate, job = session.candidate, session.job
        step = debrief_step(session.id)
        resumed = self.resume(step)
        if resumed is not None:
            if resumed == StepOutcome.DONE:
                self.ctx.markers.complete_step(candidate.id, job.id, step)
            return resumed

        decision = self.ctx.markers.acquire_step(
            candidate.id, job.id, step, ttl_seconds=DEBRIEF_MARK_TTL_SECONDS
        )
        if not decision.granted:
            return StepOutcome.refused(decision)

        summarized = await self.call_collaborator(
            lambda: self.ctx.inference.summarize_interview(session),
            what="Interview debrief",
            candidate=candidate,
            job=job,
        )
        if not summarized.ok or summarized.value is None:
            return self.failure_outcome(summarized)
        debrief = summarized.value

        unanswered = session.unanswered_questions()
        score = interview_score(len(unanswered))
        recommendation = interview_recommendation(score)
        report = InterviewReport(
            session_id=session.id,
            candidate_id=candidate.id,
            job_id=job.id,
            score=score,
            recommendation=recommendation,
            summary=debrief.summary,
            unanswered=unanswered,
            verified_skills=list(debrief.verified_skills),
        )
        self._reports.appendleft(report)
        self.record_event(
            candidate,
            job,
            INTERVIEW_COMPLETED,
            f"Interview {recommendation.value} ({score}/100)",
            metadata={
                "session_id": session.id,
                "score": score,
                "recommendation": recommendation.value,
                "unanswered": len(unanswered),
            },
        )

        writes: list[Write] = []
        if recommendation in (Recommendation.STRONG_PASS, Recommendation.PASS):
            target: PipelineStage | None = PipelineStage.OFFER
        elif recommendation == Recommendation.FAIL:
            target = PipelineStage.REJECTED
        else:
            target = None
        if target is not None:
            move = StageMove(
                candidate=candidate,
                job=job,
                to_stage=target,
                from_stage=PipelineStage.INTERVIEW,
                step=f"stage_move:{target.value}:interview:{session.id}:v1",
                reason=f"interview {recommendation.value} ({score}/100)",
                ttl_seconds=DEBRIEF_MARK_TTL_SECONDS,
                evidence=[Evidence(label="Interview score", value=str(score))],
                severity=Severity.WARNING if target == PipelineStage.REJECTED else None,
            )
            writes.append(lambda: self.move_stage(move))

        skills = list(debrief.verified_skills)
        if skills:
            payload = UpdateVerifiedSkillsPayload(
                candidate_id=candidate.id, job_id=job.id, verified_skills=skills
            )
            writes.append(
                lambda: self.apply_or_propose(
                    payload,
                    candidate=candidate,
                    job=job,
                    step=f"interview:skills:{session.id}:v1",
                    title=f"Verify skills for {candidate.name}",
                    reason=f"{len(skills)} skill(s) demonstrated in interview",
                    ttl_seconds=DEBRIEF_MARK_TTL_SECONDS,
                    evidence=[Evidence(label="Verified skills", value=", ".join(skills))],
                )
            )

        if self.settle(step, writes) != StepOutcome.DONE:
            return StepOutcome.DEFERRED
        self.ctx.markers.complete_step(
            candidate.id,
            job.id,
            step,
            metadata={"score": score, "recommendation": recommendation.value},
        )
        return StepOutcome.DONE
