"""Deterministic collaborators used for local runs, demos, and tests."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from datetime import datetime, timedelta

from hireflow.contracts.domain import (
    CandidateMatch,
    InterviewDebrief,
    InterviewSession,
    PipelineSnapshot,
    SchedulingRequest,
    ScreeningRequest,
    ScreeningScore,
)
from hireflow.contracts.models import CandidateRef, JobRef
from hireflow.contracts.results import InferenceResult
from hireflow.orchestrator.clock import Clock, utc_now
from hireflow.orchestrator.retry import Sleep


def _normalized(skills: Iterable[str]) -> set[str]:
    return {s.strip().lower() for s in skills if s and s.strip()}


def skill_overlap(candidate: CandidateRef, job: JobRef) -> tuple[list[str], list[str]]:
    """Return (matched, missing) required skills for the job."""
    have = _normalized(candidate.skills)
    matched = [s for s in job.required_skills if s.lower() in have]
    missing = [s for s in job.required_skills if s.lower() not in have]
    return matched, missing


class KeywordCandidateSearch:
    """Scores a fixed talent pool by required-skill coverage."""

    def __init__(self, pool: Iterable[CandidateRef]) -> None:
        self._pool = tuple(pool)

    async def search(self, job: JobRef, limit: int) -> InferenceResult[list[CandidateMatch]]:
        if not job.required_skills:
            return InferenceResult.success([])
        matches: list[CandidateMatch] = []
        for candidate in self._pool:
            matched, _ = skill_overlap(candidate, job)
            if not matched:
                continue
            score = round(100 * len(matched) / len(job.required_skills))
            matches.append(
                CandidateMatch(
                    candidate=candidate,
                    score=score,
                    reasoning=f"covers {', '.join(matched)}",
                )
            )
        matches.sort(key=lambda m: (-m.score, m.candidate.id))
        return InferenceResult.success(matches[:limit])


class HeuristicInferenceClient:
    """Rule-based stand-in for the model-backed inference client."""

    async def score_screening(self, request: ScreeningRequest) -> InferenceResult[ScreeningScore]:
        matched, missing = skill_overlap(request.candidate, request.job)
        required = len(request.job.required_skills) or 1
        score = 40 + round(60 * len(matched) / required)
        return InferenceResult.success(
            ScreeningScore(
                score=min(score, 100),
                summary=f"{len(matched)} of {len(request.job.required_skills)} required skills",
                strengths=matched,
                concerns=[f"missing {skill}" for skill in missing],
            )
        )

    async def summarize_interview(
        self, session: InterviewSession
    ) -> InferenceResult[InterviewDebrief]:
        answered = [q for q in session.questions if q not in session.unanswered_questions()]
        transcript = " ".join(session.answers.values()).lower()
        verified = [skill for skill in session.candidate.skills if skill.lower() in transcript]
        return InferenceResult.success(
            InterviewDebrief(
                summary=f"Answered {len(answered)} of {len(session.questions)} questions",
                strengths=[f"discussed {skill}" for skill in verified],
                concerns=[f"no answer to: {q}" for q in session.unanswered_questions()],
                verified_skills=verified,
            )
        )

    async def pipeline_insight(self, snapshot: PipelineSnapshot) -> InferenceResult[str]:
        if snapshot.open_jobs and not snapshot.total_candidates:
            return InferenceResult.success(
                f"{snapshot.open_jobs} open job(s) have no candidates in the pipeline"
            )
        return InferenceResult.success("")


class SimulatedSlotNegotiator:
    """Offers three slots starting the next day and accepts the first.

    ``response_delay_seconds`` simulates the wait for the candidate's reply.
    """

    def __init__(
        self,
        *,
        clock: Clock = utc_now,
        response_delay_seconds: float = 0.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._clock = clock
        self._delay = response_delay_seconds
        self._sleep = sleep

    async def propose_slots(self, request: SchedulingRequest) -> InferenceResult[list[datetime]]:
        start = self._clock().replace(minute=0, second=0, microsecond=0) + timedelta(days=1)
        start = start.replace(hour=10)
        return InferenceResult.success(
            [start, start + timedelta(hours=4), start + timedelta(days=1)]
        )

    async def await_selection(
        self, request: SchedulingRequest, slots: list[datetime]
    ) -> InferenceResult[datetime]:
        if not slots:
            return InferenceResult.fail("NO_SLOTS", "no slots were offered")
        if self._delay:
            await self._sleep(self._delay)
        return InferenceResult.success(slots[0])
