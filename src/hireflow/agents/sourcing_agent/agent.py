"""Sourcing agent: scans the talent pool for open jobs."""

from __future__ import annotations

from collections.abc import Iterable
import logging
from typing import Any

from hireflow.agents.base import AgentContext, AgentLoop, StageMove, StepOutcome
from hireflow.contracts.domain import CandidateMatch, SourcingMatch
from hireflow.contracts.models import Evidence, JobRef
from hireflow.contracts.ports import CandidateSearch
from hireflow.contracts.types import AgentMode, AgentType, JobCategory, PipelineStage

logger = logging.getLogger(__name__)

SOURCING_INTERVAL_SECONDS = 5 * 60
SOURCING_MARK_TTL_SECONDS = 60 * 60
SEMANTIC_THRESHOLD = 65
SHORTLIST_THRESHOLD = 75
CANDIDATE_LIMIT = 10
MATCH_HISTORY_LIMIT = 500


def sourcing_step(stage: PipelineStage) -> str:
    return f"sourcing:stage:{stage.value}:v1"


class SourcingAgent(AgentLoop):
    """Finds matching candidates for each open job and stages them.

    Strong matches go straight to the long list; the rest land in ``sourced``.
    """

    agent_type = AgentType.SOURCING
    job_name = "Autonomous Candidate Sourcing"
    category = JobCategory.SOURCING
    default_interval_seconds = SOURCING_INTERVAL_SECONDS

    def __init__(
        self,
        ctx: AgentContext,
        search: CandidateSearch,
        *,
        mode: AgentMode = AgentMode.RECOMMEND,
        semantic_threshold: int = SEMANTIC_THRESHOLD,
        shortlist_threshold: int = SHORTLIST_THRESHOLD,
        candidate_limit: int = CANDIDATE_LIMIT,
    ) -> None:
        super().__init__(ctx, mode=mode)
        self._search = search
        self._semantic_threshold = semantic_threshold
        self._shortlist_threshold = shortlist_threshold
        self._candidate_limit = candidate_limit
        self._jobs: tuple[JobRef, ...] = ()
        self._discovered: set[tuple[str, str]] = set()
        self._matches: list[SourcingMatch] = []

    def set_jobs(self, jobs: Iterable[JobRef]) -> None:
        self._jobs = tuple(job.model_copy(deep=True) for job in jobs)

    def matches(self, job_id: str | None = None) -> list[SourcingMatch]:
        """Staged or proposed matches, newest first."""
        found = [m for m in self._matches if job_id is None or m.job_id == job_id]
        return list(reversed(found))

    def match_count(self, job_id: str) -> int:
        return sum(1 for m in self._matches if m.job_id == job_id)

    def clear_matches(self, job_id: str | None = None) -> int:
        before = len(self._matches)
        self._matches = [m for m in self._matches if job_id is not None and m.job_id != job_id]
        return before - len(self._matches)

    def _remember(self, match: CandidateMatch, job: JobRef, stage: PipelineStage) -> None:
        self._matches.append(
            SourcingMatch(
                candidate_id=match.candidate.id,
                candidate_name=match.candidate.name,
                job_id=job.id,
                job_title=job.title,
                score=match.score,
                reasoning=match.reasoning,
                stage=stage,
            )
        )
        del self._matches[:-MATCH_HISTORY_LIMIT]

    async def run_once(self) -> dict[str, Any]:
        jobs = [job for job in self._jobs if job.is_open]
        matched = 0
        staged = 0
        for job in jobs:
            found = await self.call_collaborator(
                lambda job=job: self._search.search(job, self._candidate_limit),
                what="Candidate search",
                job=job,
            )
            if not found.ok:
                continue
            for match in found.value or []:
                candidate = match.candidate
                if match.score < self._semantic_threshold:
                    continue
                if candidate.id in job.candidate_ids or (candidate.id, job.id) in self._discovered:
                    continue
                matched += 1
                stage = (
                    PipelineStage.LONG_LIST
                    if match.score >= self._shortlist_threshold
                    else PipelineStage.SOURCED
                )
                outcome = self.move_stage(
                    StageMove(
                        candidate=candidate,
                        job=job,
                        to_stage=stage,
                        step=sourcing_step(stage),
                        reason=f"match score {match.score}/100 for {job.title}",
                        ttl_seconds=SOURCING_MARK_TTL_SECONDS,
                        evidence=[
                            Evidence(label="Match score", value=str(match.score)),
                            Evidence(label="Reasoning", value=match.reasoning or "n/a"),
                        ],
                    )
                )
                if outcome.settled:
                    self._discovered.add((candidate.id, job.id))
                if outcome == StepOutcome.DONE:
                    self._remember(match, job, stage)
                    staged += 1
        logger.info(
            "sourcing.scan_complete",
            extra={"extra": {"jobs": len(jobs), "matched": matched, "staged": staged}},
        )
        return {"jobs_scanned": len(jobs), "matched": matched, "staged": staged}
