"""In-memory candidate pipeline: stage per (candidate, job) plus profile updates."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
import logging

from hireflow.contracts.events import CANDIDATE_STAGED
from hireflow.contracts.models import CandidateRef
from hireflow.contracts.results import StoreResult
from hireflow.contracts.types import PipelineStage
from hireflow.orchestrator.event_bus import Event, EventBus

logger = logging.getLogger(__name__)


class InMemoryPipelineWriter:
    """PipelineWriter backed by dictionaries.

    Stage moves are announced on the bus as ``candidate.staged`` so listeners
    can refresh their views.
    """

    def __init__(self, bus: EventBus | None = None) -> None:
        self._bus = bus
        self._stages: dict[tuple[str, str], PipelineStage] = {}
        self._candidates: dict[str, CandidateRef] = {}
        self._verified: dict[str, list[str]] = {}
        self._active_resume: dict[str, str] = {}

    def seed(self, candidate: CandidateRef, job_id: str, stage: PipelineStage) -> None:
        """Place a candidate without announcing it."""
        self._candidates[candidate.id] = candidate
        self._stages[(candidate.id, job_id)] = stage

    def move_to_stage(
        self, candidate: CandidateRef, job_id: str, stage: PipelineStage
    ) -> StoreResult[PipelineStage | None]:
        key = (candidate.id, job_id)
        previous = self._stages.get(key)
        self._candidates[candidate.id] = candidate
        self._stages[key] = stage
        logger.info(
            "pipeline.stage_moved",
            extra={
                "extra": {
                    "candidate_id": candidate.id,
                    "job_id": job_id,
                    "from_stage": previous.value if previous else None,
                    "to_stage": stage.value,
                }
            },
        )
        if self._bus is not None:
            self._bus.publish(
                Event(
                    event_type=CANDIDATE_STAGED,
                    subject_id=candidate.id,
                    payload={
                        "candidate_id": candidate.id,
                        "job_id": job_id,
                        "stage": stage.value,
                        "from_stage": previous.value if previous else None,
                    },
                )
            )
        return StoreResult.of(previous)

    def update_verified_skills(
        self, candidate_id: str, skills: Iterable[str]
    ) -> StoreResult[list[str]]:
        current = self._verified.setdefault(candidate_id, [])
        known = {s.lower() for s in current}
        added: list[str] = []
        for skill in skills:
            if skill and skill.lower() not in known:
                known.add(skill.lower())
                current.append(skill)
                added.append(skill)
        return StoreResult.of(added)

    def activate_draft(self, candidate_id: str, document_id: str) -> StoreResult[None]:
        self._active_resume[candidate_id] = document_id
        return StoreResult.of(None)

    def stage_of(self, candidate_id: str, job_id: str) -> PipelineStage | None:
        return self._stages.get((candidate_id, job_id))

    def stage_counts(self, job_ids: Iterable[str]) -> StoreResult[dict[str, dict[str, int]]]:
        wanted = set(job_ids)
        counts: dict[str, Counter[str]] = {job_id: Counter() for job_id in wanted}
        for (_, job_id), stage in self._stages.items():
            if job_id in wanted:
                counts[job_id][stage.value] += 1
        return StoreResult.of({job_id: dict(c) for job_id, c in counts.items()})

    def candidates_for(self, job_id: str) -> list[str]:
        return [cid for (cid, jid) in self._stages if jid == job_id]

    def verified_skills(self, candidate_id: str) -> list[str]:
        return list(self._verified.get(candidate_id, []))

    def active_resume(self, candidate_id: str) -> str | None:
        return self._active_resume.get(candidate_id)
