"""Collaborator interfaces the agents depend on."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol

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
from hireflow.contracts.results import InferenceResult, StoreResult
from hireflow.contracts.types import PipelineStage


class CandidateSearch(Protocol):
    """Finds talent-pool candidates that match a job."""

    async def search(self, job: JobRef, limit: int) -> InferenceResult[list[CandidateMatch]]:
        """Return scored matches, best first."""


class InferenceClient(Protocol):
    """Scoring and summarization used by the agents."""

    async def score_screening(self, request: ScreeningRequest) -> InferenceResult[ScreeningScore]:
        """Score a candidate against a job, 0-100."""

    async def summarize_interview(
        self, session: InterviewSession
    ) -> InferenceResult[InterviewDebrief]:
        """Summarize an interview transcript."""

    async def pipeline_insight(self, snapshot: PipelineSnapshot) -> InferenceResult[str]:
        """Return a one-line observation about the pipeline, or an empty string."""


class SlotNegotiator(Protocol):
    """Proposes interview slots and waits for the candidate to pick one."""

    async def propose_slots(self, request: SchedulingRequest) -> InferenceResult[list[datetime]]:
        """Offer candidate-facing slots."""

    async def await_selection(
        self, request: SchedulingRequest, slots: list[datetime]
    ) -> InferenceResult[datetime]:
        """Return the slot the candidate accepted."""


class PipelineWriter(Protocol):
    """Candidate pipeline mutations."""

    def move_to_stage(
        self, candidate: CandidateRef, job_id: str, stage: PipelineStage
    ) -> StoreResult[PipelineStage | None]:
        """Move the candidate; the value is the previous stage."""

    def update_verified_skills(
        self, candidate_id: str, skills: Iterable[str]
    ) -> StoreResult[list[str]]:
        """Record verified skills; the value is the skills newly added."""

    def activate_draft(self, candidate_id: str, document_id: str) -> StoreResult[None]:
        """Make an uploaded resume draft the candidate's active resume."""

    def stage_of(self, candidate_id: str, job_id: str) -> PipelineStage | None:
        """Current stage of the candidate for the job."""

    def stage_counts(self, job_ids: Iterable[str]) -> StoreResult[dict[str, dict[str, int]]]:
        """Per-job counts keyed by stage value."""
