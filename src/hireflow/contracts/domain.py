"""Work items and outputs of the individual recruiting agents."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from hireflow.contracts.models import CandidateRef, JobRef, new_id
from hireflow.contracts.types import (
    InterviewStatus,
    MeetingProvider,
    PipelineStage,
    Recommendation,
    Severity,
)
from hireflow.orchestrator.clock import utc_now


class CandidateMatch(BaseModel):
    """Search hit for a job, scored 0-100."""

    candidate: CandidateRef
    score: int = Field(ge=0, le=100)
    reasoning: str = ""


class ScreeningRequest(BaseModel):
    candidate: CandidateRef
    job: JobRef
    requested_at: datetime = Field(default_factory=utc_now)


class ScreeningScore(BaseModel):
    """Raw collaborator answer for a screening."""

    score: int = Field(ge=0, le=100)
    summary: str
    strengths: list[str] = Field(default_factory=list)
    concerns: list[str] = Field(default_factory=list)


class ScreeningResult(BaseModel):
    candidate_id: str
    candidate_name: str
    job_id: str
    job_title: str
    score: int
    recommendation: Recommendation
    summary: str
    strengths: list[str] = Field(default_factory=list)
    concerns: list[str] = Field(default_factory=list)
    screened_at: datetime = Field(default_factory=utc_now)


class SchedulingRequest(BaseModel):
    candidate: CandidateRef
    job: JobRef
    interview_type: str = "technical"
    requested_at: datetime = Field(default_factory=utc_now)

    @property
    def interview_id(self) -> str:
        return f"interview_{self.job.id}_{self.candidate.id}_{self.interview_type}"


class RescheduleRequest(BaseModel):
    interview_id: str
    requested_by: Literal["candidate", "hiring_manager"] = "candidate"
    reason: str | None = None
    requested_at: datetime = Field(default_factory=utc_now)


class RescheduleEntry(BaseModel):
    previous_time: datetime
    new_time: datetime
    requested_by: str
    reason: str | None = None
    requested_at: datetime
    processed_at: datetime = Field(default_factory=utc_now)


class ScheduledInterview(BaseModel):
    interview_id: str
    candidate_id: str
    job_id: str
    interview_type: str
    scheduled_at: datetime
    proposed_slots: list[datetime] = Field(default_factory=list)
    meeting_provider: MeetingProvider = MeetingProvider.GOOGLE_MEET
    meeting_link: str = ""
    status: InterviewStatus = InterviewStatus.CONFIRMED
    reschedule_history: list[RescheduleEntry] = Field(default_factory=list)


class SourcingMatch(BaseModel):
    """A candidate the sourcing agent staged or proposed for a job."""

    candidate_id: str
    candidate_name: str
    job_id: str
    job_title: str
    score: int
    reasoning: str = ""
    stage: PipelineStage
    discovered_at: datetime = Field(default_factory=utc_now)


class InterviewSession(BaseModel):
    """A finished interview awaiting debrief."""

    id: str = Field(default_factory=lambda: new_id("session"))
    candidate: CandidateRef
    job: JobRef
    questions: list[str] = Field(default_factory=list)
    answers: dict[str, str] = Field(default_factory=dict)
    ended_at: datetime = Field(default_factory=utc_now)

    def unanswered_questions(self) -> list[str]:
        return [q for q in self.questions if not (self.answers.get(q) or "").strip()]


class InterviewDebrief(BaseModel):
    """Collaborator summary of an interview transcript."""

    summary: str
    strengths: list[str] = Field(default_factory=list)
    concerns: list[str] = Field(default_factory=list)
    verified_skills: list[str] = Field(default_factory=list)


class InterviewReport(BaseModel):
    session_id: str
    candidate_id: str
    job_id: str
    score: int
    recommendation: Recommendation
    summary: str
    unanswered: list[str] = Field(default_factory=list)
    verified_skills: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)


class PipelineSnapshot(BaseModel):
    """Stage counts across open jobs at one point in time."""

    id: str = Field(default_factory=lambda: new_id("snapshot"))
    created_at: datetime = Field(default_factory=utc_now)
    open_jobs: int
    total_candidates: int
    stage_counts: dict[str, int] = Field(default_factory=dict)
    job_stage_counts: dict[str, dict[str, int]] = Field(default_factory=dict)

    def count(self, *stages: str) -> int:
        return sum(self.stage_counts.get(stage, 0) for stage in stages)


class AnalyticsAlert(BaseModel):
    id: str = Field(default_factory=lambda: new_id("alert"))
    kind: str
    severity: Severity
    title: str
    message: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)
