"""Records exchanged between the scheduler, services, and agents."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from hireflow.contracts.types import (
    ActorType,
    AgentType,
    MarkStatus,
    PayloadType,
    PipelineStage,
    ProposalStatus,
    Severity,
)
from hireflow.orchestrator.clock import utc_now


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex[:12]}"


class CandidateRef(BaseModel):
    """Minimal view of a candidate that agents carry around."""

    id: str
    name: str
    email: str | None = None
    skills: list[str] = Field(default_factory=list)
    headline: str | None = None


class JobRef(BaseModel):
    """Minimal view of a job requisition."""

    id: str
    title: str
    status: str = "open"
    required_skills: list[str] = Field(default_factory=list)
    candidate_ids: list[str] = Field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.status.lower() in {"open", "active"}


class JobRunResult(BaseModel):
    """Outcome of one background job run."""

    model_config = ConfigDict(frozen=True)

    job_id: str
    success: bool
    message: str
    payload: Any = None
    skipped: bool = False
    timestamp: datetime = Field(default_factory=utc_now)


class ProcessingMark(BaseModel):
    """Idempotency record for one (candidate, job, step)."""

    candidate_id: str
    job_id: str
    step: str
    status: MarkStatus
    updated_at: datetime
    ttl_seconds: float | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.candidate_id, self.job_id, self.step)

    def is_stale(self, now: datetime, ttl_seconds: float) -> bool:
        return (now - self.updated_at).total_seconds() >= ttl_seconds


class Evidence(BaseModel):
    label: str
    value: str


class MoveToStagePayload(BaseModel):
    type: Literal["MOVE_CANDIDATE_TO_STAGE"] = "MOVE_CANDIDATE_TO_STAGE"
    candidate: CandidateRef
    job_id: str
    stage: PipelineStage
    from_stage: PipelineStage | None = None


class UpdateVerifiedSkillsPayload(BaseModel):
    type: Literal["UPDATE_VERIFIED_SKILLS"] = "UPDATE_VERIFIED_SKILLS"
    candidate_id: str
    job_id: str | None = None
    verified_skills: list[str] = Field(default_factory=list)
    skills_added: list[str] = Field(default_factory=list)
    badges_added: list[str] = Field(default_factory=list)


class ActivateResumeDraftPayload(BaseModel):
    type: Literal["ACTIVATE_RESUME_DRAFT"] = "ACTIVATE_RESUME_DRAFT"
    candidate_id: str
    document_id: str
    file_name: str | None = None
    parse_status: str | None = None


ProposalPayload = Annotated[
    Union[MoveToStagePayload, UpdateVerifiedSkillsPayload, ActivateResumeDraftPayload],
    Field(discriminator="type"),
]


class ProposedAction(BaseModel):
    """A pending mutation awaiting operator approval."""

    id: str = Field(default_factory=lambda: new_id("proposal"))
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    status: ProposalStatus = ProposalStatus.PROPOSED
    agent_type: AgentType
    title: str
    description: str
    candidate_id: str | None = None
    job_id: str | None = None
    payload: ProposalPayload
    evidence: list[Evidence] = Field(default_factory=list)

    def dedup_key(self) -> tuple[AgentType, str, str | None, PayloadType] | None:
        """Key under which pending proposals coalesce, or None if not eligible."""
        if self.status != ProposalStatus.PROPOSED or not self.candidate_id:
            return None
        return (self.agent_type, self.candidate_id, self.job_id, PayloadType(self.payload.type))


class PipelineEventCreate(BaseModel):
    """Fields supplied when appending to the pipeline history."""

    candidate_id: str
    candidate_name: str | None = None
    job_id: str | None = None
    job_title: str | None = None
    event_type: str
    actor_type: ActorType
    actor_id: str | None = None
    from_stage: PipelineStage | None = None
    to_stage: PipelineStage | None = None
    summary: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class PipelineEvent(PipelineEventCreate):
    """A stored pipeline event."""

    id: int
    created_at: datetime


class Notification(BaseModel):
    """Human-readable status line for operators."""

    id: str = Field(default_factory=lambda: new_id("note"))
    severity: Severity
    message: str
    title: str | None = None
    agent_type: AgentType | None = None
    requires_confirmation: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)
