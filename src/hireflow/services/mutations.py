"""Executes a proposal payload against the candidate pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import assert_never

from hireflow.contracts.events import DRAFT_ACTIVATED, SKILLS_VERIFIED, STAGE_MOVED
from hireflow.contracts.models import (
    ActivateResumeDraftPayload,
    MoveToStagePayload,
    ProposalPayload,
    UpdateVerifiedSkillsPayload,
)
from hireflow.contracts.ports import PipelineWriter
from hireflow.contracts.results import Degraded
from hireflow.contracts.types import PipelineStage


@dataclass(slots=True)
class MutationOutcome:
    """What a payload did, ready to be written to the pipeline history."""

    event_type: str
    summary: str
    from_stage: PipelineStage | None = None
    to_stage: PipelineStage | None = None
    metadata: dict[str, object] = field(default_factory=dict)
    degraded: Degraded | None = None

    @property
    def ok(self) -> bool:
        return self.degraded is None


def execute_payload(writer: PipelineWriter, payload: ProposalPayload) -> MutationOutcome:
    """Apply ``payload`` through ``writer``.

    Shared by agents in auto-write mode and by the operator apply path so both
    mutate the pipeline identically.
    """
    if isinstance(payload, MoveToStagePayload):
        moved = payload.candidate
        result = writer.move_to_stage(moved, payload.job_id, payload.stage)
        previous = result.value if result.ok else None
        return MutationOutcome(
            event_type=STAGE_MOVED,
            summary=f"Moved {moved.name} to {payload.stage.value}",
            from_stage=previous or payload.from_stage,
            to_stage=payload.stage,
            degraded=result.degraded,
        )
    if isinstance(payload, UpdateVerifiedSkillsPayload):
        result = writer.update_verified_skills(payload.candidate_id, payload.verified_skills)
        added = result.value or []
        return MutationOutcome(
            event_type=SKILLS_VERIFIED,
            summary=f"Verified {len(payload.verified_skills)} skill(s)",
            metadata={"skills_added": added, "badges_added": list(payload.badges_added)},
            degraded=result.degraded,
        )
    if isinstance(payload, ActivateResumeDraftPayload):
        result = writer.activate_draft(payload.candidate_id, payload.document_id)
        label = payload.file_name or payload.document_id
        return MutationOutcome(
            event_type=DRAFT_ACTIVATED,
            summary=f"Activated resume draft {label}",
            metadata={"document_id": payload.document_id},
            degraded=result.degraded,
        )
    assert_never(payload)
