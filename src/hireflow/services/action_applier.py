"""Operator decisions on proposed actions."""

from __future__ import annotations

import logging

from hireflow.contracts.events import ACTION_DISMISSED
from hireflow.contracts.models import (
    ActivateResumeDraftPayload,
    Evidence,
    PipelineEventCreate,
    ProposedAction,
)
from hireflow.contracts.ports import PipelineWriter
from hireflow.contracts.types import ActorType, AgentType, ProposalStatus, Severity
from hireflow.services.mutations import execute_payload
from hireflow.services.notifications import Notifier
from hireflow.services.pipeline_event_log import PipelineEventLog
from hireflow.services.proposed_actions import ProposedActionQueue

logger = logging.getLogger(__name__)


class ProposalApplyError(RuntimeError):
    """Raised when the pipeline could not perform an approved proposal."""

    def __init__(self, action_id: str, reason: str) -> None:
        super().__init__(f"could not apply {action_id}: {reason}")
        self.action_id = action_id
        self.reason = reason


class ProposalApplier:
    """Applies or dismisses proposals on behalf of an operator."""

    def __init__(
        self,
        queue: ProposedActionQueue,
        writer: PipelineWriter,
        events: PipelineEventLog,
        notifier: Notifier,
    ) -> None:
        self._queue = queue
        self._writer = writer
        self._events = events
        self._notifier = notifier

    def apply(self, action_id: str, *, actor_id: str = "operator") -> ProposedAction | None:
        """Perform the proposal's mutation and mark it applied.

        Returns None for unknown ids. Proposals that were already applied or
        dismissed are returned untouched, without repeating the mutation.
        """
        action = self._queue.get(action_id)
        if action is None:
            return None
        if action.status != ProposalStatus.PROPOSED:
            return action

        outcome = execute_payload(self._writer, action.payload)
        if not outcome.ok:
            reason = outcome.degraded.reason if outcome.degraded else "unknown"
            self._notifier.notify(
                Severity.WARNING,
                f"Could not apply '{action.title}': {reason}",
                agent_type=action.agent_type,
                metadata={"action_id": action.id},
            )
            raise ProposalApplyError(action.id, reason)

        applied = self._queue.mark_status(action.id, ProposalStatus.APPLIED) or action
        if action.candidate_id:
            self._events.log_event(
                PipelineEventCreate(
                    candidate_id=action.candidate_id,
                    job_id=action.job_id,
                    event_type=outcome.event_type,
                    actor_type=ActorType.USER,
                    actor_id=actor_id,
                    from_stage=outcome.from_stage,
                    to_stage=outcome.to_stage,
                    summary=f"{outcome.summary} (approved proposal)",
                    metadata={"action_id": action.id, **outcome.metadata},
                )
            )
        self._notifier.notify(
            Severity.SUCCESS,
            f"Applied: {action.title}",
            agent_type=action.agent_type,
            metadata={"action_id": action.id},
        )
        logger.info(
            "proposals.applied",
            extra={"extra": {"action_id": action.id, "actor_id": actor_id}},
        )
        return applied

    def dismiss(self, action_id: str, *, actor_id: str = "operator") -> ProposedAction | None:
        action = self._queue.get(action_id)
        if action is None:
            return None
        if action.status != ProposalStatus.PROPOSED:
            return action
        dismissed = self._queue.mark_status(action.id, ProposalStatus.DISMISSED) or action
        if action.candidate_id:
            self._events.log_event(
                PipelineEventCreate(
                    candidate_id=action.candidate_id,
                    job_id=action.job_id,
                    event_type=ACTION_DISMISSED,
                    actor_type=ActorType.USER,
                    actor_id=actor_id,
                    summary=f"Dismissed proposal: {action.title}",
                    metadata={"action_id": action.id},
                )
            )
        return dismissed


def propose_draft_activation(
    queue: ProposedActionQueue,
    *,
    candidate_id: str,
    document_id: str,
    file_name: str | None = None,
    parse_status: str | None = None,
) -> ProposedAction:
    """Queue an uploaded resume draft for operator activation."""
    label = file_name or document_id
    return queue.add(
        agent_type=AgentType.USER,
        title="Activate resume draft",
        description=f"Make {label} the active resume",
        payload=ActivateResumeDraftPayload(
            candidate_id=candidate_id,
            document_id=document_id,
            file_name=file_name,
            parse_status=parse_status,
        ),
        evidence=[Evidence(label="Parse status", value=parse_status or "unknown")],
    )
