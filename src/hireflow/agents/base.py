"""Shared scaffolding for the autonomous recruiting agents."""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Any, ClassVar, TypeVar

from hireflow.contracts.events import ACTION_PROPOSED
from hireflow.contracts.models import (
    CandidateRef,
    Evidence,
    JobRef,
    JobRunResult,
    MoveToStagePayload,
    PipelineEventCreate,
    ProposalPayload,
)
from hireflow.contracts.ports import InferenceClient, PipelineWriter
from hireflow.contracts.results import InferenceResult
from hireflow.contracts.types import (
    ActorType,
    AgentMode,
    AgentType,
    JobCategory,
    PipelineStage,
    Severity,
)
from hireflow.orchestrator.retry import RetryPolicy, Sleep, retry_transient
from hireflow.orchestrator.scheduler import BackgroundJobScheduler
from hireflow.services.mutations import execute_payload
from hireflow.services.notifications import Notifier
from hireflow.services.pipeline_event_log import PipelineEventLog
from hireflow.services.processing_marks import (
    DEFAULT_TTL_SECONDS,
    MarkDecision,
    ProcessingMarkerService,
)
from hireflow.services.proposed_actions import ProposedActionQueue

T = TypeVar("T")
W = TypeVar("W")

logger = logging.getLogger(__name__)

# A work item that raises this many times is handed to the operator.
MAX_ITEM_CRASHES = 3


class AgentNotRegisteredError(RuntimeError):
    """Raised when an agent is driven before its job is registered."""


class StepOutcome(str, Enum):
    """What happened to one unit of agent work."""

    DONE = "done"
    ALREADY_DONE = "already_done"
    IN_PROGRESS = "in_progress"
    DEFERRED = "deferred"
    FAILED = "failed"

    @property
    def settled(self) -> bool:
        return self in (StepOutcome.DONE, StepOutcome.ALREADY_DONE)

    @property
    def retry_later(self) -> bool:
        return self in (StepOutcome.IN_PROGRESS, StepOutcome.DEFERRED)

    @classmethod
    def refused(cls, decision: MarkDecision) -> StepOutcome:
        if decision == MarkDecision.SKIPPED_COMPLETED:
            return cls.ALREADY_DONE
        return cls.IN_PROGRESS


Write = Callable[[], StepOutcome]


@dataclass(slots=True)
class AgentContext:
    """Collaborators every agent is constructed with."""

    scheduler: BackgroundJobScheduler
    markers: ProcessingMarkerService
    proposals: ProposedActionQueue
    events: PipelineEventLog
    writer: PipelineWriter
    notifier: Notifier
    inference: InferenceClient
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    sleep: Sleep = asyncio.sleep


@dataclass(slots=True)
class StageMove:
    """A stage change an agent wants to make for one candidate."""

    candidate: CandidateRef
    job: JobRef
    to_stage: PipelineStage
    step: str
    reason: str
    from_stage: PipelineStage | None = None
    ttl_seconds: float = DEFAULT_TTL_SECONDS
    evidence: list[Evidence] = field(default_factory=list)
    severity: Severity | None = None


class AgentLoop(ABC):
    """Base class wiring an agent's ``run_once`` into the scheduler.

    Subclasses implement ``run_once``; it must take a snapshot of whatever
    work is pending when it starts, since a later tick may run against
    different inputs.
    """

    agent_type: ClassVar[AgentType]
    job_name: ClassVar[str]
    category: ClassVar[JobCategory]
    default_interval_seconds: ClassVar[float]

    def __init__(self, ctx: AgentContext, *, mode: AgentMode = AgentMode.RECOMMEND) -> None:
        self.ctx = ctx
        self.mode = mode
        self._job_id: str | None = None
        self._parked: dict[str, list[Write]] = {}
        self._crashes: dict[str, int] = {}

    @property
    def actor_id(self) -> str:
        return f"{self.agent_type.value.lower()}_agent"

    @property
    def job_id(self) -> str | None:
        return self._job_id

    def register(self, *, enabled: bool = False, interval_seconds: float | None = None) -> str:
        if self._job_id is not None:
            return self._job_id
        self._job_id = self.ctx.scheduler.register(
            self.job_name,
            self.category,
            interval_seconds or self.default_interval_seconds,
            self.run_once,
            enabled=enabled,
        )
        logger.info(
            "agent.registered",
            extra={"extra": {"agent": self.agent_type.value, "mode": self.mode.value}},
        )
        return self._job_id

    def set_enabled(self, enabled: bool) -> None:
        self.ctx.scheduler.set_enabled(self._require_job(), enabled)

    def set_mode(self, mode: AgentMode) -> None:
        self.mode = mode
        logger.info(
            "agent.mode_changed",
            extra={"extra": {"agent": self.agent_type.value, "mode": mode.value}},
        )

    async def trigger(self) -> JobRunResult:
        """Run the agent now through the scheduler."""
        return await self.ctx.scheduler.run(self._require_job())

    def status(self) -> dict[str, Any]:
        job = self.ctx.scheduler.get_job(self._job_id) if self._job_id else None
        recent = self.ctx.scheduler.get_results(self._job_id, 5) if self._job_id else []
        return {
            "agent_type": self.agent_type.value,
            "job_name": self.job_name,
            "initialized": job is not None,
            "enabled": job.enabled if job else False,
            "mode": self.mode.value,
            "status": job.status.value if job else None,
            "interval_seconds": job.interval_seconds if job else self.default_interval_seconds,
            "last_run": job.last_run if job else None,
            "next_run": job.next_run if job else None,
            "recent_results": [r.model_dump(mode="json") for r in recent],
        }

    @abstractmethod
    async def run_once(self) -> dict[str, Any]:
        """Process one tick of work and return a JSON-friendly summary."""

    def move_stage(self, move: StageMove) -> StepOutcome:
        """Move a candidate, or propose the move, exactly once per step."""
        payload = MoveToStagePayload(
            candidate=move.candidate,
            job_id=move.job.id,
            stage=move.to_stage,
            from_stage=move.from_stage,
        )
        return self.apply_or_propose(
            payload,
            candidate=move.candidate,
            job=move.job,
            step=move.step,
            title=f"Move {move.candidate.name} to {move.to_stage.value}",
            reason=move.reason,
            ttl_seconds=move.ttl_seconds,
            evidence=move.evidence,
            severity=move.severity,
        )

    def apply_or_propose(
        self,
        payload: ProposalPayload,
        *,
        candidate: CandidateRef,
        job: JobRef | None,
        step: str,
        title: str,
        reason: str,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        evidence: Iterable[Evidence] = (),
        severity: Severity | None = None,
    ) -> StepOutcome:
        """Acquire the step mark, then write or propose according to the mode.

        A direct write the pipeline refuses returns ``DEFERRED`` and leaves the
        mark ``started``, so the step can be reclaimed once its TTL lapses.
        """
        ctx = self.ctx
        job_key = job.id if job else ""
        to_stage = payload.stage if isinstance(payload, MoveToStagePayload) else None
        decision = ctx.markers.acquire_step(
            candidate.id,
            job_key,
            step,
            ttl_seconds=ttl_seconds,
            metadata={"agent": self.agent_type.value, "payload_type": payload.type},
        )
        if not decision.granted:
            return StepOutcome.refused(decision)

        metadata: dict[str, Any] = {"step": step, "mode": self.mode.value}
        if self.mode == AgentMode.AUTO_WRITE:
            outcome = execute_payload(ctx.writer, payload)
            if not outcome.ok:
                reason_text = outcome.degraded.reason if outcome.degraded else "unavailable"
                ctx.notifier.notify(
                    Severity.ERROR,
                    f"Could not update {candidate.name}: {reason_text}",
                    agent_type=self.agent_type,
                    metadata={"candidate_id": candidate.id, "job_id": job_key, "step": step},
                )
                return StepOutcome.DEFERRED
            event_type = outcome.event_type
            from_stage = outcome.from_stage
            summary = f"{outcome.summary}: {reason}"
            note = f"{outcome.summary} ({reason})"
            note_severity = severity or Severity.SUCCESS
            metadata.update(outcome.metadata)
        else:
            action = ctx.proposals.add(
                agent_type=self.agent_type,
                title=title,
                description=reason,
                payload=payload,
                candidate_id=candidate.id,
                job_id=job.id if job else None,
                evidence=evidence,
            )
            event_type = ACTION_PROPOSED
            from_stage = getattr(payload, "from_stage", None)
            summary = f"Proposed: {title}. {reason}"
            note = f"Proposal created: {title} ({reason})"
            note_severity = severity or Severity.INFO
            metadata["action_id"] = action.id

        self.record_event(
            candidate,
            job,
            event_type,
            summary,
            from_stage=from_stage,
            to_stage=to_stage,
            metadata=metadata,
        )
        ctx.markers.complete_step(candidate.id, job_key, step, metadata=metadata)
        ctx.notifier.notify(
            note_severity,
            note,
            agent_type=self.agent_type,
            metadata={"candidate_id": candidate.id, "job_id": job_key},
        )
        return StepOutcome.DONE

    def settle(self, key: str, writes: Iterable[Write]) -> StepOutcome:
        """Run follow-up writes, in order, that must land before an outer step completes.

        The first write that does not settle is parked under ``key`` together
        with every write after it. Only parked writes are re-run by ``resume``,
        so upstream work such as scoring is not repeated.
        """
        unsettled = list(writes)
        while unsettled and unsettled[0]().settled:
            unsettled.pop(0)
        if unsettled:
            self._parked[key] = unsettled
            logger.info(
                "agent.writes_parked",
                extra={
                    "extra": {
                        "agent": self.agent_type.value,
                        "key": key,
                        "writes": len(unsettled),
                    }
                },
            )
            return StepOutcome.DEFERRED
        self._parked.pop(key, None)
        return StepOutcome.DONE

    def resume(self, key: str) -> StepOutcome | None:
        """Re-run writes parked under ``key``; None when nothing is parked."""
        writes = self._parked.get(key)
        if writes is None:
            return None
        return self.settle(key, writes)

    @staticmethod
    def failure_outcome(result: InferenceResult[Any]) -> StepOutcome:
        """Retryable collaborator failures are retried later; others are dropped."""
        if result.failure is not None and not result.failure.retryable:
            return StepOutcome.FAILED
        return StepOutcome.DEFERRED

    async def process_queue(
        self,
        queue: list[W],
        handle: Callable[[W], Awaitable[StepOutcome]],
        *,
        key: Callable[[W], str],
        what: str,
    ) -> dict[StepOutcome, int]:
        """Handle a snapshot of ``queue`` one item at a time.

        One item raising does not stop the batch. Items to retry later, and
        items a cancelled run never reached, go back to the front of ``queue``.
        """
        batch = list(queue)
        queue.clear()
        counts = dict.fromkeys(StepOutcome, 0)
        retry: list[W] = []
        reached = 0
        try:
            for item in batch:
                try:
                    outcome = await handle(item)
                except Exception as exc:  # noqa: BLE001
                    outcome = self._item_crashed(key(item), what, exc)
                else:
                    self._crashes.pop(key(item), None)
                reached += 1
                counts[outcome] += 1
                if outcome.retry_later:
                    retry.append(item)
        finally:
            queue[:0] = retry + batch[reached:]
        return counts

    def _item_crashed(self, item_key: str, what: str, exc: Exception) -> StepOutcome:
        crashes = self._crashes.get(item_key, 0) + 1
        logger.exception(
            "agent.item_failed",
            extra={
                "extra": {
                    "agent": self.agent_type.value,
                    "item": item_key,
                    "crashes": crashes,
                }
            },
        )
        detail = str(exc) or exc.__class__.__name__
        if crashes >= MAX_ITEM_CRASHES:
            self._crashes.pop(item_key, None)
            self.ctx.notifier.notify(
                Severity.ERROR,
                f"{what} for {item_key} failed {crashes} times "
                f"and needs manual follow-up: {detail}",
                agent_type=self.agent_type,
                requires_confirmation=True,
                metadata={"item": item_key, "attempted": crashes},
            )
            return StepOutcome.FAILED
        self._crashes[item_key] = crashes
        self.ctx.notifier.notify(
            Severity.WARNING,
            f"{what} for {item_key} failed and will be retried: {detail}",
            agent_type=self.agent_type,
            requires_confirmation=True,
            metadata={"item": item_key, "attempted": crashes},
        )
        return StepOutcome.DEFERRED

    async def call_collaborator(
        self,
        op: Callable[[], Awaitable[InferenceResult[T]]],
        *,
        what: str,
        candidate: CandidateRef | None = None,
        job: JobRef | None = None,
    ) -> InferenceResult[T]:
        """Call a collaborator with bounded retry and report a final failure."""
        outcome = await retry_transient(
            op,
            self.ctx.retry_policy,
            sleep=self.ctx.sleep,
            label=f"{self.job_name}:{what}",
        )
        failure = outcome.result.failure
        if failure is None:
            return outcome.result

        subject = f" for {candidate.name}" if candidate else ""
        metadata = {
            "code": failure.code,
            "attempted": outcome.attempts,
            "candidate_id": candidate.id if candidate else None,
            "job_id": job.id if job else None,
        }
        if failure.retryable:
            self.ctx.notifier.notify(
                Severity.WARNING,
                f"{what}{subject} is temporarily unavailable after "
                f"{outcome.attempts} attempts: {failure.message}",
                agent_type=self.agent_type,
                requires_confirmation=True,
                metadata=metadata,
            )
        else:
            self.ctx.notifier.notify(
                Severity.ERROR,
                f"{what}{subject} failed: {failure.message}",
                agent_type=self.agent_type,
                metadata=metadata,
            )
        return outcome.result

    def record_event(
        self,
        candidate: CandidateRef,
        job: JobRef | None,
        event_type: str,
        summary: str,
        *,
        from_stage: PipelineStage | None = None,
        to_stage: PipelineStage | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        self.ctx.events.log_event(
            PipelineEventCreate(
                candidate_id=candidate.id,
                candidate_name=candidate.name,
                job_id=job.id if job else None,
                job_title=job.title if job else None,
                event_type=event_type,
                actor_type=ActorType.AGENT,
                actor_id=self.actor_id,
                from_stage=from_stage,
                to_stage=to_stage,
                summary=summary,
                metadata=dict(metadata or {}),
            )
        )

    def _require_job(self) -> str:
        if self._job_id is None:
            raise AgentNotRegisteredError(f"{self.job_name} has not been registered")
        return self._job_id
