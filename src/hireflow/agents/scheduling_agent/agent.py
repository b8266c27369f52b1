"""Scheduling agent: negotiates interview slots and confirms them."""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any

from hireflow.agents.base import AgentContext, AgentLoop, StageMove, StepOutcome, Write
from hireflow.contracts.domain import (
    RescheduleEntry,
    RescheduleRequest,
    ScheduledInterview,
    SchedulingRequest,
)
from hireflow.contracts.events import (
    RESCHEDULE_REQUESTED,
    SCHEDULING_CONFIRMED,
    SCHEDULING_PROPOSED,
    SCHEDULING_REQUESTED,
    SCHEDULING_RESCHEDULED,
)
from hireflow.contracts.models import Evidence
from hireflow.contracts.ports import SlotNegotiator
from hireflow.contracts.results import InferenceResult
from hireflow.contracts.types import (
    AgentMode,
    AgentType,
    InterviewStatus,
    JobCategory,
    MeetingProvider,
    PipelineStage,
    Severity,
)

logger = logging.getLogger(__name__)

SCHEDULING_INTERVAL_SECONDS = 2 * 60 * 60
CONFIRM_MARK_TTL_SECONDS = 10 * 60


class UnknownInterviewError(LookupError):
    """Raised when a reschedule names an interview that was never confirmed."""


def confirm_step(interview_id: str) -> str:
    return f"scheduling:confirm:{interview_id}:v1"


def reschedule_step(interview_id: str, requested_at: datetime) -> str:
    return f"scheduling:reschedule:{interview_id}:{requested_at.isoformat()}"


def meeting_link(provider: MeetingProvider, interview_id: str) -> str:
    # Placeholder join links until a calendar integration issues real ones.
    if provider == MeetingProvider.MS_TEAMS:
        return f"https://teams.microsoft.com/l/meetup-join/placeholder-{interview_id}"
    return "https://meet.google.com/new"


class SchedulingAgent(AgentLoop):
    """Turns scheduling requests into confirmed interviews and handles reschedules."""

    agent_type = AgentType.SCHEDULING
    job_name = "Autonomous Interview Scheduling"
    category = JobCategory.SCHEDULING
    default_interval_seconds = SCHEDULING_INTERVAL_SECONDS

    def __init__(
        self,
        ctx: AgentContext,
        negotiator: SlotNegotiator,
        *,
        mode: AgentMode = AgentMode.RECOMMEND,
        meeting_provider: MeetingProvider = MeetingProvider.GOOGLE_MEET,
    ) -> None:
        super().__init__(ctx, mode=mode)
        self._negotiator = negotiator
        self._meeting_provider = meeting_provider
        self._queue: list[SchedulingRequest] = []
        self._reschedules: list[RescheduleRequest] = []
        self._requests: dict[str, SchedulingRequest] = {}
        self._interviews: dict[str, ScheduledInterview] = {}

    @property
    def pending(self) -> int:
        return len(self._queue) + len(self._reschedules)

    @property
    def meeting_provider(self) -> MeetingProvider:
        return self._meeting_provider

    def set_meeting_provider(self, provider: MeetingProvider) -> None:
        """Applies to interviews confirmed or rescheduled from now on."""
        self._meeting_provider = provider
        logger.info(
            "scheduling.meeting_provider_changed",
            extra={"extra": {"provider": provider.value}},
        )

    def interviews(self) -> list[ScheduledInterview]:
        return sorted(self._interviews.values(), key=lambda i: i.scheduled_at)

    def get_interview(self, interview_id: str) -> ScheduledInterview | None:
        return self._interviews.get(interview_id)

    def status(self) -> dict[str, Any]:
        status = super().status()
        status["meeting_provider"] = self._meeting_provider.value
        status["pending"] = self.pending
        return status

    def request_scheduling(self, request: SchedulingRequest) -> None:
        self._queue.append(request.model_copy(deep=True))
        self.record_event(
            request.candidate,
            request.job,
            SCHEDULING_REQUESTED,
            f"{request.interview_type.title()} interview requested",
            to_stage=PipelineStage.SCHEDULING,
            metadata={"interview_id": request.interview_id},
        )

    def request_reschedule(self, request: RescheduleRequest) -> None:
        """Queue a new slot search for a confirmed interview.

        Raises ``UnknownInterviewError`` when the interview is not known.
        """
        original = self._requests.get(request.interview_id)
        if original is None:
            raise UnknownInterviewError(request.interview_id)
        self._reschedules.append(request.model_copy(deep=True))
        reason = f": {request.reason}" if request.reason else ""
        self.record_event(
            original.candidate,
            original.job,
            RESCHEDULE_REQUESTED,
            f"Reschedule requested by {request.requested_by.replace('_', ' ')}{reason}",
            metadata={
                "interview_id": request.interview_id,
                "requested_by": request.requested_by,
                "requested_at": request.requested_at.isoformat(),
            },
        )
        self.ctx.notifier.notify(
            Severity.INFO,
            f"Reschedule requested for {original.candidate.name} ({original.job.title})",
            agent_type=self.agent_type,
            metadata={"interview_id": request.interview_id},
        )

    async def run_once(self) -> dict[str, Any]:
        # Reschedules first so a moved interview frees its old slot early.
        moved = await self.process_queue(
            self._reschedules,
            self._reschedule,
            key=lambda r: f"{r.interview_id}@{r.requested_at.isoformat()}",
            what="Interview reschedule",
        )
        booked = await self.process_queue(
            self._queue,
            self._schedule,
            key=lambda r: r.interview_id,
            what="Interview scheduling",
        )
        return {
            "processed": sum(moved.values()) + sum(booked.values()),
            "confirmed": booked[StepOutcome.DONE],
            "rescheduled": moved[StepOutcome.DONE],
            "deferred": sum(
                counts[StepOutcome.DEFERRED] + counts[StepOutcome.IN_PROGRESS]
                for counts in (moved, booked)
            ),
        }

    async def _negotiate(
        self, request: SchedulingRequest, *, exclude: datetime | None = None
    ) -> tuple[InferenceResult[datetime], list[datetime]]:
        candidate, job = request.candidate, request.job
        offered = await self.call_collaborator(
            lambda: self._negotiator.propose_slots(request),
            what="Slot proposal",
            candidate=candidate,
            job=job,
        )
        if not offered.ok:
            return InferenceResult(failure=offered.failure), []
        slots = [slot for slot in offered.value or [] if slot != exclude]
        if not slots:
            self.ctx.notifier.notify(
                Severity.ERROR,
                f"No open interview slots for {candidate.name} ({job.title})",
                agent_type=self.agent_type,
                metadata={"interview_id": request.interview_id},
            )
            return InferenceResult.fail("NO_SLOTS", "no open slots were offered"), []
        self.record_event(
            candidate,
            job,
            SCHEDULING_PROPOSED,
            f"Offered {len(slots)} interview slot(s)",
            metadata={
                "interview_id": request.interview_id,
                "slots": [slot.isoformat() for slot in slots],
            },
        )
        selected = await self.call_collaborator(
            lambda: self._negotiator.await_selection(request, slots),
            what="Slot confirmation",
            candidate=candidate,
            job=job,
        )
        return selected, slots

    async def _schedule(self, request: SchedulingRequest) -> StepOutcome:
        candidate, job = request.candidate, request.job
        interview_id = request.interview_id
        step = confirm_step(interview_id)
        resumed = self.resume(step)
        if resumed is not None:
            if resumed == StepOutcome.DONE:
                self._complete(request, step)
            return resumed

        decision = self.ctx.markers.acquire_step(
            candidate.id, job.id, step, ttl_seconds=CONFIRM_MARK_TTL_SECONDS
        )
        if not decision.granted:
            return StepOutcome.refused(decision)

        selected, slots = await self._negotiate(request)
        if not selected.ok or selected.value is None:
            return self.failure_outcome(selected)
        interview = ScheduledInterview(
            interview_id=interview_id,
            candidate_id=candidate.id,
            job_id=job.id,
            interview_type=request.interview_type,
            scheduled_at=selected.value,
            proposed_slots=slots,
            meeting_provider=self._meeting_provider,
            meeting_link=meeting_link(self._meeting_provider, interview_id),
        )
        self._interviews[interview_id] = interview
        self._requests[interview_id] = request
        self.record_event(
            candidate,
            job,
            SCHEDULING_CONFIRMED,
            f"Interview confirmed for {interview.scheduled_at:%Y-%m-%d %H:%M} UTC",
            metadata={
                "interview_id": interview_id,
                "scheduled_at": interview.scheduled_at.isoformat(),
                "meeting_link": interview.meeting_link,
            },
        )
        self.ctx.notifier.notify(
            Severity.SUCCESS,
            f"Interview scheduled with {candidate.name} for {job.title}",
            agent_type=self.agent_type,
            metadata={"interview_id": interview_id},
        )
        logger.info(
            "scheduling.confirmed",
            extra={"extra": {"interview_id": interview_id, "candidate_id": candidate.id}},
        )

        move = StageMove(
            candidate=candidate,
            job=job,
            to_stage=PipelineStage.INTERVIEW,
            from_stage=PipelineStage.SCHEDULING,
            step=f"stage_move:interview:scheduling:{interview_id}:v1",
            reason=f"{request.interview_type} interview confirmed",
            ttl_seconds=CONFIRM_MARK_TTL_SECONDS,
            evidence=[Evidence(label="Scheduled at", value=interview.scheduled_at.isoformat())],
        )
        # The confirmed slot is kept; only the stage move is retried on later ticks.
        if self.settle(step, [lambda: self.move_stage(move)]) != StepOutcome.DONE:
            return StepOutcome.DEFERRED
        self._complete(request, step)
        return StepOutcome.DONE

    def _complete(self, request: SchedulingRequest, step: str) -> None:
        interview = self._interviews[request.interview_id]
        self.ctx.markers.complete_step(
            request.candidate.id,
            request.job.id,
            step,
            metadata={"scheduled_at": interview.scheduled_at.isoformat()},
        )

    async def _reschedule(self, request: RescheduleRequest) -> StepOutcome:
        original = self._requests.get(request.interview_id)
        interview = self._interviews.get(request.interview_id)
        if original is None or interview is None:
            logger.warning(
                "scheduling.reschedule_unknown",
                extra={"extra": {"interview_id": request.interview_id}},
            )
            return StepOutcome.FAILED
        candidate, job = original.candidate, original.job
        step = reschedule_step(request.interview_id, request.requested_at)
        resumed = self.resume(step)
        if resumed is not None:
            if resumed == StepOutcome.DONE:
                self.ctx.markers.complete_step(candidate.id, job.id, step)
            return resumed

        decision = self.ctx.markers.acquire_step(
            candidate.id, job.id, step, ttl_seconds=CONFIRM_MARK_TTL_SECONDS
        )
        if not decision.granted:
            return StepOutcome.refused(decision)

        selected, slots = await self._negotiate(original, exclude=interview.scheduled_at)
        if not selected.ok or selected.value is None:
            return self.failure_outcome(selected)
        entry = RescheduleEntry(
            previous_time=interview.scheduled_at,
            new_time=selected.value,
            requested_by=request.requested_by,
            reason=request.reason,
            requested_at=request.requested_at,
        )
        updated = interview.model_copy(
            update={
                "scheduled_at": selected.value,
                "proposed_slots": slots,
                "status": InterviewStatus.RESCHEDULED,
                "meeting_provider": self._meeting_provider,
                "meeting_link": meeting_link(self._meeting_provider, interview.interview_id),
                "reschedule_history": [*interview.reschedule_history, entry],
            }
        )
        self._interviews[interview.interview_id] = updated
        self.record_event(
            candidate,
            job,
            SCHEDULING_RESCHEDULED,
            f"Interview moved from {entry.previous_time:%Y-%m-%d %H:%M} "
            f"to {entry.new_time:%Y-%m-%d %H:%M} UTC",
            metadata={
                "interview_id": interview.interview_id,
                "previous_time": entry.previous_time.isoformat(),
                "new_time": entry.new_time.isoformat(),
                "requested_by": request.requested_by,
            },
        )
        self.ctx.notifier.notify(
            Severity.SUCCESS,
            f"Interview with {candidate.name} rescheduled to "
            f"{entry.new_time:%Y-%m-%d %H:%M} UTC",
            agent_type=self.agent_type,
            metadata={"interview_id": interview.interview_id},
        )

        stamp = request.requested_at.isoformat()
        evidence = [Evidence(label="Rescheduled to", value=entry.new_time.isoformat())]
        back = StageMove(
            candidate=candidate,
            job=job,
            to_stage=PipelineStage.SCHEDULING,
            from_stage=PipelineStage.INTERVIEW,
            step=f"stage_move:scheduling:reschedule:{interview.interview_id}:{stamp}",
            reason=f"reschedule requested by {request.requested_by.replace('_', ' ')}",
            ttl_seconds=CONFIRM_MARK_TTL_SECONDS,
            evidence=evidence,
        )
        forward = StageMove(
            candidate=candidate,
            job=job,
            to_stage=PipelineStage.INTERVIEW,
            from_stage=PipelineStage.SCHEDULING,
            step=f"stage_move:interview:reschedule:{interview.interview_id}:{stamp}",
            reason=f"{original.interview_type} interview rescheduled",
            ttl_seconds=CONFIRM_MARK_TTL_SECONDS,
            evidence=evidence,
        )
        writes: list[Write] = [lambda: self.move_stage(back), lambda: self.move_stage(forward)]
        if self.settle(step, writes) != StepOutcome.DONE:
            return StepOutcome.DEFERRED
        self.ctx.markers.complete_step(
            candidate.id, job.id, step, metadata={"new_time": entry.new_time.isoformat()}
        )
        return StepOutcome.DONE
