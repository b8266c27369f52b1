"""FastAPI router exposing the operator controls for agents and proposals.

Endpoints:
  GET  /agents                        agent status
  POST /agents/{key}/enabled          {"enabled": bool}
  POST /agents/{key}/mode             {"mode": "recommend" | "auto_write"}
  POST /agents/{key}/run              run the agent now
  GET  /jobs                          scheduled jobs
  GET  /jobs/results                  recent results across jobs
  GET  /jobs/{job_id}/results         recent results for one job
  GET  /proposals?status=proposed     proposed actions, newest first
  POST /proposals/{action_id}/apply
  POST /proposals/{action_id}/dismiss
  POST /drafts                        queue a resume draft for activation
  GET  /candidates/{id}/events        pipeline history
  GET  /notifications                 recent notifications
  GET  /interviews                    confirmed interviews
  POST /interviews/{id}/reschedule    queue a reschedule
  POST /agents/scheduling/meeting-provider  {"provider": "google_meet" | "ms_teams"}
  GET  /sourcing/matches?job_id=      sourcing match history
  DELETE /sourcing/matches?job_id=    clear sourcing match history
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

from hireflow.agents.base import AgentLoop
from hireflow.agents.scheduling_agent.agent import UnknownInterviewError
from hireflow.contracts.domain import RescheduleRequest, ScheduledInterview, SourcingMatch
from hireflow.contracts.models import JobRunResult, Notification, PipelineEvent, ProposedAction
from hireflow.contracts.types import AgentMode, MeetingProvider, ProposalStatus
from hireflow.runtime import Runtime
from hireflow.services.action_applier import ProposalApplyError, propose_draft_activation

logger = logging.getLogger(__name__)

router = APIRouter()


class EnabledRequest(BaseModel):
    enabled: bool


class ModeRequest(BaseModel):
    mode: AgentMode


class DecisionRequest(BaseModel):
    actor_id: str = "operator"


class RescheduleBody(BaseModel):
    requested_by: Literal["candidate", "hiring_manager"] = "candidate"
    reason: str | None = None


class MeetingProviderRequest(BaseModel):
    provider: MeetingProvider


class DraftRequest(BaseModel):
    candidate_id: str
    document_id: str
    file_name: str | None = None
    parse_status: str | None = None


def _runtime(request: Request) -> Runtime:
    return request.app.state.runtime


def _agent(request: Request, key: str) -> AgentLoop:
    agent = _runtime(request).agents.get(key)
    if agent is None:
        raise HTTPException(status_code=404, detail=f"Unknown agent '{key}'")
    return agent


def _registered(agent: AgentLoop) -> AgentLoop:
    if agent.job_id is None:
        raise HTTPException(status_code=409, detail=f"{agent.job_name} is not registered")
    return agent


@router.get("/agents")
async def list_agents(request: Request) -> dict[str, Any]:
    return {key: agent.status() for key, agent in _runtime(request).agents.items()}


@router.post("/agents/{key}/enabled")
async def set_agent_enabled(key: str, body: EnabledRequest, request: Request) -> dict[str, Any]:
    agent = _registered(_agent(request, key))
    agent.set_enabled(body.enabled)
    return agent.status()


@router.post("/agents/{key}/mode")
async def set_agent_mode(key: str, body: ModeRequest, request: Request) -> dict[str, Any]:
    agent = _agent(request, key)
    agent.set_mode(body.mode)
    return agent.status()


@router.post("/agents/{key}/run")
async def run_agent(key: str, request: Request) -> JobRunResult:
    agent = _registered(_agent(request, key))
    return await agent.trigger()


@router.get("/jobs")
async def list_jobs(request: Request) -> list[dict[str, Any]]:
    return [job.to_dict() for job in _runtime(request).scheduler.all_jobs()]


@router.get("/jobs/results")
async def recent_results(
    request: Request, limit: int = Query(20, ge=1, le=100)
) -> list[JobRunResult]:
    return _runtime(request).scheduler.get_results(limit=limit)


@router.get("/jobs/{job_id}/results")
async def job_results(
    job_id: str, request: Request, limit: int = Query(20, ge=1, le=100)
) -> list[JobRunResult]:
    scheduler = _runtime(request).scheduler
    if scheduler.get_job(job_id) is None:
        raise HTTPException(status_code=404, detail=f"Unknown job '{job_id}'")
    return scheduler.get_results(job_id, limit)


@router.get("/proposals")
async def list_proposals(
    request: Request, status: ProposalStatus | None = None
) -> list[ProposedAction]:
    return _runtime(request).proposals.list(status)


@router.post("/proposals/{action_id}/apply")
async def apply_proposal(
    action_id: str, request: Request, body: DecisionRequest | None = None
) -> ProposedAction:
    actor_id = body.actor_id if body else "operator"
    try:
        applied = _runtime(request).applier.apply(action_id, actor_id=actor_id)
    except ProposalApplyError as exc:
        logger.warning("proposals.apply_failed", extra={"extra": {"action_id": action_id}})
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    if applied is None:
        raise HTTPException(status_code=404, detail=f"Unknown proposal '{action_id}'")
    if applied.status != ProposalStatus.APPLIED:
        raise HTTPException(status_code=409, detail=f"Proposal is {applied.status.value}")
    return applied


@router.post("/proposals/{action_id}/dismiss")
async def dismiss_proposal(
    action_id: str, request: Request, body: DecisionRequest | None = None
) -> ProposedAction:
    actor_id = body.actor_id if body else "operator"
    dismissed = _runtime(request).applier.dismiss(action_id, actor_id=actor_id)
    if dismissed is None:
        raise HTTPException(status_code=404, detail=f"Unknown proposal '{action_id}'")
    if dismissed.status != ProposalStatus.DISMISSED:
        raise HTTPException(status_code=409, detail=f"Proposal is {dismissed.status.value}")
    return dismissed


@router.post("/drafts", status_code=201)
async def register_draft(body: DraftRequest, request: Request) -> ProposedAction:
    return propose_draft_activation(
        _runtime(request).proposals,
        candidate_id=body.candidate_id,
        document_id=body.document_id,
        file_name=body.file_name,
        parse_status=body.parse_status,
    )


@router.get("/candidates/{candidate_id}/events")
async def candidate_events(
    candidate_id: str, request: Request, limit: int = Query(50, ge=1, le=500)
) -> list[PipelineEvent]:
    return _runtime(request).events.list_for_candidate(candidate_id, limit)


@router.get("/notifications")
async def notifications(
    request: Request, limit: int = Query(50, ge=1, le=200)
) -> list[Notification]:
    return _runtime(request).notifier.recent(limit)


@router.get("/interviews")
async def list_interviews(request: Request) -> list[ScheduledInterview]:
    return _runtime(request).scheduling.interviews()


@router.post("/interviews/{interview_id}/reschedule", status_code=202)
async def reschedule_interview(
    interview_id: str, body: RescheduleBody, request: Request
) -> RescheduleRequest:
    queued = RescheduleRequest(
        interview_id=interview_id, requested_by=body.requested_by, reason=body.reason
    )
    try:
        _runtime(request).scheduling.request_reschedule(queued)
    except UnknownInterviewError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown interview '{interview_id}'") from exc
    return queued


@router.post("/agents/scheduling/meeting-provider")
async def set_meeting_provider(body: MeetingProviderRequest, request: Request) -> dict[str, Any]:
    scheduling = _runtime(request).scheduling
    scheduling.set_meeting_provider(body.provider)
    return scheduling.status()


@router.get("/sourcing/matches")
async def sourcing_matches(request: Request, job_id: str | None = None) -> list[SourcingMatch]:
    return _runtime(request).sourcing.matches(job_id)


@router.delete("/sourcing/matches")
async def clear_sourcing_matches(request: Request, job_id: str | None = None) -> dict[str, int]:
    return {"removed": _runtime(request).sourcing.clear_matches(job_id)}
