from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from hireflow.api.app import create_app
from hireflow.config.agents import AgentSettings
from hireflow.config.settings import AppSettings
from hireflow.demo import fixtures
from hireflow.runtime import Runtime, build_runtime


@pytest.fixture
def runtime() -> Runtime:
    scenario = fixtures.hiring_week()
    built = build_runtime(AppSettings(), AgentSettings(), talent_pool=scenario.talent_pool)
    built.sourcing.set_jobs(scenario.jobs)
    return built


@pytest.fixture
def client(runtime: Runtime) -> Iterator[TestClient]:
    with TestClient(create_app(runtime)) as test_client:
        yield test_client


def test_healthz_echoes_request_id(client: TestClient) -> None:
    resp = client.get("/healthz", headers={"x-request-id": "req-123"})

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert resp.headers["x-request-id"] == "req-123"


def test_metrics_are_exposed_in_text_format(client: TestClient) -> None:
    resp = client.get("/metrics")

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert "# TYPE hireflow_job_runs_total counter" in resp.text
    assert "# TYPE hireflow_proposals_pending gauge" in resp.text


def test_agents_are_registered_disabled(client: TestClient) -> None:
    body = client.get("/agents").json()

    assert set(body) == {"sourcing", "screening", "scheduling", "interview", "analytics"}
    assert all(agent["initialized"] for agent in body.values())
    assert not any(agent["enabled"] for agent in body.values())
    assert len(client.get("/jobs").json()) == 5


def test_unknown_agent_is_404(client: TestClient) -> None:
    resp = client.post("/agents/payroll/enabled", json={"enabled": True})
    assert resp.status_code == 404


def test_mode_switch(client: TestClient) -> None:
    resp = client.post("/agents/screening/mode", json={"mode": "auto_write"})

    assert resp.status_code == 200
    assert resp.json()["mode"] == "auto_write"
    assert client.post("/agents/screening/mode", json={"mode": "yolo"}).status_code == 422


def test_enable_and_disable(client: TestClient) -> None:
    enabled = client.post("/agents/analytics/enabled", json={"enabled": True}).json()
    disabled = client.post("/agents/analytics/enabled", json={"enabled": False}).json()

    assert enabled["enabled"] is True
    assert enabled["next_run"] is not None
    assert disabled["enabled"] is False
    assert disabled["next_run"] is None


def test_run_then_apply_proposal(client: TestClient, runtime: Runtime) -> None:
    run = client.post("/agents/sourcing/run")
    assert run.status_code == 200
    assert run.json()["success"] is True
    assert run.json()["payload"]["staged"] > 0

    pending = client.get("/proposals", params={"status": "proposed"}).json()
    assert pending
    action_id = pending[0]["id"]
    candidate_id = pending[0]["candidate_id"]

    applied = client.post(f"/proposals/{action_id}/apply", json={"actor_id": "recruiter_1"})
    assert applied.status_code == 200
    assert applied.json()["status"] == "applied"
    assert client.post(f"/proposals/{action_id}/apply").status_code == 409
    assert client.post(f"/proposals/{action_id}/dismiss").status_code == 409

    history = client.get(f"/candidates/{candidate_id}/events").json()
    assert history[0]["event_type"] == "STAGE_MOVED"
    assert history[0]["actor_id"] == "recruiter_1"

    job_id = runtime.sourcing.job_id
    results = client.get(f"/jobs/{job_id}/results").json()
    assert [r["job_id"] for r in results] == [job_id]


def test_unknown_proposal_and_job(client: TestClient) -> None:
    assert client.post("/proposals/proposal_missing/apply").status_code == 404
    assert client.post("/proposals/proposal_missing/dismiss").status_code == 404
    assert client.get("/jobs/job_missing/results").status_code == 404


def test_draft_registration_creates_proposal(client: TestClient) -> None:
    resp = client.post(
        "/drafts",
        json={"candidate_id": "cand_ada", "document_id": "doc_1", "file_name": "ada.pdf"},
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["agent_type"] == "USER"
    assert body["payload"]["type"] == "ACTIVATE_RESUME_DRAFT"
    notes = client.get("/notifications").json()
    assert isinstance(notes, list)


def test_sourcing_matches_can_be_listed_and_cleared(client: TestClient) -> None:
    client.post("/agents/sourcing/run")

    matches = client.get("/sourcing/matches").json()
    assert matches
    job_id = matches[0]["job_id"]
    for_job = client.get("/sourcing/matches", params={"job_id": job_id}).json()
    assert {m["job_id"] for m in for_job} == {job_id}

    removed = client.delete("/sourcing/matches", params={"job_id": job_id}).json()
    assert removed == {"removed": len(for_job)}
    assert all(m["job_id"] != job_id for m in client.get("/sourcing/matches").json())


def test_bus_events_are_counted(client: TestClient) -> None:
    client.post("/agents/sourcing/run")

    text = client.get("/metrics").text

    assert 'hireflow_bus_events_total{topic="agent.proposals.changed"}' in text


def test_reschedule_and_meeting_provider(client: TestClient, runtime: Runtime) -> None:
    provider = client.post("/agents/scheduling/meeting-provider", json={"provider": "ms_teams"})
    assert provider.json()["meeting_provider"] == "ms_teams"
    for request in fixtures.hiring_week().scheduling:
        runtime.scheduling.request_scheduling(request)
    client.post("/agents/scheduling/run")

    [interview] = client.get("/interviews").json()
    assert interview["meeting_link"].startswith("https://teams.microsoft.com/")
    first_slot = interview["scheduled_at"]

    resp = client.post(
        f"/interviews/{interview['interview_id']}/reschedule",
        json={"requested_by": "hiring_manager", "reason": "panel conflict"},
    )
    assert resp.status_code == 202
    run = client.post("/agents/scheduling/run").json()
    assert run["payload"]["rescheduled"] == 1

    [moved] = client.get("/interviews").json()
    assert moved["status"] == "rescheduled"
    assert moved["scheduled_at"] != first_slot
    assert moved["reschedule_history"][0]["requested_by"] == "hiring_manager"
    missing = client.post("/interviews/interview_missing/reschedule", json={})
    assert missing.status_code == 404
