"""Scenario runner for HireFlow demos."""

from __future__ import annotations

from dataclasses import dataclass
import os

import anyio

from hireflow.config.agents import AgentSettings
from hireflow.config.settings import AppSettings
from hireflow.contracts.models import JobRunResult, ProposedAction
from hireflow.contracts.types import AgentMode, ProposalStatus
from hireflow.demo.fixtures import ScenarioFixtures
from hireflow.observability.logging import configure_logging
from hireflow.observability.metrics import start_metrics_server
from hireflow.observability.telemetry import DISABLE_ENV, setup_tracing, shutdown_tracing
from hireflow.orchestrator.event_bus import Event, InMemoryEventBus
from hireflow.orchestrator.recorder import RecordingEventBus
from hireflow.runtime import Runtime, build_runtime

AGENT_ORDER = ("sourcing", "screening", "scheduling", "interview", "analytics")


@dataclass(slots=True)
class ScenarioResult:
    """Result from running a scenario."""

    mode: AgentMode
    events: list[Event]
    results: list[JobRunResult]
    proposals: list[ProposedAction]
    runtime: Runtime


async def run_scenario_async(
    fixtures: ScenarioFixtures,
    mode: AgentMode,
    *,
    approve_all: bool = False,
) -> ScenarioResult:
    """Drive every agent once through the scheduler against in-memory stores."""
    bus = RecordingEventBus(InMemoryEventBus())
    runtime = build_runtime(
        AppSettings(store_backend="memory", inference_provider="heuristic"),
        AgentSettings(),
        bus=bus,
        talent_pool=fixtures.talent_pool,
    )
    runtime.start()
    for agent in runtime.agents.values():
        agent.set_mode(mode)

    runtime.sourcing.set_jobs(fixtures.jobs)
    runtime.analytics.set_jobs(fixtures.jobs)
    for screening in fixtures.screening:
        runtime.screening.request_screening(screening)
    for scheduling in fixtures.scheduling:
        runtime.scheduling.request_scheduling(scheduling)
    for session in fixtures.interviews:
        runtime.interview.end_session(session)

    results = [await runtime.agents[key].trigger() for key in AGENT_ORDER]
    if approve_all:
        for action in runtime.proposals.list(ProposalStatus.PROPOSED):
            runtime.applier.apply(action.id, actor_id="demo")
    await runtime.stop()
    return ScenarioResult(
        mode=mode,
        events=list(bus.events),
        results=results,
        proposals=runtime.proposals.list(),
        runtime=runtime,
    )


def run_scenario(
    fixtures: ScenarioFixtures,
    mode: AgentMode,
    *,
    approve_all: bool = False,
    start_metrics: bool = True,
    enable_tracing: bool = True,
) -> ScenarioResult:
    """Run a scenario end-to-end on a fresh event loop."""
    configure_logging(service_name="hireflow-demo")
    if not enable_tracing:
        os.environ[DISABLE_ENV] = "1"
    setup_tracing("hireflow-demo")
    if start_metrics:
        start_metrics_server()

    async def _main() -> ScenarioResult:
        return await run_scenario_async(fixtures, mode, approve_all=approve_all)

    try:
        return anyio.run(_main)
    finally:
        shutdown_tracing()
