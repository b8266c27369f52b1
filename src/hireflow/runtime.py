"""Explicit wiring of the scheduler, services, and agents."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass
import logging

from hireflow.agents.analytics_agent.agent import AnalyticsAgent
from hireflow.agents.base import AgentContext, AgentLoop
from hireflow.agents.interview_agent.agent import InterviewAgent
from hireflow.agents.scheduling_agent.agent import SchedulingAgent
from hireflow.agents.screening_agent.agent import ScreeningAgent
from hireflow.agents.sourcing_agent.agent import SourcingAgent
from hireflow.collaborators.heuristic import (
    HeuristicInferenceClient,
    KeywordCandidateSearch,
    SimulatedSlotNegotiator,
)
from hireflow.collaborators.openai_client import OpenAIInferenceClient
from hireflow.config.agents import AgentSettings
from hireflow.config.settings import AppSettings, get_app_settings
from hireflow.contracts.events import BUS_TOPICS
from hireflow.contracts.models import CandidateRef
from hireflow.contracts.ports import CandidateSearch, InferenceClient, PipelineWriter, SlotNegotiator
from hireflow.contracts.types import MeetingProvider
from hireflow.observability.metrics import count_bus_event
from hireflow.orchestrator.clock import Clock, utc_now
from hireflow.orchestrator.event_bus import EventBus, InMemoryEventBus
from hireflow.orchestrator.retry import RetryPolicy, Sleep
from hireflow.orchestrator.scheduler import BackgroundJobScheduler
from hireflow.services.action_applier import ProposalApplier
from hireflow.services.notifications import Notifier
from hireflow.services.pipeline_event_log import PipelineEventLog
from hireflow.services.processing_marks import ProcessingMarkerService
from hireflow.services.proposed_actions import ProposedActionQueue
from hireflow.stores.marks import InMemoryMarkStore, JsonFileMarkStore, MarkStore
from hireflow.stores.pipeline_events import (
    InMemoryPipelineEventStore,
    JsonLinesPipelineEventStore,
    PipelineEventStore,
)
from hireflow.stores.pipeline_state import InMemoryPipelineWriter
from hireflow.stores.proposals import InMemoryProposalStore, JsonFileProposalStore, ProposalStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Runtime:
    """Everything one process needs to run the agents."""

    settings: AppSettings
    agent_settings: AgentSettings
    bus: EventBus
    scheduler: BackgroundJobScheduler
    markers: ProcessingMarkerService
    proposals: ProposedActionQueue
    events: PipelineEventLog
    writer: PipelineWriter
    notifier: Notifier
    applier: ProposalApplier
    sourcing: SourcingAgent
    screening: ScreeningAgent
    scheduling: SchedulingAgent
    interview: InterviewAgent
    analytics: AnalyticsAgent

    @property
    def agents(self) -> dict[str, AgentLoop]:
        return {
            "sourcing": self.sourcing,
            "screening": self.screening,
            "scheduling": self.scheduling,
            "interview": self.interview,
            "analytics": self.analytics,
        }

    def start(self) -> None:
        """Register every agent with the scheduler; must run inside the event loop."""
        for key, agent in self.agents.items():
            config = self.agent_settings.for_agent(key)
            agent.set_mode(config.mode)
            agent.register(enabled=config.enabled, interval_seconds=config.interval_seconds)
        logger.info(
            "runtime.started",
            extra={"extra": {"agents": [k for k, a in self.agents.items() if a.job_id]}},
        )

    async def stop(self) -> None:
        await self.scheduler.shutdown()
        logger.info("runtime.stopped")


def build_stores(
    settings: AppSettings,
) -> tuple[MarkStore, PipelineEventStore, ProposalStore]:
    if settings.store_backend == "file":
        root = settings.data_dir
        return (
            JsonFileMarkStore(root / "marks.json"),
            JsonLinesPipelineEventStore(root / "pipeline_events.jsonl"),
            JsonFileProposalStore(root / "proposals.json"),
        )
    return InMemoryMarkStore(), InMemoryPipelineEventStore(), InMemoryProposalStore()


def build_inference(settings: AppSettings) -> InferenceClient:
    if settings.inference_provider == "openai":
        if not settings.llm_model:
            raise RuntimeError("LLM_MODEL is not configured; set it in your config/.env")
        return OpenAIInferenceClient(
            model=settings.llm_model, timeout=settings.llm_timeout_seconds
        )
    return HeuristicInferenceClient()


def build_runtime(
    settings: AppSettings | None = None,
    agent_settings: AgentSettings | None = None,
    *,
    bus: EventBus | None = None,
    writer: PipelineWriter | None = None,
    inference: InferenceClient | None = None,
    search: CandidateSearch | None = None,
    negotiator: SlotNegotiator | None = None,
    talent_pool: Iterable[CandidateRef] = (),
    retry_policy: RetryPolicy | None = None,
    clock: Clock = utc_now,
    sleep: Sleep = asyncio.sleep,
) -> Runtime:
    settings = settings or get_app_settings()
    agent_settings = agent_settings or AgentSettings.load(settings.agent_config_path)
    bus = bus or InMemoryEventBus()
    for topic in BUS_TOPICS:
        bus.subscribe(topic, count_bus_event)
    mark_store, event_store, proposal_store = build_stores(settings)

    scheduler = BackgroundJobScheduler(bus, clock=clock)
    markers = ProcessingMarkerService(mark_store, clock=clock)
    proposals = ProposedActionQueue(bus, proposal_store, clock=clock)
    events = PipelineEventLog(event_store, clock=clock)
    writer = writer or InMemoryPipelineWriter(bus)
    notifier = Notifier(bus, clock=clock)
    ctx = AgentContext(
        scheduler=scheduler,
        markers=markers,
        proposals=proposals,
        events=events,
        writer=writer,
        notifier=notifier,
        inference=inference or build_inference(settings),
        retry_policy=retry_policy or RetryPolicy(),
        sleep=sleep,
    )
    return Runtime(
        settings=settings,
        agent_settings=agent_settings,
        bus=bus,
        scheduler=scheduler,
        markers=markers,
        proposals=proposals,
        events=events,
        writer=writer,
        notifier=notifier,
        applier=ProposalApplier(proposals, writer, events, notifier),
        sourcing=SourcingAgent(ctx, search or KeywordCandidateSearch(talent_pool)),
        screening=ScreeningAgent(ctx),
        scheduling=SchedulingAgent(
            ctx,
            negotiator or SimulatedSlotNegotiator(clock=clock, sleep=sleep),
            meeting_provider=MeetingProvider(settings.meeting_provider),
        ),
        interview=InterviewAgent(ctx),
        analytics=AnalyticsAgent(ctx),
    )
