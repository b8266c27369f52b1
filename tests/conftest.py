from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
import os
from pathlib import Path
import sys

import pytest

# Ensure the src/ layout is importable without an editable install
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT / "src") not in sys.path:
    sys.path.insert(0, str(ROOT / "src"))

os.environ.setdefault("HIREFLOW_DISABLE_TRACING", "1")

from hireflow.agents.base import AgentContext  # noqa: E402
from hireflow.collaborators.heuristic import HeuristicInferenceClient  # noqa: E402
from hireflow.orchestrator.event_bus import InMemoryEventBus  # noqa: E402
from hireflow.orchestrator.recorder import RecordingEventBus  # noqa: E402
from hireflow.orchestrator.retry import RetryPolicy  # noqa: E402
from hireflow.orchestrator.scheduler import BackgroundJobScheduler  # noqa: E402
from hireflow.services.notifications import Notifier  # noqa: E402
from hireflow.services.pipeline_event_log import PipelineEventLog  # noqa: E402
from hireflow.services.processing_marks import ProcessingMarkerService  # noqa: E402
from hireflow.services.proposed_actions import ProposedActionQueue  # noqa: E402
from hireflow.stores.marks import InMemoryMarkStore  # noqa: E402
from hireflow.stores.pipeline_events import InMemoryPipelineEventStore  # noqa: E402
from hireflow.stores.pipeline_state import InMemoryPipelineWriter  # noqa: E402


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class SleepRecorder:
    """Stands in for asyncio.sleep and remembers requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def bus() -> RecordingEventBus:
    return RecordingEventBus(InMemoryEventBus())


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def make_ctx(
    bus: RecordingEventBus, clock: FakeClock, sleeper: SleepRecorder
) -> Callable[..., AgentContext]:
    """Build an AgentContext over in-memory stores; keyword overrides replace collaborators."""

    def _make(**overrides: object) -> AgentContext:
        fields: dict[str, object] = {
            "scheduler": BackgroundJobScheduler(bus, clock=clock),
            "markers": ProcessingMarkerService(InMemoryMarkStore(), clock=clock),
            "proposals": ProposedActionQueue(bus, clock=clock),
            "events": PipelineEventLog(InMemoryPipelineEventStore(), clock=clock),
            "writer": InMemoryPipelineWriter(bus),
            "notifier": Notifier(bus, clock=clock),
            "inference": HeuristicInferenceClient(),
            "retry_policy": RetryPolicy(),
            "sleep": sleeper,
        }
        fields.update(overrides)
        return AgentContext(**fields)  # type: ignore[arg-type]

    return _make
