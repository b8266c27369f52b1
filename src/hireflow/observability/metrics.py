"""Prometheus text-format metrics for the agent runtime.

Metrics are plain in-process objects held by a registry. The registry renders
the exposition text, which is served by the operator API at ``/metrics`` or by
a standalone HTTP thread for the demo runner.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from threading import Lock, Thread
import time
from types import TracebackType
from typing import Generic, TypeVar

from hireflow.orchestrator.event_bus import Event

CONTENT_TYPE = "text/plain; version=0.0.4"

S = TypeVar("S")


@dataclass
class CounterSample:
    value: float = 0.0

    def inc(self, amount: float = 1.0) -> None:
        if amount < 0:
            raise ValueError("counters only go up")
        self.value += amount


@dataclass
class GaugeSample:
    value: float = 0.0

    def set(self, value: float) -> None:  # noqa: A003
        self.value = value


@dataclass
class SummarySample:
    count: int = 0
    total: float = 0.0

    def observe(self, value: float) -> None:
        self.count += 1
        self.total += value

    def time(self) -> _Timer:
        return _Timer(self)


@dataclass
class _Metric(Generic[S]):
    name: str
    description: str
    label_names: tuple[str, ...] = ()
    samples: dict[tuple[str, ...], S] = field(default_factory=dict)

    kind = "untyped"

    def _new_sample(self) -> S:
        raise NotImplementedError

    def _key(self, labels: dict[str, str]) -> tuple[str, ...]:
        missing = set(self.label_names) - labels.keys()
        if missing:
            raise KeyError(f"{self.name} is missing labels {sorted(missing)}")
        return tuple(str(labels[name]) for name in self.label_names)

    def labels(self, **labels: str) -> S:
        key = self._key(labels)
        sample = self.samples.get(key)
        if sample is None:
            sample = self.samples[key] = self._new_sample()
        return sample

    def _label_str(self, key: tuple[str, ...]) -> str:
        if not key:
            return ""
        pairs = ",".join(f'{name}="{value}"' for name, value in zip(self.label_names, key))
        return "{" + pairs + "}"

    def render(self) -> list[str]:
        lines = [f"# HELP {self.name} {self.description}", f"# TYPE {self.name} {self.kind}"]
        for key, sample in self.samples.items():
            lines.extend(self._render_sample(self._label_str(key), sample))
        return lines

    def _render_sample(self, labels: str, sample: S) -> list[str]:
        raise NotImplementedError


class Counter(_Metric[CounterSample]):
    kind = "counter"

    def _new_sample(self) -> CounterSample:
        return CounterSample()

    def value(self, **labels: str) -> float:
        sample = self.samples.get(self._key(labels))
        return sample.value if sample else 0.0

    def _render_sample(self, labels: str, sample: CounterSample) -> list[str]:
        return [f"{self.name}{labels} {sample.value}"]


class Gauge(_Metric[GaugeSample]):
    kind = "gauge"

    def _new_sample(self) -> GaugeSample:
        return GaugeSample()

    def value(self, **labels: str) -> float:
        sample = self.samples.get(self._key(labels))
        return sample.value if sample else 0.0

    def _render_sample(self, labels: str, sample: GaugeSample) -> list[str]:
        return [f"{self.name}{labels} {sample.value}"]


class Histogram(_Metric[SummarySample]):
    """Duration tracker rendered as a Prometheus summary (count and sum)."""

    kind = "summary"

    def _new_sample(self) -> SummarySample:
        return SummarySample()

    def _render_sample(self, labels: str, sample: SummarySample) -> list[str]:
        return [
            f"{self.name}_count{labels} {sample.count}",
            f"{self.name}_sum{labels} {sample.total}",
        ]


class MetricsRegistry:
    def __init__(self) -> None:
        self._metrics: dict[str, _Metric] = {}
        self._lock = Lock()

    def register(self, metric: _Metric[S]) -> _Metric[S]:
        with self._lock:
            if metric.name in self._metrics:
                raise ValueError(f"metric {metric.name} is already registered")
            self._metrics[metric.name] = metric
        return metric

    def counter(self, name: str, description: str, labels: tuple[str, ...] = ()) -> Counter:
        metric = Counter(name, description, labels)
        self.register(metric)
        return metric

    def gauge(self, name: str, description: str, labels: tuple[str, ...] = ()) -> Gauge:
        metric = Gauge(name, description, labels)
        self.register(metric)
        return metric

    def histogram(self, name: str, description: str, labels: tuple[str, ...] = ()) -> Histogram:
        metric = Histogram(name, description, labels)
        self.register(metric)
        return metric

    def render(self) -> str:
        with self._lock:
            metrics = list(self._metrics.values())
        lines: list[str] = []
        for metric in metrics:
            lines.extend(metric.render())
        return "\n".join(lines) + "\n"


REGISTRY = MetricsRegistry()

JOB_RUNS = REGISTRY.counter(
    "hireflow_job_runs_total", "Background job runs by outcome", ("job", "outcome")
)
JOB_DURATION = REGISTRY.histogram(
    "hireflow_job_duration_seconds", "Duration of background job handlers", ("job",)
)
MARK_DECISIONS = REGISTRY.counter(
    "hireflow_mark_decisions_total", "Processing mark acquisition decisions", ("outcome",)
)
PROPOSAL_CHANGES = REGISTRY.counter(
    "hireflow_proposal_changes_total", "Proposed action queue changes", ("agent", "change")
)
PROPOSALS_PENDING = REGISTRY.gauge(
    "hireflow_proposals_pending", "Proposals awaiting an operator decision"
)
BUS_EVENTS = REGISTRY.counter(
    "hireflow_bus_events_total", "Events published on the in-process bus", ("topic",)
)


def count_bus_event(event: Event) -> None:
    """Bus subscriber feeding ``BUS_EVENTS``."""
    BUS_EVENTS.labels(topic=event.event_type).inc()


def render_metrics() -> str:
    return REGISTRY.render()


class _MetricsHandler(BaseHTTPRequestHandler):
    def do_GET(self) -> None:  # noqa: N802
        if self.path != "/metrics":
            self.send_error(404)
            return
        body = render_metrics().encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", CONTENT_TYPE)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        return None


_server: ThreadingHTTPServer | None = None


def start_metrics_server(port: int = 8005, host: str = "0.0.0.0") -> None:
    """Serve ``/metrics`` from a daemon thread; later calls are no-ops."""
    global _server
    if _server is not None:
        return
    _server = ThreadingHTTPServer((host, port), _MetricsHandler)
    Thread(target=_server.serve_forever, name="hireflow-metrics", daemon=True).start()


def stop_metrics_server() -> None:
    global _server
    if _server is None:
        return
    _server.shutdown()
    _server.server_close()
    _server = None


class _Timer:
    def __init__(self, sample: SummarySample) -> None:
        self._sample = sample
        self._start = 0.0

    def __enter__(self) -> _Timer:
        self._start = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self._sample.observe(time.perf_counter() - self._start)
