"""OpenTelemetry tracing for the agent runtime.

Tracing is process-wide: ``setup_tracing`` installs one provider and later
calls are ignored until ``shutdown_tracing`` flushes and releases it. With
``HIREFLOW_DISABLE_TRACING=1`` every tracer is a no-op.
"""

from __future__ import annotations

import logging
import os
from typing import Any

logger = logging.getLogger(__name__)

DISABLE_ENV = "HIREFLOW_DISABLE_TRACING"


class _NoOpSpan:
    def __enter__(self) -> _NoOpSpan:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: object | None,
    ) -> None:
        return None

    def set_attribute(self, key: str, value: Any) -> None:
        return None


class _NoOpTracer:
    def start_as_current_span(self, name: str) -> _NoOpSpan:
        return _NoOpSpan()


_NOOP_TRACER = _NoOpTracer()
_provider: Any | None = None


def tracing_disabled() -> bool:
    return os.getenv(DISABLE_ENV) == "1"


def setup_tracing(
    service_name: str,
    exporter: Any | None = None,
    *,
    service_version: str | None = None,
) -> bool:
    """Install a tracer provider exporting to ``exporter`` (console by default).

    Returns True when a provider was installed by this call.
    """
    global _provider
    if tracing_disabled():
        logger.info("tracing.disabled", extra={"extra": {"service": service_name}})
        return False
    if _provider is not None:
        return False
    from opentelemetry import trace
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

    attributes = {"service.name": service_name}
    if service_version:
        attributes["service.version"] = service_version
    provider = TracerProvider(resource=Resource.create(attributes))
    provider.add_span_processor(BatchSpanProcessor(exporter or ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)
    _provider = provider
    logger.info("tracing.configured", extra={"extra": {"service": service_name}})
    return True


def shutdown_tracing() -> None:
    """Flush pending spans and shut the provider down."""
    global _provider
    if _provider is None:
        return
    _provider.force_flush()
    _provider.shutdown()
    _provider = None


def get_tracer(name: str) -> Any:
    """Return a tracer, or a no-op tracer when tracing is disabled."""
    if tracing_disabled():
        return _NOOP_TRACER
    from opentelemetry import trace

    return trace.get_tracer(name)
