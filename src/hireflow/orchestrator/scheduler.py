"""Interval-driven background job scheduler."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
import logging
from typing import Any

from hireflow.contracts.events import BACKGROUND_JOB_RESULT, BACKGROUND_JOBS_CHANGED
from hireflow.contracts.models import JobRunResult, new_id
from hireflow.contracts.types import JobCategory, JobStatus
from hireflow.observability.metrics import JOB_DURATION, JOB_RUNS
from hireflow.observability.telemetry import get_tracer
from hireflow.orchestrator.clock import Clock, utc_now
from hireflow.orchestrator.event_bus import Event, EventBus
from hireflow.orchestrator.job_log import JobResultLog

logger = logging.getLogger(__name__)

JobHandler = Callable[[], Awaitable[Any]]


@dataclass(slots=True)
class JobDescriptor:
    """Registered job plus its scheduling state."""

    id: str
    name: str
    category: JobCategory
    interval_seconds: float
    handler: JobHandler = field(repr=False)
    enabled: bool = False
    status: JobStatus = JobStatus.IDLE
    last_run: datetime | None = None
    next_run: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "interval_seconds": self.interval_seconds,
            "enabled": self.enabled,
            "status": self.status.value,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "next_run": self.next_run.isoformat() if self.next_run else None,
        }


class BackgroundJobScheduler:
    """Runs registered async handlers on fixed intervals.

    Each enabled job owns one timer task. The timer spawns every run as its own
    task, so disabling a job (which cancels the timer) never interrupts a run
    that is already in flight. A job never overlaps with itself: a tick that
    arrives while the previous run is still going is reported as skipped.
    """

    def __init__(
        self,
        bus: EventBus,
        *,
        result_log: JobResultLog | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._bus = bus
        self._log = result_log or JobResultLog()
        self._clock = clock
        self._jobs: dict[str, JobDescriptor] = {}
        self._timers: dict[str, asyncio.Task[None]] = {}
        self._inflight: set[asyncio.Task[JobRunResult]] = set()
        self._tracer = get_tracer(__name__)

    def register(
        self,
        name: str,
        category: JobCategory,
        interval_seconds: float,
        handler: JobHandler,
        *,
        enabled: bool = True,
    ) -> str:
        """Register a job and return its id.

        When ``enabled`` the job runs once right away and then every interval,
        which requires a running event loop.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        job = JobDescriptor(
            id=new_id("job"),
            name=name,
            category=category,
            interval_seconds=interval_seconds,
            handler=handler,
            enabled=enabled,
        )
        self._jobs[job.id] = job
        logger.info(
            "scheduler.job.registered",
            extra={"extra": {"job_id": job.id, "job": name, "enabled": enabled}},
        )
        if enabled:
            self._arm(job)
        self._publish_jobs_changed(job)
        return job.id

    async def run(self, job_id: str) -> JobRunResult:
        """Execute one run of the job now, honouring the overlap guard."""
        job = self._jobs.get(job_id)
        if job is None:
            result = JobRunResult(
                job_id=job_id, success=False, message="Job not found", timestamp=self._clock()
            )
            self._record(result)
            return result

        if job.status == JobStatus.RUNNING:
            JOB_RUNS.labels(job=job.name, outcome="skipped").inc()
            logger.info("scheduler.job.skipped", extra={"extra": {"job_id": job.id}})
            return JobRunResult(
                job_id=job.id,
                success=False,
                skipped=True,
                message="Job is already running",
                timestamp=self._clock(),
            )

        now = self._clock()
        job.status = JobStatus.RUNNING
        job.last_run = now
        job.next_run = now + timedelta(seconds=job.interval_seconds) if job.enabled else None
        self._publish_jobs_changed(job)

        try:
            with self._tracer.start_as_current_span("job.run") as span:
                span.set_attribute("job.id", job.id)
                span.set_attribute("job.name", job.name)
                with JOB_DURATION.labels(job=job.name).time():
                    payload = await job.handler()
        except asyncio.CancelledError:
            job.status = JobStatus.FAILED
            self._finish(
                job,
                JobRunResult(
                    job_id=job.id, success=False, message="Job cancelled", timestamp=self._clock()
                ),
            )
            raise
        except Exception as exc:  # noqa: BLE001
            logger.exception(
                "scheduler.job.failed",
                extra={"extra": {"job_id": job.id, "job": job.name}},
            )
            job.status = JobStatus.FAILED
            result = JobRunResult(
                job_id=job.id,
                success=False,
                message=str(exc) or exc.__class__.__name__,
                timestamp=self._clock(),
            )
        else:
            job.status = JobStatus.COMPLETED
            result = JobRunResult(
                job_id=job.id,
                success=True,
                message=f"{job.name} completed",
                payload=payload,
                timestamp=self._clock(),
            )
        self._finish(job, result)
        return result

    def set_enabled(self, job_id: str, enabled: bool) -> None:
        job = self._jobs.get(job_id)
        if job is None:
            logger.warning("scheduler.job.unknown", extra={"extra": {"job_id": job_id}})
            return
        job.enabled = enabled
        if enabled:
            self._arm(job)
        else:
            self._disarm(job.id)
            job.next_run = None
        logger.info(
            "scheduler.job.toggled", extra={"extra": {"job_id": job.id, "enabled": enabled}}
        )
        self._publish_jobs_changed(job)

    def get_job(self, job_id: str) -> JobDescriptor | None:
        return self._jobs.get(job_id)

    def all_jobs(self) -> list[JobDescriptor]:
        return list(self._jobs.values())

    def get_results(self, job_id: str | None = None, limit: int = 20) -> list[JobRunResult]:
        if job_id is None:
            return self._log.recent(limit)
        return self._log.for_job(job_id, limit)

    async def wait_idle(self) -> None:
        """Wait until no run is in flight."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def shutdown(self) -> None:
        timers = list(self._timers.values())
        for job_id in list(self._timers):
            self._disarm(job_id)
        if timers:
            await asyncio.gather(*timers, return_exceptions=True)
        await self.wait_idle()

    def _arm(self, job: JobDescriptor) -> None:
        self._disarm(job.id)
        job.next_run = self._clock() + timedelta(seconds=job.interval_seconds)
        self._spawn(job.id)
        self._timers[job.id] = asyncio.get_running_loop().create_task(
            self._tick(job.id), name=f"job-timer:{job.name}"
        )

    def _disarm(self, job_id: str) -> None:
        timer = self._timers.pop(job_id, None)
        if timer is not None:
            timer.cancel()

    async def _tick(self, job_id: str) -> None:
        job = self._jobs[job_id]
        while True:
            await asyncio.sleep(job.interval_seconds)
            self._spawn(job_id)

    def _spawn(self, job_id: str) -> None:
        task = asyncio.get_running_loop().create_task(self.run(job_id), name=f"job-run:{job_id}")
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    def _finish(self, job: JobDescriptor, result: JobRunResult) -> None:
        outcome = "completed" if result.success else "failed"
        JOB_RUNS.labels(job=job.name, outcome=outcome).inc()
        self._record(result)
        self._publish_jobs_changed(job)

    def _record(self, result: JobRunResult) -> None:
        self._log.add(result)
        self._bus.publish(
            Event(event_type=BACKGROUND_JOB_RESULT, payload=result.model_dump())
        )

    def _publish_jobs_changed(self, job: JobDescriptor) -> None:
        self._bus.publish(
            Event(
                event_type=BACKGROUND_JOBS_CHANGED,
                payload={"job_id": job.id, "status": job.status.value, "enabled": job.enabled},
            )
        )
