"""Analytics agent: snapshots pipeline health and raises alerts."""

from __future__ import annotations

from collections import Counter, deque
from collections.abc import Iterable
import logging
import math
from typing import Any

from hireflow.agents.base import AgentContext, AgentLoop
from hireflow.contracts.domain import AnalyticsAlert, PipelineSnapshot
from hireflow.contracts.models import JobRef
from hireflow.contracts.types import AgentMode, AgentType, JobCategory, PipelineStage, Severity

logger = logging.getLogger(__name__)

ANALYTICS_INTERVAL_SECONDS = 30 * 60
MAX_SNAPSHOTS = 500
MAX_ALERTS = 200

LATE_STAGES = (PipelineStage.INTERVIEW.value, PipelineStage.OFFER.value, PipelineStage.HIRED.value)
VELOCITY_MIN_PREVIOUS = 5
VELOCITY_DROP_RATIO = 0.4
BOTTLENECK_SCREENING_GROWTH = 10
BOTTLENECK_DOWNSTREAM_GROWTH = 1


def detect_alerts(
    previous: PipelineSnapshot | None, current: PipelineSnapshot
) -> list[AnalyticsAlert]:
    """Compare two snapshots and describe anything alarming."""
    if previous is None:
        return []
    alerts: list[AnalyticsAlert] = []

    prev_late = previous.count(*LATE_STAGES)
    cur_late = current.count(*LATE_STAGES)
    if prev_late >= VELOCITY_MIN_PREVIOUS and cur_late <= math.floor(prev_late * VELOCITY_DROP_RATIO):
        alerts.append(
            AnalyticsAlert(
                kind="velocity_drop",
                severity=Severity.WARNING,
                title="Late-stage velocity dropped",
                message=f"Candidates in interview/offer/hired fell from {prev_late} to {cur_late}",
                metadata={"previous": prev_late, "current": cur_late},
            )
        )

    screening = PipelineStage.SCREENING.value
    downstream = (PipelineStage.SCHEDULING.value, PipelineStage.INTERVIEW.value)
    prev_screen, cur_screen = previous.count(screening), current.count(screening)
    prev_next, cur_next = previous.count(*downstream), current.count(*downstream)
    if (
        cur_screen >= prev_screen + BOTTLENECK_SCREENING_GROWTH
        and cur_next <= prev_next + BOTTLENECK_DOWNSTREAM_GROWTH
    ):
        alerts.append(
            AnalyticsAlert(
                kind="screening_bottleneck",
                severity=Severity.WARNING,
                title="Screening bottleneck",
                message=(
                    f"Screening grew from {prev_screen} to {cur_screen} while "
                    f"scheduling and interview moved from {prev_next} to {cur_next}"
                ),
                metadata={"screening": cur_screen, "downstream": cur_next},
            )
        )
    return alerts


class AnalyticsAgent(AgentLoop):
    """Periodic stage-count snapshots across open jobs."""

    agent_type = AgentType.ANALYTICS
    job_name = "Pipeline Analytics"
    category = JobCategory.MONITORING
    default_interval_seconds = ANALYTICS_INTERVAL_SECONDS

    def __init__(self, ctx: AgentContext, *, mode: AgentMode = AgentMode.RECOMMEND) -> None:
        super().__init__(ctx, mode=mode)
        self._jobs: tuple[JobRef, ...] = ()
        self._snapshots: deque[PipelineSnapshot] = deque(maxlen=MAX_SNAPSHOTS)
        self._alerts: deque[AnalyticsAlert] = deque(maxlen=MAX_ALERTS)

    def set_jobs(self, jobs: Iterable[JobRef]) -> None:
        self._jobs = tuple(job.model_copy(deep=True) for job in jobs)

    def snapshots(self) -> list[PipelineSnapshot]:
        return list(self._snapshots)

    def alerts(self) -> list[AnalyticsAlert]:
        return list(self._alerts)

    async def run_once(self) -> dict[str, Any]:
        jobs = [job for job in self._jobs if job.is_open]
        counted = self.ctx.writer.stage_counts([job.id for job in jobs])
        if not counted.ok:
            self.ctx.notifier.notify(
                Severity.WARNING,
                "Pipeline counts are unavailable; analytics snapshot skipped",
                agent_type=self.agent_type,
            )
            return {"snapshot_id": None, "alerts": 0}

        per_job = counted.value or {}
        totals: Counter[str] = Counter()
        for stages in per_job.values():
            totals.update(stages)
        snapshot = PipelineSnapshot(
            open_jobs=len(jobs),
            total_candidates=sum(totals.values()),
            stage_counts=dict(totals),
            job_stage_counts=per_job,
        )
        previous = self._snapshots[0] if self._snapshots else None
        self._snapshots.appendleft(snapshot)

        alerts = detect_alerts(previous, snapshot)
        insight = await self.ctx.inference.pipeline_insight(snapshot)
        if insight.ok and insight.value:
            alerts.append(
                AnalyticsAlert(
                    kind="ai_insight",
                    severity=Severity.INFO,
                    title="Pipeline insight",
                    message=insight.value,
                )
            )
        elif not insight.ok:
            logger.info(
                "analytics.insight_unavailable",
                extra={"extra": {"code": insight.failure.code if insight.failure else None}},
            )

        for alert in alerts:
            self._alerts.appendleft(alert)
            self.ctx.notifier.notify(
                alert.severity,
                alert.message,
                title=alert.title,
                agent_type=self.agent_type,
                metadata={"kind": alert.kind},
            )
        return {
            "snapshot_id": snapshot.id,
            "total_candidates": snapshot.total_candidates,
            "alerts": len(alerts),
        }
