"""Append-only storage for the candidate pipeline history."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import json
import logging
from pathlib import Path
from typing import Protocol

from hireflow.contracts.models import PipelineEvent, PipelineEventCreate
from hireflow.contracts.results import StoreResult

logger = logging.getLogger(__name__)


def _newest_first(events: list[PipelineEvent]) -> list[PipelineEvent]:
    return sorted(events, key=lambda e: (e.created_at, e.id), reverse=True)


class PipelineEventStore(Protocol):
    def append(
        self, event: PipelineEventCreate, created_at: datetime
    ) -> StoreResult[PipelineEvent]:
        """Store the event and return it with its assigned id."""

    def list_for_candidate(
        self, candidate_id: str, limit: int
    ) -> StoreResult[list[PipelineEvent]]:
        """Return up to ``limit`` events for the candidate, newest first."""


class InMemoryPipelineEventStore:
    """In-memory PipelineEventStore for dev/test."""

    def __init__(self) -> None:
        self._events: list[PipelineEvent] = []

    def append(
        self, event: PipelineEventCreate, created_at: datetime
    ) -> StoreResult[PipelineEvent]:
        stored = PipelineEvent(
            **event.model_dump(), id=len(self._events) + 1, created_at=created_at
        )
        self._events.append(stored)
        return StoreResult.of(stored)

    def list_for_candidate(
        self, candidate_id: str, limit: int
    ) -> StoreResult[list[PipelineEvent]]:
        matching = [e for e in self._events if e.candidate_id == candidate_id]
        return StoreResult.of(_newest_first(matching)[:limit])

    def all(self) -> list[PipelineEvent]:
        return list(self._events)


@dataclass
class JsonLinesPipelineEventStore:
    """One JSON object per line; ids follow line order.

    The last id is read from the file once and then tracked in memory, so this
    process must be the only writer. A directory that cannot be created makes
    every append report degraded instead of failing construction.
    """

    path: Path
    _last_id: int | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning(
                "pipeline_events.dir_unavailable",
                extra={"extra": {"path": str(self.path), "error": str(exc)}},
            )

    def _count_lines(self) -> int:
        if not self.path.exists():
            return 0
        with self.path.open("r", encoding="utf-8") as f:
            return sum(1 for line in f if line.strip())

    def _read_all(self) -> list[PipelineEvent]:
        if not self.path.exists():
            return []
        events: list[PipelineEvent] = []
        with self.path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    events.append(PipelineEvent.model_validate_json(line))
        return events

    def append(
        self, event: PipelineEventCreate, created_at: datetime
    ) -> StoreResult[PipelineEvent]:
        try:
            if self._last_id is None:
                self._last_id = self._count_lines()
            stored = PipelineEvent(
                **event.model_dump(), id=self._last_id + 1, created_at=created_at
            )
            with self.path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(stored.model_dump(mode="json"), ensure_ascii=False) + "\n")
            self._last_id = stored.id
        except (OSError, ValueError) as exc:
            logger.warning(
                "pipeline_events.write_failed", extra={"extra": {"path": str(self.path)}}
            )
            return StoreResult.unavailable(f"event append failed: {exc}")
        return StoreResult.of(stored)

    def list_for_candidate(
        self, candidate_id: str, limit: int
    ) -> StoreResult[list[PipelineEvent]]:
        try:
            events = [e for e in self._read_all() if e.candidate_id == candidate_id]
        except (OSError, ValueError) as exc:
            return StoreResult.unavailable(f"event read failed: {exc}")
        return StoreResult.of(_newest_first(events)[:limit])
