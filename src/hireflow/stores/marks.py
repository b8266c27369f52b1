"""Pluggable persistence for processing marks.

Backends return StoreResult instead of raising so the marker service can
decide to fail open when storage is missing or unhealthy.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any, Protocol

from hireflow.contracts.models import ProcessingMark
from hireflow.contracts.results import StoreResult
from hireflow.stores.json_files import read_json, write_json_atomic

logger = logging.getLogger(__name__)

MarkKey = tuple[str, str, str]


def _key_str(key: MarkKey) -> str:
    return "|".join(key)


class MarkStore(Protocol):
    """Storage keyed by (candidate_id, job_id, step)."""

    def get(self, key: MarkKey) -> StoreResult[ProcessingMark | None]:
        """Return the mark for key, or a None value if there is none."""

    def upsert(self, mark: ProcessingMark) -> StoreResult[ProcessingMark]:
        """Insert or replace the mark under its key."""


class InMemoryMarkStore:
    """In-memory MarkStore for dev/test; not durable across restarts."""

    def __init__(self) -> None:
        self._marks: dict[MarkKey, ProcessingMark] = {}

    def get(self, key: MarkKey) -> StoreResult[ProcessingMark | None]:
        return StoreResult.of(self._marks.get(key))

    def upsert(self, mark: ProcessingMark) -> StoreResult[ProcessingMark]:
        self._marks[mark.key] = mark.model_copy(deep=True)
        return StoreResult.of(mark)

    def __len__(self) -> int:
        return len(self._marks)


@dataclass
class JsonFileMarkStore:
    """Persist all marks in one JSON document at ``path``."""

    path: Path

    def _load(self) -> dict[str, dict[str, Any]]:
        data = read_json(self.path, {})
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def get(self, key: MarkKey) -> StoreResult[ProcessingMark | None]:
        try:
            raw = self._load().get(_key_str(key))
            return StoreResult.of(ProcessingMark.model_validate(raw) if raw else None)
        except (OSError, ValueError) as exc:
            logger.warning("marks.read_failed", extra={"extra": {"path": str(self.path)}})
            return StoreResult.unavailable(f"mark read failed: {exc}")

    def upsert(self, mark: ProcessingMark) -> StoreResult[ProcessingMark]:
        try:
            data = self._load()
            data[_key_str(mark.key)] = mark.model_dump(mode="json")
            write_json_atomic(self.path, data)
        except (OSError, ValueError) as exc:
            logger.warning("marks.write_failed", extra={"extra": {"path": str(self.path)}})
            return StoreResult.unavailable(f"mark write failed: {exc}")
        return StoreResult.of(mark)
