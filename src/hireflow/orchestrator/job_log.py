"""Bounded history of background job outcomes."""

from __future__ import annotations

from collections import deque

from hireflow.contracts.models import JobRunResult

DEFAULT_CAPACITY = 100


class JobResultLog:
    """Ring buffer of run results, newest first.

    When full, adding a result evicts the oldest one.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        self._results: deque[JobRunResult] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._results)

    def add(self, result: JobRunResult) -> None:
        # appendleft on a bounded deque drops from the right, i.e. the oldest entry.
        self._results.appendleft(result)

    def recent(self, limit: int = 20) -> list[JobRunResult]:
        return list(self._results)[: max(limit, 0)]

    def for_job(self, job_id: str, limit: int = 20) -> list[JobRunResult]:
        matching = [result for result in self._results if result.job_id == job_id]
        return matching[: max(limit, 0)]
