"""Bounded retry for collaborator calls that report transient failures."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import logging
import random
from typing import Generic, TypeVar

from hireflow.contracts.results import InferenceResult

T = TypeVar("T")

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Exponential backoff with jitter and a hard ceiling."""

    max_attempts: int = 2
    base_delay_seconds: float = 0.8
    max_delay_seconds: float = 15.0
    jitter_seconds: float = 0.25

    def delay_for(
        self,
        attempt_index: int,
        retry_after_seconds: float | None = None,
        rng: Callable[[], float] = random.random,
    ) -> float:
        if retry_after_seconds is not None:
            base = retry_after_seconds
        else:
            base = self.base_delay_seconds * (2**attempt_index)
        return min(self.max_delay_seconds, base + rng() * self.jitter_seconds)


@dataclass(frozen=True, slots=True)
class RetryOutcome(Generic[T]):
    result: InferenceResult[T]
    attempts: int

    @property
    def ok(self) -> bool:
        return self.result.ok


async def retry_transient(
    op: Callable[[], Awaitable[InferenceResult[T]]],
    policy: RetryPolicy | None = None,
    *,
    sleep: Sleep = asyncio.sleep,
    rng: Callable[[], float] = random.random,
    label: str = "collaborator",
) -> RetryOutcome[T]:
    """Await ``op`` until it succeeds, fails permanently, or attempts run out."""
    policy = policy or RetryPolicy()
    attempts = 0
    while True:
        result = await op()
        attempts += 1
        failure = result.failure
        if failure is None or not failure.retryable or attempts >= policy.max_attempts:
            return RetryOutcome(result=result, attempts=attempts)
        delay = policy.delay_for(attempts - 1, failure.retry_after_seconds, rng)
        logger.info(
            "retry.scheduled",
            extra={
                "extra": {
                    "label": label,
                    "attempt": attempts,
                    "code": failure.code,
                    "delay_seconds": round(delay, 3),
                }
            },
        )
        await sleep(delay)
