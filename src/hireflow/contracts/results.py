"""Explicit success/degraded results returned by collaborators."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Degraded:
    """Why a persistence call could not be served."""

    reason: str
    not_provisioned: bool = False


@dataclass(frozen=True, slots=True)
class StoreResult(Generic[T]):
    """Outcome of a persistence call: a value, or a degraded-mode marker.

    Stores never raise for I/O problems; callers branch on ``ok`` and decide
    whether to fail open, skip, or warn.
    """

    value: T | None = None
    degraded: Degraded | None = None

    @property
    def ok(self) -> bool:
        return self.degraded is None

    @classmethod
    def of(cls, value: T | None = None) -> StoreResult[T]:
        return cls(value=value)

    @classmethod
    def unavailable(cls, reason: str, *, not_provisioned: bool = False) -> StoreResult[T]:
        return cls(degraded=Degraded(reason=reason, not_provisioned=not_provisioned))


@dataclass(frozen=True, slots=True)
class InferenceFailure:
    """Classified failure from an inference or search collaborator."""

    code: str
    message: str
    retryable: bool = False
    retry_after_seconds: float | None = None


@dataclass(frozen=True, slots=True)
class InferenceResult(Generic[T]):
    """Outcome of a collaborator call that may fail transiently."""

    value: T | None = None
    failure: InferenceFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value: T) -> InferenceResult[T]:
        return cls(value=value)

    @classmethod
    def fail(
        cls,
        code: str,
        message: str,
        *,
        retryable: bool = False,
        retry_after_seconds: float | None = None,
    ) -> InferenceResult[T]:
        return cls(
            failure=InferenceFailure(
                code=code,
                message=message,
                retryable=retryable,
                retry_after_seconds=retry_after_seconds,
            )
        )
