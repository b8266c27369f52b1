"""Persistence for the proposed action queue."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Protocol

from hireflow.contracts.models import ProposedAction
from hireflow.contracts.results import StoreResult
from hireflow.stores.json_files import read_json, write_json_atomic

logger = logging.getLogger(__name__)


class ProposalStore(Protocol):
    def load_all(self) -> StoreResult[list[ProposedAction]]:
        """Return every stored proposal."""

    def save_all(self, actions: list[ProposedAction]) -> StoreResult[None]:
        """Replace the stored proposals with ``actions``."""


class InMemoryProposalStore:
    def __init__(self, actions: list[ProposedAction] | None = None) -> None:
        self._actions = [a.model_copy(deep=True) for a in actions or []]

    def load_all(self) -> StoreResult[list[ProposedAction]]:
        return StoreResult.of([a.model_copy(deep=True) for a in self._actions])

    def save_all(self, actions: list[ProposedAction]) -> StoreResult[None]:
        self._actions = [a.model_copy(deep=True) for a in actions]
        return StoreResult.of(None)


@dataclass
class JsonFileProposalStore:
    """Persist the whole queue as a JSON array at ``path``."""

    path: Path

    def load_all(self) -> StoreResult[list[ProposedAction]]:
        try:
            raw = read_json(self.path, [])
            return StoreResult.of([ProposedAction.model_validate(item) for item in raw])
        except (OSError, ValueError, TypeError) as exc:
            logger.warning("proposals.read_failed", extra={"extra": {"path": str(self.path)}})
            return StoreResult.unavailable(f"proposal read failed: {exc}")

    def save_all(self, actions: list[ProposedAction]) -> StoreResult[None]:
        try:
            write_json_atomic(self.path, [a.model_dump(mode="json") for a in actions])
        except (OSError, ValueError) as exc:
            logger.warning("proposals.write_failed", extra={"extra": {"path": str(self.path)}})
            return StoreResult.unavailable(f"proposal write failed: {exc}")
        return StoreResult.of(None)
