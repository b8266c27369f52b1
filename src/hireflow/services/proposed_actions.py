"""Queue of agent proposals awaiting operator approval."""

from __future__ import annotations

from collections.abc import Iterable
import logging

from hireflow.contracts.events import AGENT_PROPOSALS_CHANGED
from hireflow.contracts.models import Evidence, ProposalPayload, ProposedAction
from hireflow.contracts.results import Degraded
from hireflow.contracts.types import AgentType, ProposalStatus
from hireflow.observability.metrics import PROPOSAL_CHANGES, PROPOSALS_PENDING
from hireflow.orchestrator.clock import Clock, utc_now
from hireflow.orchestrator.event_bus import Event, EventBus
from hireflow.stores.proposals import ProposalStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 500


def _payload_refs(payload: ProposalPayload) -> tuple[str | None, str | None]:
    candidate = getattr(payload, "candidate", None)
    candidate_id = candidate.id if candidate is not None else getattr(payload, "candidate_id", None)
    return candidate_id, getattr(payload, "job_id", None)


def _collapse_duplicates(actions: Iterable[ProposedAction]) -> list[ProposedAction]:
    """Merge pending entries sharing a dedup key.

    The merged entry keeps the earliest id and created_at and carries the
    most recently updated payload.
    """
    merged: dict[tuple, ProposedAction] = {}
    passthrough: list[ProposedAction] = []
    for action in actions:
        key = action.dedup_key()
        if key is None:
            passthrough.append(action)
            continue
        current = merged.get(key)
        if current is None:
            merged[key] = action
            continue
        oldest = current if current.created_at <= action.created_at else action
        latest = current if current.updated_at >= action.updated_at else action
        merged[key] = latest.model_copy(
            update={"id": oldest.id, "created_at": oldest.created_at}
        )
    return passthrough + list(merged.values())


class ProposedActionQueue:
    """Holds proposals newest first and coalesces repeats.

    A new pending proposal with the same agent, candidate, job and payload
    type as an existing pending one replaces its content in place, keeping the
    original id and creation time. Every change is announced on the bus as
    ``agent.proposals.changed``. Without a working store the queue keeps
    operating in memory.
    """

    def __init__(
        self,
        bus: EventBus,
        store: ProposalStore | None = None,
        *,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Clock = utc_now,
    ) -> None:
        self._bus = bus
        self._store = store
        self._max_entries = max_entries
        self._clock = clock
        self._actions: list[ProposedAction] = []
        self._local_only = store is None
        if store is not None:
            loaded = store.load_all()
            if loaded.ok:
                self._actions = sorted(
                    loaded.value or [], key=lambda a: a.created_at, reverse=True
                )
                self._trim()
            elif loaded.degraded is not None:
                self._degrade(loaded.degraded)

    @property
    def local_only(self) -> bool:
        return self._local_only

    def add(
        self,
        *,
        agent_type: AgentType,
        title: str,
        description: str,
        payload: ProposalPayload,
        candidate_id: str | None = None,
        job_id: str | None = None,
        evidence: Iterable[Evidence] = (),
    ) -> ProposedAction:
        payload_candidate, payload_job = _payload_refs(payload)
        now = self._clock()
        incoming = ProposedAction(
            agent_type=agent_type,
            title=title,
            description=description,
            candidate_id=candidate_id or payload_candidate,
            job_id=job_id or payload_job,
            payload=payload,
            evidence=list(evidence),
            created_at=now,
            updated_at=now,
        )
        key = incoming.dedup_key()
        if key is not None:
            for index, existing in enumerate(self._actions):
                if existing.dedup_key() != key:
                    continue
                updated = existing.model_copy(
                    update={
                        "title": incoming.title,
                        "description": incoming.description,
                        "payload": incoming.payload,
                        "evidence": incoming.evidence,
                        "updated_at": now,
                    }
                )
                self._actions[index] = updated
                self._changed("updated", updated)
                return updated

        self._actions.insert(0, incoming)
        self._trim()
        self._changed("added", incoming)
        return incoming

    def mark_status(self, action_id: str, status: ProposalStatus) -> ProposedAction | None:
        """Move a pending proposal to applied or dismissed.

        Unknown ids return None. Entries that already left the pending state
        are returned unchanged.
        """
        if status == ProposalStatus.PROPOSED:
            raise ValueError("a proposal cannot be moved back to proposed")
        for index, action in enumerate(self._actions):
            if action.id != action_id:
                continue
            if action.status != ProposalStatus.PROPOSED:
                logger.info(
                    "proposals.transition_ignored",
                    extra={
                        "extra": {
                            "action_id": action_id,
                            "current": action.status.value,
                            "requested": status.value,
                        }
                    },
                )
                return action
            updated = action.model_copy(update={"status": status, "updated_at": self._clock()})
            self._actions[index] = updated
            self._changed("updated", updated)
            return updated
        return None

    def get(self, action_id: str) -> ProposedAction | None:
        for action in self._actions:
            if action.id == action_id:
                return action
        return None

    def list(self, status: ProposalStatus | None = None) -> list[ProposedAction]:  # noqa: A003
        actions = _collapse_duplicates(self._actions)
        if status is not None:
            actions = [a for a in actions if a.status == status]
        return sorted(actions, key=lambda a: a.created_at, reverse=True)

    def clear(self, status: ProposalStatus | None = None) -> int:
        before = len(self._actions)
        if status is None:
            self._actions = []
        else:
            self._actions = [a for a in self._actions if a.status != status]
        removed = before - len(self._actions)
        if removed:
            self._persist()
            self._bus.publish(
                Event(
                    event_type=AGENT_PROPOSALS_CHANGED,
                    payload={"type": "cleared", "removed": removed},
                )
            )
        return removed

    def _trim(self) -> None:
        """Drop the oldest entries over the cap, applied or dismissed ones first."""
        overflow = len(self._actions) - self._max_entries
        if overflow <= 0:
            return
        order = sorted(
            range(len(self._actions)),
            key=lambda i: (self._actions[i].status == ProposalStatus.PROPOSED, -i),
        )
        evicted = set(order[:overflow])
        pending = sum(
            1 for i in evicted if self._actions[i].status == ProposalStatus.PROPOSED
        )
        if pending:
            logger.warning(
                "proposals.pending_evicted",
                extra={"extra": {"evicted": pending, "max_entries": self._max_entries}},
            )
        self._actions = [a for i, a in enumerate(self._actions) if i not in evicted]

    def _changed(self, change: str, action: ProposedAction) -> None:
        PROPOSAL_CHANGES.labels(agent=action.agent_type.value, change=change).inc()
        self._persist()
        self._bus.publish(
            Event(
                event_type=AGENT_PROPOSALS_CHANGED,
                subject_id=action.candidate_id,
                payload={
                    "type": change,
                    "action_id": action.id,
                    "status": action.status.value,
                    "agent_type": action.agent_type.value,
                },
            )
        )

    def _persist(self) -> None:
        PROPOSALS_PENDING.labels().set(
            sum(1 for a in self._actions if a.status == ProposalStatus.PROPOSED)
        )
        if self._store is None or self._local_only:
            return
        saved = self._store.save_all(self._actions)
        if not saved.ok and saved.degraded is not None:
            self._degrade(saved.degraded)

    def _degrade(self, degraded: Degraded) -> None:
        self._local_only = True
        logger.warning(
            "proposals.local_only",
            extra={"extra": {"reason": degraded.reason}},
        )
