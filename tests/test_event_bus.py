from __future__ import annotations

from hireflow.contracts.events import AGENT_NOTIFICATION, AGENT_PROPOSALS_CHANGED, CANDIDATE_STAGED
from hireflow.orchestrator.event_bus import Event, InMemoryEventBus
from hireflow.orchestrator.recorder import RecordingEventBus


def _event(topic: str, n: int) -> Event:
    return Event(event_type=topic, payload={"n": n})


def test_events_are_delivered_per_topic_in_order() -> None:
    bus = InMemoryEventBus()
    bus.publish(_event(CANDIDATE_STAGED, 1))
    bus.publish(_event(AGENT_NOTIFICATION, 2))
    bus.publish(_event(CANDIDATE_STAGED, 3))

    assert bus.pending(CANDIDATE_STAGED) == 2
    assert bus.next_event(CANDIDATE_STAGED, timeout=0).payload == {"n": 1}
    assert bus.next_event(CANDIDATE_STAGED, timeout=0).payload == {"n": 3}
    assert bus.next_event(CANDIDATE_STAGED, timeout=0) is None
    assert bus.pending(AGENT_NOTIFICATION) == 1


def test_full_topic_drops_oldest() -> None:
    bus = InMemoryEventBus(topic_capacity=2)
    for n in range(4):
        bus.publish(_event(CANDIDATE_STAGED, n))

    assert bus.dropped == 2
    assert bus.next_event(CANDIDATE_STAGED, timeout=0).payload == {"n": 2}


def test_recorder_keeps_everything_it_forwards() -> None:
    recorder = RecordingEventBus(InMemoryEventBus(topic_capacity=1))
    recorder.publish(_event(CANDIDATE_STAGED, 1))
    recorder.publish(_event(CANDIDATE_STAGED, 2))

    assert [e.payload["n"] for e in recorder.of_type(CANDIDATE_STAGED)] == [1, 2]
    assert recorder.pending(CANDIDATE_STAGED) == 1


def test_recorder_trail_can_be_bounded_and_filtered() -> None:
    recorder = RecordingEventBus(InMemoryEventBus(), keep=2)
    recorder.publish(Event(event_type=CANDIDATE_STAGED, payload={"n": 1}, subject_id="cand_1"))
    recorder.publish(Event(event_type=AGENT_PROPOSALS_CHANGED, payload={}, subject_id="cand_2"))
    recorder.publish(Event(event_type=CANDIDATE_STAGED, payload={"n": 3}, subject_id="cand_2"))

    assert recorder.types() == [AGENT_PROPOSALS_CHANGED, CANDIDATE_STAGED]
    assert len(recorder.for_subject("cand_2")) == 2
    assert recorder.for_subject("cand_1") == []

    recorder.clear()
    assert recorder.events == []


def test_every_subscriber_sees_proposal_changes() -> None:
    bus = InMemoryEventBus()
    panel: list[Event] = []
    counter: list[Event] = []
    bus.subscribe(AGENT_PROPOSALS_CHANGED, panel.append)
    bus.subscribe(AGENT_PROPOSALS_CHANGED, counter.append)

    bus.publish(_event(AGENT_PROPOSALS_CHANGED, 1))
    bus.publish(_event(CANDIDATE_STAGED, 2))

    assert [e.payload["n"] for e in panel] == [1]
    assert [e.payload["n"] for e in counter] == [1]
    # pull consumers still find the event buffered
    assert bus.pending(AGENT_PROPOSALS_CHANGED) == 1


def test_failing_subscriber_does_not_block_others_or_publisher() -> None:
    bus = InMemoryEventBus()
    seen: list[int] = []

    def broken(event: Event) -> None:
        raise RuntimeError("panel crashed")

    bus.subscribe(AGENT_NOTIFICATION, broken)
    bus.subscribe(AGENT_NOTIFICATION, lambda e: seen.append(e.payload["n"]))

    bus.publish(_event(AGENT_NOTIFICATION, 7))

    assert seen == [7]


def test_unsubscribe_stops_delivery() -> None:
    recorder = RecordingEventBus(InMemoryEventBus())
    seen: list[Event] = []
    unsubscribe = recorder.subscribe(CANDIDATE_STAGED, seen.append)

    recorder.publish(_event(CANDIDATE_STAGED, 1))
    unsubscribe()
    recorder.publish(_event(CANDIDATE_STAGED, 2))

    assert [e.payload["n"] for e in seen] == [1]
    assert len(recorder.of_type(CANDIDATE_STAGED)) == 2
