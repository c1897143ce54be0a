"""Tests for ballotflow.events: emitter, listeners, and history."""

from ballotflow.events import BallotEvent, BallotEventEmitter, EventType


def test_emit_records_history():
    emitter = BallotEventEmitter()
    event = emitter.emit(EventType.VOTER_REGISTERED, ballot_id="b1", voter="alice")

    assert isinstance(event, BallotEvent)
    assert event.type is EventType.VOTER_REGISTERED
    assert event.ballot_id == "b1"
    assert event.data == {"voter": "alice"}
    assert event.timestamp > 0
    assert emitter.history == [event]


def test_history_is_a_copy():
    emitter = BallotEventEmitter()
    emitter.emit(EventType.VOTED, voter="alice", proposal_id=1)
    emitter.history.clear()
    assert len(emitter.history) == 1


def test_listeners_receive_events_in_order():
    emitter = BallotEventEmitter()
    received: list[BallotEvent] = []
    emitter.add_listener(received.append)

    emitter.emit(EventType.PROPOSAL_REGISTERED, proposal_id=1)
    emitter.emit(EventType.PROPOSAL_REGISTERED, proposal_id=2)

    assert [e.data["proposal_id"] for e in received] == [1, 2]


def test_remove_listener():
    emitter = BallotEventEmitter()
    received: list[BallotEvent] = []

    def _listener(event):
        received.append(event)

    emitter.add_listener(_listener)
    emitter.emit(EventType.VOTED, voter="bob", proposal_id=0)
    emitter.remove_listener(_listener)
    emitter.emit(EventType.VOTED, voter="carol", proposal_id=0)

    assert [e.data["voter"] for e in received] == ["bob"]
    assert len(emitter.history) == 2


def test_listener_error_is_logged_not_raised(caplog):
    emitter = BallotEventEmitter()
    calls: list[EventType] = []

    def _broken(event):
        raise ValueError("boom")

    emitter.add_listener(_broken)
    emitter.add_listener(lambda e: calls.append(e.type))

    emitter.emit(EventType.WORKFLOW_STATUS_CHANGE, previous_status=0, new_status=1)

    assert calls == [EventType.WORKFLOW_STATUS_CHANGE]
    assert "Event listener error" in caplog.text


def test_clear_history():
    emitter = BallotEventEmitter()
    emitter.emit(EventType.VOTER_REGISTERED, voter="alice")
    emitter.clear_history()
    assert emitter.history == []


def test_event_type_values():
    assert {t.value for t in EventType} == {
        "voter_registered",
        "proposal_registered",
        "voted",
        "workflow_status_change",
    }
