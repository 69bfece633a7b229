"""Tests for chatroom.room -- the ChatRoom core."""

from __future__ import annotations

import threading

import pytest

from chatroom.clock import ManualClock
from chatroom.comms.message import MessageKind
from chatroom.config.schema import RoomConfig
from chatroom.errors import ConflictError, NotFoundError, ValidationError
from chatroom.events import ParticipantJoined, ParticipantLeft, PresenceEvent
from chatroom.room import ChatRoom


# ======================================================================
# Fixtures
# ======================================================================


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def room(clock: ManualClock) -> ChatRoom:
    return ChatRoom(clock=clock, ttl=10.0)


# ======================================================================
# Joining
# ======================================================================


class TestJoin:
    """Tests for ChatRoom.join."""

    def test_join_appends_status_message(self, room: ChatRoom) -> None:
        participant = room.join("alice")

        assert participant.name == "alice"
        messages = room.list_messages("alice")
        assert len(messages) == 1
        msg = messages[0]
        assert msg.kind is MessageKind.STATUS
        assert (msg.sender, msg.to, msg.text) == ("alice", "everyone", "joined the room")

    def test_duplicate_join_leaves_state_unchanged(self, room: ChatRoom) -> None:
        room.join("alice")
        with pytest.raises(ConflictError):
            room.join("alice")
        assert len(room.list_participants()) == 1
        assert len(room.store) == 1

    def test_empty_name_rejected(self, room: ChatRoom) -> None:
        with pytest.raises(ValidationError):
            room.join("")
        assert len(room.store) == 0

    def test_rejoin_after_expiry_announces_leave_first(
        self, room: ChatRoom, clock: ManualClock
    ) -> None:
        room.join("alice")
        clock.advance(15.0)
        room.join("alice")

        texts = [m.text for m in room.list_messages(None)]
        assert texts == ["joined the room", "left the room", "joined the room"]

    def test_listeners_receive_events(self, clock: ManualClock) -> None:
        received: list[PresenceEvent] = []
        room = ChatRoom(clock=clock, listeners=[received.append])
        room.join("alice")
        clock.advance(11.0)
        room.sweep_expired()

        assert [type(e) for e in received] == [ParticipantJoined, ParticipantLeft]
        assert all(e.name == "alice" for e in received)

    def test_failing_listener_does_not_break_join(self, clock: ManualClock) -> None:
        def boom(event: PresenceEvent) -> None:
            raise RuntimeError("listener down")

        room = ChatRoom(clock=clock, listeners=[boom])
        room.join("alice")
        assert "alice" in room.registry


# ======================================================================
# Heartbeat
# ======================================================================


class TestHeartbeat:
    """Tests for ChatRoom.heartbeat."""

    def test_unknown(self, room: ChatRoom) -> None:
        with pytest.raises(NotFoundError):
            room.heartbeat("bob")

    def test_known(self, room: ChatRoom, clock: ManualClock) -> None:
        room.join("alice")
        clock.advance(3.0)
        assert room.heartbeat("alice").last_seen == clock.now()


# ======================================================================
# Sending
# ======================================================================


class TestSend:
    """Tests for ChatRoom.send."""

    def test_broadcast(self, room: ChatRoom) -> None:
        room.join("alice")
        msg = room.send("alice", "everyone", "hi", "message")
        assert msg.kind is MessageKind.BROADCAST
        assert msg.sender == "alice"

    def test_direct(self, room: ChatRoom) -> None:
        room.join("alice")
        msg = room.send("alice", "bob", "psst", MessageKind.DIRECT)
        assert msg.kind is MessageKind.DIRECT

    def test_unregistered_sender(self, room: ChatRoom) -> None:
        with pytest.raises(ConflictError):
            room.send("dave", "everyone", "hello", "message")
        assert len(room.store) == 0

    def test_validation_before_membership(self, room: ChatRoom) -> None:
        with pytest.raises(ValidationError) as info:
            room.send("dave", "", "", "message")
        assert len(info.value.errors) == 2

    def test_collects_every_violation(self, room: ChatRoom) -> None:
        room.join("alice")
        before = len(room.store)
        with pytest.raises(ValidationError) as info:
            room.send("", "", "", "shout")
        assert len(info.value.errors) == 4
        assert len(room.store) == before

    def test_status_kind_not_sendable(self, room: ChatRoom) -> None:
        room.join("alice")
        with pytest.raises(ValidationError):
            room.send("alice", "everyone", "left the room", "status")

    def test_sender_may_leave_after_sending(
        self, room: ChatRoom, clock: ManualClock
    ) -> None:
        room.join("alice")
        room.send("alice", "everyone", "bye", "message")
        clock.advance(11.0)
        room.sweep_expired()
        assert "bye" in [m.text for m in room.list_messages("carol")]


# ======================================================================
# Sweeping
# ======================================================================


class TestSweep:
    """Tests for ChatRoom.sweep_expired."""

    def test_one_leave_message_per_eviction(
        self, room: ChatRoom, clock: ManualClock
    ) -> None:
        room.join("alice")
        clock.advance(11.0)
        assert room.sweep_expired() == ["alice"]

        leaves = [m for m in room.list_messages(None) if m.text == "left the room"]
        assert len(leaves) == 1
        assert leaves[0].sender == "alice"

    def test_empty_sweep_appends_nothing(self, room: ChatRoom) -> None:
        room.join("alice")
        before = len(room.store)
        assert room.sweep_expired() == []
        assert len(room.store) == before

    def test_rejoin_during_sweep_waits_for_leave_message(
        self, room: ChatRoom, clock: ManualClock
    ) -> None:
        room.join("alice")
        clock.advance(11.0)

        paused = threading.Event()
        resume = threading.Event()
        store_append = room.store.append

        def slow_append(sender, to, text, kind):
            if text == "left the room" and not paused.is_set():
                paused.set()
                resume.wait(5.0)
            return store_append(sender, to, text, kind)

        room.store.append = slow_append  # type: ignore[method-assign]

        sweeper = threading.Thread(target=room.sweep_expired)
        sweeper.start()
        assert paused.wait(5.0)

        joined = threading.Event()

        def rejoin() -> None:
            room.join("alice")
            joined.set()

        joiner = threading.Thread(target=rejoin)
        joiner.start()
        assert joined.wait(0.2) is False

        resume.set()
        sweeper.join(5.0)
        joiner.join(5.0)

        assert joined.is_set()
        log = [(m.sender, m.text) for m in room.list_messages(None)]
        assert log == [
            ("alice", "joined the room"),
            ("alice", "left the room"),
            ("alice", "joined the room"),
        ]
        assert [p.name for p in room.list_participants()] == ["alice"]


# ======================================================================
# Configuration
# ======================================================================


class TestFromConfig:
    """Tests for ChatRoom.from_config."""

    def test_uses_config_values(self, clock: ManualClock) -> None:
        config = RoomConfig.model_validate(
            {
                "presence": {"ttl_seconds": 3},
                "messages": {
                    "everyone": "todos",
                    "join_text": "entra na sala...",
                    "leave_text": "sai da sala...",
                },
            }
        )
        room = ChatRoom.from_config(config, clock=clock)
        assert room.ttl == 3

        room.join("ana")
        clock.advance(4.0)
        room.sweep_expired()
        messages = room.list_messages(None)
        assert [(m.to, m.text) for m in messages] == [
            ("todos", "entra na sala..."),
            ("todos", "sai da sala..."),
        ]


# ======================================================================
# End-to-end scenario
# ======================================================================


class TestScenario:
    """Join, duplicate join, unknown heartbeat, broadcast, bounded read."""

    def test_alice_bob_carol(self, room: ChatRoom) -> None:
        room.join("alice")
        assert len(room.store) == 1

        with pytest.raises(ConflictError):
            room.join("alice")
        assert len(room.registry) == 1

        with pytest.raises(NotFoundError):
            room.heartbeat("bob")

        room.send("alice", "everyone", "hi", MessageKind.BROADCAST)

        messages = room.list_messages("carol", 5)
        assert len(messages) == 2
        assert [m.kind for m in messages] == [MessageKind.STATUS, MessageKind.BROADCAST]
        assert messages[1].text == "hi"
