"""The chat room core: registry, message store and clock wired together."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Callable

from chatroom.clock import Clock, SystemClock
from chatroom.comms.message import Message, MessageKind
from chatroom.comms.store import MessageStore
from chatroom.errors import ConflictError, ValidationError
from chatroom.events import ParticipantJoined, ParticipantLeft, PresenceEvent
from chatroom.presence.registry import Participant, ParticipantRegistry

if TYPE_CHECKING:
    from chatroom.config.schema import RoomConfig

logger = logging.getLogger(__name__)

PresenceListener = Callable[[PresenceEvent], Any]

# Kinds a client may send; status messages are produced by the room itself.
SENDABLE_KINDS = (MessageKind.BROADCAST, MessageKind.DIRECT)


class ChatRoom:
    """One shared room.  Request handlers and the sweep scheduler both hold
    a reference to the same instance.

    Parameters
    ----------
    clock:
        Time source shared by the registry and the store.
    ttl:
        Heartbeat expiry in seconds.
    everyone:
        Recipient name used for broadcasts and status messages.
    time_format:
        ``strftime`` pattern for message timestamps.
    join_text, leave_text:
        Bodies of the synthetic status messages.
    listeners:
        Callables invoked with every :class:`PresenceEvent`, after the
        corresponding status message has been stored.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        ttl: float = 10.0,
        everyone: str = "everyone",
        time_format: str = "%H:%M:%S",
        join_text: str = "joined the room",
        leave_text: str = "left the room",
        listeners: list[PresenceListener] | None = None,
    ) -> None:
        self.clock = clock or SystemClock()
        self.everyone = everyone
        self.join_text = join_text
        self.leave_text = leave_text
        self.registry = ParticipantRegistry(self.clock, ttl=ttl)
        self.store = MessageStore(self.clock, time_format=time_format)
        self.listeners: list[PresenceListener] = listeners or []
        # Held across a registry mutation and its status messages so the
        # message log always agrees with the order of presence changes.
        self._presence_lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: RoomConfig,
        clock: Clock | None = None,
        listeners: list[PresenceListener] | None = None,
    ) -> ChatRoom:
        """Build a room from a :class:`~chatroom.config.schema.RoomConfig`."""
        return cls(
            clock=clock,
            ttl=config.presence.ttl_seconds,
            everyone=config.messages.everyone,
            time_format=config.messages.time_format,
            join_text=config.messages.join_text,
            leave_text=config.messages.leave_text,
            listeners=listeners,
        )

    @property
    def ttl(self) -> float:
        return self.registry.ttl

    # ------------------------------------------------------------------
    # Participants
    # ------------------------------------------------------------------

    def join(self, name: str) -> Participant:
        """Register *name* and announce it to the room.

        Raises
        ------
        ValidationError
            If *name* is empty.
        ConflictError
            If the name is held by a live participant.
        """
        with self._presence_lock:
            events = self.registry.join(name)
            for event in events:
                self._post_status(event)
        self._notify(events)
        return Participant(name=name, last_seen=events[-1].at)

    def heartbeat(self, name: str) -> Participant:
        """Keep *name* alive.  Raises :class:`NotFoundError` if unknown."""
        return self.registry.heartbeat(name)

    def list_participants(self) -> list[Participant]:
        return self.registry.list()

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def send(
        self,
        sender: str,
        to: str,
        text: str,
        kind: MessageKind | str,
    ) -> Message:
        """Post a message on behalf of a registered participant.

        All field problems are collected before the sender is looked up,
        and nothing is stored unless every check passes.

        Raises
        ------
        ValidationError
            Empty fields or a kind other than broadcast/direct.
        ConflictError
            If *sender* is not a registered participant.
        """
        errors: list[str] = []
        if not sender:
            errors.append('"from" is not allowed to be empty')
        if not to:
            errors.append('"to" is not allowed to be empty')
        if not text:
            errors.append('"text" is not allowed to be empty')
        resolved = MessageKind.from_wire(kind)
        if resolved not in SENDABLE_KINDS:
            valid = ", ".join(k.value for k in SENDABLE_KINDS)
            errors.append(f'"type" must be one of [{valid}]')
        if errors:
            raise ValidationError(errors)

        if sender not in self.registry:
            logger.info("Rejected message from unregistered sender %s", sender)
            raise ConflictError(f"Sender {sender!r} is not a registered participant")

        return self.store.append(sender, to, text, resolved)

    def list_messages(self, reader: str | None, limit: int | None = None) -> list[Message]:
        """Newest *limit* messages *reader* may see, in append order."""
        messages = self.store.query(reader, limit)
        logger.debug(
            "Query by %s (limit=%s) returned %d message(s)",
            reader or "<anonymous>",
            limit,
            len(messages),
        )
        return messages

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------

    def sweep_expired(self) -> list[str]:
        """Evict idle participants and post one leave message per eviction.

        Returns the evicted names in eviction order.  Nothing is stored
        when no one has expired.
        """
        with self._presence_lock:
            now = self.clock.now()
            evicted = self.registry.sweep_expired(now, self.ttl)
            events = [ParticipantLeft(name=name, at=now) for name in evicted]
            for event in events:
                self._post_status(event)
        self._notify(events)
        return evicted

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _post_status(self, event: PresenceEvent) -> Message:
        """Store the status message for *event*."""
        if isinstance(event, ParticipantJoined):
            text = self.join_text
        elif isinstance(event, ParticipantLeft):
            text = self.leave_text
        else:
            raise TypeError(f"Unknown presence event: {event!r}")
        return self.store.append(event.name, self.everyone, text, MessageKind.STATUS)

    def _notify(self, events: list[PresenceEvent]) -> None:
        for event in events:
            for listener in self.listeners:
                try:
                    listener(event)
                except Exception:
                    logger.exception("Presence listener %r raised", listener)
