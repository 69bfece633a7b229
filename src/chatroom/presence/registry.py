"""Participant registry with heartbeat / TTL semantics."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from chatroom.clock import Clock
from chatroom.errors import ConflictError, NotFoundError, ValidationError
from chatroom.events import ParticipantJoined, ParticipantLeft, PresenceEvent
from chatroom.presence.rwlock import ReadWriteLock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Participant:
    """Immutable snapshot of one registered participant."""

    name: str
    last_seen: float

    def is_expired(self, now: float, ttl: float) -> bool:
        """True once more than *ttl* seconds have passed since the last heartbeat."""
        return now - self.last_seen > ttl


class ParticipantRegistry:
    """Maps participant names to their last heartbeat time.

    Reads (:meth:`list`, :meth:`get`) share a read lock.  Every mutation
    runs inside the write lock, so the uniqueness check and the insert in
    :meth:`join` form a single critical section.

    Parameters
    ----------
    clock:
        Time source for ``last_seen`` stamps.
    ttl:
        Seconds without a heartbeat after which a participant counts as
        expired.  :meth:`join` uses it to decide whether an existing entry
        still blocks the name.
    """

    def __init__(self, clock: Clock, ttl: float = 10.0) -> None:
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl!r}")
        self._clock = clock
        self.ttl = ttl
        self._participants: dict[str, Participant] = {}
        self._lock = ReadWriteLock()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def join(self, name: str) -> list[PresenceEvent]:
        """Register *name* and return the lifecycle events it produced.

        The result always ends with a :class:`ParticipantJoined`.  When the
        name belongs to an entry that has already expired but has not been
        swept yet, that entry is evicted here and a
        :class:`ParticipantLeft` comes first.

        Raises
        ------
        ValidationError
            If *name* is empty.
        ConflictError
            If a live participant already holds *name*.
        """
        if not name:
            raise ValidationError(['"name" is not allowed to be empty'])

        events: list[PresenceEvent] = []
        with self._lock.write():
            now = self._clock.now()
            existing = self._participants.get(name)
            if existing is not None:
                if not existing.is_expired(now, self.ttl):
                    raise ConflictError(f"Participant {name!r} is already registered")
                del self._participants[name]
                events.append(
                    ParticipantLeft(name=name, at=now, last_seen=existing.last_seen)
                )
            self._participants[name] = Participant(name=name, last_seen=now)
            events.append(ParticipantJoined(name=name, at=now))

        if len(events) > 1:
            logger.info("Replaced expired participant %s", name)
        logger.info("Participant joined: %s", name)
        return events

    def heartbeat(self, name: str) -> Participant:
        """Refresh ``last_seen`` for *name*.

        Raises
        ------
        NotFoundError
            If *name* is not registered.
        """
        with self._lock.write():
            current = self._participants.get(name)
            if current is None:
                raise NotFoundError(f"Participant {name!r} not found")
            updated = replace(current, last_seen=self._clock.now())
            self._participants[name] = updated

        logger.debug("Heartbeat from %s", name)
        return updated

    def sweep_expired(self, now: float, ttl: float | None = None) -> list[str]:
        """Remove every participant idle for more than *ttl* seconds.

        Returns the evicted names in registry (insertion) order.
        """
        limit = self.ttl if ttl is None else ttl
        with self._lock.write():
            expired = [
                p.name
                for p in self._participants.values()
                if p.is_expired(now, limit)
            ]
            for name in expired:
                del self._participants[name]

        if expired:
            logger.info("Evicted %d idle participant(s): %s", len(expired), ", ".join(expired))
        return expired

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list(self) -> list[Participant]:
        """Return a point-in-time snapshot in insertion order."""
        with self._lock.read():
            return list(self._participants.values())

    def get(self, name: str) -> Participant | None:
        """Return the participant registered as *name*, or None."""
        with self._lock.read():
            return self._participants.get(name)

    def __contains__(self, name: object) -> bool:
        with self._lock.read():
            return name in self._participants

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._participants)
