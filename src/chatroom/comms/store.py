"""Append-only message store with per-reader visibility."""

from __future__ import annotations

import itertools
import logging
import threading

from chatroom.clock import Clock
from chatroom.comms.message import Message, MessageKind
from chatroom.comms.visibility import is_visible
from chatroom.errors import ValidationError

logger = logging.getLogger(__name__)


class MessageStore:
    """Keeps every message in append order for the life of the process.

    Appends are serialised by a lock.  Queries copy the sequence under the
    same lock and filter the copy outside it, so a slow reader never holds
    up writers.
    """

    def __init__(self, clock: Clock, time_format: str = "%H:%M:%S") -> None:
        self._clock = clock
        self._time_format = time_format
        self._messages: list[Message] = []
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def append(
        self,
        sender: str,
        to: str,
        text: str,
        kind: MessageKind | str,
    ) -> Message:
        """Validate, stamp and store a message.

        Raises
        ------
        ValidationError
            Listing every violated field when *sender*, *to* or *text* is
            empty or *kind* is not a recognised message kind.
        """
        errors: list[str] = []
        if not sender:
            errors.append('"from" is not allowed to be empty')
        if not to:
            errors.append('"to" is not allowed to be empty')
        if not text:
            errors.append('"text" is not allowed to be empty')
        resolved = MessageKind.from_wire(kind)
        if resolved is None:
            valid = ", ".join(k.value for k in MessageKind)
            errors.append(f'"type" must be one of [{valid}]')
        if errors:
            raise ValidationError(errors)

        with self._lock:
            message = Message(
                id=next(self._ids),
                sender=sender,
                to=to,
                text=text,
                kind=resolved,
                time=self._clock.format(self._time_format),
            )
            self._messages.append(message)

        logger.debug(
            "Stored message #%d %s -> %s (%s)",
            message.id,
            sender,
            to,
            resolved.value,
        )
        return message

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def query(self, reader: str | None, limit: int | None = None) -> list[Message]:
        """Return the newest *limit* messages visible to *reader*, oldest first.

        ``None`` or a non-positive *limit* returns the whole visible history.
        """
        with self._lock:
            snapshot = list(self._messages)

        visible = [m for m in snapshot if is_visible(m, reader)]
        if limit is None or limit <= 0:
            return visible
        return visible[-limit:]

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)
