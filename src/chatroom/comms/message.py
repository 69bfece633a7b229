"""Message data structures for the chat room."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

EVERYONE = "everyone"


class MessageKind(Enum):
    """What a message is; the value is its name on the wire."""

    BROADCAST = "message"
    DIRECT = "private-message"
    STATUS = "status"

    @classmethod
    def from_wire(cls, value: MessageKind | str) -> MessageKind | None:
        """Look up a kind by wire value or member name, or return None."""
        if isinstance(value, MessageKind):
            return value
        for kind in cls:
            if value == kind.value or str(value).upper() == kind.name:
                return kind
        return None


@dataclass(frozen=True)
class Everyone:
    """Recipient variant: the whole room."""


@dataclass(frozen=True)
class Direct:
    """Recipient variant: a single named participant."""

    name: str


Recipient = Union[Everyone, Direct]


@dataclass(frozen=True)
class Message:
    """An immutable message, stamped when it was appended to the store."""

    id: int
    sender: str
    to: str  # participant name or the broadcast sentinel
    text: str
    kind: MessageKind
    time: str  # "HH:MM:SS"

    @property
    def recipient(self) -> Recipient:
        """Only direct messages are addressed to one reader."""
        if self.kind is MessageKind.DIRECT:
            return Direct(self.to)
        return Everyone()

    def to_dict(self) -> dict[str, Any]:
        """Serialise using the wire field names."""
        return {
            "id": self.id,
            "from": self.sender,
            "to": self.to,
            "text": self.text,
            "type": self.kind.value,
            "time": self.time,
        }
