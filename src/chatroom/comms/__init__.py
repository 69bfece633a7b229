"""Messages, their visibility rules and the append-only store."""

from chatroom.comms.message import EVERYONE, Direct, Everyone, Message, MessageKind
from chatroom.comms.store import MessageStore
from chatroom.comms.visibility import is_visible

__all__ = [
    "EVERYONE",
    "Direct",
    "Everyone",
    "Message",
    "MessageKind",
    "MessageStore",
    "is_visible",
]
