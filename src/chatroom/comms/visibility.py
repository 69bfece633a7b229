"""Which messages a given reader may see."""

from __future__ import annotations

from chatroom.comms.message import Direct, Everyone, Message


def is_visible(message: Message, reader: str | None) -> bool:
    """Return True if *reader* may see *message*.

    Broadcast and status messages reach everyone.  A direct message is
    visible only to its sender and its recipient; an anonymous reader
    (empty or None) never sees one.
    """
    recipient = message.recipient
    if isinstance(recipient, Everyone):
        return True
    if isinstance(recipient, Direct):
        if not reader:
            return False
        return reader == recipient.name or reader == message.sender
    raise TypeError(f"Unknown recipient variant: {recipient!r}")
