"""HTTP surface over the chat room core."""

from chatroom.api.server import ChatServer, start_server

__all__ = [
    "ChatServer",
    "start_server",
]
