"""Error taxonomy shared by the core and the HTTP surface."""

from __future__ import annotations

from typing import Any


class ChatRoomError(Exception):
    """Base class for every error a chat room operation may raise."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Any:
        """Return the JSON-friendly body sent back to the client."""
        return {"error": self.message}


class ValidationError(ChatRoomError):
    """Malformed or missing fields.  Carries every violation, not just the first."""

    status_code = 422

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors) or "invalid input")
        self.errors = list(errors)

    def to_payload(self) -> Any:
        return list(self.errors)


class ConflictError(ChatRoomError):
    """Name already taken, or sender is not a registered participant."""

    status_code = 409


class NotFoundError(ChatRoomError):
    """The named participant is not registered."""

    status_code = 404


class InternalError(ChatRoomError):
    """Unexpected failure inside the storage layer."""

    status_code = 500
