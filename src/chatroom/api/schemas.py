"""Request body models for the HTTP surface."""

from __future__ import annotations

from typing import Any, Literal, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from chatroom.errors import ValidationError

M = TypeVar("M", bound=BaseModel)


class JoinRequest(BaseModel):
    """``POST /participants``."""

    name: str = Field(min_length=1)


class SendRequest(BaseModel):
    """``POST /messages``.  ``from`` is taken from the ``User`` header."""

    model_config = ConfigDict(populate_by_name=True)

    sender: str = Field(alias="from", min_length=1)
    to: str = Field(min_length=1)
    text: str = Field(min_length=1)
    type: Literal["message", "private-message"]


class MessagesQuery(BaseModel):
    """``GET /messages`` query string."""

    limit: int | None = None


def parse_request(model: type[M], data: Any) -> M:
    """Validate *data* against *model*, reporting every failing field.

    Raises
    ------
    ValidationError
        With one human-readable entry per violation.
    """
    if not isinstance(data, dict):
        raise ValidationError(["request body must be a JSON object"])
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(_format_errors(exc)) from exc


def _format_errors(exc: pydantic.ValidationError) -> list[str]:
    messages: list[str] = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or "body"
        messages.append(f'"{field}" {err.get("msg", "is invalid")}')
    return messages
