"""Pydantic models for all configuration."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    """Where the HTTP surface listens."""

    host: str = "0.0.0.0"
    port: int = Field(default=5000, ge=0, le=65535)


class PresenceConfig(BaseModel):
    """Heartbeat expiry and sweep cadence.  The two knobs are independent."""

    ttl_seconds: float = Field(default=10.0, gt=0)
    sweep_interval_seconds: float = Field(default=15.0, gt=0)


class MessagesConfig(BaseModel):
    """Message stamping and the texts of synthetic status messages."""

    everyone: str = Field(default="everyone", min_length=1)
    time_format: str = "%H:%M:%S"
    join_text: str = Field(default="joined the room", min_length=1)
    leave_text: str = Field(default="left the room", min_length=1)


class RoomConfig(BaseModel):
    """Top-level chat room configuration."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    presence: PresenceConfig = Field(default_factory=PresenceConfig)
    messages: MessagesConfig = Field(default_factory=MessagesConfig)
