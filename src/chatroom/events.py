"""Presence lifecycle events for pub/sub observation."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PresenceEvent:
    """Base presence event."""

    name: str = ""
    at: float = 0.0


@dataclass(frozen=True)
class ParticipantJoined(PresenceEvent):
    """A participant registered under *name*."""


@dataclass(frozen=True)
class ParticipantLeft(PresenceEvent):
    """A participant was evicted after missing heartbeats."""

    last_seen: float = 0.0
