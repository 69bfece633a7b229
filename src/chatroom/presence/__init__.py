"""Presence tracking: participant registry and expiry sweep."""

from chatroom.presence.registry import Participant, ParticipantRegistry
from chatroom.presence.rwlock import ReadWriteLock
from chatroom.presence.sweeper import SweepScheduler, SweepState

__all__ = [
    "Participant",
    "ParticipantRegistry",
    "ReadWriteLock",
    "SweepScheduler",
    "SweepState",
]
