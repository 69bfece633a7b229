"""Configuration loading and validation."""

from chatroom.config.schema import (
    MessagesConfig,
    PresenceConfig,
    RoomConfig,
    ServerConfig,
)
from chatroom.config.loader import ConfigError, load_config

__all__ = [
    "ConfigError",
    "MessagesConfig",
    "PresenceConfig",
    "RoomConfig",
    "ServerConfig",
    "load_config",
]
