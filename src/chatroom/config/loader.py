"""Build the effective room configuration from a YAML file and overrides."""

from __future__ import annotations

import logging
from typing import Any, Mapping

import yaml
from pydantic import ValidationError as PydanticValidationError

from chatroom.config.schema import RoomConfig

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """The configuration file or an override cannot be used."""


def load_config(
    path: str | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> RoomConfig:
    """Return the validated :class:`RoomConfig` for *path* plus *overrides*.

    *path* may be None, in which case the built-in defaults are the base.
    An empty file also means "all defaults".  *overrides* maps dotted keys
    such as ``"presence.ttl_seconds"`` to values; None values are skipped so
    unset command-line flags can be passed straight through.

    Raises
    ------
    ConfigError
        If the file is missing, is not a YAML mapping, or the result fails
        validation.  A server should not start on a config it cannot read.
    """
    data = _read_yaml(path) if path is not None else {}

    applied = []
    for dotted, value in (overrides or {}).items():
        if value is None:
            continue
        _set_dotted(data, dotted, value)
        applied.append(dotted)

    try:
        config = RoomConfig.model_validate(data)
    except PydanticValidationError as exc:
        source = path or "defaults"
        raise ConfigError(f"Invalid config ({source}): {_describe(exc)}") from exc

    logger.debug(
        "Loaded config from %s with overrides %s",
        path or "defaults",
        ", ".join(applied) or "none",
    )
    return config


def _read_yaml(path: str) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc.strerror or exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file {path} is not valid YAML: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Config file {path} must hold a mapping, got {type(data).__name__}"
        )
    return data


def _set_dotted(data: dict[str, Any], dotted: str, value: Any) -> None:
    *sections, key = dotted.split(".")
    node = data
    for section in sections:
        child = node.setdefault(section, {})
        if not isinstance(child, dict):
            raise ConfigError(f"Cannot override {dotted}: {section!r} is not a section")
        node = child
    node[key] = value


def _describe(exc: PydanticValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
