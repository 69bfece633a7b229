"""Command-line interface for the chat room server."""

from __future__ import annotations

import logging
from typing import Any

import click
import yaml

from chatroom.events import ParticipantJoined, PresenceEvent

logger = logging.getLogger(__name__)


@click.group()
@click.option("--log-level", default="INFO", help="Logging level.")
def cli(log_level: str) -> None:
    """Chatroom -- presence-tracked chat backend."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _build_config(
    config_path: str | None,
    host: str | None = None,
    port: int | None = None,
    ttl: float | None = None,
    sweep_interval: float | None = None,
) -> Any:
    from chatroom.config.loader import ConfigError, load_config

    overrides = {
        "server.host": host,
        "server.port": port,
        "presence.ttl_seconds": ttl,
        "presence.sweep_interval_seconds": sweep_interval,
    }
    try:
        return load_config(config_path, overrides)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


def _echo_presence(event: PresenceEvent) -> None:
    if isinstance(event, ParticipantJoined):
        click.echo(click.style(f"  + {event.name}", fg="green"))
    else:
        click.echo(click.style(f"  - {event.name}", fg="red"))


# ------------------------------------------------------------------
# chatroom serve
# ------------------------------------------------------------------


@cli.command()
@click.option(
    "--config",
    "config_path",
    default=None,
    envvar="CHATROOM_CONFIG",
    type=click.Path(exists=False),
    help="Path to room config YAML (default: built-in defaults).",
)
@click.option("--host", type=str, default=None, help="Override listen address.")
@click.option("--port", type=int, default=None, help="Override listen port.")
@click.option("--ttl", type=float, default=None, help="Override heartbeat TTL in seconds.")
@click.option(
    "--sweep-interval",
    type=float,
    default=None,
    help="Override seconds between expiry sweeps.",
)
@click.option("--verbose", is_flag=True, help="Enable verbose output.")
def serve(
    config_path: str | None,
    host: str | None,
    port: int | None,
    ttl: float | None,
    sweep_interval: float | None,
    verbose: bool,
) -> None:
    """Run the chat room HTTP server until interrupted."""
    from chatroom.api.server import ChatServer
    from chatroom.presence.sweeper import SweepScheduler
    from chatroom.room import ChatRoom

    if verbose:
        logging.getLogger("chatroom").setLevel(logging.DEBUG)

    config = _build_config(config_path, host, port, ttl, sweep_interval)
    room = ChatRoom.from_config(config, listeners=[_echo_presence])
    scheduler = SweepScheduler(room, interval=config.presence.sweep_interval_seconds)
    server = ChatServer(room, config.server.host, config.server.port)

    click.echo(click.style("=== Chatroom ===", fg="cyan", bold=True))
    click.echo(f"  Listening: http://{config.server.host}:{server.port}")
    click.echo(f"  Heartbeat TTL: {config.presence.ttl_seconds:.1f}s")
    click.echo(f"  Sweep interval: {config.presence.sweep_interval_seconds:.1f}s")
    click.echo()

    scheduler.start()
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        click.echo()
        click.echo(click.style("Shutting down...", fg="yellow"))
    finally:
        server.server_close()
        scheduler.stop()


# ------------------------------------------------------------------
# chatroom show-config
# ------------------------------------------------------------------


@cli.command("show-config")
@click.option(
    "--config",
    "config_path",
    default=None,
    envvar="CHATROOM_CONFIG",
    type=click.Path(exists=False),
    help="Path to room config YAML.",
)
def show_config(config_path: str | None) -> None:
    """Print the effective configuration as YAML."""
    config = _build_config(config_path)
    click.echo(yaml.safe_dump(config.model_dump(), sort_keys=False), nl=False)

