"""Background scheduler that evicts participants who stopped heartbeating."""

from __future__ import annotations

import logging
import threading
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chatroom.room import ChatRoom

logger = logging.getLogger(__name__)


class SweepState(Enum):
    """Scheduler states."""

    IDLE = auto()
    SWEEPING = auto()


class SweepScheduler:
    """Runs :meth:`ChatRoom.sweep_expired` every *interval* seconds.

    Ticks are fire-and-forget: a failed pass is logged and the scheduler
    goes back to :attr:`SweepState.IDLE`; the next tick runs as usual with
    no retry in between.  Tests drive :meth:`tick` directly instead of
    starting the thread.

    Parameters
    ----------
    room:
        The shared chat room to sweep.
    interval:
        Seconds between the end of one wait and the start of the next tick.
    """

    def __init__(self, room: ChatRoom, interval: float = 15.0) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval!r}")
        self.room = room
        self.interval = interval
        self.ticks = 0
        self._state = SweepState.IDLE
        self._state_lock = threading.Lock()
        self._tick_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def state(self) -> SweepState:
        with self._state_lock:
            return self._state

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # ------------------------------------------------------------------
    # Single pass
    # ------------------------------------------------------------------

    def tick(self) -> list[str]:
        """Run one eviction pass and return the evicted names.

        Never raises; failures are logged and yield an empty list.
        """
        with self._tick_lock:
            self._set_state(SweepState.SWEEPING)
            try:
                evicted = self.room.sweep_expired()
            except Exception:
                logger.exception("Sweep tick failed; will retry on the next interval")
                evicted = []
            finally:
                self.ticks += 1
                self._set_state(SweepState.IDLE)

        if evicted:
            logger.info("Sweep evicted %s", ", ".join(evicted))
        else:
            logger.debug("Sweep found no expired participants")
        return evicted

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start ticking on a daemon thread."""
        if self.is_running:
            raise RuntimeError("SweepScheduler is already running")
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="chatroom-sweeper", daemon=True
        )
        self._thread.start()
        logger.info(
            "Sweep scheduler started (interval=%.1fs, ttl=%.1fs)",
            self.interval,
            self.room.ttl,
        )

    def stop(self, timeout: float | None = None) -> None:
        """Stop scheduling new ticks and wait for an in-flight one to finish."""
        self._stop.set()
        thread = self._thread
        if thread is None:
            return
        thread.join(timeout)
        if thread.is_alive():
            logger.warning("Sweep scheduler did not stop within %.1fs", timeout)
            return
        self._thread = None
        logger.info("Sweep scheduler stopped after %d tick(s)", self.ticks)

    def __enter__(self) -> SweepScheduler:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _run(self) -> None:
        # Event.wait returns True as soon as stop() is called.
        while not self._stop.wait(self.interval):
            self.tick()

    def _set_state(self, state: SweepState) -> None:
        with self._state_lock:
            self._state = state
