"""Timer registry - pure state transitions for emergency timers.

The registry never advances time by itself. A TickScheduler (or any
other driver) reads ``elapsed_ms`` and writes the new value back through
``advance``.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from rapidresponse.shared.models import Timer, TimerKind
from rapidresponse.shared.utils import Clock, utc_now, new_id

logger = logging.getLogger(__name__)


class TimerRegistry:
    """Starts, stops, advances, resets and cycle-counts timers.

    Unknown ids are absorbed as no-ops that return None.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or utc_now
        self._timers: Dict[str, Timer] = {}
        self.last_updated: Optional[datetime] = None

    def start(
        self,
        kind: TimerKind,
        timer_id: Optional[str] = None,
        label: Optional[str] = None,
    ) -> Timer:
        """Start a fresh timer.

        Starting with an id that already exists replaces that timer with a
        brand-new running record; nothing is resumed.

        Args:
            kind: Generic or cycle-counted
            timer_id: Explicit id, generated when omitted
            label: Display role such as "cpr" or "code"

        Returns:
            Snapshot of the running timer

        Logs:
            - TIMER_STARTED: After the record is stored
        """
        timer_id = timer_id or new_id("timer")
        replaced = timer_id in self._timers
        now = self._clock()

        timer = Timer(
            timer_id=timer_id,
            kind=kind,
            started_at=now,
            elapsed_ms=0,
            running=True,
            cycle_count=0 if kind is TimerKind.CYCLE_COUNTED else None,
            label=label,
        )
        self._timers[timer_id] = timer
        self.last_updated = now

        logger.info(
            "TIMER_STARTED",
            extra={
                "timer_id": timer_id,
                "kind": kind.value,
                "label": label,
                "replaced": replaced,
            }
        )

        return timer.snapshot()

    def stop(self, timer_id: str) -> Optional[Timer]:
        """Stop a timer, freezing ``elapsed_ms``. Idempotent."""
        timer = self._timers.get(timer_id)
        if not timer:
            logger.warning("TIMER_STOP_NOT_FOUND", extra={"timer_id": timer_id})
            return None

        if timer.running:
            timer.running = False
            self.last_updated = self._clock()
            logger.info(
                "TIMER_STOPPED",
                extra={
                    "timer_id": timer_id,
                    "elapsed_ms": timer.elapsed_ms,
                    "cycle_count": timer.cycle_count,
                }
            )

        return timer.snapshot()

    def advance(self, timer_id: str, new_elapsed_ms: int) -> Optional[Timer]:
        """Set elapsed time to an absolute value.

        Ignored when the timer is stopped or the value would move elapsed
        time backwards; a late tick must not write into a frozen timer.
        """
        timer = self._timers.get(timer_id)
        if not timer:
            logger.warning("TIMER_ADVANCE_NOT_FOUND", extra={"timer_id": timer_id})
            return None

        if not timer.running or new_elapsed_ms < timer.elapsed_ms:
            logger.debug(
                "TIMER_ADVANCE_IGNORED",
                extra={
                    "timer_id": timer_id,
                    "running": timer.running,
                    "elapsed_ms": timer.elapsed_ms,
                    "requested_ms": new_elapsed_ms,
                }
            )
            return timer.snapshot()

        timer.elapsed_ms = int(new_elapsed_ms)
        return timer.snapshot()

    def increment_cycle(self, timer_id: str) -> Optional[Timer]:
        """Count one more completed cycle on a cycle-counted timer."""
        timer = self._timers.get(timer_id)
        if not timer:
            logger.warning("TIMER_CYCLE_NOT_FOUND", extra={"timer_id": timer_id})
            return None

        if not timer.counts_cycles:
            logger.debug(
                "TIMER_CYCLE_IGNORED",
                extra={"timer_id": timer_id, "kind": timer.kind.value}
            )
            return timer.snapshot()

        timer.cycle_count += 1
        self.last_updated = self._clock()

        logger.info(
            "TIMER_CYCLE_INCREMENTED",
            extra={"timer_id": timer_id, "cycle_count": timer.cycle_count}
        )

        return timer.snapshot()

    def reset(self, timer_id: str) -> Optional[Timer]:
        """Zero a timer and its cycle count. ``running`` is left as-is."""
        timer = self._timers.get(timer_id)
        if not timer:
            logger.warning("TIMER_RESET_NOT_FOUND", extra={"timer_id": timer_id})
            return None

        now = self._clock()
        timer.elapsed_ms = 0
        timer.started_at = now
        if timer.counts_cycles:
            timer.cycle_count = 0
        self.last_updated = now

        logger.info(
            "TIMER_RESET",
            extra={"timer_id": timer_id, "running": timer.running}
        )

        return timer.snapshot()

    def get(self, timer_id: str) -> Optional[Timer]:
        timer = self._timers.get(timer_id)
        return timer.snapshot() if timer else None

    def is_running(self, timer_id: str) -> bool:
        timer = self._timers.get(timer_id)
        return bool(timer and timer.running)

    def find_running(self, label: str) -> Optional[Timer]:
        """First running timer carrying ``label``."""
        for timer in self._timers.values():
            if timer.running and timer.label == label:
                return timer.snapshot()
        return None

    def list_timers(self) -> List[Timer]:
        return [t.snapshot() for t in self._timers.values()]
