"""Periodic tick driver for running timers.

Each scheduled timer gets one self-rescheduling callback on the asyncio
event loop. A tick reads the timer's elapsed time, adds the interval,
writes it back through TimerRegistry.advance and notifies the listener.

Ticks stop when:
- cancel()/cancel_all() is called (timer stopped, view torn down)
- the timer disappears or is no longer running when the tick fires

At most one pending callback exists per timer; scheduling again cancels
the previous handle first.
"""
import asyncio
import logging
from typing import Callable, Dict, List, Optional

from rapidresponse.shared.models import Timer
from .registry import TimerRegistry

logger = logging.getLogger(__name__)

TickListener = Callable[[Timer], None]


class TickHandle:
    """Cancellation handle for one timer's periodic tick."""

    def __init__(
        self,
        timer_id: str,
        interval_ms: int,
        loop: asyncio.AbstractEventLoop,
        listener: Optional[TickListener] = None,
    ):
        self.timer_id = timer_id
        self.interval_ms = interval_ms
        self.listener = listener
        self.tick_count = 0
        self._loop = loop
        self._pending = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def arm(self, callback: Callable[["TickHandle"], None]) -> None:
        if self._cancelled:
            return
        self._pending = self._loop.call_later(
            self.interval_ms / 1000.0, callback, self
        )

    def cancel(self) -> None:
        """Cancel the pending tick. Safe to call more than once."""
        self._cancelled = True
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None


class TickScheduler:
    """Drives running timers forward at a fixed interval.

    The scheduler is separate from TimerRegistry: the registry holds
    state, the scheduler only calls ``advance``.
    """

    def __init__(
        self,
        registry: TimerRegistry,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        """Initialize scheduler.

        Args:
            registry: Timer registry to advance
            loop: Event loop for callbacks; the running loop is used
                when omitted

        Raises:
            RuntimeError: If no loop was given and none is running
        """
        self._registry = registry
        self._loop = loop if loop is not None else asyncio.get_running_loop()
        self._handles: Dict[str, TickHandle] = {}

    def schedule(
        self,
        timer_id: str,
        interval_ms: int,
        listener: Optional[TickListener] = None,
    ) -> TickHandle:
        """Start ticking a timer every ``interval_ms`` milliseconds.

        Any handle already scheduled for this timer is cancelled first.

        Raises:
            ValueError: If interval_ms is not positive
        """
        if interval_ms <= 0:
            raise ValueError(f"Tick interval must be positive, got {interval_ms}")

        self.cancel(timer_id)

        handle = TickHandle(timer_id, interval_ms, self._loop, listener)
        self._handles[timer_id] = handle
        handle.arm(self._fire)

        logger.info(
            "TICK_SCHEDULED",
            extra={"timer_id": timer_id, "interval_ms": interval_ms}
        )

        return handle

    def tick(self, timer_id: str) -> Optional[Timer]:
        """Run one tick for a scheduled timer right now.

        Returns:
            Timer snapshot after the tick, or None if the timer is not
            scheduled or has stopped (in which case it is unscheduled)
        """
        handle = self._handles.get(timer_id)
        if handle is None:
            return None

        timer = self._registry.get(timer_id)
        if timer is None or not timer.running:
            self.cancel(timer_id)
            return None

        updated = self._registry.advance(
            timer_id, timer.elapsed_ms + handle.interval_ms
        )
        handle.tick_count += 1

        if handle.listener is not None:
            try:
                handle.listener(updated)
            except Exception:
                # A failed listener never re-arms, so drop its handle
                self.cancel(timer_id)
                raise

        return updated

    def _fire(self, handle: TickHandle) -> None:
        if handle.cancelled or self._handles.get(handle.timer_id) is not handle:
            return
        if self.tick(handle.timer_id) is not None:
            handle.arm(self._fire)

    def cancel(self, timer_id: str) -> bool:
        """Stop ticking a timer. Returns False if nothing was scheduled."""
        handle = self._handles.pop(timer_id, None)
        if handle is None:
            return False

        handle.cancel()
        logger.info(
            "TICK_CANCELLED",
            extra={"timer_id": timer_id, "tick_count": handle.tick_count}
        )
        return True

    def cancel_all(self) -> int:
        """Cancel every scheduled tick. Returns how many were cancelled."""
        timer_ids = list(self._handles)
        for timer_id in timer_ids:
            self.cancel(timer_id)
        return len(timer_ids)

    def is_scheduled(self, timer_id: str) -> bool:
        return timer_id in self._handles

    @property
    def scheduled_timer_ids(self) -> List[str]:
        return list(self._handles)
