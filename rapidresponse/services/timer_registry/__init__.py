"""Timer Registry: emergency timers and the tick driver.

Owns the Timer collection exclusively. TimerRegistry holds pure state
transitions; TickScheduler advances running timers on the event loop and
is cancelled through explicit handles.
"""

from .registry import TimerRegistry
from .scheduler import TickScheduler, TickHandle, TickListener

__all__ = [
    "TimerRegistry",
    "TickScheduler",
    "TickHandle",
    "TickListener",
]
