"""Shift-scoped state container handed to command handlers."""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from rapidresponse.services.alert_service import AlertRegistry
from rapidresponse.services.session_registry import SessionRegistry
from rapidresponse.services.timer_registry import TimerRegistry
from rapidresponse.shared.utils import Clock, utc_now


@dataclass
class EmergencyContext:
    """The only shared mutable state of the engine.

    Create one per shift and pass it by reference; the registries inside
    never reference each other.
    """
    sessions: SessionRegistry
    timers: TimerRegistry
    alerts: AlertRegistry

    @classmethod
    def create(cls, clock: Optional[Clock] = None) -> "EmergencyContext":
        """Build a context whose registries share one clock."""
        clock = clock or utc_now
        return cls(
            sessions=SessionRegistry(clock=clock),
            timers=TimerRegistry(clock=clock),
            alerts=AlertRegistry(clock=clock),
        )

    def snapshot(self) -> Dict[str, Any]:
        """Read-only view for presentation layers."""
        return {
            "active_emergencies": [e.to_dict() for e in self.sessions.list_active()],
            "timers": [t.to_dict() for t in self.timers.list_timers()],
            "alerts": [
                {
                    "alert_id": a.alert_id,
                    "message": a.message,
                    "severity": a.severity.value,
                    "timestamp": a.timestamp.isoformat(),
                }
                for a in self.alerts.list_alerts()
            ],
        }
