"""Emergency, timer and alert domain models.

This file defines the core enums and records tracked during a shift.
Registries own the live records; everything handed to callers is a
snapshot produced by ``snapshot()``.
"""
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import List, Optional


class EmergencyKind(Enum):
    """Emergency categories with a protocol checklist."""
    CARDIAC_ARREST = "cardiac_arrest"   # Code Blue
    STROKE = "stroke"                   # Code Stroke
    RAPID_RESPONSE = "rapid_response"   # RRT call
    OTHER = "other"


class EmergencyStatus(Enum):
    """Lifecycle of an emergency. RESOLVED and TRANSFERRED are terminal."""
    ACTIVE = "active"
    RESOLVED = "resolved"
    TRANSFERRED = "transferred"

    @property
    def is_terminal(self) -> bool:
        return self is not EmergencyStatus.ACTIVE


class TimerKind(Enum):
    """Timer variants."""
    GENERIC = "generic"
    CYCLE_COUNTED = "cycle_counted"     # CPR rounds


class AlertSeverity(Enum):
    """Alert severity, highest first."""
    CRITICAL = "critical"
    URGENT = "urgent"
    WARNING = "warning"


@dataclass(frozen=True)
class PatientInfo:
    """Optional patient identification captured at activation."""
    name: Optional[str] = None
    mrn: Optional[str] = None
    age: Optional[int] = None

    def __post_init__(self):
        if self.age is not None and self.age < 0:
            raise ValueError(f"Age must be non-negative, got {self.age}")


@dataclass
class Emergency:
    """A tracked clinical event with its checklist.

    ``required_actions`` is fixed at creation. ``completed_actions`` keeps
    insertion order and never holds the same label twice.
    """
    emergency_id: str
    kind: EmergencyKind
    started_at: datetime
    required_actions: tuple
    status: EmergencyStatus = EmergencyStatus.ACTIVE
    completed_actions: List[str] = field(default_factory=list)
    location: Optional[str] = None
    patient: Optional[PatientInfo] = None
    resolved_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status is EmergencyStatus.ACTIVE

    @property
    def outstanding_actions(self) -> List[str]:
        """Required actions not yet completed, in checklist order."""
        done = set(self.completed_actions)
        return [a for a in self.required_actions if a not in done]

    def snapshot(self) -> "Emergency":
        return replace(self, completed_actions=list(self.completed_actions))

    def to_dict(self) -> dict:
        return {
            "emergency_id": self.emergency_id,
            "kind": self.kind.value,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "required_actions": list(self.required_actions),
            "completed_actions": list(self.completed_actions),
            "location": self.location,
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
        }


@dataclass
class Timer:
    """A running or stopped duration tracker.

    ``cycle_count`` is an int for cycle-counted timers and None otherwise.
    """
    timer_id: str
    kind: TimerKind
    started_at: datetime
    elapsed_ms: int = 0
    running: bool = True
    cycle_count: Optional[int] = None
    label: Optional[str] = None

    @property
    def counts_cycles(self) -> bool:
        return self.kind is TimerKind.CYCLE_COUNTED

    def snapshot(self) -> "Timer":
        return replace(self)

    def to_dict(self) -> dict:
        return {
            "timer_id": self.timer_id,
            "kind": self.kind.value,
            "label": self.label,
            "started_at": self.started_at.isoformat(),
            "elapsed_ms": self.elapsed_ms,
            "running": self.running,
            "cycle_count": self.cycle_count,
        }


@dataclass(frozen=True)
class Alert:
    """Immutable alert shown to the team."""
    alert_id: str
    message: str
    severity: AlertSeverity
    timestamp: datetime
