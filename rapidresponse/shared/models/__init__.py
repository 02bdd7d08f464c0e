"""Shared domain models for Rapid Response Central."""
from .emergency import (
    EmergencyKind,
    EmergencyStatus,
    TimerKind,
    AlertSeverity,
    PatientInfo,
    Emergency,
    Timer,
    Alert,
)

__all__ = [
    "EmergencyKind",
    "EmergencyStatus",
    "TimerKind",
    "AlertSeverity",
    "PatientInfo",
    "Emergency",
    "Timer",
    "Alert",
]
