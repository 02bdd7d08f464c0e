"""Timer settings and protocol checklists for the command layer.

Source: AHA ACLS adult cardiac arrest algorithm
https://cpr.heart.org/en/resuscitation-science/cpr-and-ecc-guidelines/algorithms
(rhythm check every 2 minutes, epinephrine every 3-5 minutes)
"""
import os
from dataclasses import dataclass
from typing import Dict, Tuple

from rapidresponse.shared.models import EmergencyKind
from rapidresponse.shared.utils import tick_interval_ms as _tick_interval_ms


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


@dataclass(frozen=True)
class TimerSettings:
    """User-adjustable timer behavior.

    These are the settings collaborator's values; the registries
    themselves carry no defaults.
    """
    cpr_interval_seconds: int = 120         # Rhythm/pulse check every 2 min
    medication_interval_seconds: int = 180  # Epinephrine every 3 min
    auto_start_timers: bool = True
    show_milliseconds: bool = False
    alert_before_interval_seconds: int = 10

    def __post_init__(self):
        if self.cpr_interval_seconds <= 0:
            raise ValueError(
                f"CPR interval must be positive, got {self.cpr_interval_seconds}"
            )
        if self.medication_interval_seconds <= 0:
            raise ValueError(
                "Medication interval must be positive, "
                f"got {self.medication_interval_seconds}"
            )
        if self.alert_before_interval_seconds < 0:
            raise ValueError(
                "Alert lead time must be non-negative, "
                f"got {self.alert_before_interval_seconds}"
            )

    @property
    def tick_interval_ms(self) -> int:
        return _tick_interval_ms(self.show_milliseconds)

    @classmethod
    def from_env(cls) -> "TimerSettings":
        """Create settings from environment variables.

        Environment variables:
            RRC_CPR_INTERVAL_SECONDS: CPR cycle length (default 120)
            RRC_MEDICATION_INTERVAL_SECONDS: Medication cycle (default 180)
            RRC_AUTO_START_TIMERS: Start the code timer on activation (default true)
            RRC_SHOW_MILLISECONDS: Centisecond display and 10ms ticks (default false)
            RRC_ALERT_BEFORE_INTERVAL_SECONDS: Warning lead time (default 10)
        """
        return cls(
            cpr_interval_seconds=int(os.getenv("RRC_CPR_INTERVAL_SECONDS", "120")),
            medication_interval_seconds=int(
                os.getenv("RRC_MEDICATION_INTERVAL_SECONDS", "180")
            ),
            auto_start_timers=_env_bool("RRC_AUTO_START_TIMERS", True),
            show_milliseconds=_env_bool("RRC_SHOW_MILLISECONDS", False),
            alert_before_interval_seconds=int(
                os.getenv("RRC_ALERT_BEFORE_INTERVAL_SECONDS", "10")
            ),
        )


# Action labels the command layer records itself
START_CPR = "Start CPR"
CALL_CODE_BLUE = "Call Code Blue"
GET_CRASH_CART = "Get Crash Cart/AED"
EPINEPHRINE = "Epinephrine 1mg"

# Canonical checklists per emergency kind, in protocol order.
# Labels are opaque to the registries; these only seed new emergencies.
PROTOCOL_CHECKLISTS: Dict[EmergencyKind, Tuple[str, ...]] = {
    EmergencyKind.CARDIAC_ARREST: (
        CALL_CODE_BLUE,
        START_CPR,
        GET_CRASH_CART,
        "Secure Airway",
        "IV Access",
        EPINEPHRINE,
    ),
    EmergencyKind.STROKE: (
        "Call Code Stroke",
        "Last Known Well Time",
        "Check Glucose",
        "NIHSS Assessment",
        "STAT CT Head",
        "tPA Eligibility Review",
    ),
    EmergencyKind.RAPID_RESPONSE: (
        "Call RRT",
        "ABCs Assessment",
        "Full Set of Vitals",
        "Oxygen as Needed",
        "IV Access",
        "SBAR Handoff",
    ),
    EmergencyKind.OTHER: (),
}


def checklist_for(kind: EmergencyKind) -> Tuple[str, ...]:
    return PROTOCOL_CHECKLISTS.get(kind, ())
