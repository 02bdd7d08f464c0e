"""Emergency commands - one user action, one or more registry calls.

This is the only place that touches both registries. It keeps them
consistent:
1. Actions are routed into the active emergency of their kind, creating
   that emergency first when none is active
2. Timers are associated with emergencies by id, per role (code, cpr,
   medication)
3. Finishing an emergency stops its timers and cancels their ticks
4. Scheduler ticks on CPR and medication timers raise interval alerts
"""
import logging
from enum import Enum
from typing import Dict, Optional, Tuple

from rapidresponse.shared.models import (
    AlertSeverity,
    Emergency,
    EmergencyKind,
    PatientInfo,
    Timer,
    TimerKind,
)
from rapidresponse.services.timer_registry import TickScheduler
from .config import EPINEPHRINE, START_CPR, TimerSettings, checklist_for
from .context import EmergencyContext

logger = logging.getLogger(__name__)


class TimerRole(Enum):
    """What a timer measures for its emergency."""
    CODE = "code"               # Total code duration
    CPR = "cpr"                 # CPR cycles, cycle-counted
    MEDICATION = "medication"   # Time since last dose


class EmergencyCommands:
    """Named commands issued by the UI against an EmergencyContext.

    Commands are fire-and-forget: unknown ids are absorbed by the
    registries and surface as a None return.
    """

    def __init__(
        self,
        context: EmergencyContext,
        settings: Optional[TimerSettings] = None,
        scheduler: Optional[TickScheduler] = None,
    ):
        """Initialize command handler.

        Args:
            context: Registries for this shift
            settings: Timer settings, defaults used when omitted
            scheduler: Tick driver; timers are not ticked when omitted
        """
        self.context = context
        self.settings = settings or TimerSettings()
        self.scheduler = scheduler
        self._associations: Dict[str, Dict[TimerRole, str]] = {}
        self._timer_roles: Dict[str, TimerRole] = {}
        self._timer_labels: Dict[str, str] = {}
        self._last_seen_ms: Dict[str, int] = {}

    # ------------------------------------------------------------------
    # Checklist routing
    # ------------------------------------------------------------------

    def route_action(
        self,
        kind: EmergencyKind,
        label: str,
        location: Optional[str] = None,
        patient: Optional[PatientInfo] = None,
    ) -> Emergency:
        """Record an action against the active emergency of ``kind``.

        When no emergency of that kind is active one is activated with
        the kind's checklist, then the action is recorded on it.

        Returns:
            Snapshot of the emergency after the action
        """
        emergency = self._get_or_activate(kind, location, patient)
        return self.context.sessions.record_action_completed(
            emergency.emergency_id, label
        )

    def _get_or_activate(
        self,
        kind: EmergencyKind,
        location: Optional[str],
        patient: Optional[PatientInfo],
    ) -> Emergency:
        existing = self.context.sessions.find_active(kind)
        if existing:
            return existing

        emergency = self.context.sessions.activate(
            kind, checklist_for(kind), location=location, patient=patient
        )
        if self.settings.auto_start_timers:
            self._start_timer(emergency.emergency_id, TimerRole.CODE, TimerKind.GENERIC)
        return emergency

    def begin_response(
        self,
        kind: EmergencyKind,
        location: Optional[str] = None,
        patient: Optional[PatientInfo] = None,
    ) -> Emergency:
        """Open (or join) the response to an emergency of ``kind``.

        With auto-start on, a joined emergency whose code timer is not
        running gets a fresh one.
        """
        emergency = self._get_or_activate(kind, location, patient)
        if (
            self.settings.auto_start_timers
            and self._running_timer(emergency.emergency_id, TimerRole.CODE) is None
        ):
            self._start_timer(emergency.emergency_id, TimerRole.CODE, TimerKind.GENERIC)

        logger.info(
            "RESPONSE_BEGUN",
            extra={
                "emergency_id": emergency.emergency_id,
                "kind": kind.value,
                "code_timer_id": self._associations.get(
                    emergency.emergency_id, {}
                ).get(TimerRole.CODE),
            }
        )

        return emergency

    def mark_action_complete(self, kind: EmergencyKind, label: str) -> Emergency:
        return self.route_action(kind, label)

    def complete_action(self, emergency_id: str, label: str) -> Optional[Emergency]:
        """Record an action against a specific emergency, no routing."""
        return self.context.sessions.record_action_completed(emergency_id, label)

    # ------------------------------------------------------------------
    # Protocol commands with timers
    # ------------------------------------------------------------------

    def start_cpr(
        self,
        kind: EmergencyKind = EmergencyKind.CARDIAC_ARREST,
        location: Optional[str] = None,
    ) -> Tuple[Emergency, Timer]:
        """Start CPR, or count another round if CPR is already running.

        Returns:
            (emergency, cpr_timer) snapshots
        """
        emergency = self.route_action(kind, START_CPR, location=location)
        timer_id = self._running_timer(emergency.emergency_id, TimerRole.CPR)

        if timer_id:
            timer = self.context.timers.increment_cycle(timer_id)
        else:
            timer = self._start_timer(
                emergency.emergency_id, TimerRole.CPR, TimerKind.CYCLE_COUNTED
            )

        logger.info(
            "CPR_COMMAND_APPLIED",
            extra={
                "emergency_id": emergency.emergency_id,
                "timer_id": timer.timer_id,
                "cycle_count": timer.cycle_count,
            }
        )

        return emergency, timer

    def give_medication(
        self,
        kind: EmergencyKind = EmergencyKind.CARDIAC_ARREST,
        label: str = EPINEPHRINE,
    ) -> Tuple[Emergency, Timer]:
        """Record a dose and restart the time-since-dose timer.

        Returns:
            (emergency, medication_timer) snapshots
        """
        emergency = self.route_action(kind, label)
        timer_id = self._running_timer(emergency.emergency_id, TimerRole.MEDICATION)

        if timer_id:
            timer = self.reset_timer(timer_id)
        else:
            timer = self._start_timer(
                emergency.emergency_id, TimerRole.MEDICATION, TimerKind.GENERIC
            )
        self._timer_labels[timer.timer_id] = label

        return emergency, timer

    # ------------------------------------------------------------------
    # Timer commands
    # ------------------------------------------------------------------

    def advance_timer(self, timer_id: str, elapsed_ms: int) -> Optional[Timer]:
        return self.context.timers.advance(timer_id, elapsed_ms)

    def stop_timer(self, timer_id: str) -> Optional[Timer]:
        """Cancel ticks, then stop the timer. Idempotent."""
        if self.scheduler is not None:
            self.scheduler.cancel(timer_id)
        return self.context.timers.stop(timer_id)

    def reset_timer(self, timer_id: str) -> Optional[Timer]:
        timer = self.context.timers.reset(timer_id)
        if timer is not None:
            self._last_seen_ms[timer_id] = 0
        return timer

    def timers_for(self, emergency_id: str) -> Dict[str, str]:
        """Timer ids associated with an emergency, keyed by role name."""
        return {
            role.value: timer_id
            for role, timer_id in self._associations.get(emergency_id, {}).items()
        }

    def _running_timer(self, emergency_id: str, role: TimerRole) -> Optional[str]:
        timer_id = self._associations.get(emergency_id, {}).get(role)
        if timer_id and self.context.timers.is_running(timer_id):
            return timer_id
        return None

    def _start_timer(
        self,
        emergency_id: str,
        role: TimerRole,
        kind: TimerKind,
    ) -> Timer:
        roles = self._associations.setdefault(emergency_id, {})
        replaced = roles.get(role)
        if replaced is not None:
            self._forget(replaced)

        timer = self.context.timers.start(kind, label=role.value)
        roles[role] = timer.timer_id
        self._timer_roles[timer.timer_id] = role
        self._last_seen_ms[timer.timer_id] = 0

        if self.scheduler is not None:
            self.scheduler.schedule(
                timer.timer_id,
                self.settings.tick_interval_ms,
                listener=self.handle_tick,
            )

        return timer

    def _forget(self, timer_id: str) -> None:
        """Drop tick bookkeeping for a timer that will not tick again."""
        if self.scheduler is not None:
            self.scheduler.cancel(timer_id)
        self._timer_roles.pop(timer_id, None)
        self._timer_labels.pop(timer_id, None)
        self._last_seen_ms.pop(timer_id, None)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def resolve_emergency(self, emergency_id: str) -> Optional[Emergency]:
        emergency = self.context.sessions.resolve(emergency_id)
        if emergency is not None:
            self._stop_associated(emergency_id)
        return emergency

    def transfer_emergency(self, emergency_id: str) -> Optional[Emergency]:
        emergency = self.context.sessions.transfer(emergency_id)
        if emergency is not None:
            self._stop_associated(emergency_id)
        return emergency

    def _stop_associated(self, emergency_id: str) -> None:
        for timer_id in self._associations.get(emergency_id, {}).values():
            self.stop_timer(timer_id)
            self._forget(timer_id)

    def teardown(self) -> int:
        """Cancel every pending tick, e.g. when the owning view closes."""
        if self.scheduler is None:
            return 0
        cancelled = self.scheduler.cancel_all()
        logger.info("COMMANDS_TORN_DOWN", extra={"cancelled_ticks": cancelled})
        return cancelled

    # ------------------------------------------------------------------
    # Interval prompts
    # ------------------------------------------------------------------

    def handle_tick(self, timer: Timer) -> None:
        """Raise interval alerts as a CPR or medication timer advances.

        A warning fires once per interval when the lead time is reached,
        an urgent alert when the interval boundary is crossed.
        """
        role = self._timer_roles.get(timer.timer_id)
        if role is TimerRole.CPR:
            interval_ms = self.settings.cpr_interval_seconds * 1000
            what = "Pulse/rhythm check"
        elif role is TimerRole.MEDICATION:
            interval_ms = self.settings.medication_interval_seconds * 1000
            what = self._timer_labels.get(timer.timer_id, "Medication")
        else:
            return

        previous = self._last_seen_ms.get(timer.timer_id, 0)
        if timer.elapsed_ms < previous:
            previous = 0
        current = timer.elapsed_ms
        self._last_seen_ms[timer.timer_id] = current

        lead_ms = self.settings.alert_before_interval_seconds * 1000
        if 0 < lead_ms < interval_ms:
            if (current + lead_ms) // interval_ms > (previous + lead_ms) // interval_ms:
                self.context.alerts.add(
                    f"{what} due in {self.settings.alert_before_interval_seconds}s",
                    AlertSeverity.WARNING,
                )

        if current // interval_ms > previous // interval_ms:
            self.context.alerts.add(f"{what} due now", AlertSeverity.URGENT)
