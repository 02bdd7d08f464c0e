"""Session registry - roster of emergencies and their checklists.

Every operation is total over its identifier space: an unknown id or a
repeated command is absorbed as a no-op and logged, never raised. Callers
dispatch commands fire-and-forget and re-read state to see what happened.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from rapidresponse.shared.models import (
    Emergency,
    EmergencyKind,
    EmergencyStatus,
    PatientInfo,
)
from rapidresponse.shared.utils import Clock, utc_now, new_id

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Creates, queries and evolves Emergency records.

    Records are never deleted; they only move to a terminal status.
    """

    def __init__(self, clock: Optional[Clock] = None):
        """Initialize an empty roster.

        Args:
            clock: Source of timestamps, defaults to UTC wall clock
        """
        self._clock = clock or utc_now
        self._emergencies: Dict[str, Emergency] = {}  # insertion ordered
        self.last_updated: Optional[datetime] = None

    def activate(
        self,
        kind: EmergencyKind,
        required_actions: Sequence[str],
        location: Optional[str] = None,
        patient: Optional[PatientInfo] = None,
    ) -> Emergency:
        """Start tracking a new emergency.

        No uniqueness check is made: two codes of the same kind may run
        at once in different rooms.

        Args:
            kind: Emergency category
            required_actions: Protocol checklist, fixed for this record
            location: Where the event is happening
            patient: Optional patient identification

        Returns:
            Snapshot of the new record

        Logs:
            - EMERGENCY_ACTIVATED: After the record is stored
        """
        now = self._clock()
        emergency = Emergency(
            emergency_id=new_id("emergency"),
            kind=kind,
            started_at=now,
            required_actions=tuple(required_actions),
            location=location,
            patient=patient,
        )
        self._emergencies[emergency.emergency_id] = emergency
        self.last_updated = now

        # Patient identifiers stay out of logs
        logger.info(
            "EMERGENCY_ACTIVATED",
            extra={
                "emergency_id": emergency.emergency_id,
                "kind": kind.value,
                "required_action_count": len(emergency.required_actions),
                "location": location,
                "has_patient": patient is not None,
            }
        )

        return emergency.snapshot()

    def record_action_completed(
        self,
        emergency_id: str,
        label: str,
    ) -> Optional[Emergency]:
        """Tick an action off an emergency's checklist.

        Any label is accepted, including ones outside ``required_actions``.
        Status is not checked, so late entries on a resolved code still land.

        Args:
            emergency_id: Emergency identifier
            label: Action label

        Returns:
            Snapshot after the call, or None if the id is unknown
        """
        emergency = self._emergencies.get(emergency_id)
        if not emergency:
            logger.warning(
                "EMERGENCY_ACTION_NOT_FOUND",
                extra={"emergency_id": emergency_id, "label": label}
            )
            return None

        if label in emergency.completed_actions:
            logger.debug(
                "EMERGENCY_ACTION_ALREADY_COMPLETED",
                extra={"emergency_id": emergency_id, "label": label}
            )
            return emergency.snapshot()

        emergency.completed_actions.append(label)
        self.last_updated = self._clock()

        logger.info(
            "EMERGENCY_ACTION_COMPLETED",
            extra={
                "emergency_id": emergency_id,
                "label": label,
                "in_checklist": label in emergency.required_actions,
                "completed_count": len(emergency.completed_actions),
            }
        )

        return emergency.snapshot()

    def resolve(self, emergency_id: str) -> Optional[Emergency]:
        """Mark an active emergency resolved."""
        return self._finish(emergency_id, EmergencyStatus.RESOLVED)

    def transfer(self, emergency_id: str) -> Optional[Emergency]:
        """Mark an active emergency transferred to another team or unit."""
        return self._finish(emergency_id, EmergencyStatus.TRANSFERRED)

    def _finish(
        self,
        emergency_id: str,
        status: EmergencyStatus,
    ) -> Optional[Emergency]:
        emergency = self._emergencies.get(emergency_id)
        if not emergency:
            logger.warning(
                "EMERGENCY_FINISH_NOT_FOUND",
                extra={"emergency_id": emergency_id, "status": status.value}
            )
            return None

        if emergency.status.is_terminal:
            logger.debug(
                "EMERGENCY_ALREADY_TERMINAL",
                extra={
                    "emergency_id": emergency_id,
                    "status": emergency.status.value,
                    "requested": status.value,
                }
            )
            return emergency.snapshot()

        now = self._clock()
        emergency.status = status
        emergency.resolved_at = now
        self.last_updated = now

        logger.info(
            "EMERGENCY_FINISHED",
            extra={
                "emergency_id": emergency_id,
                "status": status.value,
                "duration_seconds": (now - emergency.started_at).total_seconds(),
                "completed_count": len(emergency.completed_actions),
                "outstanding_count": len(emergency.outstanding_actions),
            }
        )

        return emergency.snapshot()

    def get(self, emergency_id: str) -> Optional[Emergency]:
        emergency = self._emergencies.get(emergency_id)
        return emergency.snapshot() if emergency else None

    def find_active(self, kind: EmergencyKind) -> Optional[Emergency]:
        """First active emergency of ``kind`` in activation order."""
        for emergency in self._emergencies.values():
            if emergency.kind is kind and emergency.is_active:
                return emergency.snapshot()
        return None

    def list_active(self) -> List[Emergency]:
        """Snapshots of active emergencies, in activation order."""
        return [e.snapshot() for e in self._emergencies.values() if e.is_active]

    def list_all(self) -> List[Emergency]:
        return [e.snapshot() for e in self._emergencies.values()]
