"""Alert registry - append-only list of team-facing alerts."""
import logging
from datetime import datetime
from typing import List, Optional

from rapidresponse.shared.models import Alert, AlertSeverity
from rapidresponse.shared.utils import Clock, utc_now, new_id

logger = logging.getLogger(__name__)


class AlertRegistry:
    """Holds alerts in the order they were raised.

    Alerts have no link to emergency or timer state; removing one is
    always an explicit dismiss or clear.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or utc_now
        self._alerts: List[Alert] = []
        self.last_updated: Optional[datetime] = None

    def add(self, message: str, severity: AlertSeverity) -> Alert:
        """Raise an alert.

        Logs:
            - ALERT_RAISED: at WARNING for critical alerts, INFO otherwise
        """
        now = self._clock()
        alert = Alert(
            alert_id=new_id("alert"),
            message=message,
            severity=severity,
            timestamp=now,
        )
        self._alerts.append(alert)
        self.last_updated = now

        level = logging.WARNING if severity is AlertSeverity.CRITICAL else logging.INFO
        logger.log(
            level,
            "ALERT_RAISED",
            extra={
                "alert_id": alert.alert_id,
                "severity": severity.value,
                "alert_message": message,
            }
        )

        return alert

    def dismiss(self, alert_id: str) -> bool:
        """Remove one alert. Returns False if the id is unknown."""
        remaining = [a for a in self._alerts if a.alert_id != alert_id]
        if len(remaining) == len(self._alerts):
            logger.warning("ALERT_DISMISS_NOT_FOUND", extra={"alert_id": alert_id})
            return False

        self._alerts = remaining
        self.last_updated = self._clock()
        logger.info("ALERT_DISMISSED", extra={"alert_id": alert_id})
        return True

    def clear_all(self) -> int:
        """Remove every alert. Returns how many were cleared."""
        cleared = len(self._alerts)
        self._alerts = []
        self.last_updated = self._clock()
        logger.info("ALERTS_CLEARED", extra={"cleared_count": cleared})
        return cleared

    def list_alerts(self, severity: Optional[AlertSeverity] = None) -> List[Alert]:
        """Alerts in raise order, optionally filtered by severity."""
        if severity is None:
            return list(self._alerts)
        return [a for a in self._alerts if a.severity is severity]
