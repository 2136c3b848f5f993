"""Bot for CloudWatch alarm notifications."""

from datetime import datetime

from pipealert.bots.base import Bot
from pipealert.core.logging import get_logger
from pipealert.models.event import RawMessage
from pipealert.models.notification import AlarmNotification, Alert

logger = get_logger(__name__)


class CloudWatchAlarmBot(Bot):
    """Converts CloudWatch alarm state changes into alarm notifications.

    Alert types:
    - ``alarm``: the alarm fired
    - ``nag``: the alarm is still not OK
    - ``recovered``: ALARM went back to OK
    - ``healthy``: OK was reported again
    """

    @staticmethod
    def matches(body: dict) -> bool:
        """Check if a JSON body is a CloudWatch alarm."""
        return bool(
            body.get("AlarmDescription") and body.get("AlarmArn") and body.get("NewStateReason")
        )

    @property
    def name(self) -> str:
        return "aws_cloudwatch_alarm"

    async def handle_message(self, message: RawMessage) -> AlarmNotification | None:
        if not isinstance(message.body, dict):
            return None

        event = message.body
        new_state = event.get("NewStateValue")
        old_state = event.get("OldStateValue")

        alert_type = "alarm"
        if new_state == old_state:
            alert_type = "healthy" if new_state == "OK" else "nag"
        elif new_state == "OK" and old_state == "ALARM":
            alert_type = "recovered"

        return AlarmNotification(
            alert=Alert(
                type=alert_type,
                name=event.get("AlarmName", ""),
                description=event.get("AlarmDescription", ""),
                reason=event.get("NewStateReason"),
                date=self._to_epoch_ms(event.get("StateChangeTime")),
            )
        )

    @staticmethod
    def _to_epoch_ms(timestamp: str | None) -> int:
        if not timestamp:
            return 0
        # CloudWatch uses e.g. "2022-03-30T10:15:00.000+0000"
        for fmt in ("%Y-%m-%dT%H:%M:%S.%f%z", "%Y-%m-%dT%H:%M:%S%z"):
            try:
                parsed = datetime.strptime(timestamp, fmt)
            except ValueError:
                continue
            return int(parsed.timestamp() * 1000)
        logger.warning("Unparseable alarm timestamp", timestamp=timestamp)
        return 0
