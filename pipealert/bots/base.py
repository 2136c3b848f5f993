"""Base class for message bots."""

from abc import ABC, abstractmethod

from pipealert.models.event import RawMessage
from pipealert.models.notification import Notification


class Bot(ABC):
    """Turns an inbound message into a notification.

    The message handler calls ``claim_notification`` before delivery,
    ``release_notification`` when delivery failed and ``notification_sent``
    after successful delivery.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return bot identifier."""
        pass

    @abstractmethod
    async def handle_message(self, message: RawMessage) -> Notification | None:
        """Map a message to a notification.

        Args:
            message: Unwrapped inbound message

        Returns:
            Notification to send, or None if the message is of no interest
        """
        pass

    async def claim_notification(self, notification: Notification) -> bool:
        """Claim the right to deliver a notification. Override if needed."""
        return True

    async def release_notification(self, notification: Notification) -> None:
        """Give up a claim after failed delivery. Override if needed."""
        pass

    async def notification_sent(self, notification: Notification) -> None:
        """Record a delivered notification. Override if needed."""
        pass
