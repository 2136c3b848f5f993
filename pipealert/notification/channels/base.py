"""Base class for chat channels."""

from abc import ABC, abstractmethod

from pipealert.models.notification import Notification


class NotificationChannel(ABC):
    """Abstract base class for chat channels."""

    @property
    @abstractmethod
    def channel_type(self) -> str:
        """Return channel type identifier."""
        pass

    @abstractmethod
    async def send(self, notification: Notification, channel: str | None = None) -> bool:
        """Format and deliver a notification.

        Args:
            notification: Notification to deliver
            channel: Destination picked by the router, None for the default

        Returns:
            True if sent successfully
        """
        pass

    async def close(self) -> None:
        """Clean up resources. Override if needed."""
        pass
