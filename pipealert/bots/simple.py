"""Bot for plain text messages."""

from pipealert.bots.base import Bot
from pipealert.models.event import RawMessage
from pipealert.models.notification import SimpleNotification


class SimpleBot(Bot):
    """Forwards plain text messages as they are."""

    @property
    def name(self) -> str:
        return "simple"

    async def handle_message(self, message: RawMessage) -> SimpleNotification | None:
        if not isinstance(message.body, str):
            return None
        return SimpleNotification(subject=message.subject, message=message.body)
