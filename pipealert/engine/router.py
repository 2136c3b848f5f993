"""Notification router for picking a chat channel."""

from typing import Any

from pydantic import BaseModel

from pipealert.core.logging import get_logger
from pipealert.engine.expression import evaluate_expression
from pipealert.models.route import RouteRule

logger = get_logger(__name__)


class NotificationRouter:
    """Maps a notification to a destination channel using ordered rules."""

    def __init__(self, rules: list[RouteRule] | None = None):
        """Initialize router.

        Args:
            rules: Ordered routing rules, first match wins
        """
        self._rules = list(rules or [])

    @property
    def rules(self) -> list[RouteRule]:
        return self._rules

    def route(self, notification: BaseModel) -> str | None:
        """Find the channel for a notification.

        Args:
            notification: Fully built notification

        Returns:
            Channel of the first matching rule, None if no rule matches
        """
        return self.evaluate(self._rules, self.attributes_of(notification))

    @staticmethod
    def evaluate(rules: list[RouteRule], attributes: dict[str, Any]) -> str | None:
        """Evaluate rules in order against notification attributes.

        Args:
            rules: Ordered routing rules
            attributes: Notification attributes

        Returns:
            Channel of the first matching rule, None if no rule matches
        """
        for rule in rules:
            if evaluate_expression(rule.expression, attributes):
                logger.debug("Route matched", expression=rule.expression, channel=rule.channel)
                return rule.channel
        return None

    @staticmethod
    def attributes_of(notification: BaseModel) -> dict[str, Any]:
        """Attribute mapping that routing expressions are evaluated against.

        Keys are the camelCase names rules are written with, e.g.
        ``failureDetail.logUrl``.
        """
        return notification.model_dump(mode="json", by_alias=True)
