"""Routing expression evaluation.

Expression syntax:

- ``property:value``  the stringified property equals ``value``
- ``property~regex``  ``regex`` is found in the stringified property
- ``!expr``           negation
- ``a&b``             all parts match
- ``a|b``             any part matches

Properties use dot notation for nested attributes (``alert.type:alarm``).
Operators are resolved in the order OR, AND, NOT, predicate and there are no
parentheses, so ``a&b|c`` means ``(a&b)|c``.
"""

import re
from typing import Any

from pipealert.core.logging import get_logger

logger = get_logger(__name__)

_MISSING = object()

_PREDICATE_SEPARATORS = re.compile(r"[:|~]")


class RouteExpressionEvaluator:
    """Evaluates routing expressions against notification attributes."""

    def evaluate(self, expression: str, attributes: dict[str, Any]) -> bool:
        """Evaluate an expression against an attribute mapping.

        Args:
            expression: Routing expression (e.g., "type:PipelineNotification&name~prod")
            attributes: Notification attributes

        Returns:
            True if the expression matches
        """
        if "|" in expression:
            return any(
                self.evaluate(part.strip(), attributes) for part in expression.split("|")
            )

        if "&" in expression:
            return all(
                self.evaluate(part.strip(), attributes) for part in expression.split("&")
            )

        if expression.startswith("!"):
            return not self.evaluate(expression[1:].strip(), attributes)

        return self._evaluate_predicate(expression, attributes)

    def _evaluate_predicate(self, expression: str, attributes: dict[str, Any]) -> bool:
        parts = _PREDICATE_SEPARATORS.split(expression)
        if len(parts) < 2:
            return False

        prop, matcher = parts[0].strip(), parts[1].strip()
        if not prop or not matcher:
            return False

        value = self.get_property(prop, attributes)
        if value is _MISSING:
            return False

        if "~" in expression:
            try:
                return re.search(matcher, _stringify(value)) is not None
            except re.error as e:
                logger.warning(
                    "Invalid regex in route expression",
                    expression=expression,
                    error=str(e),
                )
                return False

        return _stringify(value) == matcher

    @staticmethod
    def get_property(path: str, attributes: dict[str, Any]) -> Any:
        """Resolve a dot-notation path.

        Args:
            path: Property path (e.g., "alert.name")
            attributes: Attribute mapping

        Returns:
            The value, or a sentinel when any segment is undefined
        """
        value: Any = attributes
        for key in path.split("."):
            if not isinstance(value, dict) or key not in value:
                return _MISSING
            value = value[key]
        return value


def _stringify(value: Any) -> str:
    """Render a value the way the routing rules were written against."""
    if value is True:
        return "true"
    if value is False:
        return "false"
    if value is None:
        return "null"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, list):
        return ",".join("" if item is None else _stringify(item) for item in value)
    return str(value)


# Singleton instance
_evaluator: RouteExpressionEvaluator | None = None


def get_expression_evaluator() -> RouteExpressionEvaluator:
    """Get expression evaluator singleton."""
    global _evaluator
    if _evaluator is None:
        _evaluator = RouteExpressionEvaluator()
    return _evaluator


def evaluate_expression(expression: str, attributes: dict[str, Any]) -> bool:
    """Evaluate a routing expression.

    Convenience function using singleton evaluator.

    Args:
        expression: Routing expression
        attributes: Notification attributes

    Returns:
        Boolean result
    """
    return get_expression_evaluator().evaluate(expression, attributes)
