"""Transport envelope unwrapping.

Notifications reach PipeAlert either wrapped in an SNS delivery
(``{"Records": [{"Sns": {"Message": ..., "Subject": ...}}]}``) or as the bare
notification body. Both are reduced to a ``RawMessage``.
"""

import json
from typing import Any

from pipealert.core.errors import MalformedEventError
from pipealert.models.event import RawMessage


def parse_body(body: str, subject: str = "") -> RawMessage:
    """Decode a notification body.

    Args:
        body: Message text
        subject: Envelope subject, kept for plain text messages

    Returns:
        JSON message when the body is a JSON object, plain text otherwise
    """
    try:
        decoded = json.loads(body)
    except ValueError:
        decoded = None

    if isinstance(decoded, dict):
        return RawMessage(is_json=True, subject="", body=decoded)
    return RawMessage(is_json=False, subject=subject or "", body=body)


def parse_sns_event(event: dict[str, Any]) -> RawMessage:
    """Unwrap the first record of an SNS delivery.

    Args:
        event: SNS event payload

    Returns:
        The unwrapped message

    Raises:
        MalformedEventError: If the payload has no SNS record
    """
    try:
        sns = event["Records"][0]["Sns"]
        message = sns["Message"]
    except (KeyError, IndexError, TypeError) as e:
        raise MalformedEventError(f"Not an SNS event: missing {e}") from e
    return parse_body(message, sns.get("Subject") or "")


def is_sns_event(payload: Any) -> bool:
    """Check whether a decoded payload is an SNS delivery."""
    if not isinstance(payload, dict):
        return False
    records = payload.get("Records")
    return bool(records) and isinstance(records, list) and isinstance(records[0], dict) and "Sns" in records[0]


def unwrap(data: bytes | str) -> RawMessage:
    """Unwrap a transport payload that may or may not be an SNS delivery.

    Args:
        data: Raw payload as received from the queue or HTTP request

    Returns:
        The unwrapped message
    """
    text = data.decode("utf-8") if isinstance(data, bytes) else data
    try:
        decoded = json.loads(text)
    except ValueError:
        decoded = None

    if is_sns_event(decoded):
        return parse_sns_event(decoded)
    return parse_body(text)
