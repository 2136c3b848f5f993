"""Prometheus metrics definitions."""

from prometheus_client import Counter

# Message metrics
MESSAGES_RECEIVED = Counter(
    "pipealert_messages_received_total",
    "Total number of inbound messages received",
    ["bot"],
)

PIPELINE_EVENTS = Counter(
    "pipealert_pipeline_events_total",
    "Total number of CodePipeline events by category",
    ["category"],
)

# Execution metrics
FAILURES_RECORDED = Counter(
    "pipealert_failures_recorded_total",
    "Total number of failed actions folded into execution records",
    ["kind"],
)

# Notification metrics
NOTIFICATIONS_SENT = Counter(
    "pipealert_notifications_sent_total",
    "Total notifications handed to a chat channel",
    ["channel", "status"],
)

NOTIFICATIONS_SKIPPED = Counter(
    "pipealert_notifications_skipped_total",
    "Notifications not sent because another invocation claimed the execution",
)
