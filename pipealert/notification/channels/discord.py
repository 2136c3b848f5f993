"""Discord webhook channel.

Messages are posted as a single embed:
https://discord.com/developers/docs/resources/webhook#execute-webhook
"""

from typing import Any

import httpx

from pipealert.core.logging import get_logger
from pipealert.models.execution import ApprovalAttributes, Commit
from pipealert.models.notification import (
    AlarmNotification,
    CodeBuildFailureDetail,
    CodeDeployFailureDetail,
    FailureDetail,
    ManualApprovalNotification,
    Notification,
    PipelineNotification,
    SimpleNotification,
)
from pipealert.notification.channels.base import NotificationChannel

logger = get_logger(__name__)

GREEN = 3066993
DARK_RED = 10038562
BLUE = 3447003

LOG_TAIL_CHARS = 500


class DiscordChannel(NotificationChannel):
    """Posts notifications to a Discord webhook."""

    def __init__(
        self,
        webhook_url: str,
        username: str = "AWS Notification",
        avatar_url: str = "",
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize channel.

        Args:
            webhook_url: Discord webhook URL
            username: Display name of the webhook
            avatar_url: Avatar image of the webhook
            client: HTTP client, created when omitted
        """
        self._webhook_url = webhook_url
        self._username = username
        self._avatar_url = avatar_url
        self._client = client or httpx.AsyncClient(timeout=10.0)

    @property
    def channel_type(self) -> str:
        return "discord"

    async def send(self, notification: Notification, channel: str | None = None) -> bool:
        """Send a notification as a webhook embed.

        Discord webhooks are bound to one channel, so ``channel`` is ignored.
        """
        if not self._webhook_url:
            logger.warning("Discord webhook URL not configured")
            return False

        embed = self.build_embed(notification)
        if embed is None:
            return False

        payload = {
            "username": self._username,
            "avatar_url": self._avatar_url,
            "content": "",
            "embeds": [embed],
        }

        try:
            response = await self._client.post(self._webhook_url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Discord send error", error=str(e))
            return False

        logger.info("Discord message sent", notification_type=notification.type)
        return True

    def build_embed(self, notification: Notification) -> dict[str, Any] | None:
        """Format a notification as a Discord embed."""
        if isinstance(notification, SimpleNotification):
            return _embed(f":skull_crossbones: {notification.subject}", notification.message)
        if isinstance(notification, AlarmNotification):
            return self._alarm_embed(notification)
        if isinstance(notification, PipelineNotification):
            if notification.successfull:
                return self._success_embed(notification.name, notification.commit)
            return self._failure_embed(
                notification.name,
                notification.commit,
                notification.failure_detail,
            )
        if isinstance(notification, ManualApprovalNotification):
            return self._approval_embed(notification.name, notification.approval_attributes)
        return None

    def _alarm_embed(self, notification: AlarmNotification) -> dict[str, Any]:
        alert = notification.alert
        color = DARK_RED if alert.type in ("alarm", "nag") else GREEN

        if alert.type == "alarm":
            return _embed(
                f":face_with_symbols_over_mouth: {alert.name} is in alarm.",
                alert.description,
                fields=[{"name": "Reason", "value": f"```bash\n {alert.reason} ```"}],
                color=color,
            )
        if alert.type == "nag":
            return _embed(f":skull_crossbones: {alert.name} is still broken.", "", color=color)
        if alert.type == "recovered":
            return _embed(f":partying_face: {alert.name} recovered.", alert.description, color=color)
        return _embed(f":call_me: {alert.name} is healthy.", "", color=color)

    def _success_embed(self, pipeline_name: str, commit: Commit) -> dict[str, Any]:
        return _embed(
            f":rocket: {pipeline_name} success.",
            commit.author,
            fields=_commit_fields(commit),
            color=GREEN,
        )

    def _failure_embed(
        self,
        pipeline_name: str,
        commit: Commit,
        detail: FailureDetail | None,
    ) -> dict[str, Any]:
        fields = _commit_fields(commit)

        if isinstance(detail, CodeBuildFailureDetail):
            fields.append({"name": "View Build Log:", "value": detail.log_url})
            return _embed(
                f":hot_face: {commit.author} broke the build.",
                f"Pipeline: {pipeline_name}.",
                fields=fields,
                color=DARK_RED,
            )

        if isinstance(detail, CodeDeployFailureDetail):
            if detail.summary:
                fields.append({"name": "Summary", "value": f"```{detail.summary}```"})
            for target in detail.targets:
                if target.diagnostics is None:
                    continue
                log_tail = target.diagnostics.log_tail[-LOG_TAIL_CHARS:]
                fields.append(
                    {
                        "name": target.diagnostics.script_name,
                        "value": (
                            f"Deployment failed to instance id:\n {target.instance_id}"
                            f"  ```bash\n {log_tail} ```"
                        ),
                    }
                )
            return _embed(
                f":see_no_evil: {pipeline_name}, deployment failed.",
                commit.author,
                fields=fields,
                color=DARK_RED,
            )

        return _embed(
            f":hot_face: {commit.author} broke the build.",
            "Pipeline Failed.",
            fields=fields,
            color=DARK_RED,
        )

    def _approval_embed(
        self,
        pipeline_name: str,
        attributes: ApprovalAttributes,
    ) -> dict[str, Any]:
        fields = []
        if attributes.link:
            fields.append({"name": "Review Link:", "value": attributes.link})
        if attributes.comment:
            fields.append({"name": "Comments:", "value": attributes.comment})
        return _embed(
            f":sneeze: {pipeline_name} requires manual approval.",
            "",
            fields=fields,
            color=GREEN,
        )

    async def close(self) -> None:
        """Close HTTP client."""
        await self._client.aclose()


def _commit_fields(commit: Commit) -> list[dict[str, str]]:
    if not commit.id:
        return []
    return [
        {"name": f"Commit: {commit.id}", "value": commit.summary},
        {"name": "View Commit:", "value": commit.link},
    ]


def _embed(
    title: str,
    description: str,
    fields: list[dict[str, str]] | None = None,
    color: int = BLUE,
) -> dict[str, Any]:
    return {
        "title": title,
        "color": color,
        "description": description,
        "fields": fields or [],
        "footer": {"text": ""},
    }
