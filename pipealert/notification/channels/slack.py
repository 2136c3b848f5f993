"""Slack notification channel.

With a bot token messages go through ``chat.postMessage`` to the routed
channel, and commit authors are mentioned when their email resolves to a Slack
user. Without a token the incoming webhook is used, which always posts to the
channel the webhook was created for.
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

SLACK_API_URL = "https://slack.com/api"

LOG_TAIL_CHARS = 500


class SlackChannel(NotificationChannel):
    """Slack Block Kit notification channel."""

    def __init__(
        self,
        bot_token: str = "",
        webhook_url: str = "",
        default_channel: str = "",
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize channel.

        Args:
            bot_token: Bot token for the Web API
            webhook_url: Incoming webhook, used when no bot token is set
            default_channel: Channel used when the router has no match
            client: HTTP client, created when omitted
        """
        self._bot_token = bot_token
        self._webhook_url = webhook_url
        self._default_channel = default_channel
        self._client = client or httpx.AsyncClient(timeout=10.0)

    @property
    def channel_type(self) -> str:
        return "slack"

    async def send(self, notification: Notification, channel: str | None = None) -> bool:
        """Send a notification to Slack.

        Args:
            notification: Notification to deliver
            channel: Slack channel, falls back to the configured default

        Returns:
            True if sent successfully
        """
        mention = None
        if isinstance(notification, PipelineNotification) and self._bot_token:
            mention = await self.find_user_id(notification.commit.author_email)

        message = self.build_message(notification, mention)
        if message is None:
            return False

        try:
            if self._bot_token:
                return await self._post_to_api(message, channel or self._default_channel)
            if self._webhook_url:
                response = await self._client.post(self._webhook_url, json=message)
                response.raise_for_status()
                logger.info("Slack webhook message sent", notification_type=notification.type)
                return True
        except httpx.HTTPError as e:
            logger.error("Slack send error", error=str(e))
            return False

        logger.warning("Slack channel has neither a bot token nor a webhook URL")
        return False

    async def _post_to_api(self, message: dict[str, Any], channel: str) -> bool:
        if not channel:
            logger.warning("No Slack channel to post to")
            return False

        response = await self._client.post(
            f"{SLACK_API_URL}/chat.postMessage",
            headers=self._auth_headers(),
            json={"channel": channel, **message},
        )
        result = response.json()

        if result.get("ok"):
            logger.info("Slack message sent", channel=channel)
            return True

        logger.warning("Slack send failed", channel=channel, error=result.get("error"))
        return False

    async def find_user_id(self, email: str | None) -> str | None:
        """Look up the Slack user of a commit author.

        Args:
            email: Commit author email

        Returns:
            Slack user id, None when unknown
        """
        if not email:
            return None

        try:
            response = await self._client.get(
                f"{SLACK_API_URL}/users.lookupByEmail",
                headers=self._auth_headers(),
                params={"email": email},
            )
            result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Slack user lookup error", error=str(e))
            return None

        if not result.get("ok"):
            logger.debug("Slack user not found", email=email, error=result.get("error"))
            return None
        return result.get("user", {}).get("id")

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._bot_token}"}

    def build_message(
        self,
        notification: Notification,
        mention: str | None = None,
    ) -> dict[str, Any] | None:
        """Format a notification as a Block Kit message."""
        if isinstance(notification, SimpleNotification):
            return _message(notification.subject, notification.message)
        if isinstance(notification, AlarmNotification):
            return _message(
                f"Cloudwatch Alarm:{notification.alert.name}",
                str(notification.alert.reason or ""),
            )
        if isinstance(notification, PipelineNotification):
            title = f"Code Pipeline:{notification.name}"
            if notification.successfull:
                return self._success_message(title, notification.commit, mention)
            return self._failure_message(
                title,
                notification.commit,
                notification.failure_detail,
                mention,
            )
        if isinstance(notification, ManualApprovalNotification):
            return self._approval_message(notification.name, notification.approval_attributes)
        return None

    def _success_message(
        self,
        title: str,
        commit: Commit,
        mention: str | None,
    ) -> dict[str, Any]:
        lines = [f":rocket: Deployed by {_author(commit, mention)}"]
        lines.extend(_commit_lines(commit))
        return _message(title, "\n".join(lines), text=f":rocket: {title} succeeded")

    def _failure_message(
        self,
        title: str,
        commit: Commit,
        detail: FailureDetail | None,
        mention: str | None,
    ) -> dict[str, Any]:
        lines = [f":hot_face: {_author(commit, mention)} broke the pipeline."]
        lines.extend(_commit_lines(commit))

        if isinstance(detail, CodeBuildFailureDetail):
            lines.append(f"<{detail.log_url}|View Build Log>")
        elif isinstance(detail, CodeDeployFailureDetail):
            if detail.summary:
                lines.append(f"```{detail.summary}```")
            for target in detail.targets:
                if target.diagnostics is None:
                    continue
                log_tail = target.diagnostics.log_tail[-LOG_TAIL_CHARS:]
                lines.append(
                    f"*{target.diagnostics.script_name}* failed on `{target.instance_id}`\n"
                    f"```{log_tail}```"
                )

        return _message(title, "\n".join(lines), text=f":hot_face: {title} failed")

    def _approval_message(self, pipeline_name: str, attributes: ApprovalAttributes) -> dict[str, Any]:
        lines = []
        if attributes.link:
            lines.append(f"<{attributes.link}|Review>")
        if attributes.comment:
            lines.append(attributes.comment)
        return _message(
            f"{pipeline_name} requires manual approval",
            "\n".join(lines) or "Waiting for approval.",
            text=f":sneeze: {pipeline_name} requires manual approval",
        )

    async def close(self) -> None:
        """Close HTTP client."""
        await self._client.aclose()


def _author(commit: Commit, mention: str | None) -> str:
    if mention:
        return f"<@{mention}>"
    return commit.author or "Someone"


def _commit_lines(commit: Commit) -> list[str]:
    if not commit.id:
        return []
    return [f"<{commit.link}|Commit {commit.id[:8]}>: {commit.summary}"]


def _message(subject: str, body: str, text: str = ":bulb: Received a AWS Notification") -> dict[str, Any]:
    return {
        "text": text,
        "blocks": [
            {"type": "header", "text": {"type": "plain_text", "text": subject}},
            {"type": "section", "text": {"type": "mrkdwn", "text": body}},
        ],
    }
