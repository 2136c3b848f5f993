"""Inbound message processing handler."""

import time
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel

from pipealert.bots.alarm import CloudWatchAlarmBot
from pipealert.bots.base import Bot
from pipealert.bots.simple import SimpleBot
from pipealert.core.config import Settings, environment_variables, get_settings
from pipealert.core.logging import bind_message_context, clear_message_context, get_logger
from pipealert.engine.router import NotificationRouter
from pipealert.messaging.envelope import unwrap
from pipealert.models.event import RawMessage
from pipealert.models.notification import Notification
from pipealert.notification.channels.base import NotificationChannel
from pipealert.notification.channels.discord import DiscordChannel
from pipealert.notification.channels.slack import SlackChannel
from pipealert.observability.metrics import (
    MESSAGES_RECEIVED,
    NOTIFICATIONS_SENT,
    NOTIFICATIONS_SKIPPED,
)
from pipealert.pipeline.enrichers import BuildLogEnricher, DeployDiagnosticsEnricher
from pipealert.pipeline.orchestrator import (
    PipelineOrchestrator,
    collect_credential_scopes,
    resolve_credential_scope,
)
from pipealert.pipeline.tracker import ExecutionTracker
from pipealert.sources.base import CommitProvider
from pipealert.sources.bitbucket import BitBucketProvider
from pipealert.sources.github import GitHubProvider
from pipealert.storage.execution_store import ExecutionStore
from pipealert.storage.route_store import RouteStore

logger = get_logger(__name__)

DeployEnricherFactory = Callable[[str], DeployDiagnosticsEnricher]


class HandleResult(BaseModel):
    """Outcome of handling one inbound message."""

    bot: str
    notification: Notification | None = None
    channel: str | None = None
    delivered: bool = False
    skipped: bool = False


def create_commit_provider(settings: Settings) -> CommitProvider:
    """Create the git host client selected by ``GIT_PROVIDER``."""
    if settings.git_provider == "bitbucket":
        return BitBucketProvider(settings.git_username, settings.git_password)
    return GitHubProvider(settings.git_username, settings.git_password)


def create_channel(settings: Settings) -> NotificationChannel:
    """Create the chat channel selected by ``CHAT_SERVICE``."""
    if settings.chat_service == "discord":
        return DiscordChannel(
            settings.discord_webhook_url,
            username=settings.discord_username,
            avatar_url=settings.discord_avatar_url,
        )
    return SlackChannel(
        bot_token=settings.slack_bot_token,
        webhook_url=settings.slack_webhook_url,
        default_channel=settings.slack_channel,
    )


class MessageHandler:
    """Picks a bot for each message, then routes and delivers its notification."""

    def __init__(
        self,
        execution_store: ExecutionStore | None = None,
        route_store: RouteStore | None = None,
        commit_provider: CommitProvider | None = None,
        channel: NotificationChannel | None = None,
        credential_scopes: dict[str, str] | None = None,
        build_logs: BuildLogEnricher | None = None,
        deploy_enricher_factory: DeployEnricherFactory | None = None,
    ):
        """Initialize handler.

        Args:
            execution_store: Execution record storage
            route_store: Routing configuration storage
            commit_provider: Git host client
            channel: Chat channel
            credential_scopes: Cross-account role variables, read from the
                process environment and ``.env`` when omitted
            build_logs: CodeBuild log lookup
            deploy_enricher_factory: Builds the CodeDeploy lookup for a role ARN
        """
        self._settings = get_settings()
        self._execution_store = execution_store or ExecutionStore()
        self._route_store = route_store or RouteStore()
        self._commit_provider = commit_provider or create_commit_provider(self._settings)
        self._channel = channel or create_channel(self._settings)
        self._credential_scopes = (
            credential_scopes
            if credential_scopes is not None
            else collect_credential_scopes(environment_variables(), self._settings.deploy_role_prefix)
        )
        self._build_logs = build_logs or BuildLogEnricher(region=self._settings.aws_region)
        self._deploy_enricher_factory = deploy_enricher_factory or self._default_deploy_enricher
        self._router: NotificationRouter | None = None

    def _default_deploy_enricher(self, role_arn: str) -> DeployDiagnosticsEnricher:
        return DeployDiagnosticsEnricher(region=self._settings.aws_region, role_arn=role_arn)

    async def reload_routes(self) -> NotificationRouter:
        """Reload routing rules from the route store."""
        rules = await self._route_store.load()
        self._router = NotificationRouter(rules)
        logger.info("Routes loaded", rule_count=len(rules))
        return self._router

    async def get_router(self) -> NotificationRouter:
        if self._router is None:
            return await self.reload_routes()
        return self._router

    def bot_for(self, message: RawMessage) -> Bot:
        """Select the bot that understands a message.

        Args:
            message: Unwrapped message

        Returns:
            Alarm bot, pipeline bot, or the plain text bot as fallback
        """
        if message.is_json and isinstance(message.body, dict):
            body = message.body
            if CloudWatchAlarmBot.matches(body):
                return CloudWatchAlarmBot()

            detail_type = body.get("detailType", body.get("detail-type"))
            if isinstance(detail_type, str) and detail_type.startswith("CodePipeline"):
                return self.create_pipeline_bot(body)

        return SimpleBot()

    def create_pipeline_bot(self, body: dict[str, Any]) -> PipelineOrchestrator:
        """Create the CodePipeline bot for one event.

        The CodeDeploy lookup uses the role selected by the pipeline name.
        """
        detail = body.get("detail") or {}
        pipeline_name = detail.get("pipeline", "") if isinstance(detail, dict) else ""
        role_arn = resolve_credential_scope(
            pipeline_name,
            self._credential_scopes,
            self._settings.deploy_role_prefix,
        )
        if role_arn:
            logger.debug("Using cross-account deploy role", pipeline=pipeline_name, role_arn=role_arn)

        tracker = ExecutionTracker(self._execution_store, self._commit_provider)
        return PipelineOrchestrator(
            tracker,
            self._build_logs,
            self._deploy_enricher_factory(role_arn),
        )

    async def handle_message(self, message: RawMessage) -> HandleResult:
        """Process one message through the full pipeline.

        Pipeline steps:
        1. Pick a bot and let it build a notification
        2. Route the notification to a chat channel
        3. Claim, deliver, then mark the notification sent

        Args:
            message: Unwrapped message

        Returns:
            What was built and whether it was delivered
        """
        start_time = time.time()

        bot = self.bot_for(message)
        bind_message_context(bot=bot.name)
        if isinstance(bot, PipelineOrchestrator) and isinstance(message.body, dict):
            detail = message.body.get("detail") or {}
            if isinstance(detail, dict):
                bind_message_context(execution_id=detail.get("execution-id", ""))

        MESSAGES_RECEIVED.labels(bot=bot.name).inc()
        if self._settings.trace_events:
            logger.info("Received message", body=message.body, subject=message.subject)

        # Step 1: Build notification
        notification = await bot.handle_message(message)
        if notification is None:
            logger.debug("No notification for message")
            return HandleResult(bot=bot.name)

        # Step 2: Route
        router = await self.get_router()
        channel = router.route(notification)

        # Step 3: Deliver once
        if not await bot.claim_notification(notification):
            NOTIFICATIONS_SKIPPED.inc()
            return HandleResult(bot=bot.name, notification=notification, channel=channel, skipped=True)

        try:
            delivered = await self._channel.send(notification, channel)
        except Exception:
            await bot.release_notification(notification)
            raise

        NOTIFICATIONS_SENT.labels(
            channel=self._channel.channel_type,
            status="sent" if delivered else "failed",
        ).inc()

        if not delivered:
            # Leave the execution open so the next event retries.
            await bot.release_notification(notification)
        else:
            await bot.notification_sent(notification)

        elapsed_ms = int((time.time() - start_time) * 1000)
        logger.info(
            "Message processed",
            notification_type=notification.type,
            channel=channel,
            delivered=delivered,
            elapsed_ms=elapsed_ms,
        )

        return HandleResult(
            bot=bot.name,
            notification=notification,
            channel=channel,
            delivered=delivered,
        )

    async def handle_payload(self, data: bytes | str) -> HandleResult:
        """Unwrap a transport payload and process it.

        Args:
            data: SNS delivery or bare notification body

        Returns:
            Handling outcome
        """
        try:
            return await self.handle_message(unwrap(data))
        finally:
            clear_message_context()

    async def close(self) -> None:
        """Close HTTP clients."""
        await self._commit_provider.close()
        await self._channel.close()


# Singleton handler instance
_handler: MessageHandler | None = None


def get_message_handler() -> MessageHandler:
    """Get or create message handler singleton."""
    global _handler
    if _handler is None:
        _handler = MessageHandler()
    return _handler


async def close_message_handler() -> None:
    """Close and drop the message handler singleton."""
    global _handler
    if _handler is not None:
        await _handler.close()
        _handler = None


async def handle_payload(data: bytes | str) -> HandleResult:
    """Handle a transport payload using the singleton handler.

    This is the main entry point for message processing.

    Args:
        data: SNS delivery or bare notification body
    """
    handler = get_message_handler()
    return await handler.handle_payload(data)
