"""CodePipeline event handling.

The orchestrator decides, per inbound event, whether the execution it belongs
to has reached a terminal state worth a notification:

- an action event that leaves the execution failed produces a failure
  notification built from the first recorded failure,
- a successful execution event produces a success notification,
- a manual approval that starts produces an approval request.

Stage events carry nothing the action events do not, so they are ignored.
"""

from collections.abc import Mapping
from typing import Any, assert_never

from pipealert.bots.base import Bot
from pipealert.core.logging import get_logger
from pipealert.models.event import ActionState, EventCategory, PipelineEvent, RawMessage
from pipealert.models.execution import BuildFailure, CheckoutFailure, DeployFailure
from pipealert.models.notification import (
    CodeBuildFailureDetail,
    CodeDeployFailureDetail,
    FailureDetail,
    ManualApprovalNotification,
    Notification,
    PipelineNotification,
)
from pipealert.observability.metrics import PIPELINE_EVENTS
from pipealert.pipeline.enrichers import BuildLogEnricher, DeployDiagnosticsEnricher
from pipealert.pipeline.tracker import APPROVAL_PROVIDER, ExecutionTracker

logger = get_logger(__name__)

DETAIL_TYPES: dict[str, EventCategory] = {
    "CodePipeline Pipeline Execution State Change": EventCategory.EXECUTION,
    "CodePipeline Stage Execution State Change": EventCategory.STAGE,
    "CodePipeline Action Execution State Change": EventCategory.ACTION,
}

DEFAULT_ROLE_PREFIX = "DEPLOY_ARN"


def collect_credential_scopes(
    environ: Mapping[str, str],
    prefix: str = DEFAULT_ROLE_PREFIX,
) -> dict[str, str]:
    """Pick the cross-account role variables out of an environment.

    Args:
        environ: Usually ``os.environ``
        prefix: Variable name prefix

    Returns:
        Matching variables, in the environment's iteration order
    """
    return {key: value for key, value in environ.items() if key.startswith(prefix)}


def resolve_credential_scope(
    pipeline_name: str,
    scopes: Mapping[str, str],
    prefix: str = DEFAULT_ROLE_PREFIX,
) -> str:
    """Select the role to assume for CodeDeploy calls of a pipeline.

    Variables follow the convention ``DEPLOY_ARN_<term>``: the role applies to
    every pipeline whose name contains ``<term>``, case-insensitively. The
    first matching variable in iteration order wins, not the longest term. A
    bare ``DEPLOY_ARN`` is the fallback.

    Args:
        pipeline_name: CodePipeline name
        scopes: Role variables, see ``collect_credential_scopes``
        prefix: Variable name prefix

    Returns:
        Role ARN, or an empty string to use the ambient credentials
    """
    name = pipeline_name.lower()
    for key, value in scopes.items():
        if not key.startswith(prefix):
            continue
        term = key[len(prefix):].lstrip("_").lower()
        if term and term in name:
            return value
    return scopes.get(prefix, "")


class PipelineOrchestrator(Bot):
    """Turns CodePipeline events into at most one notification per execution."""

    def __init__(
        self,
        tracker: ExecutionTracker,
        build_logs: BuildLogEnricher,
        deploy_diagnostics: DeployDiagnosticsEnricher,
    ):
        """Initialize orchestrator.

        Args:
            tracker: Execution state tracker
            build_logs: CodeBuild log lookup
            deploy_diagnostics: CodeDeploy target lookup
        """
        self.tracker = tracker
        self.build_logs = build_logs
        self.deploy_diagnostics = deploy_diagnostics

    @property
    def name(self) -> str:
        return "aws_codepipeline_event"

    @staticmethod
    def classify(event: Mapping[str, Any]) -> EventCategory:
        """Map the event discriminator to an event category.

        Args:
            event: Notification body

        Returns:
            The category, ``EventCategory.UNKNOWN`` for anything unrecognised
        """
        detail_type = event.get("detailType", event.get("detail-type"))
        if not isinstance(detail_type, str):
            return EventCategory.UNKNOWN
        return DETAIL_TYPES.get(detail_type, EventCategory.UNKNOWN)

    async def handle_message(self, message: RawMessage) -> Notification | None:
        if not isinstance(message.body, dict):
            return None
        return await self.handle(message.body)

    async def handle(self, payload: Mapping[str, Any]) -> Notification | None:
        """Fold one event and build a notification if the execution is terminal.

        Args:
            payload: CodePipeline notification body

        Returns:
            Notification to deliver, or None

        Raises:
            MalformedEventError: If a source event lacks required structure
        """
        category = self.classify(payload)
        PIPELINE_EVENTS.labels(category=category.name.lower()).inc()

        if category == EventCategory.UNKNOWN:
            logger.debug("Dropping unrecognised pipeline event", detail_type=payload.get("detailType"))
            return None

        if category == EventCategory.STAGE:
            return None

        event = PipelineEvent.from_payload(dict(payload))
        await self.tracker.load(event.detail.execution_id)

        if category == EventCategory.EXECUTION:
            return await self._handle_execution_event(event)
        return await self._handle_action_event(event)

    async def _handle_execution_event(self, event: PipelineEvent) -> Notification | None:
        # Failures are reported from action events, which carry the failed action.
        if event.detail.state != ActionState.SUCCEEDED:
            return None
        if self._already_notified():
            return None
        if event.detail.pipeline:
            self.tracker.record.pipeline_name = event.detail.pipeline
        return await self.build_notification(self.tracker)

    async def _handle_action_event(self, event: PipelineEvent) -> Notification | None:
        await self.tracker.fold_event(event)

        if self.tracker.is_failed:
            if self._already_notified():
                return None
            return await self.build_notification(self.tracker)

        if event.detail.provider == APPROVAL_PROVIDER and event.detail.state == ActionState.STARTED:
            return ManualApprovalNotification(
                name=self.tracker.record.pipeline_name,
                approval_attributes=self.tracker.record.approval_attributes,
            )

        return None

    def _already_notified(self) -> bool:
        if self.tracker.record.is_notified:
            logger.debug("Execution already notified", execution_id=self.tracker.execution_id)
            return True
        return False

    async def build_notification(self, tracker: ExecutionTracker) -> PipelineNotification:
        """Build the terminal notification from the tracked state.

        Args:
            tracker: Tracker holding a loaded execution

        Returns:
            Success notification, or failure notification for the first failure

        Raises:
            botocore.exceptions.ClientError: If a diagnostic lookup fails
        """
        record = tracker.record
        failure = tracker.first_failure
        detail: FailureDetail | None = None

        if failure is None:
            pass
        elif isinstance(failure, BuildFailure):
            detail = CodeBuildFailureDetail(
                log_url=await self.build_logs.fetch_build_log_url(failure.id),
            )
        elif isinstance(failure, DeployFailure):
            detail = CodeDeployFailureDetail(
                id=failure.id,
                summary=failure.summary or "",
                targets=await self.deploy_diagnostics.fetch_deploy_details(failure.id),
            )
        elif isinstance(failure, CheckoutFailure):
            # No diagnostic service behind a checkout; the message says it all.
            pass
        else:
            assert_never(failure)

        return PipelineNotification(
            name=record.pipeline_name,
            commit=record.commit,
            successfull=not tracker.is_failed,
            failure_detail=detail,
        )

    async def claim_notification(self, notification: Notification) -> bool:
        if not isinstance(notification, PipelineNotification):
            return True
        claimed = await self.tracker.store.claim(self.tracker.execution_id)
        if not claimed:
            logger.info("Execution already claimed", execution_id=self.tracker.execution_id)
        return claimed

    async def release_notification(self, notification: Notification) -> None:
        if isinstance(notification, PipelineNotification):
            await self.tracker.store.release(self.tracker.execution_id)

    async def notification_sent(self, notification: Notification) -> None:
        """Mark the execution notified once delivery succeeded.

        Approval requests are not terminal and leave the execution open.
        """
        if not isinstance(notification, PipelineNotification):
            return
        self.tracker.record.is_notified = True
        await self.tracker.save()
        await self.tracker.store.seal(self.tracker.execution_id)
        logger.info(
            "Execution notified",
            execution_id=self.tracker.execution_id,
            pipeline=self.tracker.record.pipeline_name,
            successfull=notification.successfull,
        )
