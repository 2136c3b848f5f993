"""Per-execution state tracking.

CodePipeline notifications carry only part of what a useful alert needs and
arrive in no particular order. The commit id, for example, is only present on
the successful source action, and the author then has to be fetched from the
git host. The tracker folds each action event into a stored
``ExecutionRecord`` so that a later event of the same execution can build the
notification from everything seen so far.
"""

from urllib.parse import parse_qs, urlparse

from pipealert.core.errors import CommitLookupError, MalformedEventError
from pipealert.core.logging import get_logger
from pipealert.models.event import ActionState, PipelineEvent
from pipealert.models.execution import (
    ApprovalAttributes,
    BuildFailure,
    CheckoutFailure,
    Commit,
    DeployFailure,
    ExecutionRecord,
    FailureEntry,
)
from pipealert.observability.metrics import FAILURES_RECORDED
from pipealert.sources.base import CommitProvider
from pipealert.storage.execution_store import ExecutionStore

logger = get_logger(__name__)

SOURCE_PROVIDER = "CodeStarSourceConnection"
BUILD_PROVIDER = "CodeBuild"
APPROVAL_PROVIDER = "Manual"
SOURCE_STAGE = "Source"


class ExecutionTracker:
    """Accumulates the state of one pipeline execution."""

    def __init__(self, store: ExecutionStore, commit_provider: CommitProvider):
        """Initialize tracker.

        Args:
            store: Execution record storage
            commit_provider: Git host used to resolve the triggering commit
        """
        self._store = store
        self._commit_provider = commit_provider
        self.record = ExecutionRecord(execution_id="")

    @property
    def store(self) -> ExecutionStore:
        return self._store

    @property
    def execution_id(self) -> str:
        return self.record.execution_id

    @property
    def is_failed(self) -> bool:
        """True once any failed action has been folded in."""
        return len(self.record.failures) > 0

    @property
    def first_failure(self) -> FailureEntry | None:
        """The failure reported to users."""
        return self.record.failures[0] if self.record.failures else None

    async def load(self, execution_id: str) -> bool:
        """Load the stored state of an execution.

        Args:
            execution_id: Pipeline execution id

        Returns:
            True if a record existed, False if a fresh record was started
        """
        record = await self._store.get(execution_id)
        if record is None:
            self.record = ExecutionRecord(execution_id=execution_id)
            return False

        self.record = record
        return True

    async def save(self) -> None:
        """Persist the full in-memory record, replacing the stored one."""
        await self._store.save(self.record)

    async def fold_event(self, event: PipelineEvent) -> FailureEntry | None:
        """Fold an action event into the execution state.

        Args:
            event: CodePipeline action event

        Returns:
            The failure entry appended for this event, if any

        Raises:
            MalformedEventError: If a successful source event lacks its execution result
        """
        detail = event.detail
        if detail.pipeline:
            self.record.pipeline_name = detail.pipeline

        provider = detail.provider

        if provider == SOURCE_PROVIDER:
            return await self._fold_checkout(event)

        if provider == BUILD_PROVIDER:
            return await self._fold_build(event)

        if provider == APPROVAL_PROVIDER:
            await self._fold_approval(event)
            return None

        # Compatibility shim: some deploy-stage events arrive without a reliable
        # provider stamp, so every unrecognised provider is handled as a deploy.
        return await self._fold_deploy(event)

    async def _fold_checkout(self, event: PipelineEvent) -> FailureEntry | None:
        detail = event.detail
        if detail.stage != SOURCE_STAGE:
            return None

        if detail.state == ActionState.SUCCEEDED:
            result = detail.execution_result
            if result is None or not result.external_execution_url:
                raise MalformedEventError(
                    "Source action succeeded without an execution result",
                    execution_id=detail.execution_id,
                )

            query = parse_qs(urlparse(result.external_execution_url).query)
            repo = query.get("FullRepositoryId", [""])[0]
            commit_id = query.get("Commit", [""])[0]

            self.record.commit = await self._resolve_commit(repo, commit_id)
            await self.save()
            return None

        if detail.state == ActionState.FAILED:
            result = detail.execution_result
            failure = CheckoutFailure(
                id="",
                name=detail.action or "",
                message=result.external_execution_summary if result else None,
            )
            return await self._append_failure(failure)

        return None

    async def _resolve_commit(self, repo: str, commit_id: str) -> Commit:
        try:
            return await self._commit_provider.fetch_commit(repo, commit_id)
        except CommitLookupError as e:
            # The commit only decorates the alert; keep the id and carry on.
            logger.warning(
                "Commit lookup failed",
                provider=self._commit_provider.provider_type,
                repo=repo,
                commit_id=commit_id,
                error=str(e),
            )
            return Commit(id=commit_id)

    async def _fold_build(self, event: PipelineEvent) -> FailureEntry | None:
        detail = event.detail
        if detail.state != ActionState.FAILED:
            return None

        result = detail.execution_result
        failure = BuildFailure(
            id=(result.external_execution_id if result else None) or "",
            name=detail.action or "",
            link=result.external_execution_url if result else None,
        )
        return await self._append_failure(failure)

    async def _fold_deploy(self, event: PipelineEvent) -> FailureEntry | None:
        detail = event.detail
        if detail.state != ActionState.FAILED:
            return None

        result = detail.execution_result
        failure = DeployFailure(
            id=(result.external_execution_id if result else None) or "",
            name=detail.action or "",
            summary=(result.external_execution_summary if result else None) or "",
            link=(result.external_execution_url if result else None) or "",
        )
        return await self._append_failure(failure)

    async def _fold_approval(self, event: PipelineEvent) -> None:
        detail = event.detail
        self.record.approval_attributes = ApprovalAttributes(
            link=detail.external_entity_link,
            comment=detail.custom_data,
        )
        await self.save()

    async def _append_failure(self, failure: FailureEntry) -> FailureEntry:
        self.record.failures.append(failure)
        FAILURES_RECORDED.labels(kind=failure.kind).inc()
        logger.info(
            "Recorded pipeline failure",
            execution_id=self.execution_id,
            pipeline=self.record.pipeline_name,
            kind=failure.kind,
            action=failure.name,
            failure_count=len(self.record.failures),
        )
        await self.save()
        return failure
