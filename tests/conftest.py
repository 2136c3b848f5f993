"""Pytest configuration and fixtures."""

from typing import Any, Callable

import pytest

from pipealert.core.errors import CommitLookupError
from pipealert.models.execution import Commit, ExecutionRecord
from pipealert.models.notification import Diagnostic, InstanceDiagnostic, Notification
from pipealert.notification.channels.base import NotificationChannel
from pipealert.pipeline.orchestrator import PipelineOrchestrator
from pipealert.pipeline.tracker import ExecutionTracker
from pipealert.sources.base import CommitProvider

EXECUTION_ID = "94fb261b-65d0-41ba-bea3-b08420e9b5e7"
PIPELINE = "meerkat"
COMMIT_ID = "f7ec85262da48e2b15d03037b138963c5a89d39f"
SOURCE_URL = (
    "https://ap-southeast-2.console.aws.amazon.com/codesuite/settings/connections/redirect"
    "?connectionArn=arn:aws:codestar-connections:ap-southeast-2:111111111111:connection/11c9e"
    f"&referenceType=COMMIT&FullRepositoryId=quicken/aws-code-pipeline-monitor&Commit={COMMIT_ID}"
)
BUILD_ID = "meerkat-testing:56be3e40-853a-4797-9455-f88ce291fdad"
DEPLOYMENT_ID = "d-5QZ1MOIFB"


class FakeExecutionStore:
    """In-memory execution store.

    Records are copied on the way in and out, like a real round trip.
    """

    def __init__(self):
        self.records: dict[str, ExecutionRecord] = {}
        self.claims: set[str] = set()
        self.sealed: set[str] = set()
        self.saves = 0

    async def get(self, execution_id: str) -> ExecutionRecord | None:
        record = self.records.get(execution_id)
        return record.model_copy(deep=True) if record else None

    async def save(self, record: ExecutionRecord) -> None:
        self.saves += 1
        self.records[record.execution_id] = record.model_copy(deep=True)

    async def claim(self, execution_id: str, ttl: int | None = None) -> bool:
        if execution_id in self.claims:
            return False
        self.claims.add(execution_id)
        return True

    async def release(self, execution_id: str) -> None:
        self.claims.discard(execution_id)

    async def seal(self, execution_id: str) -> None:
        self.claims.add(execution_id)
        self.sealed.add(execution_id)


class FakeCommitProvider(CommitProvider):
    """Commit provider answering from a dict."""

    def __init__(self, commits: dict[str, Commit] | None = None):
        self.commits = commits or {}
        self.calls: list[tuple[str, str]] = []

    @property
    def provider_type(self) -> str:
        return "fake"

    async def fetch_commit(self, repo: str, commit_id: str) -> Commit:
        self.calls.append((repo, commit_id))
        if commit_id not in self.commits:
            raise CommitLookupError(f"Unknown commit {commit_id}")
        return self.commits[commit_id]

    async def close(self) -> None:
        pass


class FakeBuildLogEnricher:
    def __init__(self):
        self.calls: list[str] = []

    async def fetch_build_log_url(self, build_id: str) -> str:
        self.calls.append(build_id)
        return f"https://logs.example.com/{build_id}"


class FakeDeployDiagnosticsEnricher:
    def __init__(self, targets: list[InstanceDiagnostic] | None = None):
        self.targets = targets or []
        self.calls: list[str] = []

    async def fetch_deploy_details(self, deployment_id: str) -> list[InstanceDiagnostic]:
        self.calls.append(deployment_id)
        return self.targets


class FakeChannel(NotificationChannel):
    """Chat channel recording what it was asked to send."""

    def __init__(self, result: bool = True):
        self.result = result
        self.sent: list[tuple[Notification, str | None]] = []

    @property
    def channel_type(self) -> str:
        return "fake"

    async def send(self, notification: Notification, channel: str | None = None) -> bool:
        self.sent.append((notification, channel))
        return self.result


def action_event(
    stage: str,
    provider: str,
    state: str,
    action: str | None = None,
    execution_result: dict[str, Any] | None = None,
    execution_id: str = EXECUTION_ID,
    pipeline: str = PIPELINE,
    **detail: Any,
) -> dict[str, Any]:
    """Build a CodePipeline action event body."""
    body: dict[str, Any] = {
        "account": "000000000000",
        "detailType": "CodePipeline Action Execution State Change",
        "region": "ap-southeast-2",
        "source": "aws.codepipeline",
        "time": "2022-03-30T08:52:49Z",
        "detail": {
            "pipeline": pipeline,
            "execution-id": execution_id,
            "stage": stage,
            "action": action or stage,
            "state": state,
            "region": "ap-southeast-2",
            "type": {"owner": "AWS", "provider": provider, "category": stage, "version": "1"},
            **detail,
        },
        "additionalAttributes": {},
    }
    if execution_result is not None:
        body["detail"]["execution-result"] = execution_result
    return body


def execution_event(state: str, execution_id: str = EXECUTION_ID) -> dict[str, Any]:
    """Build a CodePipeline execution event body."""
    return {
        "detailType": "CodePipeline Pipeline Execution State Change",
        "detail": {"pipeline": PIPELINE, "execution-id": execution_id, "state": state},
        "additionalAttributes": {},
    }


def stage_event(state: str, stage: str = "Build") -> dict[str, Any]:
    """Build a CodePipeline stage event body."""
    return {
        "detailType": "CodePipeline Stage Execution State Change",
        "detail": {
            "pipeline": PIPELINE,
            "execution-id": EXECUTION_ID,
            "stage": stage,
            "state": state,
        },
        "additionalAttributes": {"sourceActions": []},
    }


@pytest.fixture
def source_succeeded() -> dict[str, Any]:
    return action_event(
        "Source",
        "CodeStarSourceConnection",
        "SUCCEEDED",
        execution_result={
            "external-execution-url": SOURCE_URL,
            "external-execution-summary": '{"ProviderType":"GitHub","CommitMessage":"Fix"}',
            "external-execution-id": COMMIT_ID,
        },
    )


@pytest.fixture
def build_failed() -> dict[str, Any]:
    return action_event(
        "Build",
        "CodeBuild",
        "FAILED",
        execution_result={
            "external-execution-url": "https://console.aws.amazon.com/codebuild/home#/builds/x",
            "external-execution-summary": "Build terminated with state: FAILED",
            "external-execution-id": BUILD_ID,
            "error-code": "JobFailed",
        },
    )


@pytest.fixture
def deploy_failed() -> Callable[..., dict[str, Any]]:
    def _make(action: str = "Deploy-RED", deployment_id: str = DEPLOYMENT_ID) -> dict[str, Any]:
        return action_event(
            "Deploy",
            "CodeDeploy",
            "FAILED",
            action=action,
            execution_result={
                "external-execution-url": f"https://console.aws.amazon.com/codedeploy/{deployment_id}",
                "external-execution-summary": "Deployment d-5QZ1MOIFB failed",
                "external-execution-id": deployment_id,
                "error-code": "JobFailed",
            },
        )

    return _make


@pytest.fixture
def commit() -> Commit:
    return Commit(
        id=COMMIT_ID,
        author="Mona Lisa <mona@example.com>",
        author_email="mona@example.com",
        summary="Fix the build",
        link=f"https://github.com/quicken/aws-code-pipeline-monitor/commit/{COMMIT_ID}",
    )


@pytest.fixture
def execution_store() -> FakeExecutionStore:
    return FakeExecutionStore()


@pytest.fixture
def commit_provider(commit: Commit) -> FakeCommitProvider:
    return FakeCommitProvider({COMMIT_ID: commit})


@pytest.fixture
def tracker(execution_store: FakeExecutionStore, commit_provider: FakeCommitProvider) -> ExecutionTracker:
    return ExecutionTracker(execution_store, commit_provider)


@pytest.fixture
def build_logs() -> FakeBuildLogEnricher:
    return FakeBuildLogEnricher()


@pytest.fixture
def deploy_diagnostics() -> FakeDeployDiagnosticsEnricher:
    return FakeDeployDiagnosticsEnricher(
        [
            InstanceDiagnostic(
                instance_id="i-0a1b2c3d",
                diagnostics=Diagnostic(
                    error_code="ScriptFailed",
                    log_tail="[stderr] npm ERR! missing script: start",
                    message="Script at specified location: scripts/start.sh run as user root failed",
                    script_name="scripts/start.sh",
                ),
            ),
            InstanceDiagnostic(instance_id="i-9z8y7x6w", diagnostics=None),
        ]
    )


@pytest.fixture
def orchestrator(
    tracker: ExecutionTracker,
    build_logs: FakeBuildLogEnricher,
    deploy_diagnostics: FakeDeployDiagnosticsEnricher,
) -> PipelineOrchestrator:
    return PipelineOrchestrator(tracker, build_logs, deploy_diagnostics)
