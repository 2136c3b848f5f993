"""Diagnostic lookups against CodeBuild and CodeDeploy.

Enrichment only runs once a failure is confirmed. Errors from the AWS APIs
propagate so that no partial notification is sent. boto3 is blocking, so each
call runs in a worker thread.
"""

import asyncio
from typing import Any

import boto3

from pipealert.core.logging import get_logger
from pipealert.models.notification import Diagnostic, InstanceDiagnostic

logger = get_logger(__name__)

ROLE_SESSION_NAME = "pipealert"


def _client_kwargs(region: str) -> dict[str, Any]:
    return {"region_name": region} if region else {}


def assume_role_credentials(role_arn: str, region: str = "") -> dict[str, str]:
    """Assume a role in another account.

    Args:
        role_arn: Role to assume
        region: AWS region for STS

    Returns:
        Keyword arguments for ``boto3.client`` carrying the temporary credentials
    """
    sts = boto3.client("sts", **_client_kwargs(region))
    response = sts.assume_role(RoleArn=role_arn, RoleSessionName=ROLE_SESSION_NAME)
    credentials = response["Credentials"]
    return {
        "aws_access_key_id": credentials["AccessKeyId"],
        "aws_secret_access_key": credentials["SecretAccessKey"],
        "aws_session_token": credentials["SessionToken"],
    }


class BuildLogEnricher:
    """Resolves a failed build to its console log URL."""

    def __init__(self, client: Any | None = None, region: str = ""):
        """Initialize enricher.

        Args:
            client: boto3 CodeBuild client (created lazily when omitted)
            region: AWS region
        """
        self._client = client
        self._region = region

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = boto3.client("codebuild", **_client_kwargs(self._region))
        return self._client

    async def fetch_build_log_url(self, build_id: str) -> str:
        """Get the URL of the build log in the AWS console.

        Args:
            build_id: CodeBuild build id

        Returns:
            Log deep link, empty string if unavailable
        """
        response = await asyncio.to_thread(self.client.batch_get_builds, ids=[build_id])
        builds = response.get("builds") or []
        if not builds:
            logger.warning("Build not found", build_id=build_id)
            return ""
        return builds[0].get("logs", {}).get("deepLink", "") or ""


class DeployDiagnosticsEnricher:
    """Resolves a failed deployment to per-instance diagnostics.

    When a role ARN is given the CodeDeploy client is created with credentials
    of that role, for deployments provisioned in another account.
    """

    def __init__(self, client: Any | None = None, region: str = "", role_arn: str = ""):
        """Initialize enricher.

        Args:
            client: boto3 CodeDeploy client (created lazily when omitted)
            region: AWS region
            role_arn: Cross-account role to assume, empty for ambient credentials
        """
        self._client = client
        self._region = region
        self._role_arn = role_arn

    @property
    def role_arn(self) -> str:
        return self._role_arn

    def _get_client(self) -> Any:
        if self._client is None:
            kwargs = _client_kwargs(self._region)
            if self._role_arn:
                kwargs.update(assume_role_credentials(self._role_arn, self._region))
            self._client = boto3.client("codedeploy", **kwargs)
        return self._client

    async def fetch_deploy_details(self, deployment_id: str) -> list[InstanceDiagnostic]:
        """Get the first failed lifecycle event of every instance target.

        Args:
            deployment_id: CodeDeploy deployment id

        Returns:
            One entry per instance target; ``diagnostics`` is None for
            instances without a failed lifecycle event
        """
        return await asyncio.to_thread(self._fetch_deploy_details, deployment_id)

    def _fetch_deploy_details(self, deployment_id: str) -> list[InstanceDiagnostic]:
        client = self._get_client()

        listed = client.list_deployment_targets(deploymentId=deployment_id)
        target_ids = listed.get("targetIds") or []
        if not target_ids:
            return []

        response = client.batch_get_deployment_targets(
            deploymentId=deployment_id,
            targetIds=target_ids,
        )

        results: list[InstanceDiagnostic] = []
        for target in response.get("deploymentTargets") or []:
            if target.get("deploymentTargetType") != "InstanceTarget":
                continue

            instance = target.get("instanceTarget") or {}
            results.append(
                InstanceDiagnostic(
                    instance_id=instance.get("targetId", ""),
                    diagnostics=self._first_failure(instance.get("lifecycleEvents") or []),
                )
            )

        logger.debug(
            "Fetched deployment targets",
            deployment_id=deployment_id,
            targets=len(results),
        )
        return results

    @staticmethod
    def _first_failure(lifecycle_events: list[dict[str, Any]]) -> Diagnostic | None:
        for event in lifecycle_events:
            if event.get("status") == "Failed":
                diagnostics = event.get("diagnostics") or {}
                return Diagnostic(
                    error_code=diagnostics.get("errorCode", ""),
                    log_tail=diagnostics.get("logTail", ""),
                    message=diagnostics.get("message", ""),
                    script_name=diagnostics.get("scriptName", ""),
                )
        return None
