"""Notification domain models.

Notifications are built by the bots, routed to a channel and then delivered.
They are never persisted.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from pipealert.models.execution import ApprovalAttributes, Commit


class Diagnostic(BaseModel):
    """Output of the first failed CodeDeploy lifecycle event on an instance."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    error_code: str = ""
    log_tail: str = ""
    message: str = ""
    script_name: str = ""


class InstanceDiagnostic(BaseModel):
    """Deployment outcome for one instance target."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    instance_id: str = ""
    diagnostics: Diagnostic | None = None


class CodeBuildFailureDetail(BaseModel):
    """Troubleshooting detail for a failed CodeBuild action."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    type: Literal["CodeBuild"] = "CodeBuild"
    log_url: str = Field(default="", description="Build log in the AWS console")


class CodeDeployFailureDetail(BaseModel):
    """Troubleshooting detail for a failed CodeDeploy action."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    type: Literal["CodeDeploy"] = "CodeDeploy"
    id: str = Field(default="", description="Deployment id")
    summary: str = ""
    targets: list[InstanceDiagnostic] = Field(default_factory=list)


FailureDetail = Annotated[
    Union[CodeBuildFailureDetail, CodeDeployFailureDetail],
    Field(discriminator="type"),
]


class SimpleNotification(BaseModel):
    """Plain subject/message notification."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    type: Literal["SimpleNotification"] = "SimpleNotification"
    subject: str = ""
    message: str = ""


class Alert(BaseModel):
    """CloudWatch alarm transition."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    type: Literal["alarm", "nag", "recovered", "healthy"] = "alarm"
    name: str = ""
    description: str = ""
    reason: Any = None
    date: int = Field(default=0, description="State change time in epoch milliseconds")


class AlarmNotification(BaseModel):
    """Notification for a system alarm."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    type: Literal["AlarmNotification"] = "AlarmNotification"
    alert: Alert


class PipelineNotification(BaseModel):
    """Terminal outcome of a pipeline execution: success, or the first failure."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    type: Literal["PipelineNotification"] = "PipelineNotification"
    name: str = Field(default="", description="Pipeline name")
    commit: Commit = Field(default_factory=Commit)
    successfull: bool
    failure_detail: FailureDetail | None = None


class ManualApprovalNotification(BaseModel):
    """A pipeline is waiting for a manual approval."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    type: Literal["ManualApprovalNotification"] = "ManualApprovalNotification"
    name: str = ""
    approval_attributes: ApprovalAttributes = Field(default_factory=ApprovalAttributes)


Notification = Annotated[
    Union[
        SimpleNotification,
        AlarmNotification,
        PipelineNotification,
        ManualApprovalNotification,
    ],
    Field(discriminator="type"),
]
