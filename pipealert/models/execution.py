"""Pipeline execution record domain models."""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Commit(BaseModel):
    """The commit that started a pipeline execution."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default="", description="Commit id")
    author: str = Field(default="", description="Author, usually 'Name <email>'")
    author_email: str | None = Field(default=None, description="Author email address")
    summary: str = Field(default="", description="Commit message")
    link: str = Field(default="", description="Web page showing the commit")


class ApprovalAttributes(BaseModel):
    """Information attached to a manual approval request."""

    link: str | None = Field(default=None, description="URL to review before approving")
    comment: str | None = Field(default=None, description="Comments for the approvers")


class _FailureBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default="", description="Build id, deployment id, or empty for checkout")
    name: str = Field(default="", description="Action name, e.g. 'Deploy-RED'")
    link: str | None = None
    message: str | None = None
    summary: str | None = None


class CheckoutFailure(_FailureBase):
    """A failed source checkout action."""

    kind: Literal["checkout"] = "checkout"


class BuildFailure(_FailureBase):
    """A failed CodeBuild action."""

    kind: Literal["build"] = "build"


class DeployFailure(_FailureBase):
    """A failed deployment action (one per deployment group)."""

    kind: Literal["deploy"] = "deploy"


FailureEntry = Annotated[
    Union[CheckoutFailure, BuildFailure, DeployFailure],
    Field(discriminator="kind"),
]


class ExecutionRecord(BaseModel):
    """Accumulated state of one pipeline execution.

    ``failures`` is append-only in the order failed actions were observed;
    the first entry is the failure reported to users.
    """

    execution_id: str = Field(..., description="Execution id assigned by CodePipeline")
    pipeline_name: str = Field(default="", description="Pipeline name")
    commit: Commit = Field(default_factory=Commit)
    approval_attributes: ApprovalAttributes = Field(default_factory=ApprovalAttributes)
    failures: list[FailureEntry] = Field(default_factory=list)
    is_notified: bool = Field(default=False, description="A terminal notification was delivered")
