"""Inbound message and CodePipeline event models.

CodePipeline notifications use hyphenated keys (``execution-id``,
``execution-result``); the models accept those keys through aliases and
expose snake_case attributes.

https://docs.aws.amazon.com/codepipeline/latest/userguide/detect-state-changes-cloudwatch-events.html
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EventCategory(str, Enum):
    """Granularity of a CodePipeline state change notification."""

    EXECUTION = "CodePipelineExecutionEvent"
    STAGE = "CodePipelineStageEvent"
    ACTION = "CodePipelineActionEvent"
    UNKNOWN = ""


class ActionState(str, Enum):
    """States reported for executions, stages and actions."""

    STARTED = "STARTED"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELED = "CANCELED"
    RESUMED = "RESUMED"
    SUPERSEDED = "SUPERSEDED"
    STOPPED = "STOPPED"
    STOPPING = "STOPPING"
    ABANDONED = "ABANDONED"


class ActionType(BaseModel):
    """The ``type`` block of an action event."""

    owner: str = ""
    provider: str = ""
    category: str = ""
    version: str = ""


class ExecutionResult(BaseModel):
    """The ``execution-result`` block of an action event."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    external_execution_id: str | None = Field(default=None, alias="external-execution-id")
    external_execution_url: str | None = Field(default=None, alias="external-execution-url")
    external_execution_summary: str | None = Field(
        default=None,
        alias="external-execution-summary",
    )
    error_code: str | None = Field(default=None, alias="error-code")


class EventDetail(BaseModel):
    """The ``detail`` block shared by execution, stage and action events."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    pipeline: str = ""
    execution_id: str = Field(default="", alias="execution-id")
    state: str = ""
    stage: str | None = None
    action: str | None = None
    type: ActionType | None = None
    execution_result: ExecutionResult | None = Field(default=None, alias="execution-result")
    external_entity_link: str | None = Field(default=None, alias="externalEntityLink")
    custom_data: str | None = Field(default=None, alias="customData")

    @property
    def provider(self) -> str:
        """Provider declared by an action event, empty for other events."""
        return self.type.provider if self.type else ""


class PipelineEvent(BaseModel):
    """A CodePipeline state change notification."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    detail_type: str = Field(default="", alias="detailType")
    account: str = ""
    region: str = ""
    source: str = ""
    time: str = ""
    detail: EventDetail = Field(default_factory=EventDetail)
    additional_attributes: dict[str, Any] = Field(
        default_factory=dict,
        alias="additionalAttributes",
    )

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "PipelineEvent":
        """Build an event from a notification body.

        EventBridge delivers the discriminator as ``detail-type`` while
        CodeStar notification rules use ``detailType``; both are accepted.
        """
        data = dict(payload)
        if "detailType" not in data and "detail-type" in data:
            data["detailType"] = data.pop("detail-type")
        return cls.model_validate(data)


class RawMessage(BaseModel):
    """A message unwrapped from its transport envelope.

    ``body`` is the decoded JSON object when the message was JSON, otherwise
    the plain text and ``subject`` carries the envelope subject.
    """

    is_json: bool = False
    subject: str = ""
    body: str | dict[str, Any] = ""
