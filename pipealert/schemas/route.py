"""Routing API schemas."""

from typing import Any

from pydantic import BaseModel, Field

from pipealert.models.route import RouteRule


class RouteListResponse(BaseModel):
    """Loaded routing rules in evaluation order."""

    rules: list[RouteRule] = Field(default_factory=list)


class RouteUpdate(BaseModel):
    """Replacement routing rules."""

    rules: list[RouteRule] = Field(..., description="Ordered rules, first match wins")


class RouteEvaluateRequest(BaseModel):
    """Dry-run routing of notification attributes."""

    attributes: dict[str, Any] = Field(..., description="Notification attributes")
    rules: list[RouteRule] | None = Field(
        default=None,
        description="Rules to evaluate, the stored rules when omitted",
    )


class RouteEvaluateResponse(BaseModel):
    """Result of a routing dry run."""

    channel: str | None = Field(default=None, description="Matched channel, null if no rule matched")
