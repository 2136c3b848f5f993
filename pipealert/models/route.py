"""Chat routing rule models."""

from pydantic import BaseModel, ConfigDict, Field


class RouteRule(BaseModel):
    """An expression and the channel used when it matches.

    Example: ``{"expression": "type:PipelineNotification&name~.*prod.*",
    "channel": "#prod-pipeline"}``
    """

    model_config = ConfigDict(frozen=True)

    expression: str = Field(..., description="Routing expression")
    channel: str = Field(..., description="Destination channel")


class SlackRoutes(BaseModel):
    """Ordered routing rules, first match wins."""

    routes: list[RouteRule] = Field(default_factory=list)


class RouteConfig(BaseModel):
    """Routing configuration document as stored in Redis or a local file."""

    slack: SlackRoutes = Field(default_factory=SlackRoutes)

    @property
    def rules(self) -> list[RouteRule]:
        return self.slack.routes
