"""Inbound event API routes."""

from fastapi import APIRouter, Request

from pipealert.api.deps import MessageHandlerDep
from pipealert.messaging.handler import HandleResult
from pipealert.schemas.common import APIResponse

router = APIRouter(prefix="/events", tags=["events"])


@router.post("", response_model=APIResponse[HandleResult])
async def receive_event(
    request: Request,
    handler: MessageHandlerDep,
) -> APIResponse[HandleResult]:
    """Process one notification synchronously.

    Accepts an SNS delivery, a bare CodePipeline or CloudWatch notification,
    or plain text.
    """
    body = await request.body()
    result = await handler.handle_payload(body)
    return APIResponse(data=result)
