"""Chat routing API routes."""

from fastapi import APIRouter, HTTPException

from pipealert.api.deps import MessageHandlerDep, RouteStoreDep
from pipealert.engine.router import NotificationRouter
from pipealert.schemas.common import APIResponse
from pipealert.schemas.route import (
    RouteEvaluateRequest,
    RouteEvaluateResponse,
    RouteListResponse,
    RouteUpdate,
)

router = APIRouter(prefix="/routes", tags=["routes"])


@router.get("", response_model=APIResponse[RouteListResponse])
async def list_routes(store: RouteStoreDep) -> APIResponse[RouteListResponse]:
    """List routing rules in evaluation order."""
    rules = await store.load()
    return APIResponse(data=RouteListResponse(rules=rules))


@router.put("", response_model=APIResponse[RouteListResponse])
async def replace_routes(
    data: RouteUpdate,
    store: RouteStoreDep,
    handler: MessageHandlerDep,
) -> APIResponse[RouteListResponse]:
    """Replace the stored routing rules and reload them.

    Rejected while a local routing file is configured, since the file would
    keep overriding the stored rules.
    """
    if store.config_file:
        raise HTTPException(
            status_code=409,
            detail=f"Routes are loaded from {store.config_file}; edit that file instead",
        )
    await store.save(data.rules)
    await handler.reload_routes()
    return APIResponse(data=RouteListResponse(rules=data.rules))


@router.post("/evaluate", response_model=APIResponse[RouteEvaluateResponse])
async def evaluate_routes(
    data: RouteEvaluateRequest,
    store: RouteStoreDep,
) -> APIResponse[RouteEvaluateResponse]:
    """Dry-run routing without sending anything."""
    rules = data.rules if data.rules is not None else await store.load()
    channel = NotificationRouter.evaluate(rules, data.attributes)
    return APIResponse(data=RouteEvaluateResponse(channel=channel))
