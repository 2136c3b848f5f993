"""Execution record API routes."""

from fastapi import APIRouter, HTTPException

from pipealert.api.deps import ExecutionStoreDep
from pipealert.models.execution import ExecutionRecord
from pipealert.schemas.common import APIResponse

router = APIRouter(prefix="/executions", tags=["executions"])


@router.get("/{execution_id}", response_model=APIResponse[ExecutionRecord])
async def get_execution(
    execution_id: str,
    store: ExecutionStoreDep,
) -> APIResponse[ExecutionRecord]:
    """Get the accumulated state of a pipeline execution."""
    record = await store.get(execution_id)
    if not record:
        raise HTTPException(status_code=404, detail=f"Execution {execution_id} not found")
    return APIResponse(data=record)
