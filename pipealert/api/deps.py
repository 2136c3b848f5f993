"""API dependency injection."""

from typing import Annotated

from fastapi import Depends

from pipealert.messaging.handler import MessageHandler, get_message_handler
from pipealert.storage.execution_store import ExecutionStore
from pipealert.storage.redis_client import get_redis
from pipealert.storage.route_store import RouteStore


def get_execution_store() -> ExecutionStore:
    """Get execution store instance."""
    return ExecutionStore(get_redis())


def get_route_store() -> RouteStore:
    """Get route store instance."""
    return RouteStore(get_redis())


def get_handler() -> MessageHandler:
    """Get the shared message handler."""
    return get_message_handler()


# Type aliases for dependency injection
ExecutionStoreDep = Annotated[ExecutionStore, Depends(get_execution_store)]
RouteStoreDep = Annotated[RouteStore, Depends(get_route_store)]
MessageHandlerDep = Annotated[MessageHandler, Depends(get_handler)]
