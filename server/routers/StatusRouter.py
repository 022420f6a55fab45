import os

from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from server.models.responses import HealthResponse
from shared.models.locks import LockStatus

router = APIRouter(tags=["status"])


@router.get("/health")
async def health(request: Request) -> HealthResponse:
    """Liveness probe. Does not call any backend."""
    return HealthResponse(
        status="ok",
        version=os.getenv("APP_VERSION", "unknown"),
        rag_engine_ready=request.app.state.rag_engine.is_ready(),
        active_periodic_syncs=request.app.state.namespace_manager.active_timer_count(),
        pending_background_tasks=request.app.state.background_runner.pending(),
    )


@router.get("/locks/status", dependencies=[Depends(verify_api_key)])
async def lock_status(request: Request) -> LockStatus:
    return request.app.state.lock_manager.status()
