"""Store lifecycle hooks, manual sync and namespace status."""

from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import ReconnectRequest, SyncRequest
from shared.models.namespace import NamespaceStatus
from shared.models.sync import LifecycleResult, SyncTriggerResult

router = APIRouter(prefix="/stores", tags=["stores"], dependencies=[Depends(verify_api_key)])


@router.post("/{store_id}/connected")
async def store_connected(request: Request, store_id: str) -> LifecycleResult:
    """Bootstrap namespaces, schedule the periodic sync and start the initial sync."""
    return await request.app.state.lifecycle_service.on_connected(store_id)


@router.post("/{store_id}/reconnected")
async def store_reconnected(request: Request, store_id: str, body: ReconnectRequest) -> LifecycleResult:
    """Store the new credentials and re-index in the background."""
    return await request.app.state.lifecycle_service.on_reconnected(store_id, body.access_token, body.platform_store_id)


@router.post("/{store_id}/disconnected")
async def store_disconnected(request: Request, store_id: str) -> LifecycleResult:
    return await request.app.state.lifecycle_service.on_disconnected(store_id)


@router.delete("/{store_id}")
async def store_deleted(request: Request, store_id: str) -> LifecycleResult:
    """Clear all namespaces of the store. Pre-empts running syncs and reconnections."""
    return await request.app.state.lifecycle_service.on_deleted(store_id)


@router.post("/{store_id}/sync")
async def sync_store(request: Request, store_id: str, body: SyncRequest | None = None) -> SyncTriggerResult:
    """Run a manual sync.

    Args:
        request (Request): FastAPI request (provides app.state.namespace_manager).
        store_id (str): The store to sync.
        body (SyncRequest | None): Optional wait_timeout in seconds for a busy store.

    Returns:
        SyncTriggerResult: success=False with the conflict reason if the store is busy.
    """
    wait_timeout = body.wait_timeout if body else 0.0
    return await request.app.state.namespace_manager.trigger_sync(store_id, wait_timeout=wait_timeout)


@router.get("/{store_id}/namespaces")
async def namespace_status(request: Request, store_id: str) -> NamespaceStatus:
    return await request.app.state.namespace_manager.get_namespace_status(store_id)
