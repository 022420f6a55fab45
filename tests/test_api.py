from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from server.routers.QueryRouter import router as query_router
from server.routers.StatusRouter import router as status_router
from server.routers.StoreRouter import router as store_router
from server.routers.UserRouter import router as user_router
from shared.models.locks import LockType
from shared.models.search import SearchContext, SearchMetadata, SearchOptions, UnifiedRAGResult
from shared.models.sync import LifecycleResult, SyncTriggerResult

HEADERS = {"X-Api-Key": "test-key"}


@pytest.fixture
def app(helper_config, lock_manager, monkeypatch) -> FastAPI:
    monkeypatch.setenv("APP_API_KEY", "test-key")
    app = FastAPI()
    for router in (query_router, store_router, user_router, status_router):
        app.include_router(router)

    app.state.helper_config = helper_config
    app.state.logging = helper_config.get_logger()
    app.state.lock_manager = lock_manager

    app.state.rag_engine = MagicMock()
    app.state.rag_engine.is_ready.return_value = True
    app.state.rag_engine.search = AsyncMock(return_value=UnifiedRAGResult(
        answer="You sell mugs.",
        confidence=0.9,
        processing_time_ms=12,
        metadata=SearchMetadata(
            query_type="product_query",
            agent_role="product_manager",
            documents_found=0,
            namespaces_searched=["tenant-S1-products"],
            store_id="S1",
            reasoning="test",
        ),
    ))

    app.state.namespace_manager = MagicMock()
    app.state.namespace_manager.active_timer_count.return_value = 2
    app.state.namespace_manager.trigger_sync = AsyncMock(return_value=SyncTriggerResult(success=True))

    app.state.lifecycle_service = MagicMock()
    app.state.lifecycle_service.on_deleted = AsyncMock(return_value=LifecycleResult(success=True, store_id="S1"))
    app.state.lifecycle_service.on_reconnected = AsyncMock(return_value=LifecycleResult(success=True, store_id="S1"))

    app.state.background_runner = MagicMock()
    app.state.background_runner.pending.return_value = 0
    app.state.background_runner.spawn.side_effect = lambda coro, name: coro.close()
    return app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


class TestAuth:
    def test_health_is_public(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["rag_engine_ready"] is True
        assert response.json()["active_periodic_syncs"] == 2

    def test_wrong_key(self, client):
        response = client.post("/stores/S1/sync", headers={"X-Api-Key": "nope"})
        assert response.status_code == 401

    def test_missing_key(self, client):
        assert client.get("/locks/status").status_code == 422


class TestQueryEndpoint:
    """POST /query forwards to the RAG engine."""

    def test_query(self, client, app):
        response = client.post("/query", headers=HEADERS, json={
            "query": "what products do I have",
            "store_id": "S1",
            "agent_role": "product",
            "conversation_id": "c1",
            "top_k": 4,
        })

        assert response.status_code == 200
        assert response.json()["answer"] == "You sell mugs."
        query, context, options = app.state.rag_engine.search.await_args.args
        assert query == "what products do I have"
        assert context == SearchContext(store_id="S1", agent_role="product", conversation_id="c1")
        assert options == SearchOptions(top_k=4)

    def test_unknown_data_type(self, client, app):
        response = client.post("/query", headers=HEADERS, json={"query": "q", "store_id": "S1", "data_types": ["invoices"]})
        assert response.status_code == 422
        app.state.rag_engine.search.assert_not_awaited()

    def test_top_k_bounds(self, client):
        response = client.post("/query", headers=HEADERS, json={"query": "q", "store_id": "S1", "top_k": 0})
        assert response.status_code == 422


class TestStoreEndpoints:
    """Lifecycle hooks and manual sync."""

    def test_sync_with_wait(self, client, app):
        response = client.post("/stores/S1/sync", headers=HEADERS, json={"wait_timeout": 2})
        assert response.status_code == 200
        assert response.json()["success"] is True
        app.state.namespace_manager.trigger_sync.assert_awaited_once_with("S1", wait_timeout=2.0)

    def test_sync_without_body(self, client, app):
        client.post("/stores/S1/sync", headers=HEADERS)
        app.state.namespace_manager.trigger_sync.assert_awaited_once_with("S1", wait_timeout=0.0)

    def test_reconnected(self, client, app):
        response = client.post("/stores/S1/reconnected", headers=HEADERS, json={"access_token": "fresh-token", "platform_store_id": "9001"})
        assert response.status_code == 200
        app.state.lifecycle_service.on_reconnected.assert_awaited_once_with("S1", "fresh-token", "9001")

    def test_reconnected_requires_token(self, client):
        response = client.post("/stores/S1/reconnected", headers=HEADERS, json={"access_token": ""})
        assert response.status_code == 422

    def test_delete(self, client, app):
        response = client.delete("/stores/S1", headers=HEADERS)
        assert response.status_code == 200
        app.state.lifecycle_service.on_deleted.assert_awaited_once_with("S1")


class TestUserAndLocks:
    def test_login_is_accepted(self, client, app):
        response = client.post("/users/u1/login", headers=HEADERS)
        assert response.status_code == 202
        assert response.json() == {"status": "accepted", "user_id": "u1"}
        assert app.state.background_runner.spawn.call_args.kwargs["name"] == "login-sync-u1"

    def test_lock_status(self, client, lock_manager):
        lock_manager.acquire("S1", LockType.MANUAL_SYNC, "manual_sync")
        response = client.get("/locks/status", headers=HEADERS)
        assert response.status_code == 200
        assert response.json()["total_leases"] == 1
        assert response.json()["leases_by_type"]["MANUAL_SYNC"] == 1
