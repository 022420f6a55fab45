"""Whole flows across namespace bootstrap, ingestion, locking and retrieval."""
import asyncio

import pytest

from services.rag_query.QueryService import NO_INFO_ANSWER
from shared.models.namespace import NamespaceState, build_namespace
from shared.models.search import SearchContext


class TestConnectIndexSearch:
    """A freshly connected store answers product questions from its own data."""

    @pytest.mark.asyncio
    async def test_product_question_after_first_sync(self, namespace_manager, rag_engine):
        bootstrap = await namespace_manager.create_namespaces("S1")
        status = await namespace_manager.get_namespace_status("S1")
        assert bootstrap.success
        assert {entry.state for entry in status.namespaces.values()} == {NamespaceState.PLACEHOLDER}

        synced = await rag_engine.index_tenant_data("S1")
        assert synced.documents_indexed == 7
        assert len(synced.namespaces_processed) == 4

        result = await rag_engine.search("what products do I have", SearchContext(store_id="S1", agent_role="product"))

        assert result.metadata.agent_role == "product_manager"
        assert result.metadata.query_type == "product_query"
        assert result.metadata.namespaces_searched == [
            build_namespace("S1", "products"), build_namespace("S1", "store"), build_namespace("S1", "analytics"),
        ]
        assert sorted(source.id for source in result.sources) == ["products-S1-p1-0", "products-S1-p2-0", "products-S1-p3-0"]
        assert all(source.namespace == build_namespace("S1", "products") for source in result.sources)
        assert result.confidence == 0.95
        for name in ("Red Mug", "Blue Teapot", "Green Kettle"):
            assert name in result.answer

        status = await namespace_manager.get_namespace_status("S1")
        assert status.namespaces["products"].state == NamespaceState.INDEXED
        assert status.namespaces["orders"].state == NamespaceState.PLACEHOLDER
        assert status.warnings == []

    @pytest.mark.asyncio
    async def test_other_store_sees_nothing(self, namespace_manager, rag_engine, tenant_client, llm_client):
        tenant_client.add("S2", platform_store_id="9002", access_token="good-token")
        await namespace_manager.create_namespaces("S2")
        await rag_engine.index_tenant_data("S1")

        result = await rag_engine.search("what products do I have", SearchContext(store_id="S2", agent_role="product"))

        assert result.answer == NO_INFO_ANSWER
        assert result.sources == []
        assert llm_client.calls == []

    @pytest.mark.asyncio
    async def test_search_after_deletion(self, lifecycle_service, namespace_manager, rag_engine):
        await namespace_manager.create_namespaces("S1")
        await rag_engine.index_tenant_data("S1")

        await lifecycle_service.on_deleted("S1")
        result = await rag_engine.search("what products do I have", SearchContext(store_id="S1", agent_role="product"))

        assert result.answer == NO_INFO_ANSWER


class TestCompetingSyncs:
    """Background and manual syncs of one store never overlap."""

    @pytest.mark.asyncio
    async def test_manual_sync_waits_its_turn(self, namespace_manager, catalog, lock_manager):
        catalog.delay = 0.02
        background = asyncio.create_task(namespace_manager.trigger_background_sync("S1"))
        await asyncio.sleep(0.005)

        denied = await namespace_manager.trigger_sync("S1")
        assert not denied.success
        assert "BACKGROUND_SYNC" in denied.error

        assert (await background).success
        granted = await namespace_manager.trigger_sync("S1")
        assert granted.success
        assert catalog.fetch_counts["products"] == 2
        assert lock_manager.get_tenant_leases("S1") == []

    @pytest.mark.asyncio
    async def test_manual_sync_with_wait(self, namespace_manager, catalog):
        catalog.delay = 0.02
        background = asyncio.create_task(namespace_manager.trigger_background_sync("S1"))
        await asyncio.sleep(0.005)

        manual = await namespace_manager.trigger_sync("S1", wait_timeout=5)

        assert (await background).success
        assert manual.success
        assert catalog.fetch_counts["products"] == 2
