from unittest.mock import AsyncMock, MagicMock

import pytest

from services.rag_query.ConversationMemory import ConversationMemory
from services.rag_query.QueryService import (
    APOLOGY_ANSWER,
    NO_INFO_ANSWER,
    QueryService,
    classify_query,
    compute_confidence,
    get_data_types_for_role,
    normalize_role,
)
from shared.models.document import ChunkMetadata, DocumentChunk
from shared.models.namespace import DataType, build_namespace
from shared.models.search import SearchContext, SearchOptions


def make_chunk(doc_id: str, data_type: str, is_placeholder: bool = False) -> DocumentChunk:
    return DocumentChunk(
        id=doc_id,
        content=f"content of {doc_id}",
        metadata=ChunkMetadata(
            type=data_type,
            store_id="S1",
            source="commerce_api",
            timestamp="2026-01-01T00:00:00+00:00",
            is_placeholder=is_placeholder,
        ),
    )


class StubStore:
    """Namespace handle returning canned hits, best first."""

    def __init__(self, data_type: DataType, scores: list[float], fail: bool = False) -> None:
        self.data_type = data_type
        self.namespace = build_namespace("S1", data_type)
        self.hits = [(make_chunk(f"{data_type.value}-{index}", data_type.value), score) for index, score in enumerate(scores)]
        self.fail = fail
        self.requested_k: list[int] = []

    async def similarity_search_by_vector(self, vector, k):
        self.requested_k.append(k)
        if self.fail:
            raise RuntimeError(f"{self.namespace} unavailable")
        return self.hits[:k]


@pytest.fixture
def stores() -> dict[DataType, StubStore]:
    return {data_type: StubStore(data_type, []) for data_type in DataType}


@pytest.fixture
def query_service(helper_config, stores, embed_client, llm_client) -> QueryService:
    store_cache = MagicMock()
    store_cache.get.side_effect = lambda store_id, data_type: stores[DataType(data_type)]
    return QueryService(helper_config, store_cache, embed_client, llm_client, ConversationMemory(helper_config))


CONTEXT = SearchContext(store_id="S1", agent_role="orchestrator")


class TestMerge:
    """Hits from several namespaces are ranked by score across namespaces."""

    @pytest.mark.asyncio
    async def test_top_k_is_global(self, query_service, stores):
        stores[DataType.PRODUCTS] = StubStore(DataType.PRODUCTS, [0.9] * 5)
        stores[DataType.ORDERS] = StubStore(DataType.ORDERS, [0.95])
        options = SearchOptions(top_k=3, score_threshold=0.5, data_types=["products", "orders"])

        result = await query_service.search("how are sales", CONTEXT, options)

        assert [source.score for source in result.sources] == [0.95, 0.9, 0.9]
        assert result.sources[0].namespace == build_namespace("S1", "orders")
        assert stores[DataType.PRODUCTS].requested_k == [2]
        assert result.metadata.documents_found == 3

    @pytest.mark.asyncio
    async def test_threshold_filters_each_namespace(self, query_service, stores):
        stores[DataType.PRODUCTS] = StubStore(DataType.PRODUCTS, [0.8, 0.6])
        stores[DataType.STORE] = StubStore(DataType.STORE, [0.74])
        options = SearchOptions(top_k=6, score_threshold=0.75, data_types=["products", "store"])

        result = await query_service.search("product list", CONTEXT, options)

        assert [source.score for source in result.sources] == [0.8]

    @pytest.mark.asyncio
    async def test_placeholder_hits_are_skipped(self, query_service, stores):
        placeholder = StubStore(DataType.PRODUCTS, [])
        placeholder.hits = [(make_chunk("placeholder-S1-products", "products", is_placeholder=True), 0.99)]
        stores[DataType.PRODUCTS] = placeholder
        stores[DataType.STORE] = StubStore(DataType.STORE, [0.9])

        result = await query_service.search("product", CONTEXT, SearchOptions(data_types=["products", "store"]))

        assert [source.id for source in result.sources] == ["store-0"]

    @pytest.mark.asyncio
    async def test_one_failing_namespace_is_tolerated(self, query_service, stores):
        stores[DataType.PRODUCTS] = StubStore(DataType.PRODUCTS, [], fail=True)
        stores[DataType.STORE] = StubStore(DataType.STORE, [0.9])

        result = await query_service.search("store info", CONTEXT, SearchOptions(data_types=["products", "store"]))

        assert result.metadata.query_type != "error"
        assert len(result.sources) == 1

    @pytest.mark.asyncio
    async def test_query_is_embedded_once(self, query_service, embed_client, stores):
        for data_type in (DataType.PRODUCTS, DataType.ORDERS, DataType.STORE, DataType.ANALYTICS):
            stores[data_type] = StubStore(data_type, [0.9])
        await query_service.search("product sales", CONTEXT)
        assert embed_client.embed_calls == [["product sales"]]


class TestNeverRaises:
    """search() always returns a well-formed result."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   ", "x" * 100_000, "¿Cuántos productos tengo? 🚀"])
    async def test_odd_queries(self, query_service, query):
        result = await query_service.search(query, CONTEXT)
        assert isinstance(result.answer, str) and result.answer
        assert 0.0 <= result.confidence <= 1.0
        assert result.metadata.store_id == "S1"

    @pytest.mark.asyncio
    async def test_embedding_failure(self, query_service, embed_client, llm_client):
        embed_client.fail = True

        result = await query_service.search("products", CONTEXT)

        assert result.answer == APOLOGY_ANSWER
        assert result.confidence == 0.0
        assert result.metadata.query_type == "error"
        assert llm_client.calls == []

    @pytest.mark.asyncio
    async def test_every_namespace_fails(self, query_service, stores):
        for data_type in DataType:
            stores[data_type] = StubStore(data_type, [], fail=True)
        result = await query_service.search("products", CONTEXT)
        assert result.answer == APOLOGY_ANSWER
        assert result.metadata.query_type == "error"

    @pytest.mark.asyncio
    async def test_llm_failure(self, query_service, stores, llm_client):
        stores[DataType.PRODUCTS] = StubStore(DataType.PRODUCTS, [0.9])
        llm_client.do_chat = AsyncMock(side_effect=TimeoutError("llm timed out"))
        result = await query_service.search("products", CONTEXT)
        assert result.answer == APOLOGY_ANSWER
        assert result.sources == []

    @pytest.mark.asyncio
    async def test_unknown_data_type(self, query_service):
        result = await query_service.search("products", CONTEXT, SearchOptions(data_types=["invoices"]))
        assert result.metadata.query_type == "error"


class TestNoInformation:
    """Nothing above the threshold means no language model call."""

    @pytest.mark.asyncio
    async def test_no_hits(self, query_service, llm_client):
        result = await query_service.search("what products do I have", CONTEXT)

        assert result.answer == NO_INFO_ANSWER
        assert result.confidence == 0.1
        assert result.sources == []
        assert result.metadata.query_type == "product_query"
        assert llm_client.calls == []

    @pytest.mark.asyncio
    async def test_hits_below_threshold(self, query_service, stores, llm_client):
        stores[DataType.PRODUCTS] = StubStore(DataType.PRODUCTS, [0.3, 0.2])
        result = await query_service.search("products", CONTEXT)
        assert result.answer == NO_INFO_ANSWER
        assert llm_client.calls == []


class TestAnswer:
    """The language model sees the merged context and the conversation."""

    @pytest.mark.asyncio
    async def test_confidence_from_scores(self, query_service, stores):
        stores[DataType.PRODUCTS] = StubStore(DataType.PRODUCTS, [0.78])
        result = await query_service.search("products", CONTEXT)
        assert result.confidence == pytest.approx(0.78 * 1.2)
        assert "products-0" in result.answer

    @pytest.mark.asyncio
    async def test_conversation_history_is_sent(self, query_service, stores, llm_client):
        stores[DataType.PRODUCTS] = StubStore(DataType.PRODUCTS, [0.9])
        context = SearchContext(store_id="S1", agent_role="product", conversation_id="conv-1")

        first = await query_service.search("Which mugs do I sell?", context)
        await query_service.search("And their prices?", context)

        second_messages = llm_client.calls[1]
        assert second_messages[1] == {"role": "user", "content": "Which mugs do I sell?"}
        assert second_messages[2] == {"role": "assistant", "content": first.answer}
        assert second_messages[-1] == {"role": "user", "content": "And their prices?"}

    @pytest.mark.asyncio
    async def test_no_history_without_conversation_id(self, query_service, stores, llm_client):
        stores[DataType.PRODUCTS] = StubStore(DataType.PRODUCTS, [0.9])
        await query_service.search("products", CONTEXT)
        await query_service.search("products again", CONTEXT)
        assert len(llm_client.calls[1]) == 2

    @pytest.mark.asyncio
    async def test_role_in_system_prompt(self, query_service, stores, llm_client):
        stores[DataType.CUSTOMERS] = StubStore(DataType.CUSTOMERS, [0.9])
        result = await query_service.search("customer list", SearchContext(store_id="S1", agent_role="Customer-Service"))
        assert "customer_service" in llm_client.calls[0][0]["content"]
        assert result.metadata.agent_role == "customer_service"


class TestRoles:
    """Agent roles select namespaces."""

    def test_role_map(self):
        assert get_data_types_for_role("product_manager") == [DataType.PRODUCTS, DataType.STORE, DataType.ANALYTICS]
        assert get_data_types_for_role("analytics") == [DataType.ORDERS, DataType.ANALYTICS, DataType.CUSTOMERS, DataType.PRODUCTS]
        assert get_data_types_for_role("customer_service") == [DataType.CUSTOMERS, DataType.ORDERS, DataType.CONVERSATIONS, DataType.PRODUCTS]
        assert get_data_types_for_role("marketing") == [DataType.CUSTOMERS, DataType.ANALYTICS, DataType.PRODUCTS]
        assert get_data_types_for_role("orchestrator") == [DataType.PRODUCTS, DataType.ORDERS, DataType.STORE, DataType.ANALYTICS]

    def test_unknown_role_uses_default(self):
        assert get_data_types_for_role("intern") == [DataType.PRODUCTS, DataType.STORE, DataType.ORDERS]

    @pytest.mark.parametrize("raw,expected", [
        ("product", "product_manager"),
        ("Product-Manager", "product_manager"),
        ("customer", "customer_service"),
        ("sales", "analytics"),
        (None, "orchestrator"),
        ("  Marketing ", "marketing"),
    ])
    def test_normalize_role(self, raw, expected):
        assert normalize_role(raw) == expected

    def test_explicit_data_types_override_role(self):
        assert get_data_types_for_role("marketing", ["orders", "ORDERS", "store"]) == [DataType.ORDERS, DataType.STORE]

    def test_unknown_data_type_raises(self):
        with pytest.raises(ValueError):
            get_data_types_for_role("marketing", ["invoices"])


class TestHelpers:
    """Query classification and confidence scaling."""

    @pytest.mark.parametrize("query,expected", [
        ("what products do I have", "product_query"),
        ("how many orders last week", "sales_query"),
        ("who is my best customer", "customer_query"),
        ("show me the monthly metrics", "analytics_query"),
        ("hello", "general_query"),
    ])
    def test_classify_query(self, query, expected):
        assert classify_query(query) == expected

    def test_confidence_bounds(self):
        assert compute_confidence([]) == 0.1
        assert compute_confidence([0.01]) == 0.1
        assert compute_confidence([0.99, 0.98]) == 0.95
        assert compute_confidence([0.5, 0.7]) == pytest.approx(0.72)


class TestConversationMemory:
    """Bounded, expiring conversation history."""

    def test_turns_are_scoped_per_store(self, helper_config, clock):
        memory = ConversationMemory(helper_config, clock=clock)
        memory.add_turn("S1", "conv", "q1", "a1")
        assert memory.get_messages("S2", "conv") == []
        assert memory.get_messages("S1", "conv") == [
            {"role": "user", "content": "q1"},
            {"role": "assistant", "content": "a1"},
        ]

    def test_idle_conversation_expires(self, helper_config, clock, monkeypatch):
        monkeypatch.setenv("RAG_MEMORY_TTL_SECONDS", "60")
        memory = ConversationMemory(helper_config, clock=clock)
        memory.add_turn("S1", "conv", "q1", "a1")

        clock.advance(61)

        assert memory.get_messages("S1", "conv") == []
        assert len(memory) == 0

    def test_least_recently_used_is_evicted(self, helper_config, clock, monkeypatch):
        monkeypatch.setenv("RAG_MEMORY_MAX_CONVERSATIONS", "2")
        memory = ConversationMemory(helper_config, clock=clock)
        memory.add_turn("S1", "a", "q", "a")
        memory.add_turn("S1", "b", "q", "a")
        memory.get_messages("S1", "a")

        memory.add_turn("S1", "c", "q", "a")

        assert memory.get_messages("S1", "b") == []
        assert memory.get_messages("S1", "a")
        assert memory.get_messages("S1", "c")

    def test_keeps_latest_turns(self, helper_config, clock, monkeypatch):
        monkeypatch.setenv("RAG_MEMORY_MAX_TURNS", "2")
        memory = ConversationMemory(helper_config, clock=clock)
        for index in range(3):
            memory.add_turn("S1", "conv", f"q{index}", f"a{index}")
        assert [message["content"] for message in memory.get_messages("S1", "conv")] == ["q1", "a1", "q2", "a2"]

    def test_clear_store(self, helper_config):
        memory = ConversationMemory(helper_config)
        memory.add_turn("S1", "a", "q", "a")
        memory.add_turn("S1", "b", "q", "a")
        memory.add_turn("S2", "a", "q", "a")
        assert memory.clear_store("S1") == 2
        assert len(memory) == 1
