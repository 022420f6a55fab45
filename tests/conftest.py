"""
Pytest configuration and in-memory backends for the commerce RAG bridge.

The fakes implement just the client methods the services call, so whole
ingestion and retrieval flows run without network access.
"""
import asyncio
import logging
import math

import httpx
import pytest

from services.background.BackgroundTaskRunner import BackgroundTaskRunner
from services.credentials.TokenManager import TokenManager
from services.namespaces.NamespaceManager import NamespaceManager
from services.namespaces.StoreLifecycleService import StoreLifecycleService
from services.rag_engine.RAGEngine import RAGEngine
from services.rag_locks.LockManager import LockManager
from shared.clients.commerce.models.Analytics import StoreAnalytics
from shared.clients.commerce.models.Customer import Customer
from shared.clients.commerce.models.Product import Product
from shared.clients.commerce.models.Store import StoreProfile
from shared.clients.rag.models.Scroll import ScoredPoint
from shared.clients.tenant.models.TenantRecord import TenantRecord
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger
from shared.models.errors import ClientRequestError

pytest_plugins = ["pytest_asyncio"]

TOPICS = ["product", "order", "customer", "store", "analytics"]


##########################################
############### FAKE CLOCK ###############
##########################################

class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


##########################################
############# FAKE BACKENDS ##############
##########################################

class FakeEmbedClient:
    """One-hot embedder: a text points at the topic keyword it mentions first."""

    def __init__(self) -> None:
        self.embed_calls: list[list[str]] = []
        self.fail = False

    async def boot(self, transport=None) -> None:
        pass

    async def close(self) -> None:
        pass

    def get_engine_name(self) -> str:
        return "fake"

    @staticmethod
    def vectorize(text: str) -> list[float]:
        lowered = text.lower()
        positions = [(lowered.find(topic), index) for index, topic in enumerate(TOPICS) if topic in lowered]
        vector = [0.0] * (len(TOPICS) + 1)
        vector[min(positions)[1] if positions else len(TOPICS)] = 1.0
        return vector

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        if self.fail:
            raise httpx.ConnectError("embedding service down")
        texts = [texts] if isinstance(texts, str) else texts
        self.embed_calls.append(list(texts))
        return [self.vectorize(text) for text in texts]

    async def do_embed_one(self, text: str) -> list[float]:
        return (await self.do_embed([text]))[0]

    async def do_fetch_embedding_vector_size(self) -> tuple[int, str]:
        return len(TOPICS) + 1, "Cosine"


class FakeRAGClient:
    """In-memory vector store with namespace filtering and cosine scoring."""

    def __init__(self) -> None:
        self.points: dict[str, dict] = {}
        self.ensure_calls = 0
        self.fail_namespaces: set[str] = set()

    async def boot(self, transport=None) -> None:
        pass

    async def close(self) -> None:
        pass

    def get_engine_name(self) -> str:
        return "fake"

    async def do_healthcheck(self) -> httpx.Response:
        return httpx.Response(200)

    async def do_ensure_collection(self, vector_size: int, distance: str = "Cosine") -> bool:
        self.ensure_calls += 1
        return self.ensure_calls == 1

    def _in(self, namespace: str) -> list[dict]:
        if namespace in self.fail_namespaces:
            raise ClientRequestError("fake vector store error", status_code=500)
        return [point for point in self.points.values() if point["payload"]["namespace"] == namespace]

    async def do_upsert_points(self, points: list[dict]) -> httpx.Response:
        for point in points:
            self._in(point["payload"]["namespace"])
            self.points[point["id"]] = point
        return httpx.Response(200)

    async def do_search(self, namespace: str, vector: list[float], limit: int) -> list[ScoredPoint]:
        def cosine(a: list[float], b: list[float]) -> float:
            norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
            return sum(x * y for x, y in zip(a, b)) / norm if norm else 0.0

        hits = [
            ScoredPoint(id=point["id"], score=cosine(vector, point["vector"]), payload=point["payload"])
            for point in self._in(namespace)
        ]
        hits.sort(key=lambda hit: hit.score, reverse=True)
        return hits[:limit]

    async def do_count_namespace(self, namespace: str) -> int:
        return len(self._in(namespace))

    async def do_list_doc_ids(self, namespace: str) -> list[str]:
        return [point["payload"]["doc_id"] for point in self._in(namespace)]

    async def do_delete_points(self, namespace: str, doc_ids: list[str]) -> None:
        for point in self._in(namespace):
            if point["payload"]["doc_id"] in doc_ids:
                del self.points[point["id"]]

    async def do_delete_namespace(self, namespace: str) -> None:
        for point in self._in(namespace):
            del self.points[point["id"]]

    def doc_ids(self, namespace: str) -> list[str]:
        return sorted(point["payload"]["doc_id"] for point in self.points.values() if point["payload"]["namespace"] == namespace)


class FakeLLMClient:
    """Answers with the store context it was given, so tests can see what was retrieved."""

    def __init__(self) -> None:
        self.calls: list[list[dict]] = []

    async def boot(self, transport=None) -> None:
        pass

    async def close(self) -> None:
        pass

    def get_engine_name(self) -> str:
        return "fake"

    def get_client_type(self) -> str:
        return "llm"

    async def do_healthcheck(self) -> httpx.Response:
        return httpx.Response(200)

    async def do_chat(self, messages: list[dict]) -> str:
        self.calls.append(messages)
        return "Based on your store: " + messages[0]["content"].split("Store context:\n", 1)[-1]


##########################################
########### FAKE COMMERCE API ############
##########################################

class FakeCatalog:
    """Upstream data shared by every fake commerce client."""

    def __init__(self) -> None:
        self.store = StoreProfile(id="9001", name="Acme Shop", currency="USD", country="AR")
        self.products = [
            Product(id="p1", name="Red Mug", variants=[{"price": "10.00", "stock": 4}]),
            Product(id="p2", name="Blue Teapot", variants=[{"price": "25.00", "stock": 1}]),
            Product(id="p3", name="Green Kettle", variants=[{"price": "40.00", "stock": 0}]),
        ]
        self.orders: list | Exception = ClientRequestError("orders disabled", status_code=404)
        self.customers = [
            Customer(id="c1", name="Ana Lopez", email="ana@example.com"),
            Customer(id="c2", name="Bruno Diaz", email="bruno@example.com"),
        ]
        self.analytics = StoreAnalytics(generated_at="2026-01-01T00:00:00+00:00", currency="USD")
        self.valid_tokens = {"good-token", "fresh-token"}
        self.store_unreachable = False
        self.fetch_counts: dict[str, int] = {}
        self.delay = 0.0


class FakeCommerceClient:
    def __init__(self, catalog: FakeCatalog, credential) -> None:
        self._catalog = catalog
        self.credential = credential

    async def boot(self, transport=None) -> None:
        pass

    async def close(self) -> None:
        pass

    def _count(self, name: str) -> None:
        self._catalog.fetch_counts[name] = self._catalog.fetch_counts.get(name, 0) + 1

    async def _result(self, name: str, value):
        self._count(name)
        if self._catalog.delay:
            await asyncio.sleep(self._catalog.delay)
        if isinstance(value, Exception):
            raise value
        return value

    async def do_fetch_store(self, timeout: float | None = None) -> StoreProfile:
        if self.credential.token not in self._catalog.valid_tokens:
            raise ClientRequestError("unauthorized", status_code=401)
        if self._catalog.store_unreachable:
            raise httpx.ConnectTimeout("platform timed out")
        return await self._result("store", self._catalog.store)

    async def do_fetch_products(self, limit: int = 200) -> list[Product]:
        return await self._result("products", self._catalog.products)

    async def do_fetch_orders(self, limit: int = 100, params: dict | None = None) -> list:
        return await self._result("orders", self._catalog.orders)

    async def do_fetch_customers(self, limit: int = 100) -> list[Customer]:
        return await self._result("customers", self._catalog.customers)

    async def do_fetch_store_analytics(self, now=None) -> StoreAnalytics:
        return await self._result("analytics", self._catalog.analytics)


class FakeCommerceManager:
    def __init__(self, catalog: FakeCatalog) -> None:
        self.catalog = catalog
        self.credentials: list = []

    def create_client(self, credential) -> FakeCommerceClient:
        self.credentials.append(credential)
        return FakeCommerceClient(self.catalog, credential)


##########################################
########### FAKE TENANT STORE ############
##########################################

class FakeTenantClient:
    def __init__(self) -> None:
        self.records: dict[str, TenantRecord] = {}
        self.last_sync_updates: list[str] = []

    async def boot(self, transport=None) -> None:
        pass

    async def close(self) -> None:
        pass

    def get_engine_name(self) -> str:
        return "fake"

    def get_client_type(self) -> str:
        return "tenant"

    async def do_healthcheck(self) -> httpx.Response:
        return httpx.Response(200)

    def add(self, store_id: str, **values) -> TenantRecord:
        record = TenantRecord(id=store_id, **values)
        self.records[store_id] = record
        return record

    async def do_fetch_store(self, store_id: str) -> TenantRecord | None:
        return self.records.get(store_id)

    async def do_fetch_active_stores(self) -> list[TenantRecord]:
        return [record for record in self.records.values() if record.is_active]

    async def do_fetch_active_stores_for_user(self, user_id: str) -> list[TenantRecord]:
        return [record for record in self.records.values() if record.is_active and record.user_id == user_id]

    async def do_update_last_sync(self, store_id: str, synced_at=None) -> TenantRecord | None:
        self.last_sync_updates.append(store_id)
        return self.records.get(store_id)

    async def do_update_credentials(self, store_id: str, access_token: str, platform_store_id: str | None = None) -> TenantRecord | None:
        record = self.records.get(store_id) or self.add(store_id)
        record.access_token = access_token
        if platform_store_id:
            record.platform_store_id = platform_store_id
        return record

    async def do_set_active(self, store_id: str, active: bool) -> TenantRecord | None:
        record = self.records.get(store_id)
        if record is not None:
            record.is_active = active
        return record


##########################################
############### FIXTURES #################
##########################################

@pytest.fixture(autouse=True)
def fast_timings(monkeypatch):
    monkeypatch.setenv("NAMESPACE_CREATE_DELAY", "0")
    monkeypatch.setenv("LOCK_POLL_INTERVAL", "0.01")
    monkeypatch.setenv("SYNC_INTERVAL_SECONDS", "3600")


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=ColorLogger(logging.getLogger("tests")))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def embed_client() -> FakeEmbedClient:
    return FakeEmbedClient()


@pytest.fixture
def rag_client() -> FakeRAGClient:
    return FakeRAGClient()


@pytest.fixture
def llm_client() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def commerce_manager(catalog) -> FakeCommerceManager:
    return FakeCommerceManager(catalog)


@pytest.fixture
def tenant_client() -> FakeTenantClient:
    client = FakeTenantClient()
    client.add("S1", user_id="u1", name="Acme", platform_store_id="9001", access_token="good-token")
    return client


@pytest.fixture
def token_manager(helper_config, tenant_client, commerce_manager) -> TokenManager:
    return TokenManager(helper_config, tenant_client, commerce_manager)


@pytest.fixture
def lock_manager(helper_config, clock) -> LockManager:
    return LockManager(helper_config, clock=clock)


@pytest.fixture
def rag_engine(helper_config, rag_client, embed_client, llm_client, commerce_manager, tenant_client, token_manager) -> RAGEngine:
    return RAGEngine.create(
        helper_config=helper_config,
        rag_client=rag_client,
        embed_client=embed_client,
        llm_client=llm_client,
        commerce_manager=commerce_manager,
        tenant_client=tenant_client,
        token_manager=token_manager,
    )


@pytest.fixture
def namespace_manager(helper_config, lock_manager, rag_engine) -> NamespaceManager:
    return NamespaceManager(helper_config, lock_manager, rag_engine)


@pytest.fixture
def background_runner(helper_config) -> BackgroundTaskRunner:
    return BackgroundTaskRunner(helper_config)


@pytest.fixture
def lifecycle_service(helper_config, lock_manager, namespace_manager, rag_engine, tenant_client, background_runner) -> StoreLifecycleService:
    return StoreLifecycleService(
        helper_config=helper_config,
        lock_manager=lock_manager,
        namespace_manager=namespace_manager,
        rag_engine=rag_engine,
        tenant_client=tenant_client,
        background_runner=background_runner,
    )
