"""Composition root shared by the API server and the command line runner."""

import httpx

from services.background.BackgroundTaskRunner import BackgroundTaskRunner
from services.credentials.TokenManager import TokenManager
from services.namespaces.NamespaceManager import NamespaceManager
from services.namespaces.StoreLifecycleService import StoreLifecycleService
from services.rag_engine.RAGEngine import RAGEngine
from services.rag_locks.LockManager import LockManager
from shared.clients.commerce.CommerceClientManager import CommerceClientManager
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.tenant.TenantClientManager import TenantClientManager
from shared.helper.HelperConfig import HelperConfig


class ServiceContainer:
    """
    Builds one instance of every client and service. Backend clients are
    booted lazily by the RAG engine; only the tenant client is booted here.
    """

    def __init__(self, helper_config: HelperConfig) -> None:
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()

        self.embed_client = EmbedClientManager(helper_config=helper_config).get_client()
        self.rag_client = RAGClientManager(helper_config=helper_config).get_client()
        self.llm_client = LLMClientManager(helper_config=helper_config).get_client()
        self.tenant_client = TenantClientManager(helper_config=helper_config).get_client()
        self.commerce_manager = CommerceClientManager(helper_config=helper_config)

        self.token_manager = TokenManager(helper_config, self.tenant_client, self.commerce_manager)
        self.lock_manager = LockManager(helper_config)
        self.background_runner = BackgroundTaskRunner(helper_config)
        self.rag_engine = RAGEngine.create(
            helper_config=helper_config,
            rag_client=self.rag_client,
            embed_client=self.embed_client,
            llm_client=self.llm_client,
            commerce_manager=self.commerce_manager,
            tenant_client=self.tenant_client,
            token_manager=self.token_manager,
        )
        self.namespace_manager = NamespaceManager(helper_config, self.lock_manager, self.rag_engine)
        self.lifecycle_service = StoreLifecycleService(
            helper_config=helper_config,
            lock_manager=self.lock_manager,
            namespace_manager=self.namespace_manager,
            rag_engine=self.rag_engine,
            tenant_client=self.tenant_client,
            background_runner=self.background_runner,
        )

    async def boot(self) -> None:
        await self.tenant_client.boot()

    async def check_connections(self) -> None:
        """Check connectivity to all configured backends.

        Tenant store and LLM failures are non-fatal (the affected features fail
        later, but the process stays up). The vector store and embedding
        service are required for everything else.

        Raises:
            Exception: If the vector store or the embedding service is not reachable.
        """
        await self.rag_engine.ensure_ready()

        for client in (self.tenant_client, self.llm_client):
            try:
                result: httpx.Response = await client.do_healthcheck()
                if not result.is_success:
                    self.logging.warning(
                        "%s client '%s' is not reachable (status %d).",
                        client.get_client_type().upper(), client.get_engine_name(), result.status_code,
                    )
            except httpx.HTTPError as e:
                self.logging.warning("%s client '%s' is not reachable: %s", client.get_client_type().upper(), client.get_engine_name(), e)

        result = await self.rag_client.do_healthcheck()
        if not result.is_success:
            raise Exception(f"RAG client '{self.rag_client.get_engine_name()}' is not reachable (status {result.status_code}).")

    async def schedule_active_stores(self) -> int:
        """Re-arm the periodic sync of every active store, e.g. after a restart."""
        stores = await self.tenant_client.do_fetch_active_stores()
        for store in stores:
            self.namespace_manager.schedule_periodic_sync(store.id)
        return len(stores)

    async def close(self) -> None:
        await self.namespace_manager.cleanup()
        await self.background_runner.shutdown()
        await self.rag_engine.close()
        await self.tenant_client.close()
