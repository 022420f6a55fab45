"""Facade over ingestion and retrieval.

Owns the per-namespace store handle cache and the conversation memory, and
boots the embedding, vector store and language model clients on first use.
"""

import asyncio

from services.credentials.TokenManager import TokenManager
from services.rag_query.ConversationMemory import ConversationMemory
from services.rag_query.QueryService import QueryService
from services.store_rag_sync.DocumentProcessor import DocumentProcessor
from services.store_rag_sync.SyncService import SyncService
from shared.clients.commerce.CommerceClientManager import CommerceClientManager
from shared.clients.tenant.TenantClientInterface import TenantClientInterface
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.rag.NamespacedStore import NamespacedStore, NamespacedStoreCache
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.namespace import DataType
from shared.models.search import SearchContext, SearchOptions, UnifiedRAGResult
from shared.models.sync import SyncResult


class RAGEngine:
    def __init__(
        self,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        embed_client: EmbedClientInterface,
        llm_client: LLMClientInterface,
        store_cache: NamespacedStoreCache,
        memory: ConversationMemory,
        sync_service: SyncService,
        query_service: QueryService,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._rag_client = rag_client
        self._embed_client = embed_client
        self._llm_client = llm_client
        self.store_cache = store_cache
        self.memory = memory
        self._sync_service = sync_service
        self._query_service = query_service

        self._ready = False
        self._ready_lock = asyncio.Lock()

    @classmethod
    def create(
        cls,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        embed_client: EmbedClientInterface,
        llm_client: LLMClientInterface,
        commerce_manager: CommerceClientManager,
        tenant_client: TenantClientInterface,
        token_manager: TokenManager,
    ) -> "RAGEngine":
        """Wire an engine with its own store cache, memory, sync and query services."""
        store_cache = NamespacedStoreCache(
            rag_client=rag_client,
            embed_client=embed_client,
            max_size=int(helper_config.get_number_val("RAG_STORE_CACHE_SIZE", default=256)),
            upsert_batch_size=int(helper_config.get_number_val("SYNC_UPSERT_BATCH_SIZE", default=100)),
        )
        memory = ConversationMemory(helper_config)
        sync_service = SyncService(
            helper_config=helper_config,
            store_cache=store_cache,
            document_processor=DocumentProcessor(helper_config),
            commerce_manager=commerce_manager,
            tenant_client=tenant_client,
            token_manager=token_manager,
        )
        query_service = QueryService(
            helper_config=helper_config,
            store_cache=store_cache,
            embed_client=embed_client,
            llm_client=llm_client,
            memory=memory,
        )
        return cls(
            helper_config=helper_config,
            rag_client=rag_client,
            embed_client=embed_client,
            llm_client=llm_client,
            store_cache=store_cache,
            memory=memory,
            sync_service=sync_service,
            query_service=query_service,
        )

    ##########################################
    ############## LIFECYCLE #################
    ##########################################

    def is_ready(self) -> bool:
        return self._ready

    async def ensure_ready(self) -> None:
        """Boot the clients and make sure the collection exists. Runs once.

        Raises:
            ClientRequestError: If the collection cannot be created.
            httpx.HTTPError: If a backend is unreachable.
        """
        if self._ready:
            return
        async with self._ready_lock:
            if self._ready:
                return
            await self._embed_client.boot()
            await self._rag_client.boot()
            await self._llm_client.boot()
            vector_size, distance = await self._embed_client.do_fetch_embedding_vector_size()
            await self._rag_client.do_ensure_collection(vector_size=vector_size, distance=distance)
            self._ready = True
            self.logging.info(
                "RAG engine ready (embed: %s, rag: %s, llm: %s, vector size %d).",
                self._embed_client.get_engine_name(), self._rag_client.get_engine_name(), self._llm_client.get_engine_name(), vector_size,
            )

    async def close(self) -> None:
        await self._embed_client.close()
        await self._rag_client.close()
        await self._llm_client.close()
        self._ready = False

    ##########################################
    ############### INGESTION ################
    ##########################################

    async def index_tenant_data(self, store_id: str, credential_hint: str | None = None) -> SyncResult:
        await self.ensure_ready()
        return await self._sync_service.index_tenant_data(store_id, credential_hint=credential_hint)

    ##########################################
    ############### RETRIEVAL ################
    ##########################################

    async def search(self, query: str, context: SearchContext, options: SearchOptions | None = None) -> UnifiedRAGResult:
        try:
            await self.ensure_ready()
        except Exception as e:
            self.logging.error("RAG engine could not start: %s", e)
        # a failed start surfaces as the search service's apology answer
        return await self._query_service.search(query, context, options)

    ##########################################
    ################ STORES ##################
    ##########################################

    async def get_vector_store(self, store_id: str, data_type: DataType) -> NamespacedStore:
        await self.ensure_ready()
        return self.store_cache.get(store_id, data_type)

    def evict_store(self, store_id: str) -> None:
        """Drop cached handles and conversations of a store, e.g. after deletion."""
        handles = self.store_cache.evict_store(store_id)
        conversations = self.memory.clear_store(store_id)
        self.logging.debug("Evicted %d store handle(s) and %d conversation(s) of store %s.", handles, conversations, store_id)
