"""Synchronisation service.

Pulls a store's current data from the commerce platform, turns every record
into chunks and writes them into the store's namespaces. The five data types
are fetched and indexed concurrently and fail independently.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable

import httpx

from services.credentials.TokenManager import TokenManager
from services.store_rag_sync.DocumentProcessor import DocumentProcessor
from shared.clients.commerce.CommerceClientInterface import CommerceClientInterface
from shared.clients.commerce.CommerceClientManager import CommerceClientManager
from shared.clients.rag.NamespacedStore import NamespacedStore, NamespacedStoreCache
from shared.clients.tenant.TenantClientInterface import TenantClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.credentials import Credential
from shared.models.document import DocumentChunk
from shared.models.errors import ClientRequestError, CredentialInvalidError
from shared.models.namespace import DataType, build_namespace, build_placeholder_id
from shared.models.sync import SyncResult

PRODUCTS_LIMIT = 200
ORDERS_LIMIT = 100
CUSTOMERS_LIMIT = 100
CONNECTIVITY_TIMEOUT = 10

INGESTED_TYPES = [DataType.STORE, DataType.PRODUCTS, DataType.ORDERS, DataType.CUSTOMERS, DataType.ANALYTICS]


class SyncService:
    """Orchestrates ingestion runs, at most one per store at a time."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store_cache: NamespacedStoreCache,
        document_processor: DocumentProcessor,
        commerce_manager: CommerceClientManager,
        tenant_client: TenantClientInterface,
        token_manager: TokenManager,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store_cache = store_cache
        self._processor = document_processor
        self._commerce_manager = commerce_manager
        self._tenant_client = tenant_client
        self._token_manager = token_manager

        self.products_limit = int(helper_config.get_number_val("SYNC_PRODUCTS_LIMIT", default=PRODUCTS_LIMIT))
        self.orders_limit = int(helper_config.get_number_val("SYNC_ORDERS_LIMIT", default=ORDERS_LIMIT))
        self.customers_limit = int(helper_config.get_number_val("SYNC_CUSTOMERS_LIMIT", default=CUSTOMERS_LIMIT))
        self.connectivity_timeout = float(helper_config.get_number_val("SYNC_CONNECTIVITY_TIMEOUT", default=CONNECTIVITY_TIMEOUT))

        # store_id -> running ingestion
        self._inflight: dict[str, asyncio.Task] = {}

    ##########################################
    ############### CORE SYNC ################
    ##########################################

    def is_indexing(self, store_id: str) -> bool:
        return store_id in self._inflight

    async def index_tenant_data(self, store_id: str, credential_hint: str | None = None) -> SyncResult:
        """Index all platform data of a store.

        Concurrent calls for the same store share one run: later callers await
        the running task and receive its result. A cancelled caller does not
        cancel the shared run.

        Args:
            store_id (str): The store to index.
            credential_hint (str | None): A freshly issued access token, e.g. from a reconnection.

        Returns:
            SyncResult: success=False only if no credential works or the platform is unreachable.
        """
        task = self._inflight.get(store_id)
        if task is None:
            task = asyncio.create_task(self._run_index(store_id, credential_hint), name=f"index-{store_id}")
            self._inflight[store_id] = task
            task.add_done_callback(lambda done, sid=store_id: self._forget_inflight(sid, done))
        else:
            self.logging.info("Ingestion for store %s already running, joining it.", store_id)
        return await asyncio.shield(task)

    def _forget_inflight(self, store_id: str, task: asyncio.Task) -> None:
        if self._inflight.get(store_id) is task:
            del self._inflight[store_id]

    async def _run_index(self, store_id: str, credential_hint: str | None) -> SyncResult:
        started = time.perf_counter()
        self.logging.info("Starting ingestion for store %s...", store_id)

        try:
            credential = await self._resolve_credential(store_id, credential_hint)
        except CredentialInvalidError as e:
            self.logging.error("Ingestion for store %s aborted: %s", store_id, e)
            return SyncResult(success=False, error=str(e), processing_time_ms=self._elapsed_ms(started))

        client = self._commerce_manager.create_client(credential)
        try:
            await client.boot()
            try:
                store_profile = await client.do_fetch_store(timeout=self.connectivity_timeout)
            except (ClientRequestError, httpx.HTTPError) as e:
                self.logging.error("Commerce platform unreachable for store %s: %s", store_id, e)
                return SyncResult(
                    success=False,
                    error="Could not connect to the commerce platform. Please try again later or reconnect the store.",
                    processing_time_ms=self._elapsed_ms(started),
                )

            counts = await self._ingest_all(store_id, client, store_profile)
        finally:
            await client.close()

        indexed_types = [data_type for data_type in INGESTED_TYPES if counts.get(data_type.value, 0) > 0]
        await self._remove_placeholders(store_id, indexed_types)
        await self._update_last_sync(store_id)

        result = SyncResult(
            success=True,
            documents_indexed=sum(counts.values()),
            namespaces_processed=[build_namespace(store_id, data_type) for data_type in indexed_types],
            processing_time_ms=self._elapsed_ms(started),
            counts_by_type=counts,
        )
        self.logging.info(
            "Ingestion complete for store %s: %d documents in %d namespaces (%dms).",
            store_id, result.documents_indexed, len(result.namespaces_processed), result.processing_time_ms,
        )
        return result

    ##########################################
    ############# CREDENTIALS ################
    ##########################################

    async def _resolve_credential(self, store_id: str, credential_hint: str | None) -> Credential:
        """
        Tries, in order: the token manager's validated credential, the caller's
        token paired with the tenant record, and the last token stored in the
        tenant record.

        Raises:
            CredentialInvalidError: If no tier yields a credential.
        """
        credential = await self._token_manager.get_valid_credential(store_id)
        if credential is not None:
            return credential

        try:
            record = await self._tenant_client.do_fetch_store(store_id)
        except (ClientRequestError, httpx.HTTPError) as e:
            self.logging.error("Could not load tenant record for store %s: %s", store_id, e)
            record = None

        if record is not None and record.platform_store_id:
            if credential_hint:
                self.logging.info("Using supplied credential for store %s.", store_id)
                return Credential(token=credential_hint, platform_store_id=record.platform_store_id, source="caller_hint")
            if record.access_token:
                self.logging.info("Falling back to stored credential for store %s.", store_id)
                return Credential(token=record.access_token, platform_store_id=record.platform_store_id, source="tenant_record")

        raise CredentialInvalidError(store_id)

    ##########################################
    ############### INGESTION ################
    ##########################################

    async def _ingest_all(self, store_id: str, client: CommerceClientInterface, store_profile: Any) -> dict[str, int]:
        async def fetch_store():
            return [store_profile]

        async def fetch_analytics():
            return [await client.do_fetch_store_analytics()]

        jobs: list[tuple[DataType, Callable[[], Awaitable[list]], Callable[[str, Any], list[DocumentChunk]]]] = [
            (DataType.STORE, fetch_store, self._processor.process_store),
            (DataType.PRODUCTS, lambda: client.do_fetch_products(limit=self.products_limit), self._processor.process_product),
            (DataType.ORDERS, lambda: client.do_fetch_orders(limit=self.orders_limit), self._processor.process_order),
            (DataType.CUSTOMERS, lambda: client.do_fetch_customers(limit=self.customers_limit), self._processor.process_customer),
            (DataType.ANALYTICS, fetch_analytics, self._processor.process_analytics),
        ]
        results = await asyncio.gather(
            *[self._ingest_type(store_id, data_type, fetch, process) for data_type, fetch, process in jobs],
            return_exceptions=True,
        )

        counts: dict[str, int] = {}
        for (data_type, _, _), result in zip(jobs, results):
            if isinstance(result, BaseException):
                self.logging.warning("Ingestion of %s for store %s failed: %s", data_type.value, store_id, result)
                counts[data_type.value] = 0
            else:
                counts[data_type.value] = result
        return counts

    async def _ingest_type(
        self,
        store_id: str,
        data_type: DataType,
        fetch: Callable[[], Awaitable[list]],
        process: Callable[[str, Any], list[DocumentChunk]],
    ) -> int:
        """Fetch, chunk and write one data type.

        Returns:
            int: Number of records written. Zero when the platform reports the
            feature as unavailable for this store.

        Raises:
            Exception: Any other fetch, embedding or write error, collected by gather().
        """
        try:
            records = await fetch()
        except ClientRequestError as e:
            if e.is_not_found:
                self.logging.info("No %s available for store %s (status %s).", data_type.value, store_id, e.status_code)
                return 0
            raise

        chunks: list[DocumentChunk] = []
        records_indexed = 0
        for record in records:
            record_chunks = process(store_id, record)
            if record_chunks:
                chunks.extend(record_chunks)
                records_indexed += 1
        if not chunks:
            self.logging.info("No %s documents to index for store %s.", data_type.value, store_id)
            return 0

        namespace_store = self._store_cache.get(store_id, data_type)
        await namespace_store.upsert(chunks)
        await self._prune_orphans(namespace_store, {chunk.id for chunk in chunks})
        self.logging.debug("Indexed %d %s records (%d chunks) for store %s.", records_indexed, data_type.value, len(chunks), store_id)
        return records_indexed

    ##########################################
    ############### CLEANUP ##################
    ##########################################

    async def _prune_orphans(self, namespace_store: NamespacedStore, fresh_ids: set[str]) -> None:
        """Delete chunks of records that no longer exist upstream. The placeholder is left to `_remove_placeholders`."""
        placeholder_id = build_placeholder_id(namespace_store.store_id, namespace_store.data_type)
        try:
            existing = await namespace_store.list_ids()
            stale = [doc_id for doc_id in existing if doc_id not in fresh_ids and doc_id != placeholder_id]
            if stale:
                await namespace_store.delete(stale)
                self.logging.info("Removed %d stale chunk(s) from %s.", len(stale), namespace_store.namespace)
        except (ClientRequestError, httpx.HTTPError) as e:
            self.logging.warning("Orphan cleanup failed for %s: %s", namespace_store.namespace, e)

    async def _remove_placeholders(self, store_id: str, data_types: list[DataType]) -> None:
        for data_type in data_types:
            namespace_store = self._store_cache.get(store_id, data_type)
            try:
                await namespace_store.delete([build_placeholder_id(store_id, data_type)])
            except (ClientRequestError, httpx.HTTPError) as e:
                self.logging.warning("Could not remove placeholder from %s: %s", namespace_store.namespace, e)

    async def _update_last_sync(self, store_id: str) -> None:
        try:
            await self._tenant_client.do_update_last_sync(store_id)
        except (ClientRequestError, httpx.HTTPError) as e:
            self.logging.warning("Could not update last sync time for store %s: %s", store_id, e)

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.perf_counter() - started) * 1000)
