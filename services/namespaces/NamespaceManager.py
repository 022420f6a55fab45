"""Namespace lifecycle and scheduled refresh for stores.

Bootstraps a store's six namespaces with placeholder documents, clears them
on deletion and runs one periodic sync loop per store. Every sync goes
through the lock manager.
"""

import asyncio

from services.rag_engine.RAGEngine import RAGEngine
from services.rag_locks.LockManager import LockManager
from services.store_rag_sync.DocumentProcessor import DocumentProcessor
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import NamespaceBootstrapError
from shared.models.locks import LockType
from shared.models.namespace import (
    ALL_DATA_TYPES,
    DataType,
    NamespaceState,
    NamespaceStatus,
    NamespaceTypeStatus,
    build_namespace,
    build_placeholder_id,
    parse_data_types,
)
from shared.models.sync import NamespaceOperationResult, SyncTriggerResult

ESSENTIAL_TYPES = ["store", "products"]
CREATE_DELAY = 0.5
SYNC_INTERVAL = 300


class NamespaceManager:
    def __init__(self, helper_config: HelperConfig, lock_manager: LockManager, rag_engine: RAGEngine) -> None:
        self.logging = helper_config.get_logger()
        self._lock_manager = lock_manager
        self._rag_engine = rag_engine

        self.essential_types: list[DataType] = parse_data_types(helper_config.get_list_val("NAMESPACE_ESSENTIAL_TYPES", default=ESSENTIAL_TYPES))
        self.create_delay = float(helper_config.get_number_val("NAMESPACE_CREATE_DELAY", default=CREATE_DELAY))
        self.sync_interval = float(helper_config.get_number_val("SYNC_INTERVAL_SECONDS", default=SYNC_INTERVAL))

        # store_id -> periodic sync loop
        self._timers: dict[str, asyncio.Task] = {}
        self._bootstrapping: set[str] = set()
        self._deleted: set[str] = set()
        # store_id -> number of deletions, lets in-flight work detect a deletion that landed meanwhile
        self._deletion_generations: dict[str, int] = {}

    ##########################################
    ############### NAMESPACES ###############
    ##########################################

    async def create_namespaces(self, store_id: str) -> NamespaceOperationResult:
        """Write a placeholder into every namespace of the store that is still empty.

        Safe to repeat: namespaces that already hold documents are left alone.
        Per-type failures are tolerated as long as one essential type
        (NAMESPACE_ESSENTIAL_TYPES) is available afterwards.

        Args:
            store_id (str): The store to bootstrap.

        Returns:
            NamespaceOperationResult: existing, created and failed types, success=False
            if no essential type is available.
        """
        existing: list[str] = []
        created: list[str] = []
        failed: dict[str, str] = {}

        self._bootstrapping.add(store_id)
        self._deleted.discard(store_id)
        try:
            for data_type in ALL_DATA_TYPES:
                try:
                    namespace_store = await self._rag_engine.get_vector_store(store_id, data_type)
                    if await namespace_store.count() > 0:
                        existing.append(data_type.value)
                        continue
                    if created and self.create_delay > 0:
                        await asyncio.sleep(self.create_delay)
                    await namespace_store.upsert([DocumentProcessor.create_placeholder(store_id, data_type)])
                    created.append(data_type.value)
                except Exception as e:
                    failed[data_type.value] = str(e) or e.__class__.__name__
                    self.logging.warning("Could not initialise namespace %s: %s", build_namespace(store_id, data_type), e)
        finally:
            self._bootstrapping.discard(store_id)

        available = set(existing) | set(created)
        if failed and not any(data_type.value in available for data_type in self.essential_types):
            error = NamespaceBootstrapError(store_id, failed)
            self.logging.error("%s", error)
            return NamespaceOperationResult(success=False, error=str(error), existing=existing, created=created, failed=failed)

        self.logging.info(
            "Namespaces ready for store %s: %d created, %d existing, %d failed.",
            store_id, len(created), len(existing), len(failed),
        )
        return NamespaceOperationResult(success=True, existing=existing, created=created, failed=failed)

    async def delete_namespaces(self, store_id: str) -> NamespaceOperationResult:
        """
        Clears every namespace of the store and cancels its periodic sync.
        A failing namespace does not stop the others.
        """
        self._deletion_generations[store_id] = self._deletion_generations.get(store_id, 0) + 1
        self.cancel_periodic_sync(store_id)
        deleted: list[str] = []
        failed: dict[str, str] = {}
        for data_type in ALL_DATA_TYPES:
            try:
                namespace_store = await self._rag_engine.get_vector_store(store_id, data_type)
                await namespace_store.delete_all()
                deleted.append(data_type.value)
            except Exception as e:
                failed[data_type.value] = str(e) or e.__class__.__name__
                self.logging.warning("Could not clear namespace %s: %s", build_namespace(store_id, data_type), e)

        self._rag_engine.evict_store(store_id)
        if failed:
            return NamespaceOperationResult(
                success=False,
                error=f"Failed to clear {len(failed)} namespace(s) for store {store_id}",
                existing=deleted,
                failed=failed,
            )
        self._deleted.add(store_id)
        self.logging.info("Cleared all namespaces of store %s.", store_id)
        return NamespaceOperationResult(success=True, existing=deleted)

    def deletion_generation(self, store_id: str) -> int:
        """Number of deletions of the store so far. Compare before and after long-running work."""
        return self._deletion_generations.get(store_id, 0)

    def is_deleted(self, store_id: str) -> bool:
        return store_id in self._deleted

    async def discard_if_deleted_since(self, store_id: str, generation: int, operation: str) -> bool:
        """
        Clears the store again if it was deleted after `generation` was read,
        so that documents written by an in-flight operation do not outlive the deletion.

        Returns:
            bool: True if a deletion landed and the store was cleared.
        """
        if self.deletion_generation(store_id) == generation:
            return False
        self.logging.warning("Store %s was deleted during %s, discarding its writes.", store_id, operation)
        await self.delete_namespaces(store_id)
        return True

    async def get_namespace_status(self, store_id: str) -> NamespaceStatus:
        """Probe every namespace of a store. Flags placeholders left next to real data."""
        statuses: dict[str, NamespaceTypeStatus] = {}
        warnings: list[str] = []
        for data_type in ALL_DATA_TYPES:
            namespace = build_namespace(store_id, data_type)
            try:
                namespace_store = await self._rag_engine.get_vector_store(store_id, data_type)
                count = await namespace_store.count()
                ids = await namespace_store.list_ids() if count > 0 else []
            except Exception as e:
                statuses[data_type.value] = NamespaceTypeStatus(namespace=namespace, state=NamespaceState.UNINITIALIZED, error=str(e))
                continue

            has_placeholder = build_placeholder_id(store_id, data_type) in ids
            stray = has_placeholder and count > 1
            if store_id in self._bootstrapping:
                state = NamespaceState.BOOTSTRAPPING
            elif count == 0:
                state = NamespaceState.DELETED if store_id in self._deleted else NamespaceState.UNINITIALIZED
            elif has_placeholder and count == 1:
                state = NamespaceState.PLACEHOLDER
            else:
                state = NamespaceState.INDEXED
            if stray:
                warnings.append(f"Namespace {namespace} still holds its placeholder next to indexed data.")
            statuses[data_type.value] = NamespaceTypeStatus(
                namespace=namespace,
                state=state,
                document_count=count,
                has_placeholder=has_placeholder,
                stray_placeholder=stray,
            )
        return NamespaceStatus(
            store_id=store_id,
            namespaces=statuses,
            periodic_sync_scheduled=self.has_periodic_sync(store_id),
            warnings=warnings,
        )

    ##########################################
    ################# SYNC ###################
    ##########################################

    async def trigger_sync(self, store_id: str, wait_timeout: float = 0.0) -> SyncTriggerResult:
        """Lock-aware manual sync.

        Args:
            store_id (str): The store to sync.
            wait_timeout (float): Seconds to wait for a conflicting lease to go away. 0 fails fast.
        """
        return await self._locked_sync(store_id, LockType.MANUAL_SYNC, "manual_sync", wait_timeout)

    async def trigger_background_sync(self, store_id: str) -> SyncTriggerResult:
        """Same flow as `trigger_sync` at the lowest tier; skipped whenever anything else runs."""
        return await self._locked_sync(store_id, LockType.BACKGROUND_SYNC, "background_sync", 0.0)

    async def _locked_sync(self, store_id: str, lock_type: LockType, operation: str, wait_timeout: float) -> SyncTriggerResult:
        if wait_timeout > 0:
            waited = await self._lock_manager.wait_for_availability(store_id, lock_type, wait_timeout)
            if not waited.success:
                self.logging.info("Skipping %s for store %s: %s", operation, store_id, waited.error)
                return SyncTriggerResult(success=False, error=waited.error)
        else:
            check = self._lock_manager.check_conflicts(store_id, lock_type)
            if not check.can_proceed:
                self.logging.info("Skipping %s for store %s: %s", operation, store_id, check.reason)
                return SyncTriggerResult(success=False, error=check.reason)

        acquired = self._lock_manager.acquire(store_id, lock_type, operation, reason=f"{operation} requested")
        if not acquired.granted:
            return SyncTriggerResult(success=False, error=acquired.reason)

        generation = self.deletion_generation(store_id)
        try:
            result = await self._rag_engine.index_tenant_data(store_id)
            if await self.discard_if_deleted_since(store_id, generation, operation):
                return SyncTriggerResult(success=False, error=f"Store {store_id} was deleted during the sync.")
            return SyncTriggerResult(success=result.success, error=result.error, sync_result=result)
        except Exception as e:
            self.logging.error("%s for store %s failed: %s", operation, store_id, e)
            return SyncTriggerResult(success=False, error="Sync failed unexpectedly. Please try again later.")
        finally:
            self._lock_manager.release(store_id, acquired.lease_id)

    ##########################################
    ############## SCHEDULING ################
    ##########################################

    def schedule_periodic_sync(self, store_id: str) -> None:
        """Start the periodic sync loop for a store, replacing any existing one."""
        self.cancel_periodic_sync(store_id)
        self._timers[store_id] = asyncio.create_task(self._periodic_loop(store_id), name=f"periodic-sync-{store_id}")
        self.logging.info("Scheduled periodic sync for store %s every %.0fs.", store_id, self.sync_interval)

    def cancel_periodic_sync(self, store_id: str) -> bool:
        timer = self._timers.pop(store_id, None)
        if timer is None:
            return False
        timer.cancel()
        self.logging.info("Cancelled periodic sync for store %s.", store_id)
        return True

    def has_periodic_sync(self, store_id: str) -> bool:
        timer = self._timers.get(store_id)
        return timer is not None and not timer.done()

    def active_timer_count(self) -> int:
        return sum(1 for timer in self._timers.values() if not timer.done())

    async def _periodic_loop(self, store_id: str) -> None:
        while True:
            await asyncio.sleep(self.sync_interval)
            try:
                result = await self.trigger_sync(store_id)
            except Exception as e:
                # keep the loop alive, the next tick retries
                self.logging.error("Periodic sync for store %s raised: %s", store_id, e)
                continue
            if result.success:
                self.logging.debug("Periodic sync for store %s done.", store_id)

    async def cleanup(self) -> None:
        """Cancel every periodic sync loop, e.g. at shutdown."""
        timers = list(self._timers.values())
        self._timers.clear()
        for timer in timers:
            timer.cancel()
        if timers:
            await asyncio.gather(*timers, return_exceptions=True)
            self.logging.info("Cancelled %d periodic sync loop(s).", len(timers))
