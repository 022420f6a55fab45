"""Reactions to store lifecycle events (connect, reconnect, disconnect, delete, user login)."""

import asyncio

import httpx

from services.background.BackgroundTaskRunner import BackgroundTaskRunner
from services.namespaces.NamespaceManager import NamespaceManager
from services.rag_engine.RAGEngine import RAGEngine
from services.rag_locks.LockManager import DeletionLocks, LockManager, ReconnectionLocks
from shared.clients.tenant.TenantClientInterface import TenantClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import ClientRequestError
from shared.models.locks import LockType
from shared.models.sync import LifecycleResult, SyncTriggerResult


class StoreLifecycleService:
    def __init__(
        self,
        helper_config: HelperConfig,
        lock_manager: LockManager,
        namespace_manager: NamespaceManager,
        rag_engine: RAGEngine,
        tenant_client: TenantClientInterface,
        background_runner: BackgroundTaskRunner,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._lock_manager = lock_manager
        self._namespace_manager = namespace_manager
        self._rag_engine = rag_engine
        self._tenant_client = tenant_client
        self._runner = background_runner
        self._reconnection_locks = ReconnectionLocks(lock_manager)
        self._deletion_locks = DeletionLocks(lock_manager)

    ##########################################
    ################ EVENTS ##################
    ##########################################

    async def on_connected(self, store_id: str) -> LifecycleResult:
        """
        Bootstraps the namespaces, schedules the periodic sync and starts a
        detached initial sync at background tier.
        """
        bootstrap = await self._namespace_manager.create_namespaces(store_id)
        if not bootstrap.success:
            return LifecycleResult(success=False, store_id=store_id, operations=["create_namespaces"], error=bootstrap.error)

        self._namespace_manager.schedule_periodic_sync(store_id)
        self._runner.spawn(self._namespace_manager.trigger_background_sync(store_id), name=f"initial-sync-{store_id}")
        self.logging.info("Store %s connected.", store_id, color="green")
        return LifecycleResult(
            success=True,
            store_id=store_id,
            operations=["create_namespaces", "schedule_periodic_sync", "initial_sync_started"],
        )

    async def on_reconnected(self, store_id: str, access_token: str, platform_store_id: str | None = None) -> LifecycleResult:
        """Take the reconnection lease and re-index in the background with the new token.

        The lease is taken before returning so that a conflict is reported to
        the caller. It is released when the background work ends.

        Args:
            store_id (str): The reconnected store.
            access_token (str): The newly issued platform token.
            platform_store_id (str | None): The platform store id, if it changed.
        """
        acquired = self._reconnection_locks.acquire(store_id, reason="store reconnected")
        if not acquired.granted:
            return LifecycleResult(success=False, store_id=store_id, error=acquired.reason)

        self._runner.spawn(
            self._reconnect(store_id, access_token, platform_store_id, acquired.lease_id),
            name=f"reconnect-{store_id}",
        )
        return LifecycleResult(success=True, store_id=store_id, operations=["reconnection_started"])

    async def _reconnect(self, store_id: str, access_token: str, platform_store_id: str | None, lease_id: str) -> None:
        # deletion outranks reconnection and may run concurrently
        generation = self._namespace_manager.deletion_generation(store_id)
        try:
            await self._tenant_client.do_update_credentials(store_id, access_token, platform_store_id)
            await self._tenant_client.do_set_active(store_id, True)

            bootstrap = await self._namespace_manager.create_namespaces(store_id)
            if not bootstrap.success:
                self.logging.error("Reconnection of store %s stopped: %s", store_id, bootstrap.error)
                return

            result = await self._rag_engine.index_tenant_data(store_id, credential_hint=access_token)
            if await self._namespace_manager.discard_if_deleted_since(store_id, generation, "reconnection"):
                return
            if result.success:
                self.logging.info("Store %s reconnected and re-indexed %d documents.", store_id, result.documents_indexed, color="green")
            else:
                self.logging.error("Re-indexing after reconnection of store %s failed: %s", store_id, result.error)
            self._namespace_manager.schedule_periodic_sync(store_id)
        finally:
            self._reconnection_locks.release(store_id, lease_id)

    async def on_disconnected(self, store_id: str) -> LifecycleResult:
        """Stop syncing and mark the store inactive. Indexed data is kept for a later reconnection."""
        self._namespace_manager.cancel_periodic_sync(store_id)
        try:
            await self._tenant_client.do_set_active(store_id, False)
        except (ClientRequestError, httpx.HTTPError) as e:
            self.logging.error("Could not mark store %s inactive: %s", store_id, e)
            return LifecycleResult(success=False, store_id=store_id, operations=["cancel_periodic_sync"], error="Could not update the store record.")
        self.logging.info("Store %s disconnected, namespaces preserved.", store_id)
        return LifecycleResult(success=True, store_id=store_id, operations=["cancel_periodic_sync", "set_inactive"])

    async def on_deleted(self, store_id: str) -> LifecycleResult:
        """
        Clears all namespaces under a deletion lease.

        Deletion outranks every other lease, so it only waits (up to its lease
        timeout) for another deletion of the same store. Syncs and reconnections
        still running notice the deletion when they finish and discard their writes.
        """
        timeout = self._lock_manager.get_timeout(LockType.DELETION)
        waited = await self._lock_manager.wait_for_availability(store_id, LockType.DELETION, timeout)
        if not waited.success:
            return LifecycleResult(success=False, store_id=store_id, error=waited.error)

        acquired = self._deletion_locks.acquire(store_id, reason="store deleted")
        if not acquired.granted:
            return LifecycleResult(success=False, store_id=store_id, error=acquired.reason)
        try:
            self._namespace_manager.cancel_periodic_sync(store_id)
            result = await self._namespace_manager.delete_namespaces(store_id)
        finally:
            self._deletion_locks.release(store_id, acquired.lease_id)

        return LifecycleResult(
            success=result.success,
            store_id=store_id,
            operations=["cancel_periodic_sync", "delete_namespaces"],
            error=result.error,
        )

    async def on_user_login(self, user_id: str) -> dict[str, SyncTriggerResult]:
        """
        Syncs every active store of a user concurrently.

        Returns:
            dict[str, SyncTriggerResult]: One result per store id.
        """
        try:
            stores = await self._tenant_client.do_fetch_active_stores_for_user(user_id)
        except (ClientRequestError, httpx.HTTPError) as e:
            self.logging.error("Could not load stores of user %s: %s", user_id, e)
            return {}
        if not stores:
            return {}

        results = await asyncio.gather(*[self._namespace_manager.trigger_sync(store.id) for store in stores])
        self.logging.info(
            "Login sync for user %s: %d of %d store(s) synced.",
            user_id, sum(1 for result in results if result.success), len(stores),
        )
        return {store.id: result for store, result in zip(stores, results)}
