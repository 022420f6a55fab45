from abc import abstractmethod
from datetime import datetime, timezone

from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientInterface import ClientInterface
from shared.clients.tenant.models.TenantRecord import TenantRecord


class TenantClientInterface(ClientInterface):
    """
    Access to the tenant record store, which owns store ownership, credentials
    and activity flags. This service only reads and patches single fields.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "tenant"

    ##########################################
    ############### REQUESTS #################
    ##########################################

    @abstractmethod
    async def do_fetch_store(self, store_id: str) -> TenantRecord | None:
        """
        Loads a single tenant record.

        Returns:
            TenantRecord | None: The record, or None if no store has this id.
        """
        pass

    @abstractmethod
    async def do_fetch_active_stores(self) -> list[TenantRecord]:
        pass

    @abstractmethod
    async def do_fetch_active_stores_for_user(self, user_id: str) -> list[TenantRecord]:
        pass

    @abstractmethod
    async def _do_patch_store(self, store_id: str, values: dict) -> TenantRecord | None:
        """
        Updates the given columns of one tenant record.

        Returns:
            TenantRecord | None: The updated record, or None if the store does not exist.
        """
        pass

    async def do_update_last_sync(self, store_id: str, synced_at: datetime | None = None) -> TenantRecord | None:
        synced_at = synced_at or datetime.now(timezone.utc)
        return await self._do_patch_store(store_id, {"last_sync_at": synced_at.isoformat()})

    async def do_update_credentials(self, store_id: str, access_token: str, platform_store_id: str | None = None) -> TenantRecord | None:
        values = {"access_token": access_token}
        if platform_store_id:
            values["platform_store_id"] = platform_store_id
        return await self._do_patch_store(store_id, values)

    async def do_set_active(self, store_id: str, active: bool) -> TenantRecord | None:
        return await self._do_patch_store(store_id, {"is_active": active})
