"""Resolves a validated platform credential for a store."""

import httpx

from shared.clients.commerce.CommerceClientManager import CommerceClientManager
from shared.clients.tenant.TenantClientInterface import TenantClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.credentials import Credential
from shared.models.errors import ClientRequestError


class TokenManager:
    """
    Reads a store's stored token from the tenant record and confirms it with a
    live store profile request against the platform.
    """

    def __init__(self, helper_config: HelperConfig, tenant_client: TenantClientInterface, commerce_manager: CommerceClientManager) -> None:
        self.logging = helper_config.get_logger()
        self._tenant_client = tenant_client
        self._commerce_manager = commerce_manager
        self._validation_timeout = float(helper_config.get_number_val("SYNC_CONNECTIVITY_TIMEOUT", default=10))

    async def get_valid_credential(self, store_id: str) -> Credential | None:
        """
        Returns:
            Credential | None: A working credential, or None if the store has no
            token or the platform rejects it.
        """
        try:
            record = await self._tenant_client.do_fetch_store(store_id)
        except (ClientRequestError, httpx.HTTPError) as e:
            self.logging.error("Could not load tenant record for store %s: %s", store_id, e)
            return None
        if record is None or not record.has_credentials():
            self.logging.warning("Store %s has no stored platform credentials.", store_id)
            return None

        credential = Credential(token=record.access_token, platform_store_id=record.platform_store_id, source="token_manager")
        if await self.validate_credential(credential):
            return credential
        self.logging.warning("Stored platform token for store %s was rejected.", store_id)
        return None

    async def validate_credential(self, credential: Credential) -> bool:
        """Checks a credential with a store profile request."""
        client = self._commerce_manager.create_client(credential)
        try:
            await client.boot()
            await client.do_fetch_store(timeout=self._validation_timeout)
            return True
        except (ClientRequestError, httpx.HTTPError) as e:
            self.logging.debug("Credential validation for platform store %s failed: %s", credential.platform_store_id, e)
            return False
        finally:
            await client.close()
