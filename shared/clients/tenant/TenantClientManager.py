from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientManager import ClientManager
from shared.clients.tenant.TenantClientInterface import TenantClientInterface


class TenantClientManager(ClientManager):
    """
    Builds the tenant record client selected by TENANT_ENGINE.
    """

    client_type = "tenant"
    class_prefix = "Tenant"

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.client: TenantClientInterface = self._initialize_client()

    def get_client(self) -> TenantClientInterface:
        return self.client
