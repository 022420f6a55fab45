from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientManager import ClientManager
from shared.clients.commerce.CommerceClientInterface import CommerceClientInterface
from shared.models.credentials import Credential


class CommerceClientManager(ClientManager):
    """
    Builds commerce platform clients for the engine selected by COMMERCE_ENGINE.

    Every client is bound to one store credential, so a new client is
    created per call. The caller owns it and has to boot and close it.
    """

    client_type = "commerce"
    class_prefix = "Commerce"

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        # resolve once so a misconfigured engine fails at startup
        self._client_class = self._load_client_class(self._get_engine_from_env())

    def create_client(self, credential: Credential) -> CommerceClientInterface:
        return self._client_class(helper_config=self.helper_config, credential=credential)
