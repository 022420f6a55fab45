from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientManager import ClientManager
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface


class EmbedClientManager(ClientManager):
    """
    Builds the embedding client selected by EMBED_ENGINE.
    """

    client_type = "embed"
    class_prefix = "Embed"

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.client: EmbedClientInterface = self._initialize_client()

    def get_client(self) -> EmbedClientInterface:
        return self.client
