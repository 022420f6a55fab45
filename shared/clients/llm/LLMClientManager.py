from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientManager import ClientManager
from shared.clients.llm.LLMClientInterface import LLMClientInterface


class LLMClientManager(ClientManager):
    """
    Builds the language model client selected by LLM_ENGINE.
    """

    client_type = "llm"
    class_prefix = "LLM"

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.client: LLMClientInterface = self._initialize_client()

    def get_client(self) -> LLMClientInterface:
        return self.client
