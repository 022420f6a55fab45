from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientManager import ClientManager
from shared.clients.rag.RAGClientInterface import RAGClientInterface


class RAGClientManager(ClientManager):
    """
    Builds the vector store client selected by RAG_ENGINE.
    """

    client_type = "rag"
    class_prefix = "RAG"

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.client: RAGClientInterface = self._initialize_client()

    def get_client(self) -> RAGClientInterface:
        return self.client
