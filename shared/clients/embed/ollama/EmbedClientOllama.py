from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class EmbedClientOllama(EmbedClientInterface):
    """Local Ollama embeddings via /api/embed."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None)
        self._api_key = self.get_config_val("API_KEY", default="")

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_engine_name(self) -> str:
        return "Ollama"

    def _get_required_config(self) -> list[EnvConfig]:
        return [EnvConfig(env_key="BASE_URL", val_type="string", default=None)]

    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}

    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/api/version"

    def get_endpoint_embedding(self) -> str:
        return "/api/embed"

    ##########################################
    ########### PAYLOAD / PARSER #############
    ##########################################

    def get_embed_payload(self, texts: list[str]) -> dict:
        return {"model": self.embed_model, "input": texts}

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        # already in input order
        embeddings = response_data.get("embeddings") or []
        if not embeddings or not all(embeddings):
            raise ValueError(f"Ollama returned no embeddings (keys: {sorted(response_data)}).")
        return embeddings

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_fetch_embedding_vector_size(self) -> tuple[int, str]:
        """Read the model's embedding length from /api/show instead of embedding a probe text."""
        if self.embed_vector_size > 0:
            return self.embed_vector_size, self.embed_distance
        response = await self.do_request(method="POST", endpoint="/api/show", json={"name": self.embed_model}, raise_on_error=True)
        details: dict = response.json().get("model_info") or {}
        for key, value in details.items():
            if key.endswith(".embedding_length"):
                return int(value), self.embed_distance
        raise ValueError(f"Ollama reports no embedding length for model '{self.embed_model}'.")
