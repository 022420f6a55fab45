from abc import abstractmethod

from typing import Tuple
from shared.clients.ClientInterface import ClientInterface
from shared.models.errors import ClientRequestError

from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model and embedding config
        self.embed_distance = helper_config.get_string_val(f"{self.get_client_type().upper()}_DISTANCE", default="Cosine")
        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_MODEL", default=None)
        self.embed_model_max_chars = helper_config.get_number_val(f"{self.get_client_type().upper()}_MODEL_MAX_CHARS", default=8000)
        self.embed_batch_size = int(helper_config.get_number_val(f"{self.get_client_type().upper()}_BATCH_SIZE", default=100))
        self.embed_vector_size = int(helper_config.get_number_val(f"{self.get_client_type().upper()}_VECTOR_SIZE", default=0))

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "embed"

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests.

        Returns:
            str: The endpoint path for embedding requests (e.g. "/api/embed")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build the backend-specific request body for an embedding request.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            dict: JSON-serialisable request body (e.g. {"model": "...", "input": [...]}).
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from a raw embedding API response.

        Response format differs by backend:
        - Ollama /api/embed: {"embeddings": [[...], [...]]}, already ordered
        - OpenAI-compatible: {"data": [{"embedding": [...], "index": 0}]}, needs sorting

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the input texts.

        Raises:
            ValueError: If the response format is invalid or embeddings are empty.
        """
        pass

    def _prepare_texts(self, texts: list[str]) -> list[str]:
        """Reject empty inputs and truncate overlong ones to EMBED_MODEL_MAX_CHARS.

        Raises:
            ValueError: If any text is empty or whitespace only.
        """
        prepared: list[str] = []
        for index, text in enumerate(texts):
            if not text or not text.strip():
                raise ValueError(f"Cannot embed empty text (input #{index}).")
            if self.embed_model_max_chars and len(text) > self.embed_model_max_chars:
                self.logging.debug("Truncating embedding input #%d from %d to %d chars.", index, len(text), self.embed_model_max_chars)
                text = text[: int(self.embed_model_max_chars)]
            prepared.append(text)
        return prepared

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_fetch_embedding_vector_size(self) -> Tuple[int, str]:
        """
        Determine the output vector dimension and distance metric of the configured model.

        EMBED_VECTOR_SIZE wins when set; otherwise a probe text is embedded and measured.

        Returns:
            Tuple[int, str]: The vector dimension and the distance metric.
        """
        if self.embed_vector_size > 0:
            return self.embed_vector_size, self.embed_distance
        vector = await self.do_embed_one("dimension probe")
        return len(vector), self.embed_distance

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        """Embed one or more texts, splitting the work into EMBED_BATCH_SIZE requests.

        Args:
            texts (list[str] | str): One or more texts to embed.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the inputs.

        Raises:
            ValueError: If an input is empty or the response holds no valid embeddings.
            ClientRequestError: If the backend answers with a non-200 status.
        """
        texts = [texts] if isinstance(texts, str) else texts
        if not texts:
            return []
        texts = self._prepare_texts(texts)

        vectors: list[list[float]] = []
        for batch_start in range(0, len(texts), self.embed_batch_size):
            batch = texts[batch_start: batch_start + self.embed_batch_size]
            response = await self.do_request(method="POST", endpoint=self.get_endpoint_embedding(), json=self.get_embed_payload(batch))
            if response.status_code != 200:
                self.logging.error(
                    "Embedding request failed: status %d, body: %s",
                    response.status_code,
                    response.text[:200],
                )
                raise ClientRequestError("Embedding request failed with status %d." % response.status_code, status_code=response.status_code)
            batch_vectors = self.extract_embeddings_from_response(response.json())
            if len(batch_vectors) != len(batch):
                raise ValueError(f"Embedding backend returned {len(batch_vectors)} vectors for {len(batch)} inputs.")
            vectors.extend(batch_vectors)
        return vectors

    async def do_embed_one(self, text: str) -> list[float]:
        """Embed a single text."""
        vectors = await self.do_embed([text])
        return vectors[0]
