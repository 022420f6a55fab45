from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig

CHAT_ROLES = ("system", "user", "assistant")


class LLMClientInterface(ClientInterface):
    """Chat backend that turns the retrieved store context into an answer.

    Shared settings: LLM_CHAT_MODEL (required), LLM_TEMPERATURE, LLM_MAX_TOKENS.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.chat_model = helper_config.get_string_val("LLM_CHAT_MODEL", default=None)
        self.temperature = helper_config.get_number_val("LLM_TEMPERATURE", default=0.3)
        self.max_tokens = int(helper_config.get_number_val("LLM_MAX_TOKENS", default=1024))

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_client_type(self) -> str:
        return "llm"

    @abstractmethod
    def _get_endpoint_chat(self) -> str:
        pass

    ##########################################
    ########### ENGINE SPECIFICS #############
    ##########################################

    @abstractmethod
    def get_chat_payload(self, messages: list[dict]) -> dict:
        """Request body for the engine's chat endpoint.

        Args:
            messages (list[dict]): ``{"role": ..., "content": ...}`` items, system prompt first.
        """
        pass

    @abstractmethod
    def extract_chat_response(self, response_data: dict) -> str | None:
        """Reply text from a parsed chat response, None if the engine sent none."""
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_chat(self, messages: list[dict]) -> str:
        """Send the conversation and return the assistant reply.

        Raises:
            ValueError: On an empty conversation, an unknown role, or a reply without content.
            ClientRequestError: If the backend answers with an error status.
        """
        if not messages:
            raise ValueError("Cannot send an empty conversation to the language model.")
        for message in messages:
            if message.get("role") not in CHAT_ROLES:
                raise ValueError(f"Unsupported chat role '{message.get('role')}'.")

        response = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_chat(),
            json=self.get_chat_payload(messages),
            raise_on_error=True,
        )
        data = response.json()
        content = self.extract_chat_response(data)
        if content is None:
            raise ValueError(f"{self.get_engine_name()} chat response has no reply (keys: {sorted(data)}).")
        self.logging.debug("%s answered %d messages with %d characters.", self.chat_model, len(messages), len(content))
        return content
