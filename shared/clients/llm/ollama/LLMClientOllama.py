from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class LLMClientOllama(LLMClientInterface):
    """Local Ollama server, non-streaming /api/chat.

    LLM_OLLAMA_NUM_CTX optionally widens the context window for long store contexts.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None)
        self._api_key = self.get_config_val("API_KEY", default="")
        self._num_ctx = int(self.get_config_val("NUM_CTX", default=0, val_type="number"))

    def _get_engine_name(self) -> str:
        return "Ollama"

    def _get_required_config(self) -> list[EnvConfig]:
        return [EnvConfig(env_key="BASE_URL", val_type="string", default=None)]

    def _get_auth_header(self) -> dict:
        # only set when the server sits behind an authenticating proxy
        return {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}

    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/api/version"

    def _get_endpoint_chat(self) -> str:
        return "/api/chat"

    def get_chat_payload(self, messages: list[dict]) -> dict:
        options = {"temperature": self.temperature, "num_predict": self.max_tokens}
        if self._num_ctx:
            options["num_ctx"] = self._num_ctx
        return {"model": self.chat_model, "messages": messages, "stream": False, "options": options}

    def extract_chat_response(self, response_data: dict) -> str | None:
        return (response_data.get("message") or {}).get("content")
