from abc import ABC, abstractmethod
from typing import Any

import httpx
from httpx._types import QueryParamTypes

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.errors import ClientRequestError


class ClientInterface(ABC):
    """Base of every backend client: env-driven config plus one shared httpx.AsyncClient.

    Settings are read as ``{CLIENT_TYPE}_{ENGINE}_{KEY}``, e.g. ``RAG_QDRANT_BASE_URL``.
    The HTTP timeout comes from ``{CLIENT_TYPE}_TIMEOUT``.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)
        self._client: httpx.AsyncClient | None = None

        # fail at construction time on missing settings
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """
        Reads every required setting once.

        Raises:
            ValueError: If a required setting is missing or has the wrong type.
        """
        for config in self._get_required_config():
            self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    def is_booted(self) -> bool:
        return self._client is not None

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        """Lowercase client type, e.g. "commerce"."""
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        pass

    def get_engine_name(self) -> str:
        """Lowercase engine name, e.g. "tiendanube"."""
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """
        Returns:
            list[EnvConfig]: The settings this engine cannot run without.
        """
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        return f"{self.get_client_type().upper()}_{self.get_engine_name().upper()}_{raw_key.upper()}"

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Reads an engine setting.

        Args:
            raw_key (str): Key without the type and engine prefix, e.g. "BASE_URL".
            default (Any): Value used when the variable is unset. None makes it required.
            val_type (str): One of "string", "number", "bool" and "list".

        Raises:
            ValueError: If the value is missing, invalid, or val_type is unknown.
        """
        readers = {
            "string": self._helper_config.get_string_val,
            "number": self._helper_config.get_number_val,
            "bool": self._helper_config.get_bool_val,
            "list": self._helper_config.get_list_val,
        }
        key = self._get_config_key_name(raw_key)
        if val_type not in readers:
            raise ValueError(f"Unsupported config value type '{val_type}' for '{key}'.")
        return readers[val_type](key, default=default)

    ################ HEADERS ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """
        Returns:
            dict: Authentication headers, empty when the backend needs none.
        """
        pass

    def _get_default_headers(self) -> dict:
        """Headers sent with every request before the auth header."""
        return {}

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        """
        Returns:
            str: Root URL every endpoint is appended to, e.g. "http://localhost:6333".
        """
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        pass

    def _build_url(self, endpoint: str) -> str:
        path = endpoint.strip().lstrip("/")
        base = self._get_base_url().rstrip("/")
        return f"{base}/{path}" if path else base

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck())

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Create the HTTP client. A transport may be injected, e.g. httpx.MockTransport."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def do_request(
        self,
        method: str = "GET",
        endpoint: str = "",
        json: dict | list | None = None,
        params: QueryParamTypes | None = None,
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Send a request to the backend.

        Args:
            method: HTTP verb.
            endpoint: Path below the base URL, leading slash optional.
            json: JSON body.
            params: Query string parameters.
            additional_headers: Headers overriding the default and auth headers.
            raise_on_error: Raise ClientRequestError on a status of 300 or above.
            timeout: Overrides the client timeout for this request.

        Raises:
            ClientRequestError: If the client was not booted, or on an error status with raise_on_error.
            httpx.HTTPError: On transport failures and timeouts.
        """
        if self._client is None:
            raise ClientRequestError(f"{self.get_client_type().upper()} client '{self.get_engine_name()}' is not booted.")

        url = self._build_url(endpoint)
        headers = {**self._get_default_headers(), **self._get_auth_header(), **(additional_headers or {})}
        response = await self._client.request(
            method,
            url,
            headers=headers,
            json=json,
            params=params,
            timeout=timeout if timeout is not None else self.timeout,
        )

        if raise_on_error and response.status_code >= 300:
            self.logging.error("%s %s failed with status %d: %s", method, url, response.status_code, response.text[:300])
            raise ClientRequestError(
                f"{self.get_engine_name()} API error: {response.status_code}",
                status_code=response.status_code,
                url=url,
            )
        return response
