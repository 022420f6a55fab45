from typing import Any

from shared.helper.HelperConfig import HelperConfig


class ClientManager:
    """
    Base class for the per-type client managers.

    The engine is read from "{CLIENT_TYPE}_ENGINE" and the class
    "{Prefix}Client{Engine}" is imported from "shared.clients.{type}.{engine}".
    """

    client_type: str = ""
    class_prefix: str = ""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()

    def _get_engine_from_env(self) -> str:
        """
        Reads the engine from ENV configuration.

        Returns:
            str: The engine name, capitalised (e.g. "Qdrant").

        Raises:
            ValueError: If no engine is specified in the configuration.
        """
        env_key = f"{self.client_type.upper()}_ENGINE"
        engine = self.helper_config.get_string_val(env_key)
        if not engine:
            raise ValueError(f"No {self.class_prefix} engine specified in configuration ({env_key}).")
        return engine.strip().lower().capitalize()

    def _load_client_class(self, engine: str) -> type:
        """
        Imports the client class for an engine.

        Raises:
            ValueError: If the engine has no matching client module or class.
        """
        class_name = f"{self.class_prefix}Client{engine}"
        try:
            module = __import__(
                f"shared.clients.{self.client_type}.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            return getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported {self.class_prefix} engine specified: '{engine}'. Error: {e}")

    def _initialize_client(self, **kwargs: Any) -> Any:
        engine = self._get_engine_from_env()
        client_class = self._load_client_class(engine)
        client = client_class(helper_config=self.helper_config, **kwargs)
        self.logging.debug("Instantiated %s client for engine: %s", self.class_prefix, engine)
        return client
