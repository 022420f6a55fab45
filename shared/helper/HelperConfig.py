"""Environment-backed settings shared by every service of the commerce RAG bridge."""

import logging
import os

TRUTHY = ("true", "1", "yes", "on")


class HelperConfig:
    """Reads settings from environment variables and hands out the shared logger.

    Keys are upper-cased before lookup. An empty variable counts as unset. A
    getter called with ``default=None`` treats the setting as required and
    raises ``ValueError`` when it is missing.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _read(self, key: str, default) -> tuple[str, str | None]:
        key = key.upper()
        raw = (os.getenv(key) or "").strip() or None
        if raw is None and default is None:
            raise ValueError(f"Environment variable '{key}' is not set.")
        return key, raw

    ##########################################
    ################ VALUES ##################
    ##########################################

    def get_string_val(self, key: str, default: str | None = None) -> str:
        _, raw = self._read(key, default)
        return raw if raw is not None else default

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read an int, or a float when the value contains a dot.

        Raises:
            ValueError: If the setting is required and missing, or not a number.
        """
        key, raw = self._read(key, default)
        if raw is None:
            return default
        try:
            return float(raw) if "." in raw else int(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key}' is not a valid number: '{raw}'.")

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        _, raw = self._read(key, default)
        return default if raw is None else raw.lower() in TRUTHY

    def get_list_val(self, key: str, default: list | None = None, separator: str = ",", element_type: type = str) -> list:
        """Read a bracketed list such as ``[store,products]``.

        Args:
            key (str): Environment variable name.
            default (list | None): Used when unset. None makes the setting required.
            separator (str): Delimiter between elements.
            element_type (type): Cast applied to every element.

        Raises:
            ValueError: If the setting is required and missing, lacks the brackets,
                or holds an element that cannot be cast.
        """
        key, raw = self._read(key, default)
        if raw is None:
            return list(default)
        if not (raw.startswith("[") and raw.endswith("]")):
            raise ValueError(f"Environment variable '{key}' must look like '[a{separator}b]', got '{raw}'.")
        elements = [element.strip() for element in raw[1:-1].split(separator) if element.strip()]
        try:
            return [element_type(element) for element in elements]
        except ValueError as e:
            raise ValueError(f"Environment variable '{key}' holds an invalid {element_type.__name__}: {e}")

    ##########################################
    ################ LOGGER ##################
    ##########################################

    def get_logger(self) -> logging.Logger:
        return self._logger
