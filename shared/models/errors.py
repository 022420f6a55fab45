"""Exceptions shared by clients and services.

Lock conflicts and partial ingestion failures are not exceptions: they are
reported in-band through AcquireResult and SyncResult.
"""


class ClientRequestError(Exception):
    """A backend answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None, url: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url

    @property
    def is_not_found(self) -> bool:
        """True for 404/403, which the platform returns when a feature is disabled for a store."""
        return self.status_code in (403, 404)


class CredentialInvalidError(Exception):
    """No usable upstream credential could be resolved for a store."""

    def __init__(self, store_id: str) -> None:
        super().__init__(f"No valid credential found for store {store_id}. The store needs to be reconnected.")
        self.store_id = store_id


class NamespaceBootstrapError(Exception):
    """Placeholder creation failed for every essential namespace of a store."""

    def __init__(self, store_id: str, failures: dict[str, str]) -> None:
        details = ", ".join(f"{data_type} ({error})" for data_type, error in failures.items())
        super().__init__(f"Namespace bootstrap failed for store {store_id}: {details}")
        self.store_id = store_id
        self.failures = failures


class RetrievalError(Exception):
    """Every namespace searched for a query failed."""
