from pydantic import BaseModel


class SyncResult(BaseModel):
    """Outcome of one ingestion run for a store.

    Attributes:
        success:               False only on a fatal top-level error (no credential, platform unreachable).
        documents_indexed:     Source records written, summed over all data types.
        namespaces_processed:  Namespaces that received at least one document.
        processing_time_ms:    Wall time of the run.
        counts_by_type:        Records written per data type, zero for failed or disabled types.
        error:                 User-safe error message for failed runs.
    """

    success: bool
    documents_indexed: int = 0
    namespaces_processed: list[str] = []
    processing_time_ms: int = 0
    counts_by_type: dict[str, int] = {}
    error: str | None = None


class NamespaceOperationResult(BaseModel):
    success: bool
    error: str | None = None
    existing: list[str] = []
    created: list[str] = []
    failed: dict[str, str] = {}


class SyncTriggerResult(BaseModel):
    success: bool
    error: str | None = None
    sync_result: SyncResult | None = None


class LifecycleResult(BaseModel):
    """Outcome of a store lifecycle hook."""

    success: bool
    store_id: str
    operations: list[str] = []
    error: str | None = None
