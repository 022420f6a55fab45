"""Namespace naming convention and namespace status models."""

from enum import Enum

from pydantic import BaseModel


class DataType(str, Enum):
    """The six per-store knowledge partitions."""

    STORE = "store"
    PRODUCTS = "products"
    ORDERS = "orders"
    CUSTOMERS = "customers"
    ANALYTICS = "analytics"
    CONVERSATIONS = "conversations"


ALL_DATA_TYPES: list[DataType] = [
    DataType.STORE,
    DataType.PRODUCTS,
    DataType.ORDERS,
    DataType.CUSTOMERS,
    DataType.ANALYTICS,
    DataType.CONVERSATIONS,
]


class NamespaceState(str, Enum):
    UNINITIALIZED = "uninitialized"
    BOOTSTRAPPING = "bootstrapping"
    PLACEHOLDER = "placeholder"
    INDEXED = "indexed"
    DELETED = "deleted"


def build_namespace(store_id: str, data_type: DataType | str) -> str:
    """Return the namespace key for a store and data type.

    The store profile lives in "tenant-{store_id}", every other type in
    "tenant-{store_id}-{type}".
    """
    data_type = DataType(data_type)
    if data_type == DataType.STORE:
        return f"tenant-{store_id}"
    return f"tenant-{store_id}-{data_type.value}"


def build_placeholder_id(store_id: str, data_type: DataType | str) -> str:
    return f"placeholder-{store_id}-{DataType(data_type).value}"


def parse_data_types(values: list[str] | None) -> list[DataType]:
    """Convert raw strings into DataTypes, keeping order and dropping duplicates.

    Raises:
        ValueError: If a value is not a known data type.
    """
    result: list[DataType] = []
    for value in values or []:
        data_type = DataType(value.strip().lower())
        if data_type not in result:
            result.append(data_type)
    return result


class NamespaceTypeStatus(BaseModel):
    """Probe result for one namespace.

    Attributes:
        namespace:          The namespace key.
        state:              Lifecycle state derived from the probe.
        document_count:     Number of stored chunks, placeholder included.
        has_placeholder:    Whether the placeholder document is present.
        stray_placeholder:  Placeholder present next to real documents.
        error:              Probe error, if the vector store could not be queried.
    """

    namespace: str
    state: NamespaceState
    document_count: int = 0
    has_placeholder: bool = False
    stray_placeholder: bool = False
    error: str | None = None


class NamespaceStatus(BaseModel):
    store_id: str
    namespaces: dict[str, NamespaceTypeStatus]
    periodic_sync_scheduled: bool = False
    warnings: list[str] = []
