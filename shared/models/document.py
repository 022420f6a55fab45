"""Document chunk model produced by the DocumentProcessor and stored per namespace."""

from pydantic import BaseModel


class ChunkMetadata(BaseModel):
    """Metadata stored alongside each chunk's text.

    Identifiers are kept as structured fields so retrieval can filter or boost
    on them without parsing the text.
    """

    # Core identity
    type: str
    store_id: str
    source: str
    timestamp: str
    source_id: str | None = None
    chunk_index: int = 0
    total_chunks: int = 1

    # Placeholder marker
    is_placeholder: bool = False
    category: str | None = None

    # Products
    product_id: str | None = None
    product_name: str | None = None
    price: str | None = None

    # Orders
    order_id: str | None = None
    order_status: str | None = None
    order_total: str | None = None

    # Customers
    customer_id: str | None = None
    customer_email: str | None = None

    # Analytics
    period: str | None = None


class DocumentChunk(BaseModel):
    """The unit of storage: a text chunk, its deterministic id and metadata."""

    id: str
    content: str
    metadata: ChunkMetadata
