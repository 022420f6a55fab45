"""VectorPoint model: the payload stored alongside each vector in the RAG backend."""

import uuid

from shared.models.document import ChunkMetadata, DocumentChunk


def make_point_id(doc_id: str) -> str:
    """Build a deterministic UUID5 point ID from a logical document id.

    The same chunk always maps to the same point so re-indexing overwrites
    rather than duplicates. The logical id is kept in the payload as doc_id.
    """
    return str(uuid.uuid5(uuid.NAMESPACE_OID, doc_id))


class VectorPoint(ChunkMetadata):
    """Chunk metadata plus the fields needed to store and find it again.

    The namespace field is mandatory and applied as a filter on every search,
    count, list and delete, so one store's data never leaks into another's.

    Attributes:
        namespace:  Logical partition key, e.g. "tenant-42-products".
        doc_id:     Logical chunk id, e.g. "products-42-1001-0" or a placeholder id.
        content:    Raw text content of this chunk.
    """

    namespace: str
    doc_id: str
    content: str

    @classmethod
    def from_chunk(cls, chunk: DocumentChunk, namespace: str) -> "VectorPoint":
        return cls(namespace=namespace, doc_id=chunk.id, content=chunk.content, **chunk.metadata.model_dump())

    def to_chunk(self) -> DocumentChunk:
        metadata = ChunkMetadata.model_validate(self.model_dump(exclude={"namespace", "doc_id", "content"}))
        return DocumentChunk(id=self.doc_id, content=self.content, metadata=metadata)
