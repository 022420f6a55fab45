"""Per-namespace vector store handles and their bounded cache."""

from collections import OrderedDict

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorPoint import VectorPoint, make_point_id
from shared.models.document import DocumentChunk
from shared.models.namespace import DataType, build_namespace


class NamespacedStore:
    """A vector store view bound to one (store, data type) namespace."""

    def __init__(
        self,
        rag_client: RAGClientInterface,
        embed_client: EmbedClientInterface,
        store_id: str,
        data_type: DataType,
        upsert_batch_size: int = 100,
    ) -> None:
        self._rag_client = rag_client
        self._embed_client = embed_client
        self.store_id = store_id
        self.data_type = DataType(data_type)
        self.namespace = build_namespace(store_id, self.data_type)
        self._upsert_batch_size = upsert_batch_size

    ##########################################
    ################ WRITES ##################
    ##########################################

    async def upsert(self, chunks: list[DocumentChunk]) -> int:
        """Embed and write chunks into this namespace.

        Args:
            chunks (list[DocumentChunk]): Chunks with deterministic ids.

        Returns:
            int: Number of points written.
        """
        if not chunks:
            return 0
        vectors = await self._embed_client.do_embed([chunk.content for chunk in chunks])
        points = [
            {
                "id": make_point_id(chunk.id),
                "vector": vector,
                "payload": VectorPoint.from_chunk(chunk, self.namespace).model_dump(),
            }
            for chunk, vector in zip(chunks, vectors)
        ]
        for batch_start in range(0, len(points), self._upsert_batch_size):
            await self._rag_client.do_upsert_points(points[batch_start: batch_start + self._upsert_batch_size])
        return len(points)

    async def delete(self, ids: list[str]) -> None:
        await self._rag_client.do_delete_points(self.namespace, ids)

    async def delete_all(self) -> None:
        await self._rag_client.do_delete_namespace(self.namespace)

    ##########################################
    ################ READS ###################
    ##########################################

    async def similarity_search_with_score(self, query: str, k: int) -> list[tuple[DocumentChunk, float]]:
        vector = await self._embed_client.do_embed_one(query)
        return await self.similarity_search_by_vector(vector, k)

    async def similarity_search_by_vector(self, vector: list[float], k: int) -> list[tuple[DocumentChunk, float]]:
        """Search this namespace with a precomputed query vector.

        Returns:
            list[tuple[DocumentChunk, float]]: Chunks and their similarity, best first.
        """
        hits = await self._rag_client.do_search(self.namespace, vector, k)
        results: list[tuple[DocumentChunk, float]] = []
        for hit in hits:
            point = VectorPoint.model_validate(hit.payload)
            results.append((point.to_chunk(), hit.score))
        return results

    async def count(self) -> int:
        return await self._rag_client.do_count_namespace(self.namespace)

    async def list_ids(self) -> list[str]:
        return await self._rag_client.do_list_doc_ids(self.namespace)


class NamespacedStoreCache:
    """Bounded LRU of NamespacedStore handles keyed by (store_id, data_type).

    Handles hold no query results; the cache only avoids rebuilding them.
    """

    def __init__(
        self,
        rag_client: RAGClientInterface,
        embed_client: EmbedClientInterface,
        max_size: int = 256,
        upsert_batch_size: int = 100,
    ) -> None:
        self._rag_client = rag_client
        self._embed_client = embed_client
        self._max_size = max(1, max_size)
        self._upsert_batch_size = upsert_batch_size
        self._handles: OrderedDict[tuple[str, DataType], NamespacedStore] = OrderedDict()

    def get(self, store_id: str, data_type: DataType | str) -> NamespacedStore:
        key = (store_id, DataType(data_type))
        handle = self._handles.get(key)
        if handle is not None:
            self._handles.move_to_end(key)
            return handle
        handle = NamespacedStore(
            rag_client=self._rag_client,
            embed_client=self._embed_client,
            store_id=store_id,
            data_type=key[1],
            upsert_batch_size=self._upsert_batch_size,
        )
        self._handles[key] = handle
        while len(self._handles) > self._max_size:
            self._handles.popitem(last=False)
        return handle

    def evict_store(self, store_id: str) -> int:
        """Drop every handle of one store. Returns the number dropped."""
        keys = [key for key in self._handles if key[0] == store_id]
        for key in keys:
            del self._handles[key]
        return len(keys)

    def __len__(self) -> int:
        return len(self._handles)

    def __contains__(self, key: tuple[str, DataType]) -> bool:
        return (key[0], DataType(key[1])) in self._handles
