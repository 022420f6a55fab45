from abc import abstractmethod
from typing import Any

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.clients.rag.models.Scroll import ScoredPoint, ScrollPage
from shared.helper.HelperConfig import HelperConfig

NAMESPACE_FIELD = "namespace"
DOC_ID_FIELD = "doc_id"

# payload fields with a keyword index
INDEXED_FIELDS = (NAMESPACE_FIELD, DOC_ID_FIELD)


class RAGClientInterface(ClientInterface):
    """Vector store holding every tenant in one collection.

    Tenants are separated by the ``namespace`` payload field. Every data
    operation below takes a namespace and refuses to run without one, so no
    request can ever touch points of another namespace.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.scroll_page_size = int(helper_config.get_number_val("RAG_SCROLL_PAGE_SIZE", default=1000))

    def _get_client_type(self) -> str:
        return "rag"

    ##########################################
    ########### ENGINE SPECIFICS #############
    ##########################################

    @abstractmethod
    def _get_endpoint(self, action: str) -> str:
        """
        Returns the endpoint path of a collection action.

        Args:
            action (str): One of "exists", "create", "index", "upsert", "search",
                "count", "scroll" and "delete".
        """
        pass

    @abstractmethod
    def get_filter(self, namespace: str, doc_ids: list[str] | None = None) -> dict:
        """Engine filter matching one namespace, optionally narrowed to logical document ids."""
        pass

    @abstractmethod
    def get_create_collection_payload(self, vector_size: int, distance: str) -> dict:
        pass

    @abstractmethod
    def get_payload_index_payload(self, field_name: str) -> dict:
        pass

    @abstractmethod
    def get_search_payload(self, vector: list[float], search_filter: dict, limit: int) -> dict:
        pass

    @abstractmethod
    def get_scroll_payload(self, search_filter: dict, fields: list[str], limit: int, offset: str | int | None) -> dict:
        pass

    @abstractmethod
    def extract_exists(self, raw_response: dict) -> bool:
        pass

    @abstractmethod
    def extract_search_results(self, raw_response: dict) -> list[ScoredPoint]:
        """Scored hits, best first."""
        pass

    @abstractmethod
    def extract_count(self, raw_response: dict) -> int:
        pass

    @abstractmethod
    def extract_scroll_page(self, raw_response: dict) -> ScrollPage:
        pass

    def _require_namespace(self, namespace: str) -> str:
        if not namespace:
            raise ValueError("A namespace is required for every vector store operation.")
        return namespace

    async def _post(self, action: str, body: dict, wait: bool = False) -> dict:
        response = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint(action),
            json=body,
            params={"wait": "true"} if wait else None,
            raise_on_error=True,
        )
        return response.json()

    ##########################################
    ############### COLLECTION ###############
    ##########################################

    async def do_existence_check(self) -> bool:
        response = await self.do_request(method="GET", endpoint=self._get_endpoint("exists"), raise_on_error=True)
        return self.extract_exists(response.json())

    async def do_ensure_collection(self, vector_size: int, distance: str = "Cosine") -> bool:
        """Create the shared collection and its keyword indexes unless it exists.

        Returns:
            bool: True if this call created the collection.
        """
        if await self.do_existence_check():
            return False
        self.logging.info("Creating %s collection (vector size %d, distance %s).", self.get_engine_name(), vector_size, distance)
        await self.do_request(
            method="PUT",
            endpoint=self._get_endpoint("create"),
            json=self.get_create_collection_payload(vector_size, distance),
            raise_on_error=True,
        )
        for field_name in INDEXED_FIELDS:
            await self.do_request(
                method="PUT",
                endpoint=self._get_endpoint("index"),
                json=self.get_payload_index_payload(field_name),
                raise_on_error=True,
            )
        return True

    ##########################################
    ################ POINTS ##################
    ##########################################

    async def do_upsert_points(self, points: list[dict[str, Any]]) -> httpx.Response:
        """Insert or replace ``{"id", "vector", "payload"}`` points.

        Raises:
            ValueError: If a point payload carries no namespace.
        """
        for point in points:
            if not (point.get("payload") or {}).get(NAMESPACE_FIELD):
                raise ValueError(f"Point {point.get('id')} has no namespace in its payload.")
        return await self.do_request(
            method="PUT",
            endpoint=self._get_endpoint("upsert"),
            json={"points": points},
            params={"wait": "true"},
            raise_on_error=True,
        )

    async def do_search(self, namespace: str, vector: list[float], limit: int) -> list[ScoredPoint]:
        search_filter = self.get_filter(self._require_namespace(namespace))
        return self.extract_search_results(await self._post("search", self.get_search_payload(vector, search_filter, limit)))

    async def do_count_namespace(self, namespace: str) -> int:
        search_filter = self.get_filter(self._require_namespace(namespace))
        return self.extract_count(await self._post("count", {"filter": search_filter, "exact": True}))

    async def do_list_doc_ids(self, namespace: str) -> list[str]:
        """Logical document ids of a namespace, following scroll cursors until exhausted."""
        search_filter = self.get_filter(self._require_namespace(namespace))
        doc_ids: list[str] = []
        offset: str | int | None = None
        pages = 0
        while True:
            page = self.extract_scroll_page(
                await self._post("scroll", self.get_scroll_payload(search_filter, [DOC_ID_FIELD], self.scroll_page_size, offset))
            )
            pages += 1
            doc_ids.extend(str(point.payload[DOC_ID_FIELD]) for point in page.points if DOC_ID_FIELD in point.payload)
            offset = page.next_page_offset
            if offset is None:
                break
        self.logging.debug("Listed %d documents of %s in %d page(s).", len(doc_ids), namespace, pages)
        return doc_ids

    async def do_delete_points(self, namespace: str, doc_ids: list[str]) -> None:
        """Delete the chunks of the given logical documents inside one namespace."""
        if not doc_ids:
            return
        await self._post("delete", {"filter": self.get_filter(self._require_namespace(namespace), doc_ids)}, wait=True)

    async def do_delete_namespace(self, namespace: str) -> None:
        await self._post("delete", {"filter": self.get_filter(self._require_namespace(namespace))}, wait=True)
