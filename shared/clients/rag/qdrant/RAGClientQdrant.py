from shared.clients.rag.RAGClientInterface import DOC_ID_FIELD, NAMESPACE_FIELD, RAGClientInterface
from shared.clients.rag.models.Scroll import ScoredPoint, ScrollPage, StoredPoint
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class RAGClientQdrant(RAGClientInterface):
    """Qdrant REST API. All tenants share RAG_QDRANT_COLLECTION."""

    ACTION_PATHS = {
        "exists": "/exists",
        "create": "",
        "index": "/index",
        "upsert": "/points",
        "search": "/points/search",
        "count": "/points/count",
        "scroll": "/points/scroll",
        "delete": "/points/delete",
    }

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None)
        self._api_key = self.get_config_val("API_KEY", default="")
        self._collection_name = self.get_config_val("COLLECTION", default="commerce_rag")

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_engine_name(self) -> str:
        return "Qdrant"

    def _get_required_config(self) -> list[EnvConfig]:
        return [EnvConfig(env_key="BASE_URL", val_type="string", default=None)]

    def _get_auth_header(self) -> dict:
        return {"api-key": self._api_key} if self._api_key else {}

    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint(self, action: str) -> str:
        return f"/collections/{self._collection_name}{self.ACTION_PATHS[action]}"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_filter(self, namespace: str, doc_ids: list[str] | None = None) -> dict:
        must = [{"key": NAMESPACE_FIELD, "match": {"value": namespace}}]
        if doc_ids is not None:
            must.append({"key": DOC_ID_FIELD, "match": {"any": list(doc_ids)}})
        return {"must": must}

    def get_create_collection_payload(self, vector_size: int, distance: str) -> dict:
        return {"vectors": {"size": vector_size, "distance": distance}}

    def get_payload_index_payload(self, field_name: str) -> dict:
        return {"field_name": field_name, "field_schema": "keyword"}

    def get_search_payload(self, vector: list[float], search_filter: dict, limit: int) -> dict:
        return {"vector": vector, "filter": search_filter, "limit": limit, "with_payload": True, "with_vector": False}

    def get_scroll_payload(self, search_filter: dict, fields: list[str], limit: int, offset: str | int | None) -> dict:
        payload = {"filter": search_filter, "limit": limit, "with_payload": fields, "with_vector": False}
        if offset is not None:
            payload["offset"] = offset
        return payload

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_exists(self, raw_response: dict) -> bool:
        return bool((raw_response.get("result") or {}).get("exists"))

    def extract_search_results(self, raw_response: dict) -> list[ScoredPoint]:
        return [
            ScoredPoint(id=str(hit.get("id")), score=float(hit.get("score", 0.0)), payload=hit.get("payload") or {})
            for hit in raw_response.get("result") or []
        ]

    def extract_count(self, raw_response: dict) -> int:
        return int((raw_response.get("result") or {}).get("count", 0))

    def extract_scroll_page(self, raw_response: dict) -> ScrollPage:
        result = raw_response.get("result") or {}
        return ScrollPage(
            points=[StoredPoint(id=point.get("id"), payload=point.get("payload") or {}) for point in result.get("points", [])],
            next_page_offset=result.get("next_page_offset"),
        )
