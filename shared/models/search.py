"""Retrieval contract exposed to the agent layer."""

from pydantic import BaseModel, Field


class SearchContext(BaseModel):
    store_id: str
    agent_role: str = "orchestrator"
    conversation_id: str | None = None
    user_id: str | None = None


class SearchOptions(BaseModel):
    """Per-call overrides. Unset values fall back to RAG_TOP_K / RAG_SCORE_THRESHOLD."""

    top_k: int | None = Field(default=None, ge=1, le=100)
    score_threshold: float | None = Field(default=None, ge=0.0, le=1.0)
    data_types: list[str] | None = None


class SourceDocument(BaseModel):
    id: str
    content: str
    score: float
    namespace: str
    metadata: dict = {}


class SearchMetadata(BaseModel):
    query_type: str
    agent_role: str
    documents_found: int
    namespaces_searched: list[str]
    store_id: str
    conversation_id: str | None = None
    reasoning: str


class UnifiedRAGResult(BaseModel):
    answer: str
    sources: list[SourceDocument] = []
    confidence: float
    processing_time_ms: int
    metadata: SearchMetadata
