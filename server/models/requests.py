from pydantic import BaseModel, Field


class QueryRequest(BaseModel):
    query: str
    store_id: str
    agent_role: str = "orchestrator"
    conversation_id: str | None = None
    user_id: str | None = None
    top_k: int | None = Field(default=None, ge=1, le=100)
    score_threshold: float | None = Field(default=None, ge=0.0, le=1.0)
    data_types: list[str] | None = None


class ReconnectRequest(BaseModel):
    access_token: str = Field(min_length=1)
    platform_store_id: str | None = None


class SyncRequest(BaseModel):
    wait_timeout: float = Field(default=0.0, ge=0.0, le=300.0)
