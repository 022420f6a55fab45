from pydantic import BaseModel


class UserLoginAccepted(BaseModel):
    status: str = "accepted"
    user_id: str


class HealthResponse(BaseModel):
    status: str
    version: str
    rag_engine_ready: bool
    active_periodic_syncs: int
    pending_background_tasks: int
