from pydantic import BaseModel, field_validator


class TenantRecord(BaseModel):
    """
    One row of the tenant (store) table.

    Attributes:
        id:                 Internal store id, used as storeId everywhere in this service.
        user_id:            Owning user.
        name:               Display name of the store.
        platform_store_id:  The store's id on the commerce platform.
        access_token:       Last known platform access token.
        is_active:          False once the store was disconnected.
        last_sync_at:       ISO timestamp of the last successful sync.
    """

    id: str
    user_id: str | None = None
    name: str | None = None
    platform_store_id: str | None = None
    access_token: str | None = None
    is_active: bool = True
    last_sync_at: str | None = None

    @field_validator("id", "user_id", "platform_store_id", mode="before")
    @classmethod
    def _stringify(cls, value):
        return None if value is None else str(value)

    def has_credentials(self) -> bool:
        return bool(self.access_token and self.platform_store_id)
