"""Generic store profile model, backend-independent."""

from pydantic import BaseModel, field_validator

from shared.clients.commerce.models.common import flatten_localized


class StoreProfile(BaseModel):
    """
    The store profile as returned by a commerce platform client.
    """

    id: str
    name: str | None = None
    description: str | None = None
    url: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    country: str | None = None
    currency: str | None = None
    language: str | None = None
    business_name: str | None = None
    created_at: str | None = None

    @field_validator("name", "description", mode="before")
    @classmethod
    def _flatten(cls, value):
        return flatten_localized(value)

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value)
