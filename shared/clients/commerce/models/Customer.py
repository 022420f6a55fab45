"""Generic customer model, backend-independent."""

from pydantic import BaseModel, field_validator

from shared.clients.commerce.models.common import Address


class Customer(BaseModel):
    id: str
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    total_spent: str | None = None
    total_spent_currency: str | None = None
    orders_count: int | None = None
    last_order_id: str | None = None
    default_address: Address | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @field_validator("id", "last_order_id", "total_spent", mode="before")
    @classmethod
    def _stringify(cls, value):
        return None if value is None else str(value)
