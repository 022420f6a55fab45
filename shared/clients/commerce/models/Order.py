"""Generic order model, backend-independent."""

from pydantic import BaseModel, field_validator

from shared.clients.commerce.models.common import flatten_localized


class OrderCustomer(BaseModel):
    id: str | None = None
    name: str | None = None
    email: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return None if value is None else str(value)


class OrderItem(BaseModel):
    product_id: str | None = None
    name: str | None = None
    price: str | None = None
    quantity: int = 0
    sku: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _flatten(cls, value):
        return flatten_localized(value)

    @field_validator("product_id", "price", mode="before")
    @classmethod
    def _stringify(cls, value):
        return None if value is None else str(value)


class Order(BaseModel):
    id: str
    number: str | None = None
    status: str | None = None
    payment_status: str | None = None
    shipping_status: str | None = None
    currency: str | None = None
    subtotal: str | None = None
    discount: str | None = None
    total: str | None = None
    shipping_cost: str | None = None
    customer: OrderCustomer | None = None
    products: list[OrderItem] = []
    created_at: str | None = None
    updated_at: str | None = None

    @field_validator("id", "number", "subtotal", "discount", "total", "shipping_cost", mode="before")
    @classmethod
    def _stringify(cls, value):
        return None if value is None else str(value)
