"""Generic product model, backend-independent."""

from pydantic import BaseModel, field_validator

from shared.clients.commerce.models.common import flatten_localized


class ProductCategory(BaseModel):
    id: str | None = None
    name: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _flatten(cls, value):
        return flatten_localized(value)

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return None if value is None else str(value)


class ProductVariant(BaseModel):
    id: str | None = None
    sku: str | None = None
    price: str | None = None
    promotional_price: str | None = None
    stock: int | None = None
    values: list[str] = []

    @field_validator("values", mode="before")
    @classmethod
    def _flatten_values(cls, value):
        if not value:
            return []
        if not isinstance(value, list):
            value = [value]
        return [str(flatten_localized(item)) for item in value if flatten_localized(item)]

    @field_validator("id", "price", "promotional_price", mode="before")
    @classmethod
    def _stringify(cls, value):
        return None if value is None else str(value)


class Product(BaseModel):
    """
    A single product with the fields the document processor turns into text.
    """

    id: str
    name: str | None = None
    description: str | None = None
    handle: str | None = None
    brand: str | None = None
    published: bool | None = None
    categories: list[ProductCategory] = []
    variants: list[ProductVariant] = []
    tags: list[str] = []
    seo_title: str | None = None
    seo_description: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @field_validator("name", "description", "handle", "seo_title", "seo_description", mode="before")
    @classmethod
    def _flatten(cls, value):
        return flatten_localized(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value):
        if not value:
            return []
        if isinstance(value, str):
            return [tag.strip() for tag in value.split(",") if tag.strip()]
        return [str(tag) for tag in value]

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value)

    @property
    def price(self) -> str | None:
        """Price of the first variant, the platform's display price."""
        for variant in self.variants:
            if variant.price:
                return variant.price
        return None

    @property
    def category_name(self) -> str | None:
        for category in self.categories:
            if category.name:
                return category.name
        return None
