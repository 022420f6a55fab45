"""Document processor.

Turns store records into readable text, splits it into overlapping chunks
and attaches structured metadata. Chunk ids are derived from the record id,
so re-indexing a record overwrites its previous chunks instead of adding new ones.
"""

import html
import re
from datetime import datetime, timezone

from shared.clients.commerce.models.Analytics import StoreAnalytics
from shared.clients.commerce.models.Customer import Customer
from shared.clients.commerce.models.Order import Order
from shared.clients.commerce.models.Product import Product
from shared.clients.commerce.models.Store import StoreProfile
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import ChunkMetadata, DocumentChunk
from shared.models.namespace import DataType, build_placeholder_id

CHUNK_SIZE = 1000       # characters per text chunk
CHUNK_OVERLAP = 100     # character overlap between consecutive chunks

_HTML_TAG = re.compile(r"<[^>]+>")
_CONTROL_CHARS = re.compile(r"[\x00-\x1F\x7F]")
_WHITESPACE = re.compile(r"\s+")
_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")


class DocumentProcessor:
    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()
        self.chunk_size = int(helper_config.get_number_val("SYNC_CHUNK_SIZE", default=CHUNK_SIZE))
        self.chunk_overlap = int(helper_config.get_number_val("SYNC_CHUNK_OVERLAP", default=CHUNK_OVERLAP))
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(f"SYNC_CHUNK_OVERLAP ({self.chunk_overlap}) must be smaller than SYNC_CHUNK_SIZE ({self.chunk_size}).")

    ##########################################
    ############### CHUNKING #################
    ##########################################

    @staticmethod
    def clean_text(text: str) -> str:
        """Strip HTML markup and control characters and collapse whitespace."""
        if not text:
            return ""
        text = html.unescape(_HTML_TAG.sub(" ", text))
        text = _WHITESPACE.sub(" ", text)
        return _CONTROL_CHARS.sub("", text).strip()

    def chunk_text(self, text: str, max_size: int | None = None, overlap: int | None = None) -> list[str]:
        """Split text into chunks of at most `max_size` characters along sentence boundaries.

        Consecutive chunks share up to `overlap` trailing characters, cut at a
        word boundary. Sentences longer than `max_size` are split on words.

        Args:
            text (str): Cleaned text.
            max_size (int | None): Maximum chunk length, defaults to SYNC_CHUNK_SIZE.
            overlap (int | None): Overlap length, defaults to SYNC_CHUNK_OVERLAP.

        Returns:
            list[str]: Non-empty chunks in order.
        """
        max_size = max_size or self.chunk_size
        overlap = self.chunk_overlap if overlap is None else overlap
        text = text.strip()
        if not text:
            return []
        if len(text) <= max_size:
            return [text]

        chunks: list[str] = []
        current = ""
        for sentence in (s.strip() for s in _SENTENCE_END.split(text)):
            if not sentence:
                continue
            if len(sentence) > max_size:
                if current:
                    chunks.append(current)
                    current = ""
                chunks.extend(self.split_long_sentence(sentence, max_size, overlap))
                continue
            candidate = f"{current} {sentence}" if current else sentence
            if len(candidate) <= max_size:
                current = candidate
                continue
            chunks.append(current)
            tail = self._get_overlap(current, overlap)
            current = f"{tail} {sentence}" if tail and len(tail) + 1 + len(sentence) <= max_size else sentence
        if current:
            chunks.append(current)
        return [chunk for chunk in chunks if chunk]

    @staticmethod
    def split_long_sentence(sentence: str, max_size: int, overlap: int) -> list[str]:
        """Split a single over-long sentence, preferring word boundaries in the last 30% of a chunk."""
        chunks: list[str] = []
        remaining = sentence
        while len(remaining) > max_size:
            end = max_size
            last_space = remaining.rfind(" ", 0, max_size)
            if last_space > max_size * 0.7:
                end = last_space
            chunks.append(remaining[:end].strip())
            remaining = remaining[max(end - overlap, 1):]
        if remaining.strip():
            chunks.append(remaining.strip())
        return chunks

    @staticmethod
    def _get_overlap(text: str, overlap: int) -> str:
        if overlap <= 0:
            return ""
        if len(text) <= overlap:
            return text
        tail = text[-overlap:]
        space = tail.find(" ")
        return tail[space + 1:] if space > 0 else tail

    def process_document(self, content: str, data_type: DataType, store_id: str, source_id: str, **metadata) -> list[DocumentChunk]:
        """Clean, chunk and wrap one record's text.

        Chunk ids have the form "{type}-{store_id}-{source_id}-{index}".

        Args:
            content (str): Readable record text.
            data_type (DataType): Namespace type of the record.
            store_id (str): Owning store.
            source_id (str): Record id on the platform.
            **metadata: Type-specific ChunkMetadata fields.

        Returns:
            list[DocumentChunk]: The chunks, empty if the record has no text.
        """
        data_type = DataType(data_type)
        cleaned = self.clean_text(content)
        pieces = self.chunk_text(cleaned)
        if not pieces:
            self.logging.debug("Skipping empty %s record %s for store %s.", data_type.value, source_id, store_id)
            return []

        timestamp = datetime.now(timezone.utc).isoformat()
        source = metadata.pop("source", "commerce_api")
        return [
            DocumentChunk(
                id=f"{data_type.value}-{store_id}-{source_id}-{index}",
                content=piece,
                metadata=ChunkMetadata(
                    type=data_type.value,
                    store_id=store_id,
                    source=source,
                    timestamp=timestamp,
                    source_id=str(source_id),
                    chunk_index=index,
                    total_chunks=len(pieces),
                    **metadata,
                ),
            )
            for index, piece in enumerate(pieces)
        ]

    ##########################################
    ############### RECORDS ##################
    ##########################################

    def process_store(self, store_id: str, store: StoreProfile) -> list[DocumentChunk]:
        return self.process_document(self.build_store_text(store), DataType.STORE, store_id, store.id, category="profile")

    def process_product(self, store_id: str, product: Product) -> list[DocumentChunk]:
        return self.process_document(
            self.build_product_text(product),
            DataType.PRODUCTS,
            store_id,
            product.id,
            product_id=product.id,
            product_name=product.name,
            price=product.price,
            category=product.category_name,
        )

    def process_order(self, store_id: str, order: Order) -> list[DocumentChunk]:
        return self.process_document(
            self.build_order_text(order),
            DataType.ORDERS,
            store_id,
            order.id,
            order_id=order.id,
            order_status=order.status,
            order_total=order.total,
            customer_id=order.customer.id if order.customer else None,
        )

    def process_customer(self, store_id: str, customer: Customer) -> list[DocumentChunk]:
        return self.process_document(
            self.build_customer_text(customer),
            DataType.CUSTOMERS,
            store_id,
            customer.id,
            customer_id=customer.id,
            customer_email=customer.email,
        )

    def process_analytics(self, store_id: str, analytics: StoreAnalytics) -> list[DocumentChunk]:
        # one snapshot per store, refreshed in place
        return self.process_document(
            self.build_analytics_text(analytics),
            DataType.ANALYTICS,
            store_id,
            analytics.period,
            period=analytics.period,
            category="metrics",
        )

    @staticmethod
    def create_placeholder(store_id: str, data_type: DataType) -> DocumentChunk:
        """Build the single synthetic document that makes an empty namespace queryable."""
        data_type = DataType(data_type)
        return DocumentChunk(
            id=build_placeholder_id(store_id, data_type),
            content=f"Namespace initialized for {data_type.value} data in store {store_id}",
            metadata=ChunkMetadata(
                type=data_type.value,
                store_id=store_id,
                source="initialization",
                timestamp=datetime.now(timezone.utc).isoformat(),
                is_placeholder=True,
                category="system",
            ),
        )

    ##########################################
    ############# TEXT BUILDERS ##############
    ##########################################

    @staticmethod
    def build_store_text(store: StoreProfile) -> str:
        parts = []
        if store.name:
            parts.append(f"Store: {store.name}.")
        if store.business_name and store.business_name != store.name:
            parts.append(f"Business name: {store.business_name}.")
        if store.description:
            parts.append(f"Description: {store.description}")
        if store.url:
            parts.append(f"Website: {store.url}.")
        if store.email:
            parts.append(f"Contact email: {store.email}.")
        if store.phone:
            parts.append(f"Phone: {store.phone}.")
        if store.address:
            parts.append(f"Address: {store.address}.")
        if store.country:
            parts.append(f"Country: {store.country}.")
        if store.currency:
            parts.append(f"Currency: {store.currency}.")
        if store.language:
            parts.append(f"Language: {store.language}.")
        return "\n".join(parts)

    @staticmethod
    def build_product_text(product: Product) -> str:
        parts = []
        if product.name:
            parts.append(f"Product: {product.name}.")
        if product.description:
            parts.append(f"Description: {product.description}")
        categories = [c.name for c in product.categories if c.name]
        if categories:
            parts.append(f"Category: {', '.join(categories)}.")
        if product.brand:
            parts.append(f"Brand: {product.brand}.")
        if product.price:
            parts.append(f"Price: ${product.price}.")
        if product.published is False:
            parts.append("Status: not published.")
        variant_texts = []
        for variant in product.variants:
            details = []
            if variant.values:
                details.append(", ".join(variant.values))
            if variant.price:
                details.append(f"price ${variant.price}")
            if variant.promotional_price:
                details.append(f"promotional price ${variant.promotional_price}")
            if variant.stock is not None:
                details.append(f"stock {variant.stock}")
            if details:
                variant_texts.append(" - ".join(details))
        if variant_texts:
            parts.append(f"Variants: {'; '.join(variant_texts)}.")
        if product.seo_title:
            parts.append(f"SEO title: {product.seo_title}.")
        if product.seo_description:
            parts.append(f"SEO description: {product.seo_description}")
        if product.tags:
            parts.append(f"Tags: {', '.join(product.tags)}.")
        return "\n".join(parts)

    @staticmethod
    def build_order_text(order: Order) -> str:
        parts = [f"Order ID: {order.id}."]
        if order.number:
            parts.append(f"Order number: {order.number}.")
        if order.status:
            parts.append(f"Status: {order.status}.")
        if order.payment_status:
            parts.append(f"Payment status: {order.payment_status}.")
        if order.shipping_status:
            parts.append(f"Shipping status: {order.shipping_status}.")
        if order.total:
            parts.append(f"Total: ${order.total}{' ' + order.currency if order.currency else ''}.")
        if order.subtotal:
            parts.append(f"Subtotal: ${order.subtotal}.")
        if order.discount and order.discount not in ("0", "0.00"):
            parts.append(f"Discount: ${order.discount}.")
        if order.shipping_cost:
            parts.append(f"Shipping cost: ${order.shipping_cost}.")
        if order.customer:
            if order.customer.name:
                parts.append(f"Customer: {order.customer.name}.")
            if order.customer.email:
                parts.append(f"Customer email: {order.customer.email}.")
        if order.products:
            items = []
            for item in order.products:
                details = [item.name or "Unnamed product"]
                if item.quantity:
                    details.append(f"quantity {item.quantity}")
                if item.price:
                    details.append(f"price ${item.price}")
                items.append(" - ".join(details))
            parts.append(f"Products: {'; '.join(items)}.")
        if order.created_at:
            parts.append(f"Created: {order.created_at}.")
        if order.updated_at:
            parts.append(f"Updated: {order.updated_at}.")
        return "\n".join(parts)

    @staticmethod
    def build_customer_text(customer: Customer) -> str:
        parts = [f"Customer ID: {customer.id}."]
        if customer.name:
            parts.append(f"Name: {customer.name}.")
        if customer.email:
            parts.append(f"Email: {customer.email}.")
        if customer.phone:
            parts.append(f"Phone: {customer.phone}.")
        if customer.total_spent:
            currency = f" {customer.total_spent_currency}" if customer.total_spent_currency else ""
            parts.append(f"Total spent: ${customer.total_spent}{currency}.")
        if customer.orders_count:
            parts.append(f"Number of orders: {customer.orders_count}.")
        if customer.last_order_id:
            parts.append(f"Last order: {customer.last_order_id}.")
        if customer.default_address:
            address = customer.default_address
            location = [value for value in (address.city, address.province, address.country) if value]
            if location:
                parts.append(f"Location: {', '.join(location)}.")
        if customer.created_at:
            parts.append(f"Registered: {customer.created_at}.")
        return "\n".join(parts)

    @staticmethod
    def build_analytics_text(analytics: StoreAnalytics) -> str:
        currency = f" {analytics.currency}" if analytics.currency else ""
        parts = [
            f"Analytics report for period: {analytics.period.replace('_', ' ')}.",
            f"Revenue today: ${analytics.revenue.today:.2f}{currency}. Revenue this week: ${analytics.revenue.week:.2f}{currency}. Revenue this month: ${analytics.revenue.month:.2f}{currency}.",
            f"Paid orders today: {analytics.orders.today}. Paid orders this week: {analytics.orders.week}. Paid orders this month: {analytics.orders.month}.",
            f"Pending orders: {analytics.orders.pending}.",
            f"Average order value: ${analytics.average_order_value:.2f}{currency}.",
        ]
        if analytics.top_products:
            best = "; ".join(
                f"{product.name} ({product.quantity} sold, ${product.revenue:.2f} revenue)" for product in analytics.top_products
            )
            parts.append(f"Top selling products: {best}.")
        return "\n".join(parts)
