import pytest

from services.store_rag_sync.DocumentProcessor import DocumentProcessor
from shared.clients.commerce.models.Customer import Customer
from shared.clients.commerce.models.Product import Product
from shared.models.namespace import build_placeholder_id


@pytest.fixture
def processor(helper_config) -> DocumentProcessor:
    return DocumentProcessor(helper_config)


class TestCleanText:
    def test_strips_markup_and_control_characters(self):
        assert DocumentProcessor.clean_text("<p>Red&nbsp;Mug</p>\n\n\tnice\x00") == "Red Mug nice"

    def test_empty(self):
        assert DocumentProcessor.clean_text("") == ""
        assert DocumentProcessor.clean_text(None) == ""


class TestChunkText:
    """Sentence-aware chunking with overlap."""

    def test_short_text_is_one_chunk(self, processor):
        assert processor.chunk_text("Red mug. Blue teapot.") == ["Red mug. Blue teapot."]

    def test_blank_text_has_no_chunks(self, processor):
        assert processor.chunk_text("   ") == []

    def test_chunks_respect_size_and_overlap(self, processor):
        text = " ".join(f"Sentence {index:02d} talks about red mugs." for index in range(12))

        chunks = processor.chunk_text(text, max_size=100, overlap=20)

        assert len(chunks) > 1
        assert all(0 < len(chunk) <= 100 for chunk in chunks)
        for previous, following in zip(chunks, chunks[1:]):
            tail = DocumentProcessor._get_overlap(previous, 20)
            assert tail
            assert following.startswith(tail)

    def test_no_overlap(self, processor):
        text = " ".join(f"Sentence {index:02d} talks about red mugs." for index in range(12))
        chunks = processor.chunk_text(text, max_size=100, overlap=0)
        assert " ".join(chunks) == text

    def test_long_sentence_is_split_on_words(self, processor):
        chunks = processor.chunk_text("word " * 100, max_size=100, overlap=10)
        assert len(chunks) > 4
        assert all(len(chunk) <= 100 for chunk in chunks)
        assert all(not chunk.startswith(" ") for chunk in chunks)

    def test_overlap_must_be_smaller_than_size(self, helper_config, monkeypatch):
        monkeypatch.setenv("SYNC_CHUNK_SIZE", "100")
        monkeypatch.setenv("SYNC_CHUNK_OVERLAP", "100")
        with pytest.raises(ValueError):
            DocumentProcessor(helper_config)


class TestProcessDocument:
    """Chunk ids and metadata."""

    def test_ids_are_deterministic(self, helper_config, monkeypatch):
        monkeypatch.setenv("SYNC_CHUNK_SIZE", "60")
        monkeypatch.setenv("SYNC_CHUNK_OVERLAP", "10")
        processor = DocumentProcessor(helper_config)
        text = " ".join(f"Sentence {index} about the product." for index in range(6))

        first = processor.process_document(text, "products", "S1", "p9")
        second = processor.process_document(text, "products", "S1", "p9")

        assert [chunk.id for chunk in first] == [f"products-S1-p9-{index}" for index in range(len(first))]
        assert [chunk.id for chunk in first] == [chunk.id for chunk in second]
        assert {chunk.metadata.total_chunks for chunk in first} == {len(first)}
        assert [chunk.metadata.chunk_index for chunk in first] == list(range(len(first)))

    def test_empty_record_yields_nothing(self, processor):
        assert processor.process_document("<br/>", "orders", "S1", "o1") == []

    def test_product_metadata(self, processor):
        product = Product(
            id=42,
            name={"es": "Taza Roja", "en": "Red Mug"},
            categories=[{"id": 7, "name": "Kitchen"}],
            variants=[{"price": 10, "stock": 3, "values": ["Large"]}],
        )

        [chunk] = processor.process_product("S1", product)

        assert chunk.id == "products-S1-42-0"
        assert chunk.metadata.type == "products"
        assert chunk.metadata.store_id == "S1"
        assert chunk.metadata.source == "commerce_api"
        assert chunk.metadata.product_id == "42"
        assert chunk.metadata.price == "10"
        assert chunk.metadata.category == "Kitchen"
        assert "Variants: Large - price $10 - stock 3." in chunk.content

    def test_customer_text(self, processor):
        [chunk] = processor.process_customer("S1", Customer(id="c1", name="Ana Lopez", email="ana@example.com"))
        assert chunk.content.startswith("Customer ID: c1.")
        assert chunk.metadata.customer_email == "ana@example.com"


class TestPlaceholder:
    def test_placeholder_document(self):
        chunk = DocumentProcessor.create_placeholder("S1", "orders")
        assert chunk.id == build_placeholder_id("S1", "orders") == "placeholder-S1-orders"
        assert chunk.metadata.is_placeholder
        assert chunk.metadata.source == "initialization"
        assert chunk.content == "Namespace initialized for orders data in store S1"
