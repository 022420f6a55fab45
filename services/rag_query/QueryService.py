"""Retrieval service.

Answers a question for one store: selects namespaces by agent role, searches
them with a single query embedding, merges the hits by score and lets the
language model write the answer. Never raises; failures degrade into an
apology answer.
"""

import asyncio
import math
import time

from services.rag_query.ConversationMemory import ConversationMemory
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.rag.NamespacedStore import NamespacedStoreCache
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import RetrievalError
from shared.models.namespace import DataType, parse_data_types
from shared.models.search import SearchContext, SearchMetadata, SearchOptions, SourceDocument, UnifiedRAGResult

TOP_K = 8
SCORE_THRESHOLD = 0.75

ROLE_DATA_TYPES: dict[str, list[DataType]] = {
    "product_manager": [DataType.PRODUCTS, DataType.STORE, DataType.ANALYTICS],
    "analytics": [DataType.ORDERS, DataType.ANALYTICS, DataType.CUSTOMERS, DataType.PRODUCTS],
    "customer_service": [DataType.CUSTOMERS, DataType.ORDERS, DataType.CONVERSATIONS, DataType.PRODUCTS],
    "marketing": [DataType.CUSTOMERS, DataType.ANALYTICS, DataType.PRODUCTS],
    "orchestrator": [DataType.PRODUCTS, DataType.ORDERS, DataType.STORE, DataType.ANALYTICS],
}
DEFAULT_DATA_TYPES = [DataType.PRODUCTS, DataType.STORE, DataType.ORDERS]
ROLE_ALIASES = {"product": "product_manager", "customer": "customer_service", "sales": "analytics"}

ROLE_FOCUS = {
    "product_manager": "You manage the product catalog: products, prices, variants, stock and categories.",
    "analytics": "You analyse sales performance: revenue, order volume, trends and best sellers.",
    "customer_service": "You support customers: order status, shipping, payments and customer history.",
    "marketing": "You plan marketing: customer segments, best sellers and promotion ideas.",
    "orchestrator": "You are the store owner's general assistant and cover every area of the store.",
}

QUERY_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("product_query", ("product", "catalog", "stock", "price", "variant", "producto", "catálogo")),
    ("sales_query", ("sale", "sold", "order", "revenue", "venta", "pedido", "orden")),
    ("customer_query", ("customer", "client", "buyer", "cliente")),
    ("analytics_query", ("analytic", "metric", "trend", "performance", "report", "métrica")),
]

NO_INFO_ANSWER = (
    "I couldn't find specific information about that in your store data. "
    "Try rephrasing your question, or sync your store if the data was added recently."
)
APOLOGY_ANSWER = (
    "Sorry, I ran into a technical problem while searching your store. "
    "Please try again in a moment or rephrase your question."
)


def normalize_role(agent_role: str | None) -> str:
    """Lower-cases a role, treats "-" like "_" and resolves aliases such as "product"."""
    role = (agent_role or "orchestrator").strip().lower().replace("-", "_").replace(" ", "_")
    return ROLE_ALIASES.get(role, role)


def get_data_types_for_role(agent_role: str, data_types: list[str] | None = None) -> list[DataType]:
    """
    Returns the data types to search. An explicit `data_types` list replaces
    the role's default.

    Raises:
        ValueError: If `data_types` holds an unknown type.
    """
    override = parse_data_types(data_types)
    if override:
        return override
    return list(ROLE_DATA_TYPES.get(normalize_role(agent_role), DEFAULT_DATA_TYPES))


def classify_query(query: str) -> str:
    lowered = query.lower()
    for query_type, keywords in QUERY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return query_type
    return "general_query"


def compute_confidence(scores: list[float]) -> float:
    """Mean similarity scaled by 1.2 and clamped to [0.1, 0.95]."""
    if not scores:
        return 0.1
    return min(0.95, max(0.1, (sum(scores) / len(scores)) * 1.2))


class QueryService:
    def __init__(
        self,
        helper_config: HelperConfig,
        store_cache: NamespacedStoreCache,
        embed_client: EmbedClientInterface,
        llm_client: LLMClientInterface,
        memory: ConversationMemory,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store_cache = store_cache
        self._embed_client = embed_client
        self._llm_client = llm_client
        self._memory = memory
        self.top_k = int(helper_config.get_number_val("RAG_TOP_K", default=TOP_K))
        self.score_threshold = float(helper_config.get_number_val("RAG_SCORE_THRESHOLD", default=SCORE_THRESHOLD))

    ##########################################
    ################ SEARCH ##################
    ##########################################

    async def search(self, query: str, context: SearchContext, options: SearchOptions | None = None) -> UnifiedRAGResult:
        """Answer a question from one store's indexed data.

        Args:
            query (str): The user's question.
            context (SearchContext): Store, agent role and optional conversation.
            options (SearchOptions | None): top_k, score_threshold and data_types overrides.

        Returns:
            UnifiedRAGResult: Always a well-formed result. Errors produce an
            apology with confidence 0.0 and query_type "error".
        """
        started = time.perf_counter()
        role = normalize_role(context.agent_role)
        try:
            return await self._search(query or "", context, options or SearchOptions(), role, started)
        except Exception as e:
            self.logging.error("Search failed for store %s (role %s): %s", context.store_id, role, e)
            return self._build_result(
                answer=APOLOGY_ANSWER,
                confidence=0.0,
                started=started,
                context=context,
                role=role,
                query_type="error",
                namespaces=[],
                reasoning="Technical error in the search pipeline",
            )

    async def _search(self, query: str, context: SearchContext, options: SearchOptions, role: str, started: float) -> UnifiedRAGResult:
        if not query.strip():
            return self._build_result(
                answer=NO_INFO_ANSWER, confidence=0.1, started=started, context=context, role=role,
                query_type="general_query", namespaces=[], reasoning="Empty question",
            )

        query_type = classify_query(query)
        top_k = options.top_k or self.top_k
        threshold = self.score_threshold if options.score_threshold is None else options.score_threshold
        stores = [self._store_cache.get(context.store_id, data_type) for data_type in get_data_types_for_role(role, options.data_types)]
        namespaces = [store.namespace for store in stores]

        sources = await self._retrieve(query, stores, top_k, threshold)
        if not sources:
            self.logging.info("No documents above %.2f for store %s in %s.", threshold, context.store_id, ", ".join(namespaces))
            return self._build_result(
                answer=NO_INFO_ANSWER, confidence=0.1, started=started, context=context, role=role,
                query_type=query_type, namespaces=namespaces, reasoning="No matching data found in your store",
            )

        messages = self._build_messages(query, context, role, sources)
        answer = (await self._llm_client.do_chat(messages)).strip()
        if context.conversation_id:
            self._memory.add_turn(context.store_id, context.conversation_id, query, answer)

        return self._build_result(
            answer=answer,
            confidence=compute_confidence([source.score for source in sources]),
            started=started,
            context=context,
            role=role,
            query_type=query_type,
            namespaces=namespaces,
            reasoning=f"Found {len(sources)} relevant sources in your store",
            sources=sources,
        )

    async def _retrieve(self, query: str, stores: list, top_k: int, threshold: float) -> list[SourceDocument]:
        """
        Searches every namespace with ceil(top_k / n) candidates, drops hits
        below the threshold per namespace and keeps the global top_k by score.

        Raises:
            RetrievalError: If every namespace search failed.
        """
        vector = await self._embed_client.do_embed_one(query)
        per_namespace = math.ceil(top_k / len(stores))
        results = await asyncio.gather(
            *[store.similarity_search_by_vector(vector, per_namespace) for store in stores],
            return_exceptions=True,
        )

        pooled: list[SourceDocument] = []
        failures = 0
        for store, result in zip(stores, results):
            if isinstance(result, BaseException):
                failures += 1
                self.logging.warning("Search in %s failed: %s", store.namespace, result)
                continue
            for chunk, score in result:
                if score < threshold or chunk.metadata.is_placeholder:
                    continue
                pooled.append(SourceDocument(
                    id=chunk.id,
                    content=chunk.content,
                    score=score,
                    namespace=store.namespace,
                    metadata=chunk.metadata.model_dump(exclude_none=True),
                ))
        if failures == len(stores):
            raise RetrievalError(f"All {failures} namespace searches failed.")

        pooled.sort(key=lambda source: source.score, reverse=True)
        return pooled[:top_k]

    ##########################################
    ################ PROMPTS #################
    ##########################################

    def _build_messages(self, query: str, context: SearchContext, role: str, sources: list[SourceDocument]) -> list[dict]:
        store_context = "\n\n".join(f"[{source.namespace}] {source.content}" for source in sources)
        system_prompt = (
            "You are a specialised e-commerce assistant for an online store.\n"
            f"Your role: {role}. {ROLE_FOCUS.get(role, ROLE_FOCUS['orchestrator'])}\n\n"
            f"Store context:\n{store_context}\n\n"
            "Instructions:\n"
            "- Answer in the language of the question, professionally and friendly.\n"
            "- Base your answer on the store context above and be specific.\n"
            "- If the context is not sufficient, say so clearly.\n"
            "- Keep answers concise but informative."
        )
        messages = [{"role": "system", "content": system_prompt}]
        if context.conversation_id:
            messages.extend(self._memory.get_messages(context.store_id, context.conversation_id))
        messages.append({"role": "user", "content": query})
        return messages

    ##########################################
    ################ HELPERS #################
    ##########################################

    @staticmethod
    def _build_result(
        answer: str,
        confidence: float,
        started: float,
        context: SearchContext,
        role: str,
        query_type: str,
        namespaces: list[str],
        reasoning: str,
        sources: list[SourceDocument] | None = None,
    ) -> UnifiedRAGResult:
        sources = sources or []
        return UnifiedRAGResult(
            answer=answer,
            sources=sources,
            confidence=confidence,
            processing_time_ms=int((time.perf_counter() - started) * 1000),
            metadata=SearchMetadata(
                query_type=query_type,
                agent_role=role,
                documents_found=len(sources),
                namespaces_searched=namespaces,
                store_id=context.store_id,
                conversation_id=context.conversation_id,
                reasoning=reasoning,
            ),
        )
