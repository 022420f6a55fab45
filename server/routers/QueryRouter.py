from fastapi import APIRouter, Depends, HTTPException, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import QueryRequest
from shared.models.namespace import parse_data_types
from shared.models.search import SearchContext, SearchOptions, UnifiedRAGResult

router = APIRouter(prefix="/query", tags=["query"])


@router.post("")
async def query_store(
    request: Request,
    body: QueryRequest,
    _: None = Depends(verify_api_key),
) -> UnifiedRAGResult:
    """Answer a question from one store's indexed data.

    Args:
        request (Request): FastAPI request (provides app.state.rag_engine).
        body (QueryRequest): Question, store, agent role and search overrides.
        _ (None): Auth dependency result (unused).

    Returns:
        UnifiedRAGResult: The answer, its sources and a confidence score.

    Raises:
        HTTPException: 422 if data_types holds an unknown type.
    """
    try:
        parse_data_types(body.data_types)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=f"Unknown data type: {e}")

    rag_engine = request.app.state.rag_engine
    return await rag_engine.search(
        body.query,
        SearchContext(
            store_id=body.store_id,
            agent_role=body.agent_role,
            conversation_id=body.conversation_id,
            user_id=body.user_id,
        ),
        SearchOptions(top_k=body.top_k, score_threshold=body.score_threshold, data_types=body.data_types),
    )
