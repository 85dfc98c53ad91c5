"""API routes for ingestion and catalog questions."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from catalog_rag.api.deps import ServiceContainer, get_services, require_ingest_secret
from catalog_rag.feeds.models import FeedSpec
from catalog_rag.ingestion.models import IngestSummary
from catalog_rag.logging_config import get_logger
from catalog_rag.rag.models import RAGQuery, RAGResponse, SourceAttribution

logger = get_logger(__name__)


# Create router
router = APIRouter(prefix="/api/v1", tags=["Catalog"])


class IngestRequest(FeedSpec):
    """Request body for feed ingestion."""


class QueryRequest(BaseModel):
    """Request body for a catalog question."""

    question: str = Field(description="Question to answer")
    top_k: int = Field(default=5, ge=1, le=20, description="Number of products")
    score_threshold: float | None = Field(
        default=None,
        ge=-1.0,
        le=1.0,
        description="Minimum cosine similarity",
    )


class QueryResponse(BaseModel):
    """Response to a catalog question."""

    answer: str = Field(description="Generated answer")
    sources: list[SourceAttribution] = Field(description="Products used as context")
    model: str = Field(description="Model that answered")
    tokens_used: int = Field(description="Tokens consumed")


class AskRequest(BaseModel):
    """Request body for a single-shot support question."""

    message: str = Field(description="Customer message")


class AskResponse(BaseModel):
    """Reply to a single-shot support question."""

    answer: str
    model: str


class ModelsResponse(BaseModel):
    """Model ids offered by the generation provider."""

    models: list[str]


class StoreResponse(BaseModel):
    """Current vector store state."""

    size: int
    dimensions: int


@router.post(
    "/ingest",
    response_model=IngestSummary,
    dependencies=[Depends(require_ingest_secret)],
)
async def ingest_endpoint(
    request: IngestRequest,
    services: ServiceContainer = Depends(get_services),
) -> IngestSummary:
    """Download a product feed and index it in the store."""
    return await services.ingestion.ingest(request)


@router.post("/query", response_model=QueryResponse)
async def query_endpoint(
    request: QueryRequest,
    services: ServiceContainer = Depends(get_services),
) -> QueryResponse:
    """Answer a question from the indexed catalog."""
    rag_response = await services.rag.query(query_request_to_rag_query(request))
    return rag_response_to_query_response(rag_response)


@router.post("/ask", response_model=AskResponse)
async def ask_endpoint(
    request: AskRequest,
    services: ServiceContainer = Depends(get_services),
) -> AskResponse:
    """Answer a customer message without catalog context."""
    result = await services.llm_client.ask(request.message, services.support_prompt)
    logger.info("Support reply generated", extra={"model": result.model})
    return AskResponse(answer=result.content, model=result.model)


@router.get("/models", response_model=ModelsResponse)
async def models_endpoint(
    services: ServiceContainer = Depends(get_services),
) -> ModelsResponse:
    """List GPT model ids available at the generation provider."""
    return ModelsResponse(models=await services.llm_client.list_models(contains="gpt"))


@router.get("/store", response_model=StoreResponse)
async def store_endpoint(
    services: ServiceContainer = Depends(get_services),
) -> StoreResponse:
    """Report how many products are indexed."""
    store = services.vector_store
    return StoreResponse(size=await store.count(), dimensions=store.dimensions)


def rag_response_to_query_response(rag_response: RAGResponse) -> QueryResponse:
    """Convert internal RAGResponse to API QueryResponse."""
    return QueryResponse(
        answer=rag_response.answer,
        sources=rag_response.sources,
        model=rag_response.model,
        tokens_used=rag_response.tokens_used,
    )


def query_request_to_rag_query(request: QueryRequest) -> RAGQuery:
    """Convert API QueryRequest to internal RAGQuery."""
    return RAGQuery(
        question=request.question,
        top_k=request.top_k,
        score_threshold=request.score_threshold,
    )
