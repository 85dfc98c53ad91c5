"""Tests for API routes."""

from unittest.mock import AsyncMock, patch

import pytest
from conftest import KeywordEmbeddingService, make_entry
from httpx import AsyncClient

from catalog_rag.api.app import app, get_status_code
from catalog_rag.api.deps import ServiceContainer, get_services
from catalog_rag.api.routes import (
    IngestRequest,
    QueryRequest,
    query_request_to_rag_query,
    rag_response_to_query_response,
)
from catalog_rag.config import FeedSettings, Settings
from catalog_rag.exceptions import (
    EmptyReplyError,
    ErrorCode,
    FeedError,
    LLMError,
    UpstreamError,
    ValidationError,
)
from catalog_rag.feeds.loader import FeedDocument, FeedLoader
from catalog_rag.ingestion.pipeline import IngestionPipeline
from catalog_rag.llm.client import LLMClient
from catalog_rag.llm.models import GenerationResult
from catalog_rag.llm.prompts import ProductPromptTemplate, SupportPromptTemplate
from catalog_rag.rag.models import RAGResponse, SourceAttribution
from catalog_rag.rag.pipeline import RAGPipeline
from catalog_rag.retrieval.retriever import SemanticRetriever
from catalog_rag.vectorstore.service import InMemoryVectorStore

FEED_URL = "https://shop.test/feed.csv"
FEED_CSV = b"id,name,price\n1,Drone A,2999 TRY\n2,Drone B,4999 TRY\n"
INGEST_BODY = {
    "url": FEED_URL,
    "item_path": "rows",
    "mapping": {"id": "id", "name": "name", "price": "price"},
}


def _services(embeddings: KeywordEmbeddingService) -> ServiceContainer:
    store = InMemoryVectorStore()
    loader = AsyncMock(spec=FeedLoader)
    loader.load.return_value = FeedDocument(
        source=FEED_URL,
        content=FEED_CSV,
        text=FEED_CSV.decode(),
        content_type="text/csv",
    )
    llm = AsyncMock(spec=LLMClient)
    llm.model_name = "openai/gpt-4o-mini"
    llm.generate_text.return_value = GenerationResult(
        content="Drone A is under 3000.",
        model="openai/gpt-4o-mini",
        total_tokens=42,
    )
    llm.list_models.return_value = ["openai/gpt-4o", "openai/gpt-4o-mini"]

    async def ask(message: str, prompt_template: SupportPromptTemplate) -> GenerationResult:
        return await LLMClient.ask(llm, message, prompt_template)

    llm.ask.side_effect = ask
    return ServiceContainer(
        vector_store=store,
        embedding_service=embeddings,
        llm_client=llm,
        loader=loader,
        ingestion=IngestionPipeline(loader, embeddings, store, FeedSettings()),
        rag=RAGPipeline(
            SemanticRetriever(embeddings, store),
            llm,
            store,
            ProductPromptTemplate(store_name="Robocombo.com"),
        ),
        support_prompt=SupportPromptTemplate(store_name="Robocombo.com"),
    )


@pytest.fixture
def services(drone_embeddings: KeywordEmbeddingService) -> ServiceContainer:
    """Services wired with fakes and installed on the app."""
    container = _services(drone_embeddings)
    app.dependency_overrides[get_services] = lambda: container
    return container


class TestQueryRequest:
    """Tests for QueryRequest model."""

    def test_defaults(self) -> None:
        """Request has sensible defaults."""
        req = QueryRequest(question="Any drones?")
        assert req.top_k == 5
        assert req.score_threshold is None


class TestIngestRequest:
    """Tests for IngestRequest model."""

    def test_defaults(self) -> None:
        """Request defaults to replace mode with auto format."""
        req = IngestRequest(**INGEST_BODY)
        assert req.append is False
        assert req.limit is None
        assert req.format.value == "auto"


class TestConverters:
    """Tests for request and response converters."""

    def test_rag_response_to_query_response(self) -> None:
        """Converts RAGResponse to QueryResponse."""
        rag = RAGResponse(
            answer="Answer",
            sources=[SourceAttribution(id="1", name="Drone A", score=0.9)],
            model="test",
            tokens_used=100,
        )
        result = rag_response_to_query_response(rag)

        assert result.answer == "Answer"
        assert result.sources[0].name == "Drone A"

    def test_query_request_to_rag_query(self) -> None:
        """Converts QueryRequest to RAGQuery."""
        req = QueryRequest(question="What?", top_k=3, score_threshold=0.5)
        result = query_request_to_rag_query(req)

        assert result.question == "What?"
        assert result.top_k == 3
        assert result.score_threshold == 0.5


class TestStatusMapping:
    """Tests for error to HTTP status mapping."""

    def test_known_codes(self) -> None:
        """Error codes map to their HTTP statuses."""
        assert get_status_code(ValidationError("bad")) == 400
        assert get_status_code(FeedError("down")) == 502
        assert get_status_code(FeedError("xml", code=ErrorCode.FEED_PARSE_ERROR)) == 422
        assert get_status_code(EmptyReplyError()) == 502

    def test_upstream_status_passthrough(self) -> None:
        """Upstream failures reuse the provider status when present."""
        assert get_status_code(UpstreamError("x", details={"status_code": 429})) == 429
        assert get_status_code(UpstreamError("x", details={"status_code": None})) == 502

    def test_unknown_code(self) -> None:
        """Unmapped codes are internal errors."""
        assert get_status_code(LLMError("x", code=ErrorCode.INTERNAL_ERROR)) == 500


class TestIngestEndpoint:
    """Tests for /api/v1/ingest endpoint."""

    async def test_ingest(self, client: AsyncClient, services: ServiceContainer) -> None:
        """Ingest indexes the feed and reports a summary."""
        response = await client.post("/api/v1/ingest", json=INGEST_BODY)

        assert response.status_code == 200
        data = response.json()
        assert data["mode"] == "replace"
        assert data["indexed"] == 2
        assert data["store_size"] == 2
        assert await services.vector_store.count() == 2

    async def test_ingest_missing_item_path(
        self, client: AsyncClient, services: ServiceContainer
    ) -> None:
        """A missing item path is a 400."""
        body = {**INGEST_BODY, "item_path": None}

        response = await client.post("/api/v1/ingest", json=body)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == ErrorCode.VALIDATION_ERROR.value

    async def test_ingest_download_failure(
        self, client: AsyncClient, services: ServiceContainer
    ) -> None:
        """A feed that cannot be fetched is a 502."""
        services.loader.load.side_effect = FeedError("Feed source returned 404")

        response = await client.post("/api/v1/ingest", json=INGEST_BODY)

        assert response.status_code == 502

    async def test_ingest_secret_required(
        self, client: AsyncClient, services: ServiceContainer
    ) -> None:
        """A configured secret must be sent in the header."""
        settings = Settings(ingest_secret="s3cret")
        with patch("catalog_rag.api.deps.get_settings", return_value=settings):
            missing = await client.post("/api/v1/ingest", json=INGEST_BODY)
            wrong = await client.post(
                "/api/v1/ingest", json=INGEST_BODY, headers={"X-Ingest-Secret": "nope"}
            )
            right = await client.post(
                "/api/v1/ingest", json=INGEST_BODY, headers={"X-Ingest-Secret": "s3cret"}
            )

        assert missing.status_code == 401
        assert wrong.status_code == 401
        assert missing.json()["error"]["code"] == ErrorCode.UNAUTHORIZED.value
        assert right.status_code == 200


class TestQueryEndpoint:
    """Tests for /api/v1/query endpoint."""

    async def test_query_empty_store(
        self, client: AsyncClient, services: ServiceContainer
    ) -> None:
        """Querying before ingestion is a 409 and never generates."""
        response = await client.post("/api/v1/query", json={"question": "Any drones?"})

        assert response.status_code == 409
        assert response.json()["error"]["code"] == ErrorCode.PRECONDITION_FAILED.value
        services.llm_client.generate_text.assert_not_called()

    async def test_query_after_ingest(
        self, client: AsyncClient, services: ServiceContainer
    ) -> None:
        """The cheaper drone ranks first for a budget question."""
        await client.post("/api/v1/ingest", json=INGEST_BODY)

        response = await client.post(
            "/api/v1/query", json={"question": "drone under 3000", "top_k": 2}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["answer"] == "Drone A is under 3000."
        assert [s["id"] for s in data["sources"]] == ["1", "2"]
        assert data["sources"][0]["price"] == "2999"
        assert data["tokens_used"] == 42

    async def test_query_blank_question(
        self, client: AsyncClient, services: ServiceContainer
    ) -> None:
        """A blank question is a 400."""
        response = await client.post("/api/v1/query", json={"question": "  "})
        assert response.status_code == 400

    async def test_query_validates_request(self, client: AsyncClient) -> None:
        """A missing question fails schema validation."""
        response = await client.post("/api/v1/query", json={})
        assert response.status_code == 422

    async def test_query_upstream_failure(
        self, client: AsyncClient, services: ServiceContainer
    ) -> None:
        """Exhausted generation surfaces the upstream status."""
        await services.vector_store.replace(
            [make_entry("1", services.embedding_service.vector("Drone A"))]
        )
        services.llm_client.generate_text.side_effect = UpstreamError(
            "All candidate models failed",
            details={"status_code": 503, "payload": {"error": "overloaded"}},
        )

        response = await client.post("/api/v1/query", json={"question": "drone"})

        assert response.status_code == 503
        error = response.json()["error"]
        assert error["code"] == ErrorCode.LLM_UPSTREAM_FAILURE.value
        assert error["details"]["payload"] == {"error": "overloaded"}


class TestAskEndpoint:
    """Tests for /api/v1/ask endpoint."""

    async def test_ask(self, client: AsyncClient, services: ServiceContainer) -> None:
        """Ask sends the message with the support system prompt."""
        response = await client.post("/api/v1/ask", json={"message": "Where is my order?"})

        assert response.status_code == 200
        assert response.json()["answer"] == "Drone A is under 3000."
        kwargs = services.llm_client.generate_text.call_args.kwargs
        assert kwargs["prompt"] == "Where is my order?"
        assert kwargs["system_prompt"] == (
            "You are the customer support chatbot for Robocombo.com."
        )

    async def test_ask_blank_message(
        self, client: AsyncClient, services: ServiceContainer
    ) -> None:
        """A blank message is a 400."""
        response = await client.post("/api/v1/ask", json={"message": ""})
        assert response.status_code == 400

    async def test_ask_empty_reply(self, client: AsyncClient, services: ServiceContainer) -> None:
        """An empty model reply is a 502."""
        services.llm_client.generate_text.side_effect = EmptyReplyError()

        response = await client.post("/api/v1/ask", json={"message": "Hi"})

        assert response.status_code == 502


class TestModelsEndpoint:
    """Tests for /api/v1/models endpoint."""

    async def test_models(self, client: AsyncClient, services: ServiceContainer) -> None:
        """Models are listed with the gpt filter."""
        response = await client.get("/api/v1/models")

        assert response.status_code == 200
        assert response.json() == {"models": ["openai/gpt-4o", "openai/gpt-4o-mini"]}
        services.llm_client.list_models.assert_awaited_once_with(contains="gpt")


class TestStoreEndpoint:
    """Tests for /api/v1/store endpoint."""

    async def test_store_empty(self, client: AsyncClient, services: ServiceContainer) -> None:
        """An empty store reports the default dimension."""
        response = await client.get("/api/v1/store")

        assert response.json() == {"size": 0, "dimensions": 1536}

    async def test_store_after_ingest(
        self, client: AsyncClient, services: ServiceContainer
    ) -> None:
        """Size and dimension follow the ingested vectors."""
        await client.post("/api/v1/ingest", json=INGEST_BODY)

        response = await client.get("/api/v1/store")

        assert response.json() == {
            "size": 2,
            "dimensions": services.embedding_service.dimensions,
        }
