"""Service wiring and request dependencies."""

import secrets
from dataclasses import dataclass

from fastapi import Header, Request

from catalog_rag.config import Settings, get_settings
from catalog_rag.embeddings.service import EmbeddingService, HTTPEmbeddingService
from catalog_rag.exceptions import UnauthorizedError
from catalog_rag.feeds.loader import FeedLoader
from catalog_rag.ingestion.pipeline import IngestionPipeline
from catalog_rag.llm.client import LLMClient, OpenAICompatibleClient
from catalog_rag.llm.prompts import ProductPromptTemplate, SupportPromptTemplate
from catalog_rag.logging_config import get_logger
from catalog_rag.rag.pipeline import RAGPipeline
from catalog_rag.retrieval.retriever import SemanticRetriever
from catalog_rag.vectorstore.service import InMemoryVectorStore, VectorStore

logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    """Long-lived services shared by all requests."""

    vector_store: VectorStore
    embedding_service: EmbeddingService
    llm_client: LLMClient
    loader: FeedLoader
    ingestion: IngestionPipeline
    rag: RAGPipeline
    support_prompt: SupportPromptTemplate

    async def close(self) -> None:
        """Release HTTP clients owned by the services."""
        for service in (self.embedding_service, self.llm_client, self.loader):
            close = getattr(service, "close", None)
            if close is not None:
                await close()


def build_services(settings: Settings | None = None) -> ServiceContainer:
    """Create the store, clients and pipelines from settings.

    Args:
        settings: Application settings.

    Returns:
        A container holding one instance of each service.
    """
    settings = settings or get_settings()

    vector_store = InMemoryVectorStore(default_dimensions=settings.embedding.dimensions)
    embedding_service = HTTPEmbeddingService(settings=settings.embedding)
    llm_client = OpenAICompatibleClient(settings=settings.llm)
    loader = FeedLoader(settings=settings.feed)

    ingestion = IngestionPipeline(
        loader=loader,
        embedding_service=embedding_service,
        vector_store=vector_store,
        settings=settings.feed,
    )
    rag = RAGPipeline(
        retriever=SemanticRetriever(embedding_service, vector_store),
        llm_client=llm_client,
        vector_store=vector_store,
        prompt_template=ProductPromptTemplate(store_name=settings.store_name),
    )

    logger.info(
        "Services initialized",
        extra={
            "embedding_model": embedding_service.model_name,
            "llm_model": llm_client.model_name,
        },
    )
    return ServiceContainer(
        vector_store=vector_store,
        embedding_service=embedding_service,
        llm_client=llm_client,
        loader=loader,
        ingestion=ingestion,
        rag=rag,
        support_prompt=SupportPromptTemplate(store_name=settings.store_name),
    )


def get_services(request: Request) -> ServiceContainer:
    """Return the app's services, creating them if startup has not run."""
    services: ServiceContainer | None = getattr(request.app.state, "services", None)
    if services is None:
        services = build_services()
        request.app.state.services = services
    return services


async def require_ingest_secret(
    x_ingest_secret: str | None = Header(default=None),
) -> None:
    """Check the ingest secret header when a secret is configured.

    Raises:
        UnauthorizedError: If the header is missing or does not match.
    """
    expected = get_settings().ingest_secret
    if expected is None or not expected.get_secret_value():
        return
    if x_ingest_secret is None or not secrets.compare_digest(
        x_ingest_secret.encode(), expected.get_secret_value().encode()
    ):
        raise UnauthorizedError()
