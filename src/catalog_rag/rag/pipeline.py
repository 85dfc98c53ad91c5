"""RAG pipeline orchestrator."""

import time

from catalog_rag.exceptions import PreconditionFailedError, ValidationError
from catalog_rag.llm.client import LLMClient
from catalog_rag.llm.prompts import ProductPromptTemplate
from catalog_rag.logging_config import get_logger
from catalog_rag.observability.metrics import track_rag_query
from catalog_rag.rag.models import RAGQuery, RAGResponse, SourceAttribution
from catalog_rag.retrieval.retriever import Retriever
from catalog_rag.vectorstore.service import VectorStore

logger = get_logger(__name__)

NO_MATCH_ANSWER = "I could not find products matching your question."


class RAGPipeline:
    """Answers customer questions from the product catalog.

    Embeds the question, retrieves the closest products and asks the LLM
    to answer from them only. Never writes to the vector store.
    """

    def __init__(
        self,
        retriever: Retriever,
        llm_client: LLMClient,
        vector_store: VectorStore,
        prompt_template: ProductPromptTemplate | None = None,
    ) -> None:
        """Initialize the RAG pipeline.

        Args:
            retriever: Product retriever.
            llm_client: LLM client for generation.
            vector_store: Store the retriever searches; checked for emptiness.
            prompt_template: Prompt template for product questions.
        """
        self._retriever = retriever
        self._llm_client = llm_client
        self._vector_store = vector_store
        self._prompt_template = prompt_template or ProductPromptTemplate()

    async def query(self, request: RAGQuery) -> RAGResponse:
        """Execute a RAG query.

        Args:
            request: The RAG query request.

        Returns:
            RAGResponse with answer and sources.

        Raises:
            ValidationError: If the question is blank.
            PreconditionFailedError: If nothing has been ingested yet.
        """
        if not request.question.strip():
            raise ValidationError("Question is required", details={"field": "question"})

        if await self._vector_store.count() == 0:
            raise PreconditionFailedError(
                "The product index is empty; ingest a feed first",
                details={"store_size": 0},
            )

        logger.info(
            "Processing RAG query",
            extra={"question_length": len(request.question), "top_k": request.top_k},
        )
        start_time = time.perf_counter()

        try:
            response = await self._answer(request)
        except Exception:
            track_rag_query(time.perf_counter() - start_time, success=False)
            raise

        track_rag_query(time.perf_counter() - start_time, success=True)
        return response

    async def _answer(self, request: RAGQuery) -> RAGResponse:
        results = await self._retriever.retrieve(
            query=request.question,
            top_k=request.top_k,
        )

        if request.score_threshold is not None:
            results = [r for r in results if r.score >= request.score_threshold]

        if not results:
            return RAGResponse(
                answer=NO_MATCH_ANSWER,
                sources=[],
                model=self._llm_client.model_name,
                tokens_used=0,
            )

        system_prompt, user_prompt = self._prompt_template.build_prompt(
            question=request.question,
            products=[r.product for r in results],
        )

        generation_result = await self._llm_client.generate_text(
            prompt=user_prompt,
            system_prompt=system_prompt,
        )

        sources = [
            SourceAttribution(
                id=r.id,
                name=r.product.name,
                url=r.product.url,
                price=r.product.price,
                score=r.score,
            )
            for r in results
        ]

        logger.info(
            "RAG query completed",
            extra={
                "sources_count": len(sources),
                "tokens_used": generation_result.total_tokens,
                "model": generation_result.model,
            },
        )

        return RAGResponse(
            answer=generation_result.content,
            sources=sources,
            model=generation_result.model,
            tokens_used=generation_result.total_tokens,
        )

    async def answer_question(self, question: str, top_k: int = 5) -> str:
        """Simple query interface returning just the answer.

        Args:
            question: The question to answer.
            top_k: Number of products to retrieve.

        Returns:
            Generated answer string.

        Raises:
            ValidationError: If top_k is below 1 or the question is blank.
        """
        if top_k < 1:
            raise ValidationError("top_k must be at least 1", details={"field": "top_k"})
        response = await self.query(RAGQuery(question=question, top_k=top_k))
        return response.answer
