"""Prompt templates for the shop assistant."""

from abc import ABC, abstractmethod
from typing import Any

from catalog_rag.vectorstore.models import ProductMeta


class PromptTemplate(ABC):
    """Abstract base class for prompt templates."""

    @abstractmethod
    def format(self, **kwargs: Any) -> str:
        """Format the template with provided variables.

        Args:
            **kwargs: Template variables.

        Returns:
            Formatted prompt string.
        """
        ...


class SupportPromptTemplate(PromptTemplate):
    """Single-shot customer support chat, no retrieved context."""

    DEFAULT_SYSTEM_PROMPT = "You are the customer support chatbot for {store_name}."

    def __init__(self, store_name: str, system_prompt: str | None = None) -> None:
        self.system_prompt = (system_prompt or self.DEFAULT_SYSTEM_PROMPT).format(
            store_name=store_name
        )

    def format(self, **kwargs: Any) -> str:
        """Return the customer message unchanged."""
        return str(kwargs["message"])


class ProductPromptTemplate(PromptTemplate):
    """Prompt template for product questions answered from the catalog.

    Retrieved products are listed under numbered ``Source N`` headings in
    retrieval order.
    """

    DEFAULT_SYSTEM_PROMPT = """You are the shopping assistant of {store_name}.

Rules:
- First identify what the customer is looking for
- Recommend at most 3 products
- Use ONLY the products listed in the context; never invent products, prices or features
- Include the product URL for every product you recommend
- If no listed product fits, say so briefly"""

    DEFAULT_USER_TEMPLATE = """Customer question: {question}

Product context:
{context}"""

    def __init__(
        self,
        store_name: str = "our store",
        system_prompt: str | None = None,
        user_template: str | None = None,
    ) -> None:
        """Initialize the product prompt template.

        Args:
            store_name: Shop name placed in the system prompt.
            system_prompt: Custom system prompt.
            user_template: Custom user message template.
        """
        self.system_prompt = (system_prompt or self.DEFAULT_SYSTEM_PROMPT).format(
            store_name=store_name
        )
        self.user_template = user_template or self.DEFAULT_USER_TEMPLATE

    def format(self, **kwargs: Any) -> str:
        """Format the user template.

        Args:
            **kwargs: Must include 'context' and 'question'.

        Returns:
            Formatted user prompt.
        """
        return self.user_template.format(**kwargs)

    def format_source(self, number: int, product: ProductMeta) -> str:
        """Render one product under its ``Source N`` heading."""
        lines = [f"Source {number}:"]
        fields = (
            ("Name", product.name),
            ("Description", product.description),
            ("Brand", product.brand),
            ("Tags", product.tags),
            ("Price", product.price),
            ("URL", product.url),
        )
        lines.extend(f"{label}: {value}" for label, value in fields if value)
        return "\n".join(lines)

    def format_context(self, products: list[ProductMeta], separator: str = "\n\n") -> str:
        """Format retrieved products into a single context block.

        Args:
            products: Products in retrieval order.
            separator: Separator between sources.

        Returns:
            Combined context string.
        """
        return separator.join(
            self.format_source(number, product)
            for number, product in enumerate(products, start=1)
        )

    def build_prompt(
        self,
        question: str,
        products: list[ProductMeta],
    ) -> tuple[str, str]:
        """Build complete prompt from question and retrieved products.

        Args:
            question: Customer question.
            products: Retrieved products.

        Returns:
            Tuple of (system_prompt, user_prompt).
        """
        context = self.format_context(products)
        user_prompt = self.format(context=context, question=question)
        return self.system_prompt, user_prompt
