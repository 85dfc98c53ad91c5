"""LLM client module."""

from catalog_rag.llm.client import LLMClient, OpenAICompatibleClient
from catalog_rag.llm.models import GenerationResult, Message, Role
from catalog_rag.llm.prompts import PromptTemplate, ProductPromptTemplate, SupportPromptTemplate

__all__ = [
    "GenerationResult",
    "LLMClient",
    "Message",
    "OpenAICompatibleClient",
    "ProductPromptTemplate",
    "PromptTemplate",
    "Role",
    "SupportPromptTemplate",
]
