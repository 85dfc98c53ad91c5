"""Catalog RAG service: product feed ingestion and catalog question answering."""

__version__ = "0.1.0"
