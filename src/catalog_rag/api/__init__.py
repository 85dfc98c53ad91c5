"""HTTP API for the catalog RAG service."""
