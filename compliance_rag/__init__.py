"""Compliance document ingestion and semantic retrieval."""

__version__ = "0.1.0"
