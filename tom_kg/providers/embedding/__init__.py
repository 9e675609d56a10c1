"""Embedding provider implementations."""

from tom_kg.providers.embedding.openai import OpenAIEmbeddingProvider

__all__ = ["OpenAIEmbeddingProvider"]
