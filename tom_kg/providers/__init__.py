"""
LLM and Embedding Providers

Provider-agnostic interfaces for LLM and embedding operations.

Modules:
    base: Abstract provider interfaces
    llm/: LLM provider implementations
    embedding/: Embedding provider implementations

Supported Providers:
    - OpenAI chat models via LangChain (structured extraction)
    - OpenAI text-embedding-3 models via LangChain (shortened to D dimensions)

Example:
    >>> from tom_kg.providers.llm import OpenAILLMProvider
    >>> from tom_kg.providers.embedding import OpenAIEmbeddingProvider
"""

from tom_kg.providers.base import EmbeddingProvider, LLMProvider

__all__ = ["LLMProvider", "EmbeddingProvider"]
