"""
OpenAI Embedding Provider (LangChain-based)

Implements EmbeddingProvider interface using LangChain's OpenAIEmbeddings.

Models:
    - text-embedding-3-large: 3072 dimensions natively
    - text-embedding-3-small: 1536 dimensions natively

The text-embedding-3 models can return shortened vectors; TOM asks for
`dimensions` (default 1024) so every point's vectors match the collection.

Example:
    >>> provider = OpenAIEmbeddingProvider(dimensions=1024)
    >>> vector = await provider.embed_single("rheumatoid arthritis")
    >>> print(len(vector))
    1024
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from tom_kg.config.providers import MODEL_DIMENSIONS
from tom_kg.providers.base import EmbeddingProvider

if TYPE_CHECKING:
    from langchain_openai import OpenAIEmbeddings


DEFAULT_MODEL = "text-embedding-3-large"


def _get_openai_embeddings(
    api_key: str | None = None,
    model: str = DEFAULT_MODEL,
    dimensions: int | None = None,
) -> "OpenAIEmbeddings":
    """
    Get an OpenAIEmbeddings instance.

    Uses lazy import to avoid requiring langchain-openai unless actually used.

    Raises:
        ImportError: If langchain-openai package is not installed
    """
    try:
        from langchain_openai import OpenAIEmbeddings
    except ImportError:
        raise ImportError(
            "OpenAI embedding provider requires the 'langchain-openai' package. "
            "Install with: pip install langchain-openai"
        )

    if api_key:
        from pydantic import SecretStr
        return OpenAIEmbeddings(model=model, dimensions=dimensions, api_key=SecretStr(api_key))
    return OpenAIEmbeddings(model=model, dimensions=dimensions)


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """
    OpenAI embedding provider implementation using LangChain.

    Args:
        api_key: OpenAI API key. If None, uses OPENAI_API_KEY environment variable.
        model: Model to use (default: "text-embedding-3-large")
        dimensions: Requested vector size. None keeps the model's native size.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        dimensions: int | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._requested_dimensions = dimensions
        self._dimensions = dimensions or MODEL_DIMENSIONS.get(model, 3072)
        # Lazy initialization
        self._client: OpenAIEmbeddings | None = None

    def _get_client(self) -> "OpenAIEmbeddings":
        """Get or create the OpenAIEmbeddings client."""
        if self._client is None:
            self._client = _get_openai_embeddings(
                api_key=self._api_key,
                model=self._model,
                dimensions=self._requested_dimensions,
            )
        return self._client

    @property
    def dimensions(self) -> int:
        """Embedding dimensions for the current model."""
        return self._dimensions

    @property
    def model_name(self) -> str:
        """Current model name."""
        return self._model

    async def embed_single(self, text: str) -> list[float]:
        """Generate embedding for a single text."""
        client = self._get_client()

        # LangChain's embed_query is synchronous, run in thread pool
        return await asyncio.to_thread(client.embed_query, text)
