"""
TomGraph - Primary Entry Point

TomGraph owns the store adapter and providers and wires them into the
ingestion pipeline and the query engine.

Example:
    >>> async with TomGraph() as tom:
    ...     await tom.ingest_text("Methotrexate treats rheumatoid arthritis.")
    ...     hits = await tom.queries.search_entities("joint disease")

    # Or with sync API
    >>> with TomGraph() as tom:
    ...     tom.ingest_directory_sync("./notes")
    ...     print(tom.stats_sync())
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tom_kg.config.settings import TomConfig
    from tom_kg.ingestion.pipeline import IngestionPipeline
    from tom_kg.providers.base import EmbeddingProvider, LLMProvider
    from tom_kg.query.engine import QueryEngine
    from tom_kg.storage.base import VectorStore
    from tom_kg.types.results import FileIngestResult, IngestResult


class TomGraph:
    """
    The TOM knowledge graph.

    Components are created on first use (or by `initialize()`), so building a
    TomGraph is cheap and does not touch the store or the network.

    Args:
        config: Optional configuration. Uses defaults if not provided.
        store: Optional store adapter to use instead of a LanceDBStore at
            config.store_path
        llm: Optional LLM provider (default: built from config.llm_provider)
        embeddings: Optional embedding provider (default: built from
            config.embedding_provider)
    """

    def __init__(
        self,
        config: "TomConfig | None" = None,
        *,
        store: "VectorStore | None" = None,
        llm: "LLMProvider | None" = None,
        embeddings: "EmbeddingProvider | None" = None,
    ) -> None:
        # Lazy import to avoid circular imports
        if config is None:
            from tom_kg.config import TomConfig
            config = TomConfig()
        self._config = config

        # Lazy-initialized components
        self._store: "VectorStore | None" = store
        self._llm: "LLMProvider | None" = llm
        self._embeddings: "EmbeddingProvider | None" = embeddings
        self._pipeline: "IngestionPipeline | None" = None
        self._queries: "QueryEngine | None" = None
        self._initialized = False

    async def _ensure_initialized(self) -> None:
        """Lazy initialization of store and providers on first use."""
        if self._initialized:
            return

        if self._store is None:
            from tom_kg.storage.lancedb import LanceDBStore
            self._store = LanceDBStore(Path(self._config.store_path), self._config)
        await self._store.initialize()

        if self._llm is None:
            self._llm = self._create_llm_provider()
        if self._embeddings is None:
            self._embeddings = self._create_embedding_provider()

        from tom_kg.ingestion.pipeline import IngestionPipeline
        from tom_kg.query.engine import QueryEngine

        self._pipeline = IngestionPipeline(self._store, self._llm, self._embeddings, self._config)
        self._queries = QueryEngine(
            self._store,
            self._embeddings,
            page_size=self._config.scroll_page_size,
        )
        self._initialized = True

    async def initialize(self) -> None:
        """Create the collection if needed and build all components."""
        await self._ensure_initialized()

    def _create_llm_provider(self) -> "LLMProvider":
        """Create LLM provider based on config."""
        provider = self._config.llm_provider.lower()

        if provider == "openai":
            from tom_kg.providers.llm.openai import OpenAILLMProvider
            return OpenAILLMProvider(
                api_key=self._config.openai_api_key,
                model=self._config.llm_model,
            )
        else:
            raise ValueError(f"Unknown LLM provider: {provider}")

    def _create_embedding_provider(self) -> "EmbeddingProvider":
        """Create embedding provider based on config."""
        provider = self._config.embedding_provider.lower()

        if provider == "openai":
            from tom_kg.providers.embedding.openai import OpenAIEmbeddingProvider
            return OpenAIEmbeddingProvider(
                api_key=self._config.openai_api_key,
                model=self._config.embedding_model,
                dimensions=self._config.embedding_dimensions,
            )
        else:
            raise ValueError(f"Unknown embedding provider: {provider}")

    # === Lifecycle ===

    def __enter__(self) -> "TomGraph":
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit with resource cleanup."""
        self.close_sync()

    async def __aenter__(self) -> "TomGraph":
        """Async context manager entry."""
        await self._ensure_initialized()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Release all resources (async)."""
        if self._store is not None and self._initialized:
            await self._store.close()
        self._pipeline = None
        self._queries = None
        self._initialized = False

    def close_sync(self) -> None:
        """Release all resources (sync)."""
        if self._initialized:
            asyncio.run(self.close())

    # === Properties ===

    @property
    def config(self) -> "TomConfig":
        """Current configuration."""
        return self._config

    @property
    def is_initialized(self) -> bool:
        """Whether the store and providers have been initialized."""
        return self._initialized

    @property
    def queries(self) -> "QueryEngine":
        """
        The query engine.

        Raises:
            RuntimeError: If the graph has not been initialized yet
        """
        if self._queries is None:
            raise RuntimeError(
                "TomGraph is not initialized; use 'async with TomGraph()' "
                "or call initialize() first"
            )
        return self._queries

    # === Ingestion Methods ===

    async def ingest_text(
        self,
        text: str,
        *,
        tier: str | None = None,
        source: str | None = None,
    ) -> "IngestResult":
        """
        Extract entities and relations from text and store them.

        Args:
            text: Free text
            tier: Extraction tier ("top", "fast", "cheap")
            source: Label recorded on the result

        Returns:
            IngestResult with written ids and per-node failures
        """
        await self._ensure_initialized()
        assert self._pipeline is not None
        return await self._pipeline.ingest_text(text, tier=tier, source=source)

    async def ingest_directory(
        self,
        path: str | Path,
        ext: str | None = None,
        **kwargs: Any,
    ) -> list["FileIngestResult"]:
        """
        Ingest every matching file in a directory.

        Args:
            path: Directory path
            ext: File extension (default: config.ingest_file_extension)
            **kwargs: recursive, concurrency, tier

        Returns:
            One FileIngestResult per file
        """
        await self._ensure_initialized()
        assert self._pipeline is not None
        return await self._pipeline.ingest_directory(path, ext, **kwargs)

    # === Maintenance ===

    async def reset(self) -> None:
        """Drop the collection and create it again, empty."""
        await self._ensure_initialized()
        assert self._store is not None
        await self._store.drop_collection()
        # initialize() is a no-op on an open store
        await self._store.close()
        await self._store.initialize()

    async def stats(self) -> dict[str, int]:
        """Get collection statistics."""
        await self._ensure_initialized()
        assert self._store is not None

        from tom_kg.storage.filters import Filter, kind_is

        return {
            "entities": await self._store.count(Filter.all_of(kind_is("entity"))),
            "relations": await self._store.count(Filter.all_of(kind_is("relation"))),
        }

    # === Sync Wrappers ===

    def ingest_text_sync(self, text: str, **kwargs: Any) -> "IngestResult":
        """Sync wrapper for ingest_text."""
        return asyncio.run(self.ingest_text(text, **kwargs))

    def ingest_directory_sync(self, path: str | Path, **kwargs: Any) -> list["FileIngestResult"]:
        """Sync wrapper for ingest_directory."""
        return asyncio.run(self.ingest_directory(path, **kwargs))

    def reset_sync(self) -> None:
        """Sync wrapper for reset."""
        asyncio.run(self.reset())

    def stats_sync(self) -> dict[str, int]:
        """Sync wrapper for stats."""
        return asyncio.run(self.stats())
