"""
Abstract Vector Store Interface

Defines the contract for the store adapter that owns the TOM collection.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tom_kg.storage.filters import Filter
    from tom_kg.types import Node, ScoredNode, ScrollPage, VectorName


class VectorStore(ABC):
    """
    Abstract interface for the store adapter.

    One collection holds both node kinds; every point carries a payload and
    two named vectors, `primary` and `secondary`, of the same size.

    Everything else in the package is built from four primitives:
    upsert, retrieve, scroll and search.

    Lifecycle:
        store = LanceDBStore(path, config)
        await store.initialize()   # connects, creates the collection if missing
        # ... operations ...
        await store.close()

    Or using context manager:
        async with LanceDBStore(path, config) as store:
            await store.upsert(nodes)
    """

    @property
    @abstractmethod
    def collection_name(self) -> str:
        """Name of the collection this adapter owns."""
        ...

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Size D of both named vectors."""
        ...

    @abstractmethod
    async def initialize(self) -> None:
        """Connect and create the collection if it does not exist (idempotent)."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the connection."""
        ...

    async def __aenter__(self) -> "VectorStore":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Collection Management
    # -------------------------------------------------------------------------

    @abstractmethod
    async def collection_exists(self) -> bool:
        """Whether the collection has been created."""
        ...

    @abstractmethod
    async def drop_collection(self) -> None:
        """Delete the collection and all its points."""
        ...

    @abstractmethod
    async def count(self, filter: "Filter | None" = None) -> int:
        """Number of points matching the filter."""
        ...

    # -------------------------------------------------------------------------
    # Primitives
    # -------------------------------------------------------------------------

    @abstractmethod
    async def upsert(self, nodes: Sequence["Node"]) -> None:
        """
        Insert or overwrite points keyed by point id (last write wins).

        Every node must carry both vectors at the store's dimensionality.
        """
        ...

    @abstractmethod
    async def retrieve(
        self,
        ids: Sequence[str],
        *,
        with_vectors: bool = False,
    ) -> list["Node"]:
        """Fetch points by id, in request order. Unknown ids are omitted."""
        ...

    @abstractmethod
    async def scroll(
        self,
        filter: "Filter | None" = None,
        *,
        limit: int = 100,
        offset: int | str | None = None,
        with_vectors: bool = False,
    ) -> "ScrollPage":
        """One page of points matching the filter; next_offset is None on the last page."""
        ...

    @abstractmethod
    async def search(
        self,
        vector_name: "VectorName",
        vector: Sequence[float],
        filter: "Filter | None" = None,
        *,
        limit: int = 5,
    ) -> list["ScoredNode"]:
        """Nearest points to `vector` in the named vector space, restricted by filter."""
        ...
