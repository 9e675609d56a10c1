"""
Query Engine

Read API over the TOM collection. Every method is a short composition of the
store primitives (scroll, retrieve, search); the engine keeps no state of its
own beyond the store handle.

Method groups:
    Lookup:      get_entity, get_all_entities, get_all_relations,
                 get_entities_by_category
    Traversal:   get_relations_for_entity (outgoing), get_incoming_relations,
                 find_connected_entities
    Neighbors:   find_nearest_entities_by_entity
    Semantic:    semantic_search_entities*, semantic_search_relations*,
                 search_entities / search_relations (text in, needs embeddings)

Vector spaces (same for every semantic method):

    kind      primary                 secondary
    -------   ---------------------   -------------------------
    entity    embedding of eid        embedding of category
    relation  embedding of name       embedding of rid

Example:
    >>> engine = QueryEngine(store, embeddings)
    >>> meds = await engine.get_entities_by_category("medication")
    >>> treated = await engine.find_connected_entities("methotrexate", "treats")
    >>> hits = await engine.search_entities("joint inflammation", limit=10)
"""

import logging
from collections.abc import Sequence

from tom_kg.errors import InvalidFilter, NotFound
from tom_kg.providers.base import EmbeddingProvider
from tom_kg.storage.base import VectorStore
from tom_kg.storage.filters import Filter, field_equals, kind_is
from tom_kg.types import Category, Entity, Node, Relation, ScoredNode, VectorName, normalize_id

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100


def _check_limit(limit: int) -> None:
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")


class QueryEngine:
    """
    Stateless query surface over a VectorStore.

    Args:
        store: Initialized store adapter
        embeddings: Optional embedding provider, only needed by the text
            search methods
        page_size: Points fetched per scroll call
    """

    def __init__(
        self,
        store: VectorStore,
        embeddings: EmbeddingProvider | None = None,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")
        self.store = store
        self.embeddings = embeddings
        self.page_size = page_size

    # -------------------------------------------------------------------------
    # Scans
    # -------------------------------------------------------------------------

    async def scroll_all(self, filter: Filter | None = None) -> list[Node]:
        """
        Collect every point matching the filter.

        Pages are fetched one after another, threading the cursor until the
        store reports no next page. Result size is unbounded, so pass a
        selective filter on large collections. Order is not guaranteed.
        """
        points: list[Node] = []
        offset: int | str | None = None
        pages = 0
        while True:
            page = await self.store.scroll(filter, limit=self.page_size, offset=offset)
            points.extend(page.points)
            pages += 1
            if page.next_offset is None:
                break
            offset = page.next_offset
        logger.debug(f"scroll_all fetched {len(points)} points in {pages} pages")
        return points

    async def get_all_entities(self) -> list[Entity]:
        return await self.scroll_all(Filter.all_of(kind_is("entity")))  # type: ignore[return-value]

    async def get_all_relations(self) -> list[Relation]:
        return await self.scroll_all(Filter.all_of(kind_is("relation")))  # type: ignore[return-value]

    async def get_entities_by_category(self, category: Category | str) -> list[Entity]:
        """
        All entities of one category.

        Raises:
            InvalidFilter: If category is not one of the Category values
        """
        try:
            value = Category(category).value
        except ValueError:
            raise InvalidFilter(
                f"Unknown category {category!r}; expected one of {[c.value for c in Category]}"
            ) from None
        return await self.scroll_all(  # type: ignore[return-value]
            Filter.all_of(kind_is("entity"), field_equals("category", value))
        )

    # -------------------------------------------------------------------------
    # Lookup and traversal
    # -------------------------------------------------------------------------

    async def get_entity(self, eid: str) -> Entity:
        """
        Fetch one entity by id.

        Raises:
            NotFound: If no entity has this eid
        """
        eid = normalize_id(eid)
        points = await self.store.retrieve([eid])
        for point in points:
            if isinstance(point, Entity):
                return point
        raise NotFound(eid, f"Entity not found: {eid!r}")

    async def get_relations_for_entity(self, source_eid: str) -> list[Relation]:
        """Outgoing relations of an entity."""
        return await self.scroll_all(  # type: ignore[return-value]
            Filter.all_of(kind_is("relation"), field_equals("source_eid", normalize_id(source_eid)))
        )

    async def get_incoming_relations(self, dest_eid: str) -> list[Relation]:
        """
        Relations pointing at an entity.

        There is no reverse index; this is a filtered scan on dest_eid.
        """
        return await self.scroll_all(  # type: ignore[return-value]
            Filter.all_of(kind_is("relation"), field_equals("dest_eid", normalize_id(dest_eid)))
        )

    async def find_connected_entities(self, source_eid: str, relation_name: str) -> list[Entity]:
        """
        Entities reached from `source_eid` over relations named `relation_name`.

        Each destination appears once. Destinations that are referenced by a
        relation but missing from the store are skipped. Returns [] when no
        relation matches.
        """
        source_eid = normalize_id(source_eid)
        relations = await self.scroll_all(
            Filter.all_of(
                kind_is("relation"),
                field_equals("source_eid", source_eid),
                field_equals("name", normalize_id(relation_name)),
            )
        )
        dest_ids = list(dict.fromkeys(r.dest_eid for r in relations if isinstance(r, Relation)))
        if not dest_ids:
            return []

        points = await self.store.retrieve(dest_ids)
        entities = [p for p in points if isinstance(p, Entity)]
        if len(entities) < len(dest_ids):
            missing = set(dest_ids) - {e.eid for e in entities}
            logger.debug(f"Dangling relation targets from {source_eid!r}: {sorted(missing)}")
        return entities

    # -------------------------------------------------------------------------
    # Nearest neighbors and semantic search
    # -------------------------------------------------------------------------

    async def find_nearest_entities_by_entity(self, eid: str, limit: int = 5) -> list[ScoredNode]:
        """
        Entities closest to `eid` in the primary (identity) space.

        The entity itself is never part of the result.

        Raises:
            NotFound: If `eid` is not in the store
            ValueError: If limit < 1
        """
        _check_limit(limit)
        eid = normalize_id(eid)
        points = await self.store.retrieve([eid], with_vectors=True)
        source = next((p for p in points if isinstance(p, Entity)), None)
        if source is None or source.vectors is None:
            raise NotFound(eid, f"Entity not found: {eid!r}")

        exclude_self = Filter(
            must=[kind_is("entity")],
            must_not=[field_equals("eid", source.eid)],
        )
        return await self.store.search("primary", source.vectors.primary, exclude_self, limit=limit)

    async def _search_kind(
        self,
        kind: str,
        vector_name: VectorName,
        vector: Sequence[float],
        limit: int,
    ) -> list[ScoredNode]:
        _check_limit(limit)
        return await self.store.search(
            vector_name, vector, Filter.all_of(kind_is(kind)), limit=limit
        )

    async def semantic_search_entities(self, vector: Sequence[float], limit: int = 5) -> list[ScoredNode]:
        """Entities nearest to `vector` in the secondary (category) space."""
        return await self._search_kind("entity", "secondary", vector, limit)

    async def semantic_search_entities_by_primary(
        self, vector: Sequence[float], limit: int = 5
    ) -> list[ScoredNode]:
        """Entities nearest to `vector` in the primary (eid) space."""
        return await self._search_kind("entity", "primary", vector, limit)

    async def semantic_search_entities_by_secondary(
        self, vector: Sequence[float], limit: int = 5
    ) -> list[ScoredNode]:
        """Entities nearest to `vector` in the secondary (category) space."""
        return await self._search_kind("entity", "secondary", vector, limit)

    async def semantic_search_relations(self, vector: Sequence[float], limit: int = 5) -> list[ScoredNode]:
        """Relations nearest to `vector` in the primary (name) space."""
        return await self._search_kind("relation", "primary", vector, limit)

    async def semantic_search_relations_by_primary(
        self, vector: Sequence[float], limit: int = 5
    ) -> list[ScoredNode]:
        """Relations nearest to `vector` in the primary (name) space."""
        return await self._search_kind("relation", "primary", vector, limit)

    async def semantic_search_relations_by_secondary(
        self, vector: Sequence[float], limit: int = 5
    ) -> list[ScoredNode]:
        """Relations nearest to `vector` in the secondary (rid) space."""
        return await self._search_kind("relation", "secondary", vector, limit)

    async def _embed_query(self, text: str) -> list[float]:
        if self.embeddings is None:
            raise RuntimeError("QueryEngine was created without an embedding provider")
        return await self.embeddings.embed_single(text)

    async def search_entities(
        self,
        text: str,
        limit: int = 5,
        vector_name: VectorName = "primary",
    ) -> list[ScoredNode]:
        """
        Embed `text` and search entities.

        Use vector_name="primary" to match on entity names and "secondary" to
        match on categories.
        """
        _check_limit(limit)
        vector = await self._embed_query(text)
        return await self._search_kind("entity", vector_name, vector, limit)

    async def search_relations(
        self,
        text: str,
        limit: int = 5,
        vector_name: VectorName = "primary",
    ) -> list[ScoredNode]:
        """
        Embed `text` and search relations.

        Use vector_name="primary" to match on relation names and "secondary"
        to match on full "name:: (source) -> (dest)" ids.
        """
        _check_limit(limit)
        vector = await self._embed_query(text)
        return await self._search_kind("relation", vector_name, vector, limit)
