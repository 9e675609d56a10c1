"""
LanceDB Store Adapter

Owns the TOM collection: one LanceDB table holding entity and relation
points, each with two named vector columns.

Table schema:
    id          string    point id (eid for entities, rid for relations)
    kind        string    "entity" | "relation"
    eid         string    entity payload
    category    string    entity payload
    importance  double    entity payload (nullable)
    rid         string    relation payload
    name        string    relation payload
    source_eid  string    relation payload
    dest_eid    string    relation payload
    primary     fixed_size_list<float32, D>
    secondary   fixed_size_list<float32, D>
"""

import asyncio
import logging
import threading
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any, TypeVar

import lancedb
import pyarrow as pa
from pydantic import TypeAdapter

from tom_kg.config import TomConfig
from tom_kg.errors import StoreTimeout, StoreUnavailable
from tom_kg.storage.base import VectorStore
from tom_kg.storage.filters import FieldCondition, Filter
from tom_kg.types import (
    PAYLOAD_FIELDS,
    VECTOR_NAMES,
    Node,
    ScoredNode,
    ScrollPage,
    VectorName,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_NODE_ADAPTER: TypeAdapter[Node] = TypeAdapter(Node)

# Column order for the table; vectors are appended by _schema()
PAYLOAD_COLUMNS = [
    "id",
    "kind",
    "eid",
    "category",
    "importance",
    "rid",
    "name",
    "source_eid",
    "dest_eid",
]


class LanceDBStore(VectorStore):
    """
    Vector store adapter backed by an embedded LanceDB database.

    Thread safety:
        Uses thread-local storage for connections since LanceDB connections
        may not be thread-safe and asyncio.to_thread() may use different threads.
        Every connection is also tracked so close() can release all of them.
        Writes hold a store-wide lock so one merge_insert runs at a time;
        concurrent inserts of a new id would otherwise both land.

    Every call runs in a worker thread under `store_timeout_seconds`;
    a timeout raises StoreTimeout, an I/O failure raises StoreUnavailable.
    """

    @staticmethod
    def _escape_sql_string(value: str) -> str:
        """Escape single quotes for SQL WHERE clauses."""
        return value.replace("'", "''")

    def __init__(
        self,
        path: Path | str,
        config: TomConfig | None = None,
        *,
        collection_name: str | None = None,
        dimensions: int | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        config = config or TomConfig()
        self.path = Path(path)
        self._collection_name = collection_name or config.collection_name
        self._dimensions = dimensions or config.embedding_dimensions
        self._timeout = timeout_seconds or config.store_timeout_seconds
        self._local = threading.local()
        self._connections: list[lancedb.DBConnection] = []
        self._connections_lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._initialized = False

    @property
    def collection_name(self) -> str:
        return self._collection_name

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _schema(self) -> pa.Schema:
        vector_type = pa.list_(pa.float32(), self._dimensions)
        return pa.schema(
            [
                pa.field("id", pa.string(), nullable=False),
                pa.field("kind", pa.string(), nullable=False),
                pa.field("eid", pa.string()),
                pa.field("category", pa.string()),
                pa.field("importance", pa.float64()),
                pa.field("rid", pa.string()),
                pa.field("name", pa.string()),
                pa.field("source_eid", pa.string()),
                pa.field("dest_eid", pa.string()),
                pa.field("primary", vector_type),
                pa.field("secondary", vector_type),
            ]
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def initialize(self) -> None:
        """Connect and create the collection if it does not exist."""
        if self._initialized:
            return

        def _init() -> None:
            self.path.mkdir(parents=True, exist_ok=True)
            self._ensure_table(self._get_db())

        self._initialized = True
        try:
            await self._run(_init, "initialize")
        except BaseException:
            self._initialized = False
            raise

    async def close(self) -> None:
        """Close LanceDB connections opened by any worker thread."""
        self._initialized = False
        with self._connections_lock:
            connections, self._connections = self._connections, []
            # A fresh local drops every thread's cached handle
            self._local = threading.local()
        for db in connections:
            closer = getattr(db, "close", None)
            if callable(closer):
                closer()
        if connections:
            logger.debug(f"Closed {len(connections)} LanceDB connection(s) at {self.path}")

    @property
    def open_connections(self) -> int:
        with self._connections_lock:
            return len(self._connections)

    def _get_db(self) -> lancedb.DBConnection:
        """Get thread-local LanceDB connection, creating if needed."""
        local = self._local
        db = getattr(local, "db", None)
        if db is None:
            logger.debug(f"Connecting to LanceDB at {self.path}")
            db = lancedb.connect(str(self.path))
            local.db = db
            with self._connections_lock:
                self._connections.append(db)
        return db

    @staticmethod
    def _table_names(db: lancedb.DBConnection) -> set[str]:
        """
        Return table names across LanceDB API variants.

        Recent LanceDB returns a response object from list_tables() with a
        `tables` attribute, while older versions return a plain list.
        """
        listed = db.list_tables()
        tables = getattr(listed, "tables", listed)
        return {str(name) for name in tables}

    def _has_table(self, db: lancedb.DBConnection) -> bool:
        return self._collection_name in self._table_names(db)

    def _ensure_table(self, db: lancedb.DBConnection) -> Any:
        """Open the collection, creating it with both vector columns if missing."""
        if self._has_table(db):
            table = db.open_table(self._collection_name)
            size = table.schema.field("primary").type.list_size
            if size != self._dimensions:
                raise ValueError(
                    f"Collection {self._collection_name!r} stores {size}-dim vectors, "
                    f"configured for {self._dimensions}"
                )
            return table

        logger.info(
            f"Creating collection {self._collection_name!r} "
            f"(vectors: primary, secondary; size={self._dimensions}; distance=cosine)"
        )
        return db.create_table(self._collection_name, schema=self._schema(), exist_ok=True)

    async def _run(self, fn: Callable[[], T], operation: str) -> T:
        """Run a blocking LanceDB call in a worker thread under the timeout."""
        if not self._initialized:
            raise StoreUnavailable("LanceDB store not initialized. Call initialize() first.")
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn), timeout=self._timeout)
        except TimeoutError as e:
            raise StoreTimeout(
                f"{operation} on {self._collection_name!r} exceeded {self._timeout}s"
            ) from e
        except OSError as e:
            raise StoreUnavailable(f"{operation} on {self._collection_name!r} failed: {e}") from e

    # -------------------------------------------------------------------------
    # Collection Management
    # -------------------------------------------------------------------------

    async def collection_exists(self) -> bool:
        return await self._run(lambda: self._has_table(self._get_db()), "collection_exists")

    async def drop_collection(self) -> None:
        def _drop() -> None:
            db = self._get_db()
            with self._write_lock:
                if not self._has_table(db):
                    return
                db.drop_table(self._collection_name)
                logger.info(f"Dropped collection {self._collection_name!r}")

        await self._run(_drop, "drop_collection")

    async def count(self, filter: Filter | None = None) -> int:
        where = self._compile_filter(filter)

        def _count() -> int:
            db = self._get_db()
            if not self._has_table(db):
                return 0
            return int(db.open_table(self._collection_name).count_rows(where))

        return await self._run(_count, "count")

    # -------------------------------------------------------------------------
    # Primitives
    # -------------------------------------------------------------------------

    async def upsert(self, nodes: Sequence[Node]) -> None:
        """Merge-insert points on id; an existing point is overwritten."""
        if not nodes:
            return

        # Last occurrence wins within a batch as well
        rows = list({row["id"]: row for row in map(self._node_to_row, nodes)}.values())

        def _upsert() -> None:
            data = pa.Table.from_pylist(rows, schema=self._schema())
            with self._write_lock:
                table = self._ensure_table(self._get_db())
                (
                    table.merge_insert("id")
                    .when_matched_update_all()
                    .when_not_matched_insert_all()
                    .execute(data)
                )

        await self._run(_upsert, "upsert")
        logger.debug(f"Upserted {len(rows)} points into {self._collection_name!r}")

    async def retrieve(
        self,
        ids: Sequence[str],
        *,
        with_vectors: bool = False,
    ) -> list[Node]:
        unique_ids = list(dict.fromkeys(ids))
        if not unique_ids:
            return []

        in_list = ", ".join(f"'{self._escape_sql_string(i)}'" for i in unique_ids)
        where = f"`id` IN ({in_list})"
        columns = self._columns(with_vectors)

        def _retrieve() -> list[dict[str, Any]]:
            db = self._get_db()
            if not self._has_table(db):
                return []
            table = db.open_table(self._collection_name)
            return (
                table.search()
                .where(where)
                .select(columns)
                .limit(len(unique_ids))
                .to_list()
            )

        rows = await self._run(_retrieve, "retrieve")
        by_id = {row["id"]: row for row in rows}
        logger.debug(f"Retrieved {len(by_id)}/{len(unique_ids)} points")
        return [
            self._row_to_node(by_id[i], with_vectors) for i in unique_ids if i in by_id
        ]

    async def scroll(
        self,
        filter: Filter | None = None,
        *,
        limit: int = 100,
        offset: int | str | None = None,
        with_vectors: bool = False,
    ) -> ScrollPage:
        if limit < 1:
            raise ValueError("limit must be a positive integer")
        start = self._parse_offset(offset)
        where = self._compile_filter(filter)
        columns = self._columns(with_vectors)

        def _scroll() -> list[dict[str, Any]]:
            db = self._get_db()
            if not self._has_table(db):
                return []
            query = db.open_table(self._collection_name).search()
            if where:
                query = query.where(where)
            # One extra row tells us whether another page exists
            return query.select(columns).limit(limit + 1).offset(start).to_list()

        rows = await self._run(_scroll, "scroll")
        has_more = len(rows) > limit
        rows = rows[:limit]
        return ScrollPage(
            points=[self._row_to_node(row, with_vectors) for row in rows],
            next_offset=start + limit if has_more else None,
        )

    async def search(
        self,
        vector_name: VectorName,
        vector: Sequence[float],
        filter: Filter | None = None,
        *,
        limit: int = 5,
    ) -> list[ScoredNode]:
        """
        Cosine nearest-neighbor search on one named vector column.

        The filter is applied before ranking, so `limit` counts only
        matching points. LanceDB returns distance, converted to
        similarity (1 - distance).
        """
        if vector_name not in VECTOR_NAMES:
            raise ValueError(f"Unknown vector name: {vector_name!r}")
        if len(vector) != self._dimensions:
            raise ValueError(
                f"Query vector has {len(vector)} dimensions, expected {self._dimensions}"
            )
        if limit < 1:
            raise ValueError("limit must be a positive integer")

        where = self._compile_filter(filter)
        query_vector = [float(x) for x in vector]

        def _search() -> list[dict[str, Any]]:
            db = self._get_db()
            if not self._has_table(db):
                return []
            table = db.open_table(self._collection_name)
            if table.count_rows() == 0:
                return []
            query = table.search(
                query_vector,
                vector_column_name=vector_name,
                query_type="vector",
            ).distance_type("cosine")
            if where:
                query = query.where(where, prefilter=True)
            return query.select(PAYLOAD_COLUMNS).limit(limit).to_list()

        rows = await self._run(_search, "search")
        return [
            ScoredNode(node=self._row_to_node(row, False), score=1.0 - float(row["_distance"]))
            for row in rows
        ]

    # -------------------------------------------------------------------------
    # Conversion Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _columns(with_vectors: bool) -> list[str]:
        return [*PAYLOAD_COLUMNS, *VECTOR_NAMES] if with_vectors else list(PAYLOAD_COLUMNS)

    @staticmethod
    def _parse_offset(offset: int | str | None) -> int:
        if offset is None:
            return 0
        try:
            start = int(offset)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid scroll offset: {offset!r}") from None
        if start < 0:
            raise ValueError(f"Invalid scroll offset: {offset!r}")
        return start

    def _node_to_row(self, node: Node) -> dict[str, Any]:
        """Flatten a node into a table row, checking both vectors."""
        if node.vectors is None:
            raise ValueError(f"Point {node.point_id!r} has no vectors")
        for name in VECTOR_NAMES:
            size = len(node.vectors.get(name))
            if size != self._dimensions:
                raise ValueError(
                    f"Point {node.point_id!r}: {name} vector has {size} dimensions, "
                    f"expected {self._dimensions}"
                )

        row: dict[str, Any] = dict.fromkeys(PAYLOAD_COLUMNS)
        row.update(node.model_dump(mode="json", exclude={"vectors"}))
        row["id"] = node.point_id
        row["primary"] = node.vectors.primary
        row["secondary"] = node.vectors.secondary
        return row

    @staticmethod
    def _row_to_node(row: dict[str, Any], with_vectors: bool) -> Node:
        """Validate a table row into the Entity | Relation union."""
        payload = {
            key: row[key]
            for key in PAYLOAD_FIELDS
            if row.get(key) is not None
        }
        if with_vectors:
            payload["vectors"] = {
                "primary": list(row["primary"]),
                "secondary": list(row["secondary"]),
            }
        return _NODE_ADAPTER.validate_python(payload)

    def _compile_filter(self, filter: Filter | None) -> str | None:
        """Compile a Filter to a LanceDB SQL predicate (None = no filter)."""
        if filter is None or filter.is_empty:
            return None
        return self._compile_clause(filter)

    def _compile_clause(self, filter: Filter) -> str:
        parts = [self._compile_entry(entry) for entry in filter.must]
        parts += [f"NOT {self._compile_entry(entry)}" for entry in filter.must_not]
        if not parts:
            return "TRUE"
        return "(" + " AND ".join(parts) + ")"

    def _compile_entry(self, entry: FieldCondition | Filter) -> str:
        if isinstance(entry, Filter):
            return self._compile_clause(entry)
        column = f"`{entry.key}`"
        # A missing field never matches, so NOT over it holds
        return f"({column} IS NOT NULL AND {column} = {self._literal(entry.match.value)})"

    def _literal(self, value: str | int | float | bool) -> str:
        if isinstance(value, bool):
            return "TRUE" if value else "FALSE"
        if isinstance(value, (int, float)):
            return repr(value)
        return f"'{self._escape_sql_string(value)}'"
