"""
Storage

The store adapter owns a single collection in which the `kind` payload field
partitions points into entities and relations. Every point carries two named
vectors (`primary`, `secondary`).

Modules:
    base: Abstract VectorStore interface (upsert / retrieve / scroll / search)
    filters: Boolean filter DSL ({must, must_not} of {key, match: {value}})
    lancedb/: Embedded LanceDB implementation

Collection Layout:
    tom_db/                 # store_path
    └── tom.lance/          # one table, both node kinds
"""

from tom_kg.storage.base import VectorStore
from tom_kg.storage.filters import FieldCondition, Filter, MatchValue, field_equals, kind_is
from tom_kg.storage.lancedb import LanceDBStore

__all__ = [
    "VectorStore",
    "LanceDBStore",
    "Filter",
    "FieldCondition",
    "MatchValue",
    "field_equals",
    "kind_is",
]
