"""
Query

Read-only access to the TOM collection: lookup, traversal, nearest-neighbor
and semantic search, all built from the store primitives.
"""

from tom_kg.query.engine import QueryEngine

__all__ = ["QueryEngine"]
