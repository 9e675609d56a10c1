"""LanceDB store adapter."""

from tom_kg.storage.lancedb.store import LanceDBStore

__all__ = ["LanceDBStore"]
