"""
TOM - Ontology of Medicine Knowledge Graph

Builds a medical ontology from unstructured text. Entities and relations are
extracted by an LLM, embedded twice (a primary and a secondary vector space),
and stored as points in a single vector collection that serves both exact
graph lookups and semantic similarity queries.

Example:
    >>> from tom_kg import TomGraph
    >>> async with TomGraph() as tom:
    ...     await tom.ingest_text("Proton pump inhibitors treat upper GI bleeding.")
    ...     meds = await tom.queries.get_entities_by_category("medication")

Main Classes:
    TomGraph: Primary entry point (lifecycle, ingestion, queries)
    TomConfig: Configuration management
    QueryEngine: Stateless read API over the collection
"""

__version__ = "0.1.0"


# Public API - lazy imports to avoid loading optional dependencies
def __getattr__(name: str):
    """Lazy import public API components."""

    if name == "TomGraph":
        from tom_kg.api.tom import TomGraph
        return TomGraph

    if name == "TomConfig":
        from tom_kg.config.settings import TomConfig
        return TomConfig

    if name == "QueryEngine":
        from tom_kg.query.engine import QueryEngine
        return QueryEngine

    # Convenience functions
    if name in ("ingest_text", "ingest_directory"):
        from tom_kg.api import convenience
        return getattr(convenience, name)

    # Types
    if name in ("Category", "Entity", "Relation", "Node", "NamedVectors", "ScoredNode"):
        from tom_kg import types
        return getattr(types, name)

    raise AttributeError(f"module 'tom_kg' has no attribute {name!r}")


__all__ = [
    # Main classes
    "TomGraph",
    "TomConfig",
    "QueryEngine",

    # Convenience functions
    "ingest_text",
    "ingest_directory",

    # Types
    "Category",
    "Entity",
    "Relation",
    "Node",
    "NamedVectors",
    "ScoredNode",

    # Version
    "__version__",
]
