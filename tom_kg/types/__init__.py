"""
Type Definitions

Pydantic models for all data structures.

Storage Models (points in the TOM collection):
    - Entity, Relation, Node (tagged union on `kind`)
    - Category - closed set of entity categories
    - NamedVectors - primary/secondary vectors carried by every node
    - ScoredNode - vector search hit

Extraction Models (used during ingestion):
    - EntityExtraction, RelationExtraction - LLM structured-output schemas
    - ExtractedEntity, ExtractedRelation - cleaned extractor output

Result Models:
    - ScrollPage, AssemblyResult, IngestResult, FileIngestResult, NodeFailure
"""

from tom_kg.types.extraction import (
    CandidateEntity,
    CandidateRelation,
    EntityExtraction,
    ExtractedEntity,
    ExtractedRelation,
    RelationExtraction,
)
from tom_kg.types.nodes import (
    PAYLOAD_FIELDS,
    VECTOR_NAMES,
    Category,
    CategoryLabel,
    Entity,
    NamedVectors,
    Node,
    NodeKind,
    Relation,
    ScoredNode,
    VectorName,
    make_rid,
    normalize_id,
)
from tom_kg.types.results import (
    AssemblyResult,
    FileIngestResult,
    IngestResult,
    NodeFailure,
    ScrollPage,
)

__all__ = [
    # Storage
    "Category",
    "CategoryLabel",
    "Entity",
    "Relation",
    "Node",
    "NodeKind",
    "NamedVectors",
    "ScoredNode",
    "VectorName",
    "VECTOR_NAMES",
    "PAYLOAD_FIELDS",
    "make_rid",
    "normalize_id",
    # Extraction
    "CandidateEntity",
    "CandidateRelation",
    "EntityExtraction",
    "RelationExtraction",
    "ExtractedEntity",
    "ExtractedRelation",
    # Results
    "ScrollPage",
    "NodeFailure",
    "AssemblyResult",
    "IngestResult",
    "FileIngestResult",
]
