"""
Result Types

Store primitives:
    - ScrollPage: one page of a cursor scan

Ingestion results:
    - NodeFailure: a node that could not be embedded or written
    - AssemblyResult: outcome of writing one batch of nodes
    - IngestResult: outcome of ingesting one text
    - FileIngestResult: per-file outcome of a directory walk
"""

from pydantic import BaseModel, Field

from tom_kg.types.nodes import Node, NodeKind


class ScrollPage(BaseModel):
    """
    One page of points matching a filter.

    Attributes:
        points: Nodes on this page
        next_offset: Opaque cursor for the next page, None on the last page
    """

    points: list[Node] = Field(default_factory=list)
    next_offset: int | str | None = None


class NodeFailure(BaseModel):
    """A node whose embedding or upsert failed."""

    point_id: str
    kind: NodeKind
    error: str


class AssemblyResult(BaseModel):
    """Counts and ids of nodes written by the Assembler."""

    entity_ids: list[str] = Field(default_factory=list)
    relation_ids: list[str] = Field(default_factory=list)
    failures: list[NodeFailure] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class IngestResult(BaseModel):
    """
    Result from ingesting one text.

    Attributes:
        source: Where the text came from (file path or caller label)
        entity_ids: eids written (upserted) to the store
        relation_ids: rids written to the store
        pruned_entity_ids: eids dropped for falling below min_importance
        failures: Nodes that could not be written; the rest were kept
        duration_seconds: Wall time for the whole text
    """

    source: str | None = None
    entity_ids: list[str] = Field(default_factory=list)
    relation_ids: list[str] = Field(default_factory=list)
    pruned_entity_ids: list[str] = Field(default_factory=list)
    failures: list[NodeFailure] = Field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.failures


class FileIngestResult(BaseModel):
    """Per-file outcome of ingest_directory."""

    file: str
    ok: bool
    error: str | None = None
    result: IngestResult | None = None
