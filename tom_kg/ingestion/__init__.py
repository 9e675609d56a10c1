"""
Ingestion

Text -> entities/relations -> embeddings -> store.

Modules:
    extraction/: Structured LLM extraction (entities, then relations)
    assembly/: Embedding and upsert of nodes
    pipeline: IngestionPipeline (ingest_text, ingest_directory)
"""

from tom_kg.ingestion.assembly import Assembler
from tom_kg.ingestion.extraction import extract_entities, extract_relations
from tom_kg.ingestion.pipeline import IngestionPipeline

__all__ = [
    "Assembler",
    "IngestionPipeline",
    "extract_entities",
    "extract_relations",
]
