"""
Extraction

Structured LLM extraction of entities and relations from text.
"""

from tom_kg.ingestion.extraction.extractor import extract_entities, extract_relations

__all__ = ["extract_entities", "extract_relations"]
