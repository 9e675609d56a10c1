"""Public API: the TomGraph facade and convenience functions."""

from tom_kg.api.convenience import ingest_directory, ingest_text
from tom_kg.api.tom import TomGraph

__all__ = ["TomGraph", "ingest_directory", "ingest_text"]
