"""
Convenience Functions

Top-level functions for common operations without explicit TomGraph
instantiation. These are designed for quick scripts and REPL usage.

Example:
    >>> from tom_kg import ingest_text, ingest_directory
    >>> ingest_text("Ibuprofen is a nonsteroidal anti-inflammatory drug.")
    >>> results = ingest_directory("./notes", ext=".md")
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tom_kg.config.settings import TomConfig
    from tom_kg.types.results import FileIngestResult, IngestResult


def ingest_text(
    text: str,
    *,
    config: "TomConfig | None" = None,
    **kwargs: Any,
) -> "IngestResult":
    """
    Ingest one text into the collection named by the config.

    Args:
        text: Free text
        config: Optional configuration (defaults to TomConfig())
        **kwargs: Additional arguments passed to TomGraph.ingest_text()
    """
    from tom_kg.api.tom import TomGraph
    with TomGraph(config) as tom:
        return tom.ingest_text_sync(text, **kwargs)


def ingest_directory(
    path: str | Path,
    *,
    config: "TomConfig | None" = None,
    **kwargs: Any,
) -> list["FileIngestResult"]:
    """Ingest every matching file in a directory."""
    from tom_kg.api.tom import TomGraph
    with TomGraph(config) as tom:
        return tom.ingest_directory_sync(path, **kwargs)
