"""
Error Taxonomy

Exceptions raised by the extraction, storage and query layers. Everything
derives from TomError so callers can catch the library's failures in one place.

    TomError
    ├── ExtractionFailed    LLM transport error or schema-invalid output
    ├── NotFound            a required id lookup returned nothing
    ├── StoreUnavailable    the vector store cannot be reached
    │   └── StoreTimeout    a store call exceeded its time budget
    └── InvalidFilter       malformed filter predicate
"""


class TomError(Exception):
    """Base class for all TOM errors."""


class ExtractionFailed(TomError):
    """Structured extraction failed (transport error or invalid output)."""


class NotFound(TomError):
    """A point required by the operation does not exist."""

    def __init__(self, point_id: str, message: str | None = None) -> None:
        self.point_id = point_id
        super().__init__(message or f"Point not found: {point_id!r}")


class StoreUnavailable(TomError):
    """The vector store could not be reached or is not initialized."""


class StoreTimeout(StoreUnavailable):
    """A vector store call did not complete within the configured timeout."""


class InvalidFilter(TomError):
    """A filter predicate is malformed or references an unknown field."""
