"""Error taxonomy for the site search core.

Ingestion and configuration errors are raised synchronously to the caller
with enough context (document id, field, option name) to fix the source
content. Query evaluation only raises for genuinely invalid input; an empty
result is never an error.
"""

from __future__ import annotations

from typing import Any


class SearchError(Exception):
    """Base error for the search core."""


class ValidationError(SearchError, ValueError):
    """Raised when a raw document descriptor is malformed."""

    def __init__(self, message: str, *, document_id: Any = None, field: str | None = None) -> None:
        super().__init__(message)
        self.document_id = document_id
        self.field = field


class DuplicateDocumentError(ValidationError):
    """Raised when two descriptors in one feed share an id."""

    def __init__(self, document_id: Any) -> None:
        super().__init__(f"Duplicate document id: {document_id!r}", document_id=document_id, field="id")


class ConfigurationError(SearchError, ValueError):
    """Raised when search options are invalid (rejected before any build)."""

    def __init__(self, message: str, *, option: str | None = None) -> None:
        super().__init__(message)
        self.option = option


class QueryError(SearchError, TypeError):
    """Raised for malformed query input such as a non-string query."""


class BuildCancelledError(SearchError):
    """Raised when an index build is aborted through its cancellation token."""


class IndexNotReadyError(SearchError, RuntimeError):
    """Raised when a query arrives before the first index build completed."""


class SnapshotError(SearchError):
    """Raised when a persisted index snapshot cannot be used."""
