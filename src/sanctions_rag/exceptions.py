"""Exception hierarchy for the sanctions assistant.

Recoverable errors (a bad file, a bad CSV row) are caught and logged by the
ingestion runner.  Configuration and persistence errors propagate to the
caller.
"""

from __future__ import annotations

from typing import Any


class SanctionsRagError(Exception):
    """Base class for every error raised by this package.

    Parameters
    ----------
    message:
        Human-readable description.
    context:
        Extra key/value pairs useful when logging the failure.
    """

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ChunkerConfigError(SanctionsRagError, ValueError):
    """A splitter was configured with impossible bounds."""


class ResourceParseError(SanctionsRagError):
    """A resource, or one record inside it, could not be parsed."""


class PersistenceError(SanctionsRagError):
    """The vector store or the ingestion ledger rejected a write."""

    def __init__(self, message: str, *, source_id: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message, context={"source_id": source_id, **(context or {})})
        self.source_id = source_id


class CompletionStreamError(SanctionsRagError):
    """The completion engine failed after the stream had started."""
