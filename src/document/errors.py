"""Typed exception hierarchy for per-document failures.

Every exception here aborts the processing of a single document only. The
pipeline catches them, records them in the run report and carries on with
the remaining documents.
"""

from typing import Optional

from src.confluence_client.errors import SyncError


class DocumentError(SyncError):
    """Base exception for errors tied to one source document."""

    def __init__(self, source: str, message: str):
        super().__init__(message)
        self.source = source
        self.message = message


class MalformedMetadata(DocumentError):
    """Raised when a frontmatter block is present but is not valid YAML metadata."""

    def __init__(self, source: str, reason: str):
        super().__init__(source, f"Malformed frontmatter in '{source}': {reason}")
        self.reason = reason


class MacroEvaluationError(DocumentError):
    """Raised when the macro pass over a document body fails."""

    def __init__(self, source: str, reason: str, macro: Optional[str] = None):
        message = f"Failed to render '{source}': {reason}"
        if macro:
            message += f" (in macro '{macro}')"
        super().__init__(source, message)
        self.reason = reason
        self.macro = macro


class ConversionError(DocumentError):
    """Raised when markdown cannot be converted to Confluence storage format."""

    def __init__(self, source: str, reason: str):
        super().__init__(source, f"Failed to convert '{source}': {reason}")
        self.reason = reason


class MissingTitle(DocumentError):
    """Raised when a document has neither a heading nor a title override."""

    def __init__(self, source: str):
        super().__init__(
            source,
            f"Missing title in '{source}': add a heading or a 'title' frontmatter key"
        )
