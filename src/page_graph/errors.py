"""Typed exception hierarchy for page tree assembly errors."""

from typing import List

from src.document.errors import DocumentError


class PageGraphError(DocumentError):
    """Base exception for errors found while assembling the page tree."""
    pass


class DuplicateIndex(PageGraphError):
    """Raised when a directory has more than one index document.

    Fatal for the whole directory subtree.
    """

    def __init__(self, directory: str, paths: List[str]):
        where = directory or "<root>"
        super().__init__(
            directory,
            f"Duplicate index documents in '{where}': {', '.join(sorted(paths))}"
        )
        self.directory = directory
        self.paths = sorted(paths)


class DuplicateTitle(PageGraphError):
    """Raised when two documents resolve to the same page title."""

    def __init__(self, source: str, title: str, existing: str):
        super().__init__(
            source,
            f"Duplicate title '{title}' in '{source}' (already used by '{existing}')"
        )
        self.title = title
        self.existing = existing


class MissingParent(PageGraphError):
    """Raised when a document's directory chain has no index document to hang it from."""

    def __init__(self, source: str, parent_path: str):
        super().__init__(source, f"Missing parent for '{source}': expected '{parent_path}'")
        self.parent_path = parent_path
