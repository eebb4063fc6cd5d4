"""Data models for source documents.

A Document is built once per run from a markdown file. Its frontmatter is
parsed into a FrontMatter; the rest of the file is the body that the macro
and conversion passes work on.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class PageStatus(Enum):
    """Page status declared with the ``status`` frontmatter key.

    Each status maps onto one of Confluence's suggested content states.
    """
    DRAFT = "draft"
    IN_PROGRESS = "in-progress"
    REVIEW = "review"
    VERIFIED = "verified"

    @property
    def content_state(self) -> str:
        """Name of the Confluence content state for this status."""
        return _CONTENT_STATES[self]


_CONTENT_STATES = {
    PageStatus.DRAFT: "Rough draft",
    PageStatus.IN_PROGRESS: "In progress",
    PageStatus.REVIEW: "Ready for review",
    PageStatus.VERIFIED: "Verified",
}


@dataclass(frozen=True)
class Cover:
    """Cover picture of a page.

    Attributes:
        source: Absolute URL, or a path relative to the document's directory
        position: Vertical offset of the picture, 0-100
    """
    source: str
    position: int = 50

    @property
    def is_remote(self) -> bool:
        return self.source.startswith(("http://", "https://"))


@dataclass
class FrontMatter:
    """Metadata declared in a document's frontmatter block.

    Attributes:
        title: Title override (the first heading is used when None)
        labels: Desired page labels
        status: Desired page status (None leaves the status unset)
        cover: Desired cover picture
        folder: True if the document stands for a folder rather than a page
        metadata: Free-form values visible to macros
        imports: Macro files to import, relative to the macro directory
    """
    title: Optional[str] = None
    labels: List[str] = field(default_factory=list)
    status: Optional[PageStatus] = None
    cover: Optional[Cover] = None
    folder: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)
    imports: List[str] = field(default_factory=list)


@dataclass
class Document:
    """One local markdown file.

    Attributes:
        path: Path relative to the source directory, with forward slashes
        raw: Full file content including frontmatter
        front_matter: Parsed frontmatter
        body: Content after the frontmatter block
    """
    path: str
    raw: str
    front_matter: FrontMatter = field(default_factory=FrontMatter)
    body: str = ""

    @property
    def directory(self) -> str:
        """Directory part of ``path`` ('' for documents at the root)."""
        return self.path.rsplit("/", 1)[0] if "/" in self.path else ""

    @property
    def filename(self) -> str:
        return self.path.rsplit("/", 1)[-1]
