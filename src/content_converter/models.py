"""Data models for document conversion."""

import re
from dataclasses import dataclass, field
from typing import List
from urllib.parse import urlparse

from src.document.diagnostics import DocumentWarning


def attachment_key(reference: str) -> str:
    """Attachment name used on the remote page for a media reference.

    Local files are keyed by their path relative to the source directory
    with path separators replaced by ``_``, so that same-named files from
    different directories do not collide on one page. Remote URLs are keyed
    by host and path the same way.

    Example:
        >>> attachment_key("assets/diagram.png")
        'assets_diagram.png'
        >>> attachment_key("https://example.com/img/logo.png")
        'example.com_img_logo.png'
    """
    if reference.startswith(("http://", "https://")):
        parsed = urlparse(reference)
        reference = f"{parsed.netloc}{parsed.path}"
    key = re.sub(r"[/\\]+", "_", reference.strip("/\\"))
    return key or "attachment"


@dataclass(frozen=True)
class AttachmentSpec:
    """A media file referenced by a page.

    Attributes:
        page: Path of the owning document
        reference: Reference as written in the document
        source: Absolute local file path, or remote URL
        key: Deduplication key, used as the remote attachment name
    """
    page: str
    reference: str
    source: str
    key: str

    @property
    def is_remote(self) -> bool:
        return self.source.startswith(("http://", "https://"))


@dataclass
class ConversionResult:
    """Output of converting one document.

    Attributes:
        title: Page title
        body: Confluence storage format body
        attachments: Media referenced by the body, one entry per key
        warnings: Non-fatal diagnostics
    """
    title: str
    body: str
    attachments: List[AttachmentSpec] = field(default_factory=list)
    warnings: List[DocumentWarning] = field(default_factory=list)
