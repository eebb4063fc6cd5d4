"""Markdown to Confluence storage format conversion.

This module converts the macro-expanded body of a document into Confluence
storage format (XHTML). Python-Markdown parses the extended markup (tables,
fenced code, footnotes, strikethrough); StorageRenderer then rewrites the
resulting HTML into Confluence's native constructs.

Nested lists follow Python-Markdown's rules and need four spaces of
indentation per level.
"""

import logging
from typing import Optional, Tuple

import markdown as md
from bs4 import BeautifulSoup, Tag

from src.document.errors import ConversionError, MissingTitle
from src.macros.index import CrossDocumentIndex

from .extensions import ConfluenceExtension, StrikethroughExtension
from .models import ConversionResult
from .storage_renderer import HEADING_TAGS, StorageRenderer

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSIONS = [
    'tables',
    'fenced_code',
    'sane_lists',
    'footnotes',
]


def _markdown() -> md.Markdown:
    return md.Markdown(
        extensions=MARKDOWN_EXTENSIONS + [StrikethroughExtension(), ConfluenceExtension()],
        output_format='xhtml',
    )


def render_html(text: str) -> str:
    """Render markdown to plain HTML with the converter's extensions."""
    return _markdown().convert(text)


def first_heading(text: str) -> Optional[str]:
    """Text of the first heading of a markdown body, or None.

    Used to learn page titles before documents are converted.

    Example:
        >>> first_heading("intro\\n\\n## Hello *world*\\n")
        'Hello world'
    """
    soup = BeautifulSoup(render_html(text), "html.parser")
    heading = soup.find(HEADING_TAGS)
    if heading is None:
        return None
    return heading.get_text().strip() or None


class DocumentConverter:
    """Converts document bodies to Confluence storage format.

    One converter is shared by all conversion workers; it holds no state
    that changes between documents.

    Args:
        index: Cross-document index, used to resolve links between documents
        source_dir: Directory that document paths are relative to
        index_name: File name of directory index documents
        mirror_remote_images: Upload remote images as attachments instead of
            linking them

    Example:
        >>> converter = DocumentConverter(CrossDocumentIndex("DOCS"))
        >>> result = converter.convert("a.md", "# Title\\n\\nSome ~~old~~ text\\n")
        >>> result.title
        'Title'
        >>> result.body
        '<p>Some <del>old</del> text</p>'
    """

    def __init__(self, index: CrossDocumentIndex, source_dir: str = ".",
                 index_name: str = "index.md", mirror_remote_images: bool = False):
        self.index = index
        self.source_dir = source_dir
        self.index_name = index_name
        self.mirror_remote_images = mirror_remote_images

    def convert(self, source: str, text: str, title: Optional[str] = None,
                folder: bool = False) -> ConversionResult:
        """Convert a macro-expanded markdown body.

        The first heading becomes the page title and is removed from the
        body, unless ``title`` overrides it, in which case all headings stay.

        Args:
            source: Path of the document
            text: Markdown body with macros already evaluated
            title: Title override from frontmatter
            folder: Only derive the title; the body is discarded

        Returns:
            ConversionResult with title, body, attachments and warnings

        Raises:
            MissingTitle: If there is no heading and no title override
            ConversionError: If the markup cannot be converted
        """
        try:
            html = render_html(text)
            soup = BeautifulSoup(html, "html.parser")
        except Exception as e:
            raise ConversionError(source, str(e)) from e

        title, soup = self._extract_title(source, soup, title)

        if folder:
            logger.debug(f"{source}: folder index, discarding body")
            return ConversionResult(title=title, body="")

        renderer = StorageRenderer(
            source=source,
            index=self.index,
            source_dir=self.source_dir,
            index_name=self.index_name,
            mirror_remote_images=self.mirror_remote_images,
        )
        try:
            renderer.render(soup)
        except Exception as e:
            raise ConversionError(source, f"cannot render storage format: {type(e).__name__}: {e}") from e

        body = str(soup).strip()
        logger.debug(
            f"{source}: converted '{title}' ({len(body)} chars, "
            f"{len(renderer.attachments)} attachments, {len(renderer.warnings)} warnings)"
        )
        return ConversionResult(
            title=title,
            body=body,
            attachments=list(renderer.attachments.values()),
            warnings=list(renderer.warnings),
        )

    def _extract_title(self, source: str, soup: BeautifulSoup,
                       override: Optional[str]) -> Tuple[str, BeautifulSoup]:
        if override:
            return override, soup

        heading = soup.find(HEADING_TAGS)
        if not isinstance(heading, Tag) or not heading.get_text().strip():
            raise MissingTitle(source)

        title = heading.get_text().strip()
        heading.decompose()
        return title, soup
