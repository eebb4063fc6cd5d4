"""Content conversion from markdown to Confluence storage format.

This module provides the DocumentConverter, which renders macro-expanded
markdown into Confluence XHTML, resolving links between documents and
collecting the media files pages reference.
"""

from .markdown_converter import DocumentConverter, first_heading, render_html
from .models import AttachmentSpec, ConversionResult, attachment_key
from .storage_renderer import StorageRenderer, slugify

__all__ = [
    'DocumentConverter',
    'first_heading',
    'render_html',
    'AttachmentSpec',
    'ConversionResult',
    'attachment_key',
    'StorageRenderer',
    'slugify',
]
