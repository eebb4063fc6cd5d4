"""Source documents: frontmatter extraction and document models."""

from .diagnostics import (
    DocumentWarning,
    BrokenLinkWarning,
    UnknownUserWarning,
    MalformedBlockWarning,
)
from .errors import (
    DocumentError,
    MalformedMetadata,
    MacroEvaluationError,
    ConversionError,
    MissingTitle,
)
from .frontmatter_handler import FrontmatterHandler
from .models import Cover, Document, FrontMatter, PageStatus

__all__ = [
    "DocumentWarning",
    "BrokenLinkWarning",
    "UnknownUserWarning",
    "MalformedBlockWarning",
    "DocumentError",
    "MalformedMetadata",
    "MacroEvaluationError",
    "ConversionError",
    "MissingTitle",
    "FrontmatterHandler",
    "Cover",
    "Document",
    "FrontMatter",
    "PageStatus",
]
