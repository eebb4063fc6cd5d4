"""Read-only cross-document indices shared by all macro evaluations.

The index is built once, before any document is converted, and is never
written to afterwards. Conversion workers only read from it.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageSummary:
    """What other documents may know about a document.

    Attributes:
        path: Document path relative to the source directory
        title: Page title (heading or title override)
        labels: Declared labels
        metadata: Declared free-form metadata
    """
    path: str
    title: str
    labels: Tuple[str, ...] = ()
    metadata: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)


class CrossDocumentIndex:
    """Label, path and file indices over the whole document set.

    Args:
        space_key: Key of the target Confluence space
        pages: One summary per document that has a title
        files: Relative paths of the non-document files in the source tree

    Example:
        >>> index = CrossDocumentIndex("DOCS", [PageSummary("a.md", "A", ("x",))])
        >>> [p.title for p in index.pages_with_label("x")]
        ['A']
    """

    def __init__(self, space_key: str, pages: Iterable[PageSummary] = (),
                 files: Iterable[str] = ()):
        self.space_key = space_key
        self._by_path: Dict[str, PageSummary] = {}
        by_label: Dict[str, List[PageSummary]] = defaultdict(list)

        for page in sorted(pages, key=lambda p: p.path):
            self._by_path[page.path] = page
            for label in page.labels:
                by_label[label].append(page)

        self._by_label = dict(by_label)
        self._files = frozenset(files)
        logger.debug(
            f"Indexed {len(self._by_path)} documents, {len(self._by_label)} labels, "
            f"{len(self._files)} files"
        )

    def __len__(self) -> int:
        return len(self._by_path)

    def page(self, path: str) -> Optional[PageSummary]:
        """Summary of the document at ``path``, or None."""
        return self._by_path.get(path)

    def pages_with_label(self, label: str) -> List[PageSummary]:
        """Documents declaring ``label``, ordered by path."""
        return list(self._by_label.get(label, []))

    def has_file(self, path: str) -> bool:
        """True if ``path`` is a non-document file of the source tree."""
        return path in self._files

    @property
    def labels(self) -> List[str]:
        return sorted(self._by_label)
