"""Assembly of converted documents into the local page tree.

The tree mirrors the directory structure. The index document of a
directory (``index.md`` by default, matched case-insensitively) is the
parent of its sibling documents and of the index documents of its
subdirectories. The root index is the space homepage; other top-level
documents hang below it.

A directory index that declares ``folder: true`` becomes a folder node.
"""

import logging
import posixpath
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from src.content_converter.models import AttachmentSpec, ConversionResult, attachment_key
from src.document.errors import ConversionError, DocumentError, MissingTitle
from src.document.models import Document

from .errors import DuplicateIndex, DuplicateTitle, MissingParent
from .models import NodeKind, PageGraph, PageNode

logger = logging.getLogger(__name__)


@dataclass
class GraphBuildResult:
    """Page tree plus the documents that could not be placed in it."""
    graph: PageGraph
    errors: List[DocumentError] = field(default_factory=list)


class PageGraphBuilder:
    """Builds a PageGraph from converted documents.

    Args:
        index_name: File name of directory index documents
        source_dir: Directory that document paths are relative to

    Example:
        >>> builder = PageGraphBuilder()
        >>> result = builder.build([(doc, conversion) for doc, conversion in converted])
        >>> [node.path for node in result.graph.walk()]
        ['index.md', 'guide.md']
    """

    def __init__(self, index_name: str = "index.md", source_dir: str = "."):
        self.index_name = index_name
        self.source_dir = source_dir

    def is_index(self, path: str) -> bool:
        return posixpath.basename(path).lower() == self.index_name.lower()

    def build(self, documents: Iterable[Tuple[Document, ConversionResult]],
              files: Optional[Iterable[str]] = None) -> GraphBuildResult:
        """Place every converted document in the page tree.

        Errors are collected, not raised: DuplicateIndex drops the whole
        directory subtree, DuplicateTitle and MissingParent drop the
        document (and, for an index, its subtree), MissingTitle and a missing
        local cover drop the document.

        Args:
            documents: Pairs of source document and its conversion result
            files: Non-document files found in the source directory; when
                given, local covers must be among them

        Returns:
            GraphBuildResult with the tree and the collected errors
        """
        entries = {document.path: (document, result) for document, result in documents}
        known_files = set(files) if files is not None else None
        errors: List[DocumentError] = []

        indexes, broken_dirs = self._find_indexes(entries, errors)
        graph = PageGraph()
        titles: Dict[str, str] = {}
        dropped_dirs = set(broken_dirs)

        for path in sorted(entries, key=self._sort_key):
            directory = posixpath.dirname(path)
            if self._under(directory, dropped_dirs):
                logger.debug(f"Skipping {path}: its directory subtree was dropped")
                continue

            document, result = entries[path]
            try:
                node = self._make_node(document, result, indexes, graph, known_files)
                if node.title in titles:
                    raise DuplicateTitle(path, node.title, titles[node.title])
            except DocumentError as e:
                logger.error(str(e))
                errors.append(e)
                if self.is_index(path):
                    dropped_dirs.add(directory)
                continue

            titles[node.title] = path
            graph.add(node)

        logger.info(f"Built page tree with {len(graph)} nodes ({len(errors)} errors)")
        return GraphBuildResult(graph=graph, errors=errors)

    def _sort_key(self, path: str) -> Tuple[int, str, bool, str]:
        # parents first: shallower directories, then the index of each directory
        directory = posixpath.dirname(path)
        depth = directory.count("/") + 1 if directory else 0
        return depth, directory, not self.is_index(path), path

    @staticmethod
    def _under(directory: str, roots: Iterable[str]) -> bool:
        for root in roots:
            if root == "" or directory == root or directory.startswith(root + "/"):
                return True
        return False

    def _find_indexes(self, entries, errors: List[DocumentError]) -> Tuple[Dict[str, str], List[str]]:
        candidates: Dict[str, List[str]] = defaultdict(list)
        for path in entries:
            if self.is_index(path):
                candidates[posixpath.dirname(path)].append(path)

        indexes: Dict[str, str] = {}
        broken: List[str] = []
        for directory, paths in candidates.items():
            if len(paths) > 1:
                error = DuplicateIndex(directory, paths)
                logger.error(str(error))
                errors.append(error)
                broken.append(directory)
            else:
                indexes[directory] = paths[0]
        return indexes, broken

    def _parent_path(self, path: str, indexes: Dict[str, str]) -> Tuple[Optional[str], Optional[str]]:
        """Return (parent path, expected parent path) for a document."""
        directory = posixpath.dirname(path)
        if self.is_index(path):
            if directory == "":
                return None, None
            directory = posixpath.dirname(directory)
        if directory == "":
            return indexes.get(""), None
        expected = posixpath.join(directory, self.index_name)
        return indexes.get(directory), expected

    def _make_node(self, document: Document, result: ConversionResult,
                   indexes: Dict[str, str], graph: PageGraph,
                   files: Optional[Set[str]] = None) -> PageNode:
        path = document.path
        if not result.title:
            raise MissingTitle(path)

        parent, expected = self._parent_path(path, indexes)
        if parent is None and expected is not None:
            raise MissingParent(path, expected)
        if parent is not None and parent not in graph:
            raise MissingParent(path, parent)

        front_matter = document.front_matter
        kind = NodeKind.PAGE
        if front_matter.folder:
            if self.is_index(path) and posixpath.dirname(path):
                kind = NodeKind.FOLDER
            else:
                logger.warning(f"{path}: 'folder' only applies to subdirectory indexes, ignoring")

        node = PageNode(
            path=path,
            title=result.title,
            kind=kind,
            parent=parent,
            body="" if kind == NodeKind.FOLDER else result.body,
            labels=sorted(set(front_matter.labels)),
            cover=front_matter.cover,
            status=front_matter.status,
            attachments=[] if kind == NodeKind.FOLDER else list(result.attachments),
            is_homepage=self.is_index(path) and posixpath.dirname(path) == "",
        )
        if node.cover is not None and not node.cover.is_remote and not node.is_folder:
            self._attach_cover(node, files)
        return node

    def _attach_cover(self, node: PageNode, files: Optional[Set[str]] = None) -> None:
        """Register a local cover picture as an attachment of its page.

        Raises:
            ConversionError: If the cover is not among the known files
        """
        reference = node.cover.source
        if reference.startswith("/"):
            resolved = posixpath.normpath(reference.lstrip("/"))
        else:
            resolved = posixpath.normpath(posixpath.join(posixpath.dirname(node.path), reference))
        if files is not None and resolved not in files:
            raise ConversionError(node.path, f"cover picture '{reference}' does not exist")
        key = attachment_key(resolved)
        node.cover_attachment = key
        if any(spec.key == key for spec in node.attachments):
            return
        node.attachments.append(AttachmentSpec(
            page=node.path,
            reference=reference,
            source=posixpath.join(self.source_dir, resolved),
            key=key,
        ))
