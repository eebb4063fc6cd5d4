"""Data models for the local page tree.

The tree is an arena: PageGraph owns every PageNode in a dict keyed by
document path, and nodes refer to their parent by that key only.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional

from src.content_converter.models import AttachmentSpec
from src.document.models import Cover, PageStatus


class NodeKind(Enum):
    """Kind of remote content a node maps to."""
    PAGE = "page"
    FOLDER = "folder"


@dataclass
class PageNode:
    """A converted document placed in the page tree.

    Attributes:
        path: Document path, the node's stable identity
        title: Page title
        kind: Page or folder
        parent: Path of the parent node (None at the top of the space)
        body: Confluence storage format body (empty for folders)
        labels: Desired labels, sorted
        cover: Desired cover picture
        cover_attachment: Attachment key of a local cover picture
        status: Desired page status
        attachments: Media referenced by the body
        is_homepage: True for the root index, which maps to the space homepage
        fingerprint: Content fingerprint, set once the tree is complete
    """
    path: str
    title: str
    kind: NodeKind = NodeKind.PAGE
    parent: Optional[str] = None
    body: str = ""
    labels: List[str] = field(default_factory=list)
    cover: Optional[Cover] = None
    cover_attachment: Optional[str] = None
    status: Optional[PageStatus] = None
    attachments: List[AttachmentSpec] = field(default_factory=list)
    is_homepage: bool = False
    fingerprint: str = ""

    @property
    def is_folder(self) -> bool:
        return self.kind == NodeKind.FOLDER


class PageGraph:
    """Arena of PageNodes keyed by path, with parent links stored as keys."""

    def __init__(self):
        self._nodes: Dict[str, PageNode] = {}
        self._children: Dict[Optional[str], List[str]] = {}

    def add(self, node: PageNode) -> None:
        if node.path in self._nodes:
            raise ValueError(f"Node '{node.path}' already in graph")
        self._nodes[node.path] = node
        siblings = self._children.setdefault(node.parent, [])
        siblings.append(node.path)
        siblings.sort()

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, path: object) -> bool:
        return path in self._nodes

    def get(self, path: Optional[str]) -> Optional[PageNode]:
        if path is None:
            return None
        return self._nodes.get(path)

    def children(self, path: Optional[str]) -> List[PageNode]:
        """Children of ``path`` (top-level nodes for None), ordered by path."""
        return [self._nodes[child] for child in self._children.get(path, [])]

    @property
    def homepage(self) -> Optional[PageNode]:
        return next((node for node in self._nodes.values() if node.is_homepage), None)

    def walk(self) -> Iterator[PageNode]:
        """Nodes in top-down order: every parent before its children."""
        queue = [node.path for node in self.children(None)]
        while queue:
            node = self._nodes[queue.pop(0)]
            yield node
            queue.extend(child.path for child in self.children(node.path))
