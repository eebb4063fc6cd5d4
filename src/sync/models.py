"""Data models for reconciliation.

RemotePageRecord is the read-only view of a page that already exists in
the space. An OperationPlan is the ordered list of operations that make the
space match the local page tree; it never contains a delete.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union

from src.content_converter.models import AttachmentSpec
from src.document.models import Cover
from src.page_graph.models import NodeKind


@dataclass
class RemotePageRecord:
    """A page or folder queried from the space.

    Attributes:
        id: Confluence content id
        title: Current title
        kind: Page or folder
        parent_id: Id of the current parent (None at the top of the space)
        source: Document path from the version marker (None if unmanaged)
        fingerprint: Fingerprint from the version marker (None if unmanaged)
        labels: Current labels
        cover: Cover as last written by mdspace
        status: Name of the current content state
        editors: Account ids edit-restricted to the page (empty when open)
        archived: True if the page is archived
        is_homepage: True for the space homepage
    """
    id: str
    title: str
    kind: NodeKind = NodeKind.PAGE
    parent_id: Optional[str] = None
    source: Optional[str] = None
    fingerprint: Optional[str] = None
    labels: List[str] = field(default_factory=list)
    cover: Optional[Cover] = None
    status: Optional[str] = None
    editors: List[str] = field(default_factory=list)
    archived: bool = False
    is_homepage: bool = False

    @property
    def managed(self) -> bool:
        """True if the page was last written by mdspace."""
        return self.source is not None


@dataclass(frozen=True)
class RemoteAttachment:
    """An attachment already on a page."""
    id: str
    title: str
    file_id: Optional[str] = None
    comment: str = ""
    download_url: Optional[str] = None

    @property
    def content_hash(self) -> Optional[str]:
        """Hash recorded in the ``hash:<sha256>`` comment, if any."""
        if self.comment.startswith("hash:"):
            return self.comment[len("hash:"):].strip()
        return None


@dataclass
class LabelDelta:
    """Labels to add to and remove from a page."""
    add: List[str] = field(default_factory=list)
    remove: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.add and not self.remove


@dataclass
class RestorePage:
    """Unarchive a page whose document has reappeared."""
    path: str
    page_id: str
    title: str


@dataclass
class CreatePage:
    """Create a page or folder.

    ``parent_id`` is known when the parent already exists; otherwise
    ``parent_path`` names a node created earlier in the plan.
    """
    path: str
    title: str
    kind: NodeKind
    body: str
    version_message: str
    parent_path: Optional[str] = None
    parent_id: Optional[str] = None


@dataclass
class MovePage:
    """Move a page under a new parent."""
    path: str
    page_id: str
    title: str
    parent_path: Optional[str] = None
    parent_id: Optional[str] = None


@dataclass
class UploadAttachment:
    """Upload a new or changed attachment to a page."""
    path: str
    attachment: AttachmentSpec
    page_id: Optional[str] = None
    content_hash: Optional[str] = None
    replaces: Optional[str] = None


@dataclass
class SkipAttachment:
    """An attachment whose remote copy is up to date."""
    path: str
    attachment: AttachmentSpec
    page_id: Optional[str] = None
    remote_id: Optional[str] = None


@dataclass
class UpdateContent:
    """Replace the title and body of a page."""
    path: str
    page_id: str
    title: str
    body: str
    version_message: str


@dataclass
class UpdateMetadata:
    """Change labels, cover, status, restrictions or the version marker of a page.

    Fields left at None are not changed. ``cover_changed`` distinguishes
    removing the cover (``cover=None``) from leaving it alone.
    """
    path: str
    page_id: Optional[str] = None
    labels: LabelDelta = field(default_factory=LabelDelta)
    cover_changed: bool = False
    cover: Optional[Cover] = None
    cover_attachment: Optional[str] = None
    status: Optional[str] = None
    editors: Optional[List[str]] = None
    refresh_marker: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return (
            self.labels.is_empty
            and not self.cover_changed
            and self.status is None
            and self.editors is None
            and self.refresh_marker is None
        )


@dataclass
class ArchivePage:
    """Archive a managed page whose document is gone."""
    page_id: str
    title: str
    source: Optional[str] = None


Operation = Union[
    RestorePage, CreatePage, MovePage, UploadAttachment, SkipAttachment,
    UpdateContent, UpdateMetadata, ArchivePage,
]


@dataclass(frozen=True)
class PlanDiagnostic:
    """A note about a reconciliation decision worth telling the user about."""
    message: str
    path: Optional[str] = None
    page_id: Optional[str] = None

    def __str__(self) -> str:
        return self.message


@dataclass
class OperationPlan:
    """Ordered operations plus diagnostics.

    Executing ``operations`` in order never references a page that has not
    been created or restored earlier in the plan.
    """
    operations: List[Operation] = field(default_factory=list)
    diagnostics: List[PlanDiagnostic] = field(default_factory=list)

    @property
    def changes(self) -> List[Operation]:
        """Operations that change the space (everything but SkipAttachment)."""
        return [op for op in self.operations if not isinstance(op, SkipAttachment)]

    @property
    def is_empty(self) -> bool:
        return not self.changes

    def of_type(self, operation_type: type) -> List[Operation]:
        return [op for op in self.operations if isinstance(op, operation_type)]
