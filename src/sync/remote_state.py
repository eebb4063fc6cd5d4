"""Read-only view of the pages already in the target space.

RemoteStateReader turns the raw payloads returned by APIWrapper into
RemotePageRecords and RemoteAttachments for the reconciler.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from src.confluence_client.api_wrapper import COVER_PROPERTY
from src.document.models import Cover
from src.page_graph.models import NodeKind

from .models import RemoteAttachment, RemotePageRecord
from .version_marker import VersionMarker

if TYPE_CHECKING:
    from src.confluence_client.api_wrapper import APIWrapper

logger = logging.getLogger(__name__)


@dataclass
class RemoteState:
    """Snapshot of a space taken before planning.

    Attributes:
        space_key: Key of the space
        space_id: Numeric id of the space (needed to create folders)
        homepage_id: Id of the space homepage, if it has one
        records: Every page (current and archived) and folder in the space
    """
    space_key: str
    space_id: str
    homepage_id: Optional[str] = None
    records: List[RemotePageRecord] = field(default_factory=list)

    def get(self, page_id: str) -> Optional[RemotePageRecord]:
        return next((record for record in self.records if record.id == page_id), None)


def _nested(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def parse_page(page: Dict[str, Any], archived: bool = False,
               homepage_id: Optional[str] = None) -> RemotePageRecord:
    """Build a RemotePageRecord from a v1 content payload.

    Example:
        >>> record = parse_page({"id": "12", "title": "Setup", "ancestors": [{"id": "1"}],
        ...                      "version": {"message": "updated by mdspace: source=setup.md; checksum=ab"}})
        >>> (record.parent_id, record.source, record.fingerprint)
        ('1', 'setup.md', 'ab')
    """
    page_id = str(page["id"])
    ancestors = page.get("ancestors") or []
    marker = VersionMarker.decode(_nested(page, "version", "message"))

    labels = [label["name"] for label in _nested(page, "metadata", "labels", "results") or []]

    cover = None
    cover_value = _nested(page, "metadata", "properties", COVER_PROPERTY, "value")
    if isinstance(cover_value, dict) and cover_value.get("source"):
        cover = Cover(source=cover_value["source"], position=int(cover_value.get("position", 50)))

    editors = [
        user["accountId"]
        for user in _nested(page, "restrictions", "update", "restriction", "user", "results") or []
        if user.get("accountId")
    ]

    return RemotePageRecord(
        id=page_id,
        title=page.get("title", ""),
        kind=NodeKind.FOLDER if page.get("type") == "folder" else NodeKind.PAGE,
        parent_id=str(ancestors[-1]["id"]) if ancestors else None,
        source=marker.source if marker else None,
        fingerprint=marker.checksum if marker else None,
        labels=sorted(labels),
        cover=cover,
        editors=sorted(editors),
        archived=archived,
        is_homepage=page_id == homepage_id,
    )


def parse_attachment(attachment: Dict[str, Any]) -> RemoteAttachment:
    return RemoteAttachment(
        id=str(attachment["id"]),
        title=attachment.get("title", ""),
        file_id=_nested(attachment, "extensions", "fileId"),
        comment=_nested(attachment, "metadata", "comment") or "",
        download_url=_nested(attachment, "_links", "download"),
    )


class RemoteStateReader:
    """Queries the current state of a space.

    Args:
        api: Confluence API wrapper
        space_key: Key of the target space

    Example:
        >>> reader = RemoteStateReader(api, "DOCS")
        >>> state = reader.read(with_status=True)
        >>> attachments = reader.attachments(state.homepage_id)
    """

    def __init__(self, api: "APIWrapper", space_key: str):
        self.api = api
        self.space_key = space_key
        self._attachments: Dict[str, List[RemoteAttachment]] = {}

    def read(self, with_status: bool = False) -> RemoteState:
        """Query every page and folder of the space.

        Args:
            with_status: Also fetch the content state of each current page

        Raises:
            SpaceNotFoundError: If the space does not exist
        """
        space = self.api.get_space(self.space_key)
        homepage_id = _nested(space, "homepage", "id")
        homepage_id = str(homepage_id) if homepage_id else None
        state = RemoteState(
            space_key=self.space_key,
            space_id=str(space.get("id", "")),
            homepage_id=homepage_id,
        )

        for page in self.api.list_pages(self.space_key, status="current"):
            record = parse_page(page, archived=False, homepage_id=homepage_id)
            if with_status:
                record.status = self.api.get_content_state(record.id)
            state.records.append(record)

        for page in self.api.list_pages(self.space_key, status="archived"):
            state.records.append(parse_page(page, archived=True))

        for folder in self.api.list_folders(self.space_key):
            folder = dict(folder, type="folder")
            state.records.append(parse_page(folder))

        managed = sum(1 for record in state.records if record.managed)
        logger.info(
            f"Space {self.space_key} has {len(state.records)} pages and folders "
            f"({managed} managed by mdspace)"
        )
        return state

    def attachments(self, page_id: str, refresh: bool = False) -> List[RemoteAttachment]:
        """Attachments of a page, cached per page id."""
        if refresh or page_id not in self._attachments:
            self._attachments[page_id] = [
                parse_attachment(attachment) for attachment in self.api.get_attachments(page_id)
            ]
        return self._attachments[page_id]
