"""Upload decisions for page attachments.

Attachments are named by their deduplication key (see
``attachment_key``). A local file is uploaded when the page has no
attachment of that name or when the ``hash:<sha256>`` comment of the remote
copy differs from the file's hash. A remote URL is uploaded when the
``url:<url>`` comment differs. Remote attachments that are no longer
referenced are left in place.
"""

import hashlib
import logging
from typing import Callable, Dict, Iterable, List, Optional, Union

from src.content_converter.models import AttachmentSpec

from .models import RemoteAttachment, SkipAttachment, UploadAttachment

logger = logging.getLogger(__name__)

CHUNK_SIZE = 65536


def file_sha256(file_path: str) -> str:
    """SHA-256 hex digest of a file's content."""
    digest = hashlib.sha256()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def url_comment(url: str) -> str:
    return f"url:{url}"


def hash_comment(content_hash: str) -> str:
    return f"hash:{content_hash}"


class AttachmentResolver:
    """Decides which attachments of a page need uploading.

    Args:
        hasher: Computes the content hash of a local file

    Example:
        >>> resolver = AttachmentResolver()
        >>> ops = resolver.resolve("guide.md", "123", node.attachments, remote_attachments)
    """

    def __init__(self, hasher: Callable[[str], str] = file_sha256):
        self._hasher = hasher

    def resolve(self, path: str, page_id: Optional[str], specs: Iterable[AttachmentSpec],
                remote: Iterable[RemoteAttachment] = ()) -> List[Union[UploadAttachment, SkipAttachment]]:
        """Plan uploads for the attachments of one page.

        Args:
            path: Path of the owning document
            page_id: Id of the page (None if the page is created in this run)
            specs: Attachments referenced by the page
            remote: Attachments already on the page

        Returns:
            One UploadAttachment or SkipAttachment per distinct key, in key order
        """
        by_key: Dict[str, AttachmentSpec] = {}
        for spec in specs:
            by_key.setdefault(spec.key, spec)

        existing = {attachment.title: attachment for attachment in remote}
        operations: List[Union[UploadAttachment, SkipAttachment]] = []

        for key in sorted(by_key):
            spec = by_key[key]
            current = existing.get(key)

            if spec.is_remote:
                content_hash = None
                up_to_date = current is not None and current.comment == url_comment(spec.source)
            else:
                try:
                    content_hash = self._hasher(spec.source)
                except OSError as e:
                    # left to the upload, which fails for this page only
                    logger.warning(f"{path}: cannot read attachment {spec.source}: {e}")
                    content_hash = None
                up_to_date = (
                    content_hash is not None
                    and current is not None
                    and current.content_hash == content_hash
                )

            if up_to_date:
                logger.debug(f"{path}: attachment {key} is up to date")
                operations.append(SkipAttachment(
                    path=path, attachment=spec, page_id=page_id, remote_id=current.id
                ))
            else:
                logger.debug(f"{path}: attachment {key} needs upload")
                operations.append(UploadAttachment(
                    path=path,
                    attachment=spec,
                    page_id=page_id,
                    content_hash=content_hash,
                    replaces=current.id if current else None,
                ))
        return operations
