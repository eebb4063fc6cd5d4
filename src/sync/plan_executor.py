"""Sequential execution of an OperationPlan against Confluence.

Operations run in plan order. Pages created or restored earlier in the
plan are bound by path so that later operations (children, attachments,
metadata) can reference them. When an operation fails, every later
operation that needs the same page is skipped; unrelated operations still
run.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Set

from src.confluence_client.api_wrapper import (
    COVER_PICTURE_PROPERTY,
    COVER_PROPERTY,
    cover_property_value,
)
from src.confluence_client.errors import (
    APIUnreachableError,
    InvalidCredentialsError,
    SyncError,
)
from src.page_graph.models import NodeKind, PageGraph

from .attachment_resolver import hash_comment, url_comment
from .models import (
    ArchivePage,
    CreatePage,
    MovePage,
    Operation,
    OperationPlan,
    RestorePage,
    SkipAttachment,
    UpdateContent,
    UpdateMetadata,
    UploadAttachment,
)

if TYPE_CHECKING:
    from src.confluence_client.api_wrapper import APIWrapper
    from .remote_state import RemoteState, RemoteStateReader

logger = logging.getLogger(__name__)


class Outcome(Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class OperationResult:
    """What happened to one operation."""
    operation: Operation
    outcome: Outcome
    message: str = ""


@dataclass
class ExecutionReport:
    """Results of executing a plan, in plan order."""
    results: List[OperationResult] = field(default_factory=list)

    def _count(self, outcome: Outcome) -> int:
        return sum(1 for result in self.results if result.outcome == outcome)

    @property
    def succeeded(self) -> int:
        return self._count(Outcome.SUCCEEDED)

    @property
    def failed(self) -> int:
        return self._count(Outcome.FAILED)

    @property
    def skipped(self) -> int:
        return self._count(Outcome.SKIPPED)

    @property
    def failures(self) -> List[OperationResult]:
        return [result for result in self.results if result.outcome != Outcome.SUCCEEDED]


class PrerequisiteFailed(Exception):
    """An operation needs a page that an earlier operation failed to produce."""
    pass


class PlanExecutor:
    """Applies an OperationPlan to the space.

    Args:
        api: Confluence API wrapper
        state: Remote state the plan was computed from
        reader: Reader used to look up attachment file ids for covers
        graph: Local page tree the plan was computed from

    Example:
        >>> executor = PlanExecutor(api, state, reader, graph)
        >>> report = executor.execute(plan)
        >>> report.failed
        0
    """

    def __init__(self, api: "APIWrapper", state: "RemoteState",
                 reader: "RemoteStateReader", graph: PageGraph):
        self.api = api
        self.state = state
        self.reader = reader
        self.graph = graph
        self._ids: Dict[str, str] = {}
        self._broken: Set[str] = set()

    def execute(self, plan: OperationPlan) -> ExecutionReport:
        """Execute every operation of ``plan`` in order.

        Raises:
            InvalidCredentialsError: Credentials were rejected; nothing later can succeed
            APIUnreachableError: Confluence cannot be reached
        """
        report = ExecutionReport()
        for operation in plan.operations:
            report.results.append(self._execute_one(operation))
        logger.info(
            f"Executed plan: {report.succeeded} succeeded, "
            f"{report.failed} failed, {report.skipped} skipped"
        )
        return report

    def _execute_one(self, operation: Operation) -> OperationResult:
        path = getattr(operation, "path", None)
        try:
            message = self._dispatch(operation)
        except PrerequisiteFailed as e:
            logger.warning(f"Skipping {type(operation).__name__} for {path}: {e}")
            if isinstance(operation, (CreatePage, RestorePage)) and path:
                self._broken.add(path)
            return OperationResult(operation, Outcome.SKIPPED, str(e))
        except (InvalidCredentialsError, APIUnreachableError):
            raise
        except (SyncError, OSError) as e:
            logger.error(f"{type(operation).__name__} failed for {path or operation}: {e}")
            if isinstance(operation, (CreatePage, RestorePage)) and path:
                self._broken.add(path)
            return OperationResult(operation, Outcome.FAILED, str(e))
        return OperationResult(operation, Outcome.SUCCEEDED, message)

    def _dispatch(self, operation: Operation) -> str:
        if isinstance(operation, RestorePage):
            return self._restore(operation)
        if isinstance(operation, CreatePage):
            return self._create(operation)
        if isinstance(operation, MovePage):
            return self._move(operation)
        if isinstance(operation, UploadAttachment):
            return self._upload(operation)
        if isinstance(operation, SkipAttachment):
            return f"{operation.attachment.key} up to date"
        if isinstance(operation, UpdateContent):
            return self._update_content(operation)
        if isinstance(operation, UpdateMetadata):
            return self._update_metadata(operation)
        if isinstance(operation, ArchivePage):
            return self._archive(operation)
        raise TypeError(f"Unknown operation {operation!r}")

    # Binding

    def _page_id(self, path: str, page_id: Optional[str] = None) -> str:
        if path in self._broken:
            raise PrerequisiteFailed(f"page for '{path}' is unavailable")
        page_id = page_id or self._ids.get(path)
        if page_id is None:
            raise PrerequisiteFailed(f"page for '{path}' was not created")
        return page_id

    def _parent_id(self, parent_path: Optional[str], parent_id: Optional[str]) -> Optional[str]:
        if parent_id is not None:
            return parent_id
        if parent_path is None:
            return None
        if parent_path in self._broken or parent_path not in self._ids:
            raise PrerequisiteFailed(f"parent '{parent_path}' is unavailable")
        return self._ids[parent_path]

    # Operations

    def _restore(self, op: RestorePage) -> str:
        self.api.restore_page(op.page_id)
        self._ids[op.path] = op.page_id
        logger.info(f"Restored '{op.title}' ({op.page_id})")
        return "restored"

    def _create(self, op: CreatePage) -> str:
        parent_id = self._parent_id(op.parent_path, op.parent_id)
        if op.kind == NodeKind.FOLDER:
            response = self.api.create_folder(self.state.space_id, op.title, parent_id)
            page_id = str(response["id"])
        else:
            response = self.api.create_page(self.state.space_key, op.title, op.body, parent_id)
            page_id = str(response["id"])
            # a new page has no version message; publish again to record the marker
            self.api.update_page(page_id, op.title, op.body, op.version_message)
        self._ids[op.path] = page_id
        logger.info(f"Created {op.kind.value} '{op.title}' ({page_id})")
        return f"created {page_id}"

    def _move(self, op: MovePage) -> str:
        page_id = self._page_id(op.path, op.page_id)
        parent_id = self._parent_id(op.parent_path, op.parent_id)
        if parent_id is None:
            raise PrerequisiteFailed(f"no parent to move '{op.title}' under")
        self.api.move_page(page_id, parent_id)
        self._ids[op.path] = page_id
        logger.info(f"Moved '{op.title}' under {parent_id}")
        return f"moved under {parent_id}"

    def _upload(self, op: UploadAttachment) -> str:
        page_id = self._page_id(op.path, op.page_id)
        spec = op.attachment
        if spec.is_remote:
            content = self.api.download(spec.source)
            comment = url_comment(spec.source)
        else:
            with open(spec.source, "rb") as f:
                content = f.read()
            comment = hash_comment(op.content_hash or "")
        self.api.upload_attachment(page_id, spec.key, content, comment)
        logger.info(f"Uploaded {spec.key} to {page_id}")
        return f"uploaded {spec.key}"

    def _update_content(self, op: UpdateContent) -> str:
        page_id = self._page_id(op.path, op.page_id)
        self.api.update_page(page_id, op.title, op.body, op.version_message)
        logger.info(f"Updated '{op.title}' ({page_id})")
        return "updated"

    def _update_metadata(self, op: UpdateMetadata) -> str:
        page_id = self._page_id(op.path, op.page_id)
        changes = []

        if op.labels.add:
            self.api.add_labels(page_id, op.labels.add)
        for label in op.labels.remove:
            self.api.remove_label(page_id, label)
        if not op.labels.is_empty:
            changes.append("labels")

        if op.cover_changed:
            self._set_cover(page_id, op)
            changes.append("cover")

        if op.status is not None:
            self.api.set_content_state(page_id, op.status)
            changes.append("status")

        if op.editors is not None:
            self.api.set_editors(page_id, op.editors)
            changes.append("restrictions")

        if op.refresh_marker is not None:
            node = self.graph.get(op.path)
            if node is None:
                raise PrerequisiteFailed(f"'{op.path}' is not in the page tree")
            self.api.update_page(page_id, node.title, node.body, op.refresh_marker)
            changes.append("marker")

        logger.info(f"Updated {', '.join(changes)} of {op.path} ({page_id})")
        return ", ".join(changes)

    def _set_cover(self, page_id: str, op: UpdateMetadata) -> None:
        if op.cover is None:
            self.api.delete_property(page_id, COVER_PICTURE_PROPERTY)
            self.api.delete_property(page_id, COVER_PROPERTY)
            return

        picture_id = op.cover.source
        if not op.cover.is_remote:
            attachment = next(
                (a for a in self.reader.attachments(page_id, refresh=True)
                 if a.title == op.cover_attachment),
                None,
            )
            if attachment is None or not attachment.file_id:
                raise PrerequisiteFailed(f"cover attachment '{op.cover_attachment}' is missing")
            picture_id = attachment.file_id

        self.api.set_property(
            page_id, COVER_PICTURE_PROPERTY, cover_property_value(picture_id, op.cover.position)
        )
        self.api.set_property(
            page_id, COVER_PROPERTY, {"source": op.cover.source, "position": op.cover.position}
        )

    def _archive(self, op: ArchivePage) -> str:
        self.api.archive_page(op.page_id)
        logger.info(f"Archived '{op.title}' ({op.page_id})")
        return "archived"
