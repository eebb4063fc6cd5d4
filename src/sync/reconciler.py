"""Reconciliation of the local page tree against the pages in the space.

ReconciliationEngine matches local nodes to remote records, then emits an
ordered OperationPlan:

1. RestorePage for archived records whose document is back
2. CreatePage and MovePage, walking the tree top-down
3. UploadAttachment / SkipAttachment
4. UpdateContent when the fingerprint or the title differs
5. UpdateMetadata for labels, cover, status, restrictions and stale markers
6. ArchivePage for managed records without a document, deepest first

Matching uses two stable signals. A record whose version marker names the
node's path is the same page (title changed, path kept). Failing that, a
record with the node's title is the same page (titles are unique in a
space, so this keeps pages stable across file renames and moves). When
both path and title change in one run nothing matches: the old page is
archived and a new one created, with a diagnostic.
"""

import logging
from collections import defaultdict
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from src.page_graph.models import PageGraph, PageNode

from .attachment_resolver import AttachmentResolver
from .label_engine import LabelEngine
from .models import (
    ArchivePage,
    CreatePage,
    MovePage,
    Operation,
    OperationPlan,
    PlanDiagnostic,
    RemoteAttachment,
    RemotePageRecord,
    RestorePage,
    UpdateContent,
    UpdateMetadata,
)
from .version_marker import VersionMarker

logger = logging.getLogger(__name__)

AttachmentQuery = Callable[[str], List[RemoteAttachment]]


def _id_order(page_id: str) -> Tuple[int, str]:
    # content ids are numeric strings; compare them as numbers
    return (len(page_id), page_id) if page_id.isdigit() else (1 << 30, page_id)


class ReconciliationEngine:
    """Computes the operation plan that makes the space match the page tree.

    Args:
        attachment_resolver: Decides attachment uploads
        editors: Account ids that should be the only editors of every page.
            An empty list opens pages to the whole space; None leaves
            restrictions alone.

    Example:
        >>> engine = ReconciliationEngine()
        >>> plan = engine.reconcile(graph, records)
        >>> plan.is_empty
        True
    """

    def __init__(self, attachment_resolver: Optional[AttachmentResolver] = None,
                 editors: Optional[List[str]] = None):
        self._attachments = attachment_resolver or AttachmentResolver()
        self._editors = sorted(editors) if editors is not None else None

    def reconcile(self, graph: PageGraph, records: Iterable[RemotePageRecord],
                  remote_attachments: Optional[AttachmentQuery] = None) -> OperationPlan:
        """Compute the plan for ``graph`` against ``records``.

        Args:
            graph: Local page tree with fingerprints set
            records: Pages and folders currently in the space, including archived ones
            remote_attachments: Returns the attachments of a page id

        Returns:
            OperationPlan in execution order
        """
        records = list(records)
        plan = OperationPlan()
        matches = self._match(graph, records, plan)
        homepage = next((r for r in records if r.is_homepage and not r.archived), None)

        restores: List[Operation] = []
        structure: List[Operation] = []
        attachments: List[Operation] = []
        content: List[Operation] = []
        metadata: List[Operation] = []

        for node in graph.walk():
            record = matches.get(node.path)
            marker = VersionMarker(node.path, node.fingerprint).encode()

            if record is not None and record.archived:
                restores.append(RestorePage(path=node.path, page_id=record.id, title=record.title))

            parent_path, parent_id = self._desired_parent(node, matches, homepage)
            if record is None:
                structure.append(CreatePage(
                    path=node.path, title=node.title, kind=node.kind, body=node.body,
                    version_message=marker, parent_path=parent_path, parent_id=parent_id,
                ))
            elif not node.is_homepage and self._needs_move(record, parent_path, parent_id):
                structure.append(MovePage(
                    path=node.path, page_id=record.id, title=node.title,
                    parent_path=parent_path, parent_id=parent_id,
                ))

            if node.attachments:
                page_id = record.id if record else None
                remote = remote_attachments(page_id) if page_id and remote_attachments else []
                attachments.extend(self._attachments.resolve(node.path, page_id, node.attachments, remote))

            content_updated = False
            if record is not None:
                content_updated = self._content_update(node, record, marker, content, plan)

            if not node.is_folder:
                update = self._metadata_update(node, record, marker, content_updated)
                if not update.is_empty:
                    metadata.append(update)

        archives = self._archives(records, set(r.id for r in matches.values()))

        plan.operations = restores + structure + attachments + content + metadata + archives
        logger.info(
            f"Planned {len(plan.changes)} changes "
            f"({len(plan.operations) - len(plan.changes)} attachments up to date, "
            f"{len(plan.diagnostics)} diagnostics)"
        )
        return plan

    # Matching

    def _match(self, graph: PageGraph, records: List[RemotePageRecord],
               plan: OperationPlan) -> Dict[str, RemotePageRecord]:
        matches: Dict[str, RemotePageRecord] = {}
        used: Set[str] = set()
        nodes = list(graph.walk())

        homepage = next((r for r in records if r.is_homepage and not r.archived), None)
        root = graph.homepage
        if root is not None:
            if homepage is not None:
                matches[root.path] = homepage
                used.add(homepage.id)
            else:
                plan.diagnostics.append(PlanDiagnostic(
                    f"Space has no homepage; '{root.path}' will be created as a top-level page",
                    path=root.path,
                ))

        by_source: Dict[str, List[RemotePageRecord]] = defaultdict(list)
        by_title: Dict[str, List[RemotePageRecord]] = defaultdict(list)
        for record in records:
            if record.is_homepage:
                continue
            if record.source is not None:
                by_source[record.source].append(record)
            by_title[record.title].append(record)

        for signal, index, key in (("path", by_source, "path"), ("title", by_title, "title")):
            for node in nodes:
                if node.path in matches:
                    continue
                candidates = [r for r in index.get(getattr(node, key), []) if r.id not in used]
                if not candidates:
                    continue
                record = self._prefer(candidates, node, signal, plan)
                if record.kind != node.kind:
                    plan.diagnostics.append(PlanDiagnostic(
                        f"'{node.path}' is a {node.kind.value} but page {record.id} "
                        f"'{record.title}' is a {record.kind.value}; creating a new {node.kind.value}",
                        path=node.path, page_id=record.id,
                    ))
                    continue
                logger.debug(f"Matched {node.path} to page {record.id} by {signal}")
                matches[node.path] = record
                used.add(record.id)

        for node in nodes:
            if node.path in matches or not node.fingerprint:
                continue
            for record in records:
                if (record.id not in used and record.managed and not record.archived
                        and record.fingerprint == node.fingerprint):
                    plan.diagnostics.append(PlanDiagnostic(
                        f"'{node.path}' looks like page {record.id} ('{record.source}', "
                        f"'{record.title}') with both path and title changed; "
                        f"archiving the old page and creating a new one",
                        path=node.path, page_id=record.id,
                    ))
                    break
        return matches

    @staticmethod
    def _prefer(candidates: List[RemotePageRecord], node: PageNode, signal: str,
                plan: OperationPlan) -> RemotePageRecord:
        ordered = sorted(candidates, key=lambda r: (r.archived, _id_order(r.id)))
        if len(ordered) > 1:
            plan.diagnostics.append(PlanDiagnostic(
                f"{len(ordered)} pages match '{node.path}' by {signal}; using page {ordered[0].id}",
                path=node.path, page_id=ordered[0].id,
            ))
        return ordered[0]

    # Structure

    @staticmethod
    def _desired_parent(node: PageNode, matches: Dict[str, RemotePageRecord],
                        homepage: Optional[RemotePageRecord]) -> Tuple[Optional[str], Optional[str]]:
        """Return (parent path, parent id) the node should live under."""
        if node.is_homepage:
            return None, None
        if node.parent is None:
            return None, homepage.id if homepage else None
        parent_record = matches.get(node.parent)
        return node.parent, parent_record.id if parent_record else None

    @staticmethod
    def _needs_move(record: RemotePageRecord, parent_path: Optional[str],
                    parent_id: Optional[str]) -> bool:
        if parent_id is None:
            # parent is created in this run
            return parent_path is not None
        return parent_id != record.parent_id

    # Content and metadata

    @staticmethod
    def _content_update(node: PageNode, record: RemotePageRecord, marker: str,
                        content: List[Operation], plan: OperationPlan) -> bool:
        if node.is_folder:
            if record.title != node.title:
                plan.diagnostics.append(PlanDiagnostic(
                    f"Folder '{node.path}' was renamed to '{node.title}'; "
                    f"folder titles are not updated",
                    path=node.path, page_id=record.id,
                ))
            return False

        if record.fingerprint == node.fingerprint and record.title == node.title:
            return False

        content.append(UpdateContent(
            path=node.path, page_id=record.id, title=node.title,
            body=node.body, version_message=marker,
        ))
        return True

    def _metadata_update(self, node: PageNode, record: Optional[RemotePageRecord],
                         marker: str, content_updated: bool) -> UpdateMetadata:
        update = UpdateMetadata(path=node.path, page_id=record.id if record else None)
        update.labels = LabelEngine.delta(node.labels, record.labels if record else [])

        current_cover = record.cover if record else None
        if node.cover != current_cover:
            update.cover_changed = True
            update.cover = node.cover
            update.cover_attachment = node.cover_attachment

        if node.status is not None:
            desired_status = node.status.content_state
            if record is None or record.status != desired_status:
                update.status = desired_status

        if self._editors is not None:
            current_editors = sorted(record.editors) if record else []
            if current_editors != self._editors:
                update.editors = list(self._editors)

        if record is not None and not content_updated and record.source != node.path:
            update.refresh_marker = marker
        return update

    # Archival

    @staticmethod
    def _archives(records: List[RemotePageRecord], used: Set[str]) -> List[Operation]:
        by_id = {record.id: record for record in records}

        def depth(record: RemotePageRecord) -> int:
            level, seen = 0, set()
            while record.parent_id in by_id and record.id not in seen:
                seen.add(record.id)
                record = by_id[record.parent_id]
                level += 1
            return level

        orphans = [
            record for record in records
            if record.id not in used and not record.archived and not record.is_homepage
        ]
        archives: List[Operation] = []
        for record in sorted(orphans, key=lambda r: (-depth(r), r.title)):
            if not record.managed:
                logger.debug(f"Leaving unmanaged page {record.id} '{record.title}' alone")
                continue
            archives.append(ArchivePage(page_id=record.id, title=record.title, source=record.source))
        return archives
