"""Reconciliation of the local page tree with the target space.

This package computes fingerprints, matches local pages to remote ones,
plans the operations that make the space match the tree, and executes
them.
"""

from .attachment_resolver import AttachmentResolver
from .fingerprint import FingerprintComputer
from .label_engine import LabelEngine
from .models import (
    ArchivePage,
    CreatePage,
    LabelDelta,
    MovePage,
    Operation,
    OperationPlan,
    PlanDiagnostic,
    RemoteAttachment,
    RemotePageRecord,
    RestorePage,
    SkipAttachment,
    UpdateContent,
    UpdateMetadata,
    UploadAttachment,
)
from .pipeline import RunReport, SyncPipeline
from .plan_executor import ExecutionReport, Outcome, PlanExecutor
from .reconciler import ReconciliationEngine
from .remote_state import RemoteState, RemoteStateReader
from .version_marker import VersionMarker

__all__ = [
    "AttachmentResolver",
    "FingerprintComputer",
    "LabelEngine",
    "ArchivePage",
    "CreatePage",
    "LabelDelta",
    "MovePage",
    "Operation",
    "OperationPlan",
    "PlanDiagnostic",
    "RemoteAttachment",
    "RemotePageRecord",
    "RestorePage",
    "SkipAttachment",
    "UpdateContent",
    "UpdateMetadata",
    "UploadAttachment",
    "RunReport",
    "SyncPipeline",
    "ExecutionReport",
    "Outcome",
    "PlanExecutor",
    "ReconciliationEngine",
    "RemoteState",
    "RemoteStateReader",
    "VersionMarker",
]
