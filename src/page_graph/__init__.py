"""Local page tree: documents placed in a hierarchy mirroring directories."""

from .errors import DuplicateIndex, DuplicateTitle, MissingParent, PageGraphError
from .hierarchy_builder import GraphBuildResult, PageGraphBuilder
from .models import NodeKind, PageGraph, PageNode

__all__ = [
    "DuplicateIndex",
    "DuplicateTitle",
    "MissingParent",
    "PageGraphError",
    "GraphBuildResult",
    "PageGraphBuilder",
    "NodeKind",
    "PageGraph",
    "PageNode",
]
