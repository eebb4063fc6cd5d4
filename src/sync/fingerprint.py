"""Content fingerprints for change detection.

A fingerprint is the SHA-256 of a canonical JSON document holding the
rendered body, the sorted label set and the cover descriptor. It does not
include the document path or title, so two documents that render the same
have the same fingerprint wherever they live.
"""

import hashlib
import json
import logging
from typing import Iterable, Optional

from src.document.models import Cover
from src.page_graph.models import PageGraph, PageNode

logger = logging.getLogger(__name__)


class FingerprintComputer:
    """Computes and assigns page fingerprints.

    Example:
        >>> FingerprintComputer.compute("<p>x</p>", ["b", "a"], None) == \\
        ...     FingerprintComputer.compute("<p>x</p>", ["a", "b"], None)
        True
    """

    @staticmethod
    def compute(body: str, labels: Iterable[str], cover: Optional[Cover]) -> str:
        """Fingerprint of a rendered body with its labels and cover.

        Returns:
            64 character lowercase hex digest
        """
        payload = {
            "body": body.strip(),
            "labels": sorted(set(labels)),
            "cover": None if cover is None else {"source": cover.source, "position": cover.position},
        }
        canonical = json.dumps(payload, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    @classmethod
    def for_node(cls, node: PageNode) -> str:
        return cls.compute(node.body, node.labels, node.cover)

    @classmethod
    def apply(cls, graph: PageGraph) -> None:
        """Set the fingerprint of every node in ``graph``."""
        for node in graph.walk():
            node.fingerprint = cls.for_node(node)
        logger.debug(f"Fingerprinted {len(graph)} nodes")
