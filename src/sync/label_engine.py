"""Label set deltas."""

from typing import Iterable

from .models import LabelDelta


class LabelEngine:
    """Computes the minimal label changes for a page."""

    @staticmethod
    def delta(desired: Iterable[str], current: Iterable[str]) -> LabelDelta:
        """Labels to add and remove so that ``current`` becomes ``desired``.

        Example:
            >>> LabelEngine.delta({"a", "b"}, {"b", "c"})
            LabelDelta(add=['a'], remove=['c'])
        """
        desired_set = set(desired)
        current_set = set(current)
        return LabelDelta(
            add=sorted(desired_set - current_set),
            remove=sorted(current_set - desired_set),
        )
