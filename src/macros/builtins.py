"""Built-in macros available to every document.

Each built-in is a keyword-only callable bound to the document being
rendered. Calls with positional arguments raise TypeError, which the
evaluator reports as a MacroEvaluationError.
"""

import html
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from src.document.diagnostics import DocumentWarning, UnknownUserWarning

from .index import CrossDocumentIndex, PageSummary
from .users import UserDirectory

logger = logging.getLogger(__name__)

UNKNOWN_USER = "@unknown_user"

_MISSING = object()


def _macro(name: str, body: str = "", **parameters: Any) -> str:
    params = "".join(
        f'<ac:parameter ac:name="{key}">{value}</ac:parameter>'
        for key, value in parameters.items()
    )
    return (
        f'<ac:structured-macro ac:name="{name}" ac:schema-version="1" data-layout="default">'
        f'{params}{body}</ac:structured-macro>'
    )


class BuiltinMacros:
    """Built-in macros bound to one document.

    Args:
        source: Path of the document being rendered
        metadata: The document's frontmatter metadata
        index: Cross-document index
        users: Directory used by ``mention``
        warnings: Sink for non-fatal diagnostics of this document
        render_value: Renders a metadata value that contains macros
    """

    def __init__(self, source: str, metadata: Dict[str, Any], index: CrossDocumentIndex,
                 users: UserDirectory, warnings: List[DocumentWarning],
                 render_value: Callable[[str], str]):
        self._source = source
        self._metadata = metadata
        self._index = index
        self._users = users
        self._warnings = warnings
        self._render_value = render_value

    def as_globals(self) -> Dict[str, Callable[..., Any]]:
        """Names under which the built-ins are exposed to templates."""
        return {
            'toc': self.toc,
            'children': self.children,
            'meta': self.meta,
            'labellist': self.labellist,
            'pages': self.pages,
            'properties': self.properties,
            'properties_report': self.properties_report,
            'mention': self.mention,
        }

    def toc(self, *, min_level: int = 1, max_level: int = 6) -> str:
        """Table of contents of the current page."""
        return _macro("toc", minLevel=min_level, maxLevel=max_level,
                      type="list", outline="false", printable="false")

    def children(self, *, depth: Optional[int] = None) -> str:
        """Listing of the current page's children."""
        if depth is None:
            return _macro("children", all="false")
        return _macro("children", depth=depth)

    def meta(self, *, path: str, default: Any = _MISSING) -> Any:
        """Look up a metadata value by dotted path, e.g. ``meta(path="team.owner")``."""
        value: Any = self._metadata
        for part in str(path).split("."):
            if isinstance(value, dict) and part in value:
                value = value[part]
            elif isinstance(value, list) and part.isdigit() and int(part) < len(value):
                value = value[int(part)]
            elif default is not _MISSING:
                return default
            else:
                raise ValueError(f"Metadata key '{path}' not found")
        return value

    def labellist(self, *, labels: Union[str, Sequence[str]]) -> str:
        """Confluence content-by-label listing for one or more labels."""
        if isinstance(labels, str):
            condition = f'label = "{labels}"'
        elif isinstance(labels, (list, tuple)):
            if not labels:
                raise ValueError("labels needs to be a non-empty list")
            quoted = ",".join(f'"{label}"' for label in labels)
            condition = f"label in ({quoted})"
        else:
            raise TypeError("labels needs to be a string or a list")
        return _macro("contentbylabel", cql=html.escape(f"{condition} and space = currentSpace()", quote=False))

    def pages(self, *, label: str) -> List[PageSummary]:
        """Summaries of every document carrying ``label``, ordered by path."""
        return self._index.pages_with_label(label)

    def properties(self, *, metadata: Sequence[str]) -> str:
        """Page properties table over keys of the document's own metadata."""
        if isinstance(metadata, str) or not isinstance(metadata, (list, tuple)):
            raise TypeError("metadata needs to be a list of keys")

        rows = []
        for key in metadata:
            value = self.meta(path=key)
            if isinstance(value, str):
                value = self._render_value(value)
            rows.append(f"<tr><th>{str(key).title()}</th><td>{value}</td></tr>")

        return _macro(
            "details",
            body=f"<ac:rich-text-body><table><tbody>{''.join(rows)}</tbody></table></ac:rich-text-body>"
        )

    def properties_report(self, *, label: str, space: str = "") -> str:
        """Page properties report over all pages carrying ``label``."""
        if not self._index.pages_with_label(label):
            logger.info(f"{self._source}: no document carries label '{label}'")
        cql = f'space = {space or self._index.space_key} and label = "{label}"'
        return _macro("detailssummary", firstcolumn="Title", sortBy="Title",
                      cql=html.escape(cql, quote=False))

    def mention(self, *, public_name: str) -> str:
        """Mention of a user, looked up by display name."""
        if not isinstance(public_name, str):
            raise TypeError("public_name must be a string")

        account_id = self._users.account_id(public_name)
        if account_id is None:
            warning = UnknownUserWarning(source=self._source, public_name=public_name)
            logger.warning(warning.message)
            self._warnings.append(warning)
            return UNKNOWN_USER

        # trailing space keeps the tag from parsing as a markdown autolink
        return f'<ac:link ><ri:user ri:account-id="{account_id}"/></ac:link>'
