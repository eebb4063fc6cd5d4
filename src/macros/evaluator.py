"""Macro evaluation over document bodies.

Document bodies are Jinja2 templates. A render sees the document's
metadata, its filename, the built-in macros and the user macro files it
imports from the macro directory. Nothing rendered for one document is
visible to another: every evaluation builds a fresh context, and the only
shared state is the read-only cross-document index.

User macro files are imported with the ``imports`` frontmatter key. The
import ``team/people.md`` is exposed as the namespace ``team_people``:

    ---
    imports: [team/people.md]
    ---
    {{ team_people.card(name="Ada") }}
"""

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateError,
    TemplateNotFound,
    TemplateSyntaxError,
)

from src.confluence_client.errors import SyncError
from src.document.diagnostics import DocumentWarning
from src.document.errors import MacroEvaluationError

from .builtins import BuiltinMacros
from .index import CrossDocumentIndex
from .users import EmptyUserDirectory, UserDirectory

logger = logging.getLogger(__name__)

DEFAULT_MACRO_DIR = "_tera"


@dataclass
class MacroContext:
    """Per-document evaluation context.

    Attributes:
        source: Path of the document being rendered
        metadata: Frontmatter metadata visible to macros
        imports: Macro files to import, relative to the macro directory
        warnings: Non-fatal diagnostics collected during evaluation
    """
    source: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    imports: List[str] = field(default_factory=list)
    warnings: List[DocumentWarning] = field(default_factory=list)

    @property
    def filename(self) -> str:
        return os.path.basename(self.source)


class MacroNamespace:
    """Macros of one imported file, callable with keyword arguments only."""

    def __init__(self, name: str, module: Any):
        self._name = name
        self._module = module

    def __getattr__(self, attr: str) -> Any:
        if attr.startswith("_"):
            raise AttributeError(attr)
        value = getattr(self._module, attr)
        if callable(value):
            return keyword_only(f"{self._name}.{attr}", value)
        return value

    def __repr__(self) -> str:
        return f"<MacroNamespace {self._name}>"


def keyword_only(name: str, func: Callable[..., Any]) -> Callable[..., Any]:
    """Wrap ``func`` so that positional arguments raise TypeError."""
    def call(*args, **kwargs):
        if args:
            raise TypeError(f"{name}() only accepts keyword arguments")
        return func(**kwargs)
    call.__name__ = name
    return call


def namespace_for(import_path: str) -> str:
    """Template namespace of an import, e.g. ``team/people.md`` -> ``team_people``."""
    stem = re.sub(r"\.md$", "", import_path.strip("/"))
    return re.sub(r"\W", "_", stem)


class MacroEvaluator:
    """Evaluates the macro pass of a document body.

    Args:
        index: Cross-document index, fully built before any evaluation
        macro_dir: Directory holding user macro files (None disables imports)
        users: Directory used by the ``mention`` macro

    Example:
        >>> evaluator = MacroEvaluator(CrossDocumentIndex("DOCS"))
        >>> evaluator.evaluate("Status: {{ metadata.status }}",
        ...                    MacroContext("a.md", {"status": "on track"}))
        'Status: on track'
    """

    def __init__(self, index: CrossDocumentIndex, macro_dir: Optional[str] = None,
                 users: Optional[UserDirectory] = None):
        self._index = index
        self._macro_dir = macro_dir
        self._users = users or EmptyUserDirectory()
        self._env = Environment(
            loader=FileSystemLoader(macro_dir) if macro_dir else None,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            autoescape=False,
        )

    def evaluate(self, template: str, context: MacroContext) -> str:
        """Render ``template`` in ``context``.

        Args:
            template: Document body
            context: Evaluation context of the document

        Returns:
            The body with every macro invocation replaced by its output

        Raises:
            MacroEvaluationError: On syntax errors, unknown names, bad imports
                or invalid macro calls
        """
        variables = self._variables(context)
        try:
            return self._env.from_string(template).render(variables)
        except TemplateSyntaxError as e:
            raise MacroEvaluationError(context.source, f"{e.message} (line {e.lineno})") from e
        except (TemplateError, TypeError, ValueError, SyncError) as e:
            raise MacroEvaluationError(context.source, str(e)) from e
        except Exception as e:
            raise MacroEvaluationError(context.source, f"{type(e).__name__}: {e}") from e

    def _variables(self, context: MacroContext) -> Dict[str, Any]:
        def render_value(value: str) -> str:
            return self._env.from_string(value).render(variables)

        builtins = BuiltinMacros(
            source=context.source,
            metadata=context.metadata,
            index=self._index,
            users=self._users,
            warnings=context.warnings,
            render_value=render_value,
        )
        variables: Dict[str, Any] = {
            'filename': context.filename,
            'source': context.source,
            'metadata': context.metadata,
            'space_key': self._index.space_key,
        }
        variables.update(builtins.as_globals())
        variables.update(self._imports(context, variables))
        return variables

    def _imports(self, context: MacroContext, variables: Dict[str, Any]) -> Dict[str, MacroNamespace]:
        dir_name = os.path.basename(os.path.normpath(self._macro_dir or DEFAULT_MACRO_DIR))
        namespaces = {}
        for import_path in context.imports:
            name = namespace_for(import_path)
            try:
                if self._macro_dir is None:
                    raise TemplateNotFound(import_path)
                module = self._env.get_template(import_path).make_module(dict(variables))
            except TemplateNotFound:
                raise MacroEvaluationError(
                    context.source,
                    f"Import '{import_path}' does not exist under the {dir_name} directory"
                ) from None
            except TemplateSyntaxError as e:
                raise MacroEvaluationError(
                    context.source, f"{e.message} (line {e.lineno})", macro=import_path
                ) from e
            except (TemplateError, TypeError, ValueError) as e:
                raise MacroEvaluationError(context.source, str(e), macro=import_path) from e
            namespaces[name] = MacroNamespace(name, module)
            logger.debug(f"{context.source}: imported {import_path} as {name}")
        return namespaces
