"""Macro evaluation: built-ins, user macro imports and cross-document indices."""

from .builtins import BuiltinMacros, UNKNOWN_USER
from .evaluator import MacroContext, MacroEvaluator, MacroNamespace, namespace_for
from .index import CrossDocumentIndex, PageSummary
from .users import EmptyUserDirectory, UserDirectory

__all__ = [
    "BuiltinMacros",
    "UNKNOWN_USER",
    "MacroContext",
    "MacroEvaluator",
    "MacroNamespace",
    "namespace_for",
    "CrossDocumentIndex",
    "PageSummary",
    "EmptyUserDirectory",
    "UserDirectory",
]
