"""Non-fatal diagnostics produced while processing a document.

Warnings never interrupt conversion. They are attached to the conversion
result of the document that produced them and surfaced in the run report.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class DocumentWarning:
    """Base class for warnings tied to one source document."""
    source: str

    @property
    def message(self) -> str:
        return f"Warning in '{self.source}'"

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class BrokenLinkWarning(DocumentWarning):
    """A relative link points at something that is neither a document nor a file."""
    target: str

    @property
    def message(self) -> str:
        return f"Broken link in '{self.source}': '{self.target}' does not resolve"


@dataclass(frozen=True)
class UnknownUserWarning(DocumentWarning):
    """A mention names a user the directory could not find."""
    public_name: str

    @property
    def message(self) -> str:
        return f"Unknown user in '{self.source}': '{self.public_name}'"


@dataclass(frozen=True)
class MalformedBlockWarning(DocumentWarning):
    """An alert block marker could not be parsed and was kept as a quote."""
    marker: str

    @property
    def message(self) -> str:
        return f"Malformed block in '{self.source}': '{self.marker}' rendered as a plain quote"
