"""Data models for CLI operations."""

import os
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional


class ExitCode(IntEnum):
    """Exit codes for CLI operations.

    - SUCCESS (0): Every document was converted and every operation applied
    - GENERAL_ERROR (1): Configuration or unexpected errors
    - DOCUMENT_ERRORS (2): Some documents failed or some operations did not apply
    - AUTH_ERROR (3): Authentication or authorization failure
    - NETWORK_ERROR (4): Network connectivity or API availability issues

    Example:
        >>> exit_code = ExitCode.SUCCESS
        >>> sys.exit(exit_code)
    """
    SUCCESS = 0
    GENERAL_ERROR = 1
    DOCUMENT_ERRORS = 2
    AUTH_ERROR = 3
    NETWORK_ERROR = 4


def _default_workers() -> int:
    return os.cpu_count() or 4


@dataclass
class SyncConfig:
    """Settings of one sync run.

    Attributes:
        space_key: Key of the target Confluence space
        source_dir: Directory holding the markdown tree
        index_name: File name of directory index documents
        macro_dir: Directory of user macro files, relative to source_dir
        single_editor: Restrict editing of every page to the syncing user
        mirror_remote_images: Upload remote images as attachments
        max_workers: Upper bound on concurrent document conversions

    Example:
        >>> config = SyncConfig(space_key="DOCS", source_dir="docs")
        >>> config.macro_path
        'docs/_tera'
    """
    space_key: str
    source_dir: str = "."
    index_name: str = "index.md"
    macro_dir: str = "_tera"
    single_editor: bool = False
    mirror_remote_images: bool = False
    max_workers: int = field(default_factory=_default_workers)

    @property
    def macro_path(self) -> Optional[str]:
        """Absolute-or-relative path of the macro directory, None if disabled."""
        if not self.macro_dir:
            return None
        return os.path.join(self.source_dir, self.macro_dir)
