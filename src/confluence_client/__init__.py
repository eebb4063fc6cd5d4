"""Confluence client library for mdspace.

This package provides Python abstractions over the Confluence Cloud REST API,
covering only the operations the sync engine needs: querying existing pages
and attachments, creating and updating pages and folders, moving, archiving
and restoring pages, labels, restrictions and attachment uploads.
"""

from .errors import (
    SyncError,
    ConfluenceError,
    InvalidCredentialsError,
    PageNotFoundError,
    SpaceNotFoundError,
    APIUnreachableError,
    APIAccessError,
)

__all__ = [
    "SyncError",
    "ConfluenceError",
    "InvalidCredentialsError",
    "PageNotFoundError",
    "SpaceNotFoundError",
    "APIUnreachableError",
    "APIAccessError",
]
