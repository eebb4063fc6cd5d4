"""Command-line interface for mdspace.

This package provides the `mdspace` CLI tool: configuration loading, the
sync command that drives the pipeline, and Rich terminal output.
"""

from .config import ConfigLoader
from .errors import CLIError, ConfigError, FilesystemError
from .models import ExitCode, SyncConfig
from .sync_command import SyncCommand

__all__ = [
    'ConfigLoader',
    'CLIError',
    'ConfigError',
    'FilesystemError',
    'ExitCode',
    'SyncConfig',
    'SyncCommand',
]
