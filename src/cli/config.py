"""YAML configuration loading and validation.

Configuration file structure (every key optional except ``space_key``,
which may instead be given on the command line):

    space_key: DOCS
    source_dir: docs
    index_name: index.md
    macro_dir: _tera
    single_editor: false
    mirror_remote_images: false
    max_workers: 8
"""

import os
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError, FilesystemError
from .models import SyncConfig, _default_workers

DEFAULT_CONFIG_FILE = 'mdspace.yaml'


class ConfigLoader:
    """Handles configuration file loading and validation."""

    DEFAULTS = {
        'source_dir': '.',
        'index_name': 'index.md',
        'macro_dir': '_tera',
        'single_editor': False,
        'mirror_remote_images': False,
    }

    STRING_FIELDS = ('space_key', 'source_dir', 'index_name', 'macro_dir')
    BOOL_FIELDS = ('single_editor', 'mirror_remote_images')
    KNOWN_FIELDS = set(STRING_FIELDS + BOOL_FIELDS + ('max_workers',))

    @classmethod
    def load(cls, config_path: Optional[str] = None,
             overrides: Optional[Dict[str, Any]] = None) -> SyncConfig:
        """Load configuration from a YAML file and apply command line overrides.

        A missing default file is not an error; a missing file that was
        named explicitly is.

        Args:
            config_path: Path to the YAML file (``mdspace.yaml`` when None)
            overrides: Values from the command line; None values are ignored

        Returns:
            Validated SyncConfig

        Raises:
            FilesystemError: If the file cannot be read
            ConfigError: If the configuration is invalid or malformed
        """
        explicit = config_path is not None
        config_path = config_path or DEFAULT_CONFIG_FILE

        config_dict: Dict[str, Any] = {}
        if explicit or os.path.exists(config_path):
            config_dict = cls._read(config_path)

        for key, value in (overrides or {}).items():
            if value is not None:
                config_dict[key] = value

        return cls._parse_config(config_dict)

    @classmethod
    def _read(cls, config_path: str) -> Dict[str, Any]:
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            raise FilesystemError(config_path, 'read', 'Configuration file not found')
        except PermissionError:
            raise FilesystemError(config_path, 'read', 'Permission denied')
        except OSError as e:
            raise FilesystemError(config_path, 'read', str(e))

        try:
            config_dict = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML syntax: {str(e)}")

        if config_dict is None:
            return {}

        if not isinstance(config_dict, dict):
            raise ConfigError(
                f"Configuration must be a YAML dictionary, got {type(config_dict).__name__}"
            )
        return config_dict

    @classmethod
    def _parse_config(cls, config_dict: Dict[str, Any]) -> SyncConfig:
        """Validate a raw configuration dictionary.

        Raises:
            ConfigError: If a field is missing, unknown or of the wrong type
        """
        unknown = set(config_dict) - cls.KNOWN_FIELDS
        if unknown:
            raise ConfigError(f"Unknown fields: {', '.join(sorted(unknown))}")

        values = dict(cls.DEFAULTS)
        values.update(config_dict)

        for name in cls.STRING_FIELDS:
            value = values.get(name)
            if value is None:
                continue
            if not isinstance(value, str):
                raise ConfigError(f"must be a string, got {type(value).__name__}", name)
            values[name] = value.strip()

        if not values.get('space_key'):
            raise ConfigError("A space key is required (set space_key or pass --space)", 'space_key')
        if not values['index_name']:
            raise ConfigError("cannot be empty", 'index_name')

        for name in cls.BOOL_FIELDS:
            if not isinstance(values[name], bool):
                raise ConfigError(f"must be true or false, got {values[name]!r}", name)

        max_workers = values.get('max_workers')
        if max_workers is None:
            max_workers = _default_workers()
        try:
            max_workers = int(max_workers)
        except (ValueError, TypeError):
            raise ConfigError(f"must be an integer, got {max_workers!r}", 'max_workers')
        if max_workers < 1:
            raise ConfigError(f"must be at least 1, got {max_workers}", 'max_workers')

        source_dir = values['source_dir'] or '.'
        if not os.path.isdir(source_dir):
            raise FilesystemError(source_dir, 'read', 'Source directory does not exist')

        return SyncConfig(
            space_key=values['space_key'],
            source_dir=source_dir,
            index_name=values['index_name'],
            macro_dir=values['macro_dir'] or '',
            single_editor=values['single_editor'],
            mirror_remote_images=values['mirror_remote_images'],
            max_workers=max_workers,
        )
