"""YAML frontmatter parsing for markdown documents.

A document may open with a YAML block fenced by ``---`` lines. The block is
parsed into a FrontMatter; the remainder is the document body. Documents
without a block get empty metadata and keep their full text as body.

Recognized keys:
    title: Title override
    labels: List of page labels
    status: One of draft, in-progress, review, verified
    cover: URL/path string, or a mapping with ``source`` and ``position``
    folder: Boolean, marks a directory index as a folder
    metadata: Free-form mapping visible to macros
    imports: List of macro files to import
"""

import logging
import re
from typing import Any, Dict, List, Tuple

import yaml

from .errors import MalformedMetadata
from .models import Cover, Document, FrontMatter, PageStatus

logger = logging.getLogger(__name__)


class FrontmatterHandler:
    """Splits markdown documents into frontmatter and body.

    Example:
        >>> fm, body = FrontmatterHandler.extract("a.md", "---\\nlabels: [x]\\n---\\n# A\\n")
        >>> fm.labels
        ['x']
        >>> body
        '# A\\n'
    """

    # Leading whitespace before the opening fence is allowed
    FRONTMATTER_PATTERN = re.compile(
        r'\A\s*---[ \t]*\n(.*?)^---[ \t]*(?:\n|\Z)',
        re.DOTALL | re.MULTILINE
    )

    KNOWN_KEYS = {'title', 'labels', 'status', 'cover', 'folder', 'metadata', 'imports'}

    # Maximum allowed depth for YAML structures to prevent DoS attacks
    MAX_YAML_DEPTH = 10

    DEFAULT_COVER_POSITION = 50

    @classmethod
    def _validate_yaml_depth(cls, source: str, obj: Any, current_depth: int = 0) -> None:
        """Reject YAML structures nested deeper than MAX_YAML_DEPTH.

        Raises:
            MalformedMetadata: If depth exceeds maximum
        """
        if current_depth > cls.MAX_YAML_DEPTH:
            raise MalformedMetadata(
                source,
                f"YAML structure exceeds maximum depth of {cls.MAX_YAML_DEPTH}"
            )

        if isinstance(obj, dict):
            for value in obj.values():
                cls._validate_yaml_depth(source, value, current_depth + 1)
        elif isinstance(obj, list):
            for item in obj:
                cls._validate_yaml_depth(source, item, current_depth + 1)

    @classmethod
    def split(cls, source: str, content: str) -> Tuple[Dict[str, Any], str]:
        """Split raw text into the frontmatter mapping and the body.

        Args:
            source: Document path (for error messages)
            content: Full markdown content including frontmatter

        Returns:
            Tuple of (frontmatter_dict, body). Returns ({}, content) if the
            document has no frontmatter block.

        Raises:
            MalformedMetadata: If the block is not a valid YAML mapping
        """
        match = cls.FRONTMATTER_PATTERN.match(content)
        if not match:
            return {}, content

        body = content[match.end():]
        try:
            data = yaml.safe_load(match.group(1))
        except yaml.YAMLError as e:
            raise MalformedMetadata(source, f"Invalid YAML syntax: {e}") from e

        if data is None:
            return {}, body

        if not isinstance(data, dict):
            raise MalformedMetadata(
                source,
                f"Frontmatter must be a YAML dictionary, got {type(data).__name__}"
            )

        cls._validate_yaml_depth(source, data)
        return data, body

    @classmethod
    def extract(cls, source: str, content: str) -> Tuple[FrontMatter, str]:
        """Parse the frontmatter of a document into a FrontMatter.

        Args:
            source: Document path (for error messages)
            content: Full markdown content including frontmatter

        Returns:
            Tuple of (FrontMatter, body)

        Raises:
            MalformedMetadata: If the block is invalid or a key has the wrong type
        """
        data, body = cls.split(source, content)

        unknown = sorted(str(key) for key in data if key not in cls.KNOWN_KEYS)
        if unknown:
            logger.debug(f"Ignoring unknown frontmatter keys in {source}: {', '.join(unknown)}")

        front_matter = FrontMatter(
            title=cls._parse_title(source, data.get('title')),
            labels=cls._parse_string_list(source, 'labels', data.get('labels')),
            status=cls._parse_status(source, data.get('status')),
            cover=cls._parse_cover(source, data.get('cover')),
            folder=cls._parse_folder(source, data.get('folder')),
            metadata=cls._parse_metadata(source, data.get('metadata')),
            imports=cls._parse_string_list(source, 'imports', data.get('imports')),
        )
        return front_matter, body

    @classmethod
    def load(cls, source: str, content: str) -> Document:
        """Build a Document from a path and its raw text."""
        front_matter, body = cls.extract(source, content)
        return Document(path=source, raw=content, front_matter=front_matter, body=body)

    @staticmethod
    def _parse_title(source: str, value: Any):
        if value is None:
            return None
        if not isinstance(value, (str, int, float)) or isinstance(value, bool):
            raise MalformedMetadata(source, "'title' must be a string")
        title = str(value).strip()
        return title or None

    @staticmethod
    def _parse_string_list(source: str, key: str, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list):
            raise MalformedMetadata(source, f"'{key}' must be a list of strings")
        items = []
        for item in value:
            if isinstance(item, (dict, list)) or item is None:
                raise MalformedMetadata(source, f"'{key}' must be a list of strings")
            items.append(str(item))
        return items

    @staticmethod
    def _parse_status(source: str, value: Any):
        if value is None:
            return None
        try:
            return PageStatus(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(status.value for status in PageStatus)
            raise MalformedMetadata(
                source, f"'status' must be one of {allowed}, got '{value}'"
            ) from None

    @classmethod
    def _parse_cover(cls, source: str, value: Any):
        if value is None:
            return None
        if isinstance(value, str):
            return Cover(source=value, position=cls.DEFAULT_COVER_POSITION)
        if isinstance(value, dict):
            cover_source = value.get('source')
            if not isinstance(cover_source, str) or not cover_source:
                raise MalformedMetadata(source, "'cover.source' must be a non-empty string")
            position = value.get('position', cls.DEFAULT_COVER_POSITION)
            if isinstance(position, bool) or not isinstance(position, int):
                raise MalformedMetadata(source, "'cover.position' must be an integer")
            if not 0 <= position <= 100:
                raise MalformedMetadata(source, "'cover.position' must be between 0 and 100")
            return Cover(source=cover_source, position=position)
        raise MalformedMetadata(source, "'cover' must be a string or a mapping")

    @staticmethod
    def _parse_folder(source: str, value: Any) -> bool:
        if value is None:
            return False
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ('yes', 'true', 'no', 'false'):
            return value.strip().lower() in ('yes', 'true')
        raise MalformedMetadata(source, "'folder' must be a boolean")

    @staticmethod
    def _parse_metadata(source: str, value: Any) -> Dict[str, Any]:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise MalformedMetadata(source, "'metadata' must be a mapping")
        return value
