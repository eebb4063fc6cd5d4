"""Identity marker stored in the version message of managed pages.

Every page version written by mdspace carries a message of the form::

    updated by mdspace: source=guide/setup.md; checksum=<sha256>

The source path is the page's stable identity across runs; the checksum is
the fingerprint of the content that was written. Pages whose latest version
message lacks the prefix were not written by mdspace and are unmanaged.
"""

import re
from typing import NamedTuple, Optional

PREFIX = "updated by mdspace:"

_MARKER_PATTERN = re.compile(
    r'^' + re.escape(PREFIX) + r'\s*source=(?P<source>.*?);\s*checksum=(?P<checksum>[0-9a-fA-F]*)\s*$'
)


class VersionMarker(NamedTuple):
    """Decoded version marker."""
    source: str
    checksum: str

    def encode(self) -> str:
        return f"{PREFIX} source={self.source}; checksum={self.checksum}"

    @classmethod
    def decode(cls, message: Optional[str]) -> Optional["VersionMarker"]:
        """Parse a version message; None if it is not an mdspace marker.

        Example:
            >>> VersionMarker.decode("updated by mdspace: source=a.md; checksum=ab12")
            VersionMarker(source='a.md', checksum='ab12')
            >>> VersionMarker.decode("Edited in the browser") is None
            True
        """
        if not message:
            return None
        match = _MARKER_PATTERN.match(message.strip())
        if match is None:
            return None
        return cls(source=match.group("source").strip(), checksum=match.group("checksum").lower())
