"""Resolution of user display names to Confluence account ids."""

import logging
import threading
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


class UserDirectory:
    """Caches display name lookups made by the ``mention`` macro.

    Conversion runs on several worker threads, so the cache is guarded by a
    lock. A failed lookup is not cached and raises to the caller.

    Args:
        lookup: Callable returning the account id for a display name, or None
            when no user matches

    Example:
        >>> directory = UserDirectory(lambda name: "acc-1" if name == "Ada" else None)
        >>> directory.account_id("Ada")
        'acc-1'
    """

    def __init__(self, lookup: Callable[[str], Optional[str]]):
        self._lookup = lookup
        self._cache: Dict[str, Optional[str]] = {}
        self._lock = threading.Lock()

    def account_id(self, public_name: str) -> Optional[str]:
        with self._lock:
            if public_name in self._cache:
                return self._cache[public_name]

        account_id = self._lookup(public_name)
        logger.debug(f"Resolved user '{public_name}' to {account_id}")

        with self._lock:
            self._cache[public_name] = account_id
        return account_id


class EmptyUserDirectory(UserDirectory):
    """Directory that knows no users, used when no remote is configured."""

    def __init__(self):
        super().__init__(lambda public_name: None)
