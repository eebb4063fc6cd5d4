"""Credential loading for the Confluence Cloud API.

Credentials are read from the environment, optionally populated from a
``.env`` file by python-dotenv. They are never cached on disk or logged.
"""

import os
from typing import List, NamedTuple, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

from .errors import InvalidCredentialsError

URL_VARIABLE = 'CONFLUENCE_URL'
USER_VARIABLE = 'CONFLUENCE_USER'
TOKEN_VARIABLE = 'CONFLUENCE_API_TOKEN'


class Credentials(NamedTuple):
    """Confluence API credentials."""
    url: str
    user: str
    api_token: str

    @property
    def hostname(self) -> str:
        """Host part of the Confluence URL (e.g. ``example.atlassian.net``)."""
        return urlparse(self.url).netloc or self.url


class Authenticator:
    """Loads and validates Confluence credentials from environment variables.

    Required environment variables:
        CONFLUENCE_URL: Confluence site URL. A bare hostname is accepted and
            expanded to ``https://<host>/wiki``.
        CONFLUENCE_USER: Confluence user email address
        CONFLUENCE_API_TOKEN: Confluence API token

    Example:
        >>> auth = Authenticator()
        >>> creds = auth.get_credentials()
        >>> print(f"Connecting to {creds.hostname}")
    """

    def __init__(self, dotenv_path: Optional[str] = None):
        """Load environment variables from a .env file if one exists.

        Args:
            dotenv_path: Explicit .env file; the default search is used when None
        """
        load_dotenv(dotenv_path=dotenv_path)

    @staticmethod
    def _normalize_url(url: str) -> str:
        url = url.strip().rstrip('/')
        if '://' not in url:
            url = f"https://{url}"
        if not url.endswith('/wiki'):
            url = f"{url}/wiki"
        return url

    def missing_variables(self) -> List[str]:
        """Names of the required variables that are unset or empty."""
        return [
            name for name in (URL_VARIABLE, USER_VARIABLE, TOKEN_VARIABLE)
            if not os.getenv(name)
        ]

    def get_credentials(self) -> Credentials:
        """Get Confluence credentials from environment variables.

        Returns:
            Credentials: A named tuple containing url, user, and api_token

        Raises:
            InvalidCredentialsError: If any required credential is missing
        """
        if self.missing_variables():
            url = os.getenv(URL_VARIABLE)
            user = os.getenv(USER_VARIABLE)
            raise InvalidCredentialsError(
                user=user if user else "unknown",
                endpoint=url if url else "unknown"
            )

        return Credentials(
            url=self._normalize_url(os.environ[URL_VARIABLE]),
            user=os.environ[USER_VARIABLE],
            api_token=os.environ[TOKEN_VARIABLE],
        )
