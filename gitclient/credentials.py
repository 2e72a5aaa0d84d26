"""
SSH private key credentials and their scoping.

A CredentialStore holds credentials bound to a remote URL plus at most one
default credential used when no URL-specific entry matches. Each GitClient
owns its own store, nothing is shared between clients.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class CredentialScope(Enum):
    GLOBAL = "global"
    SYSTEM = "system"


@dataclass(frozen=True)
class Credential:
    """
    A username with an SSH private key.

    The key material is opaque to the client: it is handed to the backend
    unread and never logged.
    """

    username: str
    private_key: str = field(repr=False)
    passphrase: Optional[str] = field(default=None, repr=False)
    id: str = ""
    description: str = ""
    scope: CredentialScope = CredentialScope.GLOBAL

    @classmethod
    def from_private_key_file(
        cls,
        private_key: Path,
        username: str,
        passphrase: Optional[str] = None,
        scope: CredentialScope = CredentialScope.GLOBAL,
    ) -> "Credential":
        """
        Create a credential from a private key file on disk.

        Args:
            private_key: Path to the private key file
            username: Principal used to authenticate
            passphrase: Optional passphrase protecting the key
            scope: Credential scope

        Returns:
            A credential carrying the key file's content
        """
        private_key = Path(private_key).expanduser()
        return cls(
            username=username,
            private_key=private_key.read_text(encoding="utf-8"),
            passphrase=passphrase,
            id=f"private-key-{private_key}",
            description=f"private key from {private_key}",
            scope=scope,
        )


class CredentialStore:
    """
    Credentials registered by URL, plus a default.

    Lookups use exact URL matches first, the default credential second. The
    last registered default wins; for a given URL the first registration wins.
    """

    def __init__(self):
        self._by_url: Dict[str, Credential] = {}
        self._default: Optional[Credential] = None

    def add_default(self, credential: Credential) -> None:
        if self._default is not None:
            logger.debug(
                f"Replacing default credential '{self._default.id}' with '{credential.id}'"
            )
        self._default = credential

    def add_for_url(self, url: str, credential: Credential) -> None:
        if url in self._by_url:
            logger.debug(
                f"Credential for {url} already registered, ignoring '{credential.id}'"
            )
            return
        self._by_url[url] = credential

    def clear(self) -> None:
        self._by_url.clear()
        self._default = None

    def resolve(self, url: str) -> Optional[Credential]:
        """
        Find the credential applying to a remote URL.

        Args:
            url: Remote repository URL

        Returns:
            The URL-bound credential, else the default, else None
        """
        credential = self._by_url.get(url)
        if credential is None:
            credential = self._default
        return credential

    @property
    def default(self) -> Optional[Credential]:
        return self._default

    def urls(self) -> List[str]:
        return list(self._by_url)

    def __len__(self) -> int:
        return len(self._by_url) + (1 if self._default is not None else 0)
