"""Credential-aware git client over native and embedded backends."""

__version__ = "0.1.0"

from gitclient.client import GitClient, Repository, create_client  # noqa: E402
from gitclient.credentials import Credential, CredentialScope, CredentialStore  # noqa: E402
from gitclient.refspec import RefSpec  # noqa: E402

__all__ = [
    "Credential",
    "CredentialScope",
    "CredentialStore",
    "GitClient",
    "RefSpec",
    "Repository",
    "create_client",
]
