"""
GitClient: one credential store, one working repository, one backend.

Usage:
    git = create_client("/tmp/work", backend="native")
    git.add_default_credentials(Credential.from_private_key_file(key, "jenkins"))
    git.init_().execute()
    git.fetch_().from_(url, ["+refs/heads/*:refs/remotes/origin/*"]).execute()
    master = git.get_head_rev(url, "master")
    git.checkout().branch("master").ref(master).delete_branch_if_exists().execute()
    assert git.is_commit_in_repo(master)
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Union

from gitclient.backends import Backend, get_backend
from gitclient.commands import CheckoutCommand, CloneCommand, FetchCommand, InitCommand
from gitclient.config import get_default_backend, get_network_timeout
from gitclient.credentials import Credential, CredentialStore
from gitclient.exceptions import RefNotFoundError
from gitclient.urls import is_remote_url

logger = logging.getLogger(__name__)


class Repository:
    """Read-only view of a working repository's branch, HEAD and refs."""

    def __init__(self, backend: Backend, path: Path):
        self._backend = backend
        self.path = path

    @property
    def backend(self) -> str:
        return self._backend.name

    def get_branch(self) -> Optional[str]:
        return self._backend.current_branch(self.path)

    def head(self) -> Optional[str]:
        return self._backend.head_object_id(self.path)

    def get_ref(self, name: str) -> Optional[str]:
        return self._backend.get_ref(self.path, name)

    def get_remote_url(self, name: str) -> Optional[str]:
        return self._backend.get_remote_url(self.path, name)

    def __repr__(self) -> str:
        return f"Repository(path={str(self.path)!r}, backend={self.backend!r})"


class GitClient:
    """
    Uniform git API over an interchangeable backend.

    Each client owns its credential store: credentials registered on one
    client are never visible to another.
    """

    def __init__(
        self,
        workspace: Union[str, Path],
        backend: Union[str, Backend] = "native",
        credentials: Optional[CredentialStore] = None,
    ):
        self.workspace = Path(workspace).absolute()
        self.backend = get_backend(backend) if isinstance(backend, str) else backend
        self._credentials = credentials if credentials is not None else CredentialStore()
        logger.debug(f"git client in {self.workspace} using {self.backend.name} backend")

    @property
    def credentials(self) -> CredentialStore:
        return self._credentials

    def add_credentials(self, url: str, credential: Credential) -> None:
        self._credentials.add_for_url(url, credential)

    def add_default_credentials(self, credential: Credential) -> None:
        self._credentials.add_default(credential)

    def clear_credentials(self) -> None:
        self._credentials.clear()

    def init_(self) -> InitCommand:
        return InitCommand(self.backend, self.workspace, self._credentials)

    def fetch_(self) -> FetchCommand:
        return FetchCommand(self.backend, self.workspace, self._credentials)

    def clone_(self) -> CloneCommand:
        return CloneCommand(self.backend, self.workspace, self._credentials)

    def checkout(self) -> CheckoutCommand:
        return CheckoutCommand(self.backend, self.workspace, self._credentials)

    def set_remote_url(self, name: str, url: str) -> None:
        self.backend.set_remote_url(self.workspace, name, url)

    def get_remote_url(self, name: str) -> Optional[str]:
        return self.backend.get_remote_url(self.workspace, name)

    def _timeout(self, url: str) -> int:
        return get_network_timeout() if is_remote_url(url) else 0

    def get_remote_references(self, remote_url: str) -> Dict[str, str]:
        """
        List a remote's refs without fetching.

        Args:
            remote_url: Remote repository URL

        Returns:
            Mapping of ref name to object id
        """
        credential = self._credentials.resolve(remote_url)
        return self.backend.list_remote_refs(
            remote_url, credential, self._timeout(remote_url)
        )

    def get_head_rev(self, remote_url: str, branch: str) -> str:
        """
        Resolve the object id a branch points to on a remote.

        The ref does not need to exist locally. The credential registered for
        remote_url (or the default one) authenticates the query.

        Args:
            remote_url: Remote repository URL
            branch: Branch name or full ref name

        Returns:
            The 40 character object id

        Raises:
            RefNotFoundError: If the remote has no such branch
        """
        credential = self._credentials.resolve(remote_url)
        object_id = self.backend.resolve_head_revision(
            remote_url, branch, credential, self._timeout(remote_url)
        )
        if object_id is None:
            raise RefNotFoundError("get_head_rev", f"{remote_url} {branch}", "no such branch on the remote")
        return object_id

    def is_commit_in_repo(self, object_id: str) -> bool:
        return self.backend.is_commit_present(self.workspace, object_id)

    def get_repository(self) -> Repository:
        return Repository(self.backend, self.workspace)


def create_client(
    workspace: Union[str, Path],
    backend: Optional[str] = None,
    credentials: Optional[CredentialStore] = None,
) -> GitClient:
    """Create a client using the configured default backend unless one is given."""
    return GitClient(workspace, backend or get_default_backend(), credentials)
