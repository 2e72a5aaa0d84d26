"""Backend interface shared by the native and embedded transports."""

import re
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional

from gitclient.credentials import Credential
from gitclient.refspec import RefSpec

OBJECT_ID = re.compile(r"^[0-9a-f]{40}$")


def is_object_id(value: str) -> bool:
    """Check for a full 40 character lowercase hex object id."""
    return bool(OBJECT_ID.match(value))


class Capability(Enum):
    SHALLOW = "shallow"
    PRUNE = "prune"
    REFERENCE_REPOSITORY = "reference repository"
    PROCESS_TIMEOUT = "process timeout"
    SSH_PASSPHRASE = "ssh key passphrase"


class Backend(ABC):
    """
    A git transport and repository implementation.

    Callers check `supports()` for optional behaviour instead of testing the
    backend type. Operations on a working repository take its path; network
    operations take the credential already resolved for the remote (or None).
    Timeouts are in seconds, 0 or None meaning no timeout.
    """

    name: str = ""
    capabilities: FrozenSet[Capability] = frozenset()

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    @abstractmethod
    def init(self, path: Path) -> None:
        """Create an empty repository at path."""

    @abstractmethod
    def fetch(
        self,
        path: Path,
        remote_url: str,
        refspecs: List[RefSpec],
        credential: Optional[Credential],
        shallow: bool = False,
        prune: bool = False,
        timeout: Optional[int] = None,
    ) -> Dict[str, str]:
        """
        Fetch refs matching the refspecs into the repository at path.

        Returns:
            Mapping of updated local ref name to object id
        """

    @abstractmethod
    def clone(
        self,
        path: Path,
        url: str,
        credential: Optional[Credential],
        remote_name: str = "origin",
        reference: Optional[Path] = None,
        shallow: bool = False,
        timeout: Optional[int] = None,
    ) -> None:
        """Clone url into path and check out the remote's default branch."""

    @abstractmethod
    def checkout(
        self,
        path: Path,
        object_id: str,
        branch: Optional[str] = None,
    ) -> None:
        """
        Update HEAD and the working tree to object_id.

        With a branch, the branch is (re)created at object_id and checked out,
        otherwise HEAD is detached.
        """

    @abstractmethod
    def resolve_commit(self, path: Path, ref: str) -> Optional[str]:
        """Resolve a commit id, branch, tag or remote ref to a commit id."""

    @abstractmethod
    def list_remote_refs(
        self,
        remote_url: str,
        credential: Optional[Credential],
        timeout: Optional[int] = None,
    ) -> Dict[str, str]:
        """List the remote's refs without fetching any objects."""

    def resolve_head_revision(
        self,
        remote_url: str,
        branch: str,
        credential: Optional[Credential],
        timeout: Optional[int] = None,
    ) -> Optional[str]:
        """
        Find the object id a branch points to on a remote.

        Args:
            remote_url: Remote repository URL
            branch: Branch name ("master") or full ref ("refs/heads/master")
            credential: Credential for the remote, if any
            timeout: Deadline in seconds

        Returns:
            The object id, or None if the remote has no such branch
        """
        refs = self.list_remote_refs(remote_url, credential, timeout)
        if branch.startswith("refs/"):
            return refs.get(branch)
        return refs.get(f"refs/heads/{branch}")

    @abstractmethod
    def is_commit_present(self, path: Path, object_id: str) -> bool:
        """
        Check whether a commit object exists in the repository.

        Only full object ids are looked up, abbreviations and ref names are
        never present.
        """

    @abstractmethod
    def current_branch(self, path: Path) -> Optional[str]:
        """Name of the checked out branch, None when HEAD is detached."""

    @abstractmethod
    def head_object_id(self, path: Path) -> Optional[str]:
        """Commit HEAD points to, None when the repository has no commits."""

    @abstractmethod
    def get_ref(self, path: Path, name: str) -> Optional[str]:
        """Object id of a local branch (or full ref name), None if absent."""

    @abstractmethod
    def set_remote_url(self, path: Path, name: str, url: str) -> None:
        """Create or update a remote."""

    @abstractmethod
    def get_remote_url(self, path: Path, name: str) -> Optional[str]:
        """URL of a configured remote, None if it isn't configured."""

    @staticmethod
    def is_repository(path: Path) -> bool:
        return (path / ".git").exists()
