"""
Fluent command builders.

Setters return the builder so options can be chained; execute() performs the
operation and may only be called once per builder. Credentials are resolved
when execute() runs, not when the builder is created.

    client.fetch_().from_(url, ["+refs/heads/*:refs/remotes/origin/*"]).prune().execute()
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from filelock import FileLock

from gitclient.backends._errors import check_clone_destination
from gitclient.backends.base import Backend, Capability
from gitclient.config import (
    get_default_remote_name,
    get_network_shallow,
    get_network_timeout,
)
from gitclient.credentials import CredentialStore
from gitclient.exceptions import (
    BranchAlreadyExistsError,
    CommandAlreadyExecutedError,
    GitClientError,
    NotSupportedByBackendError,
    RefNotFoundError,
    RepositoryStateInconsistentError,
)
from gitclient.refspec import RefSpec
from gitclient.urls import is_remote_url

logger = logging.getLogger(__name__)


def lock_path(workspace: Path) -> Path:
    return workspace.with_name(f"{workspace.name}.lock")


class GitCommand(ABC):
    """Base class for one-shot commands against a working repository."""

    operation = ""

    def __init__(self, backend: Backend, workspace: Path, credentials: CredentialStore):
        self._backend = backend
        self._workspace = workspace
        self._credentials = credentials
        self._executed = False

    @property
    def executed(self) -> bool:
        return self._executed

    def _require(self, capability: Capability, target: Optional[str]) -> None:
        if not self._backend.supports(capability):
            raise NotSupportedByBackendError(
                self.operation, target, self._backend.name, capability.value
            )

    def execute(self):
        if self._executed:
            raise CommandAlreadyExecutedError(self.operation)
        self._executed = True

        self._workspace.parent.mkdir(parents=True, exist_ok=True)
        with FileLock(lock_path(self._workspace)):
            return self._run()

    @abstractmethod
    def _run(self):
        pass


class InitCommand(GitCommand):
    operation = "init"

    def workspace(self, path: Union[str, Path]) -> "InitCommand":
        self._workspace = Path(path).absolute()
        return self

    def _run(self) -> None:
        path = self._workspace
        if self._backend.is_repository(path):
            logger.info(f"{path} is already a git repository")
            return
        if path.exists() and (not path.is_dir() or any(path.iterdir())):
            raise GitClientError(
                self.operation, str(path), "path exists and is not an empty directory"
            )
        self._backend.init(path)


class _NetworkCommand(GitCommand):
    def __init__(self, backend: Backend, workspace: Path, credentials: CredentialStore):
        super().__init__(backend, workspace, credentials)
        self._shallow: Optional[bool] = None
        self._prune = False
        self._timeout: Optional[int] = None

    def shallow(self, shallow: bool = True):
        self._shallow = shallow
        return self

    def prune(self, prune: bool = True):
        self._prune = prune
        return self

    def timeout(self, seconds: int):
        if seconds < 0:
            raise ValueError(f"timeout must be >= 0, got {seconds}")
        self._timeout = seconds
        return self

    def _effective_shallow(self, url: str) -> bool:
        network = is_remote_url(url)
        shallow = self._shallow
        if shallow is None:
            shallow = network and get_network_shallow()
        if shallow and not network:
            logger.debug(f"Ignoring shallow for local repository {url}")
            return False
        if shallow:
            self._require(Capability.SHALLOW, url)
        return shallow

    def _effective_timeout(self, url: str) -> int:
        if self._timeout is not None:
            return self._timeout
        return get_network_timeout() if is_remote_url(url) else 0


class FetchCommand(_NetworkCommand):
    operation = "fetch"

    def __init__(self, backend: Backend, workspace: Path, credentials: CredentialStore):
        super().__init__(backend, workspace, credentials)
        self._remote: Optional[str] = None
        self._refspecs: List[RefSpec] = []

    def from_(
        self, remote: str, refspecs: Iterable[Union[str, RefSpec]] = ()
    ) -> "FetchCommand":
        self._remote = str(remote)
        self._refspecs = [
            spec if isinstance(spec, RefSpec) else RefSpec.parse(spec)
            for spec in refspecs
        ]
        return self

    def _run(self) -> Dict[str, str]:
        if self._remote is None:
            raise GitClientError(self.operation, None, "no remote given, call from_() first")
        url = self._remote
        refspecs = self._refspecs or [RefSpec.default_fetch(get_default_remote_name())]
        shallow = self._effective_shallow(url)
        if self._prune:
            self._require(Capability.PRUNE, url)
        timeout = self._effective_timeout(url)

        credential = self._credentials.resolve(url)
        logger.debug(
            f"fetch {url} refspecs={[str(s) for s in refspecs]} shallow={shallow} "
            f"prune={self._prune} timeout={timeout} credential={credential.id if credential else None}"
        )
        updates = self._backend.fetch(
            self._workspace,
            url,
            refspecs,
            credential,
            shallow=shallow,
            prune=self._prune,
            timeout=timeout,
        )
        logger.info(f"Fetched {url}: {len(updates)} ref(s) updated")
        return updates


class CloneCommand(_NetworkCommand):
    operation = "clone"

    def __init__(self, backend: Backend, workspace: Path, credentials: CredentialStore):
        super().__init__(backend, workspace, credentials)
        self._url: Optional[str] = None
        self._remote_name = get_default_remote_name()
        self._reference: Optional[Path] = None

    def url(self, url: str) -> "CloneCommand":
        self._url = str(url)
        return self

    def repository_name(self, name: str) -> "CloneCommand":
        self._remote_name = name
        return self

    def reference(self, path: Union[str, Path]) -> "CloneCommand":
        self._reference = Path(path)
        return self

    def _run(self) -> None:
        if self._url is None:
            raise GitClientError(self.operation, None, "no URL given, call url() first")
        url = self._url
        if self._reference is not None:
            self._require(Capability.REFERENCE_REPOSITORY, url)
        shallow = self._effective_shallow(url)
        if self._prune:
            self._require(Capability.PRUNE, url)
        timeout = self._effective_timeout(url)
        check_clone_destination(self._workspace, url)

        credential = self._credentials.resolve(url)
        self._backend.clone(
            self._workspace,
            url,
            credential,
            remote_name=self._remote_name,
            reference=self._reference,
            shallow=shallow,
            timeout=timeout,
        )

        configured = self._backend.get_remote_url(self._workspace, self._remote_name)
        if configured is None:
            raise RepositoryStateInconsistentError(
                self.operation, url, f"remote '{self._remote_name}' is not configured after clone"
            )
        logger.info(f"Cloned {url} into {self._workspace} as '{self._remote_name}'")


class CheckoutCommand(GitCommand):
    operation = "checkout"

    def __init__(self, backend: Backend, workspace: Path, credentials: CredentialStore):
        super().__init__(backend, workspace, credentials)
        self._branch: Optional[str] = None
        self._ref: Optional[str] = None
        self._delete_branch = False

    def branch(self, name: str) -> "CheckoutCommand":
        self._branch = name
        return self

    def ref(self, ref: str) -> "CheckoutCommand":
        self._ref = str(ref)
        return self

    def delete_branch_if_exists(self, delete: bool = True) -> "CheckoutCommand":
        self._delete_branch = delete
        return self

    def _run(self) -> str:
        if self._ref is None:
            raise GitClientError(self.operation, self._branch, "no ref given, call ref() first")
        path = self._workspace
        object_id = self._backend.resolve_commit(path, self._ref)
        if object_id is None:
            raise RefNotFoundError(self.operation, self._ref, "no such commit or ref in repository")

        branch = self._branch
        if branch is not None:
            existing = self._backend.get_ref(path, branch)
            if existing is not None and existing != object_id:
                if not self._delete_branch:
                    raise BranchAlreadyExistsError(branch, existing, object_id)
                logger.info(f"Deleting branch '{branch}' at {existing[:7]}")

        logger.info(f"Checking out {self._ref} ({object_id[:7]}) as {branch or 'detached HEAD'}")
        self._backend.checkout(path, object_id, branch)

        head = self._backend.head_object_id(path)
        if head != object_id:
            raise RepositoryStateInconsistentError(
                self.operation, self._ref, f"HEAD is {head} after checkout, expected {object_id}"
            )
        current = self._backend.current_branch(path)
        if current != branch:
            raise RepositoryStateInconsistentError(
                self.operation, self._ref, f"current branch is {current} after checkout, expected {branch}"
            )
        return object_id
