"""
Backend driving the git executable through GitPython.

Network operations run as git processes killed after the configured timeout.
Fetches are --atomic, so a killed or rejected fetch leaves every ref as it
was. SSH identities reach git through GIT_SSH_COMMAND.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from git import Git, Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from gitclient.backends._errors import (
    check_clone_destination,
    discard_partial_clone,
    transport_error,
)
from gitclient.backends.base import Backend, Capability, is_object_id
from gitclient.backends.ssh import ssh_identity
from gitclient.config import get_ssh_command
from gitclient.credentials import Credential
from gitclient.exceptions import (
    GitClientError,
    GitTimeoutError,
    RepositoryStateInconsistentError,
)
from gitclient.refspec import RefSpec
from gitclient.urls import is_ssh_url, url_username

logger = logging.getLogger(__name__)


def _stderr(e: GitCommandError) -> str:
    return str(e.stderr or e.stdout or e)


def _translate(
    e: GitCommandError,
    operation: str,
    target: str,
    credential: Optional[Credential],
    timeout: Optional[int],
) -> GitClientError:
    # GitPython reports processes killed by kill_after_timeout this way
    if timeout and "Timeout:" in _stderr(e):
        return GitTimeoutError(operation, target, timeout)
    return transport_error(operation, target, _stderr(e), credential)


@contextmanager
def _transport_environment(
    url: str, credential: Optional[Credential]
) -> Iterator[Dict[str, str]]:
    env = {"GIT_TERMINAL_PROMPT": "0"}
    if not is_ssh_url(url):
        yield env
        return
    if credential is None:
        # ssh must fail instead of asking for a password or passphrase
        env["GIT_SSH_COMMAND"] = f"{get_ssh_command()} -o BatchMode=yes"
        yield env
        return
    with ssh_identity(credential) as identity:
        env.update(identity.git_environment(url_has_user=url_username(url) is not None))
        yield env


def _local_refs(repo: Repo) -> Dict[str, str]:
    output = repo.git.for_each_ref("--format=%(objectname) %(refname)")
    refs = {}
    for line in output.splitlines():
        sha, _, name = line.partition(" ")
        refs[name] = sha
    return refs


class NativeBackend(Backend):
    name = "native"
    capabilities = frozenset(
        {
            Capability.SHALLOW,
            Capability.PRUNE,
            Capability.REFERENCE_REPOSITORY,
            Capability.PROCESS_TIMEOUT,
            Capability.SSH_PASSPHRASE,
        }
    )

    def _open(self, path: Path, operation: str) -> Repo:
        try:
            return Repo(str(path))
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise RepositoryStateInconsistentError(
                operation, str(path), f"not a git repository: {e}"
            ) from e

    def init(self, path: Path) -> None:
        logger.info(f"Initializing repository in {path}")
        try:
            Repo.init(str(path), mkdir=True).close()
        except GitCommandError as e:
            raise GitClientError("init", str(path), _stderr(e)) from e

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
        args = ["--atomic", "--no-tags"]
        if shallow:
            args.append("--depth=1")
        if prune:
            args.append("--prune")
        args.append(remote_url)
        args.extend(str(spec) for spec in refspecs)

        with self._open(path, "fetch") as repo:
            before = _local_refs(repo)
            logger.info(f"Fetching {remote_url} into {path}")
            try:
                with _transport_environment(remote_url, credential) as env:
                    with repo.git.custom_environment(**env):
                        repo.git.fetch(*args, kill_after_timeout=timeout or None)
            except GitCommandError as e:
                raise _translate(e, "fetch", remote_url, credential, timeout) from e
            after = _local_refs(repo)

        return {
            name: sha
            for name, sha in after.items()
            if before.get(name) != sha
            and any(spec.matches_destination(name) for spec in refspecs)
        }

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
        args = ["--origin", remote_name, "--no-tags"]
        if reference is not None:
            args += ["--reference", str(reference)]
        if shallow:
            args += ["--depth=1", "--no-single-branch"]
        args += ["--", url, str(path)]

        check_clone_destination(path, url)
        existed = path.exists()
        git = Git()
        logger.info(f"Cloning {url} into {path}")
        try:
            with _transport_environment(url, credential) as env:
                with git.custom_environment(**env):
                    git.clone(*args, kill_after_timeout=timeout or None)
        except GitCommandError as e:
            discard_partial_clone(path, existed)
            raise _translate(e, "clone", url, credential, timeout) from e

    def checkout(
        self,
        path: Path,
        object_id: str,
        branch: Optional[str] = None,
    ) -> None:
        with self._open(path, "checkout") as repo:
            try:
                if branch is None:
                    repo.git.checkout("--detach", object_id)
                else:
                    repo.git.checkout("-B", branch, object_id)
            except GitCommandError as e:
                raise GitClientError("checkout", branch or object_id, _stderr(e)) from e

    def resolve_commit(self, path: Path, ref: str) -> Optional[str]:
        with self._open(path, "resolve") as repo:
            try:
                return repo.git.rev_parse("--verify", "--quiet", f"{ref}^{{commit}}")
            except GitCommandError:
                return None

    def list_remote_refs(
        self,
        remote_url: str,
        credential: Optional[Credential],
        timeout: Optional[int] = None,
    ) -> Dict[str, str]:
        git = Git()
        try:
            with _transport_environment(remote_url, credential) as env:
                with git.custom_environment(**env):
                    output = git.ls_remote(remote_url, kill_after_timeout=timeout or None)
        except GitCommandError as e:
            raise _translate(e, "ls-remote", remote_url, credential, timeout) from e

        refs = {}
        for line in output.splitlines():
            sha, _, name = line.partition("\t")
            if name and not name.endswith("^{}"):
                refs[name] = sha
        return refs

    def is_commit_present(self, path: Path, object_id: str) -> bool:
        if not is_object_id(object_id):
            return False
        with self._open(path, "is_commit_in_repo") as repo:
            try:
                return repo.git.cat_file("-t", object_id) == "commit"
            except GitCommandError:
                return False

    def current_branch(self, path: Path) -> Optional[str]:
        with self._open(path, "current_branch") as repo:
            if repo.head.is_detached:
                return None
            return repo.active_branch.name

    def head_object_id(self, path: Path) -> Optional[str]:
        with self._open(path, "head") as repo:
            try:
                return repo.head.commit.hexsha
            except ValueError:
                # Unborn branch, no commit yet
                return None

    def get_ref(self, path: Path, name: str) -> Optional[str]:
        full = name if name.startswith("refs/") else f"refs/heads/{name}"
        with self._open(path, "get_ref") as repo:
            try:
                return repo.git.rev_parse("--verify", "--quiet", full)
            except GitCommandError:
                return None

    def set_remote_url(self, path: Path, name: str, url: str) -> None:
        with self._open(path, "set_remote_url") as repo:
            if name in [remote.name for remote in repo.remotes]:
                repo.remote(name).set_url(url)
            else:
                repo.create_remote(name, url)

    def get_remote_url(self, path: Path, name: str) -> Optional[str]:
        with self._open(path, "get_remote_url") as repo:
            try:
                return repo.remote(name).url
            except ValueError:
                return None
