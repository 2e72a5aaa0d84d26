"""
Backend performing transport and object database work in-process with dulwich.

Timeouts are advisory: the transport call runs in a worker thread and is
abandoned once its deadline passes. Refs are only written after the pack has
arrived within the deadline, so an abandoned fetch never moves a ref.
Reference repositories and passphrase protected keys are not supported.
"""

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Tuple

import urllib3.exceptions
from dulwich import porcelain
from dulwich.client import GitClient, HTTPUnauthorized, get_transport_and_path
from dulwich.errors import GitProtocolError, HangupException, NotGitRepository
from dulwich.objects import Commit
from dulwich.objectspec import parse_commit
from dulwich.repo import Repo

from gitclient.backends._errors import (
    check_clone_destination,
    discard_partial_clone,
    transport_error,
)
from gitclient.backends.base import Backend, Capability, is_object_id
from gitclient.backends.ssh import ssh_identity
from gitclient.credentials import Credential
from gitclient.exceptions import (
    AuthenticationRejectedError,
    AuthenticationUnavailableError,
    GitClientError,
    GitTimeoutError,
    NetworkFailureError,
    NotSupportedByBackendError,
    RepositoryStateInconsistentError,
)
from gitclient.refspec import RefSpec
from gitclient.urls import is_ssh_url, url_username, with_username

logger = logging.getLogger(__name__)

PEELED_SUFFIX = b"^{}"


def _hex(sha: bytes) -> str:
    if len(sha) == 20:
        return sha.hex()
    return sha.decode("ascii")


def _remote_refs(refs: Dict[bytes, Optional[bytes]]) -> Dict[str, str]:
    return {
        name.decode("utf-8"): _hex(sha)
        for name, sha in refs.items()
        if sha is not None and not name.endswith(PEELED_SUFFIX)
    }


def _call_with_deadline(
    operation: str, target: str, timeout: Optional[int], fn: Callable, *args, **kwargs
):
    if not timeout:
        return fn(*args, **kwargs)
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="gitclient")
    future = executor.submit(fn, *args, **kwargs)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError as e:
        logger.warning(f"{operation} {target} exceeded {timeout}s, abandoning it")
        raise GitTimeoutError(operation, target, timeout) from e
    finally:
        executor.shutdown(wait=False)


@contextmanager
def _transport_errors(
    operation: str, target: str, credential: Optional[Credential]
) -> Iterator[None]:
    try:
        yield
    except HTTPUnauthorized as e:
        if credential is None:
            raise AuthenticationUnavailableError(operation, target, e) from e
        raise AuthenticationRejectedError(operation, target, e) from e
    except HangupException as e:
        stderr = b"\n".join(getattr(e, "stderr_lines", None) or []).decode(
            "utf-8", "replace"
        )
        error = transport_error(operation, target, stderr or str(e), credential)
        if type(error) is GitClientError:
            error = NetworkFailureError(operation, target, stderr or e)
        raise error from e
    except GitProtocolError as e:
        error = transport_error(operation, target, str(e), credential)
        if type(error) is GitClientError:
            error = NetworkFailureError(operation, target, e)
        raise error from e
    except NotGitRepository as e:
        raise GitClientError(operation, target, f"not a git repository: {e}") from e
    except (OSError, urllib3.exceptions.HTTPError) as e:
        raise NetworkFailureError(operation, target, e) from e


class EmbeddedBackend(Backend):
    name = "embedded"
    capabilities = frozenset({Capability.SHALLOW, Capability.PRUNE})

    def _open(self, path: Path, operation: str) -> Repo:
        try:
            return Repo(str(path))
        except NotGitRepository as e:
            raise RepositoryStateInconsistentError(
                operation, str(path), f"not a git repository: {e}"
            ) from e

    @contextmanager
    def _transport(
        self, operation: str, url: str, credential: Optional[Credential]
    ) -> Iterator[Tuple[GitClient, str]]:
        if not is_ssh_url(url):
            yield get_transport_and_path(url)
            return

        if credential is None:
            raise AuthenticationUnavailableError(
                operation, url, "the remote requires an SSH credential and none is registered"
            )
        if credential.passphrase is not None:
            raise NotSupportedByBackendError(
                operation, url, self.name, Capability.SSH_PASSPHRASE.value
            )
        if url_username(url) is None and credential.username:
            url = with_username(url, credential.username)
        with ssh_identity(credential) as identity:
            yield get_transport_and_path(url, key_filename=str(identity.key_file))

    def init(self, path: Path) -> None:
        logger.info(f"Initializing repository in {path}")
        path.mkdir(parents=True, exist_ok=True)
        porcelain.init(str(path)).close()

    def _fetch(
        self,
        repo: Repo,
        remote_url: str,
        refspecs: List[RefSpec],
        credential: Optional[Credential],
        shallow: bool,
        prune: bool,
        timeout: Optional[int],
    ):
        def determine_wants(refs, depth=None):
            wants = []
            for name, sha in refs.items():
                if sha is None or name.endswith(PEELED_SUFFIX):
                    continue
                ref = name.decode("utf-8")
                if not any(spec.matches_source(ref) for spec in refspecs):
                    continue
                if sha not in wants and (shallow or sha not in repo.object_store):
                    wants.append(sha)
            return wants

        logger.info(f"Fetching {remote_url} into {repo.path}")
        with _transport_errors("fetch", remote_url, credential):
            with self._transport("fetch", remote_url, credential) as (client, path):
                result = _call_with_deadline(
                    "fetch",
                    remote_url,
                    timeout,
                    client.fetch,
                    path,
                    repo,
                    determine_wants=determine_wants,
                    depth=1 if shallow else None,
                )

        remote_refs = _remote_refs(result.refs)
        updates = self._update_refs(repo, remote_url, remote_refs, refspecs, prune)
        return result, updates

    def _update_refs(
        self,
        repo: Repo,
        remote_url: str,
        remote_refs: Dict[str, str],
        refspecs: List[RefSpec],
        prune: bool,
    ) -> Dict[str, str]:
        updates: Dict[str, str] = {}
        mapped = set()
        for name, sha in remote_refs.items():
            for spec in refspecs:
                local = spec.expand(name)
                if local is None:
                    continue
                mapped.add(local)
                old = self._read_ref(repo, local)
                if old == sha:
                    break
                if old is not None and not spec.force and not self._is_ancestor(repo, old, sha):
                    raise GitClientError(
                        "fetch", remote_url, f"non-fast-forward update of {local} rejected"
                    )
                updates[local] = sha
                break

        # Checked everything above before touching any ref
        for local, sha in updates.items():
            repo.refs[local.encode("utf-8")] = sha.encode("ascii")

        if prune:
            for ref in list(repo.refs.keys()):
                name = ref.decode("utf-8")
                if name in mapped or repo.refs.read_ref(ref).startswith(b"ref: "):
                    continue
                if any(spec.matches_destination(name) for spec in refspecs):
                    logger.info(f"Pruning stale ref {name}")
                    del repo.refs[ref]
        return updates

    @staticmethod
    def _read_ref(repo: Repo, name: str) -> Optional[str]:
        try:
            return _hex(repo.refs[name.encode("utf-8")])
        except KeyError:
            return None

    @staticmethod
    def _is_ancestor(repo: Repo, ancestor: str, descendant: str) -> bool:
        target = ancestor.encode("ascii")
        try:
            for entry in repo.get_walker(include=[descendant.encode("ascii")]):
                if entry.commit.id == target:
                    return True
        except KeyError:
            # History cut off by a shallow fetch
            return False
        return False

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
        with self._open(path, "fetch") as repo:
            _, updates = self._fetch(
                repo, remote_url, refspecs, credential, shallow, prune, timeout
            )
        return updates

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
        if reference is not None:
            raise NotSupportedByBackendError(
                "clone", url, self.name, Capability.REFERENCE_REPOSITORY.value
            )

        check_clone_destination(path, url)
        existed = path.exists()
        logger.info(f"Cloning {url} into {path}")
        try:
            self.init(path)
            self.set_remote_url(path, remote_name, url)
            with self._open(path, "clone") as repo:
                result, _ = self._fetch(
                    repo,
                    url,
                    [RefSpec.default_fetch(remote_name)],
                    credential,
                    shallow,
                    False,
                    timeout,
                )
                branch = self._default_branch(result)
            if branch is None:
                logger.warning(f"{url} has no default branch, nothing checked out")
                return
            tracking = f"refs/remotes/{remote_name}/{branch}"
            with self._open(path, "clone") as repo:
                repo.refs.set_symbolic_ref(
                    f"refs/remotes/{remote_name}/HEAD".encode("utf-8"),
                    tracking.encode("utf-8"),
                )
                object_id = _hex(repo.refs[tracking.encode("utf-8")])
                config = repo.get_config()
                section = (b"branch", branch.encode("utf-8"))
                config.set(section, b"remote", remote_name.encode("utf-8"))
                config.set(section, b"merge", f"refs/heads/{branch}".encode("utf-8"))
                config.write_to_path()
            self.checkout(path, object_id, branch)
        except Exception:
            discard_partial_clone(path, existed)
            raise

    @staticmethod
    def _default_branch(result) -> Optional[str]:
        """Branch the remote HEAD points to, guessed from ids if no symref is sent."""
        head = (getattr(result, "symrefs", None) or {}).get(b"HEAD")
        if head is not None and head.startswith(b"refs/heads/"):
            return head[len(b"refs/heads/") :].decode("utf-8")

        refs = result.refs
        head_sha = refs.get(b"HEAD")
        if head_sha is None:
            return None
        candidates = sorted(
            name[len(b"refs/heads/") :].decode("utf-8")
            for name, sha in refs.items()
            if name.startswith(b"refs/heads/") and sha == head_sha
        )
        for preferred in ("master", "main"):
            if preferred in candidates:
                return preferred
        return candidates[0] if candidates else None

    def checkout(
        self,
        path: Path,
        object_id: str,
        branch: Optional[str] = None,
    ) -> None:
        with self._open(path, "checkout") as repo:
            try:
                commit = repo[object_id.encode("ascii")]
            except KeyError as e:
                raise GitClientError(
                    "checkout", branch or object_id, f"commit {object_id} not in repository"
                ) from e

            previous = set(repo.open_index()) if Path(repo.index_path()).exists() else set()

            # Detach HEAD at its current commit so the reset moves no branch
            try:
                old_head = repo.refs[b"HEAD"]
            except KeyError:
                old_head = None
            if b"HEAD" in repo.refs.allkeys():
                del repo.refs[b"HEAD"]
            if old_head is not None:
                repo.refs[b"HEAD"] = old_head

            porcelain.reset(repo, "hard", commit.id)

            if branch is None:
                repo.refs[b"HEAD"] = commit.id
            else:
                ref = f"refs/heads/{branch}".encode("utf-8")
                repo.refs[ref] = commit.id
                repo.refs.set_symbolic_ref(b"HEAD", ref)

            self._remove_stale(Path(repo.path), previous - set(repo.open_index()))

    @staticmethod
    def _remove_stale(root: Path, paths) -> None:
        """Delete files no longer tracked, and the directories they leave empty."""
        for stale in paths:
            stale_path = root / stale.decode("utf-8")
            if stale_path.is_file() or stale_path.is_symlink():
                stale_path.unlink()
            parent = stale_path.parent
            while parent != root and parent.is_dir() and not any(parent.iterdir()):
                parent.rmdir()
                parent = parent.parent

    def resolve_commit(self, path: Path, ref: str) -> Optional[str]:
        with self._open(path, "resolve") as repo:
            try:
                return _hex(parse_commit(repo, ref.encode("utf-8")).id)
            except (KeyError, ValueError):
                pass

            # Abbreviated commit ids
            if not re.match(r"^[0-9a-f]{4,39}$", ref, re.IGNORECASE):
                return None
            prefix = ref.lower()
            matching = [
                obj_id
                for obj_id in repo.object_store
                if _hex(obj_id).startswith(prefix)
                and isinstance(repo[obj_id], Commit)
            ]
            if len(matching) > 1:
                raise GitClientError(
                    "resolve",
                    ref,
                    f"reference is ambiguous (matches {len(matching)} commits)",
                )
            return _hex(matching[0]) if matching else None

    def list_remote_refs(
        self,
        remote_url: str,
        credential: Optional[Credential],
        timeout: Optional[int] = None,
    ) -> Dict[str, str]:
        with _transport_errors("ls-remote", remote_url, credential):
            with self._transport("ls-remote", remote_url, credential) as (client, path):
                result = _call_with_deadline(
                    "ls-remote", remote_url, timeout, client.get_refs, path
                )
        # Older dulwich returns the refs dict directly
        return _remote_refs(getattr(result, "refs", result))

    def is_commit_present(self, path: Path, object_id: str) -> bool:
        if not is_object_id(object_id):
            return False
        with self._open(path, "is_commit_in_repo") as repo:
            try:
                return isinstance(repo[object_id.encode("ascii")], Commit)
            except KeyError:
                return False

    def current_branch(self, path: Path) -> Optional[str]:
        with self._open(path, "current_branch") as repo:
            try:
                head = repo.refs.read_ref(b"HEAD")
            except KeyError:
                return None
        if head and head.startswith(b"ref: refs/heads/"):
            return head[len(b"ref: refs/heads/") :].decode("utf-8")
        return None

    def head_object_id(self, path: Path) -> Optional[str]:
        with self._open(path, "head") as repo:
            try:
                return _hex(repo.head())
            except KeyError:
                return None

    def get_ref(self, path: Path, name: str) -> Optional[str]:
        full = name if name.startswith("refs/") else f"refs/heads/{name}"
        with self._open(path, "get_ref") as repo:
            return self._read_ref(repo, full)

    def set_remote_url(self, path: Path, name: str, url: str) -> None:
        with self._open(path, "set_remote_url") as repo:
            config = repo.get_config()
            section = (b"remote", name.encode("utf-8"))
            try:
                config.get(section, b"fetch")
            except KeyError:
                config.set(section, b"fetch", str(RefSpec.default_fetch(name)).encode("utf-8"))
            config.set(section, b"url", url.encode("utf-8"))
            config.write_to_path()

    def get_remote_url(self, path: Path, name: str) -> Optional[str]:
        with self._open(path, "get_remote_url") as repo:
            try:
                return repo.get_config().get((b"remote", name.encode("utf-8")), b"url").decode("utf-8")
            except KeyError:
                return None
