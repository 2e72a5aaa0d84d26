"""In-memory backend recording the calls the command builders make."""

from typing import Dict, List, Optional

from gitclient.backends.base import Backend, Capability

REMOTE = "https://example.com/org/repo.git"
MASTER = "a" * 40
OTHER = "b" * 40


class FakeBackend(Backend):
    """Records calls and keeps branch/HEAD state in memory."""

    name = "fake"

    def __init__(self, capabilities=frozenset(Capability)):
        self.capabilities = frozenset(capabilities)
        self.calls: List[tuple] = []
        self.commits = {"master": MASTER, "origin/master": MASTER, "other": OTHER}
        self.branches: Dict[str, str] = {}
        self.head: Optional[str] = None
        self.branch: Optional[str] = None
        self.remotes: Dict[str, str] = {}
        self.remote_refs = {"refs/heads/master": MASTER, "HEAD": MASTER}
        self.break_head = False

    def init(self, path):
        self.calls.append(("init", path))
        (path / ".git").mkdir(parents=True)

    def fetch(self, path, remote_url, refspecs, credential, shallow=False, prune=False, timeout=None):
        self.calls.append(("fetch", remote_url, refspecs, credential, shallow, prune, timeout))
        return {"refs/remotes/origin/master": MASTER}

    def clone(self, path, url, credential, remote_name="origin", reference=None, shallow=False, timeout=None):
        self.calls.append(("clone", url, credential, remote_name, reference, shallow, timeout))
        self.remotes[remote_name] = url

    def checkout(self, path, object_id, branch=None):
        self.calls.append(("checkout", object_id, branch))
        if branch is not None:
            self.branches[branch] = object_id
        self.branch = branch
        self.head = OTHER if self.break_head else object_id

    def resolve_commit(self, path, ref):
        if ref in (MASTER, OTHER):
            return ref
        return self.commits.get(ref)

    def list_remote_refs(self, remote_url, credential, timeout=None):
        self.calls.append(("ls-remote", remote_url, credential, timeout))
        return dict(self.remote_refs)

    def is_commit_present(self, path, object_id):
        return object_id in (MASTER, OTHER)

    def current_branch(self, path):
        return self.branch

    def head_object_id(self, path):
        return self.head

    def get_ref(self, path, name):
        return self.branches.get(name)

    def set_remote_url(self, path, name, url):
        self.remotes[name] = url

    def get_remote_url(self, path, name):
        return self.remotes.get(name)
