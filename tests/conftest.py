import io
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from unittest.mock import patch

import pytest
from dulwich import porcelain
from dulwich.repo import Repo

from gitclient import GitClient
from gitclient.config import ConfigAccessor

AUTHOR = b"Test Author <author@example.com>"


@pytest.fixture
def capture_logs():
    """Fixture to capture log output during tests."""
    log_stream = io.StringIO()
    handler = logging.StreamHandler(log_stream)
    logger = logging.getLogger("gitclient")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)

    yield log_stream

    logger.removeHandler(handler)
    log_stream.close()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path_factory):
    """Never read the user's gitclient.cfg during tests."""
    config = ConfigAccessor(tmp_path_factory.mktemp("config") / "gitclient.cfg")
    with patch("gitclient.config.config", config):
        yield config


# git fixtures


def commit_file(repo_path: Path, name: str, content: str, message: str) -> str:
    """Write a file, stage it and commit it on the current branch."""
    file_path = repo_path / name
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(content)
    porcelain.add(str(repo_path), paths=[str(file_path)])
    sha = porcelain.commit(
        str(repo_path), message=message.encode(), author=AUTHOR, committer=AUTHOR
    )
    return sha.decode("ascii") if isinstance(sha, bytes) else str(sha)


def switch_head(repo_path: Path, branch: str) -> None:
    with Repo(str(repo_path)) as repo:
        repo.refs.set_symbolic_ref(b"HEAD", f"refs/heads/{branch}".encode())


@dataclass
class SourceRepo:
    path: Path
    master: str
    feature: str

    @property
    def url(self) -> str:
        return str(self.path)

    def add_branch(self, name: str, at: str) -> None:
        with Repo(str(self.path)) as repo:
            repo.refs[f"refs/heads/{name}".encode()] = at.encode()

    def delete_branch(self, name: str) -> None:
        with Repo(str(self.path)) as repo:
            del repo.refs[f"refs/heads/{name}".encode()]

    def commit_on_master(self, name: str, content: str) -> str:
        self.master = commit_file(self.path, name, content, f"Add {name}")
        return self.master

    def commit_on_branch(self, branch: str, name: str, content: str) -> str:
        """Commit a file on a new branch started at master, HEAD stays on master."""
        self.add_branch(branch, self.master)
        switch_head(self.path, branch)
        try:
            return commit_file(self.path, name, content, f"Add {name}")
        finally:
            switch_head(self.path, "master")


def make_source_repo(path: Path) -> SourceRepo:
    """
    Create a repository with a README on master and one more commit on feature.

    HEAD is left on master.
    """
    porcelain.init(str(path)).close()
    master = commit_file(path, "README.md", "# test repository\n", "Initial commit")

    # init.defaultBranch may name the first branch differently
    with Repo(str(path)) as repo:
        head = repo.refs.read_ref(b"HEAD")
        if head != b"ref: refs/heads/master":
            repo.refs[b"refs/heads/master"] = master.encode()
            repo.refs.set_symbolic_ref(b"HEAD", b"refs/heads/master")
            if head and head.startswith(b"ref: "):
                del repo.refs[head[len(b"ref: ") :]]
        repo.refs[b"refs/heads/feature"] = master.encode()

    switch_head(path, "feature")
    feature = commit_file(path, "feature.txt", "feature work\n", "Add feature")
    switch_head(path, "master")
    return SourceRepo(path=path, master=master, feature=feature)


@pytest.fixture
def source_repo(tmp_path) -> SourceRepo:
    return make_source_repo(tmp_path / "source")


BACKEND_NAMES = [
    pytest.param(
        "native",
        marks=pytest.mark.skipif(
            shutil.which("git") is None, reason="git executable not available"
        ),
    ),
    "embedded",
]


@pytest.fixture(params=BACKEND_NAMES)
def backend_name(request) -> str:
    return request.param


@pytest.fixture
def workspace(tmp_path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def client(workspace, backend_name) -> GitClient:
    return GitClient(workspace, backend_name)
