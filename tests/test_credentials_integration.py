"""
Fetch and clone real remotes with real SSH keys.

Keys and repositories come from the invoking user's ~/.ssh:

- ~/.ssh/id_rsa is used against the public git-client-plugin repository
- ~/.ssh/auth-data/repos.csv lists further "url,username,keyfile" rows, the
  key files being relative to ~/.ssh/auth-data

Nothing runs when neither is present.
"""

import csv
import getpass
import logging
from pathlib import Path

import pytest

from gitclient import Credential, GitClient
from gitclient.urls import is_remote_url

logger = logging.getLogger(__name__)

SSH_DIR = Path.home() / ".ssh"
AUTH_DATA_DIR = SSH_DIR / "auth-data"
DEFAULT_KEY = SSH_DIR / "id_rsa"
DEFAULT_URL = "https://github.com/jenkinsci/git-client-plugin.git"

ALL_BRANCHES = ["+refs/heads/*:refs/remotes/origin/*"]


def auth_repositories():
    repositories = []
    if DEFAULT_KEY.exists():
        repositories.append((DEFAULT_URL, getpass.getuser(), DEFAULT_KEY))

    definitions = AUTH_DATA_DIR / "repos.csv"
    if definitions.exists():
        with open(definitions, newline="") as f:
            for row in csv.reader(f):
                if len(row) < 3 or row[0].startswith("#"):
                    continue
                url, username, key_name = (value.strip() for value in row[:3])
                key_file = AUTH_DATA_DIR / key_name
                if not key_file.exists():
                    logger.warning(f"Skipping {url}, key file {key_file} not found")
                    continue
                repositories.append((url, username, key_file))
    return repositories


def credential_params():
    repositories = auth_repositories()
    if not repositories:
        return [
            pytest.param(
                None, None, None, marks=pytest.mark.skip(reason="no private keys in ~/.ssh")
            )
        ]
    return [
        pytest.param(url, username, key_file, id=f"{username}@{url}")
        for url, username, key_file in repositories
    ]


def new_credential(key_file: Path, username: str) -> Credential:
    return Credential.from_private_key_file(key_file, username)


@pytest.mark.integration
@pytest.mark.parametrize("url,username,key_file", credential_params())
class TestCredentials:
    def test_fetch_with_credentials(self, client, workspace, backend_name, url, username, key_file):
        readme = workspace / "README.md"
        client.init_().workspace(workspace).execute()
        client.add_default_credentials(new_credential(key_file, username))
        assert not readme.exists()

        cmd = client.fetch_().from_(url, ALL_BRANCHES)
        if is_remote_url(url) and backend_name == "native":
            cmd.shallow().prune().timeout(60)
        cmd.execute()

        client.set_remote_url("origin", url)
        master = client.get_head_rev(url, "master")
        client.checkout().branch("master").ref(master).delete_branch_if_exists(True).execute()

        repository = client.get_repository()
        assert client.is_commit_in_repo(master)
        assert repository.get_ref("master") == master
        assert repository.get_branch() == "master"
        assert readme.exists()

    def test_clone_with_credentials(self, client, workspace, backend_name, url, username, key_file):
        readme = workspace / "README.md"
        client.add_credentials(url, new_credential(key_file, username))

        cmd = client.clone_().url(url).repository_name("origin")
        reference = Path.cwd()
        if backend_name == "native" and is_remote_url(url) and (reference / ".git").exists():
            cmd.reference(reference)
        cmd.execute()

        client.checkout().branch("master").ref("origin/master").delete_branch_if_exists(True).execute()
        client.clear_credentials()
        assert readme.exists()
        assert client.get_repository().get_branch() == "master"
