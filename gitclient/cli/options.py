"""Options shared by every command: backend selection and SSH credentials."""

import getpass
import sys
from functools import wraps
from pathlib import Path
from typing import Optional

import click

from gitclient.backends import ALIASES, BACKENDS
from gitclient.client import GitClient, create_client
from gitclient.credentials import Credential
from gitclient.exceptions import GitClientError
from gitclient.urls import is_local_path, resolve_local_path
from gitclient.cli.utils.logging import logger


def backend_option(cmd):
    """Add --backend, restricted to the known backends and their aliases."""
    return click.option(
        "--backend",
        "-b",
        type=click.Choice(sorted(list(BACKENDS) + list(ALIASES)), case_sensitive=False),
        default=None,
        help="Git backend (defaults to the configured one).",
    )(cmd)


def credential_options(cmd):
    """Add --backend, --key, --username and --passphrase to a command."""
    cmd = click.option(
        "--passphrase",
        envvar="GITCLIENT_KEY_PASSPHRASE",
        default=None,
        help="Passphrase of the private key (or GITCLIENT_KEY_PASSPHRASE).",
    )(cmd)
    cmd = click.option(
        "--username",
        "-u",
        default=None,
        help="User to authenticate as (defaults to the current user).",
    )(cmd)
    cmd = click.option(
        "--key",
        "-k",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        default=None,
        help="SSH private key used for every remote.",
    )(cmd)
    return backend_option(cmd)


def normalize_url(ctx, param, value: str) -> str:
    """Make local repository paths absolute, network URLs pass through."""
    if is_local_path(value):
        return str(resolve_local_path(value))
    return value


def build_client(
    workspace: Path,
    backend: Optional[str],
    key: Optional[Path],
    username: Optional[str],
    passphrase: Optional[str],
) -> GitClient:
    client = create_client(workspace, backend)
    if key is not None:
        if username is None:
            username = getpass.getuser()
        client.add_default_credentials(
            Credential.from_private_key_file(key, username, passphrase=passphrase)
        )
    return client


def handle_errors(fn):
    """Report client errors as a one-line message and exit with status 1."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except (GitClientError, ValueError) as e:
            logger.error(click.style("Error:", fg="red", bold=True) + f" {e}")
            sys.exit(1)

    return wrapper
