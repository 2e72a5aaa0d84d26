"""cli commands creating or updating a working repository"""

from pathlib import Path

import click

from gitclient.cli.options import (
    backend_option,
    build_client,
    credential_options,
    handle_errors,
    normalize_url,
)
from gitclient.cli.utils.logging import logger

from .debug import add_debug_option


@add_debug_option
@click.command(name="clone")
@click.argument("url", callback=normalize_url)
@click.argument(
    "directory", type=click.Path(file_okay=False, path_type=Path)
)
@click.option("--origin", "-o", default=None, help="Name of the remote (default: origin).")
@click.option(
    "--reference",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Borrow objects from a local repository (native backend only).",
)
@click.option("--shallow/--no-shallow", default=None, help="Fetch only the latest commit.")
@click.option("--timeout", type=click.IntRange(min=0), default=None, help="Timeout in seconds.")
@credential_options
@handle_errors
def clone(url, directory, origin, reference, shallow, timeout, backend, key, username, passphrase):
    """Clone URL into DIRECTORY and check out its default branch."""
    client = build_client(directory, backend, key, username, passphrase)
    cmd = client.clone_().url(url)
    if origin is not None:
        cmd.repository_name(origin)
    if reference is not None:
        cmd.reference(reference)
    if shallow is not None:
        cmd.shallow(shallow)
    if timeout is not None:
        cmd.timeout(timeout)
    cmd.execute()

    repository = client.get_repository()
    logger.info(f"HEAD is now at {repository.head()} on {repository.get_branch()}")


@add_debug_option
@click.command(name="fetch")
@click.argument(
    "directory", type=click.Path(file_okay=False, path_type=Path)
)
@click.argument("url", callback=normalize_url)
@click.argument("refspecs", nargs=-1)
@click.option("--init/--no-init", default=True, help="Create the repository if missing.")
@click.option("--prune/--no-prune", default=False, help="Remove stale remote-tracking refs.")
@click.option("--shallow/--no-shallow", default=None, help="Fetch only the latest commit.")
@click.option("--timeout", type=click.IntRange(min=0), default=None, help="Timeout in seconds.")
@credential_options
@handle_errors
def fetch(directory, url, refspecs, init, prune, shallow, timeout, backend, key, username, passphrase):
    """Fetch REFSPECS (default: all branches) from URL into DIRECTORY."""
    client = build_client(directory, backend, key, username, passphrase)
    if init:
        client.init_().execute()
    cmd = client.fetch_().from_(url, refspecs).prune(prune)
    if shallow is not None:
        cmd.shallow(shallow)
    if timeout is not None:
        cmd.timeout(timeout)
    updates = cmd.execute()
    for name in sorted(updates):
        click.echo(f"{updates[name]}\t{name}")


@add_debug_option
@click.command(name="checkout")
@click.argument(
    "directory", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.argument("ref")
@click.option("--branch", "-B", default=None, help="Branch to create at REF.")
@click.option(
    "--force/--no-force",
    default=False,
    help="Move the branch if it already exists elsewhere.",
)
@backend_option
@handle_errors
def checkout(directory, ref, branch, force, backend):
    """Check out REF in DIRECTORY, optionally on a new branch."""
    client = build_client(directory, backend, None, None, None)
    cmd = client.checkout().ref(ref).delete_branch_if_exists(force)
    if branch is not None:
        cmd.branch(branch)
    object_id = cmd.execute()
    click.echo(object_id)
