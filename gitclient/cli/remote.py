"""cli commands querying a remote without touching a working repository"""

from pathlib import Path

import click

from gitclient.cli.options import (
    build_client,
    credential_options,
    handle_errors,
    normalize_url,
)

from .debug import add_debug_option


@add_debug_option
@click.command(name="head-rev")
@click.argument("url", callback=normalize_url)
@click.argument("branch", default="master")
@credential_options
@handle_errors
def head_rev(url, branch, backend, key, username, passphrase):
    """Print the commit BRANCH points to on the remote at URL."""
    client = build_client(Path.cwd(), backend, key, username, passphrase)
    click.echo(client.get_head_rev(url, branch))


@add_debug_option
@click.command(name="ls-remote")
@click.argument("url", callback=normalize_url)
@credential_options
@handle_errors
def ls_remote(url, backend, key, username, passphrase):
    """List the refs of the remote at URL."""
    client = build_client(Path.cwd(), backend, key, username, passphrase)
    refs = client.get_remote_references(url)
    for name in sorted(refs):
        click.echo(f"{refs[name]}\t{name}")
