"""gitclient CLI"""

import click

from gitclient import __version__
from gitclient.cli.remote import head_rev, ls_remote
from gitclient.cli.repo import checkout, clone, fetch

from .debug import add_debug_option


@click.group()
@click.version_option(__version__, prog_name="gitclient")
@click.pass_context
def cli(ctx):
    """
    Credential-aware git client over native and embedded backends.
    """
    ctx.ensure_object(dict)


cli.add_command(head_rev)
cli.add_command(ls_remote)
cli.add_command(clone)
cli.add_command(fetch)
cli.add_command(checkout)

add_debug_option(cli)

if __name__ == "__main__":
    cli(obj={})
