import click

from .utils.logging import configure_logging

DEBUG_KEY = "DEBUG"


def _toggle_debug(ctx: click.Context, param: click.Parameter, value: bool) -> bool:
    root = ctx.find_root()
    root.ensure_object(dict)
    enabled = root.obj.get(DEBUG_KEY, False)

    # Commands can only switch debug on, the group decides the default
    if value or ctx.parent is None:
        enabled = value

    root.obj[DEBUG_KEY] = enabled
    configure_logging(enabled)
    return enabled


def add_debug_option(cmd: click.Command) -> click.Command:
    """Attach --debug/--no-debug to a command or group, once."""
    if any(param.name == "debug" for param in cmd.params):
        return cmd
    cmd.params.insert(
        0,
        click.Option(
            ["--debug/--no-debug"],
            is_eager=True,
            expose_value=False,
            callback=_toggle_debug,
            help="Log option decisions and backend calls",
        ),
    )
    return cmd
