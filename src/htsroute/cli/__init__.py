"""Command-line interface of htsroute.

Subcommands live in their own modules and register themselves on the
`cli` group when imported at the end of this module.
"""

import click

from .. import __version__


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, message="%(version)s")
def cli() -> None:
    """Resolve data-sharing releases into htsget routing rules."""


@cli.command(hidden=True)
@click.pass_context
def help(ctx: click.Context) -> None:
    """List the commands and how to get help on each of them."""
    group = ctx.find_root().command
    assert isinstance(group, click.Group)
    names = sorted(name for name, command in group.commands.items() if not command.hidden)
    click.echo(f"Commands: {', '.join(names)}")
    click.echo('Run "htsroute COMMAND --help" for the options of COMMAND.')


@cli.command("version")
def version_cmd() -> None:
    """Print the version number."""
    click.echo(__version__)


from . import resolve as _resolve  # noqa: E402, F401
from . import route as _route  # noqa: E402, F401
