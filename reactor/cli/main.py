"""Main CLI entry point for Reactor."""

import click

from reactor import __version__
from reactor.cli.helpers import configure_logging
from reactor.models.settings import Settings

from .commands.down import down
from .commands.up import up
from .commands.workspace import workspace


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.version_option(version=__version__, prog_name='reactor')
@click.pass_context
def cli(ctx, verbose):
    """Reactor - Containerized development environments on the local Docker daemon"""
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    try:
        ctx.obj['settings'] = Settings.from_env()
    except ValueError as e:
        raise click.ClickException(f"invalid environment configuration: {e}") from e


# Register commands
cli.add_command(up)
cli.add_command(down)
cli.add_command(workspace)


if __name__ == '__main__':
    cli()
