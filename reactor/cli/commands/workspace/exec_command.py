"""Workspace exec command."""

import sys

import click

from reactor.cli.helpers import create_services, fail, get_settings, load_workspace

from ....core.workspace_orchestrator import WorkspaceOrchestrator
from ....services.exceptions import ServiceError


@click.command(name='exec', context_settings={'ignore_unknown_options': True})
@click.argument('service')
@click.argument('command', nargs=-1, required=True, type=click.UNPROCESSED)
@click.pass_context
def exec_command(ctx, service, command):
    """Run a command in a running service container

    Use '--' to separate the service name from the command, e.g.
    reactor workspace exec api -- npm test
    """
    settings = get_settings(ctx)
    try:
        ws = load_workspace(ctx.obj.get('workspace_file'))
        docker_service, resolver = create_services(settings)
        orchestrator = WorkspaceOrchestrator(docker_service, resolver, settings)
        result = orchestrator.exec(ws, service, list(command))
    except ServiceError as e:
        fail(str(e))
        return

    if result.output:
        click.echo(result.output, nl=not result.output.endswith('\n'))
    sys.exit(result.exit_code)
