"""List workspace services command."""

import click

from reactor.cli.helpers import create_services, fail, get_settings, load_workspace, print_status_table

from ....core.naming import workspace_hash
from ....core.workspace_orchestrator import WorkspaceOrchestrator
from ....services.exceptions import ServiceError


@click.command()
@click.pass_context
def list(ctx):
    """List workspace services and their container status"""
    settings = get_settings(ctx)
    try:
        ws = load_workspace(ctx.obj.get('workspace_file'))
        docker_service, resolver = create_services(settings)
        statuses = WorkspaceOrchestrator(docker_service, resolver, settings).status(ws)
    except ServiceError as e:
        fail(str(e))
        return

    click.echo(f"Workspace: {ws.file_path}")
    click.echo(f"Services: {len(ws.services)}\n")
    print_status_table(statuses)
    click.echo(f"\nWorkspace Hash: {workspace_hash(ws.file_path)[:16]}...")
