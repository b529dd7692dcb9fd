"""Validate workspace command."""

import sys

import click

from reactor.cli.helpers import fail, get_settings, load_workspace, print_report_table, print_summary

from ....core.workspace_orchestrator import WorkspaceOrchestrator
from ....services.exceptions import ServiceError
from ....utils.config_loader import DevcontainerResolver


@click.command()
@click.pass_context
def validate(ctx):
    """Validate the workspace file and every service's devcontainer.json"""
    settings = get_settings(ctx)
    try:
        ws = load_workspace(ctx.obj.get('workspace_file'))
        # Validation never contacts the daemon
        orchestrator = WorkspaceOrchestrator(None, DevcontainerResolver(settings), settings)
        report = orchestrator.validate(ws)
    except ServiceError as e:
        fail(str(e))
        return

    click.echo(f"Workspace: {ws.file_path}")
    click.echo(f"Services: {len(ws.services)}\n")
    print_report_table(report)
    print_summary(report)
    if not report.ok:
        sys.exit(1)
