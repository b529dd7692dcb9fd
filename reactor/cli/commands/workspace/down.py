"""Workspace down command."""

import sys

import click

from reactor.cli.helpers import (
    create_services,
    fail,
    get_settings,
    load_workspace,
    print_report_table,
    print_summary,
)

from ....core.workspace_orchestrator import WorkspaceOrchestrator
from ....services.exceptions import ServiceError


@click.command()
@click.argument('services', nargs=-1)
@click.pass_context
def down(ctx, services):
    """Stop and remove all or specific workspace services"""
    settings = get_settings(ctx)
    try:
        ws = load_workspace(ctx.obj.get('workspace_file'))
        docker_service, resolver = create_services(settings)
        orchestrator = WorkspaceOrchestrator(docker_service, resolver, settings)
        report = orchestrator.down(ws, list(services) or None)
    except ServiceError as e:
        fail(str(e))
        return

    print_report_table(report)
    print_summary(report)
    if not report.ok:
        sys.exit(1)
