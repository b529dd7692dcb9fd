"""Workspace up command."""

import sys

import click

from reactor.cli.helpers import (
    create_services,
    fail,
    get_settings,
    is_verbose,
    load_workspace,
    parse_service_port_options,
    parse_tag_options,
    print_report_table,
    print_summary,
)

from ....core.workspace_orchestrator import WorkspaceOrchestrator
from ....models.workspace import WorkspaceUpOptions
from ....services.exceptions import ServiceError


@click.command()
@click.argument('services', nargs=-1)
@click.option('--port', '-p', 'ports', multiple=True,
              help='Port forwarding for one service (service:host:container)')
@click.option('--tag', 'tags', multiple=True, help='Extra container label (key=value)')
@click.option('--rebuild', is_flag=True, help='Force rebuild of container images')
@click.option('--discovery', is_flag=True, help='Discovery mode: no workspace or credential mounts')
@click.option('--docker-host', is_flag=True, help='Mount the host Docker socket (dangerous)')
@click.pass_context
def up(ctx, services, ports, tags, rebuild, discovery, docker_host):
    """Start all or specific workspace services in parallel"""
    settings = get_settings(ctx)
    try:
        ws = load_workspace(ctx.obj.get('workspace_file'))
        options = WorkspaceUpOptions(
            force_rebuild=rebuild,
            discovery=discovery,
            docker_host_integration=docker_host,
            verbose=is_verbose(ctx),
            port_overrides=parse_service_port_options(ports),
            tags=parse_tag_options(tags),
        )
        docker_service, resolver = create_services(settings)
        orchestrator = WorkspaceOrchestrator(docker_service, resolver, settings)
        report = orchestrator.up(ws, list(services) or None, options)
    except ServiceError as e:
        fail(str(e))
        return

    print_report_table(report)
    print_summary(report)
    if not report.ok:
        sys.exit(1)
