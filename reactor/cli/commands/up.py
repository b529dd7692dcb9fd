"""Up command for Reactor."""

import os

import click
from rich.console import Console

from reactor.cli.helpers import (
    create_services,
    fail,
    format_ports,
    get_settings,
    is_verbose,
    parse_port_options,
)
from ...core.container_runner import ContainerRunner
from ...models.workspace import ServiceUpRequest
from ...services.exceptions import LifecycleHookError, ServiceError


@click.command()
@click.option('--dir', 'project_dir', type=click.Path(exists=True, file_okay=False),
              default='.', help='Project directory containing devcontainer.json')
@click.option('--account', '-a', help='Account overriding the one in devcontainer.json')
@click.option('--port', '-p', 'ports', multiple=True, help='Port forwarding (host:container)')
@click.option('--rebuild', is_flag=True, help='Force rebuild of the container image')
@click.option('--discovery', is_flag=True, help='Discovery mode: no workspace or credential mounts')
@click.option('--docker-host', is_flag=True, help='Mount the host Docker socket (dangerous)')
def up(project_dir, account, ports, rebuild, discovery, docker_host):
    """Create or resume the project's container"""
    settings = get_settings()
    try:
        request = ServiceUpRequest(
            project_dir=os.path.abspath(project_dir),
            account_override=account,
            force_rebuild=rebuild,
            discovery=discovery,
            docker_host_integration=docker_host,
            port_overrides=parse_port_options(ports),
            verbose=is_verbose(),
        )
        docker_service, resolver = create_services(settings)
        runner = ContainerRunner(docker_service, resolver, settings)
        result = runner.up(request)
    except LifecycleHookError as e:
        if e.output:
            click.echo(e.output.rstrip(), err=True)
        fail(str(e))
        return
    except ServiceError as e:
        fail(str(e))
        return

    console = Console()
    if docker_host:
        console.print("[yellow]WARNING: Docker host integration enabled (full access to the host daemon)[/yellow]")

    click.echo(f"Container provisioned: {result.container_name} ({result.action.value})")
    if request.verbose:
        click.echo(f"  Account: {result.resolved.account}")
        click.echo(f"  Image: {result.resolved.image}")
        click.echo(f"  Project: {result.resolved.project_root}")
        click.echo(f"  Config Dir: {result.resolved.project_config_dir}")
        click.echo(f"  Container ID: {result.container_id}")
    if result.ports:
        click.echo(f"Port forwarding: {format_ports(result.ports)}")
    click.echo(f"Attach with: docker exec -it {result.container_name} /bin/sh")
