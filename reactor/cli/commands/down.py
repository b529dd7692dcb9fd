"""Down command for Reactor."""

import click

from reactor.cli.helpers import create_services, fail, get_settings
from ...core.container_runner import ContainerRunner
from ...services.exceptions import ServiceError


@click.command()
@click.option('--dir', 'project_dir', type=click.Path(exists=True, file_okay=False),
              default='.', help='Project directory containing devcontainer.json')
@click.option('--account', '-a', help='Account overriding the one in devcontainer.json')
@click.option('--discovery', is_flag=True, help='Remove the discovery-mode container instead')
def down(project_dir, account, discovery):
    """Stop and remove the project's container"""
    settings = get_settings()
    try:
        docker_service, resolver = create_services(settings)
        runner = ContainerRunner(docker_service, resolver, settings)
        removed = runner.down(project_dir, account_override=account, discovery=discovery)
    except ServiceError as e:
        fail(str(e))
        return

    if removed:
        click.echo("Container removed successfully.")
    else:
        click.echo("No container found for project.")
