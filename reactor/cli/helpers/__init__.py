"""CLI Helper Functions for Reactor.

Shared plumbing for the commands: logging setup, building the docker
service and config resolver from settings, locating the workspace file,
parsing port flags and rendering reports as tables.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import click
from rich.console import Console
from tabulate import tabulate

from reactor.core.ports import parse_port_mapping
from reactor.models.config import PortMapping
from reactor.models.container import ContainerStatus
from reactor.models.settings import Settings
from reactor.models.workspace import ServiceStatus, Workspace, WorkspaceReport
from reactor.services.docker_service import DockerService
from reactor.services.exceptions import ConfigurationError, WorkspaceError
from reactor.utils.config_loader import DevcontainerResolver
from reactor.utils.workspace_parser import find_workspace_file, parse_workspace_file

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

STATUS_COLORS = {
    ContainerStatus.RUNNING: 'green',
    ContainerStatus.STOPPED: 'yellow',
    ContainerStatus.NOT_FOUND: 'white',
}


def configure_logging(verbose: bool = False) -> None:
    """Configure the root logger once for the whole process."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        force=True,
    )


def get_settings(ctx: Optional[click.Context] = None) -> Settings:
    """Settings stored on the click context by the root group."""
    ctx = ctx or click.get_current_context()
    obj = ctx.find_object(dict) or {}
    settings = obj.get('settings')
    if settings is None:
        settings = Settings.from_env()
    return settings


def is_verbose(ctx: Optional[click.Context] = None) -> bool:
    ctx = ctx or click.get_current_context()
    obj = ctx.find_object(dict) or {}
    return bool(obj.get('verbose'))


def create_services(settings: Settings) -> Tuple[DockerService, DevcontainerResolver]:
    """Connect to the daemon and build the devcontainer resolver."""
    return DockerService(timeout=settings.daemon_timeout), DevcontainerResolver(settings)


def fail(message: str, exit_code: int = 1) -> None:
    """Print an error to stderr and exit."""
    click.echo(f"Error: {message}", err=True)
    sys.exit(exit_code)


def load_workspace(file_option: Optional[str]) -> Workspace:
    """Locate and parse the workspace descriptor.

    Args:
        file_option: Value of ``--file``; a descriptor path, a directory
            holding one, or None for the current directory

    Raises:
        WorkspaceError: If no descriptor is found or it is invalid
    """
    if file_option:
        path = Path(file_option)
        if path.is_dir():
            found = find_workspace_file(path)
            if found is None:
                raise WorkspaceError(
                    f"no reactor-workspace.yml or reactor-workspace.yaml found in directory: {file_option}"
                )
            path = found
        elif not path.exists():
            raise WorkspaceError(f"workspace file not found: {file_option}")
    else:
        path = find_workspace_file()
        if path is None:
            raise WorkspaceError(
                "no reactor-workspace.yml or reactor-workspace.yaml found in current directory"
            )

    return parse_workspace_file(path)


def parse_port_options(values: Sequence[str]) -> List[PortMapping]:
    """Parse repeated ``-p HOST:CONTAINER`` flags."""
    return [parse_port_mapping(value) for value in values]


def parse_service_port_options(values: Sequence[str]) -> Dict[str, List[PortMapping]]:
    """Parse repeated ``-p SERVICE:HOST:CONTAINER`` flags into per-service lists."""
    overrides: Dict[str, List[PortMapping]] = {}
    for value in values:
        service, sep, mapping = value.partition(':')
        if not sep or not service:
            raise ConfigurationError(
                f"invalid port mapping '{value}': expected format service:host_port:container_port"
            )
        overrides.setdefault(service, []).append(parse_port_mapping(mapping))
    return overrides


def parse_tag_options(values: Sequence[str]) -> Dict[str, str]:
    """Parse repeated ``--tag KEY=VALUE`` flags."""
    tags = {}
    for value in values:
        key, sep, tag_value = value.partition('=')
        if not sep or not key:
            raise ConfigurationError(f"invalid tag '{value}': expected format key=value")
        tags[key] = tag_value
    return tags


def format_ports(ports: Sequence[PortMapping]) -> str:
    return ", ".join(str(port) for port in ports)


def print_table(headers: List[str], rows: List[List[Any]],
                tablefmt: str = "simple") -> None:
    """Print a table with project-wide defaults.

    Args:
        headers: Table headers
        rows: Table rows
        tablefmt: Table format (default: "simple")
    """
    table_str = tabulate(rows, headers=headers, tablefmt=tablefmt)
    click.echo(table_str)


REPORT_HEADERS = ["SERVICE", "RESULT", "CONTAINER", "ID", "ACTION", "DETAIL"]
STATUS_HEADERS = ["SERVICE", "PATH", "ACCOUNT", "STATUS", "CONTAINER"]


def report_rows(report: WorkspaceReport) -> List[List[Any]]:
    """One table row per service of a workspace report."""
    rows = []
    for result in report.results:
        if result.success:
            detail = format_ports(result.ports)
            outcome = click.style("ok", fg='green')
        else:
            detail = result.error or ""
            outcome = click.style("failed", fg='red')
        rows.append([
            result.service,
            outcome,
            result.container_name or "",
            result.short_id,
            result.action or "",
            detail,
        ])
    return rows


def status_rows(statuses: List[ServiceStatus]) -> List[List[Any]]:
    """Status table rows, truncating long paths and accounts."""
    rows = []
    for status in statuses:
        path = status.path if len(status.path) <= 30 else status.path[:27] + "..."
        account = status.account if len(status.account) <= 15 else status.account[:12] + "..."
        rows.append([
            status.service,
            path,
            account,
            click.style(status.status.value.replace('_', ' '), fg=STATUS_COLORS[status.status]),
            status.container_name or "",
        ])
    return rows


def print_report_table(report: WorkspaceReport) -> None:
    print_table(REPORT_HEADERS, report_rows(report))


def print_status_table(statuses: List[ServiceStatus]) -> None:
    print_table(STATUS_HEADERS, status_rows(statuses))


def summarize_report(report: WorkspaceReport) -> str:
    total = len(report.results)
    if report.ok:
        return f"All {total} service(s) completed '{report.operation}' successfully"
    return f"{len(report.failed)} of {total} service(s) failed '{report.operation}'"


def print_summary(report: WorkspaceReport) -> None:
    """Print the one-line outcome of a workspace operation, colored by result."""
    console = Console()
    color = "green" if report.ok else "red"
    console.print(f"\n[{color}]{summarize_report(report)}[/{color}]")
