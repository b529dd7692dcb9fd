"""Workspace descriptor (reactor-workspace.yml) discovery and parsing."""

import os
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import ValidationError

from ..core.constants import SUPPORTED_WORKSPACE_VERSION, WORKSPACE_FILE_NAMES
from ..models.workspace import Workspace
from ..services.exceptions import WorkspaceError


def find_workspace_file(directory: Optional[Union[str, Path]] = None) -> Optional[Path]:
    """Find the workspace descriptor in a directory.

    ``reactor-workspace.yml`` is preferred over ``reactor-workspace.yaml``.

    Returns:
        Absolute path of the descriptor, or None if neither exists
    """
    base = Path(directory or os.getcwd()).resolve()
    for name in WORKSPACE_FILE_NAMES:
        candidate = base / name
        if candidate.is_file():
            return candidate
    return None


def _is_within(directory: Path, path: Path) -> bool:
    try:
        path.relative_to(directory)
    except ValueError:
        return False
    return True


def resolve_service_path(workspace: Workspace, service_name: str) -> Path:
    """Resolve a service's path against the workspace directory.

    Raises:
        WorkspaceError: If the service is unknown or its path is not below
            the workspace directory
    """
    service = workspace.services.get(service_name)
    if service is None:
        raise WorkspaceError(f"service '{service_name}' not found in workspace")
    if not service.path:
        raise WorkspaceError(f"service '{service_name}' must define a path")

    workspace_dir = Path(os.path.abspath(workspace.directory))
    raw = Path(service.path)
    if not raw.is_absolute():
        raw = workspace_dir / raw
    resolved = Path(os.path.normpath(os.path.abspath(raw)))

    if not _is_within(workspace_dir, resolved):
        raise WorkspaceError(
            f"service '{service_name}' path '{service.path}' must be within the workspace directory"
        )
    if resolved == workspace_dir:
        raise WorkspaceError(
            f"service '{service_name}' path '{service.path}' must be a subdirectory of the workspace directory"
        )
    return resolved


def parse_workspace_file(file_path: Union[str, Path]) -> Workspace:
    """Read and validate a workspace descriptor.

    Raises:
        WorkspaceError: If the file is unreadable, malformed, has an
            unsupported version, defines no services or references a
            service path that is missing or outside the workspace directory
    """
    file_path = Path(os.path.abspath(file_path))
    try:
        raw = yaml.safe_load(file_path.read_text(encoding='utf-8'))
    except OSError as e:
        raise WorkspaceError(f"failed to read workspace file {file_path}: {e}") from e
    except yaml.YAMLError as e:
        raise WorkspaceError(f"failed to parse workspace YAML in {file_path}: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise WorkspaceError(f"workspace file {file_path} must contain a mapping")

    version = raw.get('version')
    version = "" if version is None else str(version)
    if version != SUPPORTED_WORKSPACE_VERSION:
        raise WorkspaceError(
            f"unsupported workspace version '{version}', expected '{SUPPORTED_WORKSPACE_VERSION}'"
        )

    services = raw.get('services') or {}
    if not isinstance(services, dict) or not services:
        raise WorkspaceError("workspace must define at least one service")

    try:
        workspace = Workspace(
            version=version,
            services={str(name): (spec or {}) for name, spec in services.items()},
            file_path=str(file_path),
        )
    except ValidationError as e:
        raise WorkspaceError(f"invalid workspace file {file_path}: {e}") from e

    for name in workspace.services:
        service_path = resolve_service_path(workspace, name)
        path_label = workspace.services[name].path
        if not service_path.exists():
            raise WorkspaceError(f"service '{name}' path '{path_label}' does not exist")
        if not service_path.is_dir():
            raise WorkspaceError(f"service '{name}' path '{path_label}' is not a directory")

    return workspace
