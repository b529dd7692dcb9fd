"""Utilities for Reactor."""

from .config_loader import DevcontainerResolver, find_devcontainer_file
from .workspace_parser import find_workspace_file, parse_workspace_file, resolve_service_path

__all__ = [
    'DevcontainerResolver',
    'find_devcontainer_file',
    'find_workspace_file',
    'parse_workspace_file',
    'resolve_service_path',
]
