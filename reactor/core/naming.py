"""Deterministic container names and project identity hashes.

Recovery looks containers up by name, so every function here must return
the same output for the same input. Nothing in this module reads process
state; the isolation prefix is passed in by the caller.
"""

import hashlib
import os
import re
from typing import Optional

from ..models.container import NameKind
from .constants import (
    DISCOVERY_INFIX,
    FALLBACK_ACCOUNT_NAME,
    FALLBACK_FOLDER_NAME,
    MAX_COMPONENT_LENGTH,
    MAX_CONTAINER_NAME_LENGTH,
    MAX_FOLDER_NAME_LENGTH,
    NAME_PREFIX,
    PROJECT_HASH_LENGTH,
    WORKSPACE_NAME_PREFIX,
)

# Docker container names must match [a-zA-Z0-9][a-zA-Z0-9_.-]*
CONTAINER_NAME_PATTERN = re.compile(r'^[a-zA-Z0-9][a-zA-Z0-9_.-]*$')
_INVALID_CHARS = re.compile(r'[^a-zA-Z0-9_.-]')
_ALNUM_START = re.compile(r'^[a-zA-Z0-9]')


def _sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode('utf-8')).hexdigest()


def project_hash(project_path: str) -> str:
    """Return the 8-character identity hash of a project directory."""
    return _sha256_hex(os.path.abspath(project_path))[:PROJECT_HASH_LENGTH]


def workspace_hash(descriptor_path: str) -> str:
    """Return the workspace instance identity for a descriptor file.

    Full SHA-256 of the descriptor's canonical absolute path, used as a
    label value rather than as part of a name.
    """
    return _sha256_hex(os.path.realpath(os.path.abspath(descriptor_path)))


def sanitize_folder_name(name: str) -> str:
    """Make a folder name safe for use inside a container name."""
    sanitized = _INVALID_CHARS.sub('-', name)

    if sanitized and not _ALNUM_START.match(sanitized):
        sanitized = f"project-{sanitized}"

    if len(sanitized) > MAX_FOLDER_NAME_LENGTH:
        sanitized = sanitized[:MAX_FOLDER_NAME_LENGTH].rstrip('-')

    return sanitized or FALLBACK_FOLDER_NAME


def _sanitize_component(value: Optional[str], fallback: str) -> str:
    cleaned = _INVALID_CHARS.sub('-', value or '')[:MAX_COMPONENT_LENGTH].strip('-')
    return cleaned or fallback


def _with_isolation_prefix(base_name: str, isolation_prefix: Optional[str]) -> str:
    if not isolation_prefix:
        return base_name
    prefix = _INVALID_CHARS.sub('-', isolation_prefix)[:MAX_COMPONENT_LENGTH].strip('-._')
    if not prefix:
        return base_name
    return f"{prefix}-{base_name}"


def workspace_name_prefix(service: str) -> str:
    """Name prefix shared by every container of a workspace service."""
    return f"{WORKSPACE_NAME_PREFIX}-{_sanitize_component(service, 'service')}-"


def _workspace_prefix(service: Optional[str], name_prefix: Optional[str]) -> str:
    if name_prefix:
        prefix = _INVALID_CHARS.sub('-', name_prefix)[:MAX_CONTAINER_NAME_LENGTH // 2]
        if _ALNUM_START.match(prefix):
            return prefix if prefix.endswith('-') else f"{prefix}-"
    if not service:
        raise ValueError("workspace container names require a service name or name prefix")
    return workspace_name_prefix(service)


def container_name(
    kind: NameKind,
    account: str,
    project_path: str,
    project_hash: str,
    service: Optional[str] = None,
    isolation_prefix: Optional[str] = None,
    name_prefix: Optional[str] = None,
) -> str:
    """Build the deterministic container name for a project.

    Args:
        kind: Naming scheme (standard, discovery, workspace-service or
            workspace-discovery)
        account: Account the container runs under
        project_path: Project directory; only its final segment is used
        project_hash: Identity hash from :func:`project_hash`
        service: Workspace service name, used when no name prefix is given
        isolation_prefix: Optional prefix separating test containers from real ones
        name_prefix: Workspace name prefix such as ``reactor-ws-api-``

    Returns:
        A daemon-legal container name
    """
    kind = NameKind(kind)
    hash_part = _sanitize_component(project_hash, 'nohash')

    if kind == NameKind.WORKSPACE_SERVICE:
        base_name = f"{_workspace_prefix(service, name_prefix)}{hash_part}"
    elif kind == NameKind.WORKSPACE_DISCOVERY:
        base_name = f"{_workspace_prefix(service, name_prefix)}{DISCOVERY_INFIX}-{hash_part}"
    else:
        folder = sanitize_folder_name(os.path.basename(os.path.normpath(project_path)) if project_path else '')
        account_part = _sanitize_component(account, FALLBACK_ACCOUNT_NAME)
        if kind == NameKind.DISCOVERY:
            base_name = f"{NAME_PREFIX}-{DISCOVERY_INFIX}-{account_part}-{folder}-{hash_part}"
        else:
            base_name = f"{NAME_PREFIX}-{account_part}-{folder}-{hash_part}"

    return _with_isolation_prefix(base_name, isolation_prefix)[:MAX_CONTAINER_NAME_LENGTH]
