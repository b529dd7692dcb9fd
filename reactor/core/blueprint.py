"""Translate a resolved project configuration into a container blueprint."""

import os
from typing import List, Optional, Sequence

from ..models.config import PortMapping, ProviderInfo, ResolvedConfig
from ..models.container import BlueprintMode, ContainerBlueprint, Mount
from .constants import (
    BUILTIN_PROVIDERS,
    DEFAULT_IMAGE,
    DEFAULT_NETWORK_MODE,
    DEFAULT_SHELL,
    DEFAULT_USER,
    DEFAULT_WORKDIR,
    DOCKER_HOST_INTEGRATION_ENV,
    DOCKER_SOCKET_PATH,
)
from .naming import container_name


def build_command(default_command: str) -> List[str]:
    """Wrap the default command in a single shell invocation."""
    if default_command and default_command.strip():
        return [DEFAULT_SHELL, "-c", default_command]
    return [DEFAULT_SHELL]


def build_mounts(
    resolved: ResolvedConfig,
    mode: BlueprintMode,
    providers: Sequence[ProviderInfo] = BUILTIN_PROVIDERS,
) -> List[Mount]:
    """Build the ordered mount list.

    Order is workspace root, then each provider mount point in declared
    order, then the daemon socket. Discovery mode keeps only the socket.
    """
    mounts: List[Mount] = []

    if not mode.discovery:
        mounts.append(Mount(source=resolved.project_root, target=DEFAULT_WORKDIR))
        for provider in providers:
            for mount_point in provider.mounts:
                mounts.append(Mount(
                    source=os.path.join(resolved.project_config_dir, mount_point.source),
                    target=mount_point.target,
                ))

    if mode.docker_host_integration:
        mounts.append(Mount(source=DOCKER_SOCKET_PATH, target=DOCKER_SOCKET_PATH))

    return mounts


def build_blueprint(
    resolved: ResolvedConfig,
    mode: BlueprintMode,
    ports: Optional[List[PortMapping]] = None,
    providers: Sequence[ProviderInfo] = BUILTIN_PROVIDERS,
) -> ContainerBlueprint:
    """Build a container blueprint.

    Performs no I/O. An empty project root still yields a blueprint; the
    daemon rejects it later.

    Args:
        resolved: Resolved project configuration
        mode: Discovery, daemon-host integration and naming flags
        ports: Final port mappings; defaults to the declared forward ports
        providers: Credential providers to mount, in order

    Returns:
        A new ContainerBlueprint
    """
    environment: List[str] = []
    if mode.docker_host_integration:
        environment.append(f"{DOCKER_HOST_INTEGRATION_ENV}=true")

    name = container_name(
        mode.name_kind,
        resolved.account,
        resolved.project_root,
        resolved.project_hash,
        service=mode.service_name,
        isolation_prefix=mode.isolation_prefix,
        name_prefix=mode.name_prefix,
    )

    return ContainerBlueprint(
        name=name,
        image=resolved.image or DEFAULT_IMAGE,
        command=build_command(resolved.default_command),
        working_dir=DEFAULT_WORKDIR,
        user=resolved.remote_user or DEFAULT_USER,
        environment=environment,
        mounts=build_mounts(resolved, mode, providers),
        ports=list(resolved.forward_ports if ports is None else ports),
        network_mode=DEFAULT_NETWORK_MODE,
    )
