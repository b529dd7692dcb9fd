"""Service layer for abstracting Docker daemon operations."""

from .docker_service import DockerService
from .exceptions import (
    ServiceError,
    DockerServiceError,
    DaemonUnavailableError,
    DaemonTimeoutError,
    ImageNotFoundError,
    ContainerNotFoundError,
    ConfigurationError,
    WorkspaceError,
    PortConflictError,
    LifecycleHookError,
)

__all__ = [
    "DockerService",
    "ServiceError",
    "DockerServiceError",
    "DaemonUnavailableError",
    "DaemonTimeoutError",
    "ImageNotFoundError",
    "ContainerNotFoundError",
    "ConfigurationError",
    "WorkspaceError",
    "PortConflictError",
    "LifecycleHookError",
]
