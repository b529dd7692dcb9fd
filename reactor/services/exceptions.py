"""Custom exceptions for service layer."""

from typing import Dict, List, Optional


class ServiceError(Exception):
    """Base exception for all service-related errors."""

    pass


class DockerServiceError(ServiceError):
    """Exception raised for Docker service operations."""

    pass


class DaemonUnavailableError(DockerServiceError):
    """Exception raised when the Docker daemon cannot be reached."""

    pass


class DaemonTimeoutError(DockerServiceError):
    """Exception raised when a Docker daemon call exceeds its deadline."""

    pass


class ImageNotFoundError(DockerServiceError):
    """Exception raised when a Docker image is not found."""

    pass


class ContainerNotFoundError(DockerServiceError):
    """Exception raised when a Docker container is not found."""

    pass


class ConfigurationError(ServiceError):
    """Exception raised for invalid configuration detected before any daemon call."""

    pass


class WorkspaceError(ConfigurationError):
    """Exception raised for invalid workspace descriptors or service selections."""

    pass


class PortConflictError(ConfigurationError):
    """Exception raised when services in a workspace claim the same host port."""

    def __init__(self, conflicts: Dict[int, List[str]], message: Optional[str] = None):
        self.conflicts = conflicts
        if message is None:
            details = "\n  - ".join(
                f"port {port} used by services: {', '.join(services)}"
                for port, services in sorted(conflicts.items())
            )
            message = f"port conflicts detected:\n  - {details}"
        super().__init__(message)


class LifecycleHookError(ServiceError):
    """Exception raised when a lifecycle hook command fails inside a container."""

    def __init__(self, message: str, exit_code: Optional[int] = None, output: str = ""):
        super().__init__(message)
        self.exit_code = exit_code
        self.output = output
