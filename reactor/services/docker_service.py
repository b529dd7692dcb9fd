"""Docker service for abstracting Docker operations."""

import logging
import threading
from typing import Any, Dict, List, Optional, Union

import docker
import docker.errors
import requests.exceptions
from docker.models.containers import Container
from docker.models.images import Image

from ..core.constants import DEFAULT_DAEMON_TIMEOUT, IMAGE_BUILD_TIMEOUT, STOP_GRACE_PERIOD
from ..models.container import ContainerRecord, ContainerStatus, ExecResult
from .exceptions import (
    ContainerNotFoundError,
    DaemonTimeoutError,
    DaemonUnavailableError,
    DockerServiceError,
    ImageNotFoundError,
)

logger = logging.getLogger(__name__)

_RUNNING_STATES = ("running", "restarting")


def _daemon_failure(action: str, e: Exception) -> DockerServiceError:
    """Translate a transport-level failure into the service taxonomy."""
    if isinstance(e, requests.exceptions.Timeout):
        return DaemonTimeoutError(
            f"Timed out waiting for the Docker daemon to {action}. "
            f"Check that the daemon is responsive or raise REACTOR_DOCKER_TIMEOUT."
        )
    if isinstance(e, requests.exceptions.ConnectionError):
        return DaemonUnavailableError(f"Lost connection to the Docker daemon while trying to {action}: {e}")
    return DockerServiceError(f"Unexpected error trying to {action}: {e}")


def container_to_record(container: Container) -> ContainerRecord:
    """Convert a docker-py container into a ContainerRecord."""
    state = (container.status or "").lower()
    status = ContainerStatus.RUNNING if state in _RUNNING_STATES else ContainerStatus.STOPPED

    image = ""
    attrs = container.attrs or {}
    if isinstance(attrs.get("Config"), dict):
        image = attrs["Config"].get("Image", "")
    image = image or attrs.get("Image", "")

    return ContainerRecord(
        id=container.id or "",
        name=(container.name or "").lstrip("/"),
        status=status,
        image=image,
        labels=dict(container.labels or {}),
    )


class DockerService:
    """Service for Docker operations with clean abstractions.

    One instance is shared by every thread of a workspace operation; the
    underlying client is safe for concurrent use.
    """

    def __init__(self, timeout: int = DEFAULT_DAEMON_TIMEOUT):
        """Initialize Docker service and test connection.

        Args:
            timeout: Deadline in seconds applied to every daemon call
        """
        self.timeout = timeout
        self._clients: Dict[int, docker.DockerClient] = {}
        self._clients_lock = threading.Lock()
        try:
            self.client = docker.from_env(timeout=timeout)
            self.client.ping()
        except requests.exceptions.Timeout as e:
            raise DaemonTimeoutError(
                f"Docker daemon did not respond within {timeout}s"
            ) from e
        except (docker.errors.DockerException, requests.exceptions.ConnectionError) as e:
            if "connection refused" in str(e).lower() or "cannot connect" in str(e).lower() \
                    or isinstance(e, requests.exceptions.ConnectionError):
                raise DaemonUnavailableError(
                    "Docker daemon is not running. Please start Docker Desktop or the Docker service."
                ) from e
            else:
                raise DockerServiceError(f"Failed to connect to Docker: {e}") from e

    def find_container(self, name: str) -> ContainerRecord:
        """Look up a container by exact name.

        Args:
            name: Container name

        Returns:
            The observed record; status is NOT_FOUND when no container has that name

        Raises:
            DockerServiceError: If the daemon query fails
        """
        # The daemon's name filter matches substrings
        for container in self.list_containers(all=True, filters={'name': name}):
            if (container.name or "").lstrip("/") == name:
                return container_to_record(container)
        return ContainerRecord(name=name)

    def list_records(self, labels: Optional[Dict[str, str]] = None) -> List[ContainerRecord]:
        """List containers matching every given label, as records."""
        return [container_to_record(c) for c in self.list_containers(all=True, labels=labels)]

    def client_with_timeout(self, timeout: Optional[int] = None) -> docker.DockerClient:
        """Return a client whose read deadline is ``timeout`` seconds.

        The shared client is returned when no timeout is given or it matches
        the service's own; other deadlines get a lazily created client.
        """
        if timeout is None or timeout == self.timeout:
            return self.client
        with self._clients_lock:
            if timeout not in self._clients:
                logger.debug(f"Creating Docker client with {timeout}s timeout")
                self._clients[timeout] = docker.from_env(timeout=timeout)
            return self._clients[timeout]

    def get_container(self, container_id: str, timeout: Optional[int] = None) -> Container:
        """Get a container by ID or name.

        Args:
            container_id: Container ID or name
            timeout: Deadline for calls made through the returned container

        Returns:
            Container object

        Raises:
            ContainerNotFoundError: If container not found
            DockerServiceError: If retrieval fails
        """
        try:
            return self.client_with_timeout(timeout).containers.get(container_id)
        except docker.errors.NotFound as e:
            raise ContainerNotFoundError(
                f"Container '{container_id}' not found"
            ) from e
        except docker.errors.APIError as e:
            raise DockerServiceError(f"Failed to get container: {e}") from e
        except Exception as e:
            raise _daemon_failure(f"get container '{container_id}'", e) from e

    def create_container(
        self,
        image: str,
        name: Optional[str] = None,
        command: Optional[List[str]] = None,
        volumes: Optional[List[str]] = None,
        environment: Optional[List[str]] = None,
        working_dir: Optional[str] = None,
        labels: Optional[Dict[str, str]] = None,
        **kwargs,
    ) -> ContainerRecord:
        """Create a Docker container without starting it.

        Args:
            image: Image name
            name: Container name
            command: Command to run
            volumes: Bind strings in ``source:target:mode`` form
            environment: Environment variables in ``KEY=value`` form
            working_dir: Working directory
            labels: Container labels
            **kwargs: Additional Docker create parameters

        Returns:
            Record of the created container

        Raises:
            ImageNotFoundError: If image not found
            DockerServiceError: If creation fails
        """
        try:
            container = self.client.containers.create(
                image=image,
                name=name,
                command=command,
                volumes=volumes,
                environment=environment,
                working_dir=working_dir,
                labels=labels,
                **kwargs,
            )
            logger.debug(f"Created container {name} ({container.id})")
            record = container_to_record(container)
            return record.model_copy(update={'status': ContainerStatus.STOPPED, 'name': name or record.name})
        except docker.errors.ImageNotFound as e:
            raise ImageNotFoundError(f"Image '{image}' not found") from e
        except docker.errors.APIError as e:
            raise DockerServiceError(f"Failed to create container '{name}': {e}") from e
        except Exception as e:
            raise _daemon_failure(f"create container '{name}'", e) from e

    def start_container(self, container_id: str) -> None:
        """Start a created or stopped container.

        Raises:
            ContainerNotFoundError: If container not found
            DockerServiceError: If start fails
        """
        container = self.get_container(container_id)
        try:
            container.start()
        except docker.errors.NotFound as e:
            raise ContainerNotFoundError(f"Container '{container_id}' not found") from e
        except docker.errors.APIError as e:
            raise DockerServiceError(f"Failed to start container '{container_id}': {e}") from e
        except Exception as e:
            raise _daemon_failure(f"start container '{container_id}'", e) from e

    def stop_container(self, container_id: str, grace_period: int = STOP_GRACE_PERIOD) -> None:
        """Stop a running container.

        Stopping an already stopped container is not an error.

        Raises:
            ContainerNotFoundError: If container not found
            DockerServiceError: If stop fails
        """
        container = self.get_container(container_id)
        try:
            container.stop(timeout=grace_period)
        except docker.errors.NotFound as e:
            raise ContainerNotFoundError(f"Container '{container_id}' not found") from e
        except docker.errors.APIError as e:
            raise DockerServiceError(f"Failed to stop container '{container_id}': {e}") from e
        except Exception as e:
            raise _daemon_failure(f"stop container '{container_id}'", e) from e

    def remove_container(self, container_id: str, force: bool = False) -> None:
        """Remove a container.

        Args:
            container_id: Container ID or name
            force: Force remove even if running

        Raises:
            ContainerNotFoundError: If container not found
            DockerServiceError: If removal fails
        """
        container = self.get_container(container_id)
        try:
            container.remove(force=force)
        except docker.errors.NotFound as e:
            raise ContainerNotFoundError(f"Container '{container_id}' not found") from e
        except docker.errors.APIError as e:
            raise DockerServiceError(f"Failed to remove container '{container_id}': {e}") from e
        except Exception as e:
            raise _daemon_failure(f"remove container '{container_id}'", e) from e

    def exec_in_container(
        self,
        container_id: str,
        command: Union[str, List[str]],
        user: Optional[str] = None,
        workdir: Optional[str] = None,
        timeout: Optional[int] = None,
        **kwargs,
    ) -> ExecResult:
        """Execute a command in a running container and capture its output.

        Args:
            container_id: Container ID or name
            command: Command to execute
            user: User to run the command as
            workdir: Working directory for the command
            timeout: Deadline for the command, defaults to the daemon timeout
            **kwargs: Additional exec parameters

        Returns:
            Exit code and combined output

        Raises:
            ContainerNotFoundError: If container not found
            DockerServiceError: If execution fails
        """
        container = self.get_container(container_id, timeout=timeout)
        exec_kwargs: Dict[str, Any] = dict(kwargs)
        if user:
            exec_kwargs['user'] = user
        if workdir:
            exec_kwargs['workdir'] = workdir
        try:
            result = container.exec_run(command, **exec_kwargs)
        except docker.errors.NotFound as e:
            raise ContainerNotFoundError(f"Container '{container_id}' not found") from e
        except docker.errors.APIError as e:
            raise DockerServiceError(f"Failed to execute in container '{container_id}': {e}") from e
        except Exception as e:
            raise _daemon_failure(f"execute in container '{container_id}'", e) from e

        output = result.output
        if isinstance(output, bytes):
            output = output.decode('utf-8', errors='replace')
        exit_code = result.exit_code if result.exit_code is not None else 0
        return ExecResult(exit_code=exit_code, output=output or "")

    def list_containers(
        self,
        all: bool = True,
        filters: Optional[Dict[str, Any]] = None,
        labels: Optional[Dict[str, str]] = None,
    ) -> List[Container]:
        """List containers with optional filters.

        Args:
            all: Include stopped containers
            filters: Docker filters
            labels: Label filters, all of which must match

        Returns:
            List of containers

        Raises:
            DockerServiceError: If listing fails
        """
        try:
            filter_dict = dict(filters or {})
            if labels:
                filter_dict['label'] = [f"{k}={v}" for k, v in labels.items()]

            return self.client.containers.list(all=all, filters=filter_dict)
        except docker.errors.APIError as e:
            raise DockerServiceError(f"Failed to list containers: {e}") from e
        except Exception as e:
            raise _daemon_failure("list containers", e) from e

    def image_exists(self, image_name: str) -> bool:
        """Check if an image exists locally.

        Args:
            image_name: Name of the image

        Returns:
            True if image exists, False otherwise
        """
        try:
            self.client.images.get(image_name)
            return True
        except docker.errors.ImageNotFound:
            return False
        except docker.errors.APIError as e:
            logger.warning(f"Error checking image existence: {e}")
            return False
        except Exception as e:
            raise _daemon_failure(f"inspect image '{image_name}'", e) from e

    def build_image(
        self,
        path: str,
        dockerfile: str,
        tag: str,
        rm: bool = True,
        nocache: bool = False,
    ) -> Image:
        """Build a Docker image.

        Args:
            path: Path to the build context
            dockerfile: Path to the Dockerfile relative to the build context
            tag: Tag for the image
            rm: Remove intermediate containers after build
            nocache: Do not use cache when building

        Returns:
            The built image

        Raises:
            DockerServiceError: If build fails
        """
        try:
            image, logs = self.client.images.build(
                path=path,
                dockerfile=dockerfile,
                tag=tag,
                rm=rm,
                nocache=nocache,
                timeout=IMAGE_BUILD_TIMEOUT,
            )
            for chunk in logs:
                line = chunk.get('stream', '').rstrip() if isinstance(chunk, dict) else ''
                if line:
                    logger.debug(line)
            return image
        except docker.errors.BuildError as e:
            raise DockerServiceError(f"Failed to build image '{tag}': {e}") from e
        except docker.errors.APIError as e:
            raise DockerServiceError(f"Failed to build image '{tag}': {e}") from e
        except Exception as e:
            raise _daemon_failure(f"build image '{tag}'", e) from e
