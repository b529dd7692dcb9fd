"""Container recovery protocol: reuse, restart or create."""

import logging
from typing import Dict, Optional

from ..models.container import (
    ContainerBlueprint,
    ContainerRecord,
    ContainerStatus,
    ProvisionAction,
    ProvisionResult,
)
from ..services.exceptions import (
    ContainerNotFoundError,
    DaemonTimeoutError,
    DaemonUnavailableError,
    DockerServiceError,
)

logger = logging.getLogger(__name__)


class LifecycleManager:
    """Drive one container to the running state by name-based discovery.

    The container is looked up on every call; nothing about its state is
    remembered between calls, since it may be stopped or removed outside
    reactor at any time.
    """

    def __init__(self, docker_service):
        self.docker_service = docker_service

    def inspect(self, name: str) -> ContainerRecord:
        """Return the current daemon-observed state of the named container."""
        return self.docker_service.find_container(name)

    def should_recreate(self, record: ContainerRecord, blueprint: ContainerBlueprint) -> bool:
        """Decide whether a stopped container must be rebuilt from the blueprint.

        Stopped containers are restarted as they are, without comparing
        their stored mounts, environment or command against the blueprint.
        Override this to recreate on configuration drift instead.
        """
        return False

    def up(self, blueprint: ContainerBlueprint, labels: Optional[Dict[str, str]] = None) -> ProvisionResult:
        """Bring the blueprint's container to the running state.

        Args:
            blueprint: Container to provision
            labels: Labels attached if a new container is created

        Returns:
            The running container and the action taken

        Raises:
            DockerServiceError: If the daemon cannot produce a running container
        """
        record = self.inspect(blueprint.name)

        if record.status == ContainerStatus.RUNNING:
            logger.info(f"Container {blueprint.name} already running ({record.short_id})")
            return ProvisionResult(record=record, action=ProvisionAction.REUSED)

        if record.status == ContainerStatus.STOPPED:
            if self.should_recreate(record, blueprint):
                logger.info(f"Recreating container {blueprint.name} from current configuration")
                self._remove_quietly(record)
                return self._create_and_start(blueprint, labels, ProvisionAction.RECREATED)

            logger.info(f"Starting stopped container {blueprint.name} ({record.short_id})")
            try:
                self.docker_service.start_container(record.id)
                return ProvisionResult(
                    record=record.model_copy(update={'status': ContainerStatus.RUNNING}),
                    action=ProvisionAction.RESTARTED,
                )
            except ContainerNotFoundError:
                logger.info(f"Container {blueprint.name} disappeared before start, creating it")
                return self._create_and_start(blueprint, labels, ProvisionAction.CREATED)
            except (DaemonTimeoutError, DaemonUnavailableError):
                raise
            except DockerServiceError as e:
                logger.warning(f"Failed to start existing container {blueprint.name}, recreating: {e}")
                self._remove_quietly(record)
                return self._create_and_start(blueprint, labels, ProvisionAction.RECREATED)

        logger.info(f"Creating container {blueprint.name} from image {blueprint.image}")
        return self._create_and_start(blueprint, labels, ProvisionAction.CREATED)

    def _create_and_start(
        self,
        blueprint: ContainerBlueprint,
        labels: Optional[Dict[str, str]],
        action: ProvisionAction,
    ) -> ProvisionResult:
        record = self.docker_service.create_container(**blueprint.to_container_config(labels))
        try:
            self.docker_service.start_container(record.id)
        except DockerServiceError:
            # Never leave a created-but-unstartable container behind
            self._remove_quietly(record)
            raise
        return ProvisionResult(
            record=record.model_copy(update={'status': ContainerStatus.RUNNING}),
            action=action,
        )

    def _remove_quietly(self, record: ContainerRecord) -> None:
        try:
            self.docker_service.remove_container(record.id or record.name, force=True)
        except ContainerNotFoundError:
            pass
        except DockerServiceError as e:
            logger.warning(f"Failed to remove container {record.name}: {e}")

    def down(self, name: str) -> bool:
        """Stop and remove the named container.

        Returns:
            True if a container was removed, False if none existed
        """
        record = self.inspect(name)
        if not record.exists:
            logger.info(f"Container {name} not found, nothing to remove")
            return False
        return self.teardown(record)

    def teardown(self, record: ContainerRecord) -> bool:
        """Stop and remove an already discovered container.

        A container that stops or disappears in between is not an error.

        Returns:
            True if this call removed the container
        """
        target = record.id or record.name
        if record.status == ContainerStatus.RUNNING:
            try:
                self.docker_service.stop_container(target)
            except ContainerNotFoundError:
                return False

        try:
            self.docker_service.remove_container(target, force=True)
        except ContainerNotFoundError:
            return False

        logger.info(f"Removed container {record.name}")
        return True
