"""Single-service up/down pipeline."""

import logging
import os
import socket
from typing import Callable, Dict, List, Optional

from ..models.config import BuildSpec, PortMapping, ResolvedConfig
from ..models.container import (
    BlueprintMode,
    ContainerBlueprint,
    ProvisionAction,
    ProvisionResult,
)
from ..models.settings import Settings
from ..models.workspace import ServiceUpRequest, ServiceUpResult
from ..services.exceptions import ConfigurationError, LifecycleHookError
from .blueprint import build_blueprint
from .constants import (
    BUILD_IMAGE_REPOSITORY,
    DEFAULT_DOCKERFILE,
    DEFAULT_SHELL,
    LABEL_ACCOUNT,
    LABEL_MANAGED,
    LABEL_PROJECT_HASH,
    POST_CREATE_TIMEOUT,
)
from .lifecycle import LifecycleManager
from .ports import merge_port_mappings, validate_no_conflicts

logger = logging.getLogger(__name__)

ConfigResolver = Callable[..., ResolvedConfig]


def create_build_spec(resolved: ResolvedConfig) -> Optional[BuildSpec]:
    """Derive the image build request for a project with a build section.

    The build context is relative to the directory holding devcontainer.json
    and the Dockerfile is relative to the build context.
    """
    if resolved.build is None:
        return None

    if resolved.config_path:
        config_dir = os.path.dirname(resolved.config_path)
    else:
        config_dir = resolved.project_root

    context = resolved.build.context
    if not context:
        context_path = config_dir
    elif os.path.isabs(context):
        context_path = context
    else:
        context_path = os.path.join(config_dir, context)

    return BuildSpec(
        dockerfile=resolved.build.dockerfile or DEFAULT_DOCKERFILE,
        context=os.path.normpath(context_path),
        image_name=f"{BUILD_IMAGE_REPOSITORY}:{resolved.project_hash}",
    )


def post_create_argv(command) -> Optional[List[str]]:
    """Turn postCreateCommand into an argv; strings go through the shell."""
    if command is None:
        return None
    if isinstance(command, str):
        if not command.strip():
            return None
        return [DEFAULT_SHELL, "-c", command]
    if not command:
        return None
    return list(command)


def busy_host_ports(mappings: List[PortMapping]) -> List[int]:
    """Return host ports that already have a local listener."""
    busy = []
    for mapping in mappings:
        try:
            with socket.create_connection(("127.0.0.1", mapping.host_port), timeout=0.1):
                busy.append(mapping.host_port)
        except OSError:
            continue
    return busy


def base_labels(resolved: ResolvedConfig) -> Dict[str, str]:
    """Labels carried by every reactor-created container."""
    return {
        LABEL_MANAGED: "true",
        LABEL_ACCOUNT: resolved.account,
        LABEL_PROJECT_HASH: resolved.project_hash,
    }


class ContainerRunner:
    """Bring a single project's container up or down."""

    def __init__(
        self,
        docker_service,
        config_resolver: ConfigResolver,
        settings: Optional[Settings] = None,
        lifecycle: Optional[LifecycleManager] = None,
    ):
        self.docker_service = docker_service
        self.config_resolver = config_resolver
        self.settings = settings or Settings()
        self.lifecycle = lifecycle or LifecycleManager(docker_service)

    def resolve(self, request: ServiceUpRequest) -> ResolvedConfig:
        """Resolve the configuration for a request, applying its account override."""
        return self.config_resolver(request.project_dir, account_override=request.account_override)

    def final_ports(self, resolved: ResolvedConfig, request: ServiceUpRequest) -> List[PortMapping]:
        """Merge declared ports with the request's overrides."""
        if request.discovery and request.port_overrides:
            raise ConfigurationError("discovery mode cannot be used with port forwarding")
        merged = merge_port_mappings(resolved.forward_ports, request.port_overrides)
        validate_no_conflicts(merged)
        return merged

    def blueprint_for(
        self,
        resolved: ResolvedConfig,
        request: ServiceUpRequest,
        ports: Optional[List[PortMapping]] = None,
    ) -> ContainerBlueprint:
        mode = BlueprintMode(
            discovery=request.discovery,
            docker_host_integration=request.docker_host_integration,
            service_name=request.service_name,
            name_prefix=request.name_prefix,
            isolation_prefix=self.settings.isolation_prefix,
        )
        return build_blueprint(resolved, mode, ports=ports)

    def ensure_image(self, resolved: ResolvedConfig, force_rebuild: bool = False) -> ResolvedConfig:
        """Build the project image when devcontainer.json has a build section.

        Returns:
            The config with ``image`` pointing at the image to run
        """
        spec = create_build_spec(resolved)
        if spec is None:
            return resolved

        if not force_rebuild and self.docker_service.image_exists(spec.image_name):
            logger.info(f"Image {spec.image_name} already exists, skipping build")
            return resolved.model_copy(update={'image': spec.image_name})

        if not os.path.isdir(spec.context):
            raise ConfigurationError(f"build context directory does not exist: {spec.context}")
        dockerfile_path = os.path.join(spec.context, spec.dockerfile)
        if not os.path.isfile(dockerfile_path):
            raise ConfigurationError(f"dockerfile does not exist: {dockerfile_path}")

        logger.info(f"Building image {spec.image_name} from {dockerfile_path}")
        self.docker_service.build_image(
            path=spec.context,
            dockerfile=spec.dockerfile,
            tag=spec.image_name,
            nocache=force_rebuild,
        )
        return resolved.model_copy(update={'image': spec.image_name})

    def run_post_create(self, container_id: str, resolved: ResolvedConfig) -> None:
        """Run postCreateCommand inside the container.

        Raises:
            LifecycleHookError: If the command exits non-zero
        """
        argv = post_create_argv(resolved.post_create_command)
        if argv is None:
            return

        logger.info(f"Running postCreateCommand: {argv}")
        result = self.docker_service.exec_in_container(
            container_id,
            argv,
            user=resolved.remote_user or None,
            timeout=POST_CREATE_TIMEOUT,
        )
        if result.exit_code != 0:
            raise LifecycleHookError(
                f"postCreateCommand failed with exit code {result.exit_code}",
                exit_code=result.exit_code,
                output=result.output,
            )

    def up(self, request: ServiceUpRequest, resolved: Optional[ResolvedConfig] = None) -> ServiceUpResult:
        """Bring a project's container to the running state.

        Args:
            request: What to start and how
            resolved: Pre-resolved configuration, resolved from the request if omitted

        Returns:
            The resolved config and the running container

        Raises:
            ServiceError: On configuration, daemon or lifecycle hook failure
        """
        if resolved is None:
            resolved = self.resolve(request)
        ports = self.final_ports(resolved, request)

        for port in busy_host_ports(ports):
            logger.warning(f"Host port {port} appears to be in use; port forwarding may fail")
        if request.docker_host_integration:
            logger.warning(
                "Docker host integration enabled: the container gets full access to the host Docker daemon"
            )

        resolved = self.ensure_image(resolved, force_rebuild=request.force_rebuild)
        blueprint = self.blueprint_for(resolved, request, ports)

        labels = base_labels(resolved)
        labels.update(request.labels)

        logger.debug(f"Container name: {blueprint.name}, mounts: {blueprint.mount_specs}")

        if request.discovery:
            existing = self.lifecycle.inspect(blueprint.name)
            if existing.exists:
                logger.info(f"Discovery mode: removing existing container {blueprint.name} for a clean environment")
                self.lifecycle.teardown(existing)

        provisioned: ProvisionResult = self.lifecycle.up(blueprint, labels)

        if provisioned.action in (ProvisionAction.CREATED, ProvisionAction.RECREATED):
            self.run_post_create(provisioned.container_id, resolved)

        return ServiceUpResult(
            resolved=resolved,
            container_id=provisioned.container_id,
            container_name=blueprint.name,
            action=provisioned.action,
            ports=ports,
        )

    def down(self, project_dir: str, account_override: Optional[str] = None, discovery: bool = False) -> bool:
        """Stop and remove a project's container.

        Returns:
            True if a container was removed, False if there was none
        """
        request = ServiceUpRequest(
            project_dir=os.path.abspath(project_dir),
            account_override=account_override,
            discovery=discovery,
        )
        resolved = self.resolve(request)
        blueprint = self.blueprint_for(resolved, request)
        return self.lifecycle.down(blueprint.name)
