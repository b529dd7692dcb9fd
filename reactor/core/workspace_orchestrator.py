"""Multi-service workspace orchestration."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from ..models.config import PortMapping, ResolvedConfig
from ..models.container import ContainerRecord, ContainerStatus, ExecResult
from ..models.settings import Settings
from ..models.workspace import (
    ServiceResult,
    ServiceStatus,
    ServiceUpRequest,
    Workspace,
    WorkspaceReport,
    WorkspaceUpOptions,
)
from ..services.exceptions import (
    ConfigurationError,
    ContainerNotFoundError,
    DockerServiceError,
    ServiceError,
    WorkspaceError,
)
from ..utils.workspace_parser import resolve_service_path
from .constants import LABEL_WORKSPACE_INSTANCE, LABEL_WORKSPACE_SERVICE
from .container_runner import ContainerRunner
from .naming import workspace_hash, workspace_name_prefix
from .ports import detect_cross_service_conflicts, ensure_no_cross_service_conflicts

logger = logging.getLogger(__name__)

# (service name, request, resolved config)
PlannedService = Tuple[str, ServiceUpRequest, ResolvedConfig]


class WorkspaceOrchestrator:
    """Run the container lifecycles of a workspace's services as one unit.

    Each service is an independent unit of work on a thread pool. A failing
    unit is recorded in the report and never cancels its siblings. The only
    state shared between units is the docker service itself.
    """

    def __init__(
        self,
        docker_service,
        config_resolver: Callable[..., ResolvedConfig],
        settings: Optional[Settings] = None,
        runner: Optional[ContainerRunner] = None,
        max_workers: Optional[int] = None,
    ):
        self.docker_service = docker_service
        self.settings = settings or Settings()
        self.runner = runner or ContainerRunner(docker_service, config_resolver, self.settings)
        self.lifecycle = self.runner.lifecycle
        self.max_workers = max_workers

    @staticmethod
    def instance_labels(workspace: Workspace, service: Optional[str] = None) -> Dict[str, str]:
        """Label filter selecting a workspace's containers, optionally one service's."""
        labels = {LABEL_WORKSPACE_INSTANCE: workspace_hash(workspace.file_path)}
        if service is not None:
            labels[LABEL_WORKSPACE_SERVICE] = service
        return labels

    @staticmethod
    def select_services(workspace: Workspace, services: Optional[Sequence[str]] = None) -> List[str]:
        """Validate a service selection; None or empty selects every service.

        Raises:
            WorkspaceError: If any name is not defined in the workspace
        """
        if not services:
            return list(workspace.services)

        unknown = [name for name in services if name not in workspace.services]
        if unknown:
            raise WorkspaceError(
                f"service(s) not found in workspace: {', '.join(unknown)} "
                f"(available: {', '.join(workspace.services)})"
            )

        selected: List[str] = []
        for name in services:
            if name not in selected:
                selected.append(name)
        return selected

    def _fan_out(self, names: List[str], unit: Callable[[str], ServiceResult]) -> List[ServiceResult]:
        """Run ``unit`` once per name concurrently; results follow ``names`` order."""
        if not names:
            return []

        def guarded(name: str) -> ServiceResult:
            try:
                return unit(name)
            except ServiceError as e:
                logger.error(f"Service {name} failed: {e}")
                return ServiceResult(service=name, success=False, error=str(e))
            except Exception as e:
                logger.exception(f"Unexpected error in service {name}")
                return ServiceResult(service=name, success=False, error=f"unexpected error: {e}")

        workers = self.max_workers or len(names)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="reactor-ws") as executor:
            futures = [executor.submit(guarded, name) for name in names]
            return [future.result() for future in futures]

    def _plan(
        self,
        workspace: Workspace,
        names: List[str],
        options: WorkspaceUpOptions,
    ) -> List[PlannedService]:
        """Resolve every selected service and check ports before touching the daemon."""
        unknown_overrides = [name for name in options.port_overrides if name not in workspace.services]
        if unknown_overrides:
            raise WorkspaceError(
                f"port overrides given for unknown service(s): {', '.join(unknown_overrides)}"
            )

        instance = workspace_hash(workspace.file_path)
        planned: List[PlannedService] = []
        per_service_ports: Dict[str, List[PortMapping]] = {}

        for name in names:
            service = workspace.services[name]
            project_dir = resolve_service_path(workspace, name)

            labels = dict(options.tags)
            labels[LABEL_WORKSPACE_INSTANCE] = instance
            labels[LABEL_WORKSPACE_SERVICE] = name

            request = ServiceUpRequest(
                project_dir=str(project_dir),
                account_override=service.account,
                service_name=name,
                name_prefix=workspace_name_prefix(name),
                force_rebuild=options.force_rebuild,
                discovery=options.discovery,
                docker_host_integration=options.docker_host_integration,
                port_overrides=options.port_overrides.get(name, []),
                labels=labels,
                verbose=options.verbose,
            )

            try:
                resolved = self.runner.resolve(request)
                per_service_ports[name] = self.runner.final_ports(resolved, request)
            except ConfigurationError as e:
                raise ConfigurationError(f"service '{name}': {e}") from e

            planned.append((name, request, resolved))

        ensure_no_cross_service_conflicts(per_service_ports)
        return planned

    def up(
        self,
        workspace: Workspace,
        services: Optional[Sequence[str]] = None,
        options: Optional[WorkspaceUpOptions] = None,
    ) -> WorkspaceReport:
        """Start the selected services concurrently.

        Args:
            workspace: Parsed workspace descriptor
            services: Service names to start; None starts all
            options: Flags and overrides applied to every service

        Returns:
            One result per service, in selection order

        Raises:
            ConfigurationError: If pre-flight validation fails; no container
                has been touched in that case
        """
        options = options or WorkspaceUpOptions()
        names = self.select_services(workspace, services)
        planned = {name: (request, resolved) for name, request, resolved in self._plan(workspace, names, options)}

        logger.info(f"Starting {len(names)} workspace service(s): {', '.join(names)}")

        def unit(name: str) -> ServiceResult:
            request, resolved = planned[name]
            result = self.runner.up(request, resolved=resolved)
            return ServiceResult(
                service=name,
                success=True,
                container_id=result.container_id,
                container_name=result.container_name,
                action=result.action.value,
                ports=result.ports,
            )

        return WorkspaceReport(
            operation="up",
            workspace_file=workspace.file_path,
            results=self._fan_out(names, unit),
        )

    def _records_by_service(self, workspace: Workspace) -> Dict[str, List[ContainerRecord]]:
        grouped: Dict[str, List[ContainerRecord]] = {}
        for record in self.docker_service.list_records(self.instance_labels(workspace)):
            service = record.labels.get(LABEL_WORKSPACE_SERVICE, "")
            grouped.setdefault(service, []).append(record)
        return grouped

    def down(self, workspace: Workspace, services: Optional[Sequence[str]] = None) -> WorkspaceReport:
        """Stop and remove the selected services' containers concurrently.

        Containers are found by label, so services removed from the
        descriptor since ``up`` are torn down as well when no selection is
        given. Services without a container succeed.
        """
        if services:
            names = self.select_services(workspace, services)
        else:
            names = list(workspace.services)

        grouped = self._records_by_service(workspace)
        if not services:
            names.extend(name for name in grouped if name and name not in names)

        def unit(name: str) -> ServiceResult:
            records = grouped.get(name, [])
            removed = []
            for record in records:
                if self.lifecycle.teardown(record):
                    removed.append(record.name)
            return ServiceResult(
                service=name,
                success=True,
                container_name=", ".join(removed) or None,
                action="removed" if removed else "absent",
            )

        logger.info(f"Stopping {len(names)} workspace service(s)")
        return WorkspaceReport(
            operation="down",
            workspace_file=workspace.file_path,
            results=self._fan_out(names, unit),
        )

    def find_service_container(self, workspace: Workspace, service: str) -> ContainerRecord:
        """Find the single running container of a service by label.

        Raises:
            WorkspaceError: If the service is not defined in the workspace
            ContainerNotFoundError: If the service has no container
            DockerServiceError: If it has several containers or is not running
        """
        self.select_services(workspace, [service])
        records = self.docker_service.list_records(self.instance_labels(workspace, service))

        if not records:
            raise ContainerNotFoundError(
                f"container for service '{service}' not found - start it first with 'reactor workspace up'"
            )
        if len(records) > 1:
            names = ", ".join(record.name for record in records)
            raise DockerServiceError(f"multiple containers found for service '{service}': {names}")

        record = records[0]
        if record.status != ContainerStatus.RUNNING:
            raise DockerServiceError(
                f"container for service '{service}' is not running (status: {record.status.value})"
            )
        return record

    def exec(
        self,
        workspace: Workspace,
        service: str,
        command: Union[str, List[str]],
    ) -> ExecResult:
        """Run a command in a service's running container."""
        record = self.find_service_container(workspace, service)
        logger.info(f"Executing in {record.name}: {command}")
        return self.docker_service.exec_in_container(record.id, command)

    def status(self, workspace: Workspace) -> List[ServiceStatus]:
        """Container status of every service, found by label."""
        grouped = self._records_by_service(workspace)
        statuses = []

        for name, service in workspace.services.items():
            records = grouped.get(name, [])
            running = [r for r in records if r.status == ContainerStatus.RUNNING]
            record = (running or records or [None])[0]

            account = service.account
            if not account:
                try:
                    account = self.runner.config_resolver(str(resolve_service_path(workspace, name))).account
                except ConfigurationError:
                    account = "-"

            statuses.append(ServiceStatus(
                service=name,
                path=service.path,
                account=account,
                status=record.status if record else ContainerStatus.NOT_FOUND,
                container_name=record.name if record else None,
            ))

        return statuses

    def validate(self, workspace: Workspace) -> WorkspaceReport:
        """Resolve every service's configuration without contacting the daemon."""
        ports: Dict[str, List[PortMapping]] = {}

        results = []
        for name, service in workspace.services.items():
            try:
                project_dir = resolve_service_path(workspace, name)
                resolved = self.runner.config_resolver(str(project_dir), account_override=service.account)
            except ConfigurationError as e:
                results.append(ServiceResult(service=name, success=False, error=str(e)))
                continue
            ports[name] = resolved.forward_ports
            results.append(ServiceResult(service=name, success=True, ports=resolved.forward_ports))

        conflicts = detect_cross_service_conflicts(ports)
        for port, owners in sorted(conflicts.items()):
            for result in results:
                if result.service in owners and result.success:
                    result.success = False
                    result.error = f"port {port} used by services: {', '.join(owners)}"

        return WorkspaceReport(operation="validate", workspace_file=workspace.file_path, results=results)
