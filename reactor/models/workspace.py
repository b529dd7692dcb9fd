"""Workspace and per-service orchestration models."""

from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .config import PortMapping, ResolvedConfig
from .container import ContainerStatus, ProvisionAction


class WorkspaceService(BaseModel):
    """One service entry of a workspace descriptor."""
    path: str = ""
    account: Optional[str] = None


class Workspace(BaseModel):
    """Parsed workspace descriptor."""
    version: str
    services: Dict[str, WorkspaceService]
    file_path: str  # absolute path of the descriptor file

    @property
    def directory(self) -> Path:
        return Path(self.file_path).parent


class ServiceUpRequest(BaseModel):
    """Everything needed to bring one service up. Built per call, never persisted."""
    project_dir: str
    account_override: Optional[str] = None
    service_name: Optional[str] = None
    name_prefix: Optional[str] = None  # e.g. "reactor-ws-api-"
    force_rebuild: bool = False
    discovery: bool = False
    docker_host_integration: bool = False
    port_overrides: List[PortMapping] = Field(default_factory=list)
    labels: Dict[str, str] = Field(default_factory=dict)
    verbose: bool = False


class ServiceUpResult(BaseModel):
    """Outcome of a successful single-service up."""
    resolved: ResolvedConfig
    container_id: str
    container_name: str
    action: ProvisionAction
    ports: List[PortMapping] = Field(default_factory=list)


class WorkspaceUpOptions(BaseModel):
    """Settings applied to every service of a workspace up."""
    force_rebuild: bool = False
    discovery: bool = False
    docker_host_integration: bool = False
    verbose: bool = False
    port_overrides: Dict[str, List[PortMapping]] = Field(default_factory=dict)
    tags: Dict[str, str] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Per-service line of a workspace report."""
    service: str
    success: bool
    container_id: Optional[str] = None
    container_name: Optional[str] = None
    action: Optional[str] = None
    ports: List[PortMapping] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def short_id(self) -> str:
        return (self.container_id or "")[:12]


class WorkspaceReport(BaseModel):
    """Aggregated per-service outcome of a workspace operation."""
    operation: str
    workspace_file: str
    results: List[ServiceResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> List[ServiceResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> List[ServiceResult]:
        return [r for r in self.results if not r.success]

    @property
    def ok(self) -> bool:
        return not self.failed

    def get(self, service: str) -> Optional[ServiceResult]:
        for result in self.results:
            if result.service == service:
                return result
        return None


class ServiceStatus(BaseModel):
    """Status line for one workspace service."""
    service: str
    path: str
    account: str
    status: ContainerStatus
    container_name: Optional[str] = None
