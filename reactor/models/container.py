"""Container blueprint and observed-state models."""

import re
import shlex
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .config import PortMapping

# Characters the daemon's "-v src:dst" parser or a shell would misread
_QUOTE_SENSITIVE = re.compile(r"[\s'\"\\$`;&|<>()*?!#]")


class NameKind(str, Enum):
    """Container naming scheme."""
    STANDARD = "standard"
    DISCOVERY = "discovery"
    WORKSPACE_SERVICE = "workspace-service"
    WORKSPACE_DISCOVERY = "workspace-discovery"


class ContainerStatus(str, Enum):
    """Daemon-observed lifecycle state."""
    RUNNING = "running"
    STOPPED = "stopped"
    NOT_FOUND = "not_found"


class BlueprintMode(BaseModel):
    """Mode flags that shape a blueprint."""
    model_config = ConfigDict(frozen=True)

    discovery: bool = False
    docker_host_integration: bool = False
    service_name: Optional[str] = None
    name_prefix: Optional[str] = None
    isolation_prefix: Optional[str] = None

    @property
    def name_kind(self) -> NameKind:
        if self.service_name or self.name_prefix:
            return NameKind.WORKSPACE_DISCOVERY if self.discovery else NameKind.WORKSPACE_SERVICE
        if self.discovery:
            return NameKind.DISCOVERY
        return NameKind.STANDARD


def quote_host_path(path: str) -> str:
    """Quote a host path when it contains whitespace or quoting-sensitive characters."""
    if _QUOTE_SENSITIVE.search(path):
        return shlex.quote(path)
    return path


class Mount(BaseModel):
    """Bind mount from a host path to a container path."""
    model_config = ConfigDict(frozen=True)

    source: str
    target: str

    @property
    def spec(self) -> str:
        """Mount in ``source:target`` form, as passed to ``docker run -v``."""
        return f"{quote_host_path(self.source)}:{self.target}"

    def to_bind(self) -> str:
        """Unquoted read-write bind string for the daemon API."""
        return f"{self.source}:{self.target}:rw"


class ContainerBlueprint(BaseModel):
    """Complete, daemon-agnostic description of a container to run."""
    name: str
    image: str
    command: List[str]
    working_dir: str
    user: str
    environment: List[str] = Field(default_factory=list)
    mounts: List[Mount] = Field(default_factory=list)
    ports: List[PortMapping] = Field(default_factory=list)
    network_mode: str

    @property
    def mount_specs(self) -> List[str]:
        return [mount.spec for mount in self.mounts]

    def port_bindings(self) -> Dict[str, Any]:
        """Port bindings in docker-py ``ports=`` format."""
        bindings: Dict[str, Any] = {}
        for mapping in self.ports:
            key = f"{mapping.container_port}/tcp"
            if key not in bindings:
                bindings[key] = mapping.host_port
            elif isinstance(bindings[key], list):
                bindings[key].append(mapping.host_port)
            else:
                bindings[key] = [bindings[key], mapping.host_port]
        return bindings

    def to_container_config(self, labels: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """Build the keyword arguments for ``containers.create``.

        The blueprint itself is left untouched; labels are attached to the
        returned request only.
        """
        return {
            'image': self.image,
            'name': self.name,
            'command': list(self.command),
            'working_dir': self.working_dir,
            'user': self.user,
            'environment': list(self.environment),
            'volumes': [mount.to_bind() for mount in self.mounts],
            'ports': self.port_bindings(),
            'network_mode': self.network_mode,
            'labels': dict(labels or {}),
            'tty': True,
            'stdin_open': True,
        }


class ContainerRecord(BaseModel):
    """Container as observed on the daemon. Never cached across calls."""
    id: str = ""
    name: str = ""
    status: ContainerStatus = ContainerStatus.NOT_FOUND
    image: str = ""
    labels: Dict[str, str] = Field(default_factory=dict)

    @property
    def exists(self) -> bool:
        return self.status != ContainerStatus.NOT_FOUND

    @property
    def short_id(self) -> str:
        return self.id[:12]


class ExecResult(BaseModel):
    """Outcome of a command executed inside a container."""
    exit_code: int
    output: str = ""


class ProvisionAction(str, Enum):
    """What the recovery protocol did to reach a running container."""
    REUSED = "reused"
    RESTARTED = "restarted"
    CREATED = "created"
    RECREATED = "recreated"


class ProvisionResult(BaseModel):
    """Running container plus the action taken to get it there."""
    record: ContainerRecord
    action: ProvisionAction

    @property
    def container_id(self) -> str:
        return self.record.id
