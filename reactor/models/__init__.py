"""Models for Reactor."""

from .config import (
    BuildConfig,
    Customizations,
    DevcontainerConfig,
    BuildSpec,
    MountPoint,
    PortMapping,
    ProviderInfo,
    ReactorCustomizations,
    ResolvedConfig,
)
from .container import (
    BlueprintMode,
    ContainerBlueprint,
    ContainerRecord,
    ContainerStatus,
    ExecResult,
    Mount,
    NameKind,
    ProvisionAction,
    ProvisionResult,
)
from .settings import Settings
from .workspace import (
    ServiceResult,
    ServiceStatus,
    ServiceUpRequest,
    ServiceUpResult,
    Workspace,
    WorkspaceReport,
    WorkspaceService,
    WorkspaceUpOptions,
)

__all__ = [
    'BuildConfig',
    'Customizations',
    'DevcontainerConfig',
    'BuildSpec',
    'MountPoint',
    'PortMapping',
    'ProviderInfo',
    'ReactorCustomizations',
    'ResolvedConfig',
    'BlueprintMode',
    'ContainerBlueprint',
    'ContainerRecord',
    'ContainerStatus',
    'ExecResult',
    'Mount',
    'NameKind',
    'ProvisionAction',
    'ProvisionResult',
    'Settings',
    'ServiceResult',
    'ServiceStatus',
    'ServiceUpRequest',
    'ServiceUpResult',
    'Workspace',
    'WorkspaceReport',
    'WorkspaceService',
    'WorkspaceUpOptions',
]
