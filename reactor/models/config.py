"""Configuration models for Reactor."""

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class MountPoint(BaseModel):
    """A credential directory a provider expects inside the container."""
    model_config = ConfigDict(frozen=True)

    source: str  # subdirectory under ~/.reactor/<account>/<project-hash>/
    target: str  # path in container


class ProviderInfo(BaseModel):
    """Built-in credential provider."""
    model_config = ConfigDict(frozen=True)

    name: str
    mounts: List[MountPoint] = Field(default_factory=list)


class PortMapping(BaseModel):
    """Host to container port forwarding."""
    model_config = ConfigDict(frozen=True)

    host_port: int = Field(ge=1, le=65535)
    container_port: int = Field(ge=1, le=65535)

    def __str__(self) -> str:
        return f"{self.host_port}->{self.container_port}"


class BuildConfig(BaseModel):
    """Docker build properties from the environment descriptor."""
    dockerfile: str = ""
    context: str = ""


class ReactorCustomizations(BaseModel):
    """The ``customizations.reactor`` block of devcontainer.json."""
    model_config = ConfigDict(populate_by_name=True)

    account: str = ""
    default_command: str = Field(default="", alias="defaultCommand")


class Customizations(BaseModel):
    reactor: Optional[ReactorCustomizations] = None


class DevcontainerConfig(BaseModel):
    """The subset of devcontainer.json that reactor understands.

    Unknown keys are ignored.
    """
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    image: str = ""
    build: Optional[BuildConfig] = None
    forward_ports: List[Union[int, str]] = Field(default_factory=list, alias="forwardPorts")
    remote_user: str = Field(default="", alias="remoteUser")
    post_create_command: Optional[Union[str, List[str]]] = Field(default=None, alias="postCreateCommand")
    customizations: Optional[Customizations] = None


class BuildSpec(BaseModel):
    """Concrete image build request derived from a BuildConfig."""
    dockerfile: str
    context: str
    image_name: str


class ResolvedConfig(BaseModel):
    """Fully resolved configuration for one project.

    Produced upstream from the environment descriptor; the core only reads it.
    """
    account: str
    image: str = ""
    build: Optional[BuildConfig] = None
    remote_user: str = ""
    default_command: str = ""
    forward_ports: List[PortMapping] = Field(default_factory=list)
    post_create_command: Optional[Union[str, List[str]]] = None
    project_root: str
    project_hash: str
    account_config_dir: str = ""
    project_config_dir: str = ""
    config_path: Optional[str] = None
