"""Constants used throughout the Reactor application."""

from ..models.config import MountPoint, ProviderInfo


# Container defaults
DEFAULT_WORKDIR = "/workspace"
DEFAULT_USER = "claude"
DEFAULT_SHELL = "/bin/sh"
DEFAULT_NETWORK_MODE = "bridge"

# Docker host integration
DOCKER_SOCKET_PATH = "/var/run/docker.sock"
DOCKER_HOST_INTEGRATION_ENV = "REACTOR_DOCKER_HOST_INTEGRATION"

# Naming
NAME_PREFIX = "reactor"
WORKSPACE_NAME_PREFIX = f"{NAME_PREFIX}-ws"
DISCOVERY_INFIX = "discovery"
MAX_FOLDER_NAME_LENGTH = 20
MAX_COMPONENT_LENGTH = 32
MAX_CONTAINER_NAME_LENGTH = 128
PROJECT_HASH_LENGTH = 8
FALLBACK_FOLDER_NAME = "project"
FALLBACK_ACCOUNT_NAME = "default"

# Labels
LABEL_MANAGED = "com.reactor.managed"
LABEL_ACCOUNT = "com.reactor.account"
LABEL_PROJECT_HASH = "com.reactor.project-hash"
LABEL_WORKSPACE_INSTANCE = "com.reactor.workspace.instance"
LABEL_WORKSPACE_SERVICE = "com.reactor.workspace.service"

# Timeout values (seconds)
DEFAULT_DAEMON_TIMEOUT = 30
STOP_GRACE_PERIOD = 10
IMAGE_BUILD_TIMEOUT = 1800
POST_CREATE_TIMEOUT = 1800

# Descriptor files
WORKSPACE_FILE_NAMES = ("reactor-workspace.yml", "reactor-workspace.yaml")
SUPPORTED_WORKSPACE_VERSION = "1"
DEVCONTAINER_DIR = ".devcontainer"
DEVCONTAINER_FILE = "devcontainer.json"
ROOT_DEVCONTAINER_FILE = ".devcontainer.json"

# Per-account state
REACTOR_HOME_DIR_NAME = ".reactor"
BUILD_IMAGE_REPOSITORY = "reactor-build"
DEFAULT_DOCKERFILE = "Dockerfile"

# Environment variables read at the CLI edge
ISOLATION_PREFIX_ENV = "REACTOR_ISOLATION_PREFIX"
DAEMON_TIMEOUT_ENV = "REACTOR_DOCKER_TIMEOUT"

DEFAULT_IMAGE = "ghcr.io/dyluth/reactor/base:latest"
BUILTIN_IMAGES = {
    "base": "ghcr.io/dyluth/reactor/base:latest",
    "python": "ghcr.io/dyluth/reactor/python:latest",
    "node": "ghcr.io/dyluth/reactor/node:latest",
    "go": "ghcr.io/dyluth/reactor/go:latest",
}

# Credential providers, mounted in this order
BUILTIN_PROVIDERS = (
    ProviderInfo(
        name="claude",
        mounts=[MountPoint(source="claude", target="/home/claude/.claude")],
    ),
    ProviderInfo(
        name="gemini",
        mounts=[MountPoint(source="gemini", target="/home/claude/.gemini")],
    ),
)
