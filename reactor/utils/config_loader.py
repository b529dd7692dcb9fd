"""Locate and resolve a project's devcontainer.json."""

import getpass
import json
import logging
import os
from pathlib import Path
from typing import List, Optional, Union

from pydantic import ValidationError

from ..core.constants import (
    BUILTIN_IMAGES,
    DEFAULT_IMAGE,
    DEVCONTAINER_DIR,
    DEVCONTAINER_FILE,
    ROOT_DEVCONTAINER_FILE,
)
from ..core.naming import project_hash
from ..core.ports import parse_port_mapping, port_mapping_from_int
from ..models.config import DevcontainerConfig, PortMapping, ResolvedConfig
from ..models.settings import Settings
from ..services.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def find_devcontainer_file(directory: Union[str, Path]) -> Optional[Path]:
    """Find the devcontainer descriptor of a project.

    ``.devcontainer/devcontainer.json`` takes precedence over
    ``.devcontainer.json`` at the project root.
    """
    directory = Path(directory)
    for candidate in (directory / DEVCONTAINER_DIR / DEVCONTAINER_FILE,
                      directory / ROOT_DEVCONTAINER_FILE):
        if candidate.is_file():
            return candidate
    return None


def strip_jsonc(text: str) -> str:
    """Remove comments and trailing commas so the json module can parse the text."""
    out = []
    i = 0
    length = len(text)
    in_string = False

    while i < length:
        char = text[i]
        if in_string:
            out.append(char)
            if char == '\\' and i + 1 < length:
                out.append(text[i + 1])
                i += 1
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
            out.append(char)
        elif text.startswith('//', i):
            newline = text.find('\n', i)
            i = length if newline == -1 else newline
            continue
        elif text.startswith('/*', i):
            end = text.find('*/', i + 2)
            i = length if end == -1 else end + 2
            continue
        elif char in '}]':
            # Drop a trailing comma before the closing bracket
            j = len(out) - 1
            while j >= 0 and out[j].isspace():
                j -= 1
            if j >= 0 and out[j] == ',':
                del out[j]
            out.append(char)
        else:
            out.append(char)
        i += 1

    return ''.join(out)


def load_devcontainer_config(path: Union[str, Path]) -> DevcontainerConfig:
    """Parse a devcontainer.json file, comments allowed.

    Raises:
        ConfigurationError: If the file cannot be read or is malformed
    """
    path = Path(path)
    try:
        text = path.read_text(encoding='utf-8')
    except OSError as e:
        raise ConfigurationError(f"failed to read devcontainer file {path}: {e}") from e

    try:
        data = json.loads(strip_jsonc(text))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"failed to parse {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"failed to parse {path}: top level must be an object")

    try:
        return DevcontainerConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"invalid devcontainer config in {path}: {e}") from e


def parse_forward_ports(forward_ports: List[Union[int, str]]) -> List[PortMapping]:
    """Parse ``forwardPorts`` entries, either ``8080`` or ``"8080:3000"``."""
    mappings = []
    for index, entry in enumerate(forward_ports):
        try:
            if isinstance(entry, bool):
                raise ConfigurationError(f"invalid type {type(entry).__name__}, expected number or string")
            if isinstance(entry, int):
                mappings.append(port_mapping_from_int(entry))
            else:
                mappings.append(parse_port_mapping(entry))
        except ConfigurationError as e:
            raise ConfigurationError(f"forwardPorts[{index}]: {e}") from e
    return mappings


def validate_account(account: str) -> None:
    """Reject account names that are unsafe as a directory name."""
    if not account:
        raise ConfigurationError("account cannot be empty")
    if '/' in account or '\\' in account:
        raise ConfigurationError(f"account name '{account}' cannot contain path separators")
    if '..' in account:
        raise ConfigurationError(f"account name '{account}' cannot contain '..'")
    if account.startswith('.'):
        raise ConfigurationError(f"account name '{account}' cannot start with '.'")


def resolve_image(project_image: str) -> str:
    """Pick the run image; built-in aliases such as ``python`` are expanded."""
    if not project_image:
        return DEFAULT_IMAGE
    return BUILTIN_IMAGES.get(project_image, project_image)


class DevcontainerResolver:
    """Resolve a project directory into a ResolvedConfig.

    Instances are callable so they can be handed to the orchestrator as a
    plain config-resolution function.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()

    def __call__(self, project_dir: Union[str, Path], account_override: Optional[str] = None) -> ResolvedConfig:
        return self.resolve(project_dir, account_override)

    def resolve(self, project_dir: Union[str, Path], account_override: Optional[str] = None) -> ResolvedConfig:
        """Resolve configuration for ``project_dir``.

        Args:
            project_dir: Project root directory
            account_override: Account taking precedence over the descriptor's

        Returns:
            The resolved configuration

        Raises:
            ConfigurationError: If no descriptor exists or it is invalid
        """
        project_root = os.path.abspath(str(project_dir))
        config_path = find_devcontainer_file(project_root)
        if config_path is None:
            raise ConfigurationError(
                f"no devcontainer.json found in "
                f"{os.path.join(project_root, DEVCONTAINER_DIR, DEVCONTAINER_FILE)} or "
                f"{os.path.join(project_root, ROOT_DEVCONTAINER_FILE)}"
            )

        logger.debug(f"Resolving configuration from {config_path}")
        devcontainer = load_devcontainer_config(config_path)

        account = ""
        default_command = ""
        if devcontainer.customizations and devcontainer.customizations.reactor:
            account = devcontainer.customizations.reactor.account
            default_command = devcontainer.customizations.reactor.default_command
        account = account_override or account or self._system_account()
        validate_account(account)

        if devcontainer.build is not None and not devcontainer.image:
            image = ""
        else:
            image = resolve_image(devcontainer.image)

        try:
            forward_ports = parse_forward_ports(devcontainer.forward_ports)
        except ConfigurationError as e:
            raise ConfigurationError(f"failed to parse forwardPorts in {config_path}: {e}") from e

        hash_value = project_hash(project_root)
        account_config_dir = self.settings.reactor_home / account
        project_config_dir = account_config_dir / hash_value

        return ResolvedConfig(
            account=account,
            image=image,
            build=devcontainer.build,
            remote_user=devcontainer.remote_user,
            default_command=default_command,
            forward_ports=forward_ports,
            post_create_command=devcontainer.post_create_command,
            project_root=project_root,
            project_hash=hash_value,
            account_config_dir=str(account_config_dir),
            project_config_dir=str(project_config_dir),
            config_path=str(config_path),
        )

    @staticmethod
    def _system_account() -> str:
        try:
            return getpass.getuser()
        except (KeyError, OSError) as e:
            raise ConfigurationError(
                f"failed to determine system username for the default account: {e}"
            ) from e
