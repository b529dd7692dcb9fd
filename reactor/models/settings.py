"""Process-level settings injected into the core."""

import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator


class Settings(BaseModel):
    """Runtime settings.

    Read from the environment once, at the CLI edge, and passed down
    explicitly so naming and path helpers stay pure.
    """
    isolation_prefix: Optional[str] = None
    daemon_timeout: int = Field(default=30, gt=0)
    home_dir: Optional[str] = None

    @field_validator('isolation_prefix')
    @classmethod
    def _blank_prefix_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Settings':
        """Create settings from environment variables."""
        from ..core.constants import (
            DAEMON_TIMEOUT_ENV,
            DEFAULT_DAEMON_TIMEOUT,
            ISOLATION_PREFIX_ENV,
        )

        env = os.environ if environ is None else environ
        timeout = env.get(DAEMON_TIMEOUT_ENV)
        return cls(
            isolation_prefix=env.get(ISOLATION_PREFIX_ENV),
            daemon_timeout=int(timeout) if timeout else DEFAULT_DAEMON_TIMEOUT,
        )

    @property
    def reactor_home(self) -> Path:
        """Root of per-account state, ``~/.reactor`` or ``~/.reactor-<prefix>``."""
        from ..core.constants import REACTOR_HOME_DIR_NAME

        home = Path(self.home_dir) if self.home_dir else Path.home()
        dirname = REACTOR_HOME_DIR_NAME
        if self.isolation_prefix:
            dirname = f"{REACTOR_HOME_DIR_NAME}-{self.isolation_prefix}"
        return home / dirname
