"""Configuration defaults for the DITA-OT conversion worker."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

# Default locations; can be overridden via environment variables.
DEFAULT_INSTALL_ROOT = Path("/opt/app")
DEFAULT_JAVA = "java"

# Job locations are handed to the worker by whoever launches it.
INPUT_ENV = "input"
OUTPUT_ENV = "output"

ENTRY_POINT = "org.apache.tools.ant.Main"
ARCHIVE_EXTENSION = ".jar"
ENV_DECLARATIONS = Path("config") / "env.sh"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _flag(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() in _TRUE_VALUES


@dataclass
class Config:
    """Simple config container."""

    install_root: Path = DEFAULT_INSTALL_ROOT
    java: str = DEFAULT_JAVA
    temp_root: Optional[Path] = None
    keep_workspaces: bool = False
    verbose: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        env = os.environ if environ is None else environ
        temp_root = env.get("WORKER_TMPDIR")
        return cls(
            install_root=Path(env.get("DITA_HOME") or DEFAULT_INSTALL_ROOT),
            java=env.get("JAVA") or DEFAULT_JAVA,
            temp_root=Path(temp_root) if temp_root else None,
            keep_workspaces=_flag(env.get("WORKER_KEEP_WORKSPACES")),
            verbose=_flag(env.get("WORKER_VERBOSE")),
        )
