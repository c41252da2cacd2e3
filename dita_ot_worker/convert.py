"""Conversion layer driving the DITA-OT Ant entry point."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Sequence

from . import config, toolchain
from .errors import ConversionError
from .models import ConversionInvocation

logger = logging.getLogger(__name__)


def build_invocation(
    input_path: Path,
    output_dir: Path,
    extra_args: Sequence[str] = (),
    install_root: Path = config.DEFAULT_INSTALL_ROOT,
    java: str = config.DEFAULT_JAVA,
) -> ConversionInvocation:
    """Resolve the classpath and assemble the toolchain command line."""
    return ConversionInvocation(
        executable=java,
        classpath=toolchain.get_classpath(install_root),
        install_root=install_root,
        entry_point=config.ENTRY_POINT,
        input_path=input_path,
        output_dir=output_dir,
        extra_args=tuple(extra_args),
    )


def run_conversion(
    input_path: Path,
    output_dir: Path,
    extra_args: Sequence[str] = (),
    install_root: Path = config.DEFAULT_INSTALL_ROOT,
    java: str = config.DEFAULT_JAVA,
) -> None:
    """Run the toolchain and block until it exits.

    The subprocess inherits this process's stdout and its stderr is merged
    into it, so toolchain output reaches the operator unparsed.
    """
    invocation = build_invocation(input_path, output_dir, extra_args, install_root, java)
    cmd = invocation.argv()
    logger.info("Args: %s", cmd)
    try:
        proc = subprocess.run(cmd, stderr=subprocess.STDOUT)
    except OSError as exc:
        raise ConversionError(f"Failed to start {invocation.executable}: {exc}") from exc
    if proc.returncode != 0:
        raise ConversionError(
            f"Failed to convert {input_path}: exit status {proc.returncode}",
            returncode=proc.returncode,
        )
    logger.info("Converted %s into %s", input_path, output_dir)
