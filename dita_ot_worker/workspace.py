"""Per-job temporary workspaces."""

from __future__ import annotations

import logging
import shutil
import tempfile
from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import Iterator, Optional, Tuple

from .errors import WorkspaceError

logger = logging.getLogger(__name__)


def create_workspace(prefix: str, temp_root: Optional[Path] = None) -> Path:
    """Allocate a fresh, uniquely named directory owned by this job."""
    try:
        path = Path(tempfile.mkdtemp(prefix=prefix, dir=temp_root))
    except OSError as exc:
        raise WorkspaceError(f"Failed to create temporary directory: {exc}") from exc
    logger.debug("Created workspace %s", path)
    return path


def remove_workspace(path: Path) -> None:
    shutil.rmtree(path, ignore_errors=True)
    logger.debug("Removed workspace %s", path)


@contextmanager
def job_workspaces(
    temp_root: Optional[Path] = None, keep: bool = False
) -> Iterator[Tuple[Path, Path]]:
    """Yield (input_dir, output_dir) and remove both on every exit path."""
    with ExitStack() as stack:
        input_dir = create_workspace("in", temp_root)
        if not keep:
            stack.callback(remove_workspace, input_dir)
        output_dir = create_workspace("out", temp_root)
        if not keep:
            stack.callback(remove_workspace, output_dir)
        else:
            logger.info("Keeping workspaces %s and %s", input_dir, output_dir)
        yield input_dir, output_dir
