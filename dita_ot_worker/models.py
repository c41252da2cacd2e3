"""Dataclasses used throughout the conversion pipeline."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple


class Stage(enum.Enum):
    FETCH = "fetch"
    CONVERT = "convert"
    PUBLISH = "publish"


class JobState(enum.Enum):
    INIT = "init"
    FETCHING = "fetching"
    CONVERTING = "converting"
    PUBLISHING = "publishing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class JobParameters:
    """Resolved inputs of one job.

    ``source`` and ``destination`` hold the location strings exactly as given,
    after :func:`dita_ot_worker.transfer.validate_uri` has accepted them; the
    transfer functions parse them again when they run.
    """

    source: str
    destination: str
    input_dir: Path
    output_dir: Path
    extra_args: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ConversionInvocation:
    executable: str
    classpath: str
    install_root: Path
    entry_point: str
    input_path: Path
    output_dir: Path
    extra_args: Tuple[str, ...] = ()

    def argv(self) -> List[str]:
        """Render the full command line, pass-through arguments last."""
        return [
            self.executable,
            "-cp",
            self.classpath,
            f"-Dant.home={self.install_root}",
            self.entry_point,
            f"-Dargs.input={self.input_path}",
            f"-Doutput.dir={self.output_dir}",
            *self.extra_args,
        ]


@dataclass(frozen=True)
class JobResult:
    stage: Optional[Stage] = None
    cause: Optional[BaseException] = field(default=None, compare=False)

    @classmethod
    def success(cls) -> "JobResult":
        return cls()

    @classmethod
    def failure(cls, stage: Stage, cause: BaseException) -> "JobResult":
        return cls(stage=stage, cause=cause)

    @property
    def ok(self) -> bool:
        return self.stage is None
