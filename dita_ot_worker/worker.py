"""Job orchestration: fetch the source, convert it, publish the output."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, List, Mapping, Optional, Sequence, Tuple

from . import config, convert, transfer, workspace
from .errors import ConfigError
from .models import JobParameters, JobResult, JobState, Stage

logger = logging.getLogger(__name__)

Fetcher = Callable[[str, Path], Path]
Converter = Callable[[Path, Path, Sequence[str]], None]
Publisher = Callable[[Path, str], None]

_STAGE_STATES = {
    Stage.FETCH: JobState.FETCHING,
    Stage.CONVERT: JobState.CONVERTING,
    Stage.PUBLISH: JobState.PUBLISHING,
}


def parse_location(name: str, value: Optional[str]) -> str:
    """Validate one job location, raising ConfigError if it is unusable."""
    if not value:
        raise ConfigError(f"{name.capitalize()} environment variable not set")
    try:
        transfer.validate_uri(value)
    except ValueError as exc:
        raise ConfigError(f"Failed to parse {name} argument {value}: {exc}") from exc
    return value


def read_locations(environ: Mapping[str, str]) -> Tuple[str, str]:
    source = parse_location(config.INPUT_ENV, environ.get(config.INPUT_ENV))
    destination = parse_location(config.OUTPUT_ENV, environ.get(config.OUTPUT_ENV))
    return source, destination


@contextmanager
def prepare_job(
    environ: Mapping[str, str],
    extra_args: Sequence[str] = (),
    temp_root: Optional[Path] = None,
    keep: bool = False,
) -> Iterator[JobParameters]:
    """Resolve job parameters, allocating workspaces only once they are valid."""
    source, destination = read_locations(environ)
    with workspace.job_workspaces(temp_root, keep=keep) as (input_dir, output_dir):
        yield JobParameters(
            source=source,
            destination=destination,
            input_dir=input_dir,
            output_dir=output_dir,
            extra_args=tuple(extra_args),
        )


class JobOrchestrator:
    """Runs the three stages strictly in order; the first failure is terminal."""

    def __init__(
        self,
        params: JobParameters,
        fetch: Fetcher,
        convert: Converter,
        publish: Publisher,
    ) -> None:
        self.params = params
        self._fetch = fetch
        self._convert = convert
        self._publish = publish
        self.state = JobState.INIT
        self.history: List[JobState] = [JobState.INIT]

    def _enter(self, state: JobState) -> None:
        logger.debug("Job state %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def _fail(self, stage: Stage, exc: Exception) -> JobResult:
        logger.exception("Stage %s failed", stage.value)
        self._enter(JobState.FAILED)
        return JobResult.failure(stage, exc)

    def run(self) -> JobResult:
        if self.state is not JobState.INIT:
            raise RuntimeError(f"Job already ran (state {self.state.value})")
        params = self.params

        self._enter(_STAGE_STATES[Stage.FETCH])
        try:
            start = self._fetch(params.source, params.input_dir)
        except Exception as exc:
            return self._fail(Stage.FETCH, exc)

        self._enter(_STAGE_STATES[Stage.CONVERT])
        try:
            self._convert(start, params.output_dir, params.extra_args)
        except Exception as exc:
            return self._fail(Stage.CONVERT, exc)

        self._enter(_STAGE_STATES[Stage.PUBLISH])
        try:
            self._publish(params.output_dir, params.destination)
        except Exception as exc:
            return self._fail(Stage.PUBLISH, exc)

        self._enter(JobState.DONE)
        return JobResult.success()


def run_job(params: JobParameters, cfg: Optional[config.Config] = None) -> JobResult:
    """Run one job against the real transfer and toolchain collaborators."""
    cfg = cfg or config.Config()

    def _convert(input_path: Path, output_dir: Path, extra_args: Sequence[str]) -> None:
        convert.run_conversion(
            input_path, output_dir, extra_args, install_root=cfg.install_root, java=cfg.java
        )

    logger.info("Run DITA-OT: %s -> %s", params.source, params.destination)
    orchestrator = JobOrchestrator(params, transfer.fetch, _convert, transfer.publish)
    return orchestrator.run()
