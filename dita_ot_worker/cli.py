"""Command-line entrypoint for the DITA-OT conversion worker."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, Mapping, Optional

from . import config, worker
from .errors import ConfigError, WorkspaceError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_JOB_FAILED = 1
EXIT_BAD_SETUP = 2


def _configure_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(message)s")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Convert the document named by $input with DITA-OT and publish the "
            "result to $output. Every argument except --verbose is passed to the "
            "toolkit unchanged."
        ),
        add_help=False,
        allow_abbrev=False,
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def run(
    argv: Optional[List[str]] = None, environ: Optional[Mapping[str, str]] = None
) -> int:
    """Run one job and return the process exit status."""
    env = os.environ if environ is None else environ
    parser = build_parser()
    args, extra_args = parser.parse_known_args(sys.argv[1:] if argv is None else argv)
    cfg = config.Config.from_env(env)
    _configure_logging(verbose=args.verbose or cfg.verbose)

    try:
        with worker.prepare_job(
            env, extra_args, temp_root=cfg.temp_root, keep=cfg.keep_workspaces
        ) as params:
            result = worker.run_job(params, cfg)
    except ConfigError as exc:
        logger.critical("Invalid job configuration: %s", exc)
        return EXIT_BAD_SETUP
    except WorkspaceError as exc:
        logger.critical("%s", exc)
        return EXIT_BAD_SETUP

    if not result.ok:
        logger.critical("Job failed during %s: %s", result.stage.value, result.cause)
        return EXIT_JOB_FAILED
    logger.info("Job finished: published to %s", params.destination)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> None:
    raise SystemExit(run(argv))


if __name__ == "__main__":
    main()
