"""Exceptions raised by the worker pipeline."""

from __future__ import annotations

from typing import Optional


class WorkerError(Exception):
    """Base class for all job failures."""


class ConfigError(WorkerError):
    """Missing or malformed job input, or unreadable toolchain declarations."""


class WorkspaceError(WorkerError, OSError):
    """A temporary workspace could not be allocated."""


class TransferError(WorkerError, OSError):
    """Fetching or publishing an artifact failed."""


class ConversionError(WorkerError):
    """The toolchain could not be started or exited non-zero."""

    def __init__(self, message: str, returncode: Optional[int] = None) -> None:
        super().__init__(message)
        self.returncode = returncode
