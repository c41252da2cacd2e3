"""Classpath discovery for the installed DITA Open Toolkit."""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath
from typing import List

from . import config
from .errors import ConfigError

logger = logging.getLogger(__name__)

CLASSPATH_KEY = "CLASSPATH"
_SELF_REFERENCES = {"$CLASSPATH", "${CLASSPATH}"}
_HOME_PREFIXES = ("$DITA_HOME/", "${DITA_HOME}/")


def find_archives(base: Path) -> List[Path]:
    """Return every archive under ``base`` in a stable walk order."""
    archives: List[Path] = []
    for dirpath, dirnames, filenames in os.walk(base):
        dirnames.sort()
        for name in sorted(filenames):
            if name.endswith(config.ARCHIVE_EXTENSION):
                archives.append(Path(dirpath) / name)
    return archives


def _unquote(value: str, line: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    raise ConfigError(f"Classpath declaration is not a quoted value: {line!r}")


def _fragment(item: str, line: str) -> str:
    for prefix in _HOME_PREFIXES:
        if item.startswith(prefix):
            item = item[len(prefix):]
            break
    if not item:
        raise ConfigError(f"Empty classpath entry in declaration: {line!r}")
    if "$" in item:
        raise ConfigError(f"Unresolved variable in classpath declaration: {line!r}")
    if PurePosixPath(item).is_absolute():
        raise ConfigError(f"Classpath entry must be relative to the installation: {line!r}")
    return item


def parse_classpath_declaration(line: str) -> List[str]:
    """Extract install-relative path fragments from a ``CLASSPATH=...`` line.

    Accepts the plain form ``CLASSPATH="lib/foo.jar"`` as well as the appending
    form ``CLASSPATH="$CLASSPATH:$DITA_HOME/lib/foo.jar"`` written by the
    toolkit's integrator. Lines for other keys return an empty list; a
    ``CLASSPATH`` line of any other shape raises :class:`ConfigError`.
    """
    key, sep, value = line.strip().partition("=")
    if key.strip() != CLASSPATH_KEY:
        return []
    if not sep:
        raise ConfigError(f"Classpath declaration has no value: {line!r}")

    payload = _unquote(value.strip(), line)
    fragments = [
        _fragment(item, line)
        for item in payload.split(":")
        if item not in _SELF_REFERENCES
    ]
    if not fragments:
        raise ConfigError(f"Classpath declaration names no entries: {line!r}")
    return fragments


def read_declared_entries(base: Path) -> List[Path]:
    """Read the extra classpath entries declared in ``config/env.sh``."""
    env_file = base / config.ENV_DECLARATIONS
    entries: List[Path] = []
    try:
        with env_file.open("r", encoding="utf-8") as f:
            for line in f:
                if not line.startswith(CLASSPATH_KEY):
                    continue
                for fragment in parse_classpath_declaration(line):
                    entries.append(base / fragment)
    except FileNotFoundError as exc:
        raise ConfigError(f"Failed to open {env_file}: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Failed to read {env_file}: {exc}") from exc
    return entries


def classpath_entries(base: Path) -> List[Path]:
    """Base config directory first, then discovered archives, then declared entries."""
    entries = [base / "config"]
    entries.extend(find_archives(base))
    entries.extend(read_declared_entries(base))
    logger.debug("Resolved %d classpath entries under %s", len(entries), base)
    return entries


def get_classpath(base: Path) -> str:
    return os.pathsep.join(str(entry) for entry in classpath_entries(base))
