"""Fetch and publish job artifacts by URI.

Supported locations:

* ``file:///abs/path`` (or a bare absolute path): local files and directories.
* ``http://`` / ``https://``: downloaded with GET, published with one POST per file.
* ``s3://bucket/key``: an object, or for publishing a key prefix that receives
  every file of the output tree.
* ``jar:<uri>!/<entry>``: a zip archive at ``<uri>``. Fetching extracts the
  archive and returns ``<entry>``; publishing zips the output and ships the
  archive to ``<uri>``.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import Iterator, Optional, Tuple
from urllib.parse import unquote, urlsplit

import boto3
import requests
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

from .errors import TransferError

logger = logging.getLogger(__name__)

SUPPORTED_SCHEMES = {"file", "http", "https", "s3", "jar"}
HTTP_TIMEOUT = 60
CHUNK_SIZE = 8192


def parse_jar_uri(uri: str) -> Tuple[str, Optional[str]]:
    """Split ``jar:<inner>!/<entry>`` into the inner URI and the entry name."""
    if not uri.startswith("jar:"):
        raise ValueError(f"Not a jar URI: {uri}")
    index = uri.find("!/")
    if index == -1:
        raise ValueError(f"Jar URI has no '!/' separator: {uri}")
    entry = uri[index + 2:]
    return uri[4:index], entry or None


def uri_scheme(uri: str) -> str:
    """Return the normalized scheme, treating bare absolute paths as ``file``."""
    scheme = urlsplit(uri).scheme.lower()
    if not scheme and uri.startswith("/"):
        return "file"
    return scheme


def validate_uri(uri: str) -> None:
    """Raise ValueError unless ``uri`` names a location this module can handle."""
    if not uri:
        raise ValueError("Empty location")
    scheme = uri_scheme(uri)
    if scheme not in SUPPORTED_SCHEMES:
        raise ValueError(f"Unsupported location scheme {scheme!r}: {uri}")
    if scheme == "jar":
        inner, _ = parse_jar_uri(uri)
        if uri_scheme(inner) == "jar":
            raise ValueError(f"Nested jar URIs are not supported: {uri}")
        validate_uri(inner)
    elif scheme == "file":
        if not _local_path(uri).is_absolute():
            raise ValueError(f"File location must be absolute: {uri}")
    elif not urlsplit(uri).netloc:
        raise ValueError(f"Location has no host or bucket: {uri}")


def _local_path(uri: str) -> Path:
    return Path(unquote(urlsplit(uri).path))


def _file_name(uri: str) -> str:
    name = unquote(urlsplit(uri).path).rstrip("/").rsplit("/", 1)[-1]
    if not name:
        raise TransferError(f"Cannot derive a file name from {uri}")
    return name


def _s3_client():
    return boto3.client("s3")


def _s3_location(uri: str) -> Tuple[str, str]:
    parts = urlsplit(uri)
    return parts.netloc, unquote(parts.path).lstrip("/")


def _iter_files(root: Path) -> Iterator[Path]:
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for name in sorted(filenames):
            yield Path(dirpath) / name


def fetch(uri: str, local_dir: Path) -> Path:
    """Materialize ``uri`` inside ``local_dir`` and return the local path."""
    try:
        validate_uri(uri)
    except ValueError as exc:
        raise TransferError(str(exc)) from exc

    scheme = uri_scheme(uri)
    if scheme == "file":
        return _fetch_file(uri, local_dir)
    if scheme in ("http", "https"):
        return _fetch_http(uri, local_dir)
    if scheme == "s3":
        return _fetch_s3(uri, local_dir)
    return _fetch_jar(uri, local_dir)


def publish(local: Path, uri: str) -> None:
    """Ship ``local`` (a file or directory tree) to ``uri``."""
    try:
        validate_uri(uri)
    except ValueError as exc:
        raise TransferError(str(exc)) from exc

    scheme = uri_scheme(uri)
    if scheme == "file":
        _publish_file(local, uri)
    elif scheme in ("http", "https"):
        _publish_http(local, uri)
    elif scheme == "s3":
        _publish_s3(local, uri)
    else:
        _publish_jar(local, uri)


def _fetch_file(uri: str, local_dir: Path) -> Path:
    source = _local_path(uri)
    target = local_dir / source.name
    logger.info("Copy %s to %s", source, target)
    try:
        if source.is_dir():
            shutil.copytree(source, target)
        else:
            shutil.copy2(source, target)
    except OSError as exc:
        raise TransferError(f"Failed to copy {source}: {exc}") from exc
    return target


def _fetch_http(uri: str, local_dir: Path) -> Path:
    target = local_dir / _file_name(uri)
    logger.info("Download %s to %s", uri, target)
    try:
        with requests.get(uri, stream=True, timeout=HTTP_TIMEOUT) as response:
            response.raise_for_status()
            with target.open("wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    f.write(chunk)
    except requests.RequestException as exc:
        raise TransferError(f"Failed to download {uri}: {exc}") from exc
    return target


def _fetch_s3(uri: str, local_dir: Path) -> Path:
    bucket, key = _s3_location(uri)
    if not key or key.endswith("/"):
        raise TransferError(f"S3 location names no object: {uri}")
    target = local_dir / key.rsplit("/", 1)[-1]
    logger.info("Download %s to %s", uri, target)
    try:
        _s3_client().download_file(bucket, key, str(target))
    except (OSError, BotoCoreError, ClientError) as exc:
        raise TransferError(f"Failed to download {uri}: {exc}") from exc
    return target


def _fetch_jar(uri: str, local_dir: Path) -> Path:
    inner, entry = parse_jar_uri(uri)
    archive = fetch(inner, local_dir)
    logger.info("Unzip %s to %s", archive, local_dir)
    try:
        with zipfile.ZipFile(archive, "r") as zf:
            zf.extractall(local_dir)
        archive.unlink()
    except (OSError, zipfile.BadZipFile) as exc:
        raise TransferError(f"Failed to extract {archive}: {exc}") from exc

    if entry is None:
        return local_dir
    start = local_dir / entry
    if not start.resolve().is_relative_to(local_dir.resolve()):
        raise TransferError(f"Entry {entry} escapes the workspace")
    if not start.exists():
        raise TransferError(f"Entry {entry} not found in {inner}")
    return start


def _publish_file(local: Path, uri: str) -> None:
    target = _local_path(uri)
    logger.info("Copy %s to %s", local, target)
    try:
        if local.is_dir():
            shutil.copytree(local, target, dirs_exist_ok=True)
        else:
            if target.is_dir() or uri.endswith("/"):
                target = target / local.name
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(local, target)
    except OSError as exc:
        raise TransferError(f"Failed to copy {local} to {target}: {exc}") from exc


def _publish_http(local: Path, uri: str) -> None:
    files = list(_iter_files(local)) if local.is_dir() else [local]
    for path in files:
        logger.info("Upload %s to %s", path, uri)
        try:
            with path.open("rb") as f:
                response = requests.post(uri, data=f, timeout=HTTP_TIMEOUT)
            response.raise_for_status()
        except (OSError, requests.RequestException) as exc:
            raise TransferError(f"Failed to upload {path} to {uri}: {exc}") from exc


def _publish_s3(local: Path, uri: str) -> None:
    bucket, key = _s3_location(uri)
    if local.is_dir():
        prefix = key.rstrip("/")
        uploads = [
            (path, "/".join(filter(None, [prefix, path.relative_to(local).as_posix()])))
            for path in _iter_files(local)
        ]
    elif not key or key.endswith("/"):
        uploads = [(local, key + local.name)]
    else:
        uploads = [(local, key)]

    client = _s3_client()
    for path, object_key in uploads:
        logger.info("Upload %s to s3://%s/%s", path, bucket, object_key)
        try:
            client.upload_file(str(path), bucket, object_key)
        except (OSError, BotoCoreError, ClientError, S3UploadFailedError) as exc:
            raise TransferError(f"Failed to upload {path} to {uri}: {exc}") from exc


def _publish_jar(local: Path, uri: str) -> None:
    inner, _ = parse_jar_uri(uri)
    fd, name = tempfile.mkstemp(prefix="out", suffix=".jar")
    os.close(fd)
    archive = Path(name)
    try:
        logger.info("Zip %s to %s", local, archive)
        try:
            with zipfile.ZipFile(archive, "w", zipfile.ZIP_DEFLATED) as zf:
                if local.is_dir():
                    for path in _iter_files(local):
                        zf.write(path, path.relative_to(local).as_posix())
                else:
                    zf.write(local, local.name)
        except OSError as exc:
            raise TransferError(f"Failed to zip {local}: {exc}") from exc
        publish(archive, inner)
    finally:
        archive.unlink(missing_ok=True)
