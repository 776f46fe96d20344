"""Release artifact helpers for package-manager manifests.

A manifest entry needs two facts about each platform archive: where it can
be downloaded and its SHA-256. Both are derived from a local directory that
holds the built ``.tar.gz`` and the base URI it will be uploaded under.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit

from pydantic import BaseModel

from .errors import NoOutputError, UsageError

PKG_EXTENSION = ".gz"
CHUNK_SIZE = 8192


class BinaryPackage(BaseModel):
    url: str
    hash: str


def sha256_file(path: Path) -> str:
    """Return the hex SHA-256 of a file, read in chunks."""
    digest = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def join_url(base: str, path: str) -> str:
    """Append a path to a base URL with exactly one slash between segments.

    A trailing slash on ``path`` is kept.

    Examples:
        join_url("http://localhost/x/", "y") → "http://localhost/x/y"
        join_url("http://localhost", "/x/") → "http://localhost/x/"

    Raises:
        UsageError: If ``base`` is not an absolute URL.
    """
    parts = urlsplit(base)
    if not parts.scheme or not parts.netloc:
        raise UsageError(f"Invalid base URI {base!r}")
    segments = [s.strip("/") for s in (parts.path, path) if s.strip("/")]
    joined = "/" + "/".join(segments)
    if len(path) > 1 and path.endswith("/"):
        joined += "/"
    return urlunsplit((parts.scheme, parts.netloc, joined, parts.query, parts.fragment))


def find_archive(directory: Path) -> Path:
    """Return the first ``.gz`` file in a directory (by name).

    Raises:
        NoOutputError: If the directory cannot be listed or has no archive.
    """
    try:
        entries = sorted(p for p in Path(directory).iterdir() if p.is_file())
    except OSError as exc:
        raise NoOutputError(f"Cannot list {directory}: {exc}") from exc
    for entry in entries:
        if entry.suffix == PKG_EXTENSION:
            return entry
    raise NoOutputError(f"No file with extension {PKG_EXTENSION} found in {directory}")


def new_binary_package(directory: Path, base_uri: str) -> BinaryPackage:
    """Describe the archive in ``directory`` as a downloadable package."""
    archive = find_archive(directory)
    try:
        digest = sha256_file(archive)
    except OSError as exc:
        raise NoOutputError(f"Cannot hash {archive}: {exc}") from exc
    return BinaryPackage(url=join_url(base_uri, archive.name), hash=digest)
