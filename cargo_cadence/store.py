"""Manifest reading and writing utilities.

Uses tomlkit to preserve formatting and comments when modifying Cargo.toml
files. Only the version scalars we rewrite change; everything else in the
file stays byte-for-byte identical, which keeps release commits reviewable.

File access goes through a ManifestStore so the same code runs against the
real filesystem or an in-memory workspace.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import tomlkit
from pydantic import ValidationError
from tomlkit.exceptions import TOMLKitError

from .errors import ManifestIOError, ManifestParseError
from .models import (
    DEPENDENCY_SECTIONS,
    MemberManifest,
    PinnedDependency,
    PlainDependency,
    TableDependency,
)

CARGO_CONFIG = "Cargo.toml"


class ManifestStore:
    """Whole-file text access to manifests."""

    def read(self, path: Path) -> str:
        raise NotImplementedError

    def write(self, path: Path, text: str) -> None:
        raise NotImplementedError

    def exists(self, path: Path) -> bool:
        raise NotImplementedError


class FileSystemStore(ManifestStore):
    """Reads and writes manifests on the real filesystem."""

    def read(self, path: Path) -> str:
        try:
            return Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise ManifestIOError(f"Cannot read {path}: {exc}") from exc

    def write(self, path: Path, text: str) -> None:
        try:
            Path(path).write_text(text, encoding="utf-8")
        except OSError as exc:
            raise ManifestIOError(f"Cannot write {path}: {exc}") from exc

    def exists(self, path: Path) -> bool:
        return Path(path).is_file()


class MemoryStore(ManifestStore):
    """Keeps manifests in a dict keyed by path. Used by tests and dry runs."""

    def __init__(self, files: Mapping[str | Path, str] | None = None) -> None:
        self.files: dict[str, str] = {}
        for path, text in (files or {}).items():
            self.files[_key(path)] = text

    def read(self, path: Path) -> str:
        try:
            return self.files[_key(path)]
        except KeyError:
            raise ManifestIOError(f"Cannot read {path}: no such file") from None

    def write(self, path: Path, text: str) -> None:
        self.files[_key(path)] = text

    def exists(self, path: Path) -> bool:
        return _key(path) in self.files


def _key(path: str | Path) -> str:
    return Path(path).as_posix()


def manifest_path(directory: str | Path) -> Path:
    """Return the Cargo.toml path inside a crate or workspace directory."""
    return Path(directory) / CARGO_CONFIG


def load_document(store: ManifestStore, path: Path) -> tomlkit.TOMLDocument:
    """Load and parse a manifest.

    Returns a TOMLDocument that preserves formatting when modified and saved.

    Raises:
        ManifestIOError: If the file cannot be read.
        ManifestParseError: If the file is not valid TOML.
    """
    text = store.read(path)
    try:
        return tomlkit.parse(text)
    except TOMLKitError as exc:
        raise ManifestParseError(f"Invalid TOML in {path}: {exc}") from exc


def save_document(store: ManifestStore, path: Path, doc: tomlkit.TOMLDocument) -> None:
    """Save a TOMLDocument back, preserving original formatting."""
    store.write(path, tomlkit.dumps(doc))


def workspace_members(doc: tomlkit.TOMLDocument, path: Path) -> list[str]:
    """Extract ``[workspace].members`` in declaration order.

    Raises:
        ManifestParseError: If the manifest has no workspace members list.
    """
    members = doc.get("workspace", {}).get("members")
    if not isinstance(members, list):
        raise ManifestParseError(f"No [workspace] members defined in {path}")
    return [str(m) for m in members]


def parse_dependency(raw: Any) -> PlainDependency | PinnedDependency | TableDependency | None:
    """Classify one dependency table entry.

    Returns None for entry types Cargo does not use for requirements
    (booleans, arrays).
    """
    if isinstance(raw, str):
        return PlainDependency(requirement=str(raw))
    if isinstance(raw, Mapping):
        attributes = {str(k): _plain(v) for k, v in raw.items()}
        version = attributes.pop("version", None)
        if isinstance(version, str):
            path = attributes.pop("path", None)
            return PinnedDependency(
                version=version,
                path=path if isinstance(path, str) else None,
                attributes=attributes,
            )
        if version is not None:
            attributes["version"] = version
        return TableDependency(attributes=attributes)
    return None


def parse_member(doc: tomlkit.TOMLDocument, path: Path) -> MemberManifest:
    """Build a typed MemberManifest from a parsed member document.

    Raises:
        ManifestParseError: If ``[package]`` lacks a name or a valid version.
    """
    package = doc.get("package")
    if not isinstance(package, Mapping):
        raise ManifestParseError(f"No [package] section in {path}")

    sections: dict[str, dict[str, Any]] = {}
    for section in DEPENDENCY_SECTIONS:
        table = doc.get(section, {})
        parsed: dict[str, Any] = {}
        if isinstance(table, Mapping):
            for dep_name, raw in table.items():
                spec = parse_dependency(raw)
                if spec is not None:
                    parsed[str(dep_name)] = spec
        sections[section.replace("-", "_")] = parsed

    try:
        return MemberManifest(
            name=_plain(package.get("name")),
            version=_plain(package.get("version")),
            description=_optional_str(package.get("description")),
            license=_optional_str(package.get("license")),
            homepage=_optional_str(package.get("homepage")),
            **sections,
        )
    except ValidationError as exc:
        raise ManifestParseError(f"Invalid [package] in {path}: {exc}") from exc


def read_member(store: ManifestStore, path: Path) -> MemberManifest:
    """Read and parse a member manifest in one go."""
    return parse_member(load_document(store, path), path)


def set_scalar(doc: tomlkit.TOMLDocument, key_path: Sequence[str], value: str) -> None:
    """Replace one existing scalar in place, keeping all other formatting.

    Raises:
        ManifestParseError: If any key along the path is missing or the
            target is a table rather than a scalar.
    """
    *parents, leaf = key_path
    container: Any = doc
    for key in parents:
        if not isinstance(container, Mapping) or key not in container:
            raise ManifestParseError(f"Missing key {'.'.join(key_path)!r}")
        container = container[key]
    if not isinstance(container, Mapping) or leaf not in container:
        raise ManifestParseError(f"Missing key {'.'.join(key_path)!r}")
    if isinstance(container[leaf], Mapping):
        raise ManifestParseError(f"Key {'.'.join(key_path)!r} is a table, not a value")
    container[leaf] = value


def _plain(value: Any) -> Any:
    """Unwrap tomlkit items into plain Python values."""
    unwrap = getattr(value, "unwrap", None)
    return unwrap() if unwrap is not None else value


def _optional_str(value: Any) -> str | None:
    value = _plain(value)
    return value if isinstance(value, str) else None
