"""Scoop bucket manifest generation (Windows, 64-bit binaries only)."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from .artifacts import new_binary_package
from .store import FileSystemStore, manifest_path, read_member


class Binary(BaseModel):
    url: str
    hash: str | None = None
    bin: list[str] = Field(default_factory=list)


class Architecture(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    x64: Binary = Field(alias="64bit")


class Scoop(BaseModel):
    description: str = ""
    homepage: str | None = None
    version: str
    license: str = ""
    architecture: Architecture


def new_scoop(crate_dir: Path, binary_dir: Path, executable: str, base_uri: str) -> str:
    """Return the pretty-printed Scoop manifest JSON for a crate.

    Raises:
        NoOutputError: If ``binary_dir`` holds no archive.
        ManifestIOError / ManifestParseError: If the crate manifest is unusable.
    """
    package = new_binary_package(binary_dir, base_uri)
    manifest = read_member(FileSystemStore(), manifest_path(crate_dir))
    scoop = Scoop(
        description=manifest.description or "",
        homepage=manifest.homepage,
        version=manifest.version,
        license=manifest.license or "",
        architecture=Architecture(
            x64=Binary(url=package.url, hash=package.hash, bin=[executable])
        ),
    )
    return scoop.model_dump_json(by_alias=True, exclude_none=True, indent=2)
