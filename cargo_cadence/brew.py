"""Homebrew formula generation.

Renders a formula for a crate's prebuilt binaries from the crate manifest
and the Linux / macOS archive directories.
"""

from __future__ import annotations

import re
from pathlib import Path

from jinja2 import Environment, FileSystemLoader
from pydantic import BaseModel

from .artifacts import BinaryPackage, new_binary_package
from .errors import NoOutputError
from .store import FileSystemStore, manifest_path, read_member

TEMPLATES_DIR = Path(__file__).parent / "templates"


class Brew(BaseModel):
    formula: str
    name: str
    description: str = ""
    homepage: str | None = None
    version: str
    license: str = ""
    linux: BinaryPackage | None = None
    macos: BinaryPackage | None = None
    macos_arm: BinaryPackage | None = None


def formula_class_name(name: str) -> str:
    """Homebrew class name for a crate: "my-tool" → "MyTool"."""
    return "".join(part[:1].upper() + part[1:] for part in re.split(r"[-_]", name) if part)


def render_formula(brew: Brew) -> str:
    env = Environment(
        loader=FileSystemLoader(TEMPLATES_DIR),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    return env.get_template("formula.rb.j2").render(**brew.model_dump())


def new_brew(
    crate_dir: Path,
    base_uri: str,
    *,
    linux_dir: Path | None = None,
    macos_dir: Path | None = None,
    macos_arm_dir: Path | None = None,
) -> str:
    """Build the formula text for a crate.

    Raises:
        NoOutputError: If neither a Linux nor a macOS directory is given, or a
            given directory has no archive.
    """
    if linux_dir is None and macos_dir is None:
        raise NoOutputError("Neither a Linux nor a macOS package directory was given")

    manifest = read_member(FileSystemStore(), manifest_path(crate_dir))

    def package(directory: Path | None) -> BinaryPackage | None:
        return new_binary_package(directory, base_uri) if directory is not None else None

    brew = Brew(
        formula=formula_class_name(manifest.name),
        name=manifest.name,
        description=manifest.description or "",
        homepage=manifest.homepage,
        version=manifest.version,
        license=manifest.license or "",
        linux=package(linux_dir),
        macos=package(macos_dir),
        macos_arm=package(macos_arm_dir),
    )
    return render_formula(brew)
