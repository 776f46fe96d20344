"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from cargo_cadence.models import PublishOptions
from cargo_cadence.store import MemoryStore

ROOT = Path("/ws")
ROOT_MANIFEST = ROOT / "Cargo.toml"

WKS = """\
[workspace]

members = [
    "solv",
    "solp",
]
"""

SOLP = """\
[package]
name = "solp"
description = "Microsoft Visual Studio solution parsing library"
repository = "https://github.com/aegoroff/solv"
version = "0.1.13"
edition = "2018"
license = "MIT"
workspace = ".."

[build-dependencies] # <-- We added this and everything after!
lalrpop = "0.19"

[dependencies]
lalrpop-util = "0.19"
regex = "1"
jwalk = "0.6"
phf = { version = "0.8", features = ["macros"] }
itertools = "0.10"
"""

SOLV = """\
[package]
name = "solv"
description = "Microsoft Visual Studio solution validator"
repository = "https://github.com/aegoroff/solv"
version = "0.1.13"
edition = "2018"
license = "MIT"
workspace = ".."

# See more keys and their definitions at https://doc.rust-lang.org/cargo/reference/manifest.html

[dependencies]
prettytable-rs = "^0.8"
ansi_term = "0.12"
humantime = "2.1"
clap = "2"
fnv = "1"
solp = { path = "../solp/", version = "0.1.13" }
"""


def crate(name: str, version: str = "0.1.0", deps: str = "") -> str:
    """Build a minimal member Cargo.toml."""
    text = f'[package]\nname = "{name}"\nversion = "{version}"\nworkspace = ".."\n'
    if deps:
        text += f"\n[dependencies]\nx = \"^0.8\"\n{deps}\n"
    return text


def workspace_store(members: dict[str, str], root: Path = ROOT) -> MemoryStore:
    """Build an in-memory workspace from member name → Cargo.toml text."""
    listed = ", ".join(f'"{m}"' for m in members)
    files = {root / "Cargo.toml": f"[workspace]\nmembers = [ {listed} ]\n"}
    for member, text in members.items():
        files[root / member / "Cargo.toml"] = text
    return MemoryStore(files)


def write_workspace(root: Path, members: dict[str, str]) -> Path:
    """Write a workspace to disk and return its root manifest path."""
    listed = ", ".join(f'"{m}"' for m in members)
    (root / "Cargo.toml").write_text(f"[workspace]\nmembers = [ {listed} ]\n")
    for member, text in members.items():
        (root / member).mkdir(parents=True, exist_ok=True)
        (root / member / "Cargo.toml").write_text(text)
    return root / "Cargo.toml"


class Recorder:
    """Records publisher and VCS calls in one ordered list.

    ``fail_on`` maps a call name (``commit``, ``publish``, ``create_tag``,
    ``push_tag``) to the 1-based call number that should raise ``error``.
    """

    def __init__(self, fail_on: dict[str, int] | None = None, error: Exception | None = None):
        self.calls: list[tuple[str, ...]] = []
        self.fail_on = fail_on or {}
        self.error = error
        self._counts: dict[str, int] = {}

    def _record(self, name: str, *args: str) -> None:
        self._counts[name] = self._counts.get(name, 0) + 1
        if self.fail_on.get(name) == self._counts[name]:
            raise self.error or RuntimeError(name)
        self.calls.append((name, *args))

    def publish(self, root: Path, options: PublishOptions) -> None:
        self._record("publish", options.member_to_publish or "")

    def commit(self, root: Path, message: str) -> None:
        self._record("commit", message)

    def create_tag(self, root: Path, tag: str) -> None:
        self._record("create_tag", tag)

    def push_tag(self, root: Path, tag: str) -> None:
        self._record("push_tag", tag)

    def names(self) -> list[str]:
        return [c[0] for c in self.calls]


@pytest.fixture
def solv_store() -> MemoryStore:
    """The two-crate solv workspace: solv pins solp."""
    return MemoryStore(
        {
            ROOT_MANIFEST: WKS,
            ROOT / "solv" / "Cargo.toml": SOLV,
            ROOT / "solp" / "Cargo.toml": SOLP,
        }
    )


@pytest.fixture
def chain_store() -> MemoryStore:
    """Four crates: d pins a, b pins d, c pins b."""
    return workspace_store(
        {
            "a": crate("a"),
            "b": crate("b", deps='d = { path = "../d/", version = "0.1.0" }'),
            "c": crate("c", deps='b = { path = "../b/", version = "0.1.0" }'),
            "d": crate("d", deps='a = { path = "../a/", version = "0.1.0" }'),
        }
    )


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()
