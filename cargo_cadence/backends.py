"""Publisher and version-control backends.

The release pipeline talks to cargo and git only through the two Protocols
below, so tests can hand it recording fakes instead of spawning processes.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from .models import PublishOptions
from .shell import run


class Publisher(Protocol):
    def publish(self, root: Path, options: PublishOptions) -> None: ...


class VersionControl(Protocol):
    def commit(self, root: Path, message: str) -> None: ...

    def create_tag(self, root: Path, tag: str) -> None: ...

    def push_tag(self, root: Path, tag: str) -> None: ...


class Cargo:
    """Publishes crates with ``cargo publish``."""

    def publish(self, root: Path, options: PublishOptions) -> None:
        args = ["cargo", "publish"]
        if options.member_to_publish:
            args += ["--package", options.member_to_publish]
        if options.all_features:
            args.append("--all-features")
        if options.no_verify:
            args.append("--no-verify")
        run(*args, cwd=root)


class NonPublisher:
    """Publisher used with --nopublish: does nothing."""

    def publish(self, root: Path, options: PublishOptions) -> None:
        print(f"  Skipping publish of {options.member_to_publish or root}")


class Git:
    """Commits, tags and pushes with the git CLI."""

    def commit(self, root: Path, message: str) -> None:
        run("git", "commit", "-a", "-m", message, cwd=root)

    def create_tag(self, root: Path, tag: str) -> None:
        run("git", "tag", tag, cwd=root)

    def push_tag(self, root: Path, tag: str) -> None:
        run("git", "push", "origin", "tag", tag, cwd=root)
