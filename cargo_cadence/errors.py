"""Error types and process exit codes for cargo-cadence.

Library code raises one of the ``ReleaseError`` subclasses below. Only the
CLI turns them into exit codes, so callers embedding the pipeline can decide
for themselves what a failure means.
"""

from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit codes. These values are part of the CLI contract."""

    OK = 0
    RELEASE_FAILED = 1
    USAGE = 2
    NO_OUTPUT = 3
    OUTPUT_NOT_WRITTEN = 4


class ReleaseError(Exception):
    """Base class for every error raised by cargo-cadence."""

    exit_code = ExitCode.RELEASE_FAILED


class ManifestIOError(ReleaseError):
    """A manifest (or output file) could not be read or written."""


class ManifestParseError(ReleaseError):
    """A manifest is not valid TOML, lacks required fields, or has a bad version."""


class GraphInconsistencyError(ReleaseError):
    """The workspace graph cannot be trusted (unreadable member, cycle)."""


class ExternalToolError(ReleaseError):
    """An external tool (git, cargo) failed to start or exited non-zero."""

    def __init__(self, command: list[str], returncode: int | None, detail: str = ""):
        self.command = command
        self.returncode = returncode
        cmd = " ".join(command)
        if returncode is None:
            msg = f"Failed to start `{cmd}`"
        else:
            msg = f"`{cmd}` exited with status {returncode}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class UsageError(ReleaseError):
    """Invalid user input such as an unknown increment kind."""

    exit_code = ExitCode.USAGE


class OutputError(ReleaseError):
    """A package-manager manifest could not be produced or saved."""


class NoOutputError(OutputError):
    exit_code = ExitCode.NO_OUTPUT


class OutputWriteError(OutputError):
    exit_code = ExitCode.OUTPUT_NOT_WRITTEN
