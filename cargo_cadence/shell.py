"""Shell utilities.

Provides a thin wrapper around subprocess for running external tools, plus
output formatting helpers.
"""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path

from .errors import ExternalToolError


def run(*args: str, cwd: str | Path | None = None) -> None:
    """Run an external command, streaming its output to the terminal.

    Output is not captured so users can follow cargo and git progress.

    Args:
        *args: Command and arguments (e.g., "cargo", "publish").
        cwd: Working directory for the command.

    Raises:
        ExternalToolError: If the command cannot be started or exits non-zero.
    """
    command = list(args)
    try:
        result = subprocess.run(command, cwd=cwd, check=False)
    except OSError as exc:
        raise ExternalToolError(command, None, str(exc)) from exc
    if result.returncode != 0:
        raise ExternalToolError(command, result.returncode)


def step(msg: str) -> None:
    """Print a visually distinct step header.

    Used to separate the states of the release workflow in terminal output.
    """
    print(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")


def warn(msg: str) -> None:
    """Print a warning that does not stop the run."""
    print(f"  Warning: {msg}", file=sys.stderr)
