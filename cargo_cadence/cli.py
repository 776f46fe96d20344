"""CLI entry point for cargo-cadence."""

from __future__ import annotations

import argparse
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version
from pathlib import Path

from cargo_cadence.brew import new_brew
from cargo_cadence.errors import ExitCode, NoOutputError, OutputWriteError, ReleaseError
from cargo_cadence.models import Increment, ReleaseSettings
from cargo_cadence.pipeline import release_crate, release_workspace
from cargo_cadence.scoop import new_scoop
from cargo_cadence.versions import parse_increment

try:
    __version__ = pkg_version("cargo-cadence")
except PackageNotFoundError:
    __version__ = "0.0.0"

DEFAULT_DELAY = 20


def _fatal(msg: str, code: ExitCode) -> None:
    """Print error and exit."""
    print(f"Error: {msg}", file=sys.stderr)
    sys.exit(int(code))


def _non_negative(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {number}")
    return number


def _settings(args: argparse.Namespace) -> ReleaseSettings:
    return ReleaseSettings(
        delay_seconds=getattr(args, "delay", DEFAULT_DELAY),
        all_features=args.all,
        no_verify=args.noverify,
        no_publish=args.nopublish,
        strict=getattr(args, "strict", False),
    )


def output_string(text: str, output: str | None) -> None:
    """Write generated text to ``output``, or to stdout when not set.

    Raises:
        NoOutputError: If ``text`` is empty.
        OutputWriteError: If the output file cannot be written.
    """
    if not text:
        raise NoOutputError("No output produced but it should")
    if output is None:
        print(text)
        return
    try:
        Path(output).write_text(text, encoding="utf-8")
    except OSError as exc:
        raise OutputWriteError(f"Cannot write {output}: {exc}") from exc


def cmd_workspace(args: argparse.Namespace) -> None:
    """Release every member of a workspace."""
    release_workspace(args.path, parse_increment(args.incr), settings=_settings(args))


def cmd_crate(args: argparse.Namespace) -> None:
    """Release a single crate."""
    release_crate(args.path, parse_increment(args.incr), settings=_settings(args))


def cmd_brew(args: argparse.Namespace) -> None:
    """Generate a Homebrew formula."""
    formula = new_brew(
        Path(args.crate),
        args.base,
        linux_dir=Path(args.linux) if args.linux else None,
        macos_dir=Path(args.macos) if args.macos else None,
        macos_arm_dir=Path(args.macosarm) if args.macosarm else None,
    )
    output_string(formula, args.output)


def cmd_scoop(args: argparse.Namespace) -> None:
    """Generate a Scoop manifest."""
    manifest = new_scoop(Path(args.crate), Path(args.binary), args.exe, args.base)
    output_string(manifest, args.output)


def _add_release_args(parser: argparse.ArgumentParser, path_help: str) -> None:
    parser.add_argument(
        "incr",
        choices=[i.value for i in Increment],
        type=str.lower,
        help="Version increment. One of the following: major, minor or patch.",
    )
    parser.add_argument("path", help=path_help)
    parser.add_argument(
        "-a",
        "--all",
        action="store_true",
        help="Pass --all-features to cargo publish.",
    )
    parser.add_argument(
        "-n",
        "--noverify",
        action="store_true",
        help="Pass --no-verify to cargo publish.",
    )
    parser.add_argument(
        "--nopublish",
        action="store_true",
        help="Don't publish. Just change version, commit, add tag and push.",
    )


def _add_output_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c", "--crate", required=True, help="Crate directory holding Cargo.toml."
    )
    parser.add_argument(
        "-b", "--base", required=True, help="Base URI of downloaded artifacts."
    )
    parser.add_argument(
        "-u",
        "--output",
        default=None,
        help="File to save the result to. Written to stdout if not set.",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cargo-cadence",
        description="Release Cargo workspaces: bump, commit, publish in order, tag.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # workspace subcommand
    workspace_parser = subparsers.add_parser(
        "workspace", aliases=["w"], help="Release workspace specified by path."
    )
    _add_release_args(workspace_parser, "Workspace root path.")
    workspace_parser.add_argument(
        "-d",
        "--delay",
        type=_non_negative,
        default=DEFAULT_DELAY,
        metavar="NUMBER",
        help="Seconds to wait between publishing crates. (default: %(default)s)",
    )
    workspace_parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail instead of skipping members whose Cargo.toml is unusable.",
    )
    workspace_parser.set_defaults(func=cmd_workspace)

    # crate subcommand
    crate_parser = subparsers.add_parser(
        "crate", aliases=["c"], help="Release single crate specified by path."
    )
    _add_release_args(crate_parser, "Crate root path.")
    crate_parser.set_defaults(func=cmd_crate)

    # brew subcommand
    brew_parser = subparsers.add_parser(
        "brew", aliases=["b"], help="Create a Homebrew formula for a tap."
    )
    _add_output_args(brew_parser)
    brew_parser.add_argument("-l", "--linux", help="Linux package directory.")
    brew_parser.add_argument("-m", "--macos", help="macOS x86-64 package directory.")
    brew_parser.add_argument(
        "-a", "--macosarm", help="macOS ARM64 package directory."
    )
    brew_parser.set_defaults(func=cmd_brew)

    # scoop subcommand
    scoop_parser = subparsers.add_parser(
        "scoop", aliases=["s"], help="Create a Scoop manifest for a bucket."
    )
    _add_output_args(scoop_parser)
    scoop_parser.add_argument(
        "-i", "--binary", required=True, help="64-bit binary package directory."
    )
    scoop_parser.add_argument(
        "-e", "--exe", required=True, help="Windows executable name."
    )
    scoop_parser.set_defaults(func=cmd_scoop)

    return parser


def cli(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    try:
        args.func(args)
    except ReleaseError as exc:
        _fatal(str(exc), exc.exit_code)
