"""Version parsing and bumping utilities.

Cargo requires full semantic versions, so unlike PEP 440 strings nothing is
padded here: a version that does not parse is a manifest error.
"""

from __future__ import annotations

import semver

from .errors import ManifestParseError, UsageError
from .models import Increment

ZERO = semver.Version(0, 0, 0)


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Raises:
        ManifestParseError: If the string is not a valid semantic version.
    """
    try:
        return semver.Version.parse(version_str)
    except (TypeError, ValueError) as exc:
        raise ManifestParseError(f"Invalid version {version_str!r}: {exc}") from exc


def parse_increment(value: str | Increment) -> Increment:
    """Convert user input ("major", "Minor", ...) into an Increment."""
    if isinstance(value, Increment):
        return value
    try:
        return Increment(str(value).strip().lower())
    except ValueError:
        choices = ", ".join(i.value for i in Increment)
        raise UsageError(
            f"Unknown increment {value!r}; expected one of: {choices}"
        ) from None


def increment(version_str: str, incr: Increment) -> semver.Version:
    """Apply an increment to a version string.

    The bumped component goes up by one, every lower component is zeroed, and
    pre-release and build metadata are always dropped.

    Examples:
        ("0.1.1", PATCH) → 0.1.2
        ("0.1.1", MINOR) → 0.2.0
        ("0.1.1-rc.1+b5", MAJOR) → 1.0.0
    """
    v = parse_version(version_str)
    if incr is Increment.MAJOR:
        return semver.Version(v.major + 1, 0, 0)
    if incr is Increment.MINOR:
        return semver.Version(v.major, v.minor + 1, 0)
    return semver.Version(v.major, v.minor, v.patch + 1)
