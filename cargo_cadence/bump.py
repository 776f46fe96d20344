"""Version bumping across member manifests.

A member's new version is computed from its own ``[package].version`` and
then written to every place that records it: its own declaration and each
sibling's pin of it. Files are rewritten through tomlkit so comments and
layout survive.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import semver

from .errors import ManifestIOError, ManifestParseError
from .models import CrateVersionRecord, DependencyPlace, Increment, PackagePlace
from .shell import warn
from .store import ManifestStore, load_document, save_document, set_scalar
from .versions import ZERO, increment


def update_one(
    store: ManifestStore, record: CrateVersionRecord, incr: Increment
) -> semver.Version:
    """Bump one member and rewrite every place holding its version.

    Each touched manifest is read, edited and written back in full. If a
    later file fails, files already written stay written.

    Returns:
        The member's new version.

    Raises:
        ManifestParseError: If the current version or a manifest is malformed.
        ManifestIOError: If a manifest cannot be read or written.
    """
    new_version = increment(record.package_place.version, incr)

    # Group places by file so each manifest is rewritten once
    by_file: dict[Path, list[PackagePlace | DependencyPlace]] = {}
    for place in record.places:
        by_file.setdefault(place.manifest_path, []).append(place)

    for path, places in by_file.items():
        doc = load_document(store, path)
        for place in places:
            set_scalar(doc, place.key_path, str(new_version))
        save_document(store, path, doc)

    return new_version


def update_all(
    store: ManifestStore,
    records: Iterable[CrateVersionRecord],
    incr: Increment,
    *,
    strict: bool = False,
) -> semver.Version:
    """Bump every member and return the highest resulting version.

    The highest version, not the first member's, labels the whole release
    (commit message and tag). A member that fails to update is reported and
    skipped; nothing already written is rolled back.

    Args:
        store: Where manifests are read from and written to.
        records: Version records from scan_workspace().
        incr: Increment applied to each member's own current version.
        strict: Re-raise the first per-member failure instead of skipping.

    Returns:
        The maximum new version, or 0.0.0 if no member was updated.
    """
    result = ZERO
    for record in records:
        old = record.package_place.version
        try:
            new = update_one(store, record, incr)
        except (ManifestIOError, ManifestParseError) as exc:
            if strict:
                raise
            warn(f"{record.name} not bumped: {exc}")
            continue
        print(f"  {record.name}: {old} → {new}")
        result = max(result, new)
    return result
