"""Release pipeline: discover → bump → commit → publish → tag → push.

This module orchestrates a cargo-cadence release:
1. Discover all members of the workspace and their intra-workspace pins
2. Bump every member's version (and every pin of it) by one increment
3. Commit the manifests with a message naming the release version
4. Publish members in dependency order, pausing between publishes so the
   registry index can see a crate before its dependents are published
5. Create a release tag and push it

Single-crate releases skip discovery and ordering.

There is no rollback. If a step fails after the bump, the commit and any
crates already published stay as they are and the error propagates.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from pathlib import Path

import semver

from .backends import Cargo, Git, NonPublisher, Publisher, VersionControl
from .bump import update_all, update_one
from .graph import WorkspaceScan, scan_workspace, topo_sort
from .models import (
    CrateVersionRecord,
    Increment,
    PackagePlace,
    ReleaseProgress,
    ReleaseSettings,
    ReleaseState,
)
from .shell import step
from .store import FileSystemStore, ManifestStore, manifest_path, read_member


def default_publisher(settings: ReleaseSettings) -> Publisher:
    """Return the publisher matching the --nopublish setting."""
    return NonPublisher() if settings.no_publish else Cargo()


def discover_workspace(
    store: ManifestStore, root: Path, settings: ReleaseSettings
) -> tuple[WorkspaceScan, list[str]]:
    """Scan the workspace and compute the publish order.

    The order is computed before anything is written, so a dependency cycle
    stops the run while the workspace is still untouched.

    Returns:
        Tuple of (scan result, member names in publish order).
    """
    step("Discovering workspace members")

    scan = scan_workspace(store, manifest_path(root), strict=settings.strict)
    order = topo_sort(scan.graph)

    # Print discovered members for user feedback
    deps: dict[int, list[str]] = {}
    for source, target in scan.graph.edges:
        deps.setdefault(target, []).append(scan.graph.member(source).name)
    for member in scan.graph.members:
        on = f" → [{', '.join(deps[member.index])}]" if member.index in deps else ""
        print(f"  {member.name} ({member.path}){on}")

    return scan, order


def bump_workspace(
    store: ManifestStore,
    scan: WorkspaceScan,
    incr: Increment,
    settings: ReleaseSettings,
) -> semver.Version:
    """Bump every member and return the release version (the highest one)."""
    step(f"Bumping {incr.value} versions")
    return update_all(store, scan.records, incr, strict=settings.strict)


def commit_version(vcs: VersionControl, root: Path, version: semver.Version) -> str:
    """Commit the bumped manifests and return the release tag name."""
    step("Committing version bump")
    tag = f"v{version}"
    vcs.commit(root, f"changelog: {tag}")
    print(f"  Committed {tag}")
    return tag


def publish_in_order(
    publisher: Publisher,
    root: Path,
    order: list[str],
    settings: ReleaseSettings,
    progress: ReleaseProgress,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Publish members one at a time, pausing between consecutive publishes.

    The first failing publish propagates immediately; members published
    before it stay published.
    """
    step(f"Publishing {len(order)} crates")
    progress.state = ReleaseState.PUBLISHING

    for i, name in enumerate(order):
        print(f"\n  {name} ({i + 1}/{len(order)})")
        publisher.publish(root, settings.publish_options(name))
        progress.published.append(name)
        # crates.io does not index a new crate instantly; wait before
        # publishing anything that may depend on it
        if i < len(order) - 1 and not settings.no_publish and settings.delay_seconds:
            print(f"  Waiting {settings.delay_seconds} seconds after publishing {name} ...")
            sleep(settings.delay_seconds)


def tag_and_push(
    vcs: VersionControl, root: Path, tag: str, progress: ReleaseProgress
) -> None:
    """Create the release tag and push it."""
    step(f"Tagging release {tag}")
    vcs.create_tag(root, tag)
    progress.state = ReleaseState.TAGGED
    vcs.push_tag(root, tag)
    progress.state = ReleaseState.PUSHED
    print(f"  Pushed {tag}")


def release_workspace(
    root: str | Path,
    incr: Increment,
    *,
    settings: ReleaseSettings | None = None,
    publisher: Publisher | None = None,
    vcs: VersionControl | None = None,
    store: ManifestStore | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ReleaseProgress:
    """Execute the full workspace release.

    Args:
        root: Workspace root directory (holding the root Cargo.toml).
        incr: Increment applied to every member.
        settings: Run settings; defaults to ReleaseSettings().
        publisher: Publish backend; defaults to cargo (or a no-op with
            ``settings.no_publish``).
        vcs: Version-control backend; defaults to git.
        store: Manifest store; defaults to the real filesystem.
        sleep: Pacing function, replaceable in tests.

    Returns:
        The final ReleaseProgress (state DONE).

    Raises:
        ReleaseError: From any failing step. Earlier steps are not undone.
    """
    root = Path(root)
    settings = settings or ReleaseSettings()
    store = store or FileSystemStore()
    publisher = publisher or default_publisher(settings)
    vcs = vcs or Git()
    progress = ReleaseProgress()

    scan, order = discover_workspace(store, root, settings)
    progress.state = ReleaseState.GRAPH_BUILT
    progress.publish_order = order

    version = bump_workspace(store, scan, incr, settings)
    progress.version = str(version)
    progress.state = ReleaseState.VERSIONS_BUMPED

    progress.tag = commit_version(vcs, root, version)
    progress.state = ReleaseState.COMMITTED

    publish_in_order(publisher, root, order, settings, progress, sleep)
    tag_and_push(vcs, root, progress.tag, progress)

    progress.state = ReleaseState.DONE
    print(f"\n{'=' * 60}\nReleased {progress.tag}\n{'=' * 60}")
    return progress


def release_crate(
    root: str | Path,
    incr: Increment,
    *,
    settings: ReleaseSettings | None = None,
    publisher: Publisher | None = None,
    vcs: VersionControl | None = None,
    store: ManifestStore | None = None,
) -> ReleaseProgress:
    """Release a single crate: bump → commit → publish → tag → push.

    No graph is built; only the crate's own ``[package].version`` changes.

    Raises:
        ReleaseError: From any failing step, including the bump itself.
    """
    root = Path(root)
    settings = settings or ReleaseSettings()
    store = store or FileSystemStore()
    publisher = publisher or default_publisher(settings)
    vcs = vcs or Git()
    progress = ReleaseProgress()

    step(f"Bumping {incr.value} version")
    path = manifest_path(root)
    manifest = read_member(store, path)
    record = CrateVersionRecord(
        name=manifest.name,
        manifest_path=path,
        places=(PackagePlace(manifest_path=path, version=manifest.version),),
    )
    version = update_one(store, record, incr)
    print(f"  {manifest.name}: {manifest.version} → {version}")
    progress.version = str(version)
    progress.state = ReleaseState.VERSIONS_BUMPED

    progress.tag = commit_version(vcs, root, version)
    progress.state = ReleaseState.COMMITTED

    step(f"Publishing {manifest.name}")
    progress.state = ReleaseState.PUBLISHING
    publisher.publish(root, settings.publish_options())
    progress.published.append(manifest.name)

    tag_and_push(vcs, root, progress.tag, progress)

    progress.state = ReleaseState.DONE
    print(f"\n{'=' * 60}\nReleased {progress.tag}\n{'=' * 60}")
    return progress
