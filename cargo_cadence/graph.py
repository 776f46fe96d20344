"""Workspace scanning and publish ordering.

scan_workspace() reads every member manifest once and returns both the
version records the bumper needs and the dependency graph the scheduler
needs. topo_sort() then turns that graph into a publish order in which each
crate comes after every workspace crate it depends on.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from .errors import GraphInconsistencyError, ManifestIOError, ManifestParseError
from .models import (
    DEPENDENCY_SECTIONS,
    ORDERING_SECTIONS,
    CrateVersionRecord,
    DependencyGraph,
    DependencyPlace,
    Member,
    MemberManifest,
    PackagePlace,
)
from .shell import warn
from .store import ManifestStore, load_document, manifest_path, read_member, workspace_members


class WorkspaceScan(BaseModel):
    """Result of one full pass over a workspace.

    Attributes:
        records: One version record per readable member, in scan order
            (reverse declaration order).
        graph: Publish-order graph over the readable members.
        skipped: Member paths whose manifest could not be read or parsed.
    """

    model_config = ConfigDict(frozen=True)

    records: tuple[CrateVersionRecord, ...]
    graph: DependencyGraph
    skipped: tuple[str, ...] = ()


def scan_workspace(
    store: ManifestStore, root_manifest: Path, *, strict: bool = False
) -> WorkspaceScan:
    """Discover members, their version places and the dependency graph.

    Members are read from ``[workspace].members`` and processed last-declared
    first. For each member the record holds its own ``[package].version`` plus
    every pin of it found in a sibling's dependency tables; only table-form
    entries with a ``version`` count as pins.

    Args:
        store: Where manifests are read from.
        root_manifest: Path to the workspace root Cargo.toml.
        strict: Raise instead of skipping a member whose manifest is missing
            or malformed.

    Raises:
        ManifestIOError / ManifestParseError: If the root manifest is unusable.
        GraphInconsistencyError: On duplicate member names, or (strict mode)
            an unreadable member.
    """
    root_doc = load_document(store, root_manifest)
    member_paths = workspace_members(root_doc, root_manifest)
    root_dir = root_manifest.parent

    # Read every member manifest, last-declared first
    scanned: list[tuple[Member, Path, MemberManifest]] = []
    skipped: list[str] = []
    for index in reversed(range(len(member_paths))):
        member_path = member_paths[index]
        path = manifest_path(root_dir / member_path)
        try:
            manifest = read_member(store, path)
        except (ManifestIOError, ManifestParseError) as exc:
            if strict:
                raise GraphInconsistencyError(
                    f"Workspace member {member_path!r} cannot be used: {exc}"
                ) from exc
            warn(f"skipping member {member_path}: {exc}")
            skipped.append(member_path)
            continue
        member = Member(index=index, name=manifest.name, path=member_path)
        scanned.append((member, path, manifest))

    by_name: dict[str, Member] = {}
    for member, _, _ in scanned:
        if member.name in by_name:
            raise GraphInconsistencyError(
                f"Duplicate workspace member name {member.name!r} "
                f"({by_name[member.name].path}, {member.path})"
            )
        by_name[member.name] = member

    _warn_unresolved_pins(scanned, skipped, root_dir)

    records: list[CrateVersionRecord] = []
    edges: list[tuple[int, int]] = []
    for member, path, manifest in scanned:
        places: list[PackagePlace | DependencyPlace] = [
            PackagePlace(manifest_path=path, version=manifest.version)
        ]
        for dependent, dependent_path, dependent_manifest in scanned:
            if dependent.name == member.name:
                continue
            for section in DEPENDENCY_SECTIONS:
                pin = dependent_manifest.pinned(section).get(member.name)
                if pin is None:
                    continue
                places.append(
                    DependencyPlace(
                        dependent=dependent.name,
                        dependency=member.name,
                        manifest_path=dependent_path,
                        section=section,
                        version=pin.version,
                    )
                )
                edge = (member.index, dependent.index)
                if section in ORDERING_SECTIONS and edge not in edges:
                    edges.append(edge)
        records.append(
            CrateVersionRecord(name=member.name, manifest_path=path, places=tuple(places))
        )

    graph = DependencyGraph(
        members=tuple(sorted(by_name.values(), key=lambda m: m.index)),
        edges=tuple(edges),
    )
    return WorkspaceScan(records=tuple(records), graph=graph, skipped=tuple(skipped))


def _warn_unresolved_pins(
    scanned: list[tuple[Member, Path, MemberManifest]],
    skipped: list[str],
    root_dir: Path,
) -> None:
    """Warn about pins whose path points at a member that was skipped.

    Such pins are neither bumped nor ordered, so the publish order may be
    missing a constraint.
    """
    if not skipped:
        return
    skipped_dirs = {os.path.normpath(root_dir / p): p for p in skipped}
    for member, path, manifest in scanned:
        for section in DEPENDENCY_SECTIONS:
            for dep_name, pin in manifest.pinned(section).items():
                if pin.path is None:
                    continue
                target = os.path.normpath(path.parent / pin.path)
                if target in skipped_dirs:
                    warn(
                        f"{member.name} pins {dep_name} from skipped member "
                        f"{skipped_dirs[target]}; publish order may be incomplete"
                    )


def topo_sort(graph: DependencyGraph) -> list[str]:
    """Topologically sort members so dependencies are published first.

    Uses Kahn's algorithm. Members that become ready at the same time are
    taken alphabetically for deterministic output.

    Returns:
        Member names in publish order.

    Raises:
        GraphInconsistencyError: If the graph contains a cycle.

    Example:
        a ← d ← b ← c (c depends on b, b on d, d on a) → [a, d, b, c]
    """
    names = {m.index: m.name for m in graph.members}
    in_degree = {i: 0 for i in names}
    dependents: dict[int, list[int]] = {i: [] for i in names}

    for source, target in graph.edges:
        # Edges to members missing from the graph carry no constraint
        if source in names and target in names:
            in_degree[target] += 1
            dependents[source].append(target)

    # Start with members that depend on nothing inside the workspace
    queue = sorted((i for i, d in in_degree.items() if d == 0), key=names.__getitem__)
    order: list[str] = []

    while queue:
        node = queue.pop(0)
        order.append(names[node])
        for dependent in sorted(dependents[node], key=names.__getitem__):
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)

    if len(order) != len(names):
        remaining = sorted(set(names.values()) - set(order))
        raise GraphInconsistencyError(
            f"Dependency cycle detected involving: {', '.join(remaining)}"
        )

    return order
