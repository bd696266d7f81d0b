"""
Graph — the precomputed work graph of a dist run.

All work is planned before anything is built: build tasks, the executables
each task must produce, the distributables those executables go into and
the releases the distributables are grouped under.  Planning up front lets
the tool report what *should* happen without doing it.

Cross references are dense integer indices into the lists owned by
``DistGraph``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from dist_builder.core.workspace import DistMetadata, WorkspaceInfo, dist_metadata
from dist_builder.errors import ConfigError
from dist_builder.policy.profile import DistProfile
from dist_builder.policy.selection import BundleStyle, select_bundle_style

logger = logging.getLogger(__name__)


# ── Build tasks ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CargoTargetFeatures:
    """Feature selection for a cargo build."""

    no_default_features: bool = False
    all_features: bool = False
    # ignored when all_features is set
    features: Tuple[str, ...] = ()


@dataclass
class BuildTask:
    """One ``cargo build`` invocation."""

    target_triple: str
    profile: str
    features: CargoTargetFeatures = field(default_factory=CargoTargetFeatures)
    # None builds the whole workspace
    package_id: Optional[str] = None
    expected_artifacts: List[int] = field(default_factory=list)


# ── Artifacts / distributables / releases ────────────────────────────────────

@dataclass
class ExpectedArtifact:
    """An executable some build task must produce."""

    idx: int
    id: str
    # empty for builds that aren't tied to a package
    package_id: str
    # file name without extension
    name: str
    version: str
    target_triple: str
    build_task: int
    # directories the executable is copied into once built
    copy_exe_to: List[Path] = field(default_factory=list)
    # directories its symbol files are copied into
    copy_symbols_to: List[Path] = field(default_factory=list)


@dataclass
class Distributable:
    """An archive to produce."""

    idx: int
    target_triple: str
    # e.g. foo-v1.2.3-x86_64-pc-windows-msvc
    full_name: str
    # staging dir the archive contents are gathered in
    dir_path: Path
    # e.g. foo-v1.2.3-x86_64-pc-windows-msvc.zip
    file_name: str
    file_path: Path
    bundle: BundleStyle
    required_artifacts: Set[int] = field(default_factory=set)
    assets: List[Path] = field(default_factory=list)


@dataclass
class Release:
    app_name: str
    version: str
    distributables: List[int] = field(default_factory=list)


@dataclass
class DistGraph:
    """Everything a dist run will do."""

    cargo: str
    target_dir: Path
    workspace_dir: Path
    dist_dir: Path
    host_target: str
    profile: DistProfile
    build_tasks: List[BuildTask] = field(default_factory=list)
    artifacts: List[ExpectedArtifact] = field(default_factory=list)
    distributables: List[Distributable] = field(default_factory=list)
    releases: List[Release] = field(default_factory=list)
    workspace_config: Optional[DistMetadata] = None

    @property
    def system_id(self) -> str:
        """Identifies the machine/profile that produced manifest assets."""
        return f"{self.host_target}:{self.profile.cargo_profile}"

    @property
    def symbols_dir(self) -> Path:
        """Parent of the per-artifact symbol dirs."""
        return self.dist_dir / self.profile.symbols_dir_name

    def artifact(self, idx: int) -> ExpectedArtifact:
        return self.artifacts[idx]

    def distributable(self, idx: int) -> Distributable:
        return self.distributables[idx]

    def distributables_requiring(self, artifact_idx: int) -> List[Distributable]:
        return [d for d in self.distributables if artifact_idx in d.required_artifacts]


# ── Planning ─────────────────────────────────────────────────────────────────

def distributable_full_name(app_name: str, version: str, target_triple: str) -> str:
    return f"{app_name}-v{version}-{target_triple}"


def gather_work(
    workspace: WorkspaceInfo,
    host_target: str,
    cargo: str = "cargo",
    profile: Optional[DistProfile] = None,
) -> DistGraph:
    """
    Precompute the work graph for *workspace* built on *host_target*.

    Raises ``ConfigError`` if a dist metadata table does not parse, or if two
    packages ship a binary with the same name and version (their archives
    would land on the same path).
    """
    if profile is None:
        profile = DistProfile.v0()

    workspace_config = dist_metadata(
        workspace.metadata, profile.metadata_key, f"[workspace.metadata.{profile.metadata_key}]"
    )
    if workspace.root_package is not None:
        # parsed for validation only; no per-package options exist yet
        dist_metadata(
            workspace.root_package.metadata,
            profile.metadata_key,
            f"[package.metadata.{profile.metadata_key}]",
        )

    dist_dir = workspace.target_dir / profile.dist_dir_name
    graph = DistGraph(
        cargo=cargo,
        target_dir=workspace.target_dir,
        workspace_dir=workspace.workspace_root,
        dist_dir=dist_dir,
        host_target=host_target,
        profile=profile,
        workspace_config=workspace_config,
    )

    # Only the host, the whole workspace, default features
    graph.build_tasks.append(
        BuildTask(target_triple=host_target, profile=profile.cargo_profile)
    )

    # Every binary of every member
    owners: Dict[str, str] = {}
    for task_idx, task in enumerate(graph.build_tasks):
        if task.package_id is None:
            packages = workspace.members
        else:
            pkg = workspace.package(task.package_id)
            packages = [pkg] if pkg is not None else []
        for pkg in packages:
            for bin_name in pkg.binaries:
                artifact_id = distributable_full_name(bin_name, pkg.version, task.target_triple)
                if artifact_id in owners:
                    raise ConfigError(
                        f"binary {bin_name} v{pkg.version} is built by both "
                        f"{owners[artifact_id]} and {pkg.id}",
                        hint="rename one of the [[bin]] targets or bump one package's version",
                    )
                owners[artifact_id] = pkg.id
                idx = len(graph.artifacts)
                graph.artifacts.append(
                    ExpectedArtifact(
                        idx=idx,
                        id=artifact_id,
                        package_id=pkg.id,
                        name=bin_name,
                        version=pkg.version,
                        target_triple=task.target_triple,
                        build_task=task_idx,
                        copy_symbols_to=[graph.symbols_dir / artifact_id],
                    )
                )
                task.expected_artifacts.append(idx)

    assets = [
        workspace.workspace_root / name
        for name in profile.builtin_files
        if (workspace.workspace_root / name).exists()
    ]

    # One distributable per artifact (for now)
    releases: Dict[Tuple[str, str], Release] = {}
    for artifact in graph.artifacts:
        target_triple = graph.build_tasks[artifact.build_task].target_triple
        bundle = select_bundle_style(target_triple)
        app_name = artifact.name
        version = artifact.version
        full_name = distributable_full_name(app_name, version, target_triple)
        dir_path = dist_dir / full_name
        file_name = f"{full_name}.{bundle.extension}"

        distrib_idx = len(graph.distributables)
        graph.distributables.append(
            Distributable(
                idx=distrib_idx,
                target_triple=target_triple,
                full_name=full_name,
                dir_path=dir_path,
                file_name=file_name,
                file_path=dist_dir / file_name,
                bundle=bundle,
                required_artifacts={artifact.idx},
                assets=list(assets),
            )
        )
        artifact.copy_exe_to.append(dir_path)

        release = releases.get((app_name, version))
        if release is None:
            release = Release(app_name=app_name, version=version)
            releases[(app_name, version)] = release
        release.distributables.append(distrib_idx)

    graph.releases = list(releases.values())
    logger.info(
        "planned %d build(s), %d artifact(s), %d distributable(s), %d release(s)",
        len(graph.build_tasks),
        len(graph.artifacts),
        len(graph.distributables),
        len(graph.releases),
    )
    return graph
