"""
Dist runner — top-level orchestration: workspace → archives + manifest.

Ties planning, the build driver, expectation reconciliation, staging and
archiving into ``run_dist``; ``run_init`` prepares a workspace for it.
Both can be called as a library or through the CLI in ``main``.
"""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from dist_builder import __version__
from dist_builder.config import Settings
from dist_builder.core.bundle import (
    bundle_distributable,
    init_distributable_dir,
    populate_distributable_dir_with_assets,
    populate_distributable_dirs_with_built_artifact,
)
from dist_builder.core.cargo_build import build_cargo_target, run_cargo_build
from dist_builder.core.expectations import BuildExpectations
from dist_builder.core.files import recreate_dir
from dist_builder.core.graph import DistGraph, gather_work
from dist_builder.core.init import init_manifest
from dist_builder.core.workspace import get_host_target, load_workspace
from dist_builder.errors import DistError, FilesystemError
from dist_builder.io.schema import (
    DistManifest,
    DistributableEntry,
    ExecutableArtifact,
    ReleaseEntry,
)
from dist_builder.io.writer import manifest_json, write_manifest
from dist_builder.policy.profile import DistProfile

logger = logging.getLogger(__name__)

MANIFEST_NAME = "dist-manifest.json"

PIPELINE_STRUCTURED = "structured"
PIPELINE_LEGACY = "legacy"


def run_dist(
    cargo: str = "cargo",
    fake: bool = False,
    pipeline: str = PIPELINE_STRUCTURED,
    profile: DistProfile | None = None,
    manifest_path: Path | None = None,
) -> DistManifest:
    """
    Build every distributable of the current workspace.

    Parameters
    ----------
    cargo : str
        Compiler executable.
    fake : bool
        Skip linkage analysis and record placeholder linkage instead.
    pipeline : str
        ``structured`` reconciles builds through ``BuildExpectations`` and
        fills the manifest's assets; ``legacy`` only stages executables.
    profile : DistProfile, optional
        Defaults to DistProfile.v0().
    manifest_path : Path, optional
        Where to write the manifest.  Defaults to
        ``<dist_dir>/dist-manifest.json``.

    Raises
    ------
    DistError
        On the first fatal failure; partial outputs are left on disk.
    """
    if profile is None:
        profile = DistProfile.v0()

    # ── Step 1: plan ─────────────────────────────────────────────────
    workspace = load_workspace(cargo)
    host_target = get_host_target(cargo)
    graph = gather_work(workspace, host_target, cargo=cargo, profile=profile)

    try:
        graph.dist_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(
            f"couldn't create dist target dir: {graph.dist_dir}", path=graph.dist_dir
        ) from e

    recreate_dir(graph.symbols_dir)
    for distrib in graph.distributables:
        init_distributable_dir(distrib)

    # ── Step 2: build + stage, one task at a time ────────────────────
    manifest = DistManifest()
    built_paths: Dict[int, Path] = {}
    for task in graph.build_tasks:
        if pipeline == PIPELINE_LEGACY:
            task_paths = build_cargo_target(graph, task)
            for artifact_idx, path in task_paths.items():
                populate_distributable_dirs_with_built_artifact(graph, artifact_idx, path)
        else:
            if fake:
                expectations = BuildExpectations.new_fake(graph, task.expected_artifacts)
            else:
                expectations = BuildExpectations(graph, task.expected_artifacts)
            run_cargo_build(graph, task, expectations)
            expectations.process_bins(graph, manifest)
            task_paths = expectations.built_paths()
        built_paths.update(task_paths)

    # ── Step 3: assets + archives ────────────────────────────────────
    for distrib in graph.distributables:
        populate_distributable_dir_with_assets(distrib)
        bundle_distributable(distrib)

    # ── Step 4: manifest ─────────────────────────────────────────────
    manifest.releases = build_releases(graph, built_paths)
    if manifest_path is None:
        manifest_path = graph.dist_dir / MANIFEST_NAME
    write_manifest(manifest, manifest_path)
    logger.info("manifest written to: %s", manifest_path)
    return manifest


def build_releases(graph: DistGraph, built_paths: Dict[int, Path]) -> List[ReleaseEntry]:
    """Describe every release, its distributables and their executables."""
    releases: List[ReleaseEntry] = []
    for release in graph.releases:
        entry = ReleaseEntry(app_name=release.app_name, app_version=release.version)
        for distrib_idx in release.distributables:
            distrib = graph.distributable(distrib_idx)
            artifacts = [
                ExecutableArtifact(
                    name=graph.artifact(idx).name,
                    path=built_paths[idx].name,
                )
                for idx in sorted(distrib.required_artifacts)
                if idx in built_paths
            ]
            entry.distributables.append(
                DistributableEntry(
                    path=str(distrib.file_path),
                    target_triple=distrib.target_triple,
                    artifacts=artifacts,
                    kind=distrib.bundle.value,
                )
            )
        releases.append(entry)
    return releases


def run_init(cargo: str = "cargo", profile: DistProfile | None = None) -> Path:
    """Add the dist profile and metadata to the root Cargo.toml; returns its path."""
    workspace = load_workspace(cargo)
    init_manifest(
        workspace.manifest_path,
        root_is_package=workspace.root_package is not None,
        profile=profile,
    )
    return workspace.manifest_path


# ── CLI ──────────────────────────────────────────────────────────────────────

def _print_human(manifest: DistManifest) -> None:
    for release in manifest.releases:
        print(f"{release.app_name} v{release.app_version}")
        for distrib in release.distributables:
            print(f"  {distrib.path} ({distrib.kind})")
            for artifact in distrib.artifacts:
                print(f"    [bin] {artifact.path}")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dist-builder",
        description="dist-builder — build, stage and archive a cargo workspace's executables",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    sub = parser.add_subparsers(dest="command")

    build = sub.add_parser("build", help="Build distributables (default)")
    build.add_argument(
        "--artifacts",
        choices=["real", "lies"],
        default=None,
        help="'lies' skips linkage analysis and records placeholder linkage",
    )
    build.add_argument(
        "--pipeline",
        choices=[PIPELINE_STRUCTURED, PIPELINE_LEGACY],
        default=None,
        help="Build reconciliation pipeline",
    )
    build.add_argument(
        "--output-format",
        choices=["human", "json"],
        default="human",
        help="Print a summary or the manifest JSON",
    )
    build.add_argument(
        "--manifest-path",
        type=Path,
        default=None,
        help="Where to write the manifest (default: <target>/distrib/dist-manifest.json)",
    )

    sub.add_parser("init", help="Add dist profile and metadata to Cargo.toml")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for dist-builder."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    settings = Settings()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.DIST_LOG_LEVEL.upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    command = args.command or "build"
    output_format = getattr(args, "output_format", "human")
    try:
        if command == "init":
            manifest_path = run_init(cargo=settings.CARGO)
            print(f"added dist profile and metadata to {manifest_path}")
            return 0

        artifacts = getattr(args, "artifacts", None)
        fake = settings.fake_artifacts if artifacts is None else artifacts == "lies"
        pipeline = getattr(args, "pipeline", None) or settings.DIST_PIPELINE
        manifest = run_dist(
            cargo=settings.CARGO,
            fake=fake,
            pipeline=pipeline,
            manifest_path=getattr(args, "manifest_path", None),
        )
    except DistError as e:
        if output_format == "json":
            sys.stderr.write(json.dumps(e.to_dict(), sort_keys=True) + "\n")
        else:
            print(f"error: {e}", file=sys.stderr)
        return 1

    if output_format == "json":
        sys.stdout.write(manifest_json(manifest))
    else:
        _print_human(manifest)
    return 0


if __name__ == "__main__":
    sys.exit(main())
