"""
Workspace — what cargo knows about the workspace and the host.

Responsibilities:
  - Run ``cargo metadata`` and turn it into a ``WorkspaceInfo``.
  - Identify the root package (if the root Cargo.toml is not virtual).
  - Parse the ``[workspace.metadata.dist]`` / ``[package.metadata.dist]``
    tables into ``DistMetadata``.
  - Ask ``cargo -vV`` for the host target triple.

This module runs cargo but never builds anything.
"""
from __future__ import annotations

import json
import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError

from dist_builder.errors import ConfigError
from dist_builder.io.messages import CargoMetadata

logger = logging.getLogger(__name__)


class DistMetadata(BaseModel):
    """Contents of the dist metadata table.  No options are defined yet."""
    model_config = ConfigDict(extra="ignore")


@dataclass(frozen=True)
class PackageInfo:
    """A workspace member, reduced to what the planner needs."""

    id: str
    name: str
    version: str
    manifest_path: Path
    binaries: Tuple[str, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class WorkspaceInfo:
    workspace_root: Path
    target_dir: Path
    # Cargo.toml at the workspace root (may belong to a package)
    manifest_path: Path
    members: List[PackageInfo]
    # None when the root Cargo.toml is a virtual manifest
    root_package: Optional[PackageInfo] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def package(self, package_id: str) -> Optional[PackageInfo]:
        for pkg in self.members:
            if pkg.id == package_id:
                return pkg
        return None


def _run(cmd: List[str], what: str) -> str:
    logger.info("exec: %s", " ".join(cmd))
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=True)
    except (OSError, subprocess.CalledProcessError) as e:
        stderr = getattr(e, "stderr", None) or ""
        raise ConfigError(
            f"failed to run '{' '.join(cmd)}' ({what})",
            hint=stderr.strip() or None,
        ) from e
    return result.stdout


def workspace_from_metadata(metadata: CargoMetadata) -> WorkspaceInfo:
    """Build a ``WorkspaceInfo`` from parsed ``cargo metadata`` output."""
    workspace_root = Path(metadata.workspace_root)
    manifest_path = workspace_root / "Cargo.toml"

    by_id = {p.id: p for p in metadata.packages}
    members: List[PackageInfo] = []
    for member_id in metadata.workspace_members:
        pkg = by_id.get(member_id)
        if pkg is None:
            logger.warning("workspace member %s missing from cargo metadata", member_id)
            continue
        members.append(
            PackageInfo(
                id=pkg.id,
                name=pkg.name,
                version=pkg.version,
                manifest_path=Path(pkg.manifest_path),
                binaries=tuple(t.name for t in pkg.targets if t.is_binary),
                metadata=pkg.metadata or {},
            )
        )

    root_package = next(
        (p for p in members if p.manifest_path == manifest_path), None
    )

    return WorkspaceInfo(
        workspace_root=workspace_root,
        target_dir=Path(metadata.target_directory),
        manifest_path=manifest_path,
        members=members,
        root_package=root_package,
        metadata=metadata.metadata or {},
    )


def load_workspace(cargo: str) -> WorkspaceInfo:
    """Run ``cargo metadata`` and return the current workspace."""
    raw = _run(
        [cargo, "metadata", "--format-version", "1", "--no-deps"],
        "reading workspace metadata",
    )
    try:
        metadata = CargoMetadata.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        raise ConfigError("couldn't parse 'cargo metadata' output") from e

    workspace = workspace_from_metadata(metadata)
    if not workspace.manifest_path.exists():
        raise ConfigError(
            "couldn't find root workspace Cargo.toml",
            path=workspace.manifest_path,
        )
    return workspace


def dist_metadata(
    table: Mapping[str, Any], key: str, where: str
) -> Optional[DistMetadata]:
    """
    Parse ``table[key]`` as ``DistMetadata``.

    Returns None when the key is absent; raises ``ConfigError`` naming
    *where* (e.g. ``[workspace.metadata.dist]``) when it does not parse.
    """
    raw: Dict[str, Any] | None = table.get(key) if table else None
    if raw is None:
        return None
    try:
        return DistMetadata.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"couldn't parse {where}") from e


def parse_host_target(version_output: str) -> Optional[str]:
    """Extract the ``host: <triple>`` line from ``cargo -vV`` output."""
    for line in version_output.splitlines():
        if line.startswith("host: "):
            return line[len("host: "):].strip()
    return None


def get_host_target(cargo: str) -> str:
    """Ask cargo for the triple of the machine we are running on."""
    output = _run([cargo, "-vV"], "trying to get info about host platform")
    host = parse_host_target(output)
    if host is None:
        raise ConfigError("'cargo -vV' failed to report its host target")
    logger.info("host target is %s", host)
    return host
