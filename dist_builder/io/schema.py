"""
Schema — Pydantic models for the dist manifest.

One output per run:
  dist-manifest.json — releases → distributables → artifacts, plus the
  linkage of every built executable keyed by its asset id.

Artifact paths inside a distributable are file names relative to the
archive root, never absolute paths.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from dist_builder import SCHEMA_VERSION, __version__


# ── Linkage ──────────────────────────────────────────────────────────────────

class Library(BaseModel):
    """A dynamic library an executable links against."""
    model_config = ConfigDict(frozen=True)

    path: str
    # package manager / formula that provides it, when known
    source: Optional[str] = None


class Linkage(BaseModel):
    """Libraries grouped by where they come from.  Each bucket is an ordered set."""

    system: List[Library] = Field(default_factory=list)
    homebrew: List[Library] = Field(default_factory=list)
    public_unmanaged: List[Library] = Field(default_factory=list)
    frameworks: List[Library] = Field(default_factory=list)
    other: List[Library] = Field(default_factory=list)

    def add(self, bucket: str, library: Library) -> None:
        """Append *library* to *bucket* unless it is already there."""
        libs: List[Library] = getattr(self, bucket)
        if library not in libs:
            libs.append(library)


class AssetInfo(BaseModel):
    id: str
    name: str
    system: str
    linkage: Optional[Linkage] = None


# ── Releases ─────────────────────────────────────────────────────────────────

class ExecutableArtifact(BaseModel):
    name: str
    # file name inside the archive
    path: str


class DistributableEntry(BaseModel):
    path: str
    target_triple: str
    artifacts: List[ExecutableArtifact] = Field(default_factory=list)
    kind: str  # Zip | TarGzip | TarXzip | TarZstd


class ReleaseEntry(BaseModel):
    app_name: str
    app_version: str
    distributables: List[DistributableEntry] = Field(default_factory=list)


class DistManifest(BaseModel):
    """Top-level manifest — dist-manifest.json."""

    dist_version: str = __version__
    schema_version: str = SCHEMA_VERSION
    releases: List[ReleaseEntry] = Field(default_factory=list)
    assets: Dict[str, AssetInfo] = Field(default_factory=dict)
