"""
Messages — Pydantic models for the JSON cargo writes on stdout.

Two sources:
  1. ``cargo metadata --format-version 1 --no-deps`` — one document.
  2. ``cargo build --message-format=json`` — one message per line; only
     ``compiler-artifact`` messages are modelled, every other ``reason`` is
     ignored by the build driver.

Unknown fields are ignored so newer cargo releases keep parsing.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ── cargo metadata ───────────────────────────────────────────────────────────

class CargoTarget(BaseModel):
    """One build target of a package (bin, lib, test, ...)."""
    model_config = ConfigDict(extra="ignore")

    name: str
    kind: List[str] = Field(default_factory=list)

    @property
    def is_binary(self) -> bool:
        return "bin" in self.kind


class CargoPackage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    version: str
    manifest_path: str
    targets: List[CargoTarget] = Field(default_factory=list)
    metadata: Optional[Dict[str, Any]] = None


class CargoMetadata(BaseModel):
    """The subset of ``cargo metadata`` output the planner reads."""
    model_config = ConfigDict(extra="ignore")

    packages: List[CargoPackage] = Field(default_factory=list)
    workspace_members: List[str] = Field(default_factory=list)
    workspace_root: str
    target_directory: str
    metadata: Optional[Dict[str, Any]] = None


# ── cargo build --message-format=json ────────────────────────────────────────

COMPILER_ARTIFACT = "compiler-artifact"


class CargoMessage(BaseModel):
    """Envelope shared by every message; ``reason`` selects the kind."""
    model_config = ConfigDict(extra="ignore")

    reason: str


class CompilerArtifactMessage(BaseModel):
    """A finished compilation unit, possibly with an executable."""
    model_config = ConfigDict(extra="ignore")

    reason: str = COMPILER_ARTIFACT
    package_id: str
    executable: Optional[str] = None
    filenames: List[str] = Field(default_factory=list)
