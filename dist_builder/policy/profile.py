"""
Profile — every constant that shapes a dist run.

The profile encapsulates the policy knobs so that core planning logic
contains no opinions.  Changing the bundle format, the bundled files or the
recognised symbol kinds is a profile change, not a code change.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Tuple


@dataclass(frozen=True)
class DistProfile:
    """Immutable dist configuration."""

    # ── Build ────────────────────────────────────────────────────────
    # cargo profile used for dist builds (created by `init`)
    cargo_profile: str = "dist"
    # dir under the cargo target dir; must not collide with a profile name
    dist_dir_name: str = "distrib"
    # key under [workspace.metadata] / [package.metadata]
    metadata_key: str = "dist"

    # ── Bundling ─────────────────────────────────────────────────────
    builtin_files: Tuple[str, ...] = ("README.md", "CHANGELOG.md", "RELEASES.md")
    symbols_dir_name: str = "symbols"

    # ── Symbols ──────────────────────────────────────────────────────
    # pdb: windows, dSYM: apple, dwp: split-debuginfo=packed on linux
    symbol_extensions: FrozenSet[str] = frozenset({"pdb", "dSYM", "dwp"})

    @classmethod
    def v0(cls) -> DistProfile:
        """Return the canonical v0 profile (all defaults)."""
        return cls()
