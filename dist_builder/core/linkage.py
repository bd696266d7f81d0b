"""
Linkage — which dynamic libraries an executable needs, and where they live.

Responsibilities:
  - Read DT_NEEDED and DT_RPATH / DT_RUNPATH from an ELF binary's
    dynamic segment.
  - Resolve each needed library against the rpath and the standard
    library directories of the target.
  - Classify every library by origin (system, homebrew, public unmanaged,
    frameworks, other).

PE and Mach-O binaries are not inspected; their report is empty.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import List, Optional, Sequence, Tuple

from elftools.common.exceptions import ELFError
from elftools.elf.dynamic import DynamicSegment
from elftools.elf.elffile import ELFFile

from dist_builder.core.triple import TargetTriple, parse_triple
from dist_builder.errors import LinkageAnalysisFailed
from dist_builder.io.schema import Library, Linkage

logger = logging.getLogger(__name__)

HOMEBREW_PREFIXES: Tuple[str, ...] = (
    "/home/linuxbrew/.linuxbrew/",
    "/opt/homebrew/",
    "/usr/local/Cellar/",
    "/usr/local/opt/",
)
PUBLIC_UNMANAGED_PREFIXES: Tuple[str, ...] = ("/usr/local/",)
SYSTEM_LIB_DIRS: Tuple[str, ...] = ("lib", "lib32", "lib64", "libx32")


@dataclass(frozen=True)
class ElfDynamicInfo:
    """Dynamic-linking facts read from an ELF binary."""

    path: str
    needed: List[str] = field(default_factory=list)
    # DT_RPATH and DT_RUNPATH entries, $ORIGIN expanded
    search_paths: List[str] = field(default_factory=list)


def read_dynamic(path: str | Path) -> ElfDynamicInfo:
    """
    Read the PT_DYNAMIC segment of the ELF file at *path*.

    Binaries without section headers are read the same way.  A
    statically linked binary yields no needed libraries.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ELFError
        If the file is not a valid ELF binary.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Binary not found: {path}")

    origin = str(p.resolve().parent)
    needed: List[str] = []
    search_paths: List[str] = []

    with open(p, "rb") as f:
        elffile = ELFFile(f)
        for segment in elffile.iter_segments():
            if not isinstance(segment, DynamicSegment):
                continue
            for tag in segment.iter_tags():
                d_tag = tag.entry.d_tag
                if d_tag == "DT_NEEDED":
                    needed.append(tag.needed)
                elif d_tag == "DT_RPATH":
                    search_paths.extend(_split_search_path(tag.rpath, origin))
                elif d_tag == "DT_RUNPATH":
                    search_paths.extend(_split_search_path(tag.runpath, origin))

    return ElfDynamicInfo(path=str(p), needed=needed, search_paths=search_paths)


def _split_search_path(value: str, origin: str) -> List[str]:
    return [
        entry.replace("$ORIGIN", origin).replace("${ORIGIN}", origin)
        for entry in value.split(":")
        if entry
    ]


def default_search_dirs(target: TargetTriple) -> List[str]:
    """Standard library directories of a linux-like *target*."""
    dirs: List[str] = []
    if target.is_linux:
        # debian-style multiarch dirs
        multiarch = f"{target.arch.value}-linux-gnu"
        dirs.extend([f"/lib/{multiarch}", f"/usr/lib/{multiarch}"])
    dirs.extend(["/lib64", "/usr/lib64", "/lib", "/usr/lib", "/usr/local/lib"])
    return dirs


def resolve_library(name: str, search_dirs: Sequence[str]) -> Optional[str]:
    """Absolute path of library *name*, or None if it can't be found."""
    if "/" in name:
        return name if Path(name).exists() else None
    for directory in search_dirs:
        candidate = Path(directory) / name
        if candidate.exists():
            return str(candidate)
    return None


def _homebrew_formula(path: str) -> Optional[str]:
    parts = PurePosixPath(path).parts
    for marker in ("Cellar", "opt"):
        if marker in parts:
            i = parts.index(marker)
            if i + 1 < len(parts):
                return parts[i + 1]
    return None


def classify_library(path: str) -> Tuple[str, Optional[str]]:
    """
    Return ``(bucket, source)`` for a resolved library *path*.

    bucket is one of the ``Linkage`` field names.
    """
    if ".framework/" in path:
        return "frameworks", None
    if path.startswith(HOMEBREW_PREFIXES):
        return "homebrew", _homebrew_formula(path)
    if path.startswith(PUBLIC_UNMANAGED_PREFIXES):
        return "public_unmanaged", None

    parts = PurePosixPath(path).parts
    if len(parts) > 2 and parts[0] == "/":
        if parts[1] in SYSTEM_LIB_DIRS:
            return "system", None
        if parts[1] == "usr" and parts[2] in SYSTEM_LIB_DIRS:
            return "system", None
        if parts[1] == "System":
            return "system", None
    return "other", None


def determine_linkage(path: str | Path, target_triple: str) -> Linkage:
    """
    Compute the linkage report of the executable at *path*.

    Raises
    ------
    LinkageAnalysisFailed
        If the binary can't be read or isn't a valid ELF file.
    """
    target = parse_triple(target_triple)
    linkage = Linkage()

    if target.is_windows or target.is_mac or target.is_ios or target.is_wasm:
        logger.warning("linkage analysis is not supported for %s, skipping %s", target_triple, path)
        return linkage

    try:
        info = read_dynamic(path)
    except (OSError, ELFError) as e:
        raise LinkageAnalysisFailed(f"failed to read linkage of {path}: {e}", path=path) from e

    search_dirs = info.search_paths + default_search_dirs(target)
    for name in info.needed:
        resolved = resolve_library(name, search_dirs)
        if resolved is None:
            linkage.add("other", Library(path=name))
            continue
        bucket, source = classify_library(resolved)
        linkage.add(bucket, Library(path=resolved, source=source))

    return linkage
