"""
Bundle — stage a distributable's files and archive them.

Per distributable:
  1. ``init_distributable_dir``  — recreate the staging dir, drop the old archive.
  2. built executables are copied in as soon as their build finishes
     (``populate_distributable_dirs_with_built_artifact`` or
     ``BuildExpectations.process_bins``).
  3. ``populate_distributable_dir_with_assets`` — README & co, flat.
  4. ``bundle_distributable`` — zip (stored) or tar + gzip/xz/zstd.
"""
from __future__ import annotations

import gzip
import logging
import lzma
import os
import tarfile
import zipfile
from contextlib import ExitStack
from pathlib import Path
from typing import BinaryIO, Iterator, Tuple

import zstandard

from dist_builder.core.files import copy_into, recreate_dir, remove_file
from dist_builder.core.graph import DistGraph, Distributable
from dist_builder.errors import ArchiveWriteFailed, FilesystemError
from dist_builder.policy.selection import CompressionImpl

logger = logging.getLogger(__name__)

XZ_PRESET = 9


# ── Staging ──────────────────────────────────────────────────────────────────

def init_distributable_dir(distrib: Distributable) -> None:
    """Recreate *distrib*'s staging dir and delete any previous archive."""
    logger.info("recreating distributable dir: %s", distrib.dir_path)
    recreate_dir(distrib.dir_path)
    remove_file(distrib.file_path)


def populate_distributable_dirs_with_built_artifact(
    graph: DistGraph, artifact_idx: int, built_artifact: Path
) -> None:
    """Copy *built_artifact* into every distributable that requires it."""
    for distrib in graph.distributables_requiring(artifact_idx):
        copy_into(built_artifact, distrib.dir_path)


def populate_distributable_dir_with_assets(distrib: Distributable) -> None:
    logger.info("populating distributable dir: %s", distrib.dir_path)
    for asset in distrib.assets:
        copy_into(asset, distrib.dir_path)


# ── Archiving ────────────────────────────────────────────────────────────────

def bundle_distributable(distrib: Distributable) -> Path:
    """Archive *distrib*'s staging dir; returns the archive path."""
    logger.info("bundling distributable: %s", distrib.file_path)
    if distrib.bundle.is_tar:
        tar_distributable(distrib)
    else:
        zip_distributable(distrib)
    logger.info("distributable created at: %s", distrib.file_path)
    return distrib.file_path


def _iter_zip_entries(root: Path, prefix: str = "") -> Iterator[Tuple[Path, str]]:
    """
    Yield (path, name-in-archive) for every file under *root*.

    Entries come in directory-iteration order; subdirectories are walked
    recursively.  Symlinks are rejected.
    """
    try:
        entries = list(os.scandir(root))
    except OSError as e:
        raise FilesystemError(f"failed to read distributable dir: {root}: {e}", path=root) from e
    for entry in entries:
        path = Path(entry.path)
        arcname = f"{prefix}{entry.name}"
        if entry.is_symlink():
            raise ArchiveWriteFailed(f"refusing to zip symlink {path}", path=path)
        if entry.is_dir():
            yield from _iter_zip_entries(path, f"{arcname}/")
        elif entry.is_file():
            yield path, arcname
        else:
            raise ArchiveWriteFailed(f"can't zip special file {path}", path=path)


def zip_distributable(distrib: Distributable) -> None:
    """Write a store-only zip of the staging dir's contents."""
    final_path = distrib.file_path
    try:
        with zipfile.ZipFile(final_path, "w", compression=zipfile.ZIP_STORED) as zf:
            for path, arcname in _iter_zip_entries(distrib.dir_path):
                zf.write(path, arcname)
    except OSError as e:
        raise ArchiveWriteFailed(f"failed to write archive: {final_path}: {e}", path=final_path) from e


def _compression_stream(
    stack: ExitStack, compression: CompressionImpl, fileobj: BinaryIO, tar_name: str
) -> BinaryIO:
    """Wrap *fileobj* in the compression stream for *compression*."""
    if compression is CompressionImpl.GZIP:
        return stack.enter_context(gzip.GzipFile(filename=tar_name, mode="wb", fileobj=fileobj))
    if compression is CompressionImpl.XZIP:
        return stack.enter_context(lzma.LZMAFile(fileobj, mode="wb", preset=XZ_PRESET))
    return stack.enter_context(
        zstandard.ZstdCompressor().stream_writer(fileobj, closefd=False)
    )


def tar_distributable(distrib: Distributable) -> None:
    """
    Write a compressed tar holding the staging dir as one top-level
    directory named after the distributable.
    """
    compression = distrib.bundle.compression
    assert compression is not None, "zip bundles go through zip_distributable"

    final_path = distrib.file_path
    top_level = distrib.full_name
    try:
        with ExitStack() as stack:
            # closed in reverse: tar, then compression, then the file
            out = stack.enter_context(open(final_path, "wb"))
            stream = _compression_stream(stack, compression, out, f"{top_level}.tar")
            tar = stack.enter_context(tarfile.open(fileobj=stream, mode="w"))
            tar.add(distrib.dir_path, arcname=top_level, recursive=True)
    except (OSError, tarfile.TarError, zstandard.ZstdError) as e:
        raise ArchiveWriteFailed(f"failed to write archive: {final_path}: {e}", path=final_path) from e
