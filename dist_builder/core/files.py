"""
Files — filesystem helpers that wrap OSError with the offending path.
"""
from __future__ import annotations

import logging
import shutil
from pathlib import Path

from dist_builder.errors import FilesystemError

logger = logging.getLogger(__name__)


def copy_into(src: Path, dest_dir: Path) -> Path:
    """
    Copy *src* into *dest_dir*, keeping its file name.

    Directories (e.g. ``.dSYM`` bundles) are copied recursively.
    Returns the destination path.
    """
    dest = dest_dir / src.name
    logger.info("  adding %s to %s", src, dest_dir)
    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
        if src.is_dir():
            shutil.copytree(src, dest, dirs_exist_ok=True)
        else:
            shutil.copyfile(src, dest)
            shutil.copymode(src, dest)
    except OSError as e:
        raise FilesystemError(f"failed to copy {src} => {dest}: {e}", path=src) from e
    return dest


def recreate_dir(path: Path) -> None:
    """Remove *path* if it exists, then create it empty."""
    try:
        if path.exists():
            shutil.rmtree(path)
        path.mkdir(parents=True)
    except OSError as e:
        raise FilesystemError(f"failed to recreate directory {path}: {e}", path=path) from e


def remove_file(path: Path) -> None:
    """Delete *path* if it exists."""
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        raise FilesystemError(f"failed to delete {path}: {e}", path=path) from e
