"""
Selection — per-target policy decisions.

Policy rules read the profile and the target triple but never touch the
filesystem or the compiler.
"""
from __future__ import annotations

from enum import Enum, unique
from pathlib import Path
from typing import Optional

from dist_builder.policy.profile import DistProfile


@unique
class CompressionImpl(str, Enum):
    GZIP = "gzip"
    XZIP = "xzip"
    ZSTD = "zstd"


@unique
class BundleStyle(str, Enum):
    """Archive format of a distributable."""

    ZIP = "Zip"
    TAR_GZIP = "TarGzip"
    TAR_XZIP = "TarXzip"
    TAR_ZSTD = "TarZstd"

    @property
    def compression(self) -> Optional[CompressionImpl]:
        """Compression wrapped around the tar, None for zip."""
        return _COMPRESSION[self]

    @property
    def is_tar(self) -> bool:
        return self is not BundleStyle.ZIP

    @property
    def extension(self) -> str:
        return _EXTENSION[self]

    @classmethod
    def tar(cls, compression: CompressionImpl) -> BundleStyle:
        for style, comp in _COMPRESSION.items():
            if comp is compression:
                return style
        raise ValueError(f"no tar bundle style for {compression!r}")


_COMPRESSION = {
    BundleStyle.ZIP: None,
    BundleStyle.TAR_GZIP: CompressionImpl.GZIP,
    BundleStyle.TAR_XZIP: CompressionImpl.XZIP,
    BundleStyle.TAR_ZSTD: CompressionImpl.ZSTD,
}

_EXTENSION = {
    BundleStyle.ZIP: "zip",
    BundleStyle.TAR_GZIP: "tar.gz",
    BundleStyle.TAR_XZIP: "tar.xz",
    BundleStyle.TAR_ZSTD: "tar.zstd",
}


def select_bundle_style(target_triple: str) -> BundleStyle:
    """Windows gets zips, everything else tar.xz."""
    if "windows" in target_triple:
        return BundleStyle.ZIP
    return BundleStyle.tar(CompressionImpl.XZIP)


def is_symbol_file(path: Path, profile: DistProfile) -> bool:
    """Whether *path* has one of the symbol-file extensions of *profile*."""
    suffix = path.suffix
    if not suffix:
        return False
    return suffix[1:] in profile.symbol_extensions
