"""
Writer — serialize the dist manifest to JSON.
"""
import json
from pathlib import Path

from dist_builder.errors import FilesystemError
from dist_builder.io.schema import DistManifest


def manifest_json(manifest: DistManifest) -> str:
    """The manifest as pretty-printed JSON text (trailing newline included)."""
    return (
        json.dumps(
            manifest.model_dump(mode="json"),
            indent=2,
            sort_keys=True,
        )
        + "\n"
    )


def write_manifest(manifest: DistManifest, output_path: Path) -> Path:
    """
    Write *manifest* to *output_path*.

    Creates the parent directory if it does not exist.
    Returns the written path; raises ``FilesystemError`` if it can't.
    """
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(manifest_json(manifest))
    except OSError as e:
        raise FilesystemError(
            f"failed to write manifest {output_path}: {e}", path=output_path
        ) from e
    return output_path
