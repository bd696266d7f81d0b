"""
Init — prepare a workspace's Cargo.toml for dist builds.

Adds, preserving the rest of the file as written:
  - ``[profile.dist]``: release + full debuginfo split into a packed file
  - ``[workspace.metadata.dist]`` (or ``[package.metadata.dist]`` when the
    root manifest is a package) with placeholder keys

Running it twice is an error.
"""
from __future__ import annotations

import logging
from pathlib import Path

import tomlkit
from tomlkit.exceptions import TOMLKitError
from tomlkit.items import Table
from tomlkit.toml_document import TOMLDocument

from dist_builder.errors import ConfigError, InitError
from dist_builder.policy.profile import DistProfile

logger = logging.getLogger(__name__)

# placeholder values written under the metadata table
INIT_OS = ["windows", "macos", "linux"]
INIT_CPU = ["x86_64", "arm64"]


def _implicit_table(parent, key: str) -> Table:
    """Get ``parent[key]``, creating it as an implicit (super-)table."""
    if key not in parent:
        table = tomlkit.table(is_super_table=True)
        parent[key] = table
    return parent[key]


def add_dist_profile(doc: TOMLDocument, profile: DistProfile) -> None:
    profiles = _implicit_table(doc, "profile")
    if profile.cargo_profile in profiles:
        raise InitError(
            f"already init! (based on [profile.{profile.cargo_profile}] existing in your Cargo.toml)"
        )
    new_profile = tomlkit.table()
    new_profile.add(tomlkit.comment("generated by 'init'"))
    new_profile.add("inherits", "release")
    # full debuginfo, moved out of the binary by split-debuginfo
    new_profile.add("debug", True)
    new_profile.add("split-debuginfo", "packed")
    profiles[profile.cargo_profile] = new_profile


def add_dist_metadata(doc: TOMLDocument, profile: DistProfile, root_is_package: bool) -> None:
    pre_key = "package" if root_is_package else "workspace"
    section = _implicit_table(doc, pre_key)
    metadata = _implicit_table(section, "metadata")
    if profile.metadata_key in metadata:
        raise InitError(
            f"already init! (based on [{pre_key}.metadata.{profile.metadata_key}] "
            "existing in your Cargo.toml)"
        )
    new_metadata = tomlkit.table()
    new_metadata.add(tomlkit.comment("These keys are generated by 'init' and are fake placeholders"))
    new_metadata.add("os", INIT_OS)
    new_metadata.add("cpu", INIT_CPU)
    metadata[profile.metadata_key] = new_metadata


def init_manifest(
    manifest_path: Path,
    root_is_package: bool,
    profile: DistProfile | None = None,
) -> None:
    """
    Rewrite the Cargo.toml at *manifest_path* with the dist tables.

    Raises ``InitError`` if either table already exists, ``ConfigError`` if
    the manifest can't be read or parsed.  The file is only written when
    both tables were added.
    """
    if profile is None:
        profile = DistProfile.v0()

    try:
        doc = tomlkit.parse(manifest_path.read_text())
    except OSError as e:
        raise ConfigError("couldn't read root workspace Cargo.toml", path=manifest_path) from e
    except TOMLKitError as e:
        raise ConfigError("couldn't parse root workspace Cargo.toml", path=manifest_path) from e

    add_dist_profile(doc, profile)
    add_dist_metadata(doc, profile, root_is_package)

    try:
        manifest_path.write_text(tomlkit.dumps(doc))
    except OSError as e:
        raise ConfigError("failed to write to Cargo.toml", path=manifest_path) from e
    logger.info("added [profile.%s] to %s", profile.cargo_profile, manifest_path)
