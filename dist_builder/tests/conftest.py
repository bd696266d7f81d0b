"""
Shared pytest fixtures for dist_builder tests.

Most fixtures are pure-Python: workspaces are described with the same JSON
``cargo metadata`` prints.  End-to-end tests run against a fake ``cargo``
shell script that answers ``-vV``, ``metadata`` and ``build`` the way the
real one does, writing placeholder executables into the target dir.

Tests that need the fake cargo are skipped on Windows.
"""
import json
import os
import platform
import stat
import textwrap
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest

from dist_builder.core.workspace import WorkspaceInfo, workspace_from_metadata
from dist_builder.io.messages import CargoMetadata

LINUX_HOST = "x86_64-unknown-linux-gnu"
WINDOWS_HOST = "x86_64-pc-windows-msvc"

ROOT_CARGO_TOML = textwrap.dedent("""\
    [package]
    name = "foo"
    version = "1.2.3"
    edition = "2021"

    [dependencies]
""")


def package_id(name: str, version: str, root: Path) -> str:
    return f"path+file://{root.as_posix()}#{name}@{version}"


def metadata_doc(
    root: Path,
    packages: Sequence[Dict],
    metadata: Optional[Dict] = None,
) -> Dict:
    """
    ``cargo metadata`` output for *packages*.

    Each package is ``{"name", "version", "bins", "dir"?, "metadata"?}``;
    ``dir`` is relative to *root* (default: the root itself).
    """
    pkgs = []
    for p in packages:
        pkg_dir = root / p.get("dir", "")
        pkgs.append({
            "id": package_id(p["name"], p["version"], pkg_dir),
            "name": p["name"],
            "version": p["version"],
            "manifest_path": str(pkg_dir / "Cargo.toml"),
            "targets": (
                [{"name": b, "kind": ["bin"]} for b in p.get("bins", [])]
                + [{"name": p["name"], "kind": ["lib"]}]
            ),
            "metadata": p.get("metadata"),
        })
    return {
        "packages": pkgs,
        "workspace_members": [p["id"] for p in pkgs],
        "workspace_root": str(root),
        "target_directory": str(root / "target"),
        "metadata": metadata,
        "version": 1,
    }


@pytest.fixture
def make_workspace():
    """Factory: build a ``WorkspaceInfo`` straight from metadata JSON."""
    def _make(root: Path, packages: Sequence[Dict], metadata: Optional[Dict] = None) -> WorkspaceInfo:
        doc = metadata_doc(root, packages, metadata)
        return workspace_from_metadata(CargoMetadata.model_validate(doc))
    return _make


@pytest.fixture
def single_workspace(tmp_path, make_workspace) -> WorkspaceInfo:
    """One package ``foo`` 1.2.3 with one binary ``foo`` and a README."""
    (tmp_path / "Cargo.toml").write_text(ROOT_CARGO_TOML)
    (tmp_path / "README.md").write_text("# foo\n")
    return make_workspace(tmp_path, [{"name": "foo", "version": "1.2.3", "bins": ["foo"]}])


# ── Fake cargo ───────────────────────────────────────────────────────────────

@pytest.fixture(scope="session")
def posix_shell():
    """Skip tests that need to exec a shell script."""
    if platform.system() == "Windows":
        pytest.skip("fake cargo is a POSIX shell script")


def _artifact_lines(root: Path, out_dir: Path, packages: Sequence[Dict]) -> List[str]:
    lines = []
    for p in packages:
        pkg_dir = root / p.get("dir", "")
        for b in p.get("bins", []):
            exe = out_dir / b
            lines.append(json.dumps({
                "reason": "compiler-artifact",
                "package_id": package_id(p["name"], p["version"], pkg_dir),
                "target": {"name": b, "kind": ["bin"]},
                "executable": str(exe),
                "filenames": [str(exe), str(out_dir / f"{b}.dwp")],
                "fresh": False,
            }))
    return lines


@pytest.fixture
def fake_cargo(tmp_path, posix_shell):
    """
    Factory: write a fake cargo for a workspace rooted at *root*.

    ``build`` writes ``target/dist/<bin>`` and ``<bin>.dwp`` for every
    binary in *produce* (default: all of them), prints the matching
    compiler-artifact messages among some noise, and exits with
    *build_exit*.
    """
    def _make(
        root: Path,
        packages: Sequence[Dict],
        host: str = LINUX_HOST,
        produce: Optional[Sequence[str]] = None,
        build_exit: int = 0,
    ) -> Path:
        doc = metadata_doc(root, packages)
        meta_path = tmp_path / "cargo-metadata.json"
        meta_path.write_text(json.dumps(doc))

        out_dir = Path(doc["target_directory"]) / "dist"
        produced = [
            dict(p, bins=[b for b in p.get("bins", []) if produce is None or b in produce])
            for p in packages
        ]
        writes = "\n".join(
            f'    printf "{b} binary\\n" > "{out_dir / b}"\n'
            f'    printf "{b} debuginfo\\n" > "{out_dir / (b + ".dwp")}"'
            for p in produced
            for b in p["bins"]
        )
        messages = "\n".join(
            ['{"reason":"compiler-message","message":{}}', "this is not json"]
            + _artifact_lines(root, out_dir, produced)
            + ['{"reason":"build-finished","success":true}']
        )

        script = tmp_path / "bin" / "cargo"
        script.parent.mkdir(parents=True, exist_ok=True)
        script.write_text(
            "#!/bin/sh\n"
            'case "$1" in\n'
            "  -vV)\n"
            '    echo "cargo 1.75.0 (1d8b05cdd 2023-11-20)"\n'
            '    echo "release: 1.75.0"\n'
            f'    echo "host: {host}"\n'
            "    ;;\n"
            "  metadata)\n"
            f'    cat "{meta_path}"\n'
            "    ;;\n"
            "  build)\n"
            f'    mkdir -p "{out_dir}"\n'
            f"{writes}\n"
            "    cat <<'EOF'\n"
            f"{messages}\n"
            "EOF\n"
            f"    exit {build_exit}\n"
            "    ;;\n"
            "  *)\n"
            '    echo "unsupported: $*" >&2\n'
            "    exit 2\n"
            "    ;;\n"
            "esac\n"
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return _make


@pytest.fixture
def cargo_project(tmp_path, fake_cargo, monkeypatch):
    """
    A workspace dir holding Cargo.toml + README.md, the cwd for the test.

    Returns a factory taking the same keywords as ``fake_cargo`` (minus
    *root*) and returning ``(root, cargo)``.
    """
    root = tmp_path / "ws"
    root.mkdir()
    (root / "Cargo.toml").write_text(ROOT_CARGO_TOML)
    (root / "README.md").write_text("# foo\n")
    monkeypatch.chdir(root)
    monkeypatch.delenv("CARGO", raising=False)

    def _make(packages: Optional[Sequence[Dict]] = None, **kwargs):
        if packages is None:
            packages = [{"name": "foo", "version": "1.2.3", "bins": ["foo"]}]
        return root, str(fake_cargo(root, packages, **kwargs))

    return _make


def is_elf(path: str) -> bool:
    try:
        with open(path, "rb") as f:
            return f.read(4) == b"\x7fELF"
    except OSError:
        return False


@pytest.fixture(scope="session")
def elf_executable() -> Path:
    """An ELF executable that exists on this machine."""
    for candidate in ("/bin/sh", "/bin/ls", "/usr/bin/env", os.path.realpath("/proc/self/exe")):
        if is_elf(candidate):
            return Path(candidate)
    pytest.skip("no ELF executable available")
