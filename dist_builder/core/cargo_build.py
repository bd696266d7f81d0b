"""
Cargo build — run ``cargo build`` for a build task and report what it made.

One invocation routine, ``run_cargo_build``, spawns cargo, reads its JSON
message stream line by line while the child runs and hands every produced
executable to a sink:

  - ``ExecutablePaths``    — maps expected artifacts to produced paths.
  - ``BuildExpectations``  — also keeps symbol files and feeds the manifest
                             (see ``dist_builder.core.expectations``).
"""
from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from dist_builder.core.graph import BuildTask, DistGraph
from dist_builder.errors import CompilerInvocationFailed, MissingBinariesError
from dist_builder.io.messages import COMPILER_ARTIFACT, CargoMessage, CompilerArtifactMessage

logger = logging.getLogger(__name__)

# (package_id, executable, other files cargo reported for the unit)
ArtifactSink = Callable[[str, Path, List[Path]], None]


def cargo_build_command(cargo: str, task: BuildTask) -> List[str]:
    """The argv for building *task*."""
    cmd = [
        cargo,
        "build",
        "--profile",
        task.profile,
        "--message-format=json",
    ]
    if task.features.no_default_features:
        cmd.append("--no-default-features")
    if task.features.all_features:
        cmd.append("--all-features")
    elif task.features.features:
        cmd.extend(["--features", ",".join(task.features.features)])
    if task.package_id is None:
        cmd.append("--workspace")
    else:
        cmd.extend(["--package", task.package_id])
    return cmd


def parse_message(line: bytes) -> Optional[CompilerArtifactMessage]:
    """
    Parse one line of cargo's JSON stream.

    Returns the message if it is a compiler artifact, None for any other
    kind.  Lines that do not parse are logged and skipped: messages we don't
    understand are fine as long as the ones we need show up.
    """
    text = line.decode("utf-8", errors="replace").strip()
    if not text:
        return None
    try:
        envelope = CargoMessage.model_validate(json.loads(text))
        if envelope.reason != COMPILER_ARTIFACT:
            logger.debug("ignoring cargo message: %s", envelope.reason)
            return None
        return CompilerArtifactMessage.model_validate_json(text)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning("failed to parse cargo json message: %s", e)
        return None


def run_cargo_build(graph: DistGraph, task: BuildTask, sink: ArtifactSink) -> None:
    """
    Build *task* and feed every produced executable to *sink*.

    Raises
    ------
    CompilerInvocationFailed
        If cargo cannot be spawned or exits unsuccessfully.
    """
    logger.info("building cargo target (%s/%s)", task.target_triple, task.profile)
    cmd = cargo_build_command(graph.cargo, task)
    logger.info("exec: %s", " ".join(cmd))

    try:
        proc = subprocess.Popen(cmd, stdout=subprocess.PIPE, cwd=graph.workspace_dir)
    except OSError as e:
        raise CompilerInvocationFailed(f"failed to exec cargo build: {e}", command=cmd) from e

    with proc:
        assert proc.stdout is not None
        for line in proc.stdout:
            message = parse_message(line)
            if message is None or message.executable is None:
                continue
            executable = Path(message.executable)
            logger.info("got a new exe: %s", executable)
            sink(message.package_id, executable, [Path(f) for f in message.filenames])
        returncode = proc.wait()

    if returncode != 0:
        raise CompilerInvocationFailed(
            f"cargo build exited with status {returncode}",
            command=cmd,
            returncode=returncode,
        )


class ExecutablePaths:
    """
    Sink that records where each expected executable ended up.

    Seeded with an empty path for every artifact of the task; a later
    message for the same (package, stem) replaces an earlier one.
    """

    def __init__(self, graph: DistGraph, task: BuildTask) -> None:
        self.expected: Dict[str, Dict[str, Tuple[int, Optional[Path]]]] = {}
        for artifact_idx in task.expected_artifacts:
            artifact = graph.artifact(artifact_idx)
            self.expected.setdefault(artifact.package_id, {})[artifact.name] = (
                artifact_idx,
                None,
            )

    def __call__(self, package_id: str, executable: Path, filenames: List[Path]) -> None:
        exes = self.expected.get(package_id)
        if exes is None:
            return
        stem = executable.stem
        if stem in exes:
            idx, _ = exes[stem]
            exes[stem] = (idx, executable)

    def built_paths(self) -> Dict[int, Path]:
        """artifact index → produced path; raises if anything is missing."""
        built: Dict[int, Path] = {}
        missing: List[Tuple[str, str]] = []
        for package_id, exes in self.expected.items():
            for exe_name, (idx, path) in exes.items():
                if path is None:
                    missing.append((package_id, exe_name))
                    continue
                built[idx] = path
        if missing:
            raise MissingBinariesError(missing)
        return built


def build_cargo_target(graph: DistGraph, task: BuildTask) -> Dict[int, Path]:
    """Build *task* and return artifact index → executable path."""
    sink = ExecutablePaths(graph, task)
    run_cargo_build(graph, task, sink)
    return sink.built_paths()
