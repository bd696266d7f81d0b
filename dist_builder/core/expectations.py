"""
Expectations — reconcile what a build produced with what the plan expects.

Each expected binary moves through:

    Seeded → Located → Validated → Processed
       └────────┴──→ Missing (at finalize time)

``note_produced`` is the build driver's sink: it locates binaries and keeps
the symbol files that sit next to them.  ``process_bins`` runs once the
build is done: it validates every binary, records its linkage in the
manifest and copies binary + symbols to their destinations.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, unique
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from dist_builder.core.files import copy_into
from dist_builder.core.graph import DistGraph, ExpectedArtifact
from dist_builder.core.linkage import determine_linkage
from dist_builder.errors import MissingBinariesError
from dist_builder.io.schema import AssetInfo, DistManifest, Library, Linkage
from dist_builder.policy.selection import is_symbol_file

logger = logging.getLogger(__name__)

LinkageAnalyzer = Callable[[Path, str], Linkage]


@unique
class BinaryState(str, Enum):
    SEEDED = "SEEDED"
    LOCATED = "LOCATED"
    VALIDATED = "VALIDATED"
    PROCESSED = "PROCESSED"
    MISSING = "MISSING"


@dataclass
class ExpectedBinary:
    """A binary we expect from the build, and what we learned about it."""

    idx: int
    # set by note_produced; must be set by the end of the build
    src_path: Optional[Path] = None
    sym_paths: List[Path] = field(default_factory=list)
    state: BinaryState = BinaryState.SEEDED


@dataclass
class BinaryExpectations:
    """Expected binaries of one package, keyed by stem."""

    binaries: Dict[str, ExpectedBinary] = field(default_factory=dict)


def fake_linkage() -> Linkage:
    """Placeholder report used when artifacts are faked."""
    linkage = Linkage()
    linkage.add("other", Library(path="fakelib", source=None))
    return linkage


class BuildExpectations:
    """Output expectations for a build, and the facts computed about them."""

    def __init__(
        self,
        graph: DistGraph,
        expected_artifacts: Sequence[int],
        fake: bool = False,
        analyzer: LinkageAnalyzer = determine_linkage,
    ) -> None:
        self.graph = graph
        self.fake = fake
        self.analyzer = analyzer
        self.packages: Dict[str, BinaryExpectations] = {}
        for artifact_idx in expected_artifacts:
            artifact = graph.artifact(artifact_idx)
            pkg = self.packages.setdefault(artifact.package_id, BinaryExpectations())
            pkg.binaries[artifact.name] = ExpectedBinary(idx=artifact_idx)

    @classmethod
    def new_fake(cls, graph: DistGraph, expected_artifacts: Sequence[int]) -> BuildExpectations:
        return cls(graph, expected_artifacts, fake=True)

    def note_produced(
        self,
        package_id: str,
        src_path: Path,
        candidate_symbols: Sequence[Path] = (),
    ) -> None:
        """
        Record that the build produced *src_path* for *package_id*.

        Binaries nobody asked for are dropped.  Of the candidate symbol
        files, only those with a recognised symbol extension are kept.
        """
        logger.info("got a new binary: %s", src_path)

        pkg = self.packages.get(package_id)
        if pkg is None:
            return
        stem = Path(src_path).stem
        if not stem:
            return
        expected = pkg.binaries.get(stem)
        if expected is None:
            return

        expected.src_path = Path(src_path)
        expected.state = BinaryState.LOCATED
        for sym_path in candidate_symbols:
            sym_path = Path(sym_path)
            if is_symbol_file(sym_path, self.graph.profile):
                expected.sym_paths.append(sym_path)

    # the build driver's sink signature
    __call__ = note_produced

    def built_paths(self) -> Dict[int, Path]:
        """artifact index → produced path, for every located binary."""
        return {
            b.idx: b.src_path
            for pkg in self.packages.values()
            for b in pkg.binaries.values()
            if b.src_path is not None
        }

    def process_bins(self, graph: DistGraph, manifest: DistManifest) -> None:
        """
        Finish every expected binary once the build is complete.

          - check that the binary was produced and exists on disk
          - record its linkage in ``manifest.assets``
          - copy the binary and its symbols to their destinations

        Raises ``MissingBinariesError`` listing every binary that wasn't
        produced; the others are still processed.
        """
        missing: List[Tuple[str, str]] = []
        for package_id in sorted(self.packages):
            pkg = self.packages[package_id]
            for bin_name in sorted(pkg.binaries):
                expected = pkg.binaries[bin_name]
                if expected.src_path is None or not expected.src_path.exists():
                    expected.state = BinaryState.MISSING
                    missing.append((package_id, bin_name))
                    continue
                expected.state = BinaryState.VALIDATED

                artifact = graph.artifact(expected.idx)
                self._compute_linkage(graph, manifest, expected, artifact)
                self._copy_assets(expected, artifact)
                expected.state = BinaryState.PROCESSED

        if missing:
            raise MissingBinariesError(missing)

    def _compute_linkage(
        self,
        graph: DistGraph,
        manifest: DistManifest,
        expected: ExpectedBinary,
        artifact: ExpectedArtifact,
    ) -> None:
        assert expected.src_path is not None
        if self.fake:
            linkage = fake_linkage()
        else:
            linkage = self.analyzer(expected.src_path, artifact.target_triple)
        manifest.assets[artifact.id] = AssetInfo(
            id=artifact.id,
            name=artifact.name,
            system=graph.system_id,
            linkage=linkage,
        )

    def _copy_assets(self, expected: ExpectedBinary, artifact: ExpectedArtifact) -> None:
        assert expected.src_path is not None
        for dest_dir in artifact.copy_exe_to:
            copy_into(expected.src_path, dest_dir)
        for sym_path in expected.sym_paths:
            for dest_dir in artifact.copy_symbols_to:
                copy_into(sym_path, dest_dir)
