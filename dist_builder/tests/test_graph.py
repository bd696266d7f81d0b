"""
test_graph — work planning.

Tests verify invariant properties:
  - One build task for the host; one artifact and one distributable per binary.
  - Bundle style and archive name follow the host target.
  - Every index a distributable or release references resolves.
"""
import pytest

from dist_builder.core.graph import CargoTargetFeatures, distributable_full_name, gather_work
from dist_builder.errors import ConfigError
from dist_builder.policy.profile import DistProfile
from dist_builder.policy.selection import BundleStyle, CompressionImpl, select_bundle_style

LINUX_HOST = "x86_64-unknown-linux-gnu"
WINDOWS_HOST = "x86_64-pc-windows-msvc"


class TestSinglePackage:
    """A workspace with one package ``foo`` 1.2.3 and one binary."""

    def test_linux_host(self, single_workspace):
        graph = gather_work(single_workspace, LINUX_HOST)

        assert len(graph.build_tasks) == 1
        task = graph.build_tasks[0]
        assert task.target_triple == LINUX_HOST
        assert task.profile == "dist"
        assert task.package_id is None
        assert task.features == CargoTargetFeatures()
        assert task.expected_artifacts == [0]

        assert len(graph.artifacts) == 1
        artifact = graph.artifacts[0]
        assert artifact.name == "foo"
        assert artifact.version == "1.2.3"
        assert artifact.id == "foo-v1.2.3-x86_64-unknown-linux-gnu"

        assert len(graph.distributables) == 1
        distrib = graph.distributables[0]
        assert distrib.file_name == "foo-v1.2.3-x86_64-unknown-linux-gnu.tar.xz"
        assert distrib.dir_path.name == "foo-v1.2.3-x86_64-unknown-linux-gnu"
        assert distrib.bundle is BundleStyle.TAR_XZIP
        assert distrib.bundle.compression is CompressionImpl.XZIP
        assert distrib.required_artifacts == {0}

        assert len(graph.releases) == 1
        release = graph.releases[0]
        assert (release.app_name, release.version) == ("foo", "1.2.3")
        assert release.distributables == [0]

    def test_windows_host(self, single_workspace):
        graph = gather_work(single_workspace, WINDOWS_HOST)

        distrib = graph.distributables[0]
        assert distrib.file_name.endswith(".zip")
        assert distrib.bundle is BundleStyle.ZIP
        assert distrib.bundle.compression is None

    def test_paths_under_dist_dir(self, single_workspace):
        graph = gather_work(single_workspace, LINUX_HOST)

        assert graph.dist_dir == single_workspace.target_dir / "distrib"
        distrib = graph.distributables[0]
        assert distrib.dir_path.parent == graph.dist_dir
        assert distrib.file_path == graph.dist_dir / distrib.file_name

    def test_copy_destinations(self, single_workspace):
        graph = gather_work(single_workspace, LINUX_HOST)

        artifact = graph.artifacts[0]
        assert artifact.copy_exe_to == [graph.distributables[0].dir_path]
        assert artifact.copy_symbols_to == [graph.dist_dir / "symbols" / artifact.id]

    def test_existing_builtin_files_become_assets(self, single_workspace):
        graph = gather_work(single_workspace, LINUX_HOST)

        # README.md exists, CHANGELOG.md / RELEASES.md don't
        assert graph.distributables[0].assets == [single_workspace.workspace_root / "README.md"]

    def test_system_id(self, single_workspace):
        graph = gather_work(single_workspace, LINUX_HOST)
        assert graph.system_id == f"{LINUX_HOST}:dist"

    def test_custom_profile(self, single_workspace):
        profile = DistProfile(cargo_profile="release", dist_dir_name="out")
        graph = gather_work(single_workspace, LINUX_HOST, profile=profile)

        assert graph.build_tasks[0].profile == "release"
        assert graph.dist_dir.name == "out"


class TestMultiPackage:

    @pytest.fixture
    def workspace(self, tmp_path, make_workspace):
        return make_workspace(tmp_path, [
            {"name": "foo", "version": "1.2.3", "bins": ["foo", "foo-helper"], "dir": "foo"},
            {"name": "bar", "version": "0.1.0", "bins": ["bar"], "dir": "bar"},
            {"name": "util", "version": "0.1.0", "bins": [], "dir": "util"},
        ])

    def test_one_artifact_per_binary(self, workspace):
        graph = gather_work(workspace, LINUX_HOST)

        assert [a.name for a in graph.artifacts] == ["foo", "foo-helper", "bar"]
        assert graph.build_tasks[0].expected_artifacts == [0, 1, 2]
        assert len(graph.distributables) == 3

    def test_releases_grouped_by_name_and_version(self, workspace):
        graph = gather_work(workspace, LINUX_HOST)

        keys = [(r.app_name, r.version) for r in graph.releases]
        assert keys == [("foo", "1.2.3"), ("foo-helper", "1.2.3"), ("bar", "0.1.0")]

    def test_indices_resolve(self, workspace):
        graph = gather_work(workspace, LINUX_HOST)

        for i, artifact in enumerate(graph.artifacts):
            assert artifact.idx == i
            assert 0 <= artifact.build_task < len(graph.build_tasks)
        for i, distrib in enumerate(graph.distributables):
            assert distrib.idx == i
            for idx in distrib.required_artifacts:
                assert graph.artifact(idx).idx == idx
        for release in graph.releases:
            for idx in release.distributables:
                assert graph.distributable(idx).idx == idx

    def test_distributables_requiring(self, workspace):
        graph = gather_work(workspace, LINUX_HOST)

        requiring = graph.distributables_requiring(2)
        assert [d.full_name for d in requiring] == ["bar-v0.1.0-x86_64-unknown-linux-gnu"]

    def test_virtual_workspace_has_no_root_package(self, workspace):
        assert workspace.root_package is None

    def test_symbol_dirs_are_per_artifact(self, workspace):
        graph = gather_work(workspace, LINUX_HOST)

        dests = [tuple(a.copy_symbols_to) for a in graph.artifacts]
        assert len(set(dests)) == len(dests)
        for artifact in graph.artifacts:
            assert artifact.copy_symbols_to[0].parent == graph.symbols_dir

    def test_same_binary_in_two_packages(self, tmp_path, make_workspace):
        workspace = make_workspace(tmp_path, [
            {"name": "a", "version": "1.0.0", "bins": ["cli"], "dir": "a"},
            {"name": "b", "version": "1.0.0", "bins": ["cli"], "dir": "b"},
        ])

        with pytest.raises(ConfigError, match="both") as excinfo:
            gather_work(workspace, LINUX_HOST)
        for pkg in workspace.members:
            assert pkg.id in str(excinfo.value)

    def test_same_binary_different_versions(self, tmp_path, make_workspace):
        workspace = make_workspace(tmp_path, [
            {"name": "a", "version": "1.0.0", "bins": ["cli"], "dir": "a"},
            {"name": "b", "version": "2.0.0", "bins": ["cli"], "dir": "b"},
        ])

        graph = gather_work(workspace, LINUX_HOST)

        assert sorted(d.full_name for d in graph.distributables) == [
            "cli-v1.0.0-x86_64-unknown-linux-gnu",
            "cli-v2.0.0-x86_64-unknown-linux-gnu",
        ]


class TestMetadataTables:

    def test_unknown_keys_accepted(self, tmp_path, make_workspace):
        workspace = make_workspace(
            tmp_path,
            [{"name": "foo", "version": "1.2.3", "bins": ["foo"], "metadata": {"dist": {"os": ["linux"]}}}],
            metadata={"dist": {"cpu": ["x86_64"]}},
        )
        graph = gather_work(workspace, LINUX_HOST)
        assert graph.workspace_config is not None

    def test_no_table(self, single_workspace):
        assert gather_work(single_workspace, LINUX_HOST).workspace_config is None

    def test_malformed_table(self, tmp_path, make_workspace):
        workspace = make_workspace(
            tmp_path,
            [{"name": "foo", "version": "1.2.3", "bins": ["foo"]}],
            metadata={"dist": "not a table"},
        )
        with pytest.raises(ConfigError, match=r"\[workspace.metadata.dist\]"):
            gather_work(workspace, LINUX_HOST)


class TestSelection:

    @pytest.mark.parametrize("triple,style", [
        ("x86_64-pc-windows-msvc", BundleStyle.ZIP),
        ("aarch64-pc-windows-gnu", BundleStyle.ZIP),
        ("x86_64-unknown-linux-gnu", BundleStyle.TAR_XZIP),
        ("aarch64-apple-darwin", BundleStyle.TAR_XZIP),
    ])
    def test_bundle_style(self, triple, style):
        assert select_bundle_style(triple) is style

    @pytest.mark.parametrize("style,ext", [
        (BundleStyle.ZIP, "zip"),
        (BundleStyle.TAR_GZIP, "tar.gz"),
        (BundleStyle.TAR_XZIP, "tar.xz"),
        (BundleStyle.TAR_ZSTD, "tar.zstd"),
    ])
    def test_extension(self, style, ext):
        assert style.extension == ext

    def test_full_name(self):
        assert distributable_full_name("foo", "1.2.3", LINUX_HOST) == "foo-v1.2.3-x86_64-unknown-linux-gnu"
