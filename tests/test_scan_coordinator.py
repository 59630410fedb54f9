"""Tests for the parallel project scan."""

import os
from pathlib import Path

import pytest

from helpers import RecordingRenderer, make_project
from scan_coordinator import ScanCoordinator, is_excluded
from tree_collector import TraversalStrategy, collect


def scan(root: Path, config, renderer=None, strategy=TraversalStrategy.BFS, **kwargs):
    renderer = renderer or RecordingRenderer()
    directories = collect(root, strategy, prune_names=(config.build_dir,))
    return ScanCoordinator(renderer, **kwargs).scan(directories, config), renderer


class TestScenario:
    def test_single_project_with_plain_subdirectory(self, tmp_path: Path, config_for):
        """A/ holds Cargo.toml and 2 MiB of target/, A/sub/ holds nothing."""
        make_project(tmp_path / "A", target_bytes=2_097_152)
        (tmp_path / "A" / "sub").mkdir()

        projects, _ = scan(tmp_path, config_for())

        assert [(p.path, p.artifact_size) for p in projects] == [(tmp_path / "A", "2.0MB")]


class TestScanCoordinator:
    @pytest.fixture
    def workspace(self, tmp_path: Path) -> Path:
        make_project(tmp_path / "zeta", 1024)
        make_project(tmp_path / "alpha", 2048)
        make_project(tmp_path / "alpha" / "crates" / "core", 10)
        make_project(tmp_path / "beta" / "inner", 4096)
        (tmp_path / "beta" / "Cargo.toml").write_text("")  # marker without target/
        (tmp_path / "gamma" / "target").mkdir(parents=True)  # target/ without marker
        for i in range(25):
            (tmp_path / "filler" / f"d{i:02d}").mkdir(parents=True)
        return tmp_path

    @pytest.mark.parametrize("workers", [1, 3, 16])
    @pytest.mark.parametrize("strategy", list(TraversalStrategy))
    def test_sorted_by_depth_then_path(self, workspace: Path, config_for, workers, strategy):
        config = config_for(scan_workers=workers)
        projects, _ = scan(workspace, config, strategy=strategy)

        assert [p.path for p in projects] == [
            workspace / "alpha",
            workspace / "zeta",
            workspace / "beta" / "inner",
            workspace / "alpha" / "crates" / "core",
        ]
        assert [p.artifact_size for p in projects] == ["2.0KB", "1.0KB", "4.0KB", "10B"]

    def test_root_itself_can_be_a_project(self, tmp_path: Path, config_for):
        make_project(tmp_path, 100)
        projects, _ = scan(tmp_path, config_for())
        assert [p.path for p in projects] == [tmp_path]

    def test_every_directory_visited_once(self, workspace: Path, config_for):
        config = config_for(scan_workers=8)
        directories = collect(workspace, TraversalStrategy.BFS)
        renderer = RecordingRenderer()

        ScanCoordinator(renderer).scan(directories, config)

        visited = [call[1] for call in renderer.of("visiting")]
        assert sorted(visited) == sorted(e.path for e in directories)
        assert len(visited) == len(set(visited))

    def test_progress_events(self, workspace: Path, config_for):
        config = config_for(scan_workers=4)
        directories = collect(workspace, TraversalStrategy.BFS)
        renderer = RecordingRenderer()
        coordinator = ScanCoordinator(renderer, channel_capacity=4)

        projects = coordinator.scan(directories, config)

        assert renderer.calls[0] == ("start",)
        assert renderer.calls[-1] == ("done", len(directories))
        assert len(renderer.of("done")) == 1
        assert sorted(call[1].path for call in renderer.of("found")) == sorted(p.path for p in projects)
        counts = [call[1] for call in renderer.of("scanned")]
        assert counts == sorted(counts)
        assert counts[-1] == len(directories)
        assert coordinator.scanned_count == len(directories)

    def test_max_depth(self, workspace: Path, config_for):
        projects, renderer = scan(workspace, config_for(max_depth=1))

        assert [p.path for p in projects] == [workspace / "alpha", workspace / "zeta"]
        assert all(call[2] <= 1 for call in renderer.of("visiting"))

    def test_max_depth_zero_scans_root_only(self, workspace: Path, config_for):
        projects, renderer = scan(workspace, config_for(max_depth=0))

        assert projects == []
        assert [call[1] for call in renderer.of("visiting")] == [workspace]

    def test_exclusions_match_full_path(self, workspace: Path, config_for):
        config = config_for(excludes=("*/alpha*", str(workspace / "beta" / "inner")))
        projects, renderer = scan(workspace, config)

        assert [p.path for p in projects] == [workspace / "zeta"]
        visited = {call[1] for call in renderer.of("visiting")}
        assert workspace / "alpha" not in visited
        assert workspace / "beta" in visited

    def test_custom_marker_and_build_dir(self, tmp_path: Path, config_for):
        node = tmp_path / "web"
        (node / "node_modules").mkdir(parents=True)
        (node / "package.json").write_text("{}")
        (node / "node_modules" / "x.js").write_bytes(b"x" * 1024)
        make_project(tmp_path / "rust", 10)

        config = config_for(marker_file="package.json", build_dir="node_modules")
        projects, _ = scan(tmp_path, config)

        assert [(p.path, p.artifact_size) for p in projects] == [(node, "1.0KB")]

    def test_repeated_scans_agree(self, workspace: Path, config_for):
        config = config_for(scan_workers=6)
        first, _ = scan(workspace, config)
        second, _ = scan(workspace, config)

        assert {(p.path, p.artifact_size) for p in first} == {(p.path, p.artifact_size) for p in second}

    def test_shutdown_skips_inspection_but_finishes(self, workspace: Path, config_for):
        directories = collect(workspace, TraversalStrategy.BFS)
        renderer = RecordingRenderer()
        coordinator = ScanCoordinator(renderer, shutdown_requested=lambda: True)

        projects = coordinator.scan(directories, config_for())

        assert projects == []
        assert renderer.of("visiting") == []
        assert renderer.of("done") == [("done", len(directories))]

    def test_worker_error_is_raised_after_done(self, workspace: Path, config_for, monkeypatch):
        import scan_coordinator

        def broken(path):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(scan_coordinator, "dir_size", broken)
        renderer = RecordingRenderer()

        with pytest.raises(RuntimeError, match="disk on fire"):
            ScanCoordinator(renderer).scan(collect(workspace, TraversalStrategy.BFS), config_for())

        assert len(renderer.of("done")) == 1

    def test_empty_input(self, config_for):
        renderer = RecordingRenderer()
        assert ScanCoordinator(renderer).scan([], config_for()) == []
        assert renderer.calls == [("start",), ("done", 0)]


class TestIsExcluded:
    def test_glob_on_full_path(self):
        assert is_excluded(Path("/home/u/src/vendor/lib"), ("*/vendor/*",))
        assert not is_excluded(Path("/home/u/src/lib"), ("*/vendor/*",))

    def test_no_patterns(self):
        assert not is_excluded(Path("/anything"), ())


class TestUnreadableDirectories:
    def test_permission_error_on_marker_check_is_a_skip(self, tmp_path: Path, config_for, monkeypatch):
        make_project(tmp_path / "A", 1024)
        (tmp_path / "locked").mkdir()
        real_is_file = Path.is_file

        def is_file(self):
            if self.parent.name == "locked":
                raise PermissionError(13, "Permission denied", str(self))
            return real_is_file(self)

        monkeypatch.setattr(Path, "is_file", is_file)
        skipped = []

        projects, renderer = scan(tmp_path, config_for(), on_skip=lambda path, error: skipped.append(path))

        assert [p.path for p in projects] == [tmp_path / "A"]
        assert skipped == [tmp_path / "locked"]
        assert len(renderer.of("done")) == 1

    @pytest.mark.skipif(not hasattr(os, "geteuid") or os.geteuid() == 0, reason="root ignores permissions")
    def test_locked_directory_does_not_abort_scan(self, tmp_path: Path, config_for):
        make_project(tmp_path / "A", 1024)
        locked = tmp_path / "locked"
        locked.mkdir()
        locked.chmod(0)
        try:
            projects, _ = scan(tmp_path, config_for())
        finally:
            locked.chmod(0o755)

        assert [p.path for p in projects] == [tmp_path / "A"]
