"""Unit tests for rotation/ageout.py: AgeOutEngine."""
from __future__ import annotations

import gzip
import os
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from pylogrotate.policies.policy import PolicyRecord
from pylogrotate.rotation.ageout import AgeOutEngine
from pylogrotate.rotation.compression import is_gzip_file


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def engine() -> AgeOutEngine:
    return AgeOutEngine()


@pytest.fixture()
def log_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "logs"
    directory.mkdir()
    (directory / "app.log").write_text("live\n", encoding="utf-8")
    return directory


def _make(directory: Path, *names: str) -> None:
    for name in names:
        (directory / name).write_text(f"{name}\n", encoding="utf-8")


def _names(directory: Path) -> set[str]:
    return {p.name for p in directory.iterdir()}


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


class TestListRotated:
    def test_excludes_live_file_and_strangers(self, engine: AgeOutEngine, log_dir: Path) -> None:
        _make(log_dir, "app.log.1", "app.log.2.gz", "other.log.1", "app.log.old")
        found = engine.list_rotated(PolicyRecord(), log_dir / "app.log", log_dir)
        assert {p.name for p, _ in found} == {"app.log.1", "app.log.2.gz"}

    def test_missing_directory_is_empty(self, engine: AgeOutEngine, tmp_path: Path) -> None:
        assert engine.list_rotated(PolicyRecord(), tmp_path / "app.log", tmp_path / "nope") == []


# ---------------------------------------------------------------------------
# Numeric renumbering
# ---------------------------------------------------------------------------


class TestNumericRenumber:
    def test_shift_up_by_one(self, engine: AgeOutEngine, log_dir: Path) -> None:
        _make(log_dir, "app.log.1", "app.log.2")
        engine.age_out(PolicyRecord(rotate=5), log_dir / "app.log", log_dir)
        assert _names(log_dir) == {"app.log", "app.log.2", "app.log.3"}
        assert (log_dir / "app.log.3").read_text(encoding="utf-8") == "app.log.2\n"

    def test_index_at_rotate_removed(self, engine: AgeOutEngine, log_dir: Path) -> None:
        _make(log_dir, "app.log.1", "app.log.2")
        result = engine.age_out(PolicyRecord(rotate=2), log_dir / "app.log", log_dir)
        assert _names(log_dir) == {"app.log", "app.log.2"}
        assert [p.name for p in result.removed] == ["app.log.2"]

    def test_rotate_zero_removes_everything(self, engine: AgeOutEngine, log_dir: Path) -> None:
        _make(log_dir, "app.log.1", "app.log.2.gz")
        engine.age_out(PolicyRecord(rotate=0), log_dir / "app.log", log_dir)
        assert _names(log_dir) == {"app.log"}

    def test_extension_segments_kept(self, engine: AgeOutEngine, tmp_path: Path) -> None:
        _make(tmp_path, "app.log", "app.1.log.backup", "app.2.log.backup")
        policy = PolicyRecord(rotate=5, extension=".log", addextension=".backup")
        engine.age_out(policy, tmp_path / "app.log", tmp_path)
        assert _names(tmp_path) == {"app.log", "app.2.log.backup", "app.3.log.backup"}

    def test_start_zero_keeps_index_zero_to_rotate(self, engine: AgeOutEngine, log_dir: Path) -> None:
        _make(log_dir, "app.log.0", "app.log.1", "app.log.2")
        engine.age_out(PolicyRecord(rotate=2, start=0), log_dir / "app.log", log_dir)
        assert _names(log_dir) == {"app.log", "app.log.1", "app.log.2"}

    def test_removal_runs_highest_index_first(self, log_dir: Path) -> None:
        _make(log_dir, "app.log.1", "app.log.2", "app.log.3")
        removed: list[str] = []

        def remover(path: Path, _policy: PolicyRecord) -> None:
            removed.append(path.name)
            path.unlink()

        AgeOutEngine(remover=remover).age_out(PolicyRecord(rotate=1), log_dir / "app.log", log_dir)
        assert removed == ["app.log.3", "app.log.2", "app.log.1"]
        assert _names(log_dir) == {"app.log"}

    def test_remover_receives_policy(self, log_dir: Path) -> None:
        seen: list[tuple[str, int]] = []

        def remover(path: Path, policy: PolicyRecord) -> None:
            seen.append((path.name, policy.rotate))
            path.unlink()

        _make(log_dir, "app.log.1")
        AgeOutEngine(remover=remover).age_out(PolicyRecord(rotate=1), log_dir / "app.log", log_dir)
        assert seen == [("app.log.1", 1)]


# ---------------------------------------------------------------------------
# Delayed compression catch-up
# ---------------------------------------------------------------------------


class TestDelayedCompression:
    def test_shifted_plain_file_is_compressed(self, engine: AgeOutEngine, log_dir: Path) -> None:
        _make(log_dir, "app.log.1")
        policy = PolicyRecord(rotate=3, compress=True, delaycompress=True)
        result = engine.age_out(policy, log_dir / "app.log", log_dir)
        assert _names(log_dir) == {"app.log", "app.log.2.gz"}
        assert [p.name for p in result.compressed] == ["app.log.2.gz"]
        with gzip.open(log_dir / "app.log.2.gz", "rt", encoding="utf-8") as fh:
            assert fh.read() == "app.log.1\n"

    def test_already_compressed_file_untouched(self, engine: AgeOutEngine, log_dir: Path) -> None:
        with gzip.open(log_dir / "app.log.1.gz", "wb") as fh:
            fh.write(b"data")
        engine.age_out(PolicyRecord(rotate=3, compress=True), log_dir / "app.log", log_dir)
        assert _names(log_dir) == {"app.log", "app.log.2.gz"}
        assert is_gzip_file(log_dir / "app.log.2.gz")

    def test_no_compression_when_disabled(self, engine: AgeOutEngine, log_dir: Path) -> None:
        _make(log_dir, "app.log.1")
        engine.age_out(PolicyRecord(rotate=3), log_dir / "app.log", log_dir)
        assert _names(log_dir) == {"app.log", "app.log.2"}


# ---------------------------------------------------------------------------
# Date mode
# ---------------------------------------------------------------------------


class TestDateMode:
    def test_oldest_pruned_not_renamed(self, engine: AgeOutEngine, log_dir: Path) -> None:
        _make(log_dir, "app.log-20240301", "app.log-20240302", "app.log-20240303")
        engine.age_out(PolicyRecord(rotate=3, dateext=True), log_dir / "app.log", log_dir)
        assert _names(log_dir) == {"app.log", "app.log-20240302", "app.log-20240303"}

    def test_rotate_one_removes_all_previous(self, engine: AgeOutEngine, log_dir: Path) -> None:
        _make(log_dir, "app.log-20240301")
        engine.age_out(PolicyRecord(rotate=1, dateext=True), log_dir / "app.log", log_dir)
        assert _names(log_dir) == {"app.log"}

    def test_numeric_names_ignored_in_date_mode(self, engine: AgeOutEngine, log_dir: Path) -> None:
        _make(log_dir, "app.log.1")
        engine.age_out(PolicyRecord(rotate=1, dateext=True), log_dir / "app.log", log_dir)
        assert _names(log_dir) == {"app.log", "app.log.1"}


# ---------------------------------------------------------------------------
# maxage and dry run
# ---------------------------------------------------------------------------


class TestMaxAgeAndDryRun:
    def test_maxage_removes_old_files_first(self, engine: AgeOutEngine, log_dir: Path) -> None:
        _make(log_dir, "app.log.1", "app.log.2")
        old = (datetime.now() - timedelta(days=10)).timestamp()
        os.utime(log_dir / "app.log.2", (old, old))
        engine.age_out(PolicyRecord(rotate=10, maxage=5), log_dir / "app.log", log_dir)
        assert _names(log_dir) == {"app.log", "app.log.2"}
        assert (log_dir / "app.log.2").read_text(encoding="utf-8") == "app.log.1\n"

    def test_dry_run_changes_nothing(self, log_dir: Path) -> None:
        _make(log_dir, "app.log.1", "app.log.2")
        result = AgeOutEngine(dry_run=True).age_out(PolicyRecord(rotate=2), log_dir / "app.log", log_dir)
        assert _names(log_dir) == {"app.log", "app.log.1", "app.log.2"}
        assert [p.name for p in result.removed] == ["app.log.2"]
        assert len(result.renamed) == 1

    def test_plan_reports_without_acting(self, log_dir: Path) -> None:
        removed: list[Path] = []
        engine = AgeOutEngine(remover=lambda path, policy: removed.append(path))
        _make(log_dir, "app.log-20240301", "app.log-20240302", "app.log-20240303")
        result = engine.plan(PolicyRecord(rotate=3, dateext=True), log_dir / "app.log", log_dir)
        assert [p.name for p in result.removed] == ["app.log-20240301"]
        assert removed == []
        assert _names(log_dir) == {"app.log", "app.log-20240301", "app.log-20240302", "app.log-20240303"}

    def test_plan_lists_numeric_renames(self, engine: AgeOutEngine, log_dir: Path) -> None:
        _make(log_dir, "app.log.1")
        result = engine.plan(PolicyRecord(rotate=3, compress=True), log_dir / "app.log", log_dir)
        assert result.renamed == [(log_dir / "app.log.1", log_dir / "app.log.2")]
        assert result.compressed == []
        assert _names(log_dir) == {"app.log", "app.log.1"}
