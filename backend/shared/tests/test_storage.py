"""Tests for personal stats storage."""

import json
import os
import stat
from unittest.mock import patch

import pytest

from shared.dal.models import PersonalStats
from shared.storage import JsonStatsStore, MemoryStatsStore


class TestMemoryStatsStore:
    def test_unknown_player_has_empty_stats(self):
        assert MemoryStatsStore().load("nobody") == PersonalStats()

    def test_save_and_load(self):
        store = MemoryStatsStore()
        stats = PersonalStats(best_time=0.4, average_time=0.6, nickname="podo")
        store.save("p1", stats)
        assert store.load("p1") == stats


class TestJsonStatsStore:
    def test_missing_file_is_empty(self, tmp_path):
        store = JsonStatsStore(tmp_path / "stats.json")
        assert store.load("p1") == PersonalStats()

    def test_creates_directory_on_first_write(self, tmp_path):
        path = tmp_path / "data" / "stats.json"
        JsonStatsStore(path).save("p1", PersonalStats(best_time=0.5))

        assert path.exists()
        assert json.loads(path.read_text(encoding="utf-8"))["p1"]["best_time"] == 0.5

    def test_survives_reopen(self, tmp_path):
        path = tmp_path / "stats.json"
        JsonStatsStore(path).save("p1", PersonalStats(best_time=0.5, average_time=0.7, nickname="포도"))

        assert JsonStatsStore(path).load("p1") == PersonalStats(best_time=0.5, average_time=0.7, nickname="포도")

    def test_players_are_independent(self, tmp_path):
        store = JsonStatsStore(tmp_path / "stats.json")
        store.save("p1", PersonalStats(best_time=0.5))
        store.save("p2", PersonalStats(best_time=0.9))

        reopened = JsonStatsStore(tmp_path / "stats.json")
        assert reopened.load("p1").best_time == 0.5
        assert reopened.load("p2").best_time == 0.9

    def test_corrupt_file_is_ignored(self, tmp_path):
        path = tmp_path / "stats.json"
        path.write_text("{not json", encoding="utf-8")

        assert JsonStatsStore(path).load("p1") == PersonalStats()

    def test_non_object_root_is_ignored(self, tmp_path):
        path = tmp_path / "stats.json"
        path.write_text("[1, 2]", encoding="utf-8")

        assert JsonStatsStore(path).load("p1") == PersonalStats()

    def test_invalid_entry_is_ignored(self, tmp_path):
        path = tmp_path / "stats.json"
        path.write_text('{"p1": {"best_time": "fast"}}', encoding="utf-8")

        assert JsonStatsStore(path).load("p1") == PersonalStats()


class TestJsonStatsStoreErrorHandling:
    """Tests for error handling during file write operations."""

    def test_cleans_up_temp_on_fdopen_failure(self, tmp_path):
        """If os.fdopen fails, the temp file is removed and no target is created."""
        store = JsonStatsStore(tmp_path / "stats.json")

        with (
            patch("os.fdopen", side_effect=OSError("fdopen failure")),
            pytest.raises(OSError, match="fdopen failure"),
        ):
            store.save("p1", PersonalStats(best_time=0.5))

        assert not (tmp_path / "stats.json").exists()
        assert list(tmp_path.glob(".stats_*.tmp")) == []

    def test_cleans_up_temp_on_fsync_failure(self, tmp_path):
        store = JsonStatsStore(tmp_path / "stats.json")

        with (
            patch("os.fsync", side_effect=OSError("fsync failure")),
            pytest.raises(OSError, match="fsync failure"),
        ):
            store.save("p1", PersonalStats(best_time=0.5))

        assert not (tmp_path / "stats.json").exists()
        assert list(tmp_path.glob(".stats_*.tmp")) == []

    def test_closes_fd_on_fdopen_failure(self, tmp_path):
        """If os.fdopen raises, the raw file descriptor is closed."""
        store = JsonStatsStore(tmp_path / "stats.json")

        with (
            patch("os.fdopen", side_effect=OSError("fdopen failure")) as mock_fdopen,
            patch("os.close", wraps=os.close) as mock_close,
            pytest.raises(OSError, match="fdopen failure"),
        ):
            store.save("p1", PersonalStats(best_time=0.5))

        fd_arg = mock_fdopen.call_args[0][0]
        mock_close.assert_called_once_with(fd_arg)

    def test_failed_write_keeps_previous_file(self, tmp_path):
        path = tmp_path / "stats.json"
        store = JsonStatsStore(path)
        store.save("p1", PersonalStats(best_time=0.5))

        with patch("os.fsync", side_effect=OSError("fsync failure")), pytest.raises(OSError):
            store.save("p1", PersonalStats(best_time=0.1))

        assert JsonStatsStore(path).load("p1").best_time == 0.5


class TestJsonStatsStorePermissions:
    def test_directory_created_with_owner_only_permissions(self, tmp_path):
        data_dir = tmp_path / "data"
        JsonStatsStore(data_dir / "stats.json").save("p1", PersonalStats())

        assert stat.S_IMODE(data_dir.stat().st_mode) == 0o700

    def test_file_created_with_owner_only_permissions(self, tmp_path):
        path = tmp_path / "stats.json"
        store = JsonStatsStore(path)
        store.save("p1", PersonalStats())
        store.save("p1", PersonalStats(best_time=0.5))

        file_mode = path.stat().st_mode
        assert stat.S_IMODE(file_mode) == 0o600
        assert not file_mode & stat.S_IRGRP
        assert not file_mode & stat.S_IROTH
