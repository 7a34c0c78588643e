"""Local key-value storage for per-player rolling statistics.

Stats are keyed by the opaque player id the client presents on connect and
hold the best round time, the best average round time and the saved
nickname. The file is a single JSON object rewritten atomically with
owner-only permissions (0o600) inside an owner-only directory (0o700).
"""

import contextlib
import json
import os
import tempfile
from pathlib import Path
from typing import Protocol

import structlog
from pydantic import ValidationError

from shared.dal.models import PersonalStats

logger = structlog.get_logger()

_STATS_DIR_MODE = 0o700
_STATS_FILE_MODE = 0o600


class StatsStore(Protocol):
    """Protocol for persisting personal statistics."""

    def load(self, player_id: str) -> PersonalStats: ...

    def save(self, player_id: str, stats: PersonalStats) -> None: ...


class MemoryStatsStore:
    """Process-local stats store. Values are lost on restart."""

    def __init__(self) -> None:
        self._stats: dict[str, PersonalStats] = {}

    def load(self, player_id: str) -> PersonalStats:
        return self._stats.get(player_id, PersonalStats())

    def save(self, player_id: str, stats: PersonalStats) -> None:
        self._stats[player_id] = stats


class JsonStatsStore:
    """Keeps every player's stats in one JSON file, cached in memory after first read."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).resolve()
        self._cache: dict[str, PersonalStats] | None = None

    def load(self, player_id: str) -> PersonalStats:
        return self._entries().get(player_id, PersonalStats())

    def save(self, player_id: str, stats: PersonalStats) -> None:
        entries = self._entries()
        entries[player_id] = stats
        content = json.dumps({pid: s.model_dump() for pid, s in entries.items()}, ensure_ascii=False)
        self._write_atomic(content)
        logger.debug("saved personal stats", player_id=player_id)

    def _entries(self) -> dict[str, PersonalStats]:
        if self._cache is None:
            self._cache = self._read()
        return self._cache

    def _read(self) -> dict[str, PersonalStats]:
        """Read the stats file. A missing file is empty; a corrupt file is logged and ignored."""
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("expected a JSON object at the root")
            return {pid: PersonalStats.model_validate(entry) for pid, entry in data.items()}
        except (ValueError, ValidationError):
            logger.warning("ignoring unreadable stats file", path=str(self._path), exc_info=True)
            return {}

    def _write_atomic(self, content: str) -> None:
        """Write via temp-file-then-rename so a crash never leaves a partial file."""
        directory = self._path.parent
        directory.mkdir(mode=_STATS_DIR_MODE, parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(dir=str(directory), suffix=".tmp", prefix=".stats_")
        fd_owned = True
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                fd_owned = False  # os.fdopen took ownership; it will close fd
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, _STATS_FILE_MODE)  # noqa: PTH101
            Path(tmp_path).replace(self._path)
        except BaseException:
            if fd_owned:
                with contextlib.suppress(OSError):
                    os.close(fd)
            with contextlib.suppress(OSError):
                Path(tmp_path).unlink()
            raise
