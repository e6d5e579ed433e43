"""Tests for state file persistence."""

import json
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from check_delta.core import NANOS_PER_SECOND, PersistedState, Snapshot
from check_delta.errors import StateWriteError
from check_delta.store import _atomic_write_text, load_state, save_state


class TestAtomicWrites:
    """Test atomic write operations."""

    def test_atomic_write_overwrites(self, tmp_path):
        test_file = tmp_path / "state.json"
        test_file.write_text("old content")

        _atomic_write_text(test_file, "new content")

        assert test_file.read_text() == "new content"

    def test_atomic_write_creates_directories(self, tmp_path):
        """Target directory may not exist before the first build."""
        test_file = tmp_path / "target" / "nested" / "state.json"

        _atomic_write_text(test_file, "{}")

        assert test_file.read_text() == "{}"

    def test_no_partial_files_on_error(self, tmp_path):
        """Neither target nor temp file remains after a failed rename."""
        test_file = tmp_path / "state.json"

        with patch("os.replace", side_effect=IOError("Simulated rename failure")):
            with pytest.raises(IOError):
                _atomic_write_text(test_file, "content")

        assert not test_file.exists()
        assert list(tmp_path.glob(".state.json.*")) == []


class TestLoadState:
    """Loading never fails; bad state means first-run semantics."""

    def _assert_empty(self, state: PersistedState, before_ns: int):
        assert state.files == {}
        assert state.failed_crates == []
        assert state.last_update >= before_ns

    def test_missing_file(self, tmp_path):
        before = time.time_ns()
        self._assert_empty(load_state(tmp_path / "missing.json"), before)

    def test_invalid_bytes(self, tmp_path):
        """Garbage behaves exactly like a missing file."""
        path = tmp_path / "state.json"
        path.write_bytes(b"\xff\xfe\x00\x81garbage")

        before = time.time_ns()
        self._assert_empty(load_state(path), before)

    @pytest.mark.parametrize("content", [
        "{not json",
        "[]",
        '{"last_update": "yesterday", "files": {}}',
        '{"last_update": {"secs_since_epoch": 1}, "files": {}}',
        '{"last_update": 1, "files": {"a.rs": "x"}}',
        "",
    ])
    def test_corrupt_content(self, tmp_path, content):
        path = tmp_path / "state.json"
        path.write_text(content)

        before = time.time_ns()
        self._assert_empty(load_state(path), before)

    def test_state_path_is_directory(self, tmp_path):
        """Read errors other than absence are absorbed too."""
        before = time.time_ns()
        self._assert_empty(load_state(tmp_path), before)

    def test_missing_ledger_defaults_to_empty(self, tmp_path):
        """State files written before the retry ledger existed still load."""
        path = tmp_path / "state.json"
        path.write_text(json.dumps({
            "last_update": {"secs_since_epoch": 1700000000, "nanos_since_epoch": 5},
            "files": {"./src/lib.rs": {"secs_since_epoch": 1699999999, "nanos_since_epoch": 0}},
        }))

        state = load_state(path)

        assert state.failed_crates == []
        assert state.last_update == 1700000000 * NANOS_PER_SECOND + 5
        assert state.files == {"./src/lib.rs": 1699999999 * NANOS_PER_SECOND}

    def test_integer_timestamps_accepted(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({
            "last_update": 42,
            "files": {"a.rs": 7},
            "failed_crates": ["/ws/a"],
        }))

        state = load_state(path)

        assert state.last_update == 42
        assert state.files == {"a.rs": 7}
        assert state.failed_crates == ["/ws/a"]


class TestSaveState:
    """Test writing state files."""

    def test_round_trip(self, tmp_path):
        path = tmp_path / "target" / "cargo-check-delta.json"
        snapshot = Snapshot(captured_at=1_700_000_000_123_456_789, files={"crates/a/src/lib.rs": 1_600_000_000_000_000_001})
        state = PersistedState.from_snapshot(snapshot, ["/ws/crates/b", "/ws/crates/a"])

        save_state(path, state)
        loaded = load_state(path)

        assert loaded == state
        assert loaded.snapshot == snapshot
        assert loaded.failed_crates == ["/ws/crates/b", "/ws/crates/a"]

    def test_wire_format(self, tmp_path):
        """Timestamps are written as seconds plus nanoseconds."""
        path = tmp_path / "state.json"
        state = PersistedState(last_update=3 * NANOS_PER_SECOND + 7, files={"a.rs": NANOS_PER_SECOND}, failed_crates=[])

        save_state(path, state)
        data = json.loads(path.read_text())

        assert data == {
            "last_update": {"secs_since_epoch": 3, "nanos_since_epoch": 7},
            "files": {"a.rs": {"secs_since_epoch": 1, "nanos_since_epoch": 0}},
            "failed_crates": [],
        }

    def test_write_failure_is_fatal(self, tmp_path):
        """Losing the state write must not pass silently."""
        blocker = tmp_path / "target"
        blocker.write_text("a file where the target directory should be")

        with pytest.raises(StateWriteError) as exc_info:
            save_state(blocker / "state.json", PersistedState.empty())

        assert exc_info.value.path == blocker / "state.json"
