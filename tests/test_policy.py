"""Tests for the staleness policy."""

from check_delta.core import NANOS_PER_SECOND, Snapshot
from check_delta.diffing import compute_diff
from check_delta.policy import effective_old_snapshot, is_stale


T = 1_700_000_000 * NANOS_PER_SECOND
THRESHOLD = 300  # seconds


class TestIsStale:
    """Test the age comparison itself."""

    def test_fresh_snapshot(self):
        assert not is_stale(T, T + 10 * NANOS_PER_SECOND, THRESHOLD)

    def test_exactly_at_threshold_is_fresh(self):
        """Only strictly older than the threshold counts as stale."""
        assert not is_stale(T, T + THRESHOLD * NANOS_PER_SECOND, THRESHOLD)

    def test_past_threshold_is_stale(self):
        assert is_stale(T, T + (THRESHOLD + 1) * NANOS_PER_SECOND, THRESHOLD)

    def test_clock_went_backwards(self):
        """New time before old time is treated as not stale, not an error."""
        assert not is_stale(T, T - 3600 * NANOS_PER_SECOND, THRESHOLD)

    def test_fractional_threshold(self):
        assert is_stale(T, T + NANOS_PER_SECOND, 0.5)


class TestEffectiveOldSnapshot:
    """Test which snapshot gets diffed against."""

    def test_fresh_old_snapshot_is_kept(self):
        old = Snapshot(captured_at=T, files={"a.rs": 1})
        new = Snapshot(captured_at=T + NANOS_PER_SECOND, files={"a.rs": 1})

        assert effective_old_snapshot(old, new, THRESHOLD) is old

    def test_staleness_forces_full_rebuild(self):
        """Past the threshold every new file classifies as added."""
        old = Snapshot(captured_at=T, files={"a.rs": 1, "b.rs": 2})
        new = Snapshot(
            captured_at=T + (THRESHOLD + 1) * NANOS_PER_SECOND,
            files={"a.rs": 1, "b.rs": 2},
        )

        effective = effective_old_snapshot(old, new, THRESHOLD)

        assert effective.files == {}
        assert compute_diff(effective, new).added == {"a.rs", "b.rs"}

    def test_reset_bypasses_policy(self):
        """Reset empties the old snapshot even when it is fresh."""
        old = Snapshot(captured_at=T, files={"a.rs": 1})
        new = Snapshot(captured_at=T, files={"a.rs": 1})

        assert effective_old_snapshot(old, new, THRESHOLD, reset=True).files == {}

    def test_reset_with_backwards_clock(self):
        old = Snapshot(captured_at=T, files={"a.rs": 1})
        new = Snapshot(captured_at=T - NANOS_PER_SECOND, files={"a.rs": 1})

        assert effective_old_snapshot(old, new, THRESHOLD).files == {"a.rs": 1}
        assert effective_old_snapshot(old, new, THRESHOLD, reset=True).files == {}
