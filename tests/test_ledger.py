"""Tests for the retry ledger."""

from pathlib import Path

from check_delta.ledger import RetryLedger


class TestRetryLedger:
    """Test ledger bookkeeping."""

    def test_duplicates_dropped_on_load(self):
        ledger = RetryLedger(["/ws/a", "/ws/b", "/ws/a"])

        assert ledger.entries == ["/ws/a", "/ws/b"]

    def test_failure_appends_once(self):
        ledger = RetryLedger(["/ws/a"])

        ledger.record_failure("/ws/b")
        ledger.record_failure("/ws/a")
        ledger.record_failure(Path("/ws/b"))

        assert ledger.entries == ["/ws/a", "/ws/b"]

    def test_success_removes(self):
        ledger = RetryLedger(["/ws/a", "/ws/b"])

        ledger.record_success("/ws/a")
        ledger.record_success("/ws/never-failed")

        assert ledger.entries == ["/ws/b"]
        assert "/ws/a" not in ledger
        assert Path("/ws/b") in ledger

    def test_entries_is_a_copy(self):
        ledger = RetryLedger(["/ws/a"])

        ledger.entries.append("/ws/z")

        assert len(ledger) == 1

    def test_retain_drops_unknown_roots(self):
        ledger = RetryLedger(["/ws/gone", "/ws/b", "/ws/a"])

        dropped = ledger.retain([Path("/ws/a"), Path("/ws/b"), Path("/ws/c")])

        assert dropped == ["/ws/gone"]
        assert ledger.entries == ["/ws/b", "/ws/a"]


class TestBuildOrder:
    """Test merging affected packages with pending retries."""

    def test_affected_first_then_retries(self):
        ledger = RetryLedger(["/ws/z", "/ws/c"])

        order = ledger.build_order({Path("/ws/b"), Path("/ws/a")})

        assert order == ["/ws/a", "/ws/b", "/ws/z", "/ws/c"]

    def test_package_in_both_built_once(self):
        ledger = RetryLedger(["/ws/b", "/ws/c"])

        order = ledger.build_order([Path("/ws/b"), Path("/ws/a")])

        assert order == ["/ws/a", "/ws/b", "/ws/c"]

    def test_retries_only(self):
        """Failed packages are rebuilt even when nothing changed."""
        ledger = RetryLedger(["/ws/b", "/ws/a"])

        assert ledger.build_order([]) == ["/ws/b", "/ws/a"]

    def test_order_is_deterministic(self):
        ledger = RetryLedger()
        affected = [Path(f"/ws/crate{i}") for i in (3, 1, 2)]

        assert ledger.build_order(affected) == ledger.build_order(reversed(affected))
