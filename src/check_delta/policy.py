"""Staleness policy for deciding whether an old snapshot can be trusted."""

import logging

from .core import NANOS_PER_SECOND, Snapshot

logger = logging.getLogger(__name__)


def is_stale(old_captured_at: int, new_captured_at: int, threshold_seconds: float) -> bool:
    """
    Check whether the old snapshot is too old to diff against.

    A snapshot that predates the new one by more than the threshold is stale.
    If the clock went backwards (new predates old) the snapshot is treated
    as fresh rather than stale.

    Args:
        old_captured_at: Capture time of the persisted snapshot (ns)
        new_captured_at: Capture time of this run's snapshot (ns)
        threshold_seconds: Maximum tolerated age

    Returns:
        True if the old snapshot should be discarded
    """
    elapsed = new_captured_at - old_captured_at
    if elapsed < 0:
        return False
    return elapsed > threshold_seconds * NANOS_PER_SECOND


def effective_old_snapshot(
    old: Snapshot,
    new: Snapshot,
    threshold_seconds: float,
    reset: bool = False,
) -> Snapshot:
    """
    Pick the snapshot to diff the new one against.

    Modes:
    - reset: always an empty snapshot, whatever the age
    - stale: an empty snapshot, so every current file counts as added
    - otherwise: the old snapshot unchanged
    """
    if reset:
        logger.info("reset requested, ignoring old db.")
        return Snapshot.empty()

    if is_stale(old.captured_at, new.captured_at, threshold_seconds):
        logger.info("db is too old, ignoring old db.")
        return Snapshot.empty()

    return old
