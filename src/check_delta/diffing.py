"""Diff computation logic - stable module for computing differences."""

from .core import DiffResult, Snapshot


def compute_diff(old: Snapshot, new: Snapshot) -> DiffResult:
    """
    Compute differences between two snapshots.

    Args:
        old: Snapshot from the previous run (possibly emptied by staleness).
        new: Snapshot of the workspace as it is now.

    Returns:
        DiffResult with disjoint added/removed/modified path sets.

    Note:
        Only ``files`` take part; capture times are irrelevant here.
        Timestamps are compared for exact equality - any recorded change
        to the modification time counts, however small.
    """
    added = set()
    modified = set()
    removed = set()

    for path, mtime in new.files.items():
        old_mtime = old.files.get(path)
        if old_mtime is None:
            added.add(path)
        elif old_mtime != mtime:
            modified.add(path)

    for path in old.files:
        if path not in new.files:
            removed.add(path)

    return DiffResult(added=added, removed=removed, modified=modified)
