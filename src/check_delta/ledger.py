"""Retry ledger: packages whose last build failed and must be rebuilt."""

from pathlib import Path
from typing import Iterable, List, Union


class RetryLedger:
    """
    Ordered, duplicate-free list of package roots awaiting a successful build.

    Entries are appended on failure and removed on success, so outstanding
    failures are retried first-in first-out across runs. Only the build
    dispatcher mutates the ledger, from a single thread.
    """

    def __init__(self, entries: Iterable[str] = ()):
        self._entries: List[str] = []
        for entry in entries:
            if entry not in self._entries:
                self._entries.append(entry)

    @property
    def entries(self) -> List[str]:
        """Current entries in retry order (a copy)."""
        return list(self._entries)

    def __contains__(self, root: object) -> bool:
        return str(root) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self.entries)

    def build_order(self, affected: Iterable[Union[str, Path]]) -> List[str]:
        """Merge freshly affected packages with pending retries.

        Affected roots come first, sorted so the order is stable between
        runs; ledger entries follow in stored order. Every root appears once.

        Args:
            affected: Roots affected by file changes in this run

        Returns:
            Package roots in the order they should be built
        """
        order = sorted({str(root) for root in affected})
        seen = set(order)
        for entry in self._entries:
            if entry not in seen:
                order.append(entry)
                seen.add(entry)
        return order

    def record_success(self, root: Union[str, Path]) -> None:
        """Drop a package from the ledger after it built cleanly."""
        root = str(root)
        if root in self._entries:
            self._entries.remove(root)

    def record_failure(self, root: Union[str, Path]) -> None:
        """Queue a package for retry on the next run."""
        root = str(root)
        if root not in self._entries:
            self._entries.append(root)

    def retain(self, roots: Iterable[Union[str, Path]]) -> List[str]:
        """Forget entries that are no longer workspace packages.

        Args:
            roots: Package roots of the current workspace

        Returns:
            The dropped entries, in stored order
        """
        keep = {str(root) for root in roots}
        dropped = [entry for entry in self._entries if entry not in keep]
        self._entries = [entry for entry in self._entries if entry in keep]
        return dropped
