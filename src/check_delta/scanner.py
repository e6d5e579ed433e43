"""Workspace scanning: record modification times of tracked files."""

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, List
import logging
import os
import stat
import threading

from .ignore import ScanSpec

logger = logging.getLogger(__name__)


class ConcurrentFileMap:
    """Insert-only path -> mtime map shared by scan workers.

    Thread-safe with proper locking. Workers walk disjoint subtrees, so a
    key is written at most once in practice.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._files: Dict[str, int] = {}

    def insert(self, path: str, mtime_ns: int) -> None:
        with self._lock:
            self._files[path] = mtime_ns

    def __len__(self) -> int:
        with self._lock:
            return len(self._files)

    def freeze(self) -> Dict[str, int]:
        """Plain dict copy for the single-threaded stages downstream."""
        with self._lock:
            return dict(self._files)


def _join(rel_dir: str, name: str) -> str:
    return name if rel_dir in ("", ".") else f"{rel_dir}/{name}"


def _record(full_path: str, relpath: str, spec: ScanSpec, sink: ConcurrentFileMap) -> None:
    """Stat one candidate file and store it if tracked.

    Entries that vanish or cannot be stat'ed mid-scan are skipped.
    """
    if not spec.is_tracked(relpath):
        return
    try:
        st = os.stat(full_path)
    except OSError:
        return
    if stat.S_ISREG(st.st_mode):
        sink.insert(relpath, st.st_mtime_ns)


def _walk(root: Path, start: Path, spec: ScanSpec, sink: ConcurrentFileMap) -> None:
    """Walk one subtree, pruning ignored directories.

    Ignore files found along the way apply to the directory holding them
    and everything below it.
    """
    # rel_dir -> spec inherited from the parent directory
    inherited: Dict[str, ScanSpec] = {}
    for dirpath, dirnames, filenames in os.walk(start):
        rel_dir = Path(dirpath).relative_to(root).as_posix()
        local = inherited.pop(rel_dir, spec).for_directory(rel_dir)
        dirnames[:] = [d for d in dirnames if local.should_traverse(_join(rel_dir, d))]
        for d in dirnames:
            inherited[_join(rel_dir, d)] = local
        for name in filenames:
            _record(os.path.join(dirpath, name), _join(rel_dir, name), local, sink)


def scan_workspace(root: Path, spec: ScanSpec, jobs: int = 1) -> Dict[str, int]:
    """
    Scan the workspace for tracked files.

    Args:
        root: Workspace root; keys are POSIX paths relative to it
        spec: Include/exclude rules
        jobs: Number of parallel walkers (1 walks in the calling thread)

    Returns:
        Dict mapping relative path to modification time in nanoseconds
    """
    sink = ConcurrentFileMap()

    if jobs <= 1:
        _walk(root, root, spec, sink)
        return sink.freeze()

    # Files at the top level are recorded here; each top-level directory
    # becomes one worker task.
    subtrees: List[Path] = []
    try:
        entries = list(os.scandir(root))
    except OSError as e:
        logger.warning("Could not list workspace root %s: %s", root, e)
        return {}

    for entry in entries:
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError:
            continue
        if is_dir:
            if spec.should_traverse(entry.name):
                subtrees.append(Path(entry.path))
        else:
            _record(entry.path, entry.name, spec, sink)

    with ThreadPoolExecutor(max_workers=jobs) as executor:
        futures = [executor.submit(_walk, root, subtree, spec, sink) for subtree in subtrees]
        for future in futures:
            future.result()

    logger.debug("Scanned %d files under %s with %d workers", len(sink), root, jobs)
    return sink.freeze()
