"""Core operations for check-delta."""

from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional
import logging
import time

import portalocker

from .config import DeltaConfig
from .constants import (
    DEFAULT_INCLUDE,
    DEFAULT_PROGRAM,
    DEFAULT_STALE_SECONDS,
    DEFAULT_SUBCOMMAND,
    LOCK_FILE,
    STATE_FILE,
)
from .core import DispatchResult, PersistedState, Snapshot, WorkspaceMetadata
from .diffing import compute_diff
from .dispatch import BuildCommand, BuildDispatcher, ProcessRunner, run_process
from .errors import LockError
from .ignore import ScanSpec
from .ledger import RetryLedger
from .policy import effective_old_snapshot
from .resolver import package_roots, resolve_packages
from .scanner import scan_workspace
from .store import load_state, save_state

logger = logging.getLogger(__name__)

# Seconds to wait for a concurrent run to release the workspace
LOCK_TIMEOUT = 300


@dataclass
class RunOptions:
    """Everything a run needs besides the workspace metadata."""

    subcommand: str = DEFAULT_SUBCOMMAND
    args: List[str] = field(default_factory=list)
    reset: bool = False
    stale_time: float = DEFAULT_STALE_SECONDS  # seconds
    jobs: int = 1
    program: str = DEFAULT_PROGRAM
    include: List[str] = field(default_factory=lambda: list(DEFAULT_INCLUDE))
    ignore: List[str] = field(default_factory=list)

    @classmethod
    def from_config(
        cls,
        config: DeltaConfig,
        subcommand: Optional[str] = None,
        args: Optional[List[str]] = None,
        reset: bool = False,
        stale_time: Optional[float] = None,
        jobs: Optional[int] = None,
        program: str = DEFAULT_PROGRAM,
    ) -> "RunOptions":
        """Layer command-line values (when given) over the workspace config.

        ``program`` is the build tool to use when the config does not name one.
        """
        return cls(
            subcommand=subcommand if subcommand is not None else config.subcommand,
            args=list(args or []),
            reset=reset,
            stale_time=stale_time if stale_time is not None else config.stale_time,
            jobs=jobs if jobs is not None else config.jobs,
            program=config.program or program,
            include=list(config.include),
            ignore=list(config.ignore),
        )


def state_path(metadata: WorkspaceMetadata) -> Path:
    """Location of the state file for a workspace."""
    return metadata.target_directory / STATE_FILE


@contextmanager
def workspace_lock(target_dir: Path, timeout: float = LOCK_TIMEOUT) -> Iterator[None]:
    """Hold an exclusive lock on the workspace state for the whole run.

    Raises:
        LockError: If another run still holds the lock after ``timeout``
    """
    target_dir.mkdir(parents=True, exist_ok=True)
    lock_path = target_dir / LOCK_FILE
    lock = portalocker.Lock(str(lock_path), "a", timeout=timeout)
    try:
        lock.acquire()
    except portalocker.exceptions.LockException as e:
        raise LockError(lock_path) from e
    try:
        yield
    finally:
        lock.release()


def _scan_spec(metadata: WorkspaceMetadata, options: RunOptions) -> ScanSpec:
    """Build scan rules, excluding a target directory that lives in the workspace."""
    extra = list(options.ignore)
    try:
        rel_target = metadata.target_directory.relative_to(metadata.workspace_root)
    except ValueError:
        rel_target = None
    if rel_target is not None and rel_target.parts:
        extra.append(f"/{rel_target.as_posix()}/")
    return ScanSpec(metadata.workspace_root, include=options.include, extra=extra)


def take_snapshot(metadata: WorkspaceMetadata, options: RunOptions) -> Snapshot:
    """Scan the workspace into a new snapshot captured now."""
    captured_at = time.time_ns()
    files = scan_workspace(metadata.workspace_root, _scan_spec(metadata, options), options.jobs)
    return Snapshot(captured_at=captured_at, files=files)


def run_delta(
    metadata: WorkspaceMetadata,
    options: RunOptions,
    runner: ProcessRunner = run_process,
) -> DispatchResult:
    """
    Rebuild the packages affected since the last run, plus pending retries.

    The state file is written exactly once, after dispatch, whether or not
    a build failed, so a failure is remembered for the next run.

    Args:
        metadata: Workspace layout (queried once by the caller)
        options: Run options
        runner: Process runner used for builds

    Returns:
        DispatchResult; ``exit_code`` is the first failing build's code, or 0

    Raises:
        StateWriteError: If the updated state could not be saved
        LockError: If another run holds the workspace
    """
    path = state_path(metadata)

    with workspace_lock(metadata.target_directory):
        persisted = load_state(path)
        ledger = RetryLedger(persisted.failed_crates)
        dropped = ledger.retain(package_roots(metadata.packages, metadata.workspace_root))
        if dropped:
            logger.info("no longer workspace members, not retrying: %s", dropped)

        new = take_snapshot(metadata, options)
        old = effective_old_snapshot(persisted.snapshot, new, options.stale_time, options.reset)

        diff = compute_diff(old, new)
        logger.info(
            "changed files: added=%s removed=%s modified=%s",
            sorted(diff.added), sorted(diff.removed), sorted(diff.modified),
        )

        affected = resolve_packages(diff.changed, metadata.packages, metadata.workspace_root)
        logger.info("changed crates: %s", sorted(str(root) for root in affected))
        if len(ledger):
            logger.info("retrying previously failed crates: %s", ledger.entries)

        dispatcher = BuildDispatcher(
            BuildCommand(program=options.program, subcommand=options.subcommand, args=options.args),
            ledger,
            runner=runner,
        )
        result = dispatcher.dispatch(ledger.build_order(affected))

        save_state(path, PersistedState.from_snapshot(new, ledger.entries))

    return result
