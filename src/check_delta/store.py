"""Snapshot store: the only module that reads or writes the state file."""

from pathlib import Path
import json
import logging
import os
import tempfile

from pydantic import ValidationError

from .core import PersistedState
from .errors import StateWriteError

logger = logging.getLogger(__name__)


def _atomic_write_text(path: Path, text: str) -> None:
    """Replace ``path`` with ``text`` so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise

    # Make the rename durable; not every platform can fsync a directory
    try:
        dirfd = os.open(path.parent, os.O_RDONLY)
        try:
            os.fsync(dirfd)
        finally:
            os.close(dirfd)
    except OSError:
        logger.debug("Directory fsync not supported for %s", path.parent)


# ============= State File I/O =============

def load_state(path: Path) -> PersistedState:
    """Load persisted state, falling back to first-run state.

    A missing, unreadable or corrupt file is not an error: the caller gets
    an empty snapshot and ledger, and every tracked file will count as
    added. This never raises.

    Args:
        path: State file location

    Returns:
        The stored state, or ``PersistedState.empty()``
    """
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        logger.debug("No state file at %s, starting fresh", path)
        return PersistedState.empty()
    except OSError as e:
        logger.warning("Could not read state file %s (%s), starting fresh", path, e)
        return PersistedState.empty()

    try:
        data = json.loads(raw)
        return PersistedState.model_validate(data)
    except (ValueError, ValidationError) as e:
        # UnicodeDecodeError and JSONDecodeError are both ValueErrors
        logger.warning("Ignoring corrupt state file %s: %s", path, e)
        return PersistedState.empty()


def save_state(path: Path, state: PersistedState) -> None:
    """Save state atomically.

    Raises:
        StateWriteError: If the file could not be written
    """
    text = json.dumps(state.model_dump(mode="json"))
    try:
        _atomic_write_text(path, text)
    except OSError as e:
        raise StateWriteError(path, e) from e
    logger.debug(
        "Saved state to %s (%d files, %d pending retries)",
        path, len(state.files), len(state.failed_crates),
    )
