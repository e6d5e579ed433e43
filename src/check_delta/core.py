"""Core data models for check-delta.

Timestamps
----------
All timestamps (snapshot capture time and file modification times) are held
as integer nanoseconds since the Unix epoch, so equality is exact and no
float rounding can hide or invent a modification.

On disk they are written in the shape the original Rust tool used
(serde's ``SystemTime``), which keeps state files interchangeable::

    {"secs_since_epoch": 1718000000, "nanos_since_epoch": 123456789}

A bare integer of nanoseconds is also accepted on load.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Set
import time

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


NANOS_PER_SECOND = 1_000_000_000


def timestamp_to_wire(ns: int) -> Dict[str, int]:
    """Convert nanoseconds since the epoch to the serde ``SystemTime`` shape."""
    secs, nanos = divmod(ns, NANOS_PER_SECOND)
    return {"secs_since_epoch": secs, "nanos_since_epoch": nanos}


def timestamp_from_wire(value: Any) -> Any:
    """Convert a serialized timestamp back to nanoseconds.

    Raises:
        ValueError: If a mapping is missing either component
    """
    if isinstance(value, dict):
        try:
            return int(value["secs_since_epoch"]) * NANOS_PER_SECOND + int(value["nanos_since_epoch"])
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed timestamp: {value!r}") from e
    return value


def _files_from_wire(value: Any) -> Any:
    if isinstance(value, dict):
        return {path: timestamp_from_wire(ts) for path, ts in value.items()}
    return value


# ============= Snapshots =============

class Snapshot(BaseModel):
    """Point-in-time mapping of file path to modification time.

    Frozen once built: the scanner produces the ``files`` mapping in one go
    and nothing downstream reassigns it.
    """

    model_config = ConfigDict(frozen=True)

    captured_at: int = Field(default_factory=time.time_ns)
    files: Dict[str, int] = Field(default_factory=dict)

    @field_validator("captured_at", mode="before")
    @classmethod
    def _parse_captured_at(cls, value: Any) -> Any:
        return timestamp_from_wire(value)

    @field_validator("files", mode="before")
    @classmethod
    def _parse_files(cls, value: Any) -> Any:
        return _files_from_wire(value)

    @classmethod
    def empty(cls) -> "Snapshot":
        """Snapshot taken now with no files (first-run semantics)."""
        return cls()


class PersistedState(BaseModel):
    """
    State file contents (stored in <target>/cargo-check-delta.json).

    A superset of ``Snapshot``: the snapshot fields plus the retry ledger,
    kept under the key names the original tool wrote.
    """

    last_update: int = Field(default_factory=time.time_ns)
    files: Dict[str, int] = Field(default_factory=dict)
    failed_crates: List[str] = Field(default_factory=list)  # older files lack it

    @field_validator("last_update", mode="before")
    @classmethod
    def _parse_last_update(cls, value: Any) -> Any:
        return timestamp_from_wire(value)

    @field_validator("files", mode="before")
    @classmethod
    def _parse_files(cls, value: Any) -> Any:
        return _files_from_wire(value)

    @field_serializer("last_update")
    def _dump_last_update(self, value: int) -> Dict[str, int]:
        return timestamp_to_wire(value)

    @field_serializer("files")
    def _dump_files(self, value: Dict[str, int]) -> Dict[str, Dict[str, int]]:
        return {path: timestamp_to_wire(ts) for path, ts in value.items()}

    @classmethod
    def empty(cls) -> "PersistedState":
        """Default state: captured now, no files, empty ledger."""
        return cls()

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot, failed_crates: List[str]) -> "PersistedState":
        """Combine a snapshot with the ledger to be carried into the next run."""
        return cls(
            last_update=snapshot.captured_at,
            files=dict(snapshot.files),
            failed_crates=list(failed_crates),
        )

    @property
    def snapshot(self) -> Snapshot:
        """The snapshot part of the persisted state."""
        return Snapshot(captured_at=self.last_update, files=dict(self.files))


# ============= Change Detection =============

class DiffResult(BaseModel):
    """Classification of every path whose timestamp differs between snapshots.

    The three sets are disjoint. Paths present on both sides with equal
    timestamps appear in none of them.
    """

    added: Set[str] = Field(default_factory=set)     # only in new
    removed: Set[str] = Field(default_factory=set)   # only in old
    modified: Set[str] = Field(default_factory=set)  # in both, timestamp differs

    @property
    def changed(self) -> Set[str]:
        """All paths that need their owning package rebuilt."""
        return self.added | self.removed | self.modified

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.modified)

    @property
    def summary(self) -> Dict[str, int]:
        """Counts per change kind, for logging."""
        return {
            "added": len(self.added),
            "removed": len(self.removed),
            "modified": len(self.modified),
        }


# ============= Workspace =============

class Package(BaseModel):
    """A workspace member as reported by the metadata provider."""

    name: str
    manifest_path: Path

    @property
    def root(self) -> Path:
        """Package root directory (the manifest's parent)."""
        return self.manifest_path.parent


class WorkspaceMetadata(BaseModel):
    """Workspace layout, queried once per run and passed around explicitly."""

    workspace_root: Path
    target_directory: Path
    packages: List[Package] = Field(default_factory=list)

    @property
    def package_roots(self) -> List[Path]:
        return [package.root for package in self.packages]


# ============= Run Configuration & Results =============

class LogType(str, Enum):
    """Where diagnostic lines go."""

    STDERR = "stderr"
    FILE = "file"
    NONE = "none"


@dataclass
class DispatchResult:
    """Outcome of one dispatcher pass."""

    built: List[str] = field(default_factory=list)  # roots that built successfully, in order
    failed: Optional[str] = None                     # root of the build that stopped the run
    exit_code: int = 0

    @property
    def success(self) -> bool:
        return self.failed is None
