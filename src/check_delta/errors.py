"""Custom exceptions for check-delta.

Recoverable conditions (corrupt state file, unreadable directory entries,
clock skew) are handled where they occur and never surface as exceptions.
Everything defined here is fatal for the run and is reported by the CLI.
"""


class CheckDeltaError(RuntimeError):
    """Base class for all check-delta errors."""
    pass


# Workspace Errors
class MetadataError(CheckDeltaError):
    """Workspace metadata could not be queried or parsed."""

    def __init__(self, message: str, stderr: str = ""):
        self.stderr = stderr
        detail = f"\n{stderr.strip()}" if stderr.strip() else ""
        super().__init__(f"{message}{detail}")


# State Errors
class StateError(CheckDeltaError):
    """Base class for persisted state errors."""
    pass


class StateWriteError(StateError):
    """Updated state could not be written to disk."""

    def __init__(self, path, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(
            f"Failed to write state file {path}: {cause}\n"
            f"The next run will not be able to detect changes incrementally."
        )


class LockError(StateError):
    """Another check-delta run holds the workspace lock."""

    def __init__(self, path):
        self.path = path
        super().__init__(
            f"Another check-delta run is using this workspace (lock: {path})"
        )


# Configuration Errors
class ConfigError(CheckDeltaError):
    """Invalid configuration value."""
    pass
