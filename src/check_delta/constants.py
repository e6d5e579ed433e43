"""Constants for check-delta."""

# Files written inside the build tool's target directory
STATE_FILE = "cargo-check-delta.json"
LOG_FILE = "cargo-check-delta.log"
LOCK_FILE = "cargo-check-delta.lock"

# Optional per-workspace configuration (at the workspace root)
CONFIG_FILE = ".check-delta.yaml"

# Build invocation defaults
DEFAULT_PROGRAM = "cargo"
DEFAULT_SUBCOMMAND = "check"

# Old snapshots older than this are discarded instead of diffed
DEFAULT_STALE_SECONDS = 3 * 60 * 60

# Only Rust sources are tracked unless configured otherwise
DEFAULT_INCLUDE = ["*.rs"]

# Exit code reported when a build process could not be started
SPAWN_FAILURE_EXIT_CODE = 127

# Version
CHECK_DELTA_VERSION = "0.1.0"
