"""Build dispatcher: run the build command once per package, fail-fast."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Sequence
import logging
import subprocess

from .constants import DEFAULT_PROGRAM, DEFAULT_SUBCOMMAND, SPAWN_FAILURE_EXIT_CODE
from .core import DispatchResult
from .ledger import RetryLedger

logger = logging.getLogger(__name__)

# (argv, cwd) -> exit code
ProcessRunner = Callable[[Sequence[str], Path], int]


@dataclass
class BuildCommand:
    """Build command template, e.g. ``cargo check --all-targets``."""

    program: str = DEFAULT_PROGRAM
    subcommand: str = DEFAULT_SUBCOMMAND
    args: List[str] = field(default_factory=list)  # passed through verbatim

    def argv(self) -> List[str]:
        return [self.program, self.subcommand, *self.args]


def run_process(argv: Sequence[str], cwd: Path) -> int:
    """Run a build process to completion and return its exit code.

    The child inherits stdin/stdout/stderr. There is no timeout: the build
    runs until it exits or the whole tool is killed.

    Returns:
        The child's exit code; 127 if it could not be started; 128 + N if
        it was killed by signal N
    """
    try:
        completed = subprocess.run(list(argv), cwd=str(cwd), check=False)
    except OSError as e:
        logger.error("Could not start %s in %s: %s", argv[0], cwd, e)
        return SPAWN_FAILURE_EXIT_CODE

    if completed.returncode < 0:
        return 128 - completed.returncode
    return completed.returncode


class BuildDispatcher:
    """
    Builds packages one at a time, stopping at the first failure.

    Builds never run concurrently: each child must exit before the next one
    starts, so they cannot race on the build tool's shared caches.
    """

    def __init__(
        self,
        command: BuildCommand,
        ledger: RetryLedger,
        runner: ProcessRunner = run_process,
    ):
        self.command = command
        self.ledger = ledger
        self.runner = runner

    def dispatch(self, roots: Iterable[str]) -> DispatchResult:
        """
        Build each package root in order.

        On success the package leaves the retry ledger. On failure it joins
        the ledger and the loop stops; packages after it are neither built
        nor queued.

        Args:
            roots: Package roots in build order

        Returns:
            DispatchResult with the failing child's exit code, or 0
        """
        result = DispatchResult()
        argv = self.command.argv()

        for root in roots:
            logger.info("running: %s (in %s)", " ".join(argv), root)
            exit_code = self.runner(argv, Path(root))

            if exit_code == 0:
                self.ledger.record_success(root)
                result.built.append(root)
                continue

            logger.error("build failed in %s with exit code %d", root, exit_code)
            self.ledger.record_failure(root)
            result.failed = root
            result.exit_code = exit_code
            break

        return result
