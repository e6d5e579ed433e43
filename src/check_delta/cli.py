"""CLI for check-delta.

Installed as ``cargo-check-delta`` so cargo runs it as ``cargo check-delta``.
"""

from pathlib import Path
from typing import List, Optional
import os
import sys

import typer
from rich.console import Console

from .config import load_delta_config
from .constants import CHECK_DELTA_VERSION, DEFAULT_PROGRAM
from .core import LogType
from .dispatch import run_process
from .errors import CheckDeltaError, MetadataError
from .logs import configure_logging
from .metadata import load_metadata
from .ops import RunOptions, run_delta


app = typer.Typer(
    help="""\
Run a cargo subcommand only in the workspace crates whose sources changed
since the last run, plus any crates whose last build failed.""",
    add_completion=False,
)

# Diagnostics and errors go to stderr; stdout belongs to the builds
console = Console(stderr=True)

# Name cargo passes as the first argument when invoked as `cargo check-delta`
CARGO_SUBCOMMAND_NAME = "check-delta"


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"cargo-check-delta {CHECK_DELTA_VERSION}")
        raise typer.Exit()


def _cargo_program() -> str:
    """The cargo executable; cargo exports its own path as $CARGO to subcommands."""
    return os.environ.get("CARGO", DEFAULT_PROGRAM)


@app.command(context_settings={"allow_extra_args": True, "ignore_unknown_options": True})
def check_delta(
    ctx: typer.Context,
    subcommand: Optional[str] = typer.Option(
        None, "-s", "--subcommand", help="cargo subcommand to invoke [default: check]"
    ),
    log_type: LogType = typer.Option(
        LogType.STDERR, "-l", "--log-type", case_sensitive=False, help="Where diagnostics go"
    ),
    reset: bool = typer.Option(False, "-r", "--reset", help="Ignore old db"),
    stale_time: Optional[float] = typer.Option(
        None, "--stale-time", min=0, help="Discard the old db when older than this many seconds"
    ),
    jobs: Optional[int] = typer.Option(None, "-j", "--jobs", min=1, help="Parallel filesystem scan workers"),
    manifest_path: Optional[Path] = typer.Option(None, "--manifest-path", help="Path to the workspace Cargo.toml"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Include debug diagnostics"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
):
    """Check changed crates. Extra arguments are passed to the cargo subcommand.

    \b
    Examples:
        cargo check-delta                      # cargo check in changed crates
        cargo check-delta -s clippy -- -D warnings
        cargo check-delta -r -s test           # test every crate
    """
    args: List[str] = list(ctx.args)
    cargo = _cargo_program()

    try:
        metadata = load_metadata(manifest_path, program=cargo)
    except MetadataError as e:
        console.print(f"[red]✗[/red] Could not read workspace metadata: {e}")
        raise typer.Exit(1)

    configure_logging(log_type, metadata.target_directory, verbose=verbose)

    config = load_delta_config(metadata.workspace_root)
    options = RunOptions.from_config(
        config,
        subcommand=subcommand,
        args=args,
        reset=reset,
        stale_time=stale_time,
        jobs=jobs,
        program=cargo,
    )

    try:
        result = run_delta(metadata, options, runner=run_process)
    except CheckDeltaError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)

    if not result.success:
        raise typer.Exit(result.exit_code)


def main() -> None:
    """Console script entry point."""
    argv = sys.argv[1:]
    if argv and argv[0] == CARGO_SUBCOMMAND_NAME:
        argv = argv[1:]
    app(args=argv, prog_name="cargo check-delta")


if __name__ == "__main__":
    main()
