"""Workspace metadata via ``cargo metadata``.

The metadata is queried once at startup and the resulting
``WorkspaceMetadata`` is passed explicitly to everything that needs the
package list or the target directory.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional
import json
import logging
import subprocess

from pydantic import ValidationError

from .constants import DEFAULT_PROGRAM
from .core import Package, WorkspaceMetadata
from .errors import MetadataError

logger = logging.getLogger(__name__)


def metadata_command(manifest_path: Optional[Path] = None, program: str = DEFAULT_PROGRAM) -> List[str]:
    """Build the ``cargo metadata`` invocation."""
    argv = [program, "metadata", "--format-version", "1", "--no-deps"]
    if manifest_path is not None:
        argv += ["--manifest-path", str(manifest_path)]
    return argv


def parse_metadata(data: Dict[str, Any]) -> WorkspaceMetadata:
    """Convert ``cargo metadata`` JSON into workspace metadata.

    Only workspace members are kept; with ``--no-deps`` that is normally
    every listed package, but path dependencies outside the workspace can
    still show up.

    Raises:
        MetadataError: If required fields are missing or malformed
    """
    try:
        members = set(data["workspace_members"])
        packages = [
            Package(name=pkg["name"], manifest_path=Path(pkg["manifest_path"]))
            for pkg in data["packages"]
            if pkg["id"] in members
        ]
        return WorkspaceMetadata(
            workspace_root=Path(data["workspace_root"]),
            target_directory=Path(data["target_directory"]),
            packages=packages,
        )
    except (KeyError, TypeError, ValidationError) as e:
        raise MetadataError(f"Unexpected cargo metadata output: {e}")


def load_metadata(manifest_path: Optional[Path] = None, program: str = DEFAULT_PROGRAM) -> WorkspaceMetadata:
    """Query workspace metadata.

    Args:
        manifest_path: Workspace manifest (defaults to cargo's discovery from cwd)
        program: Build tool executable

    Returns:
        WorkspaceMetadata for the workspace

    Raises:
        MetadataError: If the query fails; the tool cannot run without it
    """
    argv = metadata_command(manifest_path, program)
    logger.debug("Querying workspace metadata: %s", " ".join(argv))

    try:
        result = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            check=False  # Handle errors manually for better diagnostics
        )
    except OSError as e:
        raise MetadataError(f"Could not run '{program} metadata': {e}")

    if result.returncode != 0:
        raise MetadataError(
            f"'{program} metadata' failed with exit code {result.returncode}",
            stderr=result.stderr,
        )

    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise MetadataError(f"Failed to parse '{program} metadata' output: {e}")

    metadata = parse_metadata(data)
    logger.debug(
        "Workspace %s has %d packages, target dir %s",
        metadata.workspace_root, len(metadata.packages), metadata.target_directory,
    )
    return metadata
