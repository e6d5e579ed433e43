"""Map changed file paths to the workspace packages that own them."""

from pathlib import Path
from typing import Iterable, List, Optional, Set, Union
import logging
import os

from .core import Package

logger = logging.getLogger(__name__)


def canonicalize(path: Union[str, Path], base: Path) -> Path:
    """Resolve a path to an absolute canonical form.

    Relative paths are taken relative to ``base``. Removed files no longer
    exist and cannot be canonicalized; for those the absolute, normalized
    path is used instead.

    Args:
        path: File path as recorded in a snapshot
        base: Directory relative paths are anchored at

    Returns:
        Absolute path
    """
    candidate = base / path
    try:
        return candidate.resolve(strict=True)
    except OSError:
        return Path(os.path.abspath(candidate))


def owning_package(path: Path, roots: Iterable[Path]) -> Optional[Path]:
    """Find the package root that contains ``path``.

    Containment is checked per path component, so ``/ws/foo-bar/x.rs`` is
    not inside ``/ws/foo``. When roots are nested the deepest one wins,
    which keeps the answer independent of the order roots are listed in.

    Args:
        path: Absolute (canonical) file path
        roots: Absolute package root directories

    Returns:
        The most specific matching root, or None
    """
    best = None
    for root in roots:
        try:
            path.relative_to(root)
        except ValueError:
            continue
        if best is None or len(root.parts) > len(best.parts):
            best = root
    return best


def package_roots(packages: Iterable[Package], base: Path) -> Set[Path]:
    """Canonical root directories of the given packages."""
    return {canonicalize(package.root, base) for package in packages}


def resolve_packages(
    changed: Iterable[str],
    packages: List[Package],
    base: Path,
) -> Set[Path]:
    """
    Collect the deduplicated set of package roots affected by changed paths.

    Args:
        changed: Added, removed and modified paths
        packages: Workspace packages
        base: Directory relative snapshot paths are anchored at

    Returns:
        Set of affected package roots (canonical absolute paths)

    Note:
        Paths outside every package (e.g. a stray build script at the
        workspace root of a virtual manifest) affect nothing.
    """
    roots = package_roots(packages, base)

    affected = set()
    for changed_path in changed:
        resolved = canonicalize(changed_path, base)
        root = owning_package(resolved, roots)
        if root is None:
            logger.debug("%s is not inside any workspace package", changed_path)
            continue
        affected.add(root)
    return affected
