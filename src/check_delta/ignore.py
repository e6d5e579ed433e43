"""Gitignore-style pattern matching for the workspace scanner."""

from pathlib import Path
from typing import Iterable, List, Optional

from pathspec import GitIgnoreSpec

from .constants import DEFAULT_INCLUDE


# Default patterns to always ignore
DEFAULTS = [
    # Version control
    ".git/",

    # Cargo build output
    "target/",

    # Hidden files and directories
    ".*",
]

# Per-directory ignore files; later files take precedence
IGNORE_FILES = [".gitignore", ".ignore"]

# Repository-local excludes, read at the workspace root only
GIT_EXCLUDE = ".git/info/exclude"


def _read_patterns(path: Path) -> List[str]:
    """Read non-empty, non-comment lines from an ignore file."""
    patterns = []
    for line in path.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            patterns.append(line)
    return patterns


def _anchor(pattern: str, rel_dir: str) -> str:
    """Rewrite a pattern from ``rel_dir``'s ignore file relative to the root.

    As in git, a pattern with a slash before its last character is relative
    to the directory holding the ignore file; any other pattern matches at
    any depth below it.
    """
    negate = pattern.startswith("!")
    body = pattern[1:] if negate else pattern
    if "/" in body.rstrip("/"):
        body = f"{rel_dir}/{body.lstrip('/')}"
    else:
        body = f"{rel_dir}/**/{body}"
    return f"!{body}" if negate else body


class ScanSpec:
    """Decides which workspace files are tracked.

    A file is tracked when it matches an include pattern and is not
    excluded by the defaults, the workspace's ignore files, or extra
    patterns.
    """

    def __init__(
        self,
        root: Path,
        include: Optional[Iterable[str]] = None,
        extra: Iterable[str] = (),
    ):
        """Initialize scan spec.

        Args:
            root: Workspace root directory
            include: Patterns a file must match (defaults to Rust sources)
            extra: Additional exclusion patterns
        """
        self.root = root
        patterns = list(DEFAULTS)

        for ignore_file in [root / GIT_EXCLUDE] + [root / name for name in IGNORE_FILES]:
            if ignore_file.is_file():
                patterns.extend(_read_patterns(ignore_file))

        patterns.extend(extra)

        self._patterns = patterns
        self._include_patterns = list(include) if include is not None else list(DEFAULT_INCLUDE)

        # Compile patterns once for efficiency
        self.exclude = GitIgnoreSpec.from_lines(patterns)
        self.include = GitIgnoreSpec.from_lines(self._include_patterns)

    def for_directory(self, rel_dir: str) -> "ScanSpec":
        """Spec for the subtree at ``rel_dir``, adding its own ignore files.

        Returns ``self`` when the directory has no ignore files.
        """
        if rel_dir in ("", "."):
            return self

        nested = []
        for name in IGNORE_FILES:
            ignore_file = self.root / rel_dir / name
            if ignore_file.is_file():
                nested.extend(_anchor(p, rel_dir) for p in _read_patterns(ignore_file))
        if not nested:
            return self

        child = ScanSpec.__new__(ScanSpec)
        child.root = self.root
        child._patterns = self._patterns + nested
        child._include_patterns = self._include_patterns
        child.exclude = GitIgnoreSpec.from_lines(child._patterns)
        child.include = self.include
        return child

    def is_ignored(self, relpath: str) -> bool:
        """Check if a root-relative POSIX path is excluded."""
        return self.exclude.match_file(relpath)

    def is_tracked(self, relpath: str) -> bool:
        """Check if a root-relative POSIX file path should be snapshotted."""
        return self.include.match_file(relpath) and not self.exclude.match_file(relpath)

    def should_traverse(self, dirpath: str) -> bool:
        """Check if a directory should be descended into during scanning.

        Args:
            dirpath: Root-relative directory path in POSIX format

        Returns:
            True if the directory should be traversed
        """
        # Trailing slash so directory-only patterns match
        if not dirpath.endswith("/"):
            dirpath = dirpath + "/"

        return not self.exclude.match_file(dirpath)
