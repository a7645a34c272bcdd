"""File discovery and exclusion for scopecheck.

Directories given on the command line are expanded with the configured
include globs, then filtered through .gitignore patterns, the configured
excludes and built-in defaults using the pathspec library for proper
gitignore-style matching.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

import pathspec

from scopecheck.config import CheckerConfig

logger = logging.getLogger(__name__)


@dataclass
class ExclusionConfig:
    """Configuration for file exclusion."""

    gitignore_patterns: list[str] = field(default_factory=list)
    config_patterns: list[str] = field(default_factory=list)
    default_patterns: list[str] = field(default_factory=list)
    sources: list[str] = field(default_factory=list)  # For debugging/logging


# Default patterns that are always excluded
DEFAULT_EXCLUDES = [
    ".git",
    ".scopecheck",
    ".svn",
    ".hg",
    "CMakeFiles",
    "node_modules",
]


class FileExcluder:
    """Handles file exclusion with gitignore-style pattern matching."""

    def __init__(
        self,
        project_root: Path,
        include_ignored: bool = False,
        extra_excludes: list[str] | None = None,
    ) -> None:
        """Initialize the file excluder.

        Args:
            project_root: Root directory of the project.
            include_ignored: If True, don't exclude any files (bypass all patterns).
            extra_excludes: Additional patterns to exclude, usually from the config.
        """
        self.project_root = project_root
        self.include_ignored = include_ignored
        self._config = ExclusionConfig()
        self._spec: pathspec.PathSpec | None = None

        if not include_ignored:
            self._load_patterns(extra_excludes or [])
            self._build_spec()

    def _load_patterns(self, extra_excludes: list[str]) -> None:
        """Load patterns from all sources."""
        # 1. Default patterns
        self._config.default_patterns = list(DEFAULT_EXCLUDES)
        self._config.sources.append("defaults")

        # 2. .gitignore patterns
        self._load_gitignore()

        # 3. Excludes from the checker config
        if extra_excludes:
            self._config.config_patterns = list(extra_excludes)
            self._config.sources.append("config")

    def _load_gitignore(self) -> None:
        """Load .gitignore patterns."""
        gitignore_path = self.project_root / ".gitignore"
        if not gitignore_path.exists():
            return
        try:
            content = gitignore_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read %s: %s", gitignore_path, e)
            return

        self._config.gitignore_patterns = [
            line.strip()
            for line in content.splitlines()
            if line.strip() and not line.startswith("#")
        ]
        self._config.sources.append(str(gitignore_path))

    def _build_spec(self) -> None:
        """Build the pathspec matcher from all patterns."""
        self._spec = pathspec.PathSpec.from_lines("gitignore", self.patterns)

    def should_exclude(self, file_path: Path) -> bool:
        """Check if a file should be excluded.

        Args:
            file_path: Path to the file to check.

        Returns:
            True if the file should be excluded, False otherwise.
        """
        if self.include_ignored or self._spec is None:
            return False

        try:
            rel_path = file_path.relative_to(self.project_root)
        except ValueError:
            return False

        if self._spec.match_file(rel_path.as_posix()):
            return True

        # "build" should also match "build/foo.c"
        for part in rel_path.parts[:-1]:
            if self._spec.match_file(part):
                return True

        return False

    def filter_files(self, files: list[Path]) -> list[Path]:
        """Filter a list of files, removing excluded ones."""
        if self.include_ignored:
            return files
        return [f for f in files if not self.should_exclude(f)]

    @property
    def sources(self) -> list[str]:
        """Return list of config sources used."""
        return self._config.sources

    @property
    def patterns(self) -> list[str]:
        """Return all loaded patterns (for debugging)."""
        return (
            self._config.default_patterns
            + self._config.gitignore_patterns
            + self._config.config_patterns
        )


def _expand_directory(directory: Path, include: list[str]) -> list[Path]:
    spec = pathspec.PathSpec.from_lines("gitignore", include)
    return sorted(
        path
        for path in directory.rglob("*")
        if path.is_file() and spec.match_file(path.relative_to(directory).as_posix())
    )


def collect_files(
    paths: Iterable[Path],
    config: CheckerConfig,
    include_ignored: bool = False,
) -> list[Path]:
    """
    Files to analyze for the given command-line paths.

    Files named explicitly are always kept. Directories are expanded with
    `config.include` and filtered by a `FileExcluder` rooted at that directory.
    """
    collected: list[Path] = []
    seen: set[Path] = set()

    for path in paths:
        if path.is_dir():
            excluder = FileExcluder(path, include_ignored, extra_excludes=config.exclude)
            candidates = excluder.filter_files(_expand_directory(path, config.include))
            logger.debug(
                "%s: %d file(s) after exclusion (sources: %s)",
                path,
                len(candidates),
                ", ".join(excluder.sources) or "none",
            )
        else:
            candidates = [path]

        for candidate in candidates:
            key = candidate.resolve()
            if key not in seen:
                seen.add(key)
                collected.append(candidate)

    return collected
