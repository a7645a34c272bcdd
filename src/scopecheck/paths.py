"""Where scopecheck finds a project's configuration and keeps its results."""

from pathlib import Path

SCOPECHECK_DIR = ".scopecheck"
CONFIG_FILE = "config.json"
RESULTS_FILE = "results.json"
PYPROJECT_FILE = "pyproject.toml"


def is_project_root(directory: Path) -> bool:
    """A directory with a .scopecheck directory or a pyproject.toml."""
    return (directory / SCOPECHECK_DIR).is_dir() or (directory / PYPROJECT_FILE).is_file()


def find_project_root(start: Path) -> Path:
    """
    Nearest directory at or above `start` that is a project root. Falls back
    to `start` itself (or its parent for a file).
    """
    start = start.resolve()
    base = start if start.is_dir() else start.parent
    for candidate in (base, *base.parents):
        if is_project_root(candidate):
            return candidate
    return base


def get_config_path(project_root: Path) -> Path:
    """JSON config, layered over [tool.scopecheck] in pyproject.toml."""
    return project_root / SCOPECHECK_DIR / CONFIG_FILE


def get_results_path(project_root: Path) -> Path:
    """Results read by `scopecheck show` when no file is given."""
    return project_root / SCOPECHECK_DIR / RESULTS_FILE
