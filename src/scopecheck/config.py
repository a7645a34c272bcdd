"""Configuration loading and saving for scopecheck."""

import json
from dataclasses import MISSING, asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import tomli

LANGUAGES = ("auto", "c", "cpp")
SOURCE_MODES = ("extension", "main-file")

DEFAULT_SOURCE_EXTENSIONS = [".c", ".cc", ".cpp", ".cxx", ".c++", ".C"]
DEFAULT_IGNORE_ATTRIBUTES = ["rcs_ignore", "used"]
DEFAULT_SUPPRESSION_PATTERNS = ["NOLINT", "scopecheck: ignore"]
DEFAULT_INCLUDES = ["**/*.c", "**/*.cc", "**/*.cpp", "**/*.cxx", "**/*.c++"]
DEFAULT_EXCLUDES = ["**/build/**", "**/third_party/**", "**/vendor/**"]


class ConfigError(ValueError):
    """Raised for invalid or unknown configuration before any analysis runs."""


@dataclass(frozen=True)
class CheckerConfig:
    """Settings consulted by the filter, the checker and the report layer."""

    # Report options
    skip_unused: bool = False
    warn_on_dynamic_init: bool = False
    hide_usage_notes: bool = False
    dump_tree: bool = False

    # Front end
    language: str = "auto"
    source_mode: str = "extension"
    source_extensions: list[str] = field(default_factory=lambda: list(DEFAULT_SOURCE_EXTENSIONS))
    ignore_attributes: list[str] = field(default_factory=lambda: list(DEFAULT_IGNORE_ATTRIBUTES))
    respect_suppressions: bool = True
    suppression_patterns: list[str] = field(
        default_factory=lambda: list(DEFAULT_SUPPRESSION_PATTERNS)
    )

    # File discovery
    include: list[str] = field(default_factory=lambda: list(DEFAULT_INCLUDES))
    exclude: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDES))

    def __post_init__(self) -> None:
        if self.language not in LANGUAGES:
            raise ConfigError(
                f"unknown language: {self.language!r} (expected one of {', '.join(LANGUAGES)})"
            )
        if self.source_mode not in SOURCE_MODES:
            raise ConfigError(
                f"unknown source mode: {self.source_mode!r} "
                f"(expected one of {', '.join(SOURCE_MODES)})"
            )

    def with_overrides(self, **overrides: Any) -> "CheckerConfig":
        """Return a copy with the given (non-None) settings replaced."""
        values = {key: value for key, value in overrides.items() if value is not None}
        return from_mapping(values, base=self, source="command line")

    def to_dict(self) -> dict:
        return asdict(self)


def _field_types() -> dict[str, type]:
    types: dict[str, type] = {}
    for f in fields(CheckerConfig):
        if f.default_factory is not MISSING:
            types[f.name] = type(f.default_factory())
        else:
            types[f.name] = type(f.default)
    return types


def from_mapping(
    data: dict[str, Any],
    base: CheckerConfig | None = None,
    source: str = "config",
) -> CheckerConfig:
    """Build a config from a flat mapping, validating keys and value types."""
    base = base or CheckerConfig()
    types = _field_types()
    values: dict[str, Any] = {}

    for raw_key, value in data.items():
        key = raw_key.replace("-", "_")
        if key not in types:
            raise ConfigError(f"unknown option in {source}: {raw_key}")
        expected = types[key]
        if expected is list:
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ConfigError(f"{source}: {raw_key} must be a list of strings")
        elif not isinstance(value, expected):
            raise ConfigError(f"{source}: {raw_key} must be of type {expected.__name__}")
        values[key] = value

    return replace(base, **values)


def load_config(config_path: Path, base: CheckerConfig | None = None) -> CheckerConfig:
    """Load a scopecheck JSON configuration file."""
    if not config_path.exists():
        raise ConfigError(f"config file not found: {config_path}")
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"{config_path}: invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path}: expected a JSON object")
    return from_mapping(data, base=base, source=str(config_path))


def load_pyproject_config(project_root: Path, base: CheckerConfig | None = None) -> CheckerConfig:
    """Load the [tool.scopecheck] table from pyproject.toml, if there is one."""
    base = base or CheckerConfig()
    pyproject = project_root / "pyproject.toml"
    if not pyproject.exists():
        return base

    try:
        with open(pyproject, "rb") as f:
            data = tomli.load(f)
    except tomli.TOMLDecodeError as e:
        raise ConfigError(f"{pyproject}: invalid TOML: {e}") from e

    table = data.get("tool", {}).get("scopecheck")
    if not table:
        return base
    return from_mapping(table, base=base, source=f"{pyproject} [tool.scopecheck]")


def save_config(config: CheckerConfig, config_path: Path) -> None:
    """Save configuration as JSON."""
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2)
