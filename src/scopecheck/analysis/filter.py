"""Declaration eligibility and exemption policy."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from scopecheck.analysis.registry import UsageRegistry
from scopecheck.config import CheckerConfig
from scopecheck.models.declaration import (
    InitializerKind,
    Location,
    TrackedDeclaration,
    VariableDeclaration,
)

logger = logging.getLogger(__name__)

EXEMPT_ANNOTATION = "annotation"
EXEMPT_EXTERN = "extern"
EXEMPT_DYNAMIC_INIT = "dynamic-initializer"


@dataclass
class SourcePolicy:
    """
    Decides which physical files count as the code under analysis.

    In "extension" mode a file is primary when its suffix is a source suffix
    (headers are foreign). In "main-file" mode only the translation unit's
    primary file is.
    """

    mode: str = "extension"
    extensions: list[str] = field(default_factory=list)
    primary_file: Path | None = None

    @classmethod
    def from_config(cls, config: CheckerConfig, primary_file: Path | None = None) -> "SourcePolicy":
        return cls(
            mode=config.source_mode,
            extensions=list(config.source_extensions),
            primary_file=primary_file,
        )

    def is_foreign(self, location: Location) -> bool:
        if self.mode == "main-file":
            return self.primary_file is not None and location.file != self.primary_file
        return location.file.suffix not in self.extensions


class DeclarationFilter:
    """Which declarations get tracked, and which tracked ones are reported."""

    def __init__(self, config: CheckerConfig, policy: SourcePolicy) -> None:
        self.config = config
        self.policy = policy

    def is_foreign(self, location: Location) -> bool:
        return self.policy.is_foreign(location)

    def is_eligible(self, decl: VariableDeclaration, depth: int, registry: UsageRegistry) -> bool:
        """
        Whether `decl` should be registered.

        A redeclaration of something already tracked is not eligible; its
        flags are merged into the existing entry instead.
        """
        if self.is_foreign(decl.location):
            logger.debug("skipping %s: declared in foreign file %s", decl.name, decl.location.file)
            return False

        if depth > 0 or decl.is_parameter:
            return False

        existing = registry.get(decl.decl_id)
        if existing is not None:
            existing.merge_redeclaration(decl)
            return False

        return True

    def exemption(self, decl: TrackedDeclaration) -> str | None:
        """Reason `decl` is exempt from reporting, or None."""
        if decl.exempt:
            return EXEMPT_ANNOTATION
        # Storage allocated in another translation unit; it must stay global.
        if decl.is_extern:
            return EXEMPT_EXTERN
        if decl.initializer is InitializerKind.DYNAMIC and not self.config.warn_on_dynamic_init:
            return EXEMPT_DYNAMIC_INIT
        return None
