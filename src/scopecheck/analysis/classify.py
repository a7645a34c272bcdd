"""Classification of collapsed usage lists and diagnostic construction."""

from scopecheck.analysis.filter import DeclarationFilter
from scopecheck.analysis.registry import UsageRegistry
from scopecheck.config import CheckerConfig
from scopecheck.models.declaration import TrackedDeclaration
from scopecheck.models.results import (
    Classification,
    Diagnostic,
    DiagnosticKind,
    Note,
    NoteKind,
)
from scopecheck.models.usage import Composite, Leaf, Usage, innermost_block

UNUSED_MESSAGE = "Unused global variable: '{name}'. You can remove it."
REDUNDANT_MESSAGE = "variable '{name}' only used in a smaller scope, consider moving it."
BLOCK_NOTE_MESSAGE = "In this block"
SITE_NOTE_MESSAGE = "Used here"


def classify(usages: list[Usage]) -> Classification:
    """Classify a fully collapsed usage list (exemptions are checked separately)."""
    if not usages:
        return Classification.UNUSED

    # References sit directly in two or more top-level scopes, or at global
    # scope next to nested ones. Never reported.
    if len(usages) > 1:
        return Classification.MULTIPLY_SCOPED

    match usages[0]:
        case Leaf():
            return Classification.GLOBAL_USE
        case Composite():
            return Classification.REDUNDANT_SCOPE
    raise TypeError(f"unexpected usage node: {usages[0]!r}")


def usage_notes(children: tuple[Usage, ...]) -> list[Note]:
    """Flatten a composite's children into notes, depth first."""
    notes: list[Note] = []
    for child in children:
        match child:
            case Composite(block=block, children=grandchildren):
                notes.append(Note(NoteKind.USED_IN_BLOCK, block.location, BLOCK_NOTE_MESSAGE))
                notes.extend(usage_notes(grandchildren))
            case Leaf(site=site):
                notes.append(Note(NoteKind.USED_AT_SITE, site, SITE_NOTE_MESSAGE))
    return notes


def build_diagnostic(
    decl: TrackedDeclaration,
    verdict: Classification,
    usages: list[Usage],
    config: CheckerConfig,
) -> Diagnostic | None:
    """The diagnostic for one classified declaration, if it needs one."""
    if verdict is Classification.UNUSED:
        if config.skip_unused:
            return None
        return Diagnostic(
            kind=DiagnosticKind.UNUSED,
            name=decl.name,
            location=decl.location,
            message=UNUSED_MESSAGE.format(name=decl.name),
        )

    if verdict is Classification.REDUNDANT_SCOPE:
        root = usages[0]
        assert isinstance(root, Composite)
        return Diagnostic(
            kind=DiagnosticKind.REDUNDANT_SCOPE,
            name=decl.name,
            location=decl.location,
            message=REDUNDANT_MESSAGE.format(name=decl.name),
            notes=[] if config.hide_usage_notes else usage_notes(root.children),
            scope=innermost_block(root).location,
        )

    return None


class Classifier:
    """Runs classification over a finished registry."""

    def __init__(self, config: CheckerConfig, decl_filter: DeclarationFilter) -> None:
        self.config = config
        self.decl_filter = decl_filter

    def classifications(
        self, registry: UsageRegistry
    ) -> list[tuple[TrackedDeclaration, Classification]]:
        results: list[tuple[TrackedDeclaration, Classification]] = []
        for decl, usages in registry.items():
            if self.decl_filter.exemption(decl) is not None:
                results.append((decl, Classification.EXEMPT))
            else:
                results.append((decl, classify(usages)))
        return results

    def report(self, registry: UsageRegistry) -> list[Diagnostic]:
        diagnostics: list[Diagnostic] = []
        for decl, verdict in self.classifications(registry):
            diagnostic = build_diagnostic(decl, verdict, registry.usages(decl.decl_id), self.config)
            if diagnostic is not None:
                diagnostics.append(diagnostic)
        return diagnostics
