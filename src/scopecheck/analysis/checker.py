"""Listener interface driven by the syntax tree walker."""

import logging

from scopecheck.analysis.blocks import BlockStack
from scopecheck.analysis.classify import Classifier
from scopecheck.analysis.filter import DeclarationFilter, SourcePolicy
from scopecheck.analysis.merge import merge_all
from scopecheck.analysis.registry import UsageRegistry
from scopecheck.config import CheckerConfig
from scopecheck.models.declaration import Block, Location, VariableDeclaration
from scopecheck.models.results import Classification, Diagnostic

logger = logging.getLogger(__name__)


class ScopeChecker:
    """
    Redundant-scope check for one translation unit.

    The traversal driver calls, in syntax tree order:

    - enter_block / exit_block around the body of every compound statement;
    - visit_declaration for every variable declaration (including locals and
      parameters; the filter decides what is tracked);
    - visit_reference for every resolved reference to a variable, and
      visit_macro_reference for names found in macro bodies.

    Then finalize() once. Merges happen on exit_block, after every usage
    inside the block has been recorded.
    """

    def __init__(self, config: CheckerConfig | None = None, policy: SourcePolicy | None = None) -> None:
        self.config = config or CheckerConfig()
        self.policy = policy or SourcePolicy.from_config(self.config)
        self.blocks = BlockStack()
        self.registry = UsageRegistry()
        self.filter = DeclarationFilter(self.config, self.policy)
        self.classifier = Classifier(self.config, self.filter)
        self._finalized = False

    @property
    def depth(self) -> int:
        return self.blocks.depth

    def enter_block(self, block: Block) -> None:
        self.blocks.enter(block)

    def exit_block(self) -> None:
        block, parent = self.blocks.exit()
        merge_all(self.registry, block, parent)

    def visit_declaration(self, decl: VariableDeclaration) -> None:
        if self.filter.is_eligible(decl, self.blocks.depth, self.registry):
            self.registry.register(decl)

    def visit_reference(self, decl_id: int, site: Location) -> None:
        if self.filter.is_foreign(site):
            return
        self.registry.record_use(decl_id, self.blocks.current, site)

    def visit_macro_reference(self, decl_id: int, site: Location) -> None:
        """A use inside a macro body, attributed to global scope wherever it appears."""
        if self.filter.is_foreign(site):
            return
        self.registry.record_use(decl_id, None, site)

    def _check_finished(self) -> None:
        if self.blocks.depth:
            raise RuntimeError(
                f"traversal is still inside {self.blocks.depth} block(s); "
                "enter_block/exit_block calls are unbalanced"
            )

    def classifications(self) -> dict[str, Classification]:
        """Verdict per tracked declaration name, for inspection and JSON output."""
        self._check_finished()
        return {decl.name: verdict for decl, verdict in self.classifier.classifications(self.registry)}

    def finalize(self) -> list[Diagnostic]:
        """Classify every tracked declaration and build the report."""
        self._check_finished()
        if self._finalized:
            raise RuntimeError("finalize() was already called for this translation unit")
        self._finalized = True

        diagnostics = self.classifier.report(self.registry)
        logger.debug(
            "%d global(s) tracked, %d diagnostic(s)", len(self.registry), len(diagnostics)
        )
        return diagnostics
