"""Output modules for CLI display and file writing."""

from scopecheck.output.diagnostics import format_diagnostic, render_diagnostics
from scopecheck.output.json_writer import diagnostics_from_results, load_results, write_results
from scopecheck.output.tree import (
    build_results_tree,
    build_summary_tree,
    build_syntax_tree,
    display_tree,
)

__all__ = [
    "build_results_tree",
    "build_summary_tree",
    "build_syntax_tree",
    "diagnostics_from_results",
    "display_tree",
    "format_diagnostic",
    "load_results",
    "render_diagnostics",
    "write_results",
]
