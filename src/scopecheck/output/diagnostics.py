"""Compiler-style text rendering of diagnostics."""

from rich.console import Console
from rich.markup import escape

from scopecheck.models.results import Diagnostic, FileReport


def format_diagnostic(diagnostic: Diagnostic) -> list[str]:
    """Plain text lines for one diagnostic and its notes."""
    lines = [
        f"{diagnostic.location}: warning: {diagnostic.message} [{diagnostic.kind.code}]"
    ]
    for note in diagnostic.notes:
        lines.append(f"{note.location}: note: {note.message}")
    return lines


def render_diagnostics(reports: list[FileReport], console: Console) -> int:
    """Print every diagnostic and file error. Returns the number of warnings."""
    count = 0
    for report in reports:
        if report.error:
            console.print(
                f"[red]{escape(str(report.file))}: error:[/] {escape(report.error)}",
                soft_wrap=True,
            )
            continue
        for diagnostic in report.diagnostics:
            count += 1
            warning, *notes = format_diagnostic(diagnostic)
            console.print(warning, style="bold", markup=False, highlight=False, soft_wrap=True)
            for note in notes:
                console.print(note, style="cyan", markup=False, highlight=False, soft_wrap=True)
    return count
