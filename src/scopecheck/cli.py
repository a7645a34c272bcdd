"""scopecheck CLI - Redundant global scope detection for C and C++."""

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from scopecheck import __version__
from scopecheck.config import (
    LANGUAGES,
    SOURCE_MODES,
    CheckerConfig,
    ConfigError,
    load_config,
    load_pyproject_config,
    save_config,
)
from scopecheck.exclusion import collect_files
from scopecheck.frontend.walker import ParsedUnit, analyze_file
from scopecheck.models.results import (
    AnalysisMetadata,
    AnalysisResults,
    AnalysisSummary,
    FileReport,
)
from scopecheck.output.diagnostics import render_diagnostics
from scopecheck.output.json_writer import diagnostics_from_results, load_results, write_results
from scopecheck.output.tree import (
    build_results_tree,
    build_summary_tree,
    build_syntax_tree,
    display_tree,
)
from scopecheck.paths import find_project_root, get_config_path, get_results_path

app = typer.Typer(
    name="scopecheck",
    help="Find global variables that are unused or only used in one block",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)

EXIT_WARNINGS = 1
EXIT_CONFIG_ERROR = 2


def version_callback(value: bool) -> None:
    if value:
        console.print(f"scopecheck version {__version__}")
        raise typer.Exit()


def setup_logging(verbose: bool) -> None:
    """Route library logging through rich: DEBUG with --verbose, WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Find global variables that are unused or only used in one block."""


@app.command()
def check(
    paths: list[Path] = typer.Argument(
        ...,
        help="C/C++ files or directories to check",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a JSON config file (default: .scopecheck/config.json if present)",
    ),
    skip_unused: bool = typer.Option(
        False,
        "--skip-unused",
        help="Do not report unused globals",
    ),
    warn_init: bool = typer.Option(
        False,
        "--warn-init",
        help="Also report globals with a non-constant initializer",
    ),
    hide_notes: bool = typer.Option(
        False,
        "--hide-notes",
        help="Do not print the usage notes after each warning",
    ),
    dump_tree: bool = typer.Option(
        False,
        "--dump-tree",
        help="Print the syntax tree of each analyzed file",
    ),
    language: Optional[str] = typer.Option(
        None,
        "--language",
        "-l",
        help=f"Source language ({', '.join(LANGUAGES)})",
    ),
    source_mode: Optional[str] = typer.Option(
        None,
        "--source-mode",
        help=f"How to tell project sources from headers ({', '.join(SOURCE_MODES)})",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write results JSON to this path",
    ),
    tree: bool = typer.Option(
        False,
        "--tree",
        "-t",
        help="Show results as a tree grouped by file",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging",
    ),
    exit_zero: bool = typer.Option(
        False,
        "--exit-zero",
        help="Exit with status 0 even when warnings were reported",
    ),
    include_ignored: bool = typer.Option(
        False,
        "--include-ignored",
        help="Include files normally excluded by .gitignore and the config",
    ),
) -> None:
    """Check C and C++ sources for redundant global scope."""
    setup_logging(verbose)

    project_root = find_project_root(paths[0])
    try:
        checker_config = build_config(
            project_root,
            config,
            skip_unused=skip_unused or None,
            warn_on_dynamic_init=warn_init or None,
            hide_usage_notes=hide_notes or None,
            dump_tree=dump_tree or None,
            language=language,
            source_mode=source_mode,
        )
    except ConfigError as e:
        err_console.print(f"[red]Configuration error:[/] {e}")
        raise typer.Exit(EXIT_CONFIG_ERROR)

    missing = [p for p in paths if not p.exists()]
    if missing:
        for path in missing:
            err_console.print(f"[red]No such file or directory:[/] {path}")
        raise typer.Exit(EXIT_CONFIG_ERROR)

    files = collect_files(paths, checker_config, include_ignored)
    logger.debug("Checking %d file(s) under %s", len(files), project_root)

    results = run_check(files, checker_config, project_root)

    warnings = render_diagnostics(results.files, console)

    if output is not None:
        write_results(results, output)
        console.print(f"\n[green]Results saved to:[/] {output}")

    if tree:
        display_tree(build_results_tree(results.diagnostics, project_root))
        _display_summary(results)

    if warnings and not exit_zero:
        raise typer.Exit(EXIT_WARNINGS)


def build_config(
    project_root: Path,
    config_path: Optional[Path] = None,
    **overrides,
) -> CheckerConfig:
    """
    Layer configuration sources: defaults, pyproject.toml, the JSON config,
    then command line overrides (None means "not given").
    """
    checker_config = load_pyproject_config(project_root)

    if config_path is None:
        default_path = get_config_path(project_root)
        if default_path.exists():
            config_path = default_path
    if config_path is not None:
        checker_config = load_config(config_path, base=checker_config)

    return checker_config.with_overrides(**overrides)


def run_check(files: list[Path], config: CheckerConfig, project_root: Path) -> AnalysisResults:
    """Analyze every file and collect the results."""
    start_time = time.time()
    reports: list[FileReport] = []

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=err_console,
        transient=True,
    ) as progress:
        task = progress.add_task("Checking sources...", total=len(files))
        on_parsed = _dump_syntax_tree if config.dump_tree else None

        for file_path in files:
            report = analyze_file(file_path, config, on_parsed=on_parsed)
            reports.append(report)
            progress.update(task, advance=1)

    duration_ms = int((time.time() - start_time) * 1000)
    tracked = sum(r.declarations_tracked for r in reports)

    return AnalysisResults(
        metadata=AnalysisMetadata(
            project=str(project_root),
            analyzed_at=datetime.now(),
            scopecheck_version=__version__,
            files_analyzed=len(reports),
            declarations_tracked=tracked,
            analysis_duration_ms=duration_ms,
        ),
        summary=AnalysisSummary.from_reports(reports),
        files=reports,
    )


def _dump_syntax_tree(unit: ParsedUnit) -> None:
    display_tree(build_syntax_tree(unit.tree.root_node, f"{unit.path} ({unit.language})"))


@app.command()
def show(
    results_path: Optional[Path] = typer.Argument(
        None,
        help="Path to results file (default: .scopecheck/results.json)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show full tree view",
    ),
) -> None:
    """Display results from a previous check run."""
    if results_path is None:
        results_path = get_results_path(find_project_root(Path.cwd()))

    if not results_path.exists():
        console.print(f"[red]Results file not found:[/] {results_path}")
        raise typer.Exit(1)

    data = load_results(results_path)
    diagnostics = diagnostics_from_results(data)

    if verbose:
        project_root = Path(data.get("metadata", {}).get("project", "."))
        display_tree(build_results_tree(diagnostics, project_root))
    else:
        display_tree(build_summary_tree(diagnostics))


@app.command()
def init(
    path: Path = typer.Argument(
        Path("."),
        help="Project directory",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite an existing config file",
    ),
) -> None:
    """Write a default .scopecheck/config.json."""
    path = path.resolve()
    config_path = get_config_path(path)

    if config_path.exists() and not force:
        console.print(f"[yellow]Config file already exists:[/] {config_path}")
        console.print("Use [bold]--force[/] to overwrite it.")
        raise typer.Exit(1)

    save_config(CheckerConfig(), config_path)
    console.print(f"[green]Configuration saved to:[/] {config_path}")


def _display_summary(results: AnalysisResults) -> None:
    """Display check summary."""
    if not results.summary or not results.metadata:
        return

    summary = results.summary

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="cyan")
    table.add_column("Value")

    table.add_row("Files analyzed", str(results.metadata.files_analyzed))
    table.add_row("Globals tracked", str(results.metadata.declarations_tracked))
    table.add_row("Warnings", str(summary.diagnostics))

    for kind, count in sorted(summary.by_kind.items()):
        color = {"unused": "red", "redundant-scope": "yellow"}.get(kind, "white")
        table.add_row(f"  [{color}]{kind}[/]", str(count))

    if summary.files_with_errors:
        table.add_row("[red]Files with errors[/]", str(summary.files_with_errors))

    console.print(Panel(table, title="[bold]Global Scope Summary[/]", border_style="blue"))


if __name__ == "__main__":
    app()
