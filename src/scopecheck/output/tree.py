"""Rich tree visualization for results and syntax trees."""

from collections import defaultdict
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.text import Text
from rich.tree import Tree
from tree_sitter import Node

from scopecheck.models.results import Diagnostic, DiagnosticKind, NoteKind

console = Console()

# Leaves longer than this are cut in syntax tree dumps
MAX_LEAF_TEXT = 40


def _relative(path: Path, project_root: Path) -> Path:
    try:
        return path.relative_to(project_root)
    except ValueError:
        return path


def build_results_tree(
    diagnostics: list[Diagnostic],
    project_root: Path,
) -> Tree:
    """Build a Rich tree showing diagnostics by file, with their usage notes."""
    by_file: dict[Path, list[Diagnostic]] = defaultdict(list)
    for diag in diagnostics:
        by_file[_relative(diag.location.file, project_root)].append(diag)

    root = Tree(
        f"[bold]{escape(project_root.name or str(project_root))}[/]",
        guide_style="dim",
    )

    dir_nodes: dict[Path, Tree] = {}

    for file_path in sorted(by_file.keys()):
        # Create directory nodes as needed
        parent = root
        for i, part in enumerate(file_path.parts[:-1]):
            dir_path = Path(*file_path.parts[: i + 1])
            if dir_path not in dir_nodes:
                dir_nodes[dir_path] = parent.add(f"[bold blue]{escape(part)}/[/]")
            parent = dir_nodes[dir_path]

        file_node = parent.add(f"[yellow]{escape(file_path.name)}[/]")

        for diag in sorted(by_file[file_path], key=lambda d: d.location.line):
            item_text = Text()
            if diag.kind is DiagnosticKind.UNUSED:
                item_text.append("x ", style="red bold")
                item_text.append(diag.name, style="red")
                item_text.append(f" (unused, line {diag.location.line})", style="dim")
            else:
                item_text.append("~ ", style="yellow bold")
                item_text.append(diag.name, style="yellow")
                item_text.append(f" (line {diag.location.line}", style="dim")
                if diag.scope is not None:
                    item_text.append(f", belongs in block at line {diag.scope.line}", style="dim")
                item_text.append(")", style="dim")

            diag_node = file_node.add(item_text)
            for note in diag.notes:
                if note.kind is NoteKind.USED_IN_BLOCK:
                    diag_node.add(f"[cyan]block[/] [dim]line {note.location.line}[/]")
                else:
                    diag_node.add(f"[green]use[/] [dim]line {note.location.line}:{note.location.column}[/]")

    return root


def build_summary_tree(diagnostics: list[Diagnostic]) -> Tree:
    """Build a summary tree grouped by diagnostic kind."""
    by_kind: dict[str, list[Diagnostic]] = defaultdict(list)
    for diag in diagnostics:
        by_kind[diag.kind.value].append(diag)

    root = Tree("[bold]Global Scope Summary[/]", guide_style="dim")

    for kind, items in sorted(by_kind.items()):
        kind_node = root.add(f"[cyan]{kind}[/] ({len(items)} items)")
        files = {item.location.file for item in items}
        kind_node.add(f"Files: {len(files)}")

        examples_node = kind_node.add("[dim]Examples:[/]")
        for item in items[:3]:
            examples_node.add(
                f"[yellow]{escape(item.name)}[/] in {escape(item.location.file.name)}:{item.location.line}"
            )

    return root


def build_syntax_tree(node: Node, label: str) -> Tree:
    """Named nodes of a tree-sitter tree, for debugging."""
    root = Tree(f"[bold]{escape(label)}[/]", guide_style="dim")
    stack: list[tuple[Node, Tree]] = [(node, root)]
    while stack:
        current, parent = stack.pop()
        row, column = current.start_point
        text = Text()
        text.append(current.type, style="red bold" if current.type == "ERROR" else "cyan")
        text.append(f" {row + 1}:{column + 1}", style="dim")
        if not current.named_children and current.text:
            leaf = current.text.decode("utf-8", errors="replace")
            if len(leaf) > MAX_LEAF_TEXT:
                leaf = leaf[: MAX_LEAF_TEXT - 3] + "..."
            text.append(f" {leaf!r}", style="green")
        branch = parent.add(text)
        # reversed so children come off the stack in source order
        for child in reversed(current.named_children):
            stack.append((child, branch))
    return root


def display_tree(tree: Tree) -> None:
    """Display the tree to console."""
    console.print()
    console.print(tree)
    console.print()
