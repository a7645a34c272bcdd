"""JSON output writers and loaders for results."""

import json
from pathlib import Path

from scopecheck.models.results import AnalysisResults, Diagnostic


def write_results(results: AnalysisResults, output_path: Path) -> None:
    """Write the results.json file."""
    data = results.to_dict()

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def load_results(results_path: Path) -> dict:
    """Load a results.json file."""
    with open(results_path, "r", encoding="utf-8") as f:
        return json.load(f)


def diagnostics_from_results(data: dict) -> list[Diagnostic]:
    """Rebuild the diagnostics of a loaded results file."""
    return [
        Diagnostic.from_dict(item)
        for report in data.get("files", [])
        for item in report.get("diagnostics", [])
    ]
