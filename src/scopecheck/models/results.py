"""Data models for analysis results."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from scopecheck.models.declaration import Location


class Classification(Enum):
    """Final verdict for one tracked declaration."""

    EXEMPT = "exempt"
    UNUSED = "unused"
    REDUNDANT_SCOPE = "redundant-scope"
    MULTIPLY_SCOPED = "multiply-scoped"
    GLOBAL_USE = "global-use"


class DiagnosticKind(Enum):
    """Kinds of primary diagnostics."""

    UNUSED = "unused"
    REDUNDANT_SCOPE = "redundant-scope"

    @property
    def code(self) -> str:
        """Code shown next to the message and accepted by suppression comments."""
        return "unused-global" if self is DiagnosticKind.UNUSED else "redundant-scope"


class NoteKind(Enum):
    """Kinds of supporting notes."""

    USED_IN_BLOCK = "used-in-block"
    USED_AT_SITE = "used-at-site"


@dataclass
class Note:
    """A supporting note attached to a diagnostic."""

    kind: NoteKind
    location: Location
    message: str

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "location": self.location.to_dict(),
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Note":
        return cls(
            kind=NoteKind(data["kind"]),
            location=Location.from_dict(data.get("location", {})),
            message=data.get("message", ""),
        )


@dataclass
class Diagnostic:
    """A warning about one global variable."""

    kind: DiagnosticKind
    name: str
    location: Location
    message: str
    notes: list[Note] = field(default_factory=list)
    scope: Location | None = None  # innermost block holding every reference

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "code": self.kind.code,
            "name": self.name,
            "location": self.location.to_dict(),
            "message": self.message,
            "scope": self.scope.to_dict() if self.scope else None,
            "notes": [note.to_dict() for note in self.notes],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Diagnostic":
        scope = data.get("scope")
        return cls(
            kind=DiagnosticKind(data["kind"]),
            name=data.get("name", ""),
            location=Location.from_dict(data.get("location", {})),
            message=data.get("message", ""),
            notes=[Note.from_dict(n) for n in data.get("notes", [])],
            scope=Location.from_dict(scope) if scope else None,
        )


@dataclass
class FileReport:
    """Result of analyzing a single translation unit."""

    file: Path
    language: str = "c"
    diagnostics: list[Diagnostic] = field(default_factory=list)
    classifications: dict[str, Classification] = field(default_factory=dict)
    declarations_tracked: int = 0
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "file": str(self.file),
            "language": self.language,
            "declarations_tracked": self.declarations_tracked,
            "classifications": {
                name: verdict.value for name, verdict in self.classifications.items()
            },
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "error": self.error,
        }


@dataclass
class AnalysisMetadata:
    """Metadata about the analysis run."""

    project: str
    analyzed_at: datetime
    scopecheck_version: str
    files_analyzed: int
    declarations_tracked: int
    analysis_duration_ms: int

    def to_dict(self) -> dict:
        return {
            "project": self.project,
            "analyzed_at": self.analyzed_at.isoformat(),
            "scopecheck_version": self.scopecheck_version,
            "files_analyzed": self.files_analyzed,
            "declarations_tracked": self.declarations_tracked,
            "analysis_duration_ms": self.analysis_duration_ms,
        }


@dataclass
class AnalysisSummary:
    """Summary of analysis results."""

    diagnostics: int
    by_kind: dict[str, int] = field(default_factory=dict)
    files_with_errors: int = 0

    def to_dict(self) -> dict:
        return {
            "diagnostics": self.diagnostics,
            "by_kind": self.by_kind,
            "files_with_errors": self.files_with_errors,
        }

    @classmethod
    def from_reports(cls, reports: list[FileReport]) -> "AnalysisSummary":
        by_kind: dict[str, int] = {}
        total = 0
        for report in reports:
            for diag in report.diagnostics:
                by_kind[diag.kind.value] = by_kind.get(diag.kind.value, 0) + 1
                total += 1
        return cls(
            diagnostics=total,
            by_kind=by_kind,
            files_with_errors=sum(1 for r in reports if r.error),
        )


@dataclass
class AnalysisResults:
    """Complete analysis results."""

    version: str = "1.0"
    metadata: AnalysisMetadata | None = None
    summary: AnalysisSummary | None = None
    files: list[FileReport] = field(default_factory=list)

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return [d for report in self.files for d in report.diagnostics]

    def to_dict(self) -> dict:
        result: dict = {"version": self.version}

        if self.metadata:
            result["metadata"] = self.metadata.to_dict()

        if self.summary:
            result["summary"] = self.summary.to_dict()

        result["files"] = [report.to_dict() for report in self.files]

        return result
