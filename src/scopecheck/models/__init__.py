"""Data models for scopecheck."""

from scopecheck.models.declaration import (
    Block,
    InitializerKind,
    Location,
    TrackedDeclaration,
    VariableDeclaration,
)
from scopecheck.models.results import (
    AnalysisMetadata,
    AnalysisResults,
    AnalysisSummary,
    Classification,
    Diagnostic,
    DiagnosticKind,
    FileReport,
    Note,
    NoteKind,
)
from scopecheck.models.usage import Composite, Leaf, Usage

__all__ = [
    # Declaration models
    "Block",
    "InitializerKind",
    "Location",
    "TrackedDeclaration",
    "VariableDeclaration",
    # Usage models
    "Composite",
    "Leaf",
    "Usage",
    # Results models
    "AnalysisMetadata",
    "AnalysisResults",
    "AnalysisSummary",
    "Classification",
    "Diagnostic",
    "DiagnosticKind",
    "FileReport",
    "Note",
    "NoteKind",
]
