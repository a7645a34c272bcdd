"""Data models for declarations, blocks and source locations."""

from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path


class InitializerKind(Enum):
    """Shape of a variable's initializer."""

    NONE = auto()
    CONSTANT = auto()
    DYNAMIC = auto()  # non-constant, possibly side-effecting


@dataclass(frozen=True)
class Location:
    """Source code location (1-based line and column)."""

    file: Path
    line: int
    column: int
    end_line: int | None = None
    end_column: int | None = None

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"

    def to_dict(self) -> dict:
        return {
            "file": str(self.file),
            "line": self.line,
            "column": self.column,
            "end_line": self.end_line,
            "end_column": self.end_column,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Location":
        return cls(
            file=Path(data.get("file", "")),
            line=data.get("line", 0),
            column=data.get("column", 0),
            end_line=data.get("end_line"),
            end_column=data.get("end_column"),
        )


@dataclass(frozen=True)
class Block:
    """
    One lexical block (a compound statement).

    The id is assigned by the traversal driver and only ever compared for
    equality. Parents are not stored here; the block stack knows them.
    """

    id: int
    location: Location


@dataclass(frozen=True)
class VariableDeclaration:
    """A variable declaration as reported by the traversal driver."""

    decl_id: int  # canonical handle, shared by all redeclarations
    name: str
    location: Location
    is_extern: bool = False
    initializer: InitializerKind = InitializerKind.NONE
    is_parameter: bool = False
    exempt: bool = False  # ignore annotation or suppression comment


@dataclass
class TrackedDeclaration:
    """A global variable registered for analysis."""

    decl_id: int
    name: str
    location: Location
    is_extern: bool = False
    initializer: InitializerKind = InitializerKind.NONE
    exempt: bool = False

    @classmethod
    def from_declaration(cls, decl: VariableDeclaration) -> "TrackedDeclaration":
        return cls(
            decl_id=decl.decl_id,
            name=decl.name,
            location=decl.location,
            is_extern=decl.is_extern,
            initializer=decl.initializer,
            exempt=decl.exempt,
        )

    def merge_redeclaration(self, decl: VariableDeclaration) -> None:
        """Fold a later redeclaration in. Only the exemption flag can change."""
        if decl.exempt:
            self.exempt = True
