"""Mapping of physical rows to original files through preprocessor linemarkers."""

import re
from bisect import bisect_right
from dataclasses import dataclass, field
from pathlib import Path

from scopecheck.models.declaration import Location

# `# 12 "file.h" 1 3` (cpp output) and `#line 12 "file.h"`
LINEMARKER_RE = re.compile(r'^\s*#\s*(?:line\s+)?(\d+)\s+"((?:[^"\\]|\\.)*)"')


@dataclass
class SourceMap:
    """
    Translates tree-sitter (row, column) points into locations.

    Without linemarkers every row maps to the analyzed file itself.
    """

    path: Path
    # (physical row of the first line the marker applies to, file, its line number)
    markers: list[tuple[int, Path, int]] = field(default_factory=list)
    _rows: list[int] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._rows = [m[0] for m in self.markers]

    @classmethod
    def from_source(cls, path: Path, text: str) -> "SourceMap":
        markers: list[tuple[int, Path, int]] = []
        for row, line in enumerate(text.splitlines()):
            match = LINEMARKER_RE.match(line)
            if match:
                filename = match.group(2).replace("\\\\", "\\")
                markers.append((row + 1, Path(filename), int(match.group(1))))
        return cls(path=path, markers=markers)

    @property
    def primary_file(self) -> Path:
        """The file the translation unit was produced from."""
        if self.markers:
            return self.markers[0][1]
        return self.path

    def locate(self, row: int, column: int, end: tuple[int, int] | None = None) -> Location:
        """Location of a 0-based tree-sitter point."""
        file, line = self._map_row(row)
        end_line = end_column = None
        if end is not None:
            end_file, end_line = self._map_row(end[0])
            if end_file != file:
                end_line = None
            else:
                end_column = end[1] + 1
        return Location(file=file, line=line, column=column + 1, end_line=end_line, end_column=end_column)

    def _map_row(self, row: int) -> tuple[Path, int]:
        if not self.markers:
            return self.path, row + 1
        index = bisect_right(self._rows, row) - 1
        if index < 0:
            return self.path, row + 1
        start_row, file, first_line = self.markers[index]
        return file, first_line + (row - start_row)
