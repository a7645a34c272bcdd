"""tree-sitter parsers for C and C++."""

from functools import lru_cache
from pathlib import Path

import tree_sitter_c as tsc
import tree_sitter_cpp as tscpp
from tree_sitter import Language, Parser, Tree

from scopecheck.config import ConfigError

C_SUFFIXES = {".c", ".h", ".i"}
CPP_SUFFIXES = {".cc", ".cpp", ".cxx", ".c++", ".C", ".hh", ".hpp", ".hxx", ".h++", ".ii", ".ipp"}


@lru_cache(maxsize=None)
def get_language(name: str) -> Language:
    if name == "c":
        return Language(tsc.language())
    if name == "cpp":
        return Language(tscpp.language())
    raise ConfigError(f"unsupported language: {name!r}")


def detect_language(path: Path, requested: str = "auto") -> str:
    """Pick "c" or "cpp" for a file; `requested` wins unless it is "auto"."""
    if requested != "auto":
        return requested
    if path.suffix in CPP_SUFFIXES:
        return "cpp"
    return "c"


def parse_source(source: bytes, language: str) -> Tree:
    parser = Parser(get_language(language))
    return parser.parse(source)
