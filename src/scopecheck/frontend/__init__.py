"""C and C++ front end: parsing, name resolution and the syntax tree walker."""

from scopecheck.frontend.parser import detect_language, parse_source
from scopecheck.frontend.source_map import SourceMap
from scopecheck.frontend.symbols import SymbolTable
from scopecheck.frontend.walker import (
    TranslationUnitWalker,
    analyze_file,
    analyze_source,
    parse_file,
)

__all__ = [
    "SourceMap",
    "SymbolTable",
    "TranslationUnitWalker",
    "analyze_file",
    "analyze_source",
    "detect_language",
    "parse_file",
    "parse_source",
]
