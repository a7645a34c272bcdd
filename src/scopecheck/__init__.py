"""scopecheck - find C and C++ globals that belong in a smaller scope."""

__version__ = "0.1.0"
