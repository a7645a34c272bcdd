"""Suppression comment matching (NOLINT and friends)."""

import re
from dataclasses import dataclass, field

CHECK_CODES = frozenset({"redundant-scope", "unused-global"})

_CODES_RE = re.compile(r"(?:\(([^)]*)\)|\[([^\]]*)\])")


@dataclass
class NoqaMatch:
    """Result of suppression pattern matching."""

    matched: bool
    pattern: str
    codes: list[str] = field(default_factory=list)

    @property
    def suppresses_check(self) -> bool:
        """True when the comment applies to this check (no codes, or one of ours)."""
        if not self.matched:
            return False
        return not self.codes or any(code in CHECK_CODES for code in self.codes)


def is_noqa_suppressed(
    comment: str | None,
    patterns: list[str] | None = None,
) -> NoqaMatch:
    """
    Check if a comment contains a suppression marker.

    Args:
        comment: The comment text (e.g., "// NOLINT(redundant-scope)")
        patterns: Markers to look for (default: ["NOLINT", "scopecheck: ignore"])

    Returns:
        NoqaMatch with matched=True if a marker was found, plus the codes
        listed right after it in parentheses or brackets
    """
    if not comment:
        return NoqaMatch(matched=False, pattern="", codes=[])

    if patterns is None:
        patterns = ["NOLINT", "scopecheck: ignore"]

    for pattern in patterns:
        # NOLINT must not match the start of NOLINTNEXTLINE
        marker = re.search(re.escape(pattern) + r"(?!\w)", comment, re.IGNORECASE)
        if marker is None:
            continue

        codes: list[str] = []
        rest = comment[marker.end():]
        code_match = _CODES_RE.match(rest)
        if code_match:
            listed = code_match.group(1) if code_match.group(1) is not None else code_match.group(2)
            codes = [c.strip() for c in listed.split(",") if c.strip()]

        return NoqaMatch(matched=True, pattern=pattern, codes=codes)

    return NoqaMatch(matched=False, pattern="", codes=[])
