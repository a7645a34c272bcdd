"""
Scope merge engine.

Usages are attributed to whatever block directly contains them when they are
discovered. When a block is exited, every usage attributed to it (leaves, and
composites bubbled up from nested blocks) collapses into one composite usage
that is attributed to the parent block. After the outermost block of every
function has been exited, each usage list holds the single node rooted at the
block that contains all references, or several global-scope entries.
"""

import logging

from scopecheck.analysis.registry import UsageRegistry
from scopecheck.models.declaration import Block
from scopecheck.models.usage import Composite, Usage

logger = logging.getLogger(__name__)


def _run_bounds(usages: list[Usage], block: Block) -> tuple[int, int] | None:
    """Start and end of the contiguous run attributed to `block`."""
    start = next((i for i, u in enumerate(usages) if u.attribution == block), None)
    if start is None:
        return None
    end = start
    while end < len(usages) and usages[end].attribution == block:
        end += 1
    return start, end


def merge_block(usages: list[Usage], block: Block, parent: Block | None) -> bool:
    """
    Collapse the run of usages attributed to `block` into one composite.

    The composite is attributed to `parent`. Returns False (and leaves the list
    untouched) when nothing is attributed to `block`.
    """
    bounds = _run_bounds(usages, block)
    if bounds is None:
        return False

    start, end = bounds
    merged = Composite(block=block, attribution=parent, children=tuple(usages[start:end]))
    usages[start:end] = [merged]
    return True


def merge_all(registry: UsageRegistry, block: Block, parent: Block | None) -> int:
    """Merge `block` in every usage list. Returns how many lists changed."""
    changed = 0
    for usages in registry.usage_lists():
        if usages and merge_block(usages, block, parent):
            changed += 1
    if changed:
        logger.debug(
            "merged block at %s into %s for %d declaration(s)",
            block.location,
            parent.location if parent else "global scope",
            changed,
        )
    return changed
