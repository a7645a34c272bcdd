"""Usage tree nodes recorded for tracked declarations."""

from dataclasses import dataclass

from scopecheck.models.declaration import Block, Location


@dataclass(frozen=True)
class Leaf:
    """A single concrete reference."""

    site: Location
    attribution: Block | None  # None = global scope


@dataclass(frozen=True)
class Composite:
    """Used somewhere inside `block`. Produced by merging on block exit."""

    block: Block
    attribution: Block | None
    children: tuple["Usage", ...]

    @property
    def site(self) -> Location:
        return self.block.location


Usage = Leaf | Composite


def count_references(usage: Usage) -> int:
    """Number of concrete references below a usage node."""
    match usage:
        case Leaf():
            return 1
        case Composite(children=children):
            return sum(count_references(child) for child in children)
    return 0


def innermost_block(usage: Composite) -> Block:
    """
    Innermost block that contains every reference under `usage`.

    Descends while the node has exactly one child and that child is itself
    a composite.
    """
    node = usage
    while len(node.children) == 1 and isinstance(node.children[0], Composite):
        node = node.children[0]
    return node.block
