"""Tests for the block stack, usage registry and scope merge engine."""

from pathlib import Path

import pytest

from scopecheck.analysis.blocks import BlockStack
from scopecheck.analysis.merge import merge_all, merge_block
from scopecheck.analysis.registry import UsageRegistry
from scopecheck.models.declaration import Block, Location, VariableDeclaration
from scopecheck.models.usage import Composite, Leaf, count_references, innermost_block


def loc(line: int, column: int = 1, file: str = "main.c") -> Location:
    return Location(file=Path(file), line=line, column=column)


FN = Block(id=1, location=loc(10))
INNER = Block(id=2, location=loc(12))
SIBLING = Block(id=3, location=loc(20))


class TestBlockStack:
    """Tests for BlockStack."""

    def test_starts_at_global_scope(self):
        """A fresh stack has depth zero and no current block."""
        stack = BlockStack()
        assert stack.depth == 0
        assert stack.current is None

    def test_exit_returns_block_and_parent(self):
        """Exiting pops the innermost block and reports its parent."""
        stack = BlockStack()
        stack.enter(FN)
        stack.enter(INNER)

        assert stack.depth == 2
        assert stack.exit() == (INNER, FN)
        assert stack.exit() == (FN, None)
        assert stack.depth == 0

    def test_exit_on_empty_stack_raises(self):
        """Unbalanced exits are a driver bug."""
        with pytest.raises(IndexError):
            BlockStack().exit()


class TestUsageRegistry:
    """Tests for UsageRegistry."""

    def test_register_creates_empty_list(self):
        """Registered declarations start without usages."""
        registry = UsageRegistry()
        tracked = registry.register(VariableDeclaration(decl_id=7, name="g", location=loc(1)))

        assert 7 in registry
        assert len(registry) == 1
        assert tracked.name == "g"
        assert registry.usages(7) == []

    def test_register_twice_is_noop(self):
        """The first registration wins; usages are kept."""
        registry = UsageRegistry()
        first = registry.register(VariableDeclaration(decl_id=7, name="g", location=loc(1)))
        registry.record_use(7, None, loc(2))

        second = registry.register(VariableDeclaration(decl_id=7, name="g", location=loc(5)))

        assert second is first
        assert second.location.line == 1
        assert len(registry.usages(7)) == 1

    def test_record_use_of_untracked_is_ignored(self):
        """References to locals never reach a usage list."""
        registry = UsageRegistry()
        assert registry.record_use(99, FN, loc(3)) is False
        assert 99 not in registry

    def test_record_use_appends_leaf(self):
        """A use is a leaf attributed to the current block."""
        registry = UsageRegistry()
        registry.register(VariableDeclaration(decl_id=1, name="g", location=loc(1)))

        assert registry.record_use(1, INNER, loc(13, 5)) is True
        assert registry.usages(1) == [Leaf(site=loc(13, 5), attribution=INNER)]

    def test_items_in_declaration_order(self):
        """Reports come out in declaration order."""
        registry = UsageRegistry()
        for decl_id, name in [(3, "c"), (1, "a"), (2, "b")]:
            registry.register(VariableDeclaration(decl_id=decl_id, name=name, location=loc(decl_id)))

        assert [decl.name for decl, _ in registry.items()] == ["c", "a", "b"]


class TestMergeBlock:
    """Tests for merge_block."""

    def test_collapses_run_into_composite(self):
        """Entries attributed to the block become one composite owned by the parent."""
        leaves = [Leaf(loc(13), INNER), Leaf(loc(14), INNER)]
        usages = list(leaves)

        assert merge_block(usages, INNER, FN) is True
        assert usages == [Composite(block=INNER, attribution=FN, children=tuple(leaves))]

    def test_no_entries_leaves_list_unchanged(self):
        """Blocks without usages do not touch the list."""
        usages = [Leaf(loc(3), None)]
        assert merge_block(usages, INNER, FN) is False
        assert usages == [Leaf(loc(3), None)]

    def test_merging_twice_is_idempotent(self):
        """After a merge nothing is attributed to the block any more."""
        usages = [Leaf(loc(13), INNER)]
        merge_block(usages, INNER, FN)
        snapshot = list(usages)

        assert merge_block(usages, INNER, FN) is False
        assert usages == snapshot

    def test_preserves_earlier_entries(self):
        """Entries attributed to other scopes stay in front of the composite."""
        global_use = Leaf(loc(2), None)
        usages = [global_use, Leaf(loc(13), INNER)]

        merge_block(usages, INNER, FN)

        assert usages[0] == global_use
        assert isinstance(usages[1], Composite)
        assert usages[1].attribution == FN

    def test_nested_blocks_bubble_up(self):
        """Leaf in an inner block, then a leaf in the function body."""
        usages = [Leaf(loc(13), INNER)]
        merge_block(usages, INNER, FN)
        usages.append(Leaf(loc(15), FN))
        merge_block(usages, FN, None)

        assert len(usages) == 1
        root = usages[0]
        assert isinstance(root, Composite)
        assert root.block == FN
        assert root.attribution is None
        assert [type(child) for child in root.children] == [Composite, Leaf]
        assert count_references(root) == 2

    def test_sibling_blocks_merge_under_parent(self):
        """Two sibling blocks end up as two children of the parent composite."""
        usages = [Leaf(loc(13), INNER)]
        merge_block(usages, INNER, FN)
        usages.append(Leaf(loc(21), SIBLING))
        merge_block(usages, SIBLING, FN)
        merge_block(usages, FN, None)

        root = usages[0]
        assert len(usages) == 1
        assert [child.block for child in root.children] == [INNER, SIBLING]
        # neither sibling contains every reference
        assert innermost_block(root) == FN


class TestMergeAll:
    """Tests for merge_all across a registry."""

    def test_counts_changed_lists(self):
        """Only lists with entries in the block change."""
        registry = UsageRegistry()
        for decl_id in (1, 2, 3):
            registry.register(VariableDeclaration(decl_id=decl_id, name=f"g{decl_id}", location=loc(decl_id)))
        registry.record_use(1, INNER, loc(13))
        registry.record_use(2, FN, loc(11))

        assert merge_all(registry, INNER, FN) == 1
        assert isinstance(registry.usages(1)[0], Composite)
        assert registry.usages(2) == [Leaf(loc(11), FN)]
        assert registry.usages(3) == []


class TestInnermostBlock:
    """Tests for innermost_block."""

    def test_descends_through_single_composites(self):
        """The reported scope is the deepest block holding every reference."""
        deep = Composite(block=INNER, attribution=FN, children=(Leaf(loc(13), INNER),))
        root = Composite(block=FN, attribution=None, children=(deep,))
        assert innermost_block(root) == INNER

    def test_stops_at_leaf_child(self):
        """A direct reference in the block keeps the scope at that block."""
        root = Composite(block=FN, attribution=None, children=(Leaf(loc(11), FN),))
        assert innermost_block(root) == FN
