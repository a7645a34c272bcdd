"""Block stack tracking during a depth-first walk."""

from scopecheck.models.declaration import Block


class BlockStack:
    """
    The current lexical nesting path.

    Depth zero is global (translation-unit) scope. Knows nothing about
    declarations or usages.
    """

    def __init__(self) -> None:
        self._stack: list[Block] = []

    @property
    def current(self) -> Block | None:
        return self._stack[-1] if self._stack else None

    @property
    def depth(self) -> int:
        return len(self._stack)

    def enter(self, block: Block) -> None:
        self._stack.append(block)

    def exit(self) -> tuple[Block, Block | None]:
        """Pop the current block. Returns it together with its parent."""
        block = self._stack.pop()
        return block, self.current
