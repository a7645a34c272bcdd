"""Usage registry: tracked declarations and their recorded usages."""

import logging
from collections.abc import Iterator

from scopecheck.models.declaration import Block, Location, TrackedDeclaration, VariableDeclaration
from scopecheck.models.usage import Leaf, Usage

logger = logging.getLogger(__name__)


class UsageRegistry:
    """
    Maps each canonical declaration id to its usage list.

    Insertion order is kept so reports come out in declaration order.
    """

    def __init__(self) -> None:
        self._declarations: dict[int, TrackedDeclaration] = {}
        self._usages: dict[int, list[Usage]] = {}

    def __contains__(self, decl_id: int) -> bool:
        return decl_id in self._declarations

    def __len__(self) -> int:
        return len(self._declarations)

    def register(self, decl: VariableDeclaration) -> TrackedDeclaration:
        """Create an empty usage list for `decl`. No-op if already registered."""
        if decl.decl_id in self._declarations:
            return self._declarations[decl.decl_id]

        tracked = TrackedDeclaration.from_declaration(decl)
        self._declarations[decl.decl_id] = tracked
        self._usages[decl.decl_id] = []
        logger.debug("registered global %s at %s", decl.name, decl.location)
        return tracked

    def get(self, decl_id: int) -> TrackedDeclaration | None:
        return self._declarations.get(decl_id)

    def record_use(self, decl_id: int, block: Block | None, site: Location) -> bool:
        """Append a leaf usage if `decl_id` is tracked. Returns whether it was."""
        usages = self._usages.get(decl_id)
        if usages is None:
            return False
        usages.append(Leaf(site=site, attribution=block))
        return True

    def usages(self, decl_id: int) -> list[Usage]:
        return self._usages[decl_id]

    def usage_lists(self) -> Iterator[list[Usage]]:
        return iter(self._usages.values())

    def items(self) -> Iterator[tuple[TrackedDeclaration, list[Usage]]]:
        for decl_id, tracked in self._declarations.items():
            yield tracked, self._usages[decl_id]
