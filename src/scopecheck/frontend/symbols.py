"""Lexical name resolution for C and C++ translation units."""

import itertools
import re
from dataclasses import dataclass, field
from enum import Enum, auto


class EntityKind(Enum):
    """What a declared name refers to."""

    VARIABLE = auto()
    PARAMETER = auto()
    FUNCTION = auto()
    TYPE = auto()
    ENUMERATOR = auto()
    FIELD = auto()


@dataclass
class Entity:
    """A declared entity. All redeclarations share one entity (and id)."""

    id: int
    name: str
    kind: EntityKind
    qualified_name: str
    is_constant: bool = False  # const/constexpr with a constant initializer


@dataclass
class Scope:
    """
    One scope on the lexical stack.

    "file", "namespace" and "class" scopes keep their names in the table's
    qualified index under `prefix`; "local" and "template" scopes keep their
    own dict.
    """

    kind: str
    prefix: str = ""
    names: dict[str, Entity] = field(default_factory=dict)
    # namespaces nominated by `using namespace` in a local scope
    directives: list[str] = field(default_factory=list)

    @property
    def is_qualified(self) -> bool:
        return self.kind in ("file", "namespace", "class")


_SPACE_RE = re.compile(r"\s+")


def normalize_qualified(text: str) -> str:
    """Drop whitespace from a qualified name (`ns :: x` -> `ns::x`)."""
    return _SPACE_RE.sub("", text)


class SymbolTable:
    """
    Scope stack plus a qualified-name index.

    Lookup follows C/C++ block scoping: the innermost declaration of a name
    wins, so a local shadowing a global hides it for the rest of its block.
    A scope also sees the namespaces its `using namespace` directives
    nominate, and a class scope sees the members of its base classes.
    """

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self.scopes: list[Scope] = [Scope(kind="file")]
        self.qualified: dict[str, Entity] = {}
        self.namespaces: set[str] = set()
        # `using namespace` directives of file and namespace scopes, by prefix
        self.directives: dict[str, list[str]] = {}
        # base class prefixes, by class prefix
        self.bases: dict[str, list[str]] = {}

    @property
    def current(self) -> Scope:
        return self.scopes[-1]

    @property
    def prefix(self) -> str:
        """Qualified prefix of the innermost namespace or class."""
        for scope in reversed(self.scopes):
            if scope.is_qualified:
                return scope.prefix
        return ""

    # === Scope management ===

    def push_local(self) -> None:
        self.scopes.append(Scope(kind="local"))

    def push_template(self) -> None:
        self.scopes.append(Scope(kind="template"))

    def push_qualified(self, kind: str, name: str) -> None:
        """Enter a namespace or class body named `name` (relative to the current prefix)."""
        outer = self.prefix
        parts = normalize_qualified(name).split("::")
        if kind == "namespace":
            # `namespace a::b` opens a as well
            for depth in range(1, len(parts) + 1):
                self.namespaces.add(outer + "::".join(parts[:depth]) + "::")
        self.scopes.append(Scope(kind=kind, prefix=f"{outer}{'::'.join(parts)}::"))

    def pop(self) -> None:
        self.scopes.pop()

    def _declaring_scope(self) -> Scope:
        # template scopes only hold template parameters
        return next(s for s in reversed(self.scopes) if s.kind != "template")

    def set_bases(self, bases: list[str]) -> None:
        """Record the base class prefixes of the class scope being entered."""
        if bases:
            self.bases[self.current.prefix] = bases

    def class_prefix(self, text: str) -> str | None:
        """Prefix of the class named by `text` (`Base`, `ns::Base`), if known."""
        entity = self.lookup_qualified(text) if "::" in text else self.lookup(text)
        if entity is None or entity.kind is not EntityKind.TYPE:
            return None
        return entity.qualified_name + "::"

    # === Using declarations and directives ===

    def use_namespace(self, text: str) -> None:
        """`using namespace ns;`: names in ns become visible from the current scope."""
        target = self._resolve_namespace(normalize_qualified(text))
        scope = self._declaring_scope()
        if scope.is_qualified:
            directives = self.directives.setdefault(scope.prefix, [])
        else:
            directives = scope.directives
        if target not in directives:
            directives.append(target)

    def _resolve_namespace(self, name: str) -> str:
        if name.startswith("::"):
            return name[2:] + "::"
        for scope in reversed(self.scopes):
            if scope.is_qualified and scope.prefix + name + "::" in self.namespaces:
                return scope.prefix + name + "::"
        # not seen in this unit (std, a namespace from a header)
        return name + "::"

    def use_declaration(self, text: str) -> Entity | None:
        """
        `using ns::x;`: binds x in the current scope to the entity it names,
        like a block-scope extern binds a global.
        """
        entity = self.lookup_qualified(text)
        if entity is None:
            return None
        name = normalize_qualified(text).rsplit("::", 1)[-1]
        scope = self._declaring_scope()
        if scope.is_qualified:
            self.qualified.setdefault(scope.prefix + name, entity)
        else:
            scope.names[name] = entity
        return entity

    # === Declarations ===

    def _new_entity(self, name: str, kind: EntityKind, qualified_name: str) -> Entity:
        return Entity(id=next(self._ids), name=name, kind=kind, qualified_name=qualified_name)

    def declare(self, name: str, kind: EntityKind) -> Entity:
        """
        Declare `name` in the innermost scope.

        Template scopes only hold template parameters, so other declarations
        go to the scope around them. At file, namespace and class scope a
        redeclaration of an entity of the same kind returns the existing one.
        """
        scope = self._declaring_scope()

        if scope.is_qualified:
            qualified_name = scope.prefix + name
            existing = self.qualified.get(qualified_name)
            if existing is not None and existing.kind == kind:
                return existing
            entity = self._new_entity(name, kind, qualified_name)
            self.qualified[qualified_name] = entity
            return entity

        entity = self._new_entity(name, kind, name)
        scope.names[name] = entity
        return entity

    def declare_tag(self, name: str) -> Entity | None:
        """
        Declare a class name unless the scope already has something by that name.

        A variable or function hides a class of the same name.
        """
        scope = self._declaring_scope()
        if scope.is_qualified:
            existing = self.qualified.get(scope.prefix + name)
        else:
            existing = scope.names.get(name)
        if existing is not None:
            return existing if existing.kind is EntityKind.TYPE else None
        return self.declare(name, EntityKind.TYPE)

    def declare_block_extern(self, name: str) -> Entity:
        """
        A block-scope `extern` declaration: binds `name` in the current block
        to the enclosing file or namespace variable when there is one.
        """
        for scope in reversed(self.scopes):
            if not scope.is_qualified:
                continue
            entity = self.qualified.get(scope.prefix + name)
            if entity is not None and entity.kind is EntityKind.VARIABLE:
                self.current.names[name] = entity
                return entity
        return self.declare(name, EntityKind.VARIABLE)

    def declare_template_parameter(self, name: str, kind: EntityKind) -> Entity:
        entity = self._new_entity(name, kind, name)
        self.current.names[name] = entity
        return entity

    def declare_qualified(self, text: str, kind: EntityKind) -> Entity:
        """
        Declare an out-of-line qualified name such as `Dummy::p2`.

        Resolves to the entity declared inside the class or namespace when
        there is one, so the definition merges with it.
        """
        existing = self.lookup_qualified(text)
        if existing is not None and existing.kind == kind:
            return existing

        qualified_name = normalize_qualified(text).lstrip(":")
        if not normalize_qualified(text).startswith("::"):
            qualified_name = self.prefix + qualified_name
        name = qualified_name.rsplit("::", 1)[-1]
        entity = self._new_entity(name, kind, qualified_name)
        self.qualified[qualified_name] = entity
        return entity

    # === Lookup ===

    def lookup(self, name: str) -> Entity | None:
        """Resolve an unqualified name from the innermost scope outwards."""
        for scope in reversed(self.scopes):
            if scope.kind == "class":
                entity = self._lookup_in_class(scope.prefix, name, set())
            elif scope.is_qualified:
                entity = self.qualified.get(scope.prefix + name)
            else:
                entity = scope.names.get(name)
            if entity is None:
                entity = self._lookup_in_namespaces(self._directives_of(scope), name, set())
            if entity is not None:
                return entity
        return None

    def lookup_qualified(self, text: str) -> Entity | None:
        """Resolve `a::b` against every enclosing namespace or class prefix."""
        name = normalize_qualified(text)
        if name.startswith("::"):
            return self.qualified.get(name[2:])

        seen: set[str] = set()
        for scope in reversed(self.scopes):
            if scope.is_qualified and scope.prefix not in seen:
                seen.add(scope.prefix)
                entity = self.qualified.get(scope.prefix + name)
                if entity is not None:
                    return entity
            entity = self._lookup_in_namespaces(self._directives_of(scope), name, set())
            if entity is not None:
                return entity
        return None

    def _directives_of(self, scope: Scope) -> list[str]:
        if scope.is_qualified:
            return self.directives.get(scope.prefix, [])
        return scope.directives

    def _lookup_in_namespaces(self, prefixes: list[str], name: str, seen: set[str]) -> Entity | None:
        """Search nominated namespaces, following their own directives."""
        for prefix in prefixes:
            if prefix in seen:
                continue
            seen.add(prefix)
            entity = self.qualified.get(prefix + name)
            if entity is None:
                entity = self._lookup_in_namespaces(self.directives.get(prefix, []), name, seen)
            if entity is not None:
                return entity
        return None

    def _lookup_in_class(self, prefix: str, name: str, seen: set[str]) -> Entity | None:
        """Search a class, then its base classes depth-first."""
        entity = self.qualified.get(prefix + name)
        if entity is not None or prefix in seen:
            return entity
        seen.add(prefix)
        for base in self.bases.get(prefix, []):
            entity = self._lookup_in_class(base, name, seen)
            if entity is not None:
                return entity
        return None
