"""Facts about declarations read off the syntax tree."""

import re
from collections.abc import Callable
from dataclasses import dataclass, field

from tree_sitter import Node

from scopecheck.frontend.symbols import Entity, EntityKind
from scopecheck.models.declaration import InitializerKind

ATTRIBUTE_NODE_TYPES = frozenset({"attribute_specifier", "attribute_declaration", "ms_declspec_modifier"})

# Subtrees that never carry attributes of the declaration itself
_ATTRIBUTE_STOP_TYPES = frozenset(
    {
        "compound_statement",
        "field_declaration_list",
        "enumerator_list",
        "declaration_list",
        "initializer_list",
        "argument_list",
        "call_expression",
        "lambda_expression",
        "parameter_list",
    }
)

# Wrappers between a declarator and the name it declares
_WRAPPER_TYPES = frozenset(
    {
        "init_declarator",
        "pointer_declarator",
        "array_declarator",
        "parenthesized_declarator",
        "attributed_declarator",
        "reference_declarator",
        "function_declarator",
    }
)
_INDIRECTION_TYPES = frozenset({"pointer_declarator", "array_declarator", "reference_declarator"})
NAME_TYPES = frozenset(
    {
        "identifier",
        "field_identifier",
        "qualified_identifier",
        "type_identifier",
        "structured_binding_declarator",
        "operator_name",
        "destructor_name",
    }
)

_CONSTANT_LEAVES = frozenset(
    {
        "number_literal",
        "char_literal",
        "string_literal",
        "raw_string_literal",
        "concatenated_string",
        "true",
        "false",
        "null",
        "nullptr",
    }
)
# Declared types whose objects are initialized without a constructor
_SCALAR_TYPE_NODES = frozenset(
    {"primitive_type", "sized_type_specifier", "enum_specifier", "placeholder_type_specifier"}
)
_DYNAMIC_TYPES = frozenset(
    {
        "call_expression",
        "assignment_expression",
        "update_expression",
        "new_expression",
        "delete_expression",
        "co_await_expression",
        "throw_expression",
        "gnu_asm_expression",
        "compound_statement",
    }
)
# Operands are not evaluated
_UNEVALUATED_TYPES = frozenset({"sizeof_expression", "alignof_expression", "offsetof_expression"})

_WORD_RE = re.compile(r"[A-Za-z_]\w*")


@dataclass
class DeclaratorInfo:
    """The interesting parts of one declarator."""

    name: Node | None
    is_function: bool = False
    has_indirection: bool = False  # pointer, array or reference somewhere
    value: Node | None = None
    array_sizes: list[Node] = field(default_factory=list)
    function_declarator: Node | None = None


def _inner_declarator(node: Node) -> Node | None:
    inner = node.child_by_field_name("declarator")
    if inner is not None:
        return inner
    # parenthesized_declarator and reference_declarator have no field name
    for child in node.named_children:
        if child.type in _WRAPPER_TYPES or child.type in NAME_TYPES:
            return child
    return None


def unwrap_declarator(declarator: Node) -> DeclaratorInfo:
    """
    Walk down a declarator to the declared name.

    A declarator declares a function when its innermost function declarator
    is followed only by parentheses or attributes on the way to the name:
    `int f(void)` and `int *f(void)` are functions, `int (*fp)(void)` is a
    variable.
    """
    info = DeclaratorInfo(name=None)
    indirection_since_function = False
    saw_function = False
    node: Node | None = declarator

    while node is not None and node.type in _WRAPPER_TYPES:
        if node.type == "init_declarator" and info.value is None:
            info.value = node.child_by_field_name("value")
        elif node.type == "array_declarator":
            size = node.child_by_field_name("size")
            if size is not None:
                info.array_sizes.append(size)
        elif node.type == "function_declarator":
            saw_function = True
            indirection_since_function = False
            info.function_declarator = node

        if node.type in _INDIRECTION_TYPES:
            info.has_indirection = True
            indirection_since_function = True

        node = _inner_declarator(node)

    if node is not None and node.type in NAME_TYPES:
        info.name = node
    info.is_function = saw_function and not indirection_since_function
    return info


def find_attribute_nodes(node: Node) -> list[Node]:
    """Attribute specifiers attached to a declaration (not to nested code)."""
    found: list[Node] = []
    stack = [node]
    while stack:
        current = stack.pop()
        if current.type in ATTRIBUTE_NODE_TYPES:
            found.append(current)
            continue
        if current is not node and current.type in _ATTRIBUTE_STOP_TYPES:
            continue
        stack.extend(current.named_children)
    return found


def has_ignore_attribute(node: Node, names: list[str]) -> bool:
    """
    True if any attribute on the declaration mentions one of `names`.

    Covers `__attribute__((used))`, `__attribute__((annotate("rcs_ignore")))`,
    `[[rcs_ignore]]`, `[[gnu::used]]` and `__declspec(...)` spellings.
    """
    wanted = set(names)
    for attribute in find_attribute_nodes(node):
        text = attribute.text.decode("utf-8", errors="replace") if attribute.text else ""
        if wanted.intersection(_WORD_RE.findall(text)):
            return True
    return False


def storage_classes(node: Node) -> set[str]:
    """Storage class keywords on a declaration (`extern`, `static`, ...)."""
    return {
        child.text.decode("utf-8")
        for child in node.named_children
        if child.type == "storage_class_specifier" and child.text
    }


def is_const_qualified(node: Node) -> bool:
    """`const` or `constexpr` at declaration level."""
    for child in node.named_children:
        if child.type == "type_qualifier" and child.text in (b"const", b"constexpr"):
            return True
    return False


def constructs_object(declaration: Node) -> bool:
    """
    Whether `T x(args);` or `T x{args};` may run a constructor: the declared
    type is not a builtin, enum or `auto` type.
    """
    type_node = declaration.child_by_field_name("type")
    return type_node is not None and type_node.type not in _SCALAR_TYPE_NODES


def classify_initializer(
    value: Node | None,
    resolve: Callable[[Node], Entity | None],
    constructs: bool = False,
) -> InitializerKind:
    """
    Decide whether an initializer can be evaluated at compile time.

    Literals, operators, casts, sizeof, enumerators, function designators,
    constant variables and the address of any object are constant. Calls,
    assignments, increments, allocations and reads of ordinary variables are
    dynamic. With `constructs`, a parenthesized or braced initializer is a
    constructor call and therefore dynamic.
    """
    if value is None:
        return InitializerKind.NONE
    if constructs and value.type in ("argument_list", "initializer_list"):
        return InitializerKind.DYNAMIC
    return InitializerKind.DYNAMIC if _is_dynamic(value, resolve) else InitializerKind.CONSTANT


def _is_dynamic(node: Node, resolve: Callable[[Node], Entity | None]) -> bool:
    match node.type:
        case t if t in _CONSTANT_LEAVES or t in _UNEVALUATED_TYPES:
            return False
        case t if t in _DYNAMIC_TYPES:
            return True
        case "lambda_expression":
            captures = node.child_by_field_name("captures")
            return captures is not None and len(captures.named_children) > 0
        case "pointer_expression":
            operator = node.child_by_field_name("operator")
            if operator is not None and operator.type == "&":
                # address constant: &x, &a[0], &s.f
                return False
        case "identifier" | "qualified_identifier":
            entity = resolve(node)
            if entity is None:
                return False  # unknown (macro, enumerator from a header, ...)
            if entity.kind is EntityKind.VARIABLE:
                return not entity.is_constant
            return entity.kind is EntityKind.PARAMETER
        case "field_identifier" | "type_identifier" | "primitive_type" | "type_descriptor":
            return False

    return any(_is_dynamic(child, resolve) for child in node.named_children)
