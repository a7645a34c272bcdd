"""Syntax tree walker that drives the scope checker."""

import itertools
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from tree_sitter import Node, Tree

from scopecheck.analysis.checker import ScopeChecker
from scopecheck.analysis.filter import SourcePolicy
from scopecheck.analysis.noqa import is_noqa_suppressed
from scopecheck.config import CheckerConfig
from scopecheck.frontend.declarations import (
    classify_initializer,
    constructs_object,
    has_ignore_attribute,
    is_const_qualified,
    storage_classes,
    unwrap_declarator,
)
from scopecheck.frontend.parser import detect_language, parse_source
from scopecheck.frontend.source_map import SourceMap
from scopecheck.frontend.symbols import Entity, EntityKind, SymbolTable, normalize_qualified
from scopecheck.models.declaration import Block, InitializerKind, Location, VariableDeclaration
from scopecheck.models.results import FileReport

logger = logging.getLogger(__name__)

# Never contain references to variables
SKIPPED_NODE_TYPES = frozenset(
    {
        "comment",
        "preproc_include",
        "preproc_call",
        "attribute_specifier",
        "attribute_declaration",
        "ms_declspec_modifier",
        "namespace_alias_definition",
        "string_literal",
        "raw_string_literal",
        "char_literal",
        "number_literal",
        "primitive_type",
        "type_identifier",
        "field_identifier",
        "statement_identifier",
        "namespace_identifier",
        "destructor_name",
        "operator_name",
        "access_specifier",
        "this",
    }
)

# names in a macro body: identifiers and qualified names not preceded by `.`, `->` or a digit
_MACRO_NAME_RE = re.compile(r"(?<![\w.])(?<!->)(?:::)?[A-Za-z_]\w*(?:\s*::\s*[A-Za-z_]\w*)*")
_MACRO_LITERAL_RE = re.compile(r"\"(?:\\.|[^\"\\])*\"|'(?:\\.|[^'\\])*'")

CLASS_TYPES = frozenset({"class_specifier", "struct_specifier", "union_specifier"})
PARAMETER_TYPES = frozenset(
    {"parameter_declaration", "optional_parameter_declaration", "variadic_parameter_declaration"}
)


@dataclass
class ParsedUnit:
    """A parsed translation unit."""

    path: Path
    source: bytes
    tree: Tree
    language: str
    source_map: SourceMap


def extract_line_comments(root: Node) -> dict[int, str]:
    """Comment text by (0-based) row of the comment's first line."""
    comments: dict[int, str] = {}
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "comment":
            row = node.start_point[0]
            text = node.text.decode("utf-8", errors="replace") if node.text else ""
            comments[row] = f"{comments[row]} {text}" if row in comments else text
            continue
        stack.extend(node.children)
    return comments


class TranslationUnitWalker:
    """
    Depth-first walk over a tree-sitter syntax tree.

    Resolves names with a lexical symbol table and reports blocks,
    declarations and variable references to a ScopeChecker. Dispatch follows
    ast.NodeVisitor: `visit_<node type>` if defined, else generic_visit.
    """

    def __init__(
        self,
        checker: ScopeChecker,
        source_map: SourceMap,
        config: CheckerConfig,
        language: str = "c",
    ) -> None:
        self.checker = checker
        self.source_map = source_map
        self.config = config
        self.language = language
        self.symbols = SymbolTable()
        self.line_comments: dict[int, str] = {}
        self._block_ids = itertools.count(1)
        # inside `extern "C" <single declaration>`
        self._extern_linkage = False
        # macro body names declared after the macro, retried once the unit is walked
        self._pending_macro_names: list[tuple[str, Node]] = []

    @property
    def is_cpp(self) -> bool:
        return self.language == "cpp"

    def walk(self, root: Node) -> None:
        self.line_comments = extract_line_comments(root)
        self.visit(root)
        for name, value in self._pending_macro_names:
            self._record_macro_reference(self._lookup_name(name), value)
        self._pending_macro_names = []

    def visit(self, node: Node) -> None:
        if node.type in SKIPPED_NODE_TYPES:
            return
        method = getattr(self, f"visit_{node.type}", None)
        if method is not None:
            method(node)
        else:
            self.generic_visit(node)

    def generic_visit(self, node: Node) -> None:
        for child in node.named_children:
            self.visit(child)

    def _visit_except(self, node: Node, *field_names: str) -> None:
        """Visit named children other than the given fields."""
        skipped = [node.child_by_field_name(name) for name in field_names]
        for child in node.named_children:
            if any(s is not None and child == s for s in skipped):
                continue
            self.visit(child)

    def _visit_field(self, node: Node, field_name: str) -> None:
        child = node.child_by_field_name(field_name)
        if child is not None:
            self.visit(child)

    # === Helpers ===

    def _location(self, node: Node) -> Location:
        return self.source_map.locate(
            node.start_point[0],
            node.start_point[1],
            end=(node.end_point[0], node.end_point[1]),
        )

    def _text(self, node: Node) -> str:
        return node.text.decode("utf-8", errors="replace") if node.text else ""

    def _lookup_name(self, name: str) -> Entity | None:
        if "::" in name:
            return self.symbols.lookup_qualified(name)
        return self.symbols.lookup(name)

    def _resolve(self, node: Node) -> Entity | None:
        if node.type == "qualified_identifier":
            return self.symbols.lookup_qualified(self._text(node))
        if node.type == "identifier":
            return self.symbols.lookup(self._text(node))
        return None

    def _is_suppressed(self, node: Node) -> bool:
        """Suppression comment on any line of the declaration, or NOLINTNEXTLINE above it."""
        if not self.config.respect_suppressions:
            return False
        patterns = self.config.suppression_patterns
        for row in range(node.start_point[0], node.end_point[0] + 1):
            if is_noqa_suppressed(self.line_comments.get(row), patterns).suppresses_check:
                return True
        previous = self.line_comments.get(node.start_point[0] - 1)
        return is_noqa_suppressed(previous, ["NOLINTNEXTLINE"]).suppresses_check

    def _is_exempt(self, node: Node) -> bool:
        return has_ignore_attribute(node, self.config.ignore_attributes) or self._is_suppressed(node)

    # === Blocks and scopes ===

    def visit_compound_statement(self, node: Node) -> None:
        block = Block(id=next(self._block_ids), location=self._location(node))
        self.checker.enter_block(block)
        self.symbols.push_local()
        self.generic_visit(node)
        self.symbols.pop()
        self.checker.exit_block()

    def _visit_in_local_scope(self, node: Node) -> None:
        self.symbols.push_local()
        self.generic_visit(node)
        self.symbols.pop()

    visit_for_statement = _visit_in_local_scope
    visit_if_statement = _visit_in_local_scope
    visit_while_statement = _visit_in_local_scope
    visit_switch_statement = _visit_in_local_scope

    def visit_for_range_loop(self, node: Node) -> None:
        self.symbols.push_local()
        self._visit_field(node, "initializer")
        self._visit_field(node, "type")
        # the range is evaluated before the loop variable exists
        self._visit_field(node, "right")
        declarator = node.child_by_field_name("declarator")
        if declarator is not None:
            self._declare_variable(node, declarator, is_extern=False)
        self._visit_field(node, "body")
        self.symbols.pop()

    def visit_catch_clause(self, node: Node) -> None:
        self.symbols.push_local()
        parameters = node.child_by_field_name("parameters")
        if parameters is not None:
            self._declare_parameters(parameters)
        self._visit_field(node, "body")
        self.symbols.pop()

    def visit_lambda_expression(self, node: Node) -> None:
        # captures name variables of the enclosing scope
        self._visit_field(node, "captures")
        self.symbols.push_local()
        declarator = node.child_by_field_name("declarator")
        if declarator is not None:
            parameters = declarator.child_by_field_name("parameters")
            if parameters is not None:
                self._declare_parameters(parameters)
        self._visit_field(node, "body")
        self.symbols.pop()

    def visit_namespace_definition(self, node: Node) -> None:
        name = node.child_by_field_name("name")
        if name is None:
            # anonymous namespace: members belong to the enclosing scope
            self._visit_field(node, "body")
            return
        self.symbols.push_qualified("namespace", self._text(name))
        self._visit_field(node, "body")
        self.symbols.pop()

    def visit_linkage_specification(self, node: Node) -> None:
        body = node.child_by_field_name("body")
        if body is None:
            return
        if body.type == "declaration_list":
            self.visit(body)
            return
        # `extern "C" int x;` declares x with external storage
        previous, self._extern_linkage = self._extern_linkage, True
        self.visit(body)
        self._extern_linkage = previous

    def visit_template_declaration(self, node: Node) -> None:
        self.symbols.push_template()
        parameters = node.child_by_field_name("parameters")
        if parameters is not None:
            for param in parameters.named_children:
                self._declare_template_parameter(param)
        self._visit_except(node, "parameters")
        self.symbols.pop()

    def _declare_template_parameter(self, param: Node) -> None:
        if param.type in ("type_parameter_declaration", "optional_type_parameter_declaration",
                          "variadic_type_parameter_declaration"):
            for child in param.named_children:
                if child.type == "type_identifier":
                    self.symbols.declare_template_parameter(self._text(child), EntityKind.TYPE)
            return
        if param.type in PARAMETER_TYPES:
            declarator = param.child_by_field_name("declarator")
            if declarator is None:
                return
            info = unwrap_declarator(declarator)
            if info.name is not None:
                self.symbols.declare_template_parameter(self._text(info.name), EntityKind.PARAMETER)
            self._visit_field(param, "default_value")

    # === Types ===

    def _visit_class(self, node: Node) -> None:
        name = node.child_by_field_name("name")
        body = node.child_by_field_name("body")
        if name is not None and self.is_cpp:
            # C keeps tags in their own namespace
            self.symbols.declare_tag(normalize_qualified(self._text(name)))
        if body is None:
            return
        if not self.is_cpp or name is None:
            self.visit(body)
            return
        bases = self._base_class_prefixes(node)
        self.symbols.push_qualified("class", self._text(name))
        self.symbols.set_bases(bases)
        self.visit(body)
        self.symbols.pop()

    def _base_class_prefixes(self, node: Node) -> list[str]:
        prefixes: list[str] = []
        for clause in node.named_children:
            if clause.type != "base_class_clause":
                continue
            for base in clause.named_children:
                if base.type not in ("type_identifier", "template_type", "qualified_identifier"):
                    continue
                # `Base<T>` and `ns::Base<T>` name the template
                text = normalize_qualified(self._text(base)).split("<", 1)[0]
                prefix = self.symbols.class_prefix(text)
                if prefix is not None:
                    prefixes.append(prefix)
        return prefixes

    visit_class_specifier = _visit_class
    visit_struct_specifier = _visit_class
    visit_union_specifier = _visit_class

    def visit_enum_specifier(self, node: Node) -> None:
        name = node.child_by_field_name("name")
        body = node.child_by_field_name("body")
        if body is None:
            return
        scoped = self.is_cpp and name is not None and any(
            child.type in ("class", "struct") for child in node.children
        )
        if scoped:
            self.symbols.push_qualified("class", self._text(name))
        for enumerator in body.named_children:
            if enumerator.type != "enumerator":
                continue
            # the value is evaluated before the enumerator is in scope
            self._visit_field(enumerator, "value")
            enum_name = enumerator.child_by_field_name("name")
            if enum_name is not None:
                self.symbols.declare(self._text(enum_name), EntityKind.ENUMERATOR)
        if scoped:
            self.symbols.pop()

    def visit_type_definition(self, node: Node) -> None:
        self._visit_field(node, "type")
        for declarator in node.children_by_field_name("declarator"):
            info = unwrap_declarator(declarator)
            for size in info.array_sizes:
                self.visit(size)
            if info.name is not None:
                self.symbols.declare(self._text(info.name), EntityKind.TYPE)

    def visit_alias_declaration(self, node: Node) -> None:
        name = node.child_by_field_name("name")
        if name is not None:
            self.symbols.declare(self._text(name), EntityKind.TYPE)
        self._visit_field(node, "type")

    # === Declarations ===

    def visit_declaration(self, node: Node) -> None:
        self._visit_field(node, "type")
        is_extern = "extern" in storage_classes(node) or self._extern_linkage
        # condition declarations (`if (int x = f())`) keep the value outside the declarator
        value = node.child_by_field_name("value")
        for declarator in node.children_by_field_name("declarator"):
            self._declare_variable(node, declarator, is_extern=is_extern, value=value)

    def visit_init_declarator(self, node: Node) -> None:
        # only reached outside a declaration (e.g. C++ conditions)
        self._declare_variable(node, node, is_extern=False)

    def visit_field_declaration(self, node: Node) -> None:
        self._visit_field(node, "type")
        is_static = "static" in storage_classes(node)
        in_class = self.is_cpp and self.symbols.current.kind == "class"
        default_value = node.child_by_field_name("default_value")

        for declarator in node.children_by_field_name("declarator"):
            info = unwrap_declarator(declarator)
            if in_class and is_static and info.name is not None and not info.is_function:
                # static data member: program lifetime storage, tracked like a global
                self._declare_variable(node, declarator, is_extern=False, value=default_value)
                default_value = None
                continue

            for size in info.array_sizes:
                self.visit(size)
            if not in_class or info.name is None:
                continue
            kind = EntityKind.FUNCTION if info.is_function else EntityKind.FIELD
            self.symbols.declare(self._text(info.name), kind)

        if default_value is not None:
            self.visit(default_value)
        for child in node.named_children:
            if child.type == "bitfield_clause":
                self.visit(child)

    def _declare_variable(
        self,
        decl_node: Node,
        declarator: Node,
        is_extern: bool,
        value: Node | None = None,
    ) -> None:
        """
        Declare the variable named by `declarator` and report it.

        `value` is an initializer held outside the declarator (C++ condition
        declarations); it is classified and visited like an init_declarator
        value.
        """
        info = unwrap_declarator(declarator)
        if info.value is None:
            info.value = value
        for size in info.array_sizes:
            self.visit(size)
        if info.name is None:
            if info.value is not None:
                self.visit(info.value)
            return

        name_node = info.name
        if info.is_function:
            if name_node.type == "qualified_identifier":
                self.symbols.declare_qualified(self._text(name_node), EntityKind.FUNCTION)
            else:
                self.symbols.declare(self._text(name_node), EntityKind.FUNCTION)
            return

        if name_node.type == "structured_binding_declarator":
            for child in name_node.named_children:
                if child.type == "identifier":
                    self.symbols.declare(self._text(child), EntityKind.VARIABLE)
            if info.value is not None:
                self.visit(info.value)
            return

        if name_node.type == "qualified_identifier":
            entity = self.symbols.declare_qualified(self._text(name_node), EntityKind.VARIABLE)
        elif is_extern and self.checker.depth > 0:
            # block-scope `extern int x;` names the global x
            entity = self.symbols.declare_block_extern(self._text(name_node))
        else:
            entity = self.symbols.declare(self._text(name_node), EntityKind.VARIABLE)

        constructs = self.is_cpp and not info.has_indirection and constructs_object(decl_node)
        initializer = classify_initializer(info.value, self._resolve, constructs)
        if is_const_qualified(decl_node) and not info.has_indirection:
            entity.is_constant = initializer is InitializerKind.CONSTANT

        self.checker.visit_declaration(
            VariableDeclaration(
                decl_id=entity.id,
                name=entity.qualified_name,
                location=self._location(name_node),
                is_extern=is_extern,
                initializer=initializer,
                exempt=self._is_exempt(decl_node),
            )
        )

        if info.value is not None:
            self.visit(info.value)

    def _declare_parameters(self, parameters: Node) -> None:
        for param in parameters.named_children:
            if param.type == "identifier":
                # K&R identifier list
                self._declare_parameter(param, param)
                continue
            if param.type not in PARAMETER_TYPES:
                continue
            self._visit_field(param, "type")
            declarator = param.child_by_field_name("declarator")
            if declarator is not None:
                info = unwrap_declarator(declarator)
                if info.name is not None and info.name.type == "identifier":
                    self._declare_parameter(param, info.name)
            self._visit_field(param, "default_value")

    def _declare_parameter(self, param: Node, name_node: Node) -> None:
        entity = self.symbols.declare(self._text(name_node), EntityKind.PARAMETER)
        self.checker.visit_declaration(
            VariableDeclaration(
                decl_id=entity.id,
                name=entity.name,
                location=self._location(name_node),
                is_parameter=True,
            )
        )

    def visit_parameter_declaration(self, node: Node) -> None:
        # a parameter of a function type; its name is not a reference
        self._visit_field(node, "type")
        self._visit_field(node, "default_value")

    visit_optional_parameter_declaration = visit_parameter_declaration

    def visit_function_definition(self, node: Node) -> None:
        declarator = node.child_by_field_name("declarator")
        info = unwrap_declarator(declarator) if declarator is not None else None
        self._visit_field(node, "type")

        member_scope = False
        if info is not None and info.name is not None:
            name_node = info.name
            if name_node.type == "qualified_identifier":
                self.symbols.declare_qualified(self._text(name_node), EntityKind.FUNCTION)
                owner, _, _ = normalize_qualified(self._text(name_node)).rpartition("::")
                if owner:
                    # out-of-line member: the body sees the class members
                    self.symbols.push_qualified("class", owner.lstrip(":"))
                    member_scope = True
            elif name_node.type in ("identifier", "field_identifier"):
                self.symbols.declare(self._text(name_node), EntityKind.FUNCTION)

        self.symbols.push_local()
        if info is not None and info.function_declarator is not None:
            parameters = info.function_declarator.child_by_field_name("parameters")
            if parameters is not None:
                self._declare_parameters(parameters)

        for child in node.named_children:
            if child.type == "declaration":
                # K&R parameter declarations between the declarator and the body
                for param_declarator in child.children_by_field_name("declarator"):
                    param_info = unwrap_declarator(param_declarator)
                    if param_info.name is not None and self.symbols.current.names.get(
                        self._text(param_info.name)
                    ) is None:
                        self._declare_parameter(child, param_info.name)
            elif child.type == "field_initializer_list":
                self.visit(child)

        self._visit_field(node, "body")
        self.symbols.pop()
        if member_scope:
            self.symbols.pop()

    # === Preprocessor ===

    def visit_preproc_if(self, node: Node) -> None:
        self._visit_except(node, "condition")

    visit_preproc_elif = visit_preproc_if

    def visit_preproc_ifdef(self, node: Node) -> None:
        self._visit_except(node, "name")

    visit_preproc_elifdef = visit_preproc_ifdef

    def _visit_macro(self, node: Node) -> None:
        """
        Names in a macro body count as uses at global scope. Where the macro
        expands is not known, so such a global is never reported as unused
        or as belonging to one block.
        """
        value = node.child_by_field_name("value")
        if value is None:
            return
        parameters = node.child_by_field_name("parameters")
        macro_parameters = (
            {self._text(p) for p in parameters.named_children} if parameters is not None else set()
        )
        body = _MACRO_LITERAL_RE.sub(" ", self._text(value))
        for match in _MACRO_NAME_RE.finditer(body):
            name = normalize_qualified(match.group(0))
            if name in macro_parameters:
                continue
            entity = self._lookup_name(name)
            if entity is None:
                self._pending_macro_names.append((name, value))
            else:
                self._record_macro_reference(entity, value)

    visit_preproc_def = _visit_macro
    visit_preproc_function_def = _visit_macro

    def _record_macro_reference(self, entity: Entity | None, value: Node) -> None:
        if entity is None or entity.kind is not EntityKind.VARIABLE:
            return
        self.checker.visit_macro_reference(entity.id, self._location(value))

    # === Using declarations ===

    def visit_using_declaration(self, node: Node) -> None:
        keywords = {child.type for child in node.children if not child.is_named}
        if "enum" in keywords:
            return
        for target in node.named_children:
            if target.type not in ("identifier", "qualified_identifier"):
                continue
            if "namespace" in keywords:
                self.symbols.use_namespace(self._text(target))
            else:
                self.symbols.use_declaration(self._text(target))
            return

    # === References ===

    def visit_identifier(self, node: Node) -> None:
        self._record_reference(node, self.symbols.lookup(self._text(node)))

    def visit_qualified_identifier(self, node: Node) -> None:
        self._record_reference(node, self.symbols.lookup_qualified(self._text(node)))

    def _record_reference(self, node: Node, entity: Entity | None) -> None:
        if entity is None or entity.kind is not EntityKind.VARIABLE:
            return
        self.checker.visit_reference(entity.id, self._location(node))


def parse_file(path: Path, config: CheckerConfig) -> ParsedUnit:
    """Read and parse one translation unit."""
    source = path.read_bytes()
    text = source.decode("utf-8")
    language = detect_language(path, config.language)
    tree = parse_source(source, language)
    return ParsedUnit(
        path=path,
        source=source,
        tree=tree,
        language=language,
        source_map=SourceMap.from_source(path, text),
    )


def analyze_unit(unit: ParsedUnit, config: CheckerConfig) -> FileReport:
    """Run the check over an already parsed translation unit."""
    if unit.tree.root_node.has_error:
        logger.warning("%s: syntax errors, results may be incomplete", unit.path)

    policy = SourcePolicy.from_config(config, primary_file=unit.source_map.primary_file)
    checker = ScopeChecker(config, policy)
    walker = TranslationUnitWalker(checker, unit.source_map, config, unit.language)
    walker.walk(unit.tree.root_node)

    return FileReport(
        file=unit.path,
        language=unit.language,
        classifications=checker.classifications(),
        diagnostics=checker.finalize(),
        declarations_tracked=len(checker.registry),
    )


def analyze_file(
    file_path: Path,
    config: CheckerConfig | None = None,
    on_parsed: Callable[[ParsedUnit], None] | None = None,
) -> FileReport:
    """
    Analyze a single C or C++ file.

    `on_parsed` sees the parsed unit before it is checked (used by --dump-tree).
    """
    config = config or CheckerConfig()
    try:
        unit = parse_file(file_path, config)
    except UnicodeDecodeError as e:
        return FileReport(file=file_path, error=f"Unicode decode error: {e}")
    except OSError as e:
        return FileReport(file=file_path, error=f"Cannot read file: {e}")
    if on_parsed is not None:
        on_parsed(unit)
    return analyze_unit(unit, config)


def analyze_source(
    source: str,
    file_path: Path = Path("input.c"),
    config: CheckerConfig | None = None,
) -> FileReport:
    """Analyze source text as if it were read from `file_path`."""
    config = config or CheckerConfig()
    data = source.encode("utf-8")
    language = detect_language(file_path, config.language)
    unit = ParsedUnit(
        path=file_path,
        source=data,
        tree=parse_source(data, language),
        language=language,
        source_map=SourceMap.from_source(file_path, source),
    )
    return analyze_unit(unit, config)
