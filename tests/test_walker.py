"""Tests for the syntax tree walker on real C and C++ sources."""

from pathlib import Path

from scopecheck.config import CheckerConfig
from scopecheck.frontend.walker import analyze_file, analyze_source
from scopecheck.models.results import Classification, DiagnosticKind, NoteKind

FIXTURES_PATH = Path(__file__).parent / "fixtures" / "c_project" / "src"


def names_by_kind(report) -> dict[str, list[str]]:
    found: dict[str, list[str]] = {}
    for diagnostic in report.diagnostics:
        found.setdefault(diagnostic.kind.value, []).append(diagnostic.name)
    return found


class TestFixtureProject:
    """The sample programs under tests/fixtures."""

    def test_scopes_cpp(self):
        """p unused, x used in two functions, y in main only, yz in the if branch only."""
        report = analyze_file(FIXTURES_PATH / "scopes.cpp")

        assert report.error is None
        assert report.language == "cpp"
        assert report.classifications == {
            "x": Classification.MULTIPLY_SCOPED,
            "y": Classification.REDUNDANT_SCOPE,
            "yz": Classification.REDUNDANT_SCOPE,
            "p": Classification.UNUSED,
        }
        assert [(d.name, d.kind) for d in report.diagnostics] == [
            ("y", DiagnosticKind.REDUNDANT_SCOPE),
            ("yz", DiagnosticKind.REDUNDANT_SCOPE),
            ("p", DiagnosticKind.UNUSED),
        ]

    def test_scopes_cpp_locations(self):
        report = analyze_file(FIXTURES_PATH / "scopes.cpp")
        y, yz, p = report.diagnostics

        assert (y.location.line, y.location.column) == (6, 12)
        assert (y.scope.line, y.scope.column) == (16, 12)
        assert [(n.kind, n.location.line, n.location.column) for n in y.notes] == [
            (NoteKind.USED_AT_SITE, 23, 12),
        ]

        assert (yz.location.line, yz.location.column) == (8, 13)
        assert (yz.scope.line, yz.scope.column) == (18, 16)
        assert [(n.kind, n.location.line, n.location.column) for n in yz.notes] == [
            (NoteKind.USED_IN_BLOCK, 18, 16),
            (NoteKind.USED_AT_SITE, 19, 18),
        ]

        assert (p.location.line, p.location.column) == (10, 5)

    def test_static_data_member(self):
        """Dummy::p2 is used in an inline member function and in main."""
        report = analyze_file(FIXTURES_PATH / "static_field.cpp")

        assert report.classifications == {"Dummy::p2": Classification.MULTIPLY_SCOPED}
        assert report.diagnostics == []

    def test_legacy_c(self):
        report = analyze_file(FIXTURES_PATH / "legacy.c")

        assert report.language == "c"
        assert report.classifications["shared_counter"] is Classification.EXEMPT
        assert report.classifications["hidden"] is Classification.EXEMPT
        assert report.classifications["kept"] is Classification.EXEMPT
        assert report.classifications["quiet"] is Classification.EXEMPT
        assert names_by_kind(report) == {"unused": ["noisy"], "redundant-scope": ["limit"]}

    def test_missing_file(self, tmp_path: Path):
        report = analyze_file(tmp_path / "missing.c")
        assert report.error is not None
        assert report.diagnostics == []

    def test_undecodable_file(self, tmp_path: Path):
        path = tmp_path / "latin1.c"
        path.write_bytes(b"int caf\xe9;\n")
        report = analyze_file(path)
        assert "decode" in report.error


class TestNameResolution:
    """Shadowing, parameters and qualified names."""

    def test_local_shadows_global(self):
        report = analyze_source(
            "int counter;\n"
            "void tick(void) {\n"
            "    int counter = 0;\n"
            "    counter++;\n"
            "}\n"
        )
        assert report.classifications == {"counter": Classification.UNUSED}

    def test_parameter_shadows_global(self):
        report = analyze_source("int n;\nint twice(int n) { return n * 2; }\n")
        assert report.classifications == {"n": Classification.UNUSED}

    def test_shadow_ends_with_block(self):
        report = analyze_source(
            "int level;\n"
            "int read(void) {\n"
            "    { int level = 1; (void)level; }\n"
            "    return level;\n"
            "}\n"
        )
        assert report.classifications == {"level": Classification.REDUNDANT_SCOPE}
        assert report.diagnostics[0].scope.line == 2

    def test_redeclaration_is_one_global(self):
        report = analyze_source("int r;\nint r = 2;\nvoid bump(void) { r++; }\n")
        assert [d.name for d in report.diagnostics] == ["r"]
        assert report.diagnostics[0].location.line == 1

    def test_extern_then_definition_stays_exempt(self):
        report = analyze_source("extern int e;\nint e = 1;\nvoid f(void) { e++; }\n")
        assert report.classifications == {"e": Classification.EXEMPT}

    def test_block_scope_extern_names_the_global(self):
        report = analyze_source(
            "int g;\n"
            "void set(void) {\n"
            "    extern int g;\n"
            "    g = 1;\n"
            "}\n"
        )
        assert report.classifications == {"g": Classification.REDUNDANT_SCOPE}

    def test_namespace_member(self):
        report = analyze_source(
            "namespace cfg {\nint level = 3;\n}\nint read() { return cfg::level; }\n",
            file_path=Path("input.cpp"),
        )
        assert report.classifications == {"cfg::level": Classification.REDUNDANT_SCOPE}

    def test_namespace_member_unqualified_use(self):
        report = analyze_source(
            "namespace cfg {\nint level = 3;\nint read() { return level; }\n}\n",
            file_path=Path("input.cpp"),
        )
        assert report.classifications == {"cfg::level": Classification.REDUNDANT_SCOPE}

    def test_struct_tag_does_not_hide_variable_in_c(self):
        report = analyze_source(
            "static int limit = 10;\n"
            "struct limit { int limit; };\n"
            "int check(int v) { struct limit l; l.limit = v; return v < limit; }\n"
        )
        assert report.classifications == {"limit": Classification.REDUNDANT_SCOPE}

    def test_function_names_are_not_variables(self):
        report = analyze_source("int helper(void);\nint main(void) { return helper(); }\n")
        assert report.classifications == {}

    def test_field_names_are_not_references(self):
        report = analyze_source(
            "int size;\nstruct box { int size; };\nint area(struct box b) { return b.size; }\n"
        )
        assert report.classifications == {"size": Classification.UNUSED}

    def test_using_directive(self):
        report = analyze_source(
            "namespace cfg { int level = 1; }\n"
            "using namespace cfg;\n"
            "int f() { return level; }\n"
            "int main() { return level + f(); }\n",
            file_path=Path("input.cpp"),
        )
        assert report.classifications == {"cfg::level": Classification.MULTIPLY_SCOPED}
        assert report.diagnostics == []

    def test_using_declaration(self):
        report = analyze_source(
            "namespace cfg { int level = 1; }\n"
            "using cfg::level;\n"
            "int main() {\n"
            "    if (level) {\n"
            "        return level;\n"
            "    }\n"
            "    return 0;\n"
            "}\n",
            file_path=Path("input.cpp"),
        )
        assert report.classifications == {"cfg::level": Classification.REDUNDANT_SCOPE}
        assert report.diagnostics[0].scope.line == 3

    def test_using_directive_inside_function(self):
        report = analyze_source(
            "namespace cfg { int level = 1; }\n"
            "int main() {\n"
            "    using namespace cfg;\n"
            "    return level;\n"
            "}\n"
            "int other() { return 0; }\n",
            file_path=Path("input.cpp"),
        )
        assert report.classifications == {"cfg::level": Classification.REDUNDANT_SCOPE}

    def test_static_member_used_from_derived_class(self):
        report = analyze_source(
            "struct B { static int n; };\n"
            "struct D : B { int f() { return n; } };\n",
            file_path=Path("input.cpp"),
        )
        assert report.classifications == {"B::n": Classification.REDUNDANT_SCOPE}

    def test_static_member_used_from_out_of_line_derived_method(self):
        report = analyze_source(
            "struct B { static int n; };\n"
            "struct D : public B { int f(); };\n"
            "int D::f() { return n; }\n"
            "int g() { return B::n; }\n",
            file_path=Path("input.cpp"),
        )
        assert report.classifications == {"B::n": Classification.MULTIPLY_SCOPED}


class TestScopes:
    """Block structure seen through real code."""

    def test_used_in_two_functions(self):
        report = analyze_source("int x;\nvoid a(void) { x = 1; }\nvoid b(void) { x = 2; }\n")
        assert report.classifications == {"x": Classification.MULTIPLY_SCOPED}
        assert report.diagnostics == []

    def test_used_at_global_scope_and_in_function(self):
        report = analyze_source("int a;\nint *pa = &a;\nvoid f(void) { a = 1; }\n")
        assert report.classifications["a"] is Classification.MULTIPLY_SCOPED
        assert report.classifications["pa"] is Classification.UNUSED

    def test_only_used_at_global_scope(self):
        report = analyze_source("int a;\nint *pa = &a;\nint **ppa = &pa;\nint main(void) { return **ppa; }\n")
        assert report.classifications["a"] is Classification.GLOBAL_USE

    def test_sibling_blocks_report_the_enclosing_block(self):
        report = analyze_source(
            "int hits;\n"
            "void run(int c) {\n"
            "    if (c) {\n"
            "        hits++;\n"
            "    } else {\n"
            "        hits--;\n"
            "    }\n"
            "}\n"
        )
        (diagnostic,) = report.diagnostics
        assert diagnostic.scope.line == 2
        assert [n.kind for n in diagnostic.notes] == [
            NoteKind.USED_IN_BLOCK,
            NoteKind.USED_AT_SITE,
            NoteKind.USED_IN_BLOCK,
            NoteKind.USED_AT_SITE,
        ]

    def test_loop_body(self):
        report = analyze_source(
            "int total;\n"
            "int sum(int *v, int n) {\n"
            "    for (int i = 0; i < n; i++) {\n"
            "        total += v[i];\n"
            "    }\n"
            "    return 0;\n"
            "}\n"
        )
        assert report.diagnostics[0].scope.line == 3

    def test_lambda_body_is_a_block(self):
        report = analyze_source(
            "int calls;\nauto counter = [] { return ++calls; };\n",
            file_path=Path("input.cpp"),
        )
        assert report.classifications["calls"] is Classification.REDUNDANT_SCOPE


class TestMacros:
    """Globals referenced from macro bodies."""

    def test_use_through_macro_is_not_unused(self):
        report = analyze_source(
            "int counter;\n"
            "#define BUMP() (counter++)\n"
            "int main(void) { BUMP(); return 0; }\n"
        )
        assert report.classifications == {"counter": Classification.GLOBAL_USE}
        assert report.diagnostics == []

    def test_macro_before_declaration(self):
        report = analyze_source(
            "#define RESET() (state = 0)\n"
            "int state;\n"
            "void reset(void) { RESET(); }\n"
        )
        assert report.classifications == {"state": Classification.GLOBAL_USE}

    def test_macro_and_block_use(self):
        report = analyze_source(
            "int hits;\n"
            "#define HITS hits\n"
            "int read(void) { return hits + HITS; }\n"
        )
        assert report.classifications == {"hits": Classification.MULTIPLY_SCOPED}

    def test_parameters_strings_and_members_are_not_uses(self):
        report = analyze_source(
            "int x;\n"
            "int y;\n"
            "int len;\n"
            '#define SHOW(x) printf("y=%d", (x))\n'
            "#define LEN(s) ((s).len)\n"
        )
        assert report.classifications == {
            "x": Classification.UNUSED,
            "y": Classification.UNUSED,
            "len": Classification.UNUSED,
        }


class TestExemptions:
    """Annotations, suppression comments and initializers."""

    def test_nolint_comment(self):
        report = analyze_source("int quiet; // NOLINT\n")
        assert report.classifications == {"quiet": Classification.EXEMPT}

    def test_nolint_for_other_check(self):
        report = analyze_source("int loud; // NOLINT(readability-magic-numbers)\n")
        assert report.classifications == {"loud": Classification.UNUSED}

    def test_nolintnextline(self):
        report = analyze_source("// NOLINTNEXTLINE(redundant-scope)\nint spare;\n")
        assert report.classifications == {"spare": Classification.EXEMPT}

    def test_nolintnextline_does_not_apply_to_its_own_line(self):
        report = analyze_source("int spare; // NOLINTNEXTLINE\nint next;\n")
        assert report.classifications == {
            "spare": Classification.UNUSED,
            "next": Classification.EXEMPT,
        }

    def test_constructor_initializer_is_dynamic(self):
        """`T s(args)` runs a constructor like `T s = T(args)` does."""
        parenthesized = analyze_source(
            'std::string s("abc");\nint main() { return s.size(); }\n',
            file_path=Path("input.cpp"),
        )
        assigned = analyze_source(
            'std::string s = std::string("abc");\nint main() { return s.size(); }\n',
            file_path=Path("input.cpp"),
        )
        assert parenthesized.classifications == {"s": Classification.EXEMPT}
        assert assigned.classifications == {"s": Classification.EXEMPT}

    def test_braced_class_initializer_is_dynamic(self):
        report = analyze_source(
            "std::vector<int> v{1, 2, 3};\nint main() { return v[0]; }\n",
            file_path=Path("input.cpp"),
        )
        assert report.classifications == {"v": Classification.EXEMPT}

    def test_builtin_direct_initializer_is_constant(self):
        report = analyze_source(
            "int limit(10);\nunsigned long mask{0xff};\nint main() { return limit + mask; }\n",
            file_path=Path("input.cpp"),
        )
        assert report.classifications == {
            "limit": Classification.REDUNDANT_SCOPE,
            "mask": Classification.REDUNDANT_SCOPE,
        }

    def test_c_aggregate_initializer_is_constant(self):
        report = analyze_source(
            "struct point { int x, y; };\nstruct point origin = {0, 0};\n"
            "int main(void) { return origin.x; }\n"
        )
        assert report.classifications == {"origin": Classification.REDUNDANT_SCOPE}

    def test_suppressions_can_be_disabled(self):
        config = CheckerConfig(respect_suppressions=False)
        report = analyze_source("int quiet; // NOLINT\n", config=config)
        assert report.classifications == {"quiet": Classification.UNUSED}

    def test_custom_ignore_attribute(self):
        config = CheckerConfig(ignore_attributes=["keep"])
        report = analyze_source(
            "__attribute__((annotate(\"keep\"))) int a;\n__attribute__((used)) int b;\n",
            config=config,
        )
        assert report.classifications == {"a": Classification.EXEMPT, "b": Classification.UNUSED}

    def test_dynamic_initializer_is_skipped(self):
        source = "int compute();\nint cached = compute();\nint use() { return cached; }\n"
        report = analyze_source(source, file_path=Path("input.cpp"))
        assert report.classifications == {"cached": Classification.EXEMPT}

    def test_warn_on_dynamic_initializer(self):
        source = "int compute();\nint cached = compute();\nint use() { return cached; }\n"
        config = CheckerConfig(warn_on_dynamic_init=True)
        report = analyze_source(source, file_path=Path("input.cpp"), config=config)
        assert report.classifications == {"cached": Classification.REDUNDANT_SCOPE}

    def test_const_global_initializer_is_constant(self):
        source = "const int base = 4;\nint scaled = base * 2;\nint use() { return scaled + base; }\n"
        report = analyze_source(source, file_path=Path("input.cpp"))
        assert report.classifications["scaled"] is Classification.REDUNDANT_SCOPE
        assert report.classifications["base"] is Classification.MULTIPLY_SCOPED

    def test_extern_c_declaration(self):
        report = analyze_source('extern "C" int exported;\n', file_path=Path("input.cpp"))
        assert report.classifications == {"exported": Classification.EXEMPT}


class TestSourceFiles:
    """Preprocessed input and foreign files."""

    PREPROCESSED = (
        '# 1 "main.c"\n'
        '# 1 "config.h" 1\n'
        "int header_global;\n"
        '# 2 "main.c" 2\n'
        "int local_global;\n"
        "int main(void) { return header_global + local_global; }\n"
    )

    def test_header_globals_are_not_tracked(self):
        report = analyze_source(self.PREPROCESSED, file_path=Path("main.i"))

        assert report.classifications == {"local_global": Classification.REDUNDANT_SCOPE}
        location = report.diagnostics[0].location
        assert (location.file, location.line) == (Path("main.c"), 2)

    def test_main_file_mode(self):
        config = CheckerConfig(source_mode="main-file")
        report = analyze_source(self.PREPROCESSED, file_path=Path("main.i"), config=config)
        assert set(report.classifications) == {"local_global"}

    def test_header_file_is_foreign_in_extension_mode(self):
        report = analyze_source("int g;\n", file_path=Path("api.h"))
        assert report.classifications == {}

    def test_declarations_tracked(self):
        report = analyze_source("int a;\nint b;\nvoid f(void) { int c; }\n")
        assert report.declarations_tracked == 2
