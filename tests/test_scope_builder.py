# =============================================================================
# test_scope_builder.py - Scope Builder Unit Tests
# =============================================================================
# Tests for building the Scope tree from parsed programs.
#
# Test coverage includes:
#   - Symbol kinds for labels, .const/.var/.label, .define
#   - Namespaces, enums and callables as child scopes
#   - Child scope ranges
#   - Duplicate definitions reported as diagnostics
# =============================================================================

from c64lsp.analysis.diagnostics import SOURCE_SCOPE, Severity
from c64lsp.analysis.lexer import ContextAwareLexer
from c64lsp.analysis.parser import ContextAwareParser
from c64lsp.analysis.scope_builder import build_scope
from c64lsp.analysis.symbols import Position, SymbolKind


# =============================================================================
# Helper Functions
# =============================================================================

def build(source: str, reference):
    """Lex, parse and build scopes; returns (root, builder diagnostics)."""
    parser = ContextAwareParser(ContextAwareLexer(source, reference))
    program = parser.parse_program()
    return build_scope(program, "file:///test.asm", source.count("\n") + 1)


# =============================================================================
# Simple Definition Tests
# =============================================================================

class TestDefinitions:
    """Test symbols defined in the root scope."""

    def test_label(self, reference):
        root, diagnostics = build("start:\n  jmp start\n", reference)
        assert diagnostics == []
        label = root.get_symbol("start")
        assert label.kind == SymbolKind.LABEL
        assert label.name == "start"
        assert label.position == Position(0, 0)

    def test_multi_label_not_defined(self, reference):
        root, _ = build("!loop:\n  bne !loop-\n", reference)
        assert root.symbols == {}

    def test_const_and_var(self, reference):
        root, _ = build(".const X = $FF\n.var counter = 1 + 2\n", reference)
        assert root.get_symbol("X").kind == SymbolKind.CONSTANT
        assert root.get_symbol("X").value == "$FF"
        assert root.get_symbol("counter").kind == SymbolKind.VARIABLE
        assert root.get_symbol("counter").value == "1 + 2"

    def test_position_of_name(self, reference):
        root, _ = build("\n.const X = 1\n", reference)
        assert root.get_symbol("X").position == Position(1, 7)

    def test_var_without_value_defines_nothing(self, reference):
        root, _ = build(".var counter\n", reference)
        assert root.get_symbol("counter") is None

    def test_label_directive(self, reference):
        root, _ = build(".label here = *\n", reference)
        assert root.get_symbol("here").kind == SymbolKind.LABEL
        assert root.get_symbol("here").value == "*"

    def test_define(self, reference):
        root, _ = build(".define DEBUG\n", reference)
        assert root.get_symbol("DEBUG").kind == SymbolKind.CONSTANT

    def test_flow_blocks_define_in_current_scope(self, reference):
        source = ".if (1) {\n  inner: nop\n}\n.for (var i = 0; i < 2; i++) {\n  .const K = 1\n}\n"
        root, _ = build(source, reference)
        assert root.get_symbol("inner") is not None
        assert root.get_symbol("K") is not None
        assert root.children == []

    def test_root_scope(self, reference):
        root, _ = build("nop\nnop\nnop\n", reference)
        assert root.is_root
        assert root.uri == "file:///test.asm"
        assert root.range.end.line == 3


# =============================================================================
# Scoped Definition Tests
# =============================================================================

class TestScopedDefinitions:
    """Test directives that create child scopes."""

    def test_namespace(self, reference):
        root, diagnostics = build(".namespace NS {\n  .const Y = 5\n}\n", reference)
        assert diagnostics == []
        assert root.get_symbol("NS").kind == SymbolKind.NAMESPACE

        child = root.find_namespace("NS")
        assert child.parent is root
        assert child.get_symbol("Y").value == "5"
        assert child.range.start == Position(0, 11)
        assert child.range.end == Position(2, 1)

    def test_qualified_lookup(self, reference):
        """NS.Y resolves from outside; bare Y does not."""
        root, _ = build(".namespace NS { .const Y = 5 }\n", reference)
        assert root.find_symbol("NS.Y").value == "5"
        assert root.find_symbol("Y") is None

    def test_nested_namespaces(self, reference):
        source = ".namespace A {\n  .namespace B {\n    .const C = 1\n  }\n}\n"
        root, _ = build(source, reference)
        assert root.find_symbol("A.B").kind == SymbolKind.NAMESPACE
        assert root.find_symbol("A.B.C") is None
        assert root.find_namespace("A").find_symbol("B.C").value == "1"

    def test_unterminated_namespace_range(self, reference):
        root, _ = build(".namespace NS {\n  .const Y = 5\n", reference)
        child = root.find_namespace("NS")
        assert child.range.start == child.range.end
        assert child.get_symbol("Y") is not None

    def test_macro(self, reference):
        source = ".macro clear(color) {\n  lda #color\n}\n"
        root, _ = build(source, reference)
        macro = root.get_symbol("clear")
        assert macro.kind == SymbolKind.MACRO
        assert macro.params == ["color"]
        assert macro.signature == "clear(color)"

        body = root.find_namespace("clear")
        assert body.get_symbol("color").kind == SymbolKind.PARAMETER

    def test_function(self, reference):
        root, _ = build(".function add(a, b) {\n  .return a + b\n}\n", reference)
        function = root.get_symbol("add")
        assert function.kind == SymbolKind.FUNCTION
        assert function.signature == "add(a, b)"
        assert set(root.find_namespace("add").symbols) == {"A", "B"}

    def test_pseudocommand(self, reference):
        source = ".pseudocommand mov src : dst {\n  lda src\n  sta dst\n}\n"
        root, _ = build(source, reference)
        command = root.get_symbol("mov")
        assert command.kind == SymbolKind.PSEUDOCOMMAND
        assert command.params == ["src", "dst"]

    def test_callable_without_block(self, reference):
        root, _ = build(".macro broken(a)\n", reference)
        assert root.get_symbol("broken") is None
        assert root.children == []

    def test_enum(self, reference):
        root, _ = build(".enum Colors { RED, GREEN = 5, YELLOW }\n", reference)
        assert root.get_symbol("Colors").kind == SymbolKind.NAMESPACE
        members = root.find_namespace("Colors")
        assert [s.name for s in members.symbols.values()] == ["RED", "GREEN", "YELLOW"]
        assert all(s.kind == SymbolKind.CONSTANT for s in members.symbols.values())
        assert members.get_symbol("RED").value is None
        assert root.find_symbol("Colors.GREEN").value == "5"
        assert members.get_symbol("YELLOW").value is None

    def test_labels_inside_namespace(self, reference):
        root, _ = build(".namespace NS {\n  loop: nop\n}\n", reference)
        assert root.get_symbol("loop") is None
        assert root.find_symbol("NS.loop").kind == SymbolKind.LABEL


# =============================================================================
# Duplicate Definition Tests
# =============================================================================

class TestDuplicates:
    """Test duplicate definitions in one scope."""

    def test_duplicate_const(self, reference):
        """One Error diagnostic; the first value is kept."""
        root, diagnostics = build(".const X = 1\n.const X = 2\n", reference)
        assert len(diagnostics) == 1
        diagnostic = diagnostics[0]
        assert diagnostic.severity == Severity.ERROR
        assert diagnostic.message == "symbol 'X' already defined in this scope"
        assert diagnostic.source == SOURCE_SCOPE
        assert diagnostic.range.start == Position(1, 7)
        assert diagnostic.range.end == Position(1, 8)
        assert root.get_symbol("X").value == "1"

    def test_duplicate_label_case_insensitive(self, reference):
        _, diagnostics = build("loop:\nLOOP:\n", reference)
        assert len(diagnostics) == 1

    def test_label_and_const_collide(self, reference):
        _, diagnostics = build("X:\n.const X = 1\n", reference)
        assert len(diagnostics) == 1

    def test_same_name_in_other_scope(self, reference):
        source = ".const X = 1\n.namespace NS {\n  .const X = 2\n}\n"
        root, diagnostics = build(source, reference)
        assert diagnostics == []
        assert root.find_symbol("X").value == "1"
        assert root.find_symbol("NS.X").value == "2"

    def test_duplicate_namespace(self, reference):
        root, diagnostics = build(".namespace NS {\n}\n.namespace NS {\n}\n", reference)
        assert len(diagnostics) == 1
        assert [c.name for c in root.children] == ["NS", "NS"]

    def test_duplicate_parameter(self, reference):
        _, diagnostics = build(".macro m(a, a) {\n  nop\n}\n", reference)
        assert len(diagnostics) == 1
