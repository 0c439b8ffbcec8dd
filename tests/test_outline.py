# =============================================================================
# test_outline.py - Document Outline Tests
# =============================================================================
# Tests for converting Scope trees into nested outline symbols.
# =============================================================================

from c64lsp.analysis.document import parse_document
from c64lsp.analysis.outline import (
    LSP_CONSTANT,
    LSP_FUNCTION,
    LSP_NAMESPACE,
    LSP_VARIABLE,
    document_symbols,
    lsp_symbol_kind,
)
from c64lsp.analysis.symbols import Position, Range, SymbolKind


# =============================================================================
# Helper Functions
# =============================================================================

def outline(source: str, reference):
    scope, _ = parse_document("file:///test.asm", source, reference)
    return document_symbols(scope)


def names(symbols) -> list[str]:
    return [s.name for s in symbols]


# =============================================================================
# Outline Tests
# =============================================================================

class TestDocumentSymbols:
    """Test outline structure and kinds."""

    def test_flat_symbols(self, reference):
        symbols = outline(".const X = 1\nstart:\n  jmp start\n", reference)
        assert names(symbols) == ["X", "start"]
        assert symbols[0].kind == LSP_CONSTANT
        assert symbols[0].detail == "1"
        assert symbols[1].kind == LSP_VARIABLE
        assert symbols[1].detail == ""
        assert symbols[1].range == Range(Position(1, 0), Position(1, 5))

    def test_namespace_children(self, reference):
        symbols = outline(".namespace NS {\n  .const Y = 5\n}\n", reference)
        assert names(symbols) == ["NS"]
        namespace = symbols[0]
        assert namespace.kind == LSP_NAMESPACE
        assert namespace.range == Range(Position(0, 11), Position(2, 1))
        assert namespace.selection_range == Range(Position(0, 11), Position(0, 13))
        assert names(namespace.children) == ["Y"]

    def test_macro_parameters(self, reference):
        symbols = outline(".macro clear(color) {\n  lda #color\n}\n", reference)
        macro = symbols[0]
        assert macro.kind == LSP_FUNCTION
        assert macro.detail == "clear(color)"
        assert names(macro.children) == ["color"]
        assert macro.children[0].kind == LSP_VARIABLE

    def test_enum_members(self, reference):
        symbols = outline(".enum Colors { RED, GREEN = 5 }\n", reference)
        assert names(symbols[0].children) == ["RED", "GREEN"]
        assert symbols[0].children[1].detail == "5"

    def test_nested_namespaces(self, reference):
        source = ".namespace A {\n  .namespace B {\n    .const C = 1\n  }\n}\n"
        symbols = outline(source, reference)
        assert names(symbols) == ["A"]
        assert names(symbols[0].children) == ["B"]
        assert names(symbols[0].children[0].children) == ["C"]

    def test_duplicate_namespace(self, reference):
        """The second scope has no symbol of its own but is still listed."""
        source = ".namespace NS {\n  a: nop\n}\n.namespace NS {\n  b: nop\n}\n"
        symbols = outline(source, reference)
        assert names(symbols) == ["NS", "NS"]
        assert names(symbols[0].children) == ["a"]
        assert names(symbols[1].children) == ["b"]
        assert symbols[1].kind == LSP_NAMESPACE
        assert symbols[1].selection_range == Range(Position(3, 11), Position(3, 13))

    def test_unterminated_block_covers_name(self, reference):
        symbols = outline(".namespace NS {\n  .const Y = 5\n", reference)
        assert symbols[0].range == Range(Position(0, 11), Position(0, 13))
        assert names(symbols[0].children) == ["Y"]

    def test_empty_document(self, reference):
        assert outline("", reference) == []


class TestLspShape:
    """Test conversion to LSP DocumentSymbol dicts."""

    def test_to_lsp(self, reference):
        symbol = outline(".namespace NS {\n  .const Y = 5\n}\n", reference)[0]
        data = symbol.to_lsp()
        assert data["name"] == "NS"
        assert data["kind"] == LSP_NAMESPACE
        assert data["range"]["start"] == {"line": 0, "character": 11}
        assert data["selectionRange"]["end"] == {"line": 0, "character": 13}
        assert "detail" not in data
        assert data["children"][0]["detail"] == "5"

    def test_symbol_kinds(self):
        assert lsp_symbol_kind(SymbolKind.PSEUDOCOMMAND) == LSP_FUNCTION
        assert lsp_symbol_kind(SymbolKind.PARAMETER) == LSP_VARIABLE
        assert lsp_symbol_kind(SymbolKind.CONSTANT) == LSP_CONSTANT
