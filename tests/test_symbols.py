# =============================================================================
# test_symbols.py - Symbol Table Unit Tests
# =============================================================================
# Tests for Scope, Symbol and name resolution, independent of parsing.
#
# Test coverage includes:
#   - Name normalization (case, trailing colon, multi-label markers)
#   - Duplicate detection at insertion
#   - Unqualified lookup through parents, shadowing
#   - One-level namespace qualification
#   - Innermost scope by line and visible symbol collection
# =============================================================================

import pytest

from c64lsp.analysis.symbols import (
    Position,
    Range,
    Scope,
    Symbol,
    SymbolKind,
    normalize_label,
)
from c64lsp.errors import DuplicateSymbolError


# =============================================================================
# Helper Functions
# =============================================================================

def symbol(name: str, kind: SymbolKind = SymbolKind.LABEL, line: int = 0, character: int = 0) -> Symbol:
    return Symbol(name=name, kind=kind, position=Position(line, character))


def lines(start: int, end: int) -> Range:
    return Range(Position(start, 0), Position(end, 1))


def make_tree() -> Scope:
    """
    root (lines 0-30)
    ├── OUTER (lines 2-20): Y, SHARED
    │   └── INNER (lines 5-10): Z
    └── OTHER (lines 22-25): W
    """
    root = Scope.root("file:///test.asm", 31)
    root.add_symbol(symbol("start"))
    root.add_symbol(symbol("SHARED", SymbolKind.CONSTANT))

    outer = root.add_child(Scope("OUTER", range=lines(2, 20)))
    outer.add_symbol(symbol("Y", SymbolKind.CONSTANT, 3))
    outer.add_symbol(symbol("SHARED", SymbolKind.VARIABLE, 4))

    inner = outer.add_child(Scope("INNER", range=lines(5, 10)))
    inner.add_symbol(symbol("Z", SymbolKind.CONSTANT, 6))

    other = root.add_child(Scope("OTHER", range=lines(22, 25)))
    other.add_symbol(symbol("W", SymbolKind.CONSTANT, 23))
    return root


# =============================================================================
# Normalization Tests
# =============================================================================

class TestNormalizeLabel:
    """Test the canonical form of symbol names."""

    @pytest.mark.parametrize("name,expected", [
        ("loop", "LOOP"),
        ("Loop:", "LOOP"),
        ("  spaced  ", "SPACED"),
        ("!next", "NEXT"),
        ("!next+", "NEXT"),
        ("!back--", "BACK"),
    ])
    def test_normalize(self, name, expected):
        assert normalize_label(name) == expected


# =============================================================================
# Insertion Tests
# =============================================================================

class TestInsertion:
    """Test adding symbols and child scopes."""

    def test_add_symbol_sets_scope(self):
        root = Scope.root()
        added = root.add_symbol(symbol("loop"))
        assert added.scope is root
        assert root.get_symbol("LOOP") is added

    def test_duplicate_raises(self):
        root = Scope.root("file:///a.asm")
        root.add_symbol(symbol("X", SymbolKind.CONSTANT, 0, 7))
        with pytest.raises(DuplicateSymbolError) as exc_info:
            root.add_symbol(symbol("x", SymbolKind.CONSTANT, 1, 7))
        assert exc_info.value.reason == "symbol 'x' already defined in this scope"
        assert exc_info.value.original_location.line == 1

    def test_duplicate_keeps_original(self):
        root = Scope.root()
        first = root.add_symbol(Symbol("X", SymbolKind.CONSTANT, Position(0, 0), value="1"))
        with pytest.raises(DuplicateSymbolError):
            root.add_symbol(Symbol("X", SymbolKind.CONSTANT, Position(1, 0), value="2"))
        assert root.get_symbol("X") is first
        assert root.get_symbol("X").value == "1"

    def test_same_name_in_different_scopes(self):
        root = make_tree()
        assert root.get_symbol("SHARED").kind == SymbolKind.CONSTANT
        assert root.find_namespace("OUTER").get_symbol("SHARED").kind == SymbolKind.VARIABLE

    def test_add_child_links_parent(self):
        root = Scope.root("file:///a.asm")
        child = root.add_child(Scope("NS"))
        assert child.parent is root
        assert child.uri == "file:///a.asm"
        assert not child.is_root
        assert root.is_root

    def test_root_range(self):
        root = Scope.root("", 10)
        assert root.range.start == Position(0, 0)
        assert root.range.end == Position(9, 0)

    def test_symbol_key(self):
        assert symbol("loop:").key == "LOOP"


# =============================================================================
# Lookup Tests
# =============================================================================

class TestLookup:
    """Test name resolution."""

    def test_case_insensitive(self):
        root = make_tree()
        assert root.find_symbol("START") is root.find_symbol("start")

    def test_parent_walk(self):
        root = make_tree()
        inner = root.find_namespace("OUTER").find_namespace("INNER")
        assert inner.find_symbol("Z").name == "Z"
        assert inner.find_symbol("Y").name == "Y"
        assert inner.find_symbol("start").name == "start"

    def test_shadowing(self):
        """The nearest definition wins."""
        root = make_tree()
        inner = root.find_namespace("OUTER").find_namespace("INNER")
        assert inner.find_symbol("SHARED").kind == SymbolKind.VARIABLE
        assert root.find_symbol("SHARED").kind == SymbolKind.CONSTANT

    def test_children_not_searched(self):
        root = make_tree()
        assert root.find_symbol("Y") is None
        assert root.find_symbol("W") is None

    def test_qualified(self):
        root = make_tree()
        assert root.find_symbol("OUTER.Y").name == "Y"
        assert root.find_symbol("outer.y").name == "Y"

    def test_qualified_does_not_walk_parents(self):
        """A.B only looks in A's own symbols."""
        root = make_tree()
        assert root.find_symbol("OUTER.start") is None

    def test_qualified_single_level(self):
        root = make_tree()
        assert root.find_symbol("OUTER.INNER.Z") is None

    def test_unknown_namespace(self):
        assert make_tree().find_symbol("NOPE.Y") is None

    def test_find_namespace_direct_children_only(self):
        root = make_tree()
        assert root.find_namespace("INNER") is None
        assert root.find_namespace("outer") is not None


# =============================================================================
# Position Queries
# =============================================================================

class TestPositionQueries:
    """Test line-based scope queries."""

    @pytest.mark.parametrize("line,expected", [
        (0, "root"),
        (3, "OUTER"),
        (7, "INNER"),
        (15, "OUTER"),
        (23, "OTHER"),
        (28, "root"),
    ])
    def test_innermost_scope(self, line, expected):
        assert make_tree().find_innermost_scope(line).name == expected

    def test_range_ends_inclusive(self):
        root = make_tree()
        assert root.find_innermost_scope(5).name == "INNER"
        assert root.find_innermost_scope(10).name == "INNER"

    def test_visible_symbols_inner_first(self):
        visible = make_tree().find_all_visible_symbols(7)
        names = [s.name for s in visible]
        assert names[0] == "Z"
        assert set(names) == {"Z", "Y", "SHARED", "start"}
        assert names.count("SHARED") == 2
        assert "W" not in names

    def test_iter_scopes_preorder(self):
        assert [s.name for s in make_tree().iter_scopes()] == ["root", "OUTER", "INNER", "OTHER"]

    def test_reset_usage(self):
        root = make_tree()
        for sym in root.iter_symbols():
            sym.usage_count = 3
        root.reset_usage()
        assert all(sym.usage_count == 0 for sym in root.iter_symbols())

    def test_range_to_lsp(self):
        assert Range.span(2, 4, 3).to_lsp() == {
            "start": {"line": 2, "character": 4},
            "end": {"line": 2, "character": 7},
        }
