"""
Symbols and Scopes
==================

The hierarchical symbol table built from a parsed document.

A Scope owns its symbols and its child scopes; the root scope covers the
whole document, and every ``.namespace``, ``.enum``, ``.function``,
``.macro`` and ``.pseudocommand`` block adds a child. Parents are plain
back-references.

Name Resolution
---------------
Symbol names are normalized before they are stored or looked up
(``normalize_label``), so resolution is case-insensitive and ignores a
trailing colon or a multi-label ``!`` prefix.

- Unqualified ``X``: the scope's own symbols, then each parent up to the
  root. The nearest definition shadows outer ones.
- Qualified ``A.B``: a direct child scope named ``A``, then ``B`` among
  that child's own symbols only. One level of qualification is resolved;
  ``A.B.C`` is not found.

Positions and ranges are 0-based (LSP convention); the lexer's 1-based
line/column are converted when symbols are created.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Optional

from c64lsp.errors import DuplicateSymbolError, SourceLocation


# =============================================================================
# Positions
# =============================================================================

@dataclass(frozen=True)
class Position:
    """A 0-based line / character position."""
    line: int
    character: int

    def to_lsp(self) -> dict[str, int]:
        return {"line": self.line, "character": self.character}


@dataclass(frozen=True)
class Range:
    """A 0-based start / end position pair."""
    start: Position
    end: Position

    @classmethod
    def span(cls, line: int, character: int, length: int) -> "Range":
        """A single-line range of ``length`` characters."""
        return cls(Position(line, character), Position(line, character + length))

    def contains_line(self, line: int) -> bool:
        """True if ``line`` lies within the range (both ends inclusive)."""
        return self.start.line <= line <= self.end.line

    def to_lsp(self) -> dict[str, Any]:
        return {"start": self.start.to_lsp(), "end": self.end.to_lsp()}


# =============================================================================
# Symbols
# =============================================================================

class SymbolKind(Enum):
    """Kinds of user-defined symbols."""
    CONSTANT = "Constant"
    VARIABLE = "Variable"
    LABEL = "Label"
    FUNCTION = "Function"
    MACRO = "Macro"
    PSEUDOCOMMAND = "PseudoCommand"
    NAMESPACE = "Namespace"
    PARAMETER = "Parameter"

    def __str__(self) -> str:
        return self.value


def normalize_label(name: str) -> str:
    """
    Canonical form of a symbol name for storage and lookup.

    Strips whitespace, a leading ``!`` (multi-label), a trailing ``:``
    and trailing ``+``/``-`` (multi-label references), then upper-cases.

    >>> normalize_label("loop:")
    'LOOP'
    >>> normalize_label("!next+")
    'NEXT'
    """
    name = name.strip()
    if name.startswith("!"):
        name = name[1:]
    if name.endswith(":"):
        name = name[:-1]
    name = name.rstrip("+-")
    return name.upper()


@dataclass(eq=False)
class Symbol:
    """
    A user-defined name.

    Attributes:
        name: Name as written at the definition
        kind: What the name denotes
        position: Definition position (0-based)
        value: Literal value text, if the definition has one
        usage_count: References found by the semantic analyzer
        scope: The scope the symbol belongs to
        params: Parameter names (functions, macros, pseudocommands)
        signature: ``name(a, b)`` for callables, empty otherwise
    """
    name: str
    kind: SymbolKind
    position: Position
    value: Optional[str] = None
    usage_count: int = 0
    scope: Optional["Scope"] = field(default=None, repr=False)
    params: list[str] = field(default_factory=list)
    signature: str = ""

    @property
    def key(self) -> str:
        return normalize_label(self.name)

    def location(self, filename: str = "<input>") -> SourceLocation:
        """1-based SourceLocation of the definition."""
        return SourceLocation(filename, self.position.line + 1, self.position.character + 1)


# =============================================================================
# Scopes
# =============================================================================

class Scope:
    """
    A named region of the document with its own symbol table.

    Usage:
        root = Scope.root("file:///main.asm")
        ns = root.add_child(Scope("NS", range=Range(...)))
        ns.add_symbol(Symbol("Y", SymbolKind.CONSTANT, Position(1, 8)))
        root.find_symbol("NS.Y")
    """

    ROOT_NAME = "root"

    def __init__(
        self,
        name: str,
        parent: Optional["Scope"] = None,
        range: Optional[Range] = None,
        uri: str = "",
    ):
        self.name = name
        self.parent = parent
        self.range = range or Range(Position(0, 0), Position(0, 0))
        self.uri = uri
        self.symbols: dict[str, Symbol] = {}
        self.children: list[Scope] = []

    @classmethod
    def root(cls, uri: str = "", line_count: int = 0) -> "Scope":
        """An empty root scope covering ``line_count`` lines."""
        end_line = max(line_count - 1, 0)
        return cls(cls.ROOT_NAME, range=Range(Position(0, 0), Position(end_line, 0)), uri=uri)

    def __repr__(self) -> str:
        return f"Scope({self.name!r}, symbols={len(self.symbols)}, children={len(self.children)})"

    @property
    def is_root(self) -> bool:
        return self.parent is None

    # =========================================================================
    # Construction
    # =========================================================================

    def add_symbol(self, symbol: Symbol) -> Symbol:
        """
        Insert a symbol into this scope.

        Raises:
            DuplicateSymbolError: If a symbol with the same normalized
                name already exists here (the existing entry is kept)
        """
        key = symbol.key
        existing = self.symbols.get(key)
        if existing is not None:
            raise DuplicateSymbolError(
                symbol.name,
                location=symbol.location(self.uri or "<input>"),
                original_location=existing.location(self.uri or "<input>"),
            )
        symbol.scope = self
        self.symbols[key] = symbol
        return symbol

    def add_child(self, child: "Scope") -> "Scope":
        """Attach a child scope and return it."""
        child.parent = self
        if not child.uri:
            child.uri = self.uri
        self.children.append(child)
        return child

    # =========================================================================
    # Lookup
    # =========================================================================

    def get_symbol(self, name: str) -> Optional[Symbol]:
        """A symbol defined directly in this scope."""
        return self.symbols.get(normalize_label(name))

    def find_namespace(self, name: str) -> Optional["Scope"]:
        """Direct child scope with the given name (first match)."""
        key = normalize_label(name)
        for child in self.children:
            if normalize_label(child.name) == key:
                return child
        return None

    def child_at(self, name: str, start: Position) -> Optional["Scope"]:
        """
        Direct child scope opened by the definition of ``name`` at ``start``.

        Unlike find_namespace, this tells apart several bodies of the same
        name (a reopened ``.namespace``).
        """
        key = normalize_label(name)
        for child in self.children:
            if child.range.start == start and normalize_label(child.name) == key:
                return child
        return None

    def find_symbol(self, name: str) -> Optional[Symbol]:
        """
        Resolve a name from this scope.

        ``A.B`` looks for child scope ``A`` and then ``B`` in it; anything
        else walks outwards through the parents.
        """
        bare = name.strip()
        if "." in bare.strip("."):
            namespace, member = bare.split(".", 1)
            child = self.find_namespace(namespace)
            if child is None:
                return None
            return child.symbols.get(normalize_label(member))

        key = normalize_label(bare)
        scope: Optional[Scope] = self
        while scope is not None:
            symbol = scope.symbols.get(key)
            if symbol is not None:
                return symbol
            scope = scope.parent
        return None

    def find_innermost_scope(self, line: int) -> "Scope":
        """
        The deepest scope whose range contains ``line`` (0-based).

        Descends into the first child that contains the line. With
        overlapping child ranges the result depends on child order.
        """
        scope = self
        while True:
            for child in scope.children:
                if child.range.contains_line(line):
                    scope = child
                    break
            else:
                return scope

    def find_all_visible_symbols(self, line: int) -> list[Symbol]:
        """
        Symbols visible at ``line``: the innermost scope's symbols, then
        each ancestor's. Shadowed names appear once per scope level.
        """
        visible: list[Symbol] = []
        scope: Optional[Scope] = self.find_innermost_scope(line)
        while scope is not None:
            visible.extend(scope.symbols.values())
            scope = scope.parent
        return visible

    # =========================================================================
    # Traversal
    # =========================================================================

    def iter_scopes(self) -> Iterator["Scope"]:
        """This scope and all descendants, depth first, pre-order."""
        stack: list[Scope] = [self]
        while stack:
            scope = stack.pop()
            yield scope
            stack.extend(reversed(scope.children))

    def iter_symbols(self) -> Iterator[Symbol]:
        """Every symbol in this scope and its descendants."""
        for scope in self.iter_scopes():
            yield from scope.symbols.values()

    def reset_usage(self) -> None:
        """Zero every usage counter in the subtree."""
        for symbol in self.iter_symbols():
            symbol.usage_count = 0
