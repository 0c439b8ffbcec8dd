"""
Document Outline
================

Converts a Scope tree into nested outline records in the shape of LSP
``DocumentSymbol`` (``textDocument/documentSymbol``).

A symbol that owns a child scope (a namespace, enum or callable) appears
once, with the child scope's symbols as its children. Child scopes without
an owning symbol (e.g. after a duplicate namespace) appear as namespaces.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from c64lsp.analysis.symbols import Position, Range, Scope, Symbol, SymbolKind

# LSP SymbolKind numbers
LSP_NAMESPACE = 3
LSP_FUNCTION = 12
LSP_VARIABLE = 13
LSP_CONSTANT = 14
LSP_FILE = 1

LSP_SYMBOL_KINDS = {
    SymbolKind.CONSTANT: LSP_CONSTANT,
    SymbolKind.VARIABLE: LSP_VARIABLE,
    SymbolKind.LABEL: LSP_VARIABLE,
    SymbolKind.FUNCTION: LSP_FUNCTION,
    SymbolKind.MACRO: LSP_FUNCTION,
    SymbolKind.PSEUDOCOMMAND: LSP_FUNCTION,
    SymbolKind.NAMESPACE: LSP_NAMESPACE,
    SymbolKind.PARAMETER: LSP_VARIABLE,
}


@dataclass
class OutlineSymbol:
    """One entry of the document outline."""
    name: str
    kind: int
    range: Range
    selection_range: Range
    detail: str = ""
    children: list["OutlineSymbol"] = field(default_factory=list)

    def to_lsp(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "kind": self.kind,
            "range": self.range.to_lsp(),
            "selectionRange": self.selection_range.to_lsp(),
            "children": [child.to_lsp() for child in self.children],
        }
        if self.detail:
            result["detail"] = self.detail
        return result


def lsp_symbol_kind(kind: SymbolKind) -> int:
    return LSP_SYMBOL_KINDS.get(kind, LSP_FILE)


def _owned_scope(symbol: Symbol, scope: Scope, claimed: set[int]) -> Optional[Scope]:
    """The unclaimed child scope defined by ``symbol``, if any."""
    for child in scope.children:
        if id(child) in claimed or child.name != symbol.name:
            continue
        if child.range.start == symbol.position:
            return child
    return None


def document_symbols(scope: Scope) -> list[OutlineSymbol]:
    """
    Outline of a scope: its symbols in definition order, each with the
    contents of the child scope it defines.
    """
    outline: list[OutlineSymbol] = []
    claimed: set[int] = set()

    for symbol in scope.symbols.values():
        name_range = Range.span(symbol.position.line, symbol.position.character, len(symbol.name))
        entry = OutlineSymbol(
            name=symbol.name,
            kind=lsp_symbol_kind(symbol.kind),
            range=name_range,
            selection_range=name_range,
            detail=symbol.value or symbol.signature,
        )

        child = _owned_scope(symbol, scope, claimed)
        if child is not None:
            claimed.add(id(child))
            end = child.range.end
            # Unterminated blocks end at their start; keep the name covered
            if (end.line, end.character) < (name_range.end.line, name_range.end.character):
                end = name_range.end
            entry.range = Range(child.range.start, end)
            entry.children = document_symbols(child)
        outline.append(entry)

    for child in scope.children:
        if id(child) in claimed:
            continue
        start = child.range.start
        outline.append(OutlineSymbol(
            name=child.name,
            kind=LSP_NAMESPACE,
            range=child.range,
            selection_range=Range(start, Position(start.line, start.character + len(child.name))),
            children=document_symbols(child),
        ))

    return outline
