"""
Analysis Core
=============

Source text to tokens, syntax tree, scopes and diagnostics.

Pipeline
--------
- **lexer**: ContextAwareLexer, tokens tagged with their lexical context
- **parser**: ContextAwareParser, Pratt-style expressions, syntax errors
- **scope_builder**: hierarchical symbol table, duplicate definitions
- **analyzer**: usage counting, unused-symbol warnings
- **document**: ``parse_document`` runs all of the above

Editor features built on the results:

- **outline**: document symbols
- **semantic_tokens**: LSP semantic token encoding

Quick Start
-----------
    >>> from c64lsp.analysis import parse_document
    >>> scope, diagnostics = parse_document("file:///a.asm", source, ctx)
    >>> scope.find_symbol("NS.Y").value
    '5'
"""

from c64lsp.analysis.analyzer import SemanticAnalyzer, is_in_comment
from c64lsp.analysis.diagnostics import Diagnostic, Severity
from c64lsp.analysis.document import (
    DocumentAnalysis,
    ParseCache,
    analyze_document,
    clear_parse_cache,
    parse_document,
    parse_document_cached,
)
from c64lsp.analysis.lexer import ContextAwareLexer
from c64lsp.analysis.outline import OutlineSymbol, document_symbols
from c64lsp.analysis.parser import ContextAwareParser, Precedence
from c64lsp.analysis.scope_builder import ScopeBuilder, build_scope
from c64lsp.analysis.symbols import (
    Position,
    Range,
    Scope,
    Symbol,
    SymbolKind,
    normalize_label,
)
from c64lsp.analysis.tokens import LexerContext, LexerState, Token, TokenType

__all__ = [
    # Pipeline
    "ContextAwareLexer",
    "ContextAwareParser",
    "Precedence",
    "ScopeBuilder",
    "build_scope",
    "SemanticAnalyzer",
    "is_in_comment",
    # Entry points
    "parse_document",
    "parse_document_cached",
    "clear_parse_cache",
    "analyze_document",
    "DocumentAnalysis",
    "ParseCache",
    # Results
    "Diagnostic",
    "Severity",
    "Scope",
    "Symbol",
    "SymbolKind",
    "Position",
    "Range",
    "normalize_label",
    "document_symbols",
    "OutlineSymbol",
    # Tokens
    "Token",
    "TokenType",
    "LexerState",
    "LexerContext",
]
