"""
c64lsp - Analysis Core for a 6510 / Kick Assembler Language Server
==================================================================

Turns Commodore 64 assembly source into what an editor needs: a token
stream aware of the construct each token sits in, a syntax tree, a
hierarchical symbol table with namespace-qualified lookup, and
diagnostics (syntax errors, duplicate and unused symbols).

Main Components
---------------
- **reference**: Reference Context, the static tables of mnemonics,
    directives, built-in functions and constants, and the memory map

- **analysis**: lexer, parser, scope builder and semantic analyzer,
    with ``parse_document`` as the entry point

- **cli**: ``c64lsp-check``, a command-line checker

Quick Start
-----------
    >>> from c64lsp import ReferenceContext, parse_document
    >>> ctx = ReferenceContext.from_directory("data/")
    >>> scope, diagnostics = parse_document("file:///main.asm", source, ctx)
    >>> for d in diagnostics:
    ...     print(d)

Or from the command line:
    $ c64lsp-check --data-dir data/ main.asm
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from c64lsp.analysis import (
    Diagnostic,
    Scope,
    Severity,
    Symbol,
    SymbolKind,
    analyze_document,
    parse_document,
    parse_document_cached,
)
from c64lsp.config import AnalyzerConfig
from c64lsp.errors import (
    AnalysisError,
    C64LspError,
    ContextNotLoadedError,
    DuplicateSymbolError,
    ReferenceDataError,
    SourceLocation,
)
from c64lsp.reference import (
    ReferenceContext,
    get_context,
    install_context,
    load_context,
)

__all__ = [
    "__version__",
    # Analysis
    "parse_document",
    "parse_document_cached",
    "analyze_document",
    "Diagnostic",
    "Severity",
    "Scope",
    "Symbol",
    "SymbolKind",
    # Configuration
    "AnalyzerConfig",
    # Reference data
    "ReferenceContext",
    "install_context",
    "load_context",
    "get_context",
    # Errors
    "C64LspError",
    "ReferenceDataError",
    "ContextNotLoadedError",
    "AnalysisError",
    "DuplicateSymbolError",
    "SourceLocation",
]
