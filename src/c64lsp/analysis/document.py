"""
Document Analysis Entry Point
=============================

Runs the full pipeline for one document:

    text -> ContextAwareLexer -> ContextAwareParser -> Program
         -> ScopeBuilder -> Scope tree
         -> SemanticAnalyzer -> usage counts, warnings

``parse_document`` returns the root scope and every diagnostic, in stage
order: syntax errors, then duplicate definitions, then analyzer warnings.
It never raises for any input text.

The Reference Context is passed explicitly; when omitted, the process-wide
instance (``install_context``) is used. Without either, the document gets
an empty root scope and a single Error diagnostic.

Caching
-------
Editors re-send unchanged text often. ``parse_document_cached`` keeps the
last result per URI, keyed by a SHA-256 digest of the text, and returns it
while the text is unchanged. A cached result shares its Scope tree with
every caller, so callers must not mutate it.
"""

import hashlib
import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Optional

from c64lsp.analysis.analyzer import SemanticAnalyzer
from c64lsp.analysis.ast import Program
from c64lsp.analysis.diagnostics import SOURCE_SCOPE, Diagnostic, Severity
from c64lsp.analysis.lexer import ContextAwareLexer
from c64lsp.analysis.parser import ContextAwareParser
from c64lsp.analysis.scope_builder import ScopeBuilder
from c64lsp.analysis.symbols import Position, Range, Scope
from c64lsp.analysis.tokens import Token
from c64lsp.config import AnalyzerConfig
from c64lsp.reference.context import ReferenceContext, get_context

logger = logging.getLogger(__name__)

MISSING_CONTEXT_MESSAGE = "Internal error: ProcessorContext not initialized"


@dataclass
class DocumentAnalysis:
    """
    Everything produced while analyzing one document.

    Attributes:
        uri: Document identifier
        program: Syntax tree (None if analysis could not start)
        scope: Root of the Scope tree
        tokens: Full token stream, comments included
        diagnostics: All diagnostics in stage order
    """
    uri: str
    program: Optional[Program]
    scope: Scope
    tokens: list[Token] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.is_error]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.WARNING]

    @property
    def has_errors(self) -> bool:
        return any(d.is_error for d in self.diagnostics)


def _missing_context(uri: str) -> DocumentAnalysis:
    logger.error(f"No reference context available for {uri}")
    diagnostic = Diagnostic(
        Severity.ERROR,
        Range(Position(0, 0), Position(0, 0)),
        MISSING_CONTEXT_MESSAGE,
        SOURCE_SCOPE,
    )
    return DocumentAnalysis(uri=uri, program=None, scope=Scope.root(uri), diagnostics=[diagnostic])


def analyze_document(
    uri: str,
    text: str,
    context: Optional[ReferenceContext] = None,
    config: Optional[AnalyzerConfig] = None,
) -> DocumentAnalysis:
    """
    Analyze one document and keep every intermediate result.

    Args:
        uri: Document identifier, recorded on the scopes
        text: Full document text
        context: Reference Context (default: the installed one)
        config: Analyzer settings (default: AnalyzerConfig())

    Returns:
        DocumentAnalysis with tree, scopes, tokens and diagnostics
    """
    context = context if context is not None else get_context()
    if context is None:
        return _missing_context(uri)
    config = config or AnalyzerConfig()

    logger.debug(f"Analyzing {uri} ({len(text)} characters)")

    lexer = ContextAwareLexer(
        text, context, max_depth=config.max_nesting_depth, debug_mode=config.debug_mode,
    )
    parser = ContextAwareParser(
        lexer, max_depth=config.max_nesting_depth, debug_mode=config.debug_mode,
    )
    program = parser.parse_program()

    builder = ScopeBuilder(uri, text.count("\n") + 1, debug_mode=config.debug_mode)
    scope = builder.build(program)

    analyzer = SemanticAnalyzer(scope, text, config)
    warnings = analyzer.analyze(program)

    diagnostics = parser.diagnostics + builder.diagnostics + warnings
    logger.debug(f"{uri}: {len(parser.diagnostics)} syntax, "
                 f"{len(builder.diagnostics)} definition, {len(warnings)} analyzer diagnostics")

    return DocumentAnalysis(
        uri=uri,
        program=program,
        scope=scope,
        tokens=parser.tokens,
        diagnostics=diagnostics,
    )


def parse_document(
    uri: str,
    text: str,
    context: Optional[ReferenceContext] = None,
    config: Optional[AnalyzerConfig] = None,
) -> tuple[Scope, list[Diagnostic]]:
    """
    Analyze one document.

    Returns:
        Tuple of (root scope, diagnostics)
    """
    analysis = analyze_document(uri, text, context, config)
    return analysis.scope, analysis.diagnostics


# =============================================================================
# Cache
# =============================================================================

def content_digest(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class ParseCache:
    """
    Last analysis per URI, reused while the text digest is unchanged.

    Results also depend on the Reference Context and configuration; the
    cache compares them by identity and equality respectively.
    """

    def __init__(self) -> None:
        self._entries: dict[str, tuple[str, int, AnalyzerConfig, DocumentAnalysis]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def analyze(
        self,
        uri: str,
        text: str,
        context: Optional[ReferenceContext] = None,
        config: Optional[AnalyzerConfig] = None,
    ) -> DocumentAnalysis:
        context = context if context is not None else get_context()
        config = config or AnalyzerConfig()
        digest = content_digest(text)

        with self._lock:
            entry = self._entries.get(uri)
            if entry is not None:
                cached_digest, context_id, cached_config, analysis = entry
                if cached_digest == digest and context_id == id(context) and cached_config == config:
                    self.hits += 1
                    logger.debug(f"Parse cache hit for {uri}")
                    return analysis

        analysis = analyze_document(uri, text, context, config)

        with self._lock:
            self.misses += 1
            if analysis.program is not None:
                self._entries[uri] = (digest, id(context), replace(config), analysis)
        return analysis

    def invalidate(self, uri: str) -> None:
        with self._lock:
            self._entries.pop(uri, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0


_cache = ParseCache()


def parse_document_cached(
    uri: str,
    text: str,
    context: Optional[ReferenceContext] = None,
    config: Optional[AnalyzerConfig] = None,
) -> tuple[Scope, list[Diagnostic]]:
    """``parse_document`` through the module-level ParseCache."""
    analysis = _cache.analyze(uri, text, context, config)
    return analysis.scope, analysis.diagnostics


def clear_parse_cache() -> None:
    _cache.clear()


def get_parse_cache() -> ParseCache:
    return _cache
