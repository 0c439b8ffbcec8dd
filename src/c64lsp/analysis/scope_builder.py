"""
Scope Builder
=============

Walks a parsed Program and builds the document's Scope tree.

Definitions
-----------
========================  ==================  ==========================
Statement                 Symbol kind         Child scope
========================  ==================  ==========================
``name:``                 LABEL               -
``.label NAME``           LABEL               -
``.const NAME = v``       CONSTANT            -
``.var NAME = v``         VARIABLE            -
``.define NAME``          CONSTANT            -
``.function f(a) { }``    FUNCTION            ``f`` holding PARAMETER a
``.macro m(a) { }``       MACRO               ``m`` holding PARAMETER a
``.pseudocommand p a { }`` PSEUDOCOMMAND      ``p`` holding PARAMETER a
``.namespace NS { }``     NAMESPACE           ``NS``
``.enum E { A, B = 2 }``  NAMESPACE           ``E`` holding CONSTANT A, B
========================  ==================  ==========================

``.const`` and ``.var`` without a value define nothing. Callables,
namespaces and enums define nothing without their block. Multi-labels
(``!name:``) are anonymous and never enter the table. Blocks of ``.if``,
``.for`` and bare ``{ }`` add their definitions to the enclosing scope.

A child scope's range starts at the defining name and ends at the closing
``}``; an unterminated block ends where it started.

A second definition of a name in the same scope is reported as an Error
diagnostic; the first definition is kept.
"""

import logging
from typing import Optional

from c64lsp.analysis.ast import (
    ASTVisitor,
    BlockStatement,
    DirectiveStatement,
    ExpressionStatement,
    InstructionStatement,
    LabelStatement,
    Program,
    format_expression,
)
from c64lsp.analysis.diagnostics import SOURCE_SCOPE, Diagnostic, Severity
from c64lsp.analysis.symbols import Position, Range, Scope, Symbol, SymbolKind
from c64lsp.analysis.tokens import Token, TokenType
from c64lsp.errors import DuplicateSymbolError

logger = logging.getLogger(__name__)


VALUE_DIRECTIVES = {
    ".const": SymbolKind.CONSTANT,
    ".var": SymbolKind.VARIABLE,
}

CALLABLE_DIRECTIVES = {
    ".function": SymbolKind.FUNCTION,
    ".macro": SymbolKind.MACRO,
    ".pseudocommand": SymbolKind.PSEUDOCOMMAND,
}

DEFINE_DIRECTIVES = frozenset({".define", "#define"})


class ScopeBuilder(ASTVisitor):
    """
    Builds the Scope tree for one document.

    Usage:
        builder = ScopeBuilder("file:///main.asm", line_count=120)
        root = builder.build(program)
        for diagnostic in builder.diagnostics:
            print(diagnostic)
    """

    def __init__(self, uri: str = "", line_count: int = 0, *, debug_mode: bool = False):
        self.root = Scope.root(uri, line_count)
        self.debug_mode = debug_mode
        self.diagnostics: list[Diagnostic] = []
        self._scope = self.root

    def build(self, program: Program) -> Scope:
        self.visit(program)
        return self.root

    # =========================================================================
    # Statements
    # =========================================================================

    def visit_label_statement(self, node: LabelStatement) -> None:
        if node.name.startswith("!"):
            return
        self._define(node.name, SymbolKind.LABEL, node.token)

    def visit_instruction_statement(self, node: InstructionStatement) -> None:
        pass

    def visit_expression_statement(self, node: ExpressionStatement) -> None:
        pass

    def visit_block_statement(self, node: BlockStatement) -> None:
        for statement in node.statements:
            self.visit(statement)

    def visit_directive_statement(self, node: DirectiveStatement) -> None:
        if node.name is None:
            # .if, .for, .pc and friends: body belongs to the current scope
            if node.block is not None:
                self.visit(node.block)
            return

        directive = node.directive
        name = node.name.value

        if directive in VALUE_DIRECTIVES:
            if node.value is not None:
                self._define(name, VALUE_DIRECTIVES[directive], node.name.token,
                             value=format_expression(node.value))
        elif directive == ".label":
            value = format_expression(node.value) if node.value is not None else None
            self._define(name, SymbolKind.LABEL, node.name.token, value=value)
        elif directive in DEFINE_DIRECTIVES:
            self._define(name, SymbolKind.CONSTANT, node.name.token)
        elif directive in CALLABLE_DIRECTIVES:
            self._build_callable(node, CALLABLE_DIRECTIVES[directive])
        elif directive == ".namespace":
            self._build_namespace(node)
        elif directive == ".enum":
            self._build_enum(node)
        elif node.block is not None:
            self.visit(node.block)

    # =========================================================================
    # Scoped Definitions
    # =========================================================================

    def _build_callable(self, node: DirectiveStatement, kind: SymbolKind) -> None:
        """``.function`` / ``.macro`` / ``.pseudocommand``"""
        if node.block is None:
            return

        name = node.name.value
        params = [param.value for param in node.parameters]
        self._define(name, kind, node.name.token, params=params,
                     signature=f"{name}({', '.join(params)})")

        child = self._open_scope(node)
        for param in node.parameters:
            self._define_in(child, param.value, SymbolKind.PARAMETER, param.token)
        self._visit_in(child, node.block)

    def _build_namespace(self, node: DirectiveStatement) -> None:
        if node.block is None:
            return
        self._define(node.name.value, SymbolKind.NAMESPACE, node.name.token)
        self._visit_in(self._open_scope(node), node.block)

    def _build_enum(self, node: DirectiveStatement) -> None:
        """Enum members become constants of a scope named after the enum."""
        if node.block is None:
            return
        self._define(node.name.value, SymbolKind.NAMESPACE, node.name.token)

        child = self._open_scope(node)
        values = self._enum_values(node)
        for index, member in enumerate(node.parameters):
            self._define_in(child, member.value, SymbolKind.CONSTANT, member.token,
                            value=values.get(index))

    @staticmethod
    def _enum_values(node: DirectiveStatement) -> dict[int, str]:
        """
        Map member index to value text.

        Explicit values are stored in source order; each belongs to the
        last member written before it.
        """
        if node.value is None:
            return {}

        members = node.parameters
        values: dict[int, str] = {}
        for element in node.value.elements:
            position = (element.line, element.column)
            owner: Optional[int] = None
            for index, member in enumerate(members):
                if (member.line, member.column) < position:
                    owner = index
            if owner is not None and owner not in values:
                values[owner] = format_expression(element)
        return values

    def _open_scope(self, node: DirectiveStatement) -> Scope:
        """Create and attach the child scope for a named block."""
        name_token = node.name.token
        start = Position(name_token.line - 1, name_token.column - 1)
        end = start
        end_token = node.block.end_token if node.block is not None else None
        if end_token is not None and end_token.type != TokenType.EOF:
            end = Position(end_token.line - 1, end_token.column)

        if self.debug_mode:
            logger.debug(f"Creating scope '{node.name.value}' for {node.directive} "
                         f"(lines {start.line + 1}-{end.line + 1})")

        child = Scope(node.name.value, range=Range(start, end), uri=self._scope.uri)
        return self._scope.add_child(child)

    def _visit_in(self, scope: Scope, block: BlockStatement) -> None:
        outer = self._scope
        self._scope = scope
        try:
            self.visit(block)
        finally:
            self._scope = outer

    # =========================================================================
    # Symbol Insertion
    # =========================================================================

    def _define(
        self,
        name: str,
        kind: SymbolKind,
        token: Token,
        value: Optional[str] = None,
        params: Optional[list[str]] = None,
        signature: str = "",
    ) -> Optional[Symbol]:
        return self._define_in(self._scope, name, kind, token, value, params, signature)

    def _define_in(
        self,
        scope: Scope,
        name: str,
        kind: SymbolKind,
        token: Token,
        value: Optional[str] = None,
        params: Optional[list[str]] = None,
        signature: str = "",
    ) -> Optional[Symbol]:
        """Insert a symbol; a duplicate becomes a diagnostic."""
        symbol = Symbol(
            name=name,
            kind=kind,
            position=Position(token.line - 1, token.column - 1),
            value=value,
            params=params or [],
            signature=signature,
        )

        if self.debug_mode:
            logger.debug(f"Defining {kind} '{name}' in scope '{scope.name}'")

        try:
            return scope.add_symbol(symbol)
        except DuplicateSymbolError as e:
            position = symbol.position
            self.diagnostics.append(Diagnostic(
                Severity.ERROR,
                Range.span(position.line, position.character, len(name)),
                e.reason,
                SOURCE_SCOPE,
            ))
            logger.debug(f"Duplicate definition: {e}")
            return None


def build_scope(
    program: Program,
    uri: str = "",
    line_count: int = 0,
    *,
    debug_mode: bool = False,
) -> tuple[Scope, list[Diagnostic]]:
    """
    Build the Scope tree for a parsed document.

    Returns:
        Tuple of (root scope, duplicate-definition diagnostics)
    """
    builder = ScopeBuilder(uri, line_count, debug_mode=debug_mode)
    root = builder.build(program)
    return root, builder.diagnostics
