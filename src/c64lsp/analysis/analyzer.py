"""
Semantic Analyzer
=================

Resolves every identifier reference of a parsed document against its
Scope tree, counts usages, and reports symbols that are never used.

Walk
----
Expressions are resolved in the scope active at their statement. The
body of a ``.namespace``, ``.enum``, ``.function``, ``.macro`` or
``.pseudocommand`` is walked in the child scope that definition opened
(matched by name and position, so a reopened namespace gets its own
body); if no such child exists the walk stays in the current scope.

Not counted as usages:

- the defining name of a directive (``X`` in ``.const X = 1``)
- the index register of an indexed operand (``X`` in ``lda $10,x``)
- multi-label references (``!loop-``), which name no table entry
- anything the line's text places inside a comment

Warnings
--------
With ``warn_unused_labels`` enabled, every LABEL, CONSTANT and VARIABLE
symbol whose usage count stays at zero yields one Warning::

    Unused label 'loop'

With ``warn_illegal_opcodes`` enabled, each undocumented opcode yields::

    Illegal opcode 'LAX'
"""

import logging
from typing import Optional

from c64lsp.analysis.ast import (
    ASTVisitor,
    BlockStatement,
    DirectiveStatement,
    Identifier,
    InfixExpression,
    InstructionStatement,
    LabelStatement,
    Program,
)
from c64lsp.analysis.diagnostics import SOURCE_ANALYZER, Diagnostic, Severity
from c64lsp.analysis.symbols import Position, Range, Scope, SymbolKind
from c64lsp.analysis.tokens import TokenType
from c64lsp.config import AnalyzerConfig

logger = logging.getLogger(__name__)


SCOPED_DIRECTIVES = frozenset({
    ".namespace", ".enum", ".function", ".macro", ".pseudocommand",
})

UNUSED_KINDS = (SymbolKind.LABEL, SymbolKind.CONSTANT, SymbolKind.VARIABLE)


def is_in_comment(line_text: str, column: int) -> bool:
    """
    True if ``column`` (0-based) lies inside a comment on this line.

    Recognizes ``//``, a ``/* */`` run opened on the line, and ``;`` outside
    parentheses. Markers inside double-quoted strings do not count.
    """
    in_string = False
    in_block = False
    depth = 0
    pos = 0
    end = min(column, len(line_text))

    while pos < end:
        char = line_text[pos]
        pair = line_text[pos:pos + 2]

        if in_block:
            if pair == "*/":
                in_block = False
                pos += 2
                continue
        elif in_string:
            if char == "\\":
                pos += 2
                continue
            if char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif pair == "//":
            return True
        elif pair == "/*":
            in_block = True
            pos += 2
            continue
        elif char == ";" and depth == 0:
            return True
        elif char == "(":
            depth += 1
        elif char == ")" and depth > 0:
            depth -= 1
        pos += 1

    return in_block


class SemanticAnalyzer(ASTVisitor):
    """
    Counts symbol usages for one document and reports warnings.

    Usage:
        analyzer = SemanticAnalyzer(scope, text, config)
        diagnostics = analyzer.analyze(program)
    """

    def __init__(
        self,
        scope: Scope,
        text: str,
        config: Optional[AnalyzerConfig] = None,
    ):
        self.root = scope
        self.config = config or AnalyzerConfig()
        self.lines = text.split("\n")
        self.diagnostics: list[Diagnostic] = []
        self._scope = scope

    def analyze(self, program: Program) -> list[Diagnostic]:
        """Walk the program, then report unused symbols."""
        self.root.reset_usage()
        self._scope = self.root
        self.visit(program)

        if self.config.warn_unused_labels:
            self._report_unused()

        logger.debug(f"Analysis finished with {len(self.diagnostics)} diagnostics")
        return self.diagnostics

    # =========================================================================
    # Statements
    # =========================================================================

    def visit_label_statement(self, node: LabelStatement) -> None:
        pass

    def visit_instruction_statement(self, node: InstructionStatement) -> None:
        if self.config.warn_illegal_opcodes and node.token.type == TokenType.MNEMONIC_ILL:
            self.diagnostics.append(Diagnostic.at_token(
                Severity.WARNING, f"Illegal opcode '{node.mnemonic}'",
                node.token.line, node.token.column, SOURCE_ANALYZER,
                length=len(node.token.literal),
            ))
        if node.operand is not None:
            self.visit(node.operand)

    def visit_directive_statement(self, node: DirectiveStatement) -> None:
        if node.value is not None:
            self.visit(node.value)
        if node.block is None:
            return

        if node.name is not None and node.directive in SCOPED_DIRECTIVES:
            name_token = node.name.token
            start = Position(name_token.line - 1, name_token.column - 1)
            child = self._scope.child_at(node.name.value, start)
            if child is None:
                logger.debug(f"No scope named '{node.name.value}', staying in '{self._scope.name}'")
                child = self._scope
            self._visit_in(child, node.block)
        else:
            self.visit(node.block)

    def visit_block_statement(self, node: BlockStatement) -> None:
        for statement in node.statements:
            self.visit(statement)

    def _visit_in(self, scope: Scope, block: BlockStatement) -> None:
        outer = self._scope
        self._scope = scope
        try:
            self.visit(block)
        finally:
            self._scope = outer

    # =========================================================================
    # Expressions
    # =========================================================================

    def visit_infix_expression(self, node: InfixExpression) -> None:
        if node.left is not None:
            self.visit(node.left)
        # Right side of "," is the index register
        if node.operator != "," and node.right is not None:
            self.visit(node.right)

    def visit_identifier(self, node: Identifier) -> None:
        name = node.value
        if not name or name.startswith("!"):
            return

        line_index = node.line - 1
        if 0 <= line_index < len(self.lines) and is_in_comment(self.lines[line_index], node.column - 1):
            return

        symbol = self._scope.find_symbol(name)
        if symbol is not None:
            symbol.usage_count += 1

    # =========================================================================
    # Warnings
    # =========================================================================

    def _report_unused(self) -> None:
        for scope in self.root.iter_scopes():
            for symbol in scope.symbols.values():
                if symbol.kind not in UNUSED_KINDS or symbol.usage_count:
                    continue
                position = symbol.position
                self.diagnostics.append(Diagnostic(
                    Severity.WARNING,
                    Range.span(position.line, position.character, len(symbol.name)),
                    f"Unused {symbol.kind.value.lower()} '{symbol.name}'",
                    SOURCE_ANALYZER,
                ))


def analyze(
    program: Program,
    scope: Scope,
    text: str,
    config: Optional[AnalyzerConfig] = None,
) -> list[Diagnostic]:
    """Count usages in ``scope`` and return the analyzer's warnings."""
    return SemanticAnalyzer(scope, text, config).analyze(program)
