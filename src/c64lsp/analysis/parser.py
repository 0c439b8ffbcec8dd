"""
Context-Aware Parser
====================

Converts the context-aware lexer's token stream into a syntax tree and
collects syntax diagnostics. Parsing never raises: a malformed construct
becomes a diagnostic plus a missing (None) sub-expression, and parsing
resumes with the next token.

Statements
----------
Dispatch is on the current token:

==================  ===============================================
LABEL               LabelStatement
mnemonic            InstructionStatement (operand when the next token
                    is on the same line and does not start a statement)
``*=``              DirectiveStatement for the program counter
directive           DirectiveStatement (see below)
identifier ``(``    ExpressionStatement wrapping a macro call
identifier args     ExpressionStatement wrapping a pseudocommand call
                    (``mov #1 : $80``, arguments separated by ``:``)
built-in function   ExpressionStatement wrapping the call; ``(`` is
                    required
``{``               BlockStatement (anonymous block, e.g. after else)
==================  ===============================================

An instruction whose operand parsed cleanly is checked against the
mnemonic's addressing modes (see ``operand_addressing_mode``); a shape the
mnemonic has no mode for is an Error::

    Invalid addressing mode 'Immediate' for instruction 'STA'

Directives with dedicated grammar:

- data (``.byte 1, 2, 3``): comma-separated values -> ArrayExpression
- named (``.const X = 1``, ``.var``, ``.label``)
- ``.define NAME`` / ``.undef NAME`` (also ``#define`` / ``#undef``)
- ``.encoding "name"``
- ``.import [source|binary|c64] "file"`` (also ``#import``)
- ``.function name(a, b) { }``, ``.macro name(a, b) { }``
- ``.pseudocommand name a : b { }``
- ``.namespace name { }``
- ``.enum name { A, B = 2 }``: members in ``parameters``, explicit
  values in an ArrayExpression ``value``
- ``.for (init; test; step) { }``: the header is skipped, not modeled
- ``.if (cond) { }``: the if-branch only; ``else`` is skipped and its
  block parsed as an anonymous block in the enclosing scope

Everything else takes an optional value expression on the same line
(``.pc = $1000``, ``.print "x"``) and an optional block.

Expressions
-----------
Precedence climbing over this table (lowest first):

=============  =========================
LOWEST
EQUALS         ``=`` ``==`` ``!=``
LESSGREATER    ``<`` ``>`` ``<=`` ``>=``
BITWISE        ``&`` ``|`` ``^``
SHIFT          ``<<`` ``>>``
SUM            ``+`` ``-``
PRODUCT        ``*`` ``/`` ``%``
PREFIX         unary ``# - + < > . @``
MEMBER         ``.``
CALL           ``(``
=============  =========================

Indexed addressing is represented as ``InfixExpression(operand, ",", X)``;
``($80,X)`` as a GroupedExpression around such an infix node.

Nesting of expressions and blocks is bounded by ``max_depth``. The first
time the bound is hit an Error diagnostic is reported; the rest of that
construct is skipped without further errors.
"""

import logging
from enum import IntEnum
from typing import Optional

from c64lsp.analysis.ast import (
    ArrayExpression,
    BlockStatement,
    CallExpression,
    DirectiveStatement,
    Expression,
    ExpressionStatement,
    GroupedExpression,
    Identifier,
    InfixExpression,
    InstructionStatement,
    IntegerLiteral,
    LabelStatement,
    PrefixExpression,
    Program,
    ProgramCounterExpression,
    Statement,
    StringLiteral,
)
from c64lsp.analysis.diagnostics import SOURCE_PARSER, Diagnostic, Severity
from c64lsp.analysis.lexer import DEFAULT_MAX_DEPTH, ContextAwareLexer
from c64lsp.analysis.tokens import (
    BUILTIN_CONSTANT_TYPES,
    BUILTIN_FUNCTION_TYPES,
    DIRECTIVE_TYPES,
    MNEMONIC_TYPES,
    NUMBER_TYPES,
    Token,
    TokenType,
)
from c64lsp.reference.context import DATA_DIRECTIVES

logger = logging.getLogger(__name__)


class Precedence(IntEnum):
    """Binding power of infix operators."""
    LOWEST = 1
    EQUALS = 2
    LESSGREATER = 3
    BITWISE = 4
    SHIFT = 5
    SUM = 6
    PRODUCT = 7
    PREFIX = 8
    MEMBER = 9
    CALL = 10


PRECEDENCES = {
    TokenType.EQUAL: Precedence.EQUALS,
    TokenType.EQUAL_EQUAL: Precedence.EQUALS,
    TokenType.NOT_EQUAL: Precedence.EQUALS,
    TokenType.LESS: Precedence.LESSGREATER,
    TokenType.GREATER: Precedence.LESSGREATER,
    TokenType.LESS_EQUAL: Precedence.LESSGREATER,
    TokenType.GREATER_EQUAL: Precedence.LESSGREATER,
    TokenType.AMPERSAND: Precedence.BITWISE,
    TokenType.PIPE: Precedence.BITWISE,
    TokenType.CARET: Precedence.BITWISE,
    TokenType.LEFT_SHIFT: Precedence.SHIFT,
    TokenType.RIGHT_SHIFT: Precedence.SHIFT,
    TokenType.PLUS: Precedence.SUM,
    TokenType.MINUS: Precedence.SUM,
    TokenType.ASTERISK: Precedence.PRODUCT,
    TokenType.SLASH: Precedence.PRODUCT,
    TokenType.MODULO: Precedence.PRODUCT,
    TokenType.DOT: Precedence.MEMBER,
    TokenType.LPAREN: Precedence.CALL,
}

PREFIX_OPERATORS = frozenset({
    TokenType.HASH, TokenType.MINUS, TokenType.PLUS, TokenType.LESS,
    TokenType.GREATER, TokenType.DOT, TokenType.AT,
})

NAMED_DIRECTIVES = frozenset({".const", ".var", ".label"})
DEFINE_DIRECTIVES = frozenset({".define", ".undef", "#define", "#undef"})
IMPORT_DIRECTIVES = frozenset({".import", "#import"})
IMPORT_KINDS = ("source", "binary", "c64")
INDEX_REGISTERS = frozenset({"X", "Y"})

# Tokens that can name a defined symbol or a parameter
NAME_TYPES = frozenset({TokenType.IDENTIFIER}) | BUILTIN_FUNCTION_TYPES | BUILTIN_CONSTANT_TYPES

# Modes a plain value operand may assemble to
VALUE_MODES = ("Absolute", "Zeropage", "Relative")


def _is_parenthesized(expression: Optional[Expression]) -> bool:
    # [v] groups like (v) but never means indirect
    return isinstance(expression, GroupedExpression) and expression.token.type == TokenType.LPAREN


def operand_addressing_mode(operand: Optional[Expression]) -> tuple[str, tuple[str, ...]]:
    """
    Classify an instruction operand by its shape.

    Returns the mode name used in diagnostics and the mode names the
    operand is compatible with. Zero-page and absolute forms look alike in
    source, so a plain or indexed value accepts either.

    ===================  ==============  ==================================
    operand              reported as     accepted modes
    ===================  ==============  ==================================
    (none)               Implied         Implied, Accumulator
    ``A``                Accumulator     Accumulator, Absolute, Zeropage
    ``#v``               Immediate       Immediate
    ``v,X`` / ``v,Y``    Absolute,X      Absolute,X, Zeropage,X
    ``(v)``              Indirect        Indirect
    ``(v,X)``            (Indirect,X)    (Indirect,X)
    ``(v),Y``            (Indirect),Y    (Indirect),Y
    anything else        Absolute        Absolute, Zeropage, Relative
    ===================  ==============  ==================================
    """
    if operand is None:
        return "Implied", ("Implied", "Accumulator")

    if isinstance(operand, PrefixExpression) and operand.operator == "#":
        return "Immediate", ("Immediate",)

    if isinstance(operand, InfixExpression) and operand.operator == "," and operand.right is not None:
        register = operand.right.value
        if _is_parenthesized(operand.left):
            return f"(Indirect),{register}", (f"(Indirect),{register}",)
        return f"Absolute,{register}", (f"Absolute,{register}", f"Zeropage,{register}")

    if _is_parenthesized(operand):
        inner = operand.expression
        if isinstance(inner, InfixExpression) and inner.operator == "," and inner.right is not None:
            register = inner.right.value
            return f"(Indirect,{register})", (f"(Indirect,{register})",)
        return "Indirect", ("Indirect",)

    if isinstance(operand, Identifier) and operand.value.upper() == "A":
        return "Accumulator", ("Accumulator",) + VALUE_MODES[:2]

    return "Absolute", VALUE_MODES


class ContextAwareParser:
    """
    Parses one document into a Program.

    Usage:
        lexer = ContextAwareLexer(text, reference)
        parser = ContextAwareParser(lexer)
        program = parser.parse_program()
        for diagnostic in parser.diagnostics:
            print(diagnostic)

    Attributes:
        tokens: Every token produced by the lexer, comments included
        diagnostics: Syntax diagnostics collected so far
    """

    def __init__(
        self,
        lexer: ContextAwareLexer,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        debug_mode: bool = False,
    ):
        self.lexer = lexer
        self.max_depth = max(max_depth, 1)
        self.debug_mode = debug_mode
        self.diagnostics: list[Diagnostic] = []

        self.tokens: list[Token] = list(lexer.tokenize())
        # Comments never reach the grammar
        self._tokens = [t for t in self.tokens if not t.is_comment]
        self._pos = 0

        self._depth = 0
        self._depth_reported = False
        # Set while unwinding from a depth overflow; silences errors
        self._unwinding = False

    # =========================================================================
    # Public Interface
    # =========================================================================

    def parse_program(self) -> Program:
        """Parse every statement of the document."""
        program = Program(token=self._current())

        if self.lexer.overflowed:
            self._report_depth(self.lexer.overflow_line, self.lexer.overflow_column)

        while not self._check(TokenType.EOF):
            self._unwinding = False
            statement = self._parse_statement()
            if statement is not None:
                program.statements.append(statement)
            self._advance()

        if self.debug_mode:
            logger.debug(f"Parsed {len(program.statements)} statements, "
                         f"{len(self.diagnostics)} diagnostics")
        return program

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        return self._tokens[self._pos]

    def _peek(self, offset: int = 1) -> Token:
        pos = min(self._pos + offset, len(self._tokens) - 1)
        return self._tokens[pos]

    def _advance(self) -> Token:
        """Move to the next token. Stops at EOF."""
        if self._pos < len(self._tokens) - 1:
            self._pos += 1
        return self._current()

    def _check(self, *types: TokenType) -> bool:
        return self._current().type in types

    def _peek_is(self, *types: TokenType) -> bool:
        return self._peek().type in types

    @staticmethod
    def _is_terminator(token: Token) -> bool:
        """True if the token starts a new statement."""
        return (
            token.type in (TokenType.EOF, TokenType.LABEL, TokenType.DIRECTIVE_PC)
            or token.type in MNEMONIC_TYPES
            or token.literal.startswith(".")
        )

    def _ends_statement(self, token: Token) -> bool:
        return self._is_terminator(token) or token.type == TokenType.RBRACE

    def _has_value_on_line(self) -> bool:
        """True if the next token continues the current line's statement."""
        peek = self._peek()
        return peek.line == self._current().line and not self._ends_statement(peek)

    # =========================================================================
    # Diagnostics
    # =========================================================================

    def _add_error(self, message: str, token: Optional[Token] = None) -> None:
        if self._unwinding:
            return
        token = token or self._current()
        self.diagnostics.append(Diagnostic.at_token(
            Severity.ERROR, message, token.line, token.column, SOURCE_PARSER,
        ))
        if self.debug_mode:
            logger.debug(f"Syntax error at {token.line}:{token.column}: {message}")

    def _report_depth(self, line: int, column: int) -> None:
        if self._depth_reported:
            return
        self._depth_reported = True
        logger.warning(f"Nesting depth limit {self.max_depth} exceeded at {line}:{column}")
        self.diagnostics.append(Diagnostic.at_token(
            Severity.ERROR, f"Maximum nesting depth of {self.max_depth} exceeded",
            line, column, SOURCE_PARSER,
        ))

    def _depth_exceeded(self) -> None:
        """Report the overflow and skip the rest of the current line."""
        token = self._current()
        self._report_depth(token.line, token.column)
        self._unwinding = True
        while self._peek().line == token.line and not self._peek_is(TokenType.EOF):
            self._advance()

    # =========================================================================
    # Statements
    # =========================================================================

    def _parse_statement(self) -> Optional[Statement]:
        token = self._current()
        token_type = token.type

        if self.debug_mode:
            logger.debug(f"Statement at {token.line}:{token.column}: {token!r}")

        if token_type == TokenType.LABEL:
            return LabelStatement(token=token, name=token.literal[:-1])

        if token_type in MNEMONIC_TYPES:
            return self._parse_instruction()

        if token_type == TokenType.DIRECTIVE_PC:
            return self._parse_program_counter()

        if token_type == TokenType.ASTERISK and self._peek_is(TokenType.EQUAL):
            # "* = $1000" written with spaces
            self._advance()
            return self._parse_program_counter(token)

        if token_type in DIRECTIVE_TYPES:
            return self._parse_directive()

        if token_type == TokenType.IDENTIFIER:
            if self._peek_is(TokenType.LPAREN):
                return self._parse_macro_call()
            if self._has_value_on_line():
                return self._parse_pseudocommand_call()
            return None

        if token_type in BUILTIN_FUNCTION_TYPES:
            call = self._parse_builtin_call()
            if call is None:
                return None
            return ExpressionStatement(token=token, expression=call)

        if token_type == TokenType.LBRACE:
            return self._parse_block()

        if token_type == TokenType.ILLEGAL:
            self._parse_expression()
            return None

        # ELSE, stray braces and punctuation
        return None

    def _parse_instruction(self) -> InstructionStatement:
        statement = InstructionStatement(token=self._current())

        if not self._has_value_on_line():
            self._check_addressing_mode(statement)
            return statement

        errors = len(self.diagnostics)
        self._advance()
        operand = self._parse_expression()

        if self._peek_is(TokenType.COMMA):
            register = self._peek(2)
            if register.type == TokenType.IDENTIFIER and register.literal.upper() in INDEX_REGISTERS:
                comma = self._advance()
                self._advance()
                operand = self._indexed(operand, comma, register)

        statement.operand = operand
        # A malformed operand has no meaningful mode
        if operand is not None and len(self.diagnostics) == errors and not self._unwinding:
            self._check_addressing_mode(statement)
        return statement

    def _check_addressing_mode(self, statement: InstructionStatement) -> None:
        """Report an operand shape the mnemonic has no addressing mode for."""
        reference = self.lexer.reference
        if reference is None or not reference.addressing_modes_for(statement.mnemonic):
            return

        mode, accepted = operand_addressing_mode(statement.operand)
        if any(reference.supports_addressing_mode(statement.mnemonic, m) for m in accepted):
            return

        token = statement.token
        self.diagnostics.append(Diagnostic.at_token(
            Severity.ERROR,
            f"Invalid addressing mode '{mode}' for instruction '{statement.mnemonic}'",
            token.line, token.column, SOURCE_PARSER,
            length=len(token.literal),
        ))
        if self.debug_mode:
            logger.debug(f"Addressing mode {mode} rejected for {statement.mnemonic} at line {token.line}")

    @staticmethod
    def _indexed(operand: Optional[Expression], comma: Token, register: Token) -> InfixExpression:
        name = register.literal.upper()
        return InfixExpression(
            token=comma,
            left=operand,
            operator=",",
            right=Identifier(token=register, value=name),
        )

    def _parse_program_counter(self, token: Optional[Token] = None) -> DirectiveStatement:
        statement = DirectiveStatement(token=token or self._current())
        if self._has_value_on_line():
            self._advance()
            statement.value = self._parse_expression()
        return statement

    def _parse_block(self) -> BlockStatement:
        """Parse ``{ ... }``; the current token is the ``{``."""
        block = BlockStatement(token=self._current())

        if self._depth >= self.max_depth:
            self._report_depth(block.token.line, block.token.column)
            self._skip_block()
            block.end_token = self._current()
            return block

        self._depth += 1
        try:
            self._advance()
            while not self._check(TokenType.RBRACE, TokenType.EOF):
                self._unwinding = False
                statement = self._parse_statement()
                if statement is not None:
                    block.statements.append(statement)
                self._advance()
        finally:
            self._depth -= 1

        block.end_token = self._current()
        return block

    def _skip_block(self) -> None:
        """Skip to the ``}`` matching the current ``{``."""
        depth = 1
        while depth and not self._peek_is(TokenType.EOF):
            self._advance()
            if self._check(TokenType.LBRACE):
                depth += 1
            elif self._check(TokenType.RBRACE):
                depth -= 1
        if depth:
            self._advance()

    # =========================================================================
    # Directives
    # =========================================================================

    def _parse_directive(self) -> DirectiveStatement:
        name = self._current().literal.lower()

        if name == ".encoding":
            return self._parse_encoding()
        if name in DEFINE_DIRECTIVES:
            return self._parse_define()
        if name in IMPORT_DIRECTIVES:
            return self._parse_import()
        if name in (".function", ".macro"):
            return self._parse_callable(name[1:])
        if name == ".pseudocommand":
            return self._parse_pseudocommand()
        if name == ".namespace":
            return self._parse_namespace()
        if name == ".enum":
            return self._parse_enum()
        if name in DATA_DIRECTIVES:
            return self._parse_data()
        if name == ".for":
            return self._parse_for()
        if name == ".if":
            return self._parse_if()
        if name in NAMED_DIRECTIVES:
            return self._parse_named()
        return self._parse_generic_directive()

    def _parse_generic_directive(self) -> DirectiveStatement:
        statement = DirectiveStatement(token=self._current())

        if self._has_value_on_line():
            self._advance()
            if self._check(TokenType.EQUAL):
                self._advance()
            statement.value = self._parse_expression()

        if self._peek_is(TokenType.LBRACE):
            self._advance()
            statement.block = self._parse_block()

        if self.debug_mode:
            logger.debug(f"Parsed directive {statement.directive} at line {statement.line}")
        return statement

    def _parse_data(self) -> DirectiveStatement:
        """``.byte 1, 2, 3``"""
        statement = DirectiveStatement(token=self._current())
        values: list[Expression] = []

        if self._has_value_on_line():
            self._advance()
            self._parse_into(values)

            while self._peek_is(TokenType.COMMA):
                self._advance()
                self._advance()
                if self._ends_statement(self._current()):
                    break
                self._parse_into(values)

        if values:
            statement.value = ArrayExpression(token=statement.token, elements=values)
        return statement

    def _parse_named(self) -> DirectiveStatement:
        """``.const NAME = value``, ``.var NAME = value``, ``.label NAME = value``"""
        statement = DirectiveStatement(token=self._current())
        directive = statement.directive

        if not self._peek_is(*NAME_TYPES):
            self._add_error(f"Expected identifier after {directive} directive", self._peek())
            return statement

        name = self._advance()
        statement.name = Identifier(token=name, value=name.literal)

        if self._peek_is(TokenType.EQUAL):
            self._advance()
            if not self._ends_statement(self._peek()):
                self._advance()
                statement.value = self._parse_expression()
        return statement

    def _parse_define(self) -> DirectiveStatement:
        """``.define NAME`` / ``.undef NAME``"""
        statement = DirectiveStatement(token=self._current())

        if self._peek_is(*NAME_TYPES):
            name = self._advance()
            statement.name = Identifier(token=name, value=name.literal)
        else:
            self._add_error(f"Expected identifier after {statement.directive} directive", self._peek())
        return statement

    def _parse_encoding(self) -> DirectiveStatement:
        """``.encoding "screencode_upper"``"""
        statement = DirectiveStatement(token=self._current())

        if self._peek_is(TokenType.STRING):
            self._advance()
            statement.value = self._string_literal()
        else:
            self._add_error("Expected string literal after .encoding directive", self._peek())
        return statement

    def _parse_import(self) -> DirectiveStatement:
        """``.import [source|binary|c64] "file"``"""
        statement = DirectiveStatement(token=self._current())
        elements: list[Expression] = []

        if self._peek_is(TokenType.IDENTIFIER):
            kind_token = self._advance()
            kind = kind_token.literal.lower()
            if kind not in IMPORT_KINDS:
                self._add_error(
                    f"Invalid import type '{kind}', expected 'source', 'binary', or 'c64'",
                    kind_token,
                )
            elements.append(Identifier(token=kind_token, value=kind))

        if self._peek_is(TokenType.STRING):
            self._advance()
            elements.append(self._string_literal())
            statement.value = ArrayExpression(token=statement.token, elements=elements)
        else:
            self._add_error("Expected string literal (filename) in .import directive", self._peek())
        return statement

    def _parse_header_name(self, what: str) -> Optional[Identifier]:
        """Name after ``.function``/``.macro``/...; reports and returns None if absent."""
        directive = self._current().literal.lower()
        if not self._peek_is(*NAME_TYPES):
            self._add_error(f"Expected {what} name after {directive} directive", self._peek())
            return None
        name = self._advance()
        return Identifier(token=name, value=name.literal)

    def _parse_body(self, statement: DirectiveStatement) -> None:
        """Block after a directive header; the ``{`` is the next token."""
        if self._peek_is(TokenType.LBRACE):
            self._advance()
            statement.block = self._parse_block()
        else:
            self._add_error(f"Expected '{{' after {statement.directive} directive", self._peek())

    def _parse_callable(self, what: str) -> DirectiveStatement:
        """``.function name(a, b) { }`` and ``.macro name(a, b) { }``"""
        statement = DirectiveStatement(token=self._current())
        statement.name = self._parse_header_name(what)
        if statement.name is None:
            return statement

        if self._peek_is(TokenType.LPAREN):
            self._advance()
            statement.parameters = self._parse_parameter_list()
        self._parse_body(statement)
        return statement

    def _parse_parameter_list(self) -> list[Identifier]:
        """``(a, b, c)``; the current token is the ``(``, left on the ``)``."""
        parameters: list[Identifier] = []

        if self._peek_is(TokenType.RPAREN):
            self._advance()
            return parameters

        if self._peek_is(*NAME_TYPES):
            token = self._advance()
            parameters.append(Identifier(token=token, value=token.literal))

            while self._peek_is(TokenType.COMMA):
                self._advance()
                if not self._peek_is(*NAME_TYPES):
                    self._add_error("Expected parameter name after ','", self._peek())
                    break
                token = self._advance()
                parameters.append(Identifier(token=token, value=token.literal))

        if self._peek_is(TokenType.RPAREN):
            self._advance()
        else:
            self._add_error("Expected ')' after parameter list", self._peek())
        return parameters

    def _parse_pseudocommand(self) -> DirectiveStatement:
        """``.pseudocommand name a : b { }``"""
        statement = DirectiveStatement(token=self._current())
        statement.name = self._parse_header_name("pseudocommand")
        if statement.name is None:
            return statement

        if self._peek_is(*NAME_TYPES):
            token = self._advance()
            statement.parameters.append(Identifier(token=token, value=token.literal))

            while self._peek_is(TokenType.COLON):
                self._advance()
                if not self._peek_is(*NAME_TYPES):
                    self._add_error("Expected parameter name after ':'", self._peek())
                    break
                token = self._advance()
                statement.parameters.append(Identifier(token=token, value=token.literal))

            if not self._peek_is(TokenType.LBRACE):
                self._add_error("Expected '{' after parameter list", self._peek())
                return statement

        self._parse_body(statement)
        return statement

    def _parse_namespace(self) -> DirectiveStatement:
        """``.namespace name { }``"""
        statement = DirectiveStatement(token=self._current())
        statement.name = self._parse_header_name("namespace")
        if statement.name is not None:
            self._parse_body(statement)
        return statement

    def _parse_enum(self) -> DirectiveStatement:
        """``.enum name { A, B = 2, C }``"""
        statement = DirectiveStatement(token=self._current())
        statement.name = self._parse_header_name("enum")
        if statement.name is None:
            return statement
        if not self._peek_is(TokenType.LBRACE):
            self._add_error(f"Expected '{{' after {statement.directive} directive", self._peek())
            return statement

        block = BlockStatement(token=self._advance())
        values: list[Expression] = []
        self._advance()
        while not self._check(TokenType.RBRACE, TokenType.EOF):
            if self._check(*NAME_TYPES):
                member = self._current()
                statement.parameters.append(Identifier(token=member, value=member.literal))
                if self._peek_is(TokenType.EQUAL):
                    self._advance()
                    self._advance()
                    self._parse_into(values)
                    # A malformed value may stop on the closing brace
                    if self._check(TokenType.RBRACE, TokenType.EOF):
                        continue
            elif not self._check(TokenType.COMMA):
                self._add_error(f"Unexpected token '{self._current().literal}' in expression")
            self._advance()

        block.end_token = self._current()
        statement.block = block
        if values:
            statement.value = ArrayExpression(token=statement.token, elements=values)
        return statement

    def _parse_for(self) -> DirectiveStatement:
        """``.for (init; test; step) { }``; the header is skipped."""
        statement = DirectiveStatement(token=self._current())

        if self._peek_is(TokenType.LPAREN):
            self._advance()
            depth = 1
            while depth and not self._peek_is(TokenType.EOF):
                self._advance()
                if self._check(TokenType.LPAREN):
                    depth += 1
                elif self._check(TokenType.RPAREN):
                    depth -= 1

        if self._peek_is(TokenType.LBRACE):
            self._advance()
            statement.block = self._parse_block()
        return statement

    def _parse_if(self) -> DirectiveStatement:
        """``.if (condition) { }``"""
        statement = DirectiveStatement(token=self._current())

        if self._peek_is(TokenType.LPAREN):
            self._advance()
            statement.value = self._parse_expression()

        if self._peek_is(TokenType.LBRACE):
            self._advance()
            statement.block = self._parse_block()
        return statement

    # =========================================================================
    # Macro and Pseudocommand Calls
    # =========================================================================

    def _parse_macro_call(self) -> ExpressionStatement:
        """``name(arg, ...)``"""
        name = self._current()
        function = Identifier(token=name, value=name.literal)
        self._advance()
        call = CallExpression(token=name, function=function,
                              arguments=self._parse_expression_list())
        return ExpressionStatement(token=name, expression=call)

    def _parse_pseudocommand_call(self) -> ExpressionStatement:
        """``name arg : arg ...``"""
        name = self._current()
        function = Identifier(token=name, value=name.literal)
        arguments: list[Expression] = []

        self._advance()
        self._parse_into(arguments)

        while self._peek_is(TokenType.COLON):
            self._advance()
            if self._ends_statement(self._peek()):
                break
            self._advance()
            self._parse_into(arguments)

        call = CallExpression(token=name, function=function, arguments=arguments)
        return ExpressionStatement(token=name, expression=call)

    # =========================================================================
    # Expressions
    # =========================================================================

    def _peek_precedence(self) -> Precedence:
        return PRECEDENCES.get(self._peek().type, Precedence.LOWEST)

    def _parse_expression(self, precedence: Precedence = Precedence.LOWEST) -> Optional[Expression]:
        """
        Parse an expression starting at the current token.

        Leaves the current token on the last token of the expression.
        Returns None (after reporting) if the expression is malformed.
        """
        if self._depth >= self.max_depth:
            self._depth_exceeded()
            return None

        self._depth += 1
        try:
            left = self._parse_prefix()
            while (
                left is not None
                and not self._peek_is(TokenType.EOF)
                and precedence < self._peek_precedence()
            ):
                if self._peek_is(TokenType.LPAREN):
                    self._advance()
                    left = CallExpression(token=self._current(), function=left,
                                          arguments=self._parse_expression_list())
                else:
                    left = self._parse_infix(left)
            return left
        finally:
            self._depth -= 1

    def _parse_prefix(self) -> Optional[Expression]:
        token = self._current()
        token_type = token.type

        if token_type == TokenType.IDENTIFIER or token_type in BUILTIN_CONSTANT_TYPES:
            return Identifier(token=token, value=token.literal)
        if token_type in NUMBER_TYPES:
            return self._integer_literal()
        if token_type == TokenType.STRING:
            return self._string_literal()
        if token_type in PREFIX_OPERATORS:
            self._advance()
            right = self._parse_expression(Precedence.PREFIX)
            return PrefixExpression(token=token, operator=token.literal, right=right)
        if token_type == TokenType.ASTERISK:
            return ProgramCounterExpression(token=token)
        if token_type == TokenType.LPAREN:
            return self._parse_grouped()
        if token_type == TokenType.LBRACKET:
            return self._parse_bracketed()
        if token_type in BUILTIN_FUNCTION_TYPES:
            return self._parse_builtin_call()
        if token_type == TokenType.ILLEGAL:
            if token.literal.startswith(("$", "#$")):
                self._add_error(
                    f"Invalid hex value '{token.literal}' - hex values must only contain "
                    f"digits 0-9 and letters A-F"
                )
            else:
                self._add_error(f"Illegal character sequence '{token.literal}'")
            return None

        self._add_error(f"Unexpected token '{token.literal}' in expression")
        return None

    def _parse_into(self, items: list[Expression]) -> None:
        """Parse an expression and append it unless it is malformed."""
        expression = self._parse_expression()
        if expression is not None:
            items.append(expression)

    def _parse_infix(self, left: Expression) -> InfixExpression:
        operator = self._advance()
        precedence = PRECEDENCES.get(operator.type, Precedence.LOWEST)
        self._advance()
        right = self._parse_expression(precedence)
        return InfixExpression(token=operator, left=left, operator=operator.literal, right=right)

    def _integer_literal(self) -> Optional[IntegerLiteral]:
        token = self._current()
        text = token.literal.lstrip("#")
        try:
            if token.type == TokenType.NUMBER_HEX:
                value = int(text[1:], 16)
            elif token.type == TokenType.NUMBER_BIN:
                value = int(text[1:], 2)
            elif token.type == TokenType.NUMBER_OCT:
                value = int(text[1:], 8)
            elif "." in text:
                value = int(float(text))
            else:
                value = int(text, 10)
        except ValueError:
            self._add_error(f"Could not parse {token.literal} as integer")
            return None
        return IntegerLiteral(token=token, value=value)

    def _string_literal(self) -> StringLiteral:
        token = self._current()
        value = token.literal
        if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
            value = value[1:-1]
        elif value.startswith('"'):
            value = value[1:]
        return StringLiteral(token=token, value=value)

    def _parse_grouped(self) -> Optional[Expression]:
        """
        ``(expr)``, also the indirect addressing forms ``($80,X)`` and
        the ``($80)`` part of ``($80),Y``.
        """
        start = self._current()
        self._advance()
        inner = self._parse_expression()

        if self._peek_is(TokenType.COMMA):
            comma = self._advance()
            if self._peek_is(TokenType.IDENTIFIER) and self._peek().literal.upper() in INDEX_REGISTERS:
                register = self._advance()
                indexed = self._indexed(inner, comma, register)
                if not self._peek_is(TokenType.RPAREN):
                    self._add_error("Expected ')' after indexed indirect addressing")
                    return None
                self._advance()
                return GroupedExpression(token=start, expression=indexed)

            got = self._advance() if not self._peek_is(TokenType.EOF) else comma
            self._add_error(
                f"Expected 'X' or 'Y' after ',' in indirect addressing, got '{got.literal}'"
            )
            return None

        if not self._peek_is(TokenType.RPAREN):
            self._add_error("Expected ')' after expression")
            return None

        self._advance()
        return GroupedExpression(token=start, expression=inner)

    def _parse_bracketed(self) -> Optional[Expression]:
        """``[expr]``, the bracket form of grouping."""
        start = self._current()
        self._advance()
        inner = self._parse_expression()
        if not self._peek_is(TokenType.RBRACKET):
            self._add_error("Expected ']' after expression")
            return None
        self._advance()
        return GroupedExpression(token=start, expression=inner)

    def _parse_builtin_call(self) -> Optional[CallExpression]:
        token = self._current()
        if not self._peek_is(TokenType.LPAREN):
            self._add_error(f"Expected '(' after function '{token.literal}'")
            return None
        self._advance()
        return CallExpression(
            token=token,
            function=Identifier(token=token, value=token.literal),
            arguments=self._parse_expression_list(),
        )

    def _parse_expression_list(self) -> list[Expression]:
        """Arguments after ``(``; the current token is the ``(``, left on ``)``."""
        arguments: list[Expression] = []

        if self._peek_is(TokenType.RPAREN):
            self._advance()
            return arguments

        self._advance()
        self._parse_into(arguments)

        while self._peek_is(TokenType.COMMA):
            self._advance()
            self._advance()
            if self._check(TokenType.RPAREN):
                return arguments
            self._parse_into(arguments)

        if self._peek_is(TokenType.RPAREN):
            self._advance()
        return arguments
