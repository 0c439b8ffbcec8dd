"""
Syntax Tree Definitions
=======================

Node types produced by the context-aware parser.

Node Hierarchy
--------------
Node (base)
├── Program - root, ordered statements
├── Statements
│   ├── LabelStatement - ``name:``
│   ├── InstructionStatement - mnemonic + optional operand
│   ├── DirectiveStatement - ``.name [ident] [= value] [{ block }]``
│   ├── BlockStatement - ``{ ... }``
│   └── ExpressionStatement - macro / pseudocommand call
└── Expressions
    ├── Identifier
    ├── IntegerLiteral
    ├── StringLiteral
    ├── PrefixExpression - ``#x``, ``-x``, ``<x``, ``>x``
    ├── InfixExpression - ``a + b``, ``$10 , X``
    ├── GroupedExpression - ``(x)``
    ├── CallExpression - ``sin(x)``
    ├── ArrayExpression - ``.byte 1, 2, 3``
    └── ProgramCounterExpression - ``*``

Dispatch
--------
The node set is closed: every class carries a ``kind`` tag from NodeKind
and ASTVisitor dispatches on that tag to ``visit_<kind>``. ASTVisitor
defines a method for every tag, so a new node kind is added in one place
(the enum) plus its visit method.

Each node keeps the token it was built from; positions are read from it.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, ClassVar, Iterator, Optional

from c64lsp.analysis.tokens import Token


class NodeKind(Enum):
    """Tag of every syntax tree node."""
    PROGRAM = auto()
    # Statements
    LABEL_STATEMENT = auto()
    INSTRUCTION_STATEMENT = auto()
    DIRECTIVE_STATEMENT = auto()
    BLOCK_STATEMENT = auto()
    EXPRESSION_STATEMENT = auto()
    # Expressions
    IDENTIFIER = auto()
    INTEGER_LITERAL = auto()
    STRING_LITERAL = auto()
    PREFIX_EXPRESSION = auto()
    INFIX_EXPRESSION = auto()
    GROUPED_EXPRESSION = auto()
    CALL_EXPRESSION = auto()
    ARRAY_EXPRESSION = auto()
    PROGRAM_COUNTER_EXPRESSION = auto()


# =============================================================================
# Base Classes
# =============================================================================

@dataclass
class Node:
    """
    Base class for all syntax tree nodes.

    Attributes:
        token: The token the node starts at
    """
    kind: ClassVar[NodeKind]
    token: Token

    @property
    def line(self) -> int:
        return self.token.line

    @property
    def column(self) -> int:
        return self.token.column

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}@{self.token.line}:{self.token.column}"


@dataclass
class Expression(Node):
    """Base class for expression nodes."""


@dataclass
class Statement(Node):
    """Base class for statement nodes."""


# =============================================================================
# Expressions
# =============================================================================

@dataclass
class Identifier(Expression):
    """A name reference, possibly qualified (``Colors.BLUE``)."""
    kind: ClassVar[NodeKind] = NodeKind.IDENTIFIER
    value: str = ""


@dataclass
class IntegerLiteral(Expression):
    """
    A decoded numeric literal.

    Attributes:
        value: Integer value (decimal fractions are truncated)
    """
    kind: ClassVar[NodeKind] = NodeKind.INTEGER_LITERAL
    value: int = 0


@dataclass
class StringLiteral(Expression):
    """A string literal; ``value`` excludes the quotes."""
    kind: ClassVar[NodeKind] = NodeKind.STRING_LITERAL
    value: str = ""


@dataclass
class PrefixExpression(Expression):
    """
    Unary prefix operator applied to an operand.

    Operators: ``#`` (immediate), ``-``, ``+``, ``<`` (low byte),
    ``>`` (high byte), ``.``, ``@``.
    """
    kind: ClassVar[NodeKind] = NodeKind.PREFIX_EXPRESSION
    operator: str = ""
    right: Optional[Expression] = None


@dataclass
class InfixExpression(Expression):
    """
    Binary operator. Indexed addressing is represented with operator
    ``,`` and the index register Identifier on the right.
    """
    kind: ClassVar[NodeKind] = NodeKind.INFIX_EXPRESSION
    left: Optional[Expression] = None
    operator: str = ""
    right: Optional[Expression] = None


@dataclass
class GroupedExpression(Expression):
    """Parenthesized expression, also the indirect addressing form."""
    kind: ClassVar[NodeKind] = NodeKind.GROUPED_EXPRESSION
    expression: Optional[Expression] = None


@dataclass
class CallExpression(Expression):
    """``function(arguments)``; function is an Identifier or built-in name."""
    kind: ClassVar[NodeKind] = NodeKind.CALL_EXPRESSION
    function: Optional[Expression] = None
    arguments: list[Expression] = field(default_factory=list)


@dataclass
class ArrayExpression(Expression):
    """Comma-separated value list (data directives, enum values)."""
    kind: ClassVar[NodeKind] = NodeKind.ARRAY_EXPRESSION
    elements: list[Expression] = field(default_factory=list)


@dataclass
class ProgramCounterExpression(Expression):
    """The current assembly address, ``*``."""
    kind: ClassVar[NodeKind] = NodeKind.PROGRAM_COUNTER_EXPRESSION


# =============================================================================
# Statements
# =============================================================================

@dataclass
class LabelStatement(Statement):
    """
    A label definition.

    Attributes:
        name: Label name without the trailing colon
    """
    kind: ClassVar[NodeKind] = NodeKind.LABEL_STATEMENT
    name: str = ""


@dataclass
class InstructionStatement(Statement):
    """
    A CPU instruction. ``token`` is the mnemonic token.

    Attributes:
        operand: Operand expression, None for implied addressing
    """
    kind: ClassVar[NodeKind] = NodeKind.INSTRUCTION_STATEMENT
    operand: Optional[Expression] = None

    @property
    def mnemonic(self) -> str:
        return self.token.literal.upper()


@dataclass
class BlockStatement(Statement):
    """
    Statements between ``{`` and ``}``.

    Attributes:
        statements: Statements in source order
        end_token: The closing ``}`` (EOF if the block is unterminated)
    """
    kind: ClassVar[NodeKind] = NodeKind.BLOCK_STATEMENT
    statements: list[Statement] = field(default_factory=list)
    end_token: Optional[Token] = None


@dataclass
class DirectiveStatement(Statement):
    """
    An assembler directive. ``token`` is the directive token.

    Attributes:
        name: Defined name for named directives (``.const X``,
            ``.namespace NS``, ``.macro m``), None otherwise
        parameters: Parameter names (``.function``/``.macro``/
            ``.pseudocommand``) or member names (``.enum``)
        value: Value expression, if any
        block: Body block, if any
    """
    kind: ClassVar[NodeKind] = NodeKind.DIRECTIVE_STATEMENT
    name: Optional[Identifier] = None
    parameters: list[Identifier] = field(default_factory=list)
    value: Optional[Expression] = None
    block: Optional[BlockStatement] = None

    @property
    def directive(self) -> str:
        """Lowercased directive text (``.const``, ``#import``, ``*=``)."""
        return self.token.literal.lower()


@dataclass
class ExpressionStatement(Statement):
    """An expression used as a statement (macro or pseudocommand call)."""
    kind: ClassVar[NodeKind] = NodeKind.EXPRESSION_STATEMENT
    expression: Optional[Expression] = None


@dataclass
class Program(Node):
    """Root node: the statements of one document."""
    kind: ClassVar[NodeKind] = NodeKind.PROGRAM
    statements: list[Statement] = field(default_factory=list)


# =============================================================================
# Traversal
# =============================================================================

def iter_children(node: Node) -> Iterator[Node]:
    """Direct child nodes in source order."""
    kind = node.kind
    if kind == NodeKind.PROGRAM or kind == NodeKind.BLOCK_STATEMENT:
        yield from node.statements
    elif kind == NodeKind.INSTRUCTION_STATEMENT:
        if node.operand is not None:
            yield node.operand
    elif kind == NodeKind.DIRECTIVE_STATEMENT:
        if node.name is not None:
            yield node.name
        yield from node.parameters
        if node.value is not None:
            yield node.value
        if node.block is not None:
            yield node.block
    elif kind == NodeKind.EXPRESSION_STATEMENT or kind == NodeKind.GROUPED_EXPRESSION:
        if node.expression is not None:
            yield node.expression
    elif kind == NodeKind.PREFIX_EXPRESSION:
        if node.right is not None:
            yield node.right
    elif kind == NodeKind.INFIX_EXPRESSION:
        if node.left is not None:
            yield node.left
        if node.right is not None:
            yield node.right
    elif kind == NodeKind.CALL_EXPRESSION:
        if node.function is not None:
            yield node.function
        yield from node.arguments
    elif kind == NodeKind.ARRAY_EXPRESSION:
        yield from node.elements


def walk_expressions(node: Node) -> Iterator[Expression]:
    """
    Every expression in a subtree, depth first, parents before children.

    Nested blocks are included. Uses an explicit stack, so deep trees do
    not hit the recursion limit.
    """
    stack = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, Expression):
            yield current
        stack.extend(reversed(list(iter_children(current))))


class ASTVisitor:
    """
    Base class for syntax tree visitors.

    Dispatches on ``node.kind`` to ``visit_<kind name in lowercase>``.
    Subclasses override the methods for the node kinds they care about;
    the defaults visit children.

    Usage:
        class MnemonicCounter(ASTVisitor):
            def visit_instruction_statement(self, node):
                self.count += 1

        MnemonicCounter().visit(program)
    """

    def visit(self, node: Node) -> Any:
        method = getattr(self, f"visit_{node.kind.name.lower()}")
        return method(node)

    def generic_visit(self, node: Node) -> None:
        for child in iter_children(node):
            self.visit(child)

    def visit_program(self, node: Program): return self.generic_visit(node)
    def visit_label_statement(self, node: LabelStatement): return self.generic_visit(node)
    def visit_instruction_statement(self, node: InstructionStatement): return self.generic_visit(node)
    def visit_directive_statement(self, node: DirectiveStatement): return self.generic_visit(node)
    def visit_block_statement(self, node: BlockStatement): return self.generic_visit(node)
    def visit_expression_statement(self, node: ExpressionStatement): return self.generic_visit(node)
    def visit_identifier(self, node: Identifier): return self.generic_visit(node)
    def visit_integer_literal(self, node: IntegerLiteral): return self.generic_visit(node)
    def visit_string_literal(self, node: StringLiteral): return self.generic_visit(node)
    def visit_prefix_expression(self, node: PrefixExpression): return self.generic_visit(node)
    def visit_infix_expression(self, node: InfixExpression): return self.generic_visit(node)
    def visit_grouped_expression(self, node: GroupedExpression): return self.generic_visit(node)
    def visit_call_expression(self, node: CallExpression): return self.generic_visit(node)
    def visit_array_expression(self, node: ArrayExpression): return self.generic_visit(node)
    def visit_program_counter_expression(self, node: ProgramCounterExpression):
        return self.generic_visit(node)


def format_expression(node: Optional[Expression]) -> str:
    """
    Render an expression back to source-like text.

    Numeric literals keep their written form (``$FF`` stays ``$FF``).
    Missing sub-expressions render as the empty string. Binary operators
    are spaced, so ``<(table+1)`` renders as ``<(table + 1)``.
    """
    if node is None:
        return ""

    kind = node.kind
    if kind == NodeKind.IDENTIFIER:
        return node.value
    if kind == NodeKind.INTEGER_LITERAL:
        return node.token.literal
    if kind == NodeKind.STRING_LITERAL:
        return f'"{node.value}"'
    if kind == NodeKind.PROGRAM_COUNTER_EXPRESSION:
        return "*"
    if kind == NodeKind.PREFIX_EXPRESSION:
        return f"{node.operator}{format_expression(node.right)}"
    if kind == NodeKind.INFIX_EXPRESSION:
        left = format_expression(node.left)
        right = format_expression(node.right)
        if node.operator in (",", "."):
            return f"{left}{node.operator}{right}"
        return f"{left} {node.operator} {right}"
    if kind == NodeKind.GROUPED_EXPRESSION:
        if node.token.literal == "[":
            return f"[{format_expression(node.expression)}]"
        return f"({format_expression(node.expression)})"
    if kind == NodeKind.CALL_EXPRESSION:
        arguments = ", ".join(format_expression(arg) for arg in node.arguments)
        return f"{format_expression(node.function)}({arguments})"
    if kind == NodeKind.ARRAY_EXPRESSION:
        return ", ".join(format_expression(element) for element in node.elements)
    return node.token.literal
