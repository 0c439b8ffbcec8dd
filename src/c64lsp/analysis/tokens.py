"""
Tokens and Lexical Contexts
===========================

Token kinds, token records and the lexical context records the
context-aware lexer keeps on its stack.

Token Kinds
-----------
- Literals: NUMBER_HEX ($FF), NUMBER_BIN (%1010), NUMBER_OCT (&17),
  NUMBER_DEC (42, 3.5, and 'A' converted to 65), STRING ("text")
- Comments: COMMENT (// and ;), COMMENT_BLOCK (/* */)
- Mnemonic classes: MNEMONIC_STD, MNEMONIC_CTRL (branches, jumps,
  returns), MNEMONIC_ILL (undocumented opcodes)
- Directive classes: DIRECTIVE_PC (*=), DIRECTIVE_PRE (#import, unknown
  directives), DIRECTIVE_FLOW (.if .for), DIRECTIVE_ASM (.namespace),
  DIRECTIVE_DATA (.byte), DIRECTIVE_TEXT (.print)
- Built-ins: BUILTIN_*_FUNC and BUILTIN_*_CONST by category
- Operators and punctuation
- ILLEGAL: anything unrecognized, including malformed hex ($GG)

Lexical Contexts
----------------
A LexerContext pairs a LexerState with the directive that opened it and
its depth on the stack. The bottom of the stack is always NORMAL at
depth 0.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

from c64lsp.errors import SourceLocation
from c64lsp.reference.models import ConstantInfo, FunctionInfo, MnemonicInfo


# =============================================================================
# Token Type Enumeration
# =============================================================================

class TokenType(Enum):
    """Closed set of token kinds produced by the context-aware lexer."""

    # Structural
    ILLEGAL = auto()
    EOF = auto()

    # Comments
    COMMENT = auto()         # // ... or ; ...
    COMMENT_BLOCK = auto()   # /* ... */

    # Names
    IDENTIFIER = auto()
    LABEL = auto()           # name: (literal includes the colon)
    ELSE = auto()

    # Literals
    NUMBER_HEX = auto()      # $FF or #$FF
    NUMBER_BIN = auto()      # %1010
    NUMBER_OCT = auto()      # &17
    NUMBER_DEC = auto()      # 42, 3.14, 'A'
    STRING = auto()          # "text"

    # 6510 mnemonics
    MNEMONIC_STD = auto()
    MNEMONIC_CTRL = auto()
    MNEMONIC_ILL = auto()

    # Directives
    DIRECTIVE_PC = auto()    # *=
    DIRECTIVE_PRE = auto()   # #import, #define, unknown .directives
    DIRECTIVE_FLOW = auto()  # .if, .for, .while, .return
    DIRECTIVE_ASM = auto()   # .namespace, .macro, .const, ...
    DIRECTIVE_DATA = auto()  # .byte, .word, .text, ...
    DIRECTIVE_TEXT = auto()  # .print, .error

    # Built-in functions
    BUILTIN_MATH_FUNC = auto()
    BUILTIN_STRING_FUNC = auto()
    BUILTIN_FILE_FUNC = auto()
    BUILTIN_3D_FUNC = auto()

    # Built-in constants
    BUILTIN_MATH_CONST = auto()
    BUILTIN_COLOR_CONST = auto()

    # Operators
    PLUS = auto()            # +
    MINUS = auto()           # -
    ASTERISK = auto()        # * (multiply or program counter)
    SLASH = auto()           # /
    MODULO = auto()          # %
    EQUAL = auto()           # =
    LESS = auto()            # < (also low-byte prefix)
    GREATER = auto()         # > (also high-byte prefix)
    AMPERSAND = auto()       # &
    PIPE = auto()            # |
    CARET = auto()           # ^
    LEFT_SHIFT = auto()      # <<
    RIGHT_SHIFT = auto()     # >>
    EQUAL_EQUAL = auto()     # ==
    NOT_EQUAL = auto()       # !=
    LESS_EQUAL = auto()      # <=
    GREATER_EQUAL = auto()   # >=
    HASH = auto()            # # (immediate mode)
    AT = auto()              # @

    # Punctuation
    COMMA = auto()
    COLON = auto()
    SEMICOLON = auto()       # only inside parentheses
    DOT = auto()
    LPAREN = auto()
    RPAREN = auto()
    LBRACE = auto()
    RBRACE = auto()
    LBRACKET = auto()
    RBRACKET = auto()


MNEMONIC_TYPES = frozenset({
    TokenType.MNEMONIC_STD, TokenType.MNEMONIC_CTRL, TokenType.MNEMONIC_ILL,
})

DIRECTIVE_TYPES = frozenset({
    TokenType.DIRECTIVE_PRE, TokenType.DIRECTIVE_FLOW, TokenType.DIRECTIVE_ASM,
    TokenType.DIRECTIVE_DATA, TokenType.DIRECTIVE_TEXT,
})

NUMBER_TYPES = frozenset({
    TokenType.NUMBER_HEX, TokenType.NUMBER_BIN, TokenType.NUMBER_OCT,
    TokenType.NUMBER_DEC,
})

BUILTIN_FUNCTION_TYPES = frozenset({
    TokenType.BUILTIN_MATH_FUNC, TokenType.BUILTIN_STRING_FUNC,
    TokenType.BUILTIN_FILE_FUNC, TokenType.BUILTIN_3D_FUNC,
})

BUILTIN_CONSTANT_TYPES = frozenset({
    TokenType.BUILTIN_MATH_CONST, TokenType.BUILTIN_COLOR_CONST,
})

COMMENT_TYPES = frozenset({TokenType.COMMENT, TokenType.COMMENT_BLOCK})

# Directive category (from the Reference Context) -> token kind
DIRECTIVE_TOKEN_BY_CATEGORY = {
    "flow": TokenType.DIRECTIVE_FLOW,
    "data": TokenType.DIRECTIVE_DATA,
    "asm": TokenType.DIRECTIVE_ASM,
    "text": TokenType.DIRECTIVE_TEXT,
}

FUNCTION_TOKEN_BY_CATEGORY = {
    "string": TokenType.BUILTIN_STRING_FUNC,
    "file": TokenType.BUILTIN_FILE_FUNC,
    "3d": TokenType.BUILTIN_3D_FUNC,
}

CONSTANT_TOKEN_BY_CATEGORY = {
    "color": TokenType.BUILTIN_COLOR_CONST,
}


# =============================================================================
# Lexical Context
# =============================================================================

class LexerState(Enum):
    """Lexical states kept on the context stack."""
    NORMAL = auto()           # Top level, between statements
    DIRECTIVE = auto()        # After a .directive, until newline or {
    EXPRESSION = auto()       # Inside ( ) of a directive argument list
    STRING_LITERAL = auto()   # Inside " "
    FOR_LOOP = auto()
    BLOCK = auto()            # Inside { } of a directive body
    CONDITIONAL = auto()
    INSTRUCTION = auto()      # Right after a mnemonic
    ADDRESSING_MODE = auto()  # Inside ( ) of an indirect operand
    OPERAND = auto()          # Instruction operand


# States in which a bare newline ends the current construct
NEWLINE_SIGNIFICANT_STATES = frozenset({
    LexerState.OPERAND, LexerState.INSTRUCTION, LexerState.DIRECTIVE,
})


@dataclass(frozen=True)
class LexerContext:
    """
    One entry of the lexer's context stack.

    Attributes:
        state: The lexical state
        directive: Lowercased name of the directive that opened the
            context (empty when not directive-related)
        depth: Position on the stack (0 = bottom NORMAL entry)
    """
    state: LexerState
    directive: str = ""
    depth: int = 0


NORMAL_CONTEXT = LexerContext(LexerState.NORMAL, "", 0)


# =============================================================================
# Token Metadata
# =============================================================================

# Operand roles attached by the lexer while in OPERAND context
OPERAND_IMMEDIATE = "immediate"
OPERAND_INDIRECT = "indirect"
OPERAND_INDEXED_SEPARATOR = "indexed_separator"
OPERAND_ADDRESS = "address"
OPERAND_LABEL = "label"
OPERAND_INDEX_REGISTER = "index_register"


@dataclass
class TokenMetadata:
    """
    Classification attached to a token at lexing time.

    Attributes:
        operand_type: Role inside an instruction operand (see OPERAND_*)
        mnemonic: Reference record for mnemonic tokens
        function: Reference record for built-in function tokens
        constant: Reference record for built-in constant tokens
        directive: Lowercased directive name for directive tokens
        text: Source spelling when the literal differs from it
            (character literals)
    """
    operand_type: str = ""
    mnemonic: Optional[MnemonicInfo] = None
    function: Optional[FunctionInfo] = None
    constant: Optional[ConstantInfo] = None
    directive: str = ""
    text: str = ""

    @property
    def is_operand(self) -> bool:
        return bool(self.operand_type)


# =============================================================================
# Token
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    A token with its position and the lexical context it was produced in.

    Attributes:
        type: The TokenType classification
        literal: Source text of the token (for character literals, the
            decimal ordinal)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        context: Top of the context stack when the token was produced
        metadata: Classification details
    """
    type: TokenType
    literal: str
    line: int
    column: int
    context: LexerContext = NORMAL_CONTEXT
    metadata: TokenMetadata = field(default_factory=TokenMetadata, compare=False)

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.literal!r}, {self.line}:{self.column})"

    def location(self, filename: str = "<input>") -> SourceLocation:
        """Return a SourceLocation for error reporting."""
        return SourceLocation(filename, self.line, self.column)

    @property
    def is_mnemonic(self) -> bool:
        return self.type in MNEMONIC_TYPES

    @property
    def is_directive(self) -> bool:
        return self.type in DIRECTIVE_TYPES

    @property
    def is_number(self) -> bool:
        return self.type in NUMBER_TYPES

    @property
    def is_builtin_function(self) -> bool:
        return self.type in BUILTIN_FUNCTION_TYPES

    @property
    def is_builtin_constant(self) -> bool:
        return self.type in BUILTIN_CONSTANT_TYPES

    @property
    def is_comment(self) -> bool:
        return self.type in COMMENT_TYPES
