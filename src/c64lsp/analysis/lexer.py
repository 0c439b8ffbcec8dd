"""
Context-Aware Lexer
===================

This module converts 6510 / Kick Assembler source text into tokens. Unlike
a plain regex tokenizer it keeps an explicit stack of lexical contexts,
because the same characters mean different things depending on where
they appear:

- ``;`` starts a comment, except inside parentheses where it separates
  the clauses of ``.for (init; test; step)``
- a newline ends an instruction operand or a directive, but is plain
  whitespace inside a block or a parenthesized expression
- ``X`` after ``lda $10,`` is an index register, elsewhere a name

Tokenization Priority
---------------------
At every call, highest first:

1. End of input -> EOF (no context is popped)
2. ``//`` line comment or ``/* */`` block comment, in any context
3. ``;`` -> comment at parenthesis depth 0, SEMICOLON otherwise
4. Dispatch on the top of the context stack:

   ============================  =====================================
   STRING_LITERAL                string body
   DIRECTIVE                     directive content
   EXPRESSION / ADDRESSING_MODE  sub-expression content
   INSTRUCTION                   operand follows, or end of statement
   OPERAND                       addressing-mode aware operand
   NORMAL / BLOCK / others       top-level recognition
   ============================  =====================================

Context Transitions
-------------------
::

    mnemonic at top level       push INSTRUCTION
    INSTRUCTION + more on line  INSTRUCTION -> OPERAND
    OPERAND "("                 push ADDRESSING_MODE
    ADDRESSING_MODE ")"         pop
    OPERAND lone X / Y          pop
    OPERAND newline             pop
    .directive / #keyword       push DIRECTIVE
    DIRECTIVE newline           pop
    DIRECTIVE "{"               DIRECTIVE -> BLOCK
    DIRECTIVE "("               push EXPRESSION
    EXPRESSION "(" / ")"        push / pop
    any other "{"               push BLOCK
    BLOCK "}"                   pop
    '"'                         push STRING_LITERAL, popped at closing '"'

A line comment also ends a pending operand, instruction or directive,
and a ``}`` reached while one of those is open ends it before closing the
block, so one-line blocks (``.namespace NS { .const Y = 5 }``) leave the
stack balanced.

The stack depth is bounded. Pushes beyond the bound are counted but not
stored, and the matching pops consume the count, so pathological input
(thousands of nested parentheses) cannot grow the stack without limit.

Example
-------
>>> lexer = ContextAwareLexer("loop: lda #$01\\n", reference)
>>> [t.type.name for t in lexer.tokenize()]
['LABEL', 'MNEMONIC_STD', 'HASH', 'NUMBER_HEX', 'EOF']
"""

import logging
import string
from typing import Iterator, Optional

from c64lsp.analysis.tokens import (
    CONSTANT_TOKEN_BY_CATEGORY,
    DIRECTIVE_TOKEN_BY_CATEGORY,
    FUNCTION_TOKEN_BY_CATEGORY,
    NEWLINE_SIGNIFICANT_STATES,
    NORMAL_CONTEXT,
    OPERAND_ADDRESS,
    OPERAND_IMMEDIATE,
    OPERAND_INDEX_REGISTER,
    OPERAND_INDEXED_SEPARATOR,
    OPERAND_INDIRECT,
    OPERAND_LABEL,
    LexerContext,
    LexerState,
    Token,
    TokenMetadata,
    TokenType,
)
from c64lsp.reference.context import ReferenceContext

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 128


class ContextAwareLexer:
    """
    Tokenizes 6510 / Kick Assembler source with an explicit context stack.

    A lexer instance is stateful and tokenizes one document once; create a
    new instance per parse.

    Usage:
        lexer = ContextAwareLexer(source_text, reference)
        tokens = list(lexer.tokenize())

    Attributes:
        source: The text being tokenized
        reference: Reference Context used to classify words (optional;
            without it no mnemonics, directive categories or built-ins are
            recognized)
        max_depth: Maximum number of entries on the context stack
        overflowed: True once a push was refused because of max_depth
        overflow_line: Line of the first refused push
        overflow_column: Column of the first refused push
    """

    # Characters that can start an identifier
    IDENT_START = string.ascii_letters + "_"

    # Characters that can continue an identifier or label
    IDENT_CHARS = string.ascii_letters + string.digits + "_"

    LETTERS = string.ascii_letters
    DIGITS = string.digits
    HEX_DIGITS = string.hexdigits
    OCT_DIGITS = string.octdigits
    BIN_DIGITS = "01"

    INDEX_REGISTERS = "xXyY"

    # Single-character operators and punctuation
    SINGLE_CHAR_TOKENS = {
        ":": TokenType.COLON,
        "#": TokenType.HASH,
        ".": TokenType.DOT,
        ",": TokenType.COMMA,
        "+": TokenType.PLUS,
        "-": TokenType.MINUS,
        "*": TokenType.ASTERISK,
        "/": TokenType.SLASH,
        "(": TokenType.LPAREN,
        ")": TokenType.RPAREN,
        "[": TokenType.LBRACKET,
        "]": TokenType.RBRACKET,
        "{": TokenType.LBRACE,
        "}": TokenType.RBRACE,
        "=": TokenType.EQUAL,
        "<": TokenType.LESS,
        ">": TokenType.GREATER,
        "@": TokenType.AT,
        ";": TokenType.SEMICOLON,
        "&": TokenType.AMPERSAND,
        "|": TokenType.PIPE,
        "^": TokenType.CARET,
        "%": TokenType.MODULO,
    }

    # Two-character operators, matched before single characters
    DOUBLE_CHAR_TOKENS = {
        "<<": TokenType.LEFT_SHIFT,
        ">>": TokenType.RIGHT_SHIFT,
        "==": TokenType.EQUAL_EQUAL,
        "!=": TokenType.NOT_EQUAL,
        "<=": TokenType.LESS_EQUAL,
        ">=": TokenType.GREATER_EQUAL,
    }

    def __init__(
        self,
        source: str,
        reference: Optional[ReferenceContext] = None,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        debug_mode: bool = False,
    ):
        self.source = source
        self.reference = reference
        self.max_depth = max(max_depth, 1)
        self.debug_mode = debug_mode

        # Current position in source
        self._pos = 0
        self._line = 1
        self._column = 1

        self._stack: list[LexerContext] = [NORMAL_CONTEXT]
        self._paren_depth = 0

        # Pushes refused because the stack was full
        self._overflow = 0
        self.overflowed = False
        self.overflow_line = 0
        self.overflow_column = 0

    # =========================================================================
    # Public Interface
    # =========================================================================

    def tokenize(self) -> Iterator[Token]:
        """
        Generate every token of the source, ending with EOF.

        Yields:
            Token objects in source order
        """
        while True:
            token = self.next_token()
            yield token
            if token.type == TokenType.EOF:
                return

    def next_token(self) -> Token:
        """Produce the next token."""
        while True:
            self._skip_whitespace()

            if self._at_end():
                return self._make_token(TokenType.EOF, "", self._line, self._column)

            if self.debug_mode:
                logger.debug(
                    f"next_token at {self._line}:{self._column}, "
                    f"state={self.current_context.state.name}, depth={self.context_depth}"
                )

            if self._starts_with("//"):
                self._end_line_construct()
                return self._read_line_comment()
            if self._starts_with("/*"):
                return self._read_block_comment()
            if self._peek() == ";" and self._paren_depth == 0:
                self._end_line_construct()
                return self._read_line_comment()

            state = self.current_context.state
            if state == LexerState.STRING_LITERAL:
                token = self._tokenize_string()
            elif state == LexerState.DIRECTIVE:
                token = self._tokenize_directive_content()
            elif state == LexerState.EXPRESSION:
                token = self._tokenize_expression()
            elif state == LexerState.ADDRESSING_MODE:
                token = self._tokenize_addressing_mode()
            elif state == LexerState.INSTRUCTION:
                token = self._tokenize_instruction()
            elif state == LexerState.OPERAND:
                token = self._tokenize_operand()
            else:
                token = self._tokenize_normal()

            # None: the handler only consumed a newline or changed context
            if token is not None:
                return token

    @property
    def current_context(self) -> LexerContext:
        """Top of the context stack."""
        return self._stack[-1]

    @property
    def context_depth(self) -> int:
        """Number of entries on the context stack (1 = only NORMAL)."""
        return len(self._stack)

    @property
    def contexts(self) -> tuple[LexerContext, ...]:
        """Snapshot of the context stack, bottom first."""
        return tuple(self._stack)

    # =========================================================================
    # Context Stack
    # =========================================================================

    def push_context(self, state: LexerState, directive: str = "") -> bool:
        """
        Enter a nested lexical context.

        Returns:
            False if the push was refused because the stack is full
        """
        if len(self._stack) >= self.max_depth:
            if not self.overflowed:
                logger.warning(
                    f"Lexer context stack exceeded {self.max_depth} entries "
                    f"at {self._line}:{self._column}"
                )
                self.overflow_line = self._line
                self.overflow_column = self._column
            self.overflowed = True
            self._overflow += 1
            return False

        self._stack.append(LexerContext(state, directive, len(self._stack)))
        return True

    def pop_context(self) -> None:
        """Leave the current context. The bottom NORMAL entry is never popped."""
        if self._overflow:
            self._overflow -= 1
        elif len(self._stack) > 1:
            self._stack.pop()

    def _end_line_construct(self) -> None:
        # A line comment ends a pending operand, instruction or directive
        if not self._overflow and self.current_context.state in NEWLINE_SIGNIFICANT_STATES:
            self.pop_context()

    # =========================================================================
    # Character Access
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self.source)

    def _peek(self, offset: int = 0) -> str:
        """Character at current position + offset, or "" past the end."""
        pos = self._pos + offset
        if pos >= len(self.source):
            return ""
        return self.source[pos]

    def _starts_with(self, text: str) -> bool:
        return self.source.startswith(text, self._pos)

    def _advance(self) -> str:
        """Consume one character, keeping line and column current."""
        if self._at_end():
            return ""
        char = self.source[self._pos]
        self._pos += 1
        if char == "\n":
            self._line += 1
            self._column = 1
        else:
            self._column += 1
        return char

    def _advance_to(self, pos: int) -> str:
        """Consume characters up to ``pos`` and return them."""
        start = self._pos
        while self._pos < pos:
            self._advance()
        return self.source[start:self._pos]

    def _scan(self, pos: int, chars: str) -> int:
        """Index of the first character at or after ``pos`` not in ``chars``."""
        while pos < len(self.source) and self.source[pos] in chars:
            pos += 1
        return pos

    def _char_at(self, pos: int) -> str:
        return self.source[pos] if pos < len(self.source) else ""

    def _skip_whitespace(self) -> None:
        """
        Skip spaces, tabs and carriage returns. Newlines are skipped too,
        except in OPERAND, INSTRUCTION and DIRECTIVE contexts where they
        end the construct and are left for the state handler.
        """
        while not self._at_end():
            char = self._peek()
            if char in " \t\r":
                self._advance()
            elif char == "\n":
                if self.current_context.state in NEWLINE_SIGNIFICANT_STATES:
                    return
                self._advance()
            else:
                return

    # =========================================================================
    # Token Creation
    # =========================================================================

    def _make_token(
        self,
        token_type: TokenType,
        literal: str,
        line: int,
        column: int,
        metadata: Optional[TokenMetadata] = None,
    ) -> Token:
        token = Token(
            type=token_type,
            literal=literal,
            line=line,
            column=column,
            context=self.current_context,
            metadata=metadata if metadata is not None else TokenMetadata(),
        )
        if self.debug_mode:
            logger.debug(f"Token {token!r} in {token.context.state.name}")
        return token

    # =========================================================================
    # Comments
    # =========================================================================

    def _read_line_comment(self) -> Token:
        line, column = self._line, self._column
        end = self.source.find("\n", self._pos)
        if end == -1:
            end = len(self.source)
        literal = self._advance_to(end)
        return self._make_token(TokenType.COMMENT, literal, line, column)

    def _read_block_comment(self) -> Token:
        line, column = self._line, self._column
        end = self.source.find("*/", self._pos + 2)
        end = len(self.source) if end == -1 else end + 2
        literal = self._advance_to(end)
        return self._make_token(TokenType.COMMENT_BLOCK, literal, line, column)

    # =========================================================================
    # State Handlers
    # =========================================================================

    def _tokenize_normal(self) -> Optional[Token]:
        """Top-level recognition (NORMAL, BLOCK and the other outer states)."""
        char = self._peek()

        if char == "#" and self._is_preprocessor_keyword():
            return self._tokenize_preprocessor()

        if char == "." and self._peek(1) and self._peek(1) in self.LETTERS:
            return self._tokenize_directive()

        if char == "*" and self._peek(1) == "=":
            line, column = self._line, self._column
            self._advance_to(self._pos + 2)
            return self._make_token(TokenType.DIRECTIVE_PC, "*=", line, column)

        token = self._try_label()
        if token:
            return token

        token = self._try_mnemonic()
        if token:
            self.push_context(LexerState.INSTRUCTION)
            return token

        token = self._try_number()
        if token:
            return token

        if char == '"':
            return self._tokenize_string()

        token = self._try_identifier()
        if token:
            return token

        return self._tokenize_operator()

    def _tokenize_directive_content(self) -> Optional[Token]:
        char = self._peek()

        if char == "\n":
            self.pop_context()
            self._advance()
            return None

        if char == "{":
            self.pop_context()
            return self._tokenize_operator()

        if char == "}":
            # Ends the directive; the enclosing context closes the block
            self.pop_context()
            return None

        if char == "(":
            self.push_context(LexerState.EXPRESSION)
            return self._tokenize_operator()

        return self._tokenize_value()

    def _tokenize_expression(self) -> Optional[Token]:
        char = self._peek()

        if char == ")":
            self.pop_context()
            return self._tokenize_operator()

        if char == "(":
            self.push_context(LexerState.EXPRESSION)
            return self._tokenize_operator()

        return self._tokenize_value()

    def _tokenize_instruction(self) -> Optional[Token]:
        if self._peek() == "\n":
            self.pop_context()
            self._advance()
            return None

        self.pop_context()
        self.push_context(LexerState.OPERAND)
        return None

    def _tokenize_operand(self) -> Optional[Token]:
        """Operand tokens, tagged with their addressing-mode role."""
        char = self._peek()

        if char == "\n":
            self.pop_context()
            self._advance()
            return None

        if char == "}":
            self.pop_context()
            return None

        if char == "#":
            return self._tokenize_operator(TokenMetadata(operand_type=OPERAND_IMMEDIATE))

        if char == "(":
            self.push_context(LexerState.ADDRESSING_MODE)
            return self._tokenize_operator(TokenMetadata(operand_type=OPERAND_INDIRECT))

        if char == ",":
            token = self._tokenize_operator()
            self._skip_whitespace()
            if self._is_lone_register(self._pos):
                token.metadata.operand_type = OPERAND_INDEXED_SEPARATOR
            return token

        if char == '"':
            return self._tokenize_string()

        token = self._try_number()
        if token:
            token.metadata.operand_type = OPERAND_ADDRESS
            return token

        if self._is_lone_register(self._pos):
            line, column = self._line, self._column
            register = self._advance()
            token = self._make_token(
                TokenType.IDENTIFIER, register, line, column,
                TokenMetadata(operand_type=OPERAND_INDEX_REGISTER),
            )
            self.pop_context()
            return token

        token = self._try_identifier()
        if token:
            token.metadata.operand_type = OPERAND_LABEL
            return token

        return self._tokenize_operator()

    def _tokenize_addressing_mode(self) -> Optional[Token]:
        if self._peek() == ")":
            self.pop_context()
            return self._tokenize_operator()

        return self._tokenize_value()

    def _tokenize_value(self) -> Token:
        """Numbers, strings, identifiers, then operators."""
        token = self._try_number()
        if token:
            return token

        if self._peek() == '"':
            return self._tokenize_string()

        token = self._try_identifier()
        if token:
            return token

        return self._tokenize_operator()

    # =========================================================================
    # Directives
    # =========================================================================

    def _is_preprocessor_keyword(self) -> bool:
        if self.reference is None:
            return False
        end = self._scan(self._pos + 1, self.LETTERS)
        word = self.source[self._pos:end].lower()
        return self.reference.is_preprocessor_statement(word)

    def _tokenize_preprocessor(self) -> Token:
        line, column = self._line, self._column
        literal = self._advance_to(self._scan(self._pos + 1, self.LETTERS))
        name = literal.lower()
        self.push_context(LexerState.DIRECTIVE, name)
        return self._make_token(
            TokenType.DIRECTIVE_PRE, literal, line, column,
            TokenMetadata(directive=name),
        )

    def _tokenize_directive(self) -> Token:
        line, column = self._line, self._column
        literal = self._advance_to(self._scan(self._pos + 1, self.IDENT_CHARS))
        name = literal.lower()

        token_type = TokenType.DIRECTIVE_PRE
        if self.reference is not None and self.reference.lookup_directive(name) is not None:
            category = self.reference.directive_category(name)
            token_type = DIRECTIVE_TOKEN_BY_CATEGORY.get(category, TokenType.DIRECTIVE_PRE)

        self.push_context(LexerState.DIRECTIVE, name)
        return self._make_token(token_type, literal, line, column, TokenMetadata(directive=name))

    # =========================================================================
    # Strings
    # =========================================================================

    def _tokenize_string(self) -> Token:
        """
        Read a double-quoted string. An unterminated string ends at the
        end of the line; the newline is not part of it.
        """
        self.push_context(LexerState.STRING_LITERAL)
        line, column = self._line, self._column
        start = self._pos

        self._advance()  # opening quote
        while not self._at_end():
            char = self._peek()
            if char == '"':
                self._advance()
                break
            if char == "\n":
                break
            if char == "\\":
                self._advance()
                if self._peek() not in ("", "\n"):
                    self._advance()
                continue
            self._advance()

        literal = self.source[start:self._pos]
        self.pop_context()
        return self._make_token(TokenType.STRING, literal, line, column)

    # =========================================================================
    # Labels, Mnemonics and Identifiers
    # =========================================================================

    def _try_label(self) -> Optional[Token]:
        """``name:`` or multi-label ``!name:`` / ``!:`` at top level."""
        pos = self._pos
        char = self._peek()
        if char == "!":
            end = self._scan(pos + 1, self.IDENT_CHARS)
        elif char in self.IDENT_START:
            end = self._scan(pos, self.IDENT_CHARS)
        else:
            return None

        if self._char_at(end) != ":" or self._char_at(end + 1) == ":":
            return None

        line, column = self._line, self._column
        literal = self._advance_to(end + 1)
        return self._make_token(TokenType.LABEL, literal, line, column)

    def _try_mnemonic(self) -> Optional[Token]:
        """Exactly three letters, a word boundary, and a known mnemonic."""
        if self.reference is None:
            return None
        end = self._pos + 3
        word = self.source[self._pos:end]
        if len(word) != 3 or any(c not in self.LETTERS for c in word):
            return None
        if self._char_at(end) and self._char_at(end) in self.IDENT_CHARS:
            return None

        info = self.reference.lookup_mnemonic(word)
        if info is None:
            return None

        if self.reference.is_illegal_mnemonic(word):
            token_type = TokenType.MNEMONIC_ILL
        elif self.reference.is_control_mnemonic(word):
            token_type = TokenType.MNEMONIC_CTRL
        else:
            token_type = TokenType.MNEMONIC_STD

        line, column = self._line, self._column
        literal = self._advance_to(end)
        return self._make_token(token_type, literal, line, column, TokenMetadata(mnemonic=info))

    def _is_lone_register(self, pos: int) -> bool:
        char = self._char_at(pos)
        if not char or char not in self.INDEX_REGISTERS:
            return False
        following = self._char_at(pos + 1)
        return not following or following not in self.IDENT_CHARS + "."

    def _try_identifier(self) -> Optional[Token]:
        """
        Identifiers may contain dots (``Colors.BLUE``) and start with ``!``
        (multi-label references such as ``!loop+`` or ``!-``).
        """
        char = self._peek()
        following = self._peek(1)
        pos = self._pos
        if char in self.IDENT_START:
            end = self._scan(pos + 1, self.IDENT_CHARS + ".")
        elif char == "!" and following and following in self.IDENT_START + "+-":
            end = self._scan(pos + 1, self.IDENT_CHARS + ".")
            end = self._scan(end, "+-")
        else:
            return None

        line, column = self._line, self._column
        literal = self._advance_to(end)

        if literal == "else":
            return self._make_token(TokenType.ELSE, literal, line, column)

        token_type = TokenType.IDENTIFIER
        metadata = TokenMetadata()
        if self.reference is not None and not literal.startswith("!"):
            function = self.reference.lookup_function(literal)
            if function:
                metadata.function = function
                token_type = FUNCTION_TOKEN_BY_CATEGORY.get(
                    function.category, TokenType.BUILTIN_MATH_FUNC)
            constant = self.reference.lookup_constant(literal)
            if constant:
                metadata.constant = constant
                token_type = CONSTANT_TOKEN_BY_CATEGORY.get(
                    constant.category, TokenType.BUILTIN_MATH_CONST)

        return self._make_token(token_type, literal, line, column, metadata)

    # =========================================================================
    # Numbers
    # =========================================================================

    def _try_number(self) -> Optional[Token]:
        """
        Numeric literal with an optional ``#`` immediate prefix.

        ``$`` hex, ``%`` binary, ``&`` octal, decimal with optional
        fraction, ``'c'`` character literal (emitted as its decimal
        ordinal). Letters directly after a hex literal make the whole run
        an ILLEGAL token (``$GG``, ``$12XY``).
        """
        start = self._pos
        line, column = self._line, self._column
        pos = start + 1 if self._peek() == "#" else start
        char = self._char_at(pos)

        if char == "$":
            digits_end = self._scan(pos + 1, self.HEX_DIGITS)
            following = self._char_at(digits_end)
            if following and following in self.LETTERS:
                end = self._scan(digits_end, self.LETTERS + self.DIGITS)
                literal = self._advance_to(end)
                logger.debug(f"Invalid hex number at {line}:{column}: {literal}")
                return self._make_token(TokenType.ILLEGAL, literal, line, column)
            if digits_end == pos + 1:
                return None
            return self._make_token(TokenType.NUMBER_HEX, self._advance_to(digits_end), line, column)

        if char == "%":
            end = self._scan(pos + 1, self.BIN_DIGITS)
            if end == pos + 1:
                return None
            return self._make_token(TokenType.NUMBER_BIN, self._advance_to(end), line, column)

        if char == "&":
            end = self._scan(pos + 1, self.OCT_DIGITS)
            if end == pos + 1:
                return None
            return self._make_token(TokenType.NUMBER_OCT, self._advance_to(end), line, column)

        if char == "'":
            value = self._char_at(pos + 1)
            if not value or value == "\n" or self._char_at(pos + 2) != "'":
                return None
            text = self._advance_to(pos + 3)
            return self._make_token(
                TokenType.NUMBER_DEC, str(ord(value)), line, column, TokenMetadata(text=text),
            )

        if char and char in self.DIGITS:
            end = self._scan(pos, self.DIGITS)
            fraction = self._char_at(end + 1)
            if self._char_at(end) == "." and fraction and fraction in self.DIGITS:
                end = self._scan(end + 1, self.DIGITS)
            return self._make_token(TokenType.NUMBER_DEC, self._advance_to(end), line, column)

        return None

    # =========================================================================
    # Operators and Punctuation
    # =========================================================================

    def _tokenize_operator(self, metadata: Optional[TokenMetadata] = None) -> Token:
        line, column = self._line, self._column

        pair = self.source[self._pos:self._pos + 2]
        if pair in self.DOUBLE_CHAR_TOKENS:
            self._advance_to(self._pos + 2)
            return self._make_token(self.DOUBLE_CHAR_TOKENS[pair], pair, line, column, metadata)

        char = self._advance()
        token_type = self.SINGLE_CHAR_TOKENS.get(char)
        if token_type is None:
            return self._make_token(TokenType.ILLEGAL, char, line, column, metadata)

        if token_type == TokenType.LPAREN:
            self._paren_depth += 1
        elif token_type == TokenType.RPAREN:
            if self._paren_depth > 0:
                self._paren_depth -= 1
        elif token_type == TokenType.LBRACE:
            self.push_context(LexerState.BLOCK)
        elif token_type == TokenType.RBRACE:
            if self._overflow or self.current_context.state == LexerState.BLOCK:
                self.pop_context()

        return self._make_token(token_type, char, line, column, metadata)
