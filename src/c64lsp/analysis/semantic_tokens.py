"""
Semantic Tokens
===============

Encodes a document's token stream as LSP semantic tokens
(``textDocument/semanticTokens/full``).

Each emitted token is five integers::

    [delta_line, delta_start, length, token_type, modifiers]

``delta_line`` is relative to the previous emitted token; ``delta_start``
is relative to the previous token's start when both are on the same line,
otherwise to the line start. Offsets and lengths are in UTF-16 code units.
Punctuation is not emitted. A block comment spanning several lines is
emitted for its first line only.

Token Types
-----------
The legend order below is part of the wire format:

=====  ===============  ==========================================
index  type             tokens
=====  ===============  ==========================================
0      keyword          mnemonics, directives, ``else``
1      variable         identifiers, constants, variables
2      function         labels, functions, built-in functions
3      macro            macros, ``#`` preprocessor directives
4      pseudocommand    pseudocommands
5      number           numeric literals
6      comment          comments
7      string           string literals
8      operator         ``# < > + - * / =``
=====  ===============  ==========================================
"""

from typing import Optional

from c64lsp.analysis.symbols import Scope, SymbolKind
from c64lsp.analysis.tokens import (
    BUILTIN_CONSTANT_TYPES,
    BUILTIN_FUNCTION_TYPES,
    COMMENT_TYPES,
    DIRECTIVE_TYPES,
    MNEMONIC_TYPES,
    NUMBER_TYPES,
    Token,
    TokenType,
)

TOKEN_TYPES = (
    "keyword", "variable", "function", "macro", "pseudocommand",
    "number", "comment", "string", "operator",
)
TOKEN_MODIFIERS = ("declaration", "readonly")

KEYWORD = 0
VARIABLE = 1
FUNCTION = 2
MACRO = 3
PSEUDOCOMMAND = 4
NUMBER = 5
COMMENT = 6
STRING = 7
OPERATOR = 8

# Modifier bit flags
DECLARATION = 1 << 0
READONLY = 1 << 1

OPERATOR_TYPES = frozenset({
    TokenType.HASH, TokenType.LESS, TokenType.GREATER, TokenType.PLUS,
    TokenType.MINUS, TokenType.ASTERISK, TokenType.SLASH, TokenType.EQUAL,
    TokenType.EQUAL_EQUAL, TokenType.NOT_EQUAL, TokenType.LESS_EQUAL, TokenType.GREATER_EQUAL,
})

SYMBOL_TOKEN_TYPES = {
    SymbolKind.CONSTANT: VARIABLE,
    SymbolKind.VARIABLE: VARIABLE,
    SymbolKind.PARAMETER: VARIABLE,
    SymbolKind.LABEL: FUNCTION,
    SymbolKind.FUNCTION: FUNCTION,
    SymbolKind.MACRO: MACRO,
    SymbolKind.PSEUDOCOMMAND: PSEUDOCOMMAND,
}


def legend() -> dict[str, list[str]]:
    """The ``SemanticTokensLegend`` matching ``encode``."""
    return {"tokenTypes": list(TOKEN_TYPES), "tokenModifiers": list(TOKEN_MODIFIERS)}


def classify(token: Token, scope: Optional[Scope] = None) -> Optional[tuple[int, int]]:
    """(token type, modifier bits) for a token, or None to skip it."""
    token_type = token.type

    if token_type in MNEMONIC_TYPES or token_type == TokenType.ELSE:
        return KEYWORD, 0
    if token_type == TokenType.DIRECTIVE_PRE and token.literal.startswith("#"):
        return MACRO, 0
    if token_type in DIRECTIVE_TYPES or token_type == TokenType.DIRECTIVE_PC:
        return KEYWORD, DECLARATION
    if token_type in NUMBER_TYPES:
        return NUMBER, 0
    if token_type in COMMENT_TYPES:
        return COMMENT, 0
    if token_type == TokenType.STRING:
        return STRING, 0
    if token_type == TokenType.LABEL:
        return FUNCTION, 0
    if token_type == TokenType.IDENTIFIER:
        if scope is not None:
            symbol = scope.find_innermost_scope(token.line - 1).find_symbol(token.literal)
            if symbol is not None:
                return SYMBOL_TOKEN_TYPES.get(symbol.kind, KEYWORD), 0
        return VARIABLE, 0
    if token_type in BUILTIN_FUNCTION_TYPES:
        return FUNCTION, READONLY
    if token_type in BUILTIN_CONSTANT_TYPES:
        return VARIABLE, READONLY
    if token_type in OPERATOR_TYPES:
        return OPERATOR, 0
    return None


def utf16_length(text: str) -> int:
    return len(text.encode("utf-16-le")) // 2


def encode(tokens: list[Token], text: str, scope: Optional[Scope] = None) -> list[int]:
    """
    Encode tokens of ``text`` as relative semantic token data.

    Args:
        tokens: Token stream from the context-aware lexer
        text: The document text the tokens came from
        scope: Root scope used to classify identifiers (optional)
    """
    lines = text.split("\n")
    data: list[int] = []
    last_line = 0
    last_start = 0

    for token in tokens:
        if token.type == TokenType.EOF:
            break
        classification = classify(token, scope)
        if classification is None:
            continue
        token_type, modifiers = classification

        line = token.line - 1
        line_text = lines[line] if 0 <= line < len(lines) else ""
        start = utf16_length(line_text[:token.column - 1])
        spelling = token.metadata.text or token.literal
        length = utf16_length(spelling.split("\n", 1)[0])
        if length == 0:
            continue

        delta_line = line - last_line
        delta_start = start - last_start if delta_line == 0 else start
        data.extend((delta_line, delta_start, length, token_type, modifiers))
        last_line, last_start = line, start

    return data
