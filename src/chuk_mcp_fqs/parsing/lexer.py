"""
Lexer - raw notation text to a flat token sequence.

Whitespace is never emitted, but every token carries its columns so the
absence of whitespace stays observable downstream.
"""

from __future__ import annotations

from collections.abc import Iterator

from chuk_mcp_fqs.constants import ErrorMessages
from chuk_mcp_fqs.errors import LexError
from chuk_mcp_fqs.parsing.tokens import (
    DIGITS,
    DOUBLING_ACCIDENTALS,
    RESERVED,
    SYMBOLS,
    WHITESPACE,
    Token,
    TokenType,
)


class Lexer:
    """
    Scans notation text one token at a time.

    A lexer is single-use: once `tokens()` has reached EOF it cannot be
    restarted. Create a new Lexer to scan again.
    """

    def __init__(self, text: str) -> None:
        self._text = text.replace("\r\n", "\n")
        self._pos = 0
        self._line = 1
        self._col = 1

    def _peek(self) -> str | None:
        return self._text[self._pos] if self._pos < len(self._text) else None

    def _advance(self) -> str:
        char = self._text[self._pos]
        self._pos += 1
        if char == "\n":
            self._line += 1
            self._col = 1
        else:
            self._col += 1
        return char

    def _skip_whitespace(self) -> None:
        while self._peek() in WHITESPACE:
            self._advance()

    def next_token(self) -> Token:
        """Scan and return the next token (EOF once input is exhausted)."""
        self._skip_whitespace()

        char = self._peek()
        line, col = self._line, self._col

        if char is None:
            return Token(TokenType.EOF, "", line, col, col)

        if char == "\n":
            self._advance()
            return Token(TokenType.NEWLINE, "\n", line, col, col + 1)

        if char in DOUBLING_ACCIDENTALS:
            value = self._advance()
            if self._peek() == char:
                value += self._advance()
            return Token(TokenType.ACCIDENTAL, value, line, col, self._col)

        if char in SYMBOLS:
            self._advance()
            return Token(SYMBOLS[char], char, line, col, col + 1)

        if char in DIGITS:
            value = ""
            while (c := self._peek()) is not None and c in DIGITS:
                value += self._advance()
            return Token(TokenType.NUMBER, value, line, col, self._col)

        # Identifier: anything that is not a digit, whitespace or reserved symbol
        value = ""
        while (c := self._peek()) is not None:
            if c in DIGITS or c in WHITESPACE or c == "\n" or c in RESERVED:
                break
            value += self._advance()

        if not value:
            raise LexError(ErrorMessages.UNEXPECTED_CHAR.format(char=char), line, col)

        return Token(TokenType.IDENTIFIER, value, line, col, self._col)

    def tokens(self) -> Iterator[Token]:
        """Yield every token, ending with a single EOF token."""
        while True:
            token = self.next_token()
            yield token
            if token.type == TokenType.EOF:
                return


def tokenize(text: str) -> list[Token]:
    """
    Tokenize notation text.

    Args:
        text: Source text (CRLF line endings are normalized to LF)

    Returns:
        Tokens in source order, terminated by exactly one EOF token
    """
    return list(Lexer(text).tokens())
