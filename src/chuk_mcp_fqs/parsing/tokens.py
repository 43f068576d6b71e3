"""
Lexical tokens.

Every token records its start and end column so the parser can tell
adjacent tokens ("Hap.py") from tokens separated by whitespace.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TokenType(str, Enum):
    """Token categories produced by the lexer."""

    IDENTIFIER = "Identifier"
    NUMBER = "Number"
    BARLINE = "Barline"  # |
    LBRAK = "LBrak"  # [
    RBRAK = "RBrak"  # ]
    LPAREN = "LParen"  # (
    RPAREN = "RParen"  # )
    DOT = "Dot"  # .
    HYPHEN = "Hyphen"  # -
    UNDERSCORE = "Underscore"  # _
    ASTERISK = "Asterisk"  # *
    CARET = "Caret"  # ^
    SLASH = "Slash"  # /
    ACCIDENTAL = "Accidental"  # # ## & && %
    COLON = "Colon"  # :
    SEMICOLON = "Semicolon"  # ;
    EQUALS = "Equals"  # =
    NEWLINE = "Newline"
    EOF = "EOF"


# Single-character symbols
SYMBOLS: dict[str, TokenType] = {
    "|": TokenType.BARLINE,
    "[": TokenType.LBRAK,
    "]": TokenType.RBRAK,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    ".": TokenType.DOT,
    "-": TokenType.HYPHEN,
    "_": TokenType.UNDERSCORE,
    "*": TokenType.ASTERISK,
    "^": TokenType.CARET,
    "/": TokenType.SLASH,
    ";": TokenType.SEMICOLON,
    "=": TokenType.EQUALS,
    ":": TokenType.COLON,
    "%": TokenType.ACCIDENTAL,
}

# Accidentals that collapse when doubled (## and &&)
DOUBLING_ACCIDENTALS = frozenset({"#", "&"})

# Characters that end an identifier run
RESERVED = frozenset(SYMBOLS) | DOUBLING_ACCIDENTALS
WHITESPACE = frozenset({" ", "\t", "\r"})
DIGITS = frozenset("0123456789")


@dataclass(frozen=True)
class Token:
    """A single lexical token."""

    type: TokenType
    value: str
    line: int  # 1-based
    col: int  # 1-based start column
    end_col: int  # Exclusive end column

    def adjacent_to(self, previous: Token) -> bool:
        """True when no whitespace separates this token from the previous one."""
        return self.col <= previous.end_col

    def __str__(self) -> str:
        return f"{self.type.value}({self.value!r}) @ {self.line}:{self.col}"
