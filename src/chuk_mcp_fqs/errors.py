"""
Exception taxonomy.

Parsing is all-or-nothing: any ScoreSyntaxError invalidates the whole
score. Layout and audio generation never raise on a valid AST.
"""

from __future__ import annotations


class FQSError(Exception):
    """Base class for all notation compiler errors."""


class LexError(FQSError):
    """
    Internal lexer invariant violation.

    The identifier fallback consumes any unclassified character, so this
    is unreachable for any input string.
    """

    def __init__(self, message: str, line: int, col: int) -> None:
        super().__init__(f"[Line {line} Col {col}] {message}")
        self.line = line
        self.col = col


class ScoreSyntaxError(FQSError):
    """Malformed notation, with the position of the offending token."""

    def __init__(self, message: str, line: int, col: int, token: str = "") -> None:
        super().__init__(f"[Line {line} Col {col}] Error at '{token}': {message}")
        self.message = message
        self.line = line
        self.col = col
        self.token = token


class ConfigError(FQSError):
    """Invalid settings file."""
