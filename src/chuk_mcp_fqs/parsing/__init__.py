"""Source text to Score: lexer, token types and parser."""

from chuk_mcp_fqs.parsing.lexer import Lexer, tokenize
from chuk_mcp_fqs.parsing.parser import Parser, parse
from chuk_mcp_fqs.parsing.tokens import Token, TokenType

__all__ = [
    "Lexer",
    "Parser",
    "Token",
    "TokenType",
    "parse",
    "tokenize",
]
