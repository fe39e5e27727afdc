"""Token definitions for the minilang lexer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from minilang.diagnostics.location import SourceLocation


class TokenKind(Enum):
    """All token kinds produced by the minilang lexer."""

    KEYWORD = "keyword"
    IDENTIFIER = "identifier"
    NUMBER = "number"
    STRING = "string"
    SYMBOL = "symbol"
    OPERATOR = "operator"
    EOF = "eof"

    def __str__(self) -> str:
        return self.value


# Two-character operators recognized by lookahead; every other punctuation
# character is emitted on its own as a SYMBOL.
OPERATOR_SEQUENCES: frozenset[str] = frozenset({"==", "!=", ">=", "<=", "->", "&&", "||", "::"})


@dataclass(frozen=True)
class Token:
    """A single token produced by the minilang lexer."""

    kind: TokenKind
    lexeme: str
    location: SourceLocation

    @property
    def line(self) -> int:
        return self.location.line

    @property
    def column(self) -> int:
        return self.location.column

    def is_word(self, *words: str) -> bool:
        """True if this is a keyword or identifier spelled as one of *words*."""
        return self.kind in (TokenKind.KEYWORD, TokenKind.IDENTIFIER) and self.lexeme in words

    def is_punct(self, *lexemes: str) -> bool:
        """True if this is a symbol or operator spelled as one of *lexemes*."""
        return self.kind in (TokenKind.SYMBOL, TokenKind.OPERATOR) and self.lexeme in lexemes

    def __str__(self) -> str:
        return f"Token({self.kind}, {self.lexeme})"
