"""Diagnostic kinds for minilang."""

from __future__ import annotations

from enum import Enum


class DiagnosticKind(Enum):
    """Closed set of lexical and syntactic diagnostic kinds."""

    UNTERMINATED_STRING = "UnterminatedString"
    INVALID_CHARACTER = "InvalidCharacter"
    UNTERMINATED_COMMENT = "UnterminatedComment"
    UNEXPECTED_TOKEN = "UnexpectedToken"

    @property
    def is_lexical(self) -> bool:
        """Lexical kinds stop the scanner; syntactic ones do not stop the parser."""
        return self is not DiagnosticKind.UNEXPECTED_TOKEN

    def __str__(self) -> str:
        return self.value
