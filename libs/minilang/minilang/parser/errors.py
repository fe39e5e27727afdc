"""Parse error types for the minilang parser."""

from __future__ import annotations

from minilang.diagnostics.location import SourceLocation


class ParseError(Exception):
    """Raised inside the parser when an expected token is missing.

    The parser records the matching diagnostic before raising and catches
    the error at the statement boundary, so it never escapes ``parse``.
    """

    def __init__(self, message: str, location: SourceLocation | None = None) -> None:
        super().__init__(message)
        self.location = location
