"""Source line excerpts used to decorate diagnostics."""

from __future__ import annotations


def caret(column: int) -> str:
    """Return spaces followed by ``^`` under a 1-based *column*."""
    return " " * max(column - 1, 0) + "^"


def source_excerpt(source: str, line: int, column: int) -> tuple[str, str]:
    """Return ``(snippet, pointer)`` for a 1-based *line* and *column*.

    Lines are split on ``\\n`` only, matching the lexer's line count; a
    trailing ``\\r`` is dropped so CRLF sources show clean snippets.  Lines
    outside the source give an empty snippet.
    """
    lines = source.split("\n")
    if 1 <= line <= len(lines):
        snippet = lines[line - 1].removesuffix("\r")
    else:
        snippet = ""
    return snippet, caret(column)
