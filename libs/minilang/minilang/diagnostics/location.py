"""Source location tracking for minilang diagnostics and tokens."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SourceLocation:
    """A location in minilang source code."""

    line: int  # 1-indexed
    column: int  # 1-indexed
    file: str = "<string>"

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"
