"""Diagnostic message representation for minilang."""

from __future__ import annotations

from dataclasses import dataclass

from minilang.diagnostics.kinds import DiagnosticKind
from minilang.diagnostics.location import SourceLocation


@dataclass(frozen=True)
class Diagnostic:
    """A single lexical or syntactic diagnostic."""

    kind: DiagnosticKind
    message: str
    location: SourceLocation | None = None
    snippet: str = ""
    pointer: str = ""

    @property
    def line(self) -> int | None:
        return self.location.line if self.location else None

    @property
    def column(self) -> int | None:
        return self.location.column if self.location else None

    def __str__(self) -> str:
        loc = f"{self.location}: " if self.location else ""
        return f"{loc}{self.kind}: {self.message}"

    def render(self) -> str:
        """Format the diagnostic with its source line and caret pointer."""
        lines = [str(self)]
        if self.snippet:
            lines.append(self.snippet)
            if self.pointer:
                lines.append(self.pointer)
        return "\n".join(lines)
