"""Diagnostic collector for accumulating messages during lexing and parsing."""

from __future__ import annotations

from collections.abc import Iterator

from minilang.diagnostics.diagnostic import Diagnostic
from minilang.diagnostics.excerpt import caret, source_excerpt
from minilang.diagnostics.kinds import DiagnosticKind
from minilang.diagnostics.location import SourceLocation


class DiagnosticCollector:
    """Accumulates diagnostics in the order they are reported.

    Every diagnostic that carries a location gets a caret pointer under its
    column; when the source text is known it also gets the offending line.
    """

    def __init__(self, source: str | None = None) -> None:
        self._diagnostics: list[Diagnostic] = []
        self._source = source

    def attach_source(self, source: str) -> None:
        """Use *source* for snippets of diagnostics reported from now on."""
        self._source = source

    def report(
        self,
        kind: DiagnosticKind,
        message: str,
        location: SourceLocation | None = None,
    ) -> Diagnostic:
        """Build, record and return a diagnostic."""
        snippet = pointer = ""
        if location is not None:
            if self._source is not None:
                snippet, pointer = source_excerpt(self._source, location.line, location.column)
            else:
                pointer = caret(location.column)
        diagnostic = Diagnostic(kind, message, location, snippet, pointer)
        self._diagnostics.append(diagnostic)
        return diagnostic

    def has_errors(self) -> bool:
        """Return True if any diagnostic has been recorded."""
        return bool(self._diagnostics)

    def get_all(self) -> list[Diagnostic]:
        """Return a copy of all collected diagnostics."""
        return list(self._diagnostics)

    def format_all(self) -> str:
        """Format all diagnostics as a newline-separated string."""
        return "\n".join(str(d) for d in self._diagnostics)

    def __len__(self) -> int:
        return len(self._diagnostics)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(list(self._diagnostics))
