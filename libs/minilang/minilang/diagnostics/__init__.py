"""minilang diagnostics subpackage (Layer 0 -- zero internal dependencies)."""

from minilang.diagnostics.collector import DiagnosticCollector
from minilang.diagnostics.diagnostic import Diagnostic
from minilang.diagnostics.excerpt import caret, source_excerpt
from minilang.diagnostics.kinds import DiagnosticKind
from minilang.diagnostics.location import SourceLocation

__all__ = [
    "SourceLocation",
    "DiagnosticKind",
    "Diagnostic",
    "DiagnosticCollector",
    "source_excerpt",
    "caret",
]
