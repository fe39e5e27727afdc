"""minilang: tokenizer and parser for a small C/Rust-like language."""

from minilang.config import GrammarConfig, ParserOptions, default_grammar, load_grammar
from minilang.diagnostics import Diagnostic, DiagnosticCollector, DiagnosticKind
from minilang.parser import ASTNode, NodeType, Token, TokenKind, parse, parse_source, tokenize

__version__ = "0.1.0"

__all__ = [
    "tokenize",
    "parse",
    "parse_source",
    "Token",
    "TokenKind",
    "ASTNode",
    "NodeType",
    "Diagnostic",
    "DiagnosticKind",
    "DiagnosticCollector",
    "GrammarConfig",
    "ParserOptions",
    "load_grammar",
    "default_grammar",
]
