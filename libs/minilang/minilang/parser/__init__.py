"""minilang parser subpackage (Layer 1 -- depends on diagnostics, config)."""

from minilang.parser.ast_nodes import ASTNode, NodeType
from minilang.parser.errors import ParseError
from minilang.parser.lexer import Lexer, tokenize
from minilang.parser.parser import MAX_NESTING_DEPTH, PRECEDENCE, Parser, parse, parse_source
from minilang.parser.tokens import OPERATOR_SEQUENCES, Token, TokenKind

__all__ = [
    "TokenKind",
    "Token",
    "OPERATOR_SEQUENCES",
    "Lexer",
    "tokenize",
    "NodeType",
    "ASTNode",
    "PRECEDENCE",
    "MAX_NESTING_DEPTH",
    "Parser",
    "parse",
    "parse_source",
    "ParseError",
]
