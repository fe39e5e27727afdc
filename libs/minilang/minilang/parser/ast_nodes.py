"""AST node type for the minilang parser.

Every syntactic construct is an :class:`ASTNode` carrying a :class:`NodeType`
tag and a payload.  The payload is one of:

- a primitive (``str``, ``int``, ``float``, ``bool`` or ``None``),
- a single child ``ASTNode``,
- a tuple of ``ASTNode`` (an ordered sequence),
- a ``dict`` of named fields, each a primitive, an ``ASTNode``, a tuple of
  nodes or a nested ``dict``.

Nodes are never mutated after the parser builds them and children are never
shared between parents.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

__all__ = ["NodeType", "ASTNode"]

_INDENT = "  "


class NodeType(str, Enum):
    """Closed set of node tags produced by the parser."""

    # Program and blocks
    BLOCK = "block statement"

    # Literals and names
    NUMBER = "number literal"
    STRING = "string literal"
    BOOLEAN = "boolean literal"
    IDENTIFIER = "identifier"
    ARRAY = "array literal"
    STRUCT_INIT = "struct initialization"
    GENERIC = "generic type"

    # Operators and access
    BINARY = "binary operation"
    UNARY = "unary operation"
    NAMESPACE = "namespace access"
    CALL = "function call"
    FUNCTION_EXPR = "function expression"

    # Types and parameters
    TYPE = "type"
    PARAMETER = "parameter"

    # Statements
    VARIABLE = "variable declaration"
    IF = "if statement"
    WHILE = "while statement"
    FOR = "for statement"
    BREAK = "break statement"
    CONTINUE = "continue statement"
    RETURN = "return statement"
    EXPRESSION = "expression statement"
    STRUCT = "struct_declaration"
    STRUCT_FIELD = "struct_field"
    IMPL = "impl_declaration"
    METHOD = "method_declaration"
    FUNCTION = "function_declaration"

    # Recovery
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ASTNode:
    """A labeled syntax tree node."""

    type: NodeType
    value: Any = None

    # ------------------------------------------------------------------
    # Plain-data projection
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Project the subtree onto plain dicts, lists and primitives."""
        return {"type": self.type.value, "value": _plain(self.value)}

    # ------------------------------------------------------------------
    # Textual rendering
    # ------------------------------------------------------------------

    def render(self, depth: int = 0) -> str:
        """Render the subtree as indented ``NodeType(value)`` text."""
        return f"{self.type.value}({_render(self.value, depth)})"

    def __str__(self) -> str:
        return self.render()

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def children(self) -> Iterator[ASTNode]:
        """Yield the direct child nodes in payload order."""
        yield from _child_nodes(self.value)

    def walk(self) -> Iterator[ASTNode]:
        """Yield this node and all descendants in pre-order."""
        yield self
        for child in self.children():
            yield from child.walk()

    @property
    def is_error(self) -> bool:
        return self.type is NodeType.ERROR


def _plain(value: Any) -> Any:
    if isinstance(value, ASTNode):
        return value.to_dict()
    if isinstance(value, (tuple, list)):
        return [_plain(item) for item in value]
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    return value


def _render_leaf(value: Any) -> str:
    if isinstance(value, str):
        return repr(value)
    return str(value)


def _render(value: Any, depth: int) -> str:
    if isinstance(value, ASTNode):
        return value.render(depth)
    inner = _INDENT * (depth + 1)
    outer = _INDENT * depth
    if isinstance(value, (tuple, list)):
        if not value:
            return "[]"
        items = ",\n".join(inner + _render(item, depth + 1) for item in value)
        return f"[\n{items}\n{outer}]"
    if isinstance(value, dict):
        if not value:
            return "{}"
        fields = ",\n".join(
            f"{inner}{key}: {_render(item, depth + 1)}" for key, item in value.items()
        )
        return f"{{\n{fields}\n{outer}}}"
    return _render_leaf(value)


def _child_nodes(value: Any) -> Iterator[ASTNode]:
    if isinstance(value, ASTNode):
        yield value
    elif isinstance(value, (tuple, list)):
        for item in value:
            yield from _child_nodes(item)
    elif isinstance(value, dict):
        for item in value.values():
            yield from _child_nodes(item)
