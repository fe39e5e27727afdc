"""Recursive-descent parser for minilang source code.

Handles:
- ``let``/``const`` declarations: ``let NAME (: Type)? = expr;``
- Function expressions: ``let f = () -> Type { ... }``
- ``if cond { ... } else if cond { ... } else { ... }``
- ``while cond { ... }`` and ``for let NAME in expr { ... }``
- ``break;``, ``continue;``, ``return expr?;``
- ``struct Name { field: Type, ... }``
- ``impl Name { fn? method(params) -> Type { ... } ... }``
- ``fn name(params) -> Type { ... }``
- Expression statements, with precedence climbing for binary operators
  and ``::`` namespace chains

Every statement that fails to parse becomes an ``error`` node; the parser
then carries on with the next statement.  Nesting deeper than
``MAX_NESTING_DEPTH`` is reported the same way instead of recursing further.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager

from minilang.config import ParserOptions, default_grammar
from minilang.diagnostics.collector import DiagnosticCollector
from minilang.diagnostics.diagnostic import Diagnostic
from minilang.diagnostics.kinds import DiagnosticKind
from minilang.diagnostics.location import SourceLocation
from minilang.parser.ast_nodes import ASTNode, NodeType
from minilang.parser.errors import ParseError
from minilang.parser.lexer import Lexer
from minilang.parser.tokens import Token, TokenKind

logger = logging.getLogger(__name__)

# Binding power of each binary operator, lowest first.  ``::`` (7) binds
# tightest and is parsed separately as a namespace chain.
PRECEDENCE: dict[str, int] = {
    "=": 0,
    "||": 1,
    "&&": 2,
    "==": 3,
    "!=": 3,
    "<": 4,
    "<=": 4,
    ">": 4,
    ">=": 4,
    "+": 5,
    "-": 5,
    "*": 6,
    "/": 6,
}
NAMESPACE_PRECEDENCE = 7

# Deepest nesting of blocks, brackets, type arguments and prefix operators.
# Deeper input is reported as an error instead of exhausting the Python stack.
MAX_NESTING_DEPTH = 64

_UNARY_OPERATORS = ("-", "!")
_TERMINATOR = ";"
_OPENERS = ("(", "[", "{")
_CLOSERS = (")", "]", "}")


def _number_value(lexeme: str) -> int | float:
    return float(lexeme) if "." in lexeme else int(lexeme)


def _describe(tok: Token) -> str:
    if tok.kind == TokenKind.EOF:
        return "end of input"
    return f"{tok.kind} '{tok.lexeme}'"


class Parser:
    """Recursive-descent parser for minilang programs."""

    def __init__(
        self,
        tokens: Sequence[Token],
        diagnostics: DiagnosticCollector | None = None,
        *,
        options: ParserOptions | None = None,
        source: str | None = None,
    ) -> None:
        self._tokens = list(tokens)
        self._diag = diagnostics if diagnostics is not None else DiagnosticCollector()
        if source is not None:
            self._diag.attach_source(source)
        self._options = options if options is not None else ParserOptions()
        self._pos = 0
        self._allow_struct_literal = True
        self._depth = 0
        self._statement_parsers = {
            "let": self._parse_variable_declaration,
            "const": self._parse_variable_declaration,
            "if": self._parse_if_statement,
            "while": self._parse_while_statement,
            "for": self._parse_for_statement,
            "break": self._parse_break_statement,
            "continue": self._parse_continue_statement,
            "return": self._parse_return_statement,
            "struct": self._parse_struct_declaration,
            "impl": self._parse_impl_declaration,
            "fn": self._parse_function_declaration,
        }

    @property
    def diagnostics(self) -> DiagnosticCollector:
        return self._diag

    # ------------------------------------------------------------------
    # Token stream helpers
    # ------------------------------------------------------------------

    def _peek(self, offset: int = 0) -> Token:
        """Return the token *offset* places ahead, or a synthetic EOF past the end."""
        idx = self._pos + offset
        if idx < len(self._tokens):
            return self._tokens[idx]
        if self._tokens:
            loc = self._tokens[-1].location
        else:
            loc = SourceLocation(line=1, column=1)
        return Token(TokenKind.EOF, "", loc)

    def _at_end(self) -> bool:
        return self._peek().kind == TokenKind.EOF

    def _advance(self) -> Token:
        """Consume and return the current token."""
        tok = self._peek()
        if tok.kind != TokenKind.EOF:
            self._pos += 1
        return tok

    def _check(self, lexeme: str) -> bool:
        """Return True if the current token is the symbol or operator *lexeme*."""
        return self._peek().is_punct(lexeme)

    def _match(self, *lexemes: str) -> Token | None:
        """If the current token is one of *lexemes*, consume and return it."""
        if self._peek().is_punct(*lexemes):
            return self._advance()
        return None

    def _unexpected(self, tok: Token, expected: str) -> ParseError:
        """Record an UnexpectedToken diagnostic and return the error to raise."""
        message = f"Unexpected token {_describe(tok)}, expected {expected}"
        self._diag.report(DiagnosticKind.UNEXPECTED_TOKEN, message, tok.location)
        return ParseError(message, tok.location)

    def _expect(self, lexeme: str, expected: str | None = None) -> Token:
        """Consume the symbol or operator *lexeme* or report an error."""
        tok = self._peek()
        if tok.is_punct(lexeme):
            return self._advance()
        raise self._unexpected(tok, expected or f"'{lexeme}'")

    def _expect_word(self, word: str) -> Token:
        """Consume a keyword or identifier spelled *word*."""
        tok = self._peek()
        if tok.is_word(word):
            return self._advance()
        raise self._unexpected(tok, f"'{word}'")

    def _expect_identifier(self, what: str) -> Token:
        tok = self._peek()
        if tok.kind == TokenKind.IDENTIFIER:
            return self._advance()
        raise self._unexpected(tok, what)

    def _expect_terminator(self) -> Token:
        return self._expect(_TERMINATOR, f"'{_TERMINATOR}' at end of statement")

    @contextmanager
    def _struct_literals(self, allowed: bool) -> Iterator[None]:
        """Temporarily allow or forbid ``Name { ... }`` struct literals."""
        saved = self._allow_struct_literal
        self._allow_struct_literal = allowed
        try:
            yield
        finally:
            self._allow_struct_literal = saved

    @contextmanager
    def _nested(self, tok: Token) -> Iterator[None]:
        """Count one level of nesting opened at *tok*, failing past the limit.

        Past the limit the whole bracketed group starting at *tok* is skipped,
        so one diagnostic covers it.
        """
        if self._depth >= MAX_NESTING_DEPTH:
            message = (
                f"Unexpected token {_describe(tok)}, nesting too deep "
                f"(limit {MAX_NESTING_DEPTH})"
            )
            self._diag.report(DiagnosticKind.UNEXPECTED_TOKEN, message, tok.location)
            if tok.is_punct(*_OPENERS):
                self._skip_group()
            raise ParseError(message, tok.location)
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1

    def _skip_group(self) -> None:
        """Consume tokens from an opening bracket through its matching closer."""
        depth = 0
        while not self._at_end():
            tok = self._advance()
            if tok.is_punct(*_OPENERS):
                depth += 1
            elif tok.is_punct(*_CLOSERS):
                depth -= 1
                if depth == 0:
                    return

    # ------------------------------------------------------------------
    # Program and blocks
    # ------------------------------------------------------------------

    def parse_program(self) -> ASTNode:
        """Parse statements until EOF into the root block statement."""
        statements = self._parse_statements(until=None)
        logger.debug(
            "parsed %d statements, %d diagnostics", len(statements), len(self._diag)
        )
        return ASTNode(NodeType.BLOCK, tuple(statements))

    def _parse_statements(self, until: str | None) -> list[ASTNode]:
        statements: list[ASTNode] = []
        while not self._at_end() and not (until is not None and self._check(until)):
            start = self._pos
            statements.append(self.parse_statement())
            if self._pos == start:
                # Nothing consumed; step over the token so the loop ends.
                self._advance()
        return statements

    def parse_block(self) -> ASTNode:
        """Parse ``{ statement* }``."""
        with self._nested(self._peek()):
            self._expect("{", "'{' to open a block")
            with self._struct_literals(True):
                statements = self._parse_statements(until="}")
        self._expect("}", "'}' to close the block")
        return ASTNode(NodeType.BLOCK, tuple(statements))

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def parse_statement(self) -> ASTNode:
        """Parse one statement, or return an error node if it is malformed."""
        tok = self._peek()
        handler = None
        if tok.kind in (TokenKind.KEYWORD, TokenKind.IDENTIFIER):
            handler = self._statement_parsers.get(tok.lexeme)
        try:
            if handler is not None:
                return handler()
            return self._parse_expression_statement()
        except ParseError as e:
            return ASTNode(NodeType.ERROR, str(e))

    def _parse_variable_declaration(self) -> ASTNode:
        """Parse ``let|const NAME (: Type)? = initializer;``."""
        keyword = self._advance()
        name = self._expect_identifier("a variable name")
        annotation = self.parse_type() if self._match(":") else None
        self._expect("=", "'=' after the variable name")
        if self._check("(") and self._peek(1).is_punct(")"):
            value = self._parse_function_expression()
            if not self._at_end():
                self._expect_terminator()
        else:
            value = self.parse_expression()
            self._expect_terminator()
        return ASTNode(
            NodeType.VARIABLE,
            {"kind": keyword.lexeme, "name": name.lexeme, "type": annotation, "value": value},
        )

    def _parse_condition(self) -> ASTNode:
        with self._struct_literals(False):
            return self.parse_expression()

    def _parse_if_statement(self) -> ASTNode:
        """Parse ``if cond { ... }`` with an optional else-if chain or else block."""
        self._advance()
        condition = self._parse_condition()
        then = self.parse_block()
        otherwise: ASTNode | None = None
        if self._peek().is_word("else"):
            self._advance()
            if self._peek().is_word("if"):
                otherwise = self._parse_if_statement()
            else:
                otherwise = self.parse_block()
        return ASTNode(NodeType.IF, {"condition": condition, "then": then, "else": otherwise})

    def _parse_while_statement(self) -> ASTNode:
        self._advance()
        condition = self._parse_condition()
        body = self.parse_block()
        return ASTNode(NodeType.WHILE, {"condition": condition, "body": body})

    def _parse_for_statement(self) -> ASTNode:
        """Parse ``for let|const NAME in expr { ... }``."""
        self._advance()
        binding = self._peek()
        if not binding.is_word("let", "const"):
            raise self._unexpected(binding, "'let' or 'const' after 'for'")
        self._advance()
        name = self._expect_identifier("a loop variable name")
        self._expect_word("in")
        iterable = self._parse_condition()
        body = self.parse_block()
        return ASTNode(
            NodeType.FOR,
            {"kind": binding.lexeme, "variable": name.lexeme, "iterable": iterable, "body": body},
        )

    def _parse_break_statement(self) -> ASTNode:
        self._advance()
        self._expect_terminator()
        return ASTNode(NodeType.BREAK)

    def _parse_continue_statement(self) -> ASTNode:
        self._advance()
        self._expect_terminator()
        return ASTNode(NodeType.CONTINUE)

    def _parse_return_statement(self) -> ASTNode:
        self._advance()
        value = None if self._check(_TERMINATOR) else self.parse_expression()
        self._expect_terminator()
        return ASTNode(NodeType.RETURN, value)

    def _parse_expression_statement(self) -> ASTNode:
        expr = self.parse_expression()
        self._expect_terminator()
        return ASTNode(NodeType.EXPRESSION, expr)

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def _parse_struct_declaration(self) -> ASTNode:
        """Parse ``struct Name { field: Type, ... }``."""
        self._advance()
        name = self._expect_identifier("a struct name")
        self._expect("{", "'{' after the struct name")
        fields: list[ASTNode] = []
        while not self._check("}") and not self._at_end():
            field_name = self._expect_identifier("a field name")
            self._expect(":", "':' after the field name")
            field_type = self.parse_type()
            fields.append(
                ASTNode(NodeType.STRUCT_FIELD, {"name": field_name.lexeme, "type": field_type})
            )
            if not self._match(",", ";"):
                break
        self._expect("}", "'}' to close the struct")
        return ASTNode(NodeType.STRUCT, {"name": name.lexeme, "fields": tuple(fields)})

    def _parse_impl_declaration(self) -> ASTNode:
        """Parse ``impl Name { method* }``."""
        self._advance()
        name = self._expect_identifier("a struct name after 'impl'")
        self._expect("{", "'{' after the impl target")
        methods: list[ASTNode] = []
        while not self._check("}") and not self._at_end():
            methods.append(self._parse_method())
        self._expect("}", "'}' to close the impl block")
        return ASTNode(NodeType.IMPL, {"name": name.lexeme, "methods": tuple(methods)})

    def _parse_method(self) -> ASTNode:
        if self._peek().is_word("fn"):
            self._advance()
        name = self._expect_identifier("a method name")
        parameters = self._parse_parameter_list()
        return_type = self._parse_return_annotation(self._options.method_requires_return_type)
        body = self.parse_block()
        return ASTNode(
            NodeType.METHOD,
            {
                "name": name.lexeme,
                "parameters": parameters,
                "return_type": return_type,
                "body": body,
            },
        )

    def _parse_function_declaration(self) -> ASTNode:
        """Parse ``fn name(params) -> Type { ... }``."""
        self._advance()
        name = self._expect_identifier("a function name")
        parameters = self._parse_parameter_list()
        return_type = self._parse_return_annotation(self._options.fn_requires_return_type)
        body = self.parse_block()
        return ASTNode(
            NodeType.FUNCTION,
            {
                "name": name.lexeme,
                "parameters": parameters,
                "return_type": return_type,
                "body": body,
            },
        )

    def _parse_return_annotation(self, required: bool) -> ASTNode | None:
        """Parse ``-> Type`` or ``: Type``; report if missing and *required*."""
        if self._match("->", ":"):
            return self.parse_type()
        if required:
            raise self._unexpected(self._peek(), "'->' and a return type")
        return None

    def _parse_parameter_list(self) -> tuple[ASTNode, ...]:
        """Parse ``(name (: Type)?, ...)``."""
        self._expect("(", "'(' to open the parameter list")
        parameters: list[ASTNode] = []
        if not self._check(")"):
            parameters.append(self._parse_parameter())
            while self._match(","):
                if self._check(")"):
                    break  # trailing comma
                parameters.append(self._parse_parameter())
        self._expect(")", "')' to close the parameter list")
        return tuple(parameters)

    def _parse_parameter(self) -> ASTNode:
        name = self._expect_identifier("a parameter name")
        annotation = self.parse_type() if self._match(":") else None
        return ASTNode(NodeType.PARAMETER, {"name": name.lexeme, "type": annotation})

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def parse_type(self) -> ASTNode:
        """Parse ``Name`` or ``Name<Type, ...>``."""
        tok = self._peek()
        if tok.kind not in (TokenKind.IDENTIFIER, TokenKind.KEYWORD):
            raise self._unexpected(tok, "a type name")
        self._advance()
        arguments: tuple[ASTNode, ...] = ()
        if self._match("<"):
            arguments = self._parse_type_arguments()
        return ASTNode(NodeType.TYPE, {"name": tok.lexeme, "arguments": arguments})

    def _parse_type_arguments(self) -> tuple[ASTNode, ...]:
        """Parse ``Type, ... >`` after an opening ``<``."""
        with self._nested(self._peek()):
            arguments = [self.parse_type()]
            while self._match(","):
                arguments.append(self.parse_type())
        self._expect(">", "'>' to close the type arguments")
        return tuple(arguments)

    # ------------------------------------------------------------------
    # Expression parsing (precedence climbing)
    # ------------------------------------------------------------------

    def parse_expression(self, min_precedence: int = -1) -> ASTNode:
        """Parse a binary expression whose operators bind tighter than *min_precedence*."""
        left = self.parse_primary()
        while True:
            tok = self._peek()
            if tok.is_punct("::") and NAMESPACE_PRECEDENCE > min_precedence:
                left = self._parse_namespace_access(left)
                continue
            precedence = self._binary_precedence(tok)
            if precedence is None or precedence <= min_precedence:
                break
            self._advance()
            right = self.parse_expression(precedence)
            left = ASTNode(
                NodeType.BINARY, {"left": left, "operator": tok.lexeme, "right": right}
            )
        return left

    @staticmethod
    def _binary_precedence(tok: Token) -> int | None:
        if tok.kind not in (TokenKind.SYMBOL, TokenKind.OPERATOR):
            return None
        return PRECEDENCE.get(tok.lexeme)

    def _parse_namespace_access(self, namespace: ASTNode) -> ASTNode:
        """Parse one ``:: member`` link, where the member may be called."""
        self._advance()
        name = self._expect_identifier("a name after '::'")
        member = ASTNode(NodeType.IDENTIFIER, name.lexeme)
        if self._check("("):
            member = ASTNode(NodeType.CALL, {"callee": member, "arguments": self._parse_arguments()})
        return ASTNode(NodeType.NAMESPACE, {"namespace": namespace, "member": member})

    def parse_primary(self) -> ASTNode:
        """Parse a literal, name, call, struct literal, group or array."""
        tok = self._peek()

        if tok.kind == TokenKind.NUMBER:
            self._advance()
            return ASTNode(NodeType.NUMBER, _number_value(tok.lexeme))

        if tok.kind == TokenKind.STRING:
            self._advance()
            return ASTNode(NodeType.STRING, tok.lexeme)

        if tok.is_word("true", "false"):
            self._advance()
            return ASTNode(NodeType.BOOLEAN, tok.lexeme == "true")

        if tok.kind == TokenKind.IDENTIFIER:
            return self._parse_identifier()

        if tok.is_punct("("):
            if self._peek(1).is_punct(")"):
                return self._parse_function_expression()
            with self._nested(tok):
                self._advance()
                with self._struct_literals(True):
                    expr = self.parse_expression()
                self._expect(")", "')' after expression")
            return expr

        if tok.is_punct("["):
            with self._nested(tok):
                self._advance()
                items = self._parse_expression_list("]")
            return ASTNode(NodeType.ARRAY, items)

        if tok.is_punct(*_UNARY_OPERATORS):
            with self._nested(tok):
                self._advance()
                operand = self.parse_expression(PRECEDENCE["*"])
            return ASTNode(NodeType.UNARY, {"operator": tok.lexeme, "operand": operand})

        # Consume the offending token so the caller always makes progress.
        self._advance()
        message = f"Unexpected token {_describe(tok)}, expected an expression"
        self._diag.report(DiagnosticKind.UNEXPECTED_TOKEN, message, tok.location)
        return ASTNode(NodeType.ERROR, message)

    def _parse_identifier(self) -> ASTNode:
        """Parse a name with its optional struct literal, generics or call."""
        tok = self._advance()
        if self._allow_struct_literal and self._check("{"):
            return self._parse_struct_initialization(tok.lexeme)
        node = ASTNode(NodeType.IDENTIFIER, tok.lexeme)
        # Only capitalised names followed by a type name take type arguments,
        # so ``i < n`` and ``MAX < 10`` stay comparisons.
        if (
            self._check("<")
            and tok.lexeme[:1].isupper()
            and self._peek(1).kind in (TokenKind.IDENTIFIER, TokenKind.KEYWORD)
        ):
            self._advance()
            node = ASTNode(
                NodeType.GENERIC, {"name": tok.lexeme, "arguments": self._parse_type_arguments()}
            )
        if self._check("("):
            node = ASTNode(NodeType.CALL, {"callee": node, "arguments": self._parse_arguments()})
        return node

    def _parse_struct_initialization(self, name: str) -> ASTNode:
        """Parse ``Name { field: expr, shorthand, ... }``.

        Each field may be given once; a repeated field is reported.
        """
        fields: dict[str, ASTNode] = {}
        with self._nested(self._peek()):
            self._expect("{")
            with self._struct_literals(True):
                while not self._check("}") and not self._at_end():
                    field_name = self._expect_identifier("a field name")
                    if field_name.lexeme in fields:
                        raise self._unexpected(
                            field_name, f"a field of '{name}' that is not already set"
                        )
                    if self._match(":"):
                        fields[field_name.lexeme] = self.parse_expression()
                    else:
                        fields[field_name.lexeme] = ASTNode(NodeType.IDENTIFIER, field_name.lexeme)
                    if not self._match(","):
                        break
            self._expect("}", "'}' to close the struct literal")
        return ASTNode(NodeType.STRUCT_INIT, {"name": name, "fields": fields})

    def _parse_function_expression(self) -> ASTNode:
        """Parse ``(params) -> Type { ... }``."""
        parameters = self._parse_parameter_list()
        self._expect("->", "'->' and a return type")
        return_type = self.parse_type()
        body = self.parse_block()
        return ASTNode(
            NodeType.FUNCTION_EXPR,
            {"parameters": parameters, "return_type": return_type, "body": body},
        )

    def _parse_arguments(self) -> tuple[ASTNode, ...]:
        with self._nested(self._peek()):
            self._expect("(")
            return self._parse_expression_list(")")

    def _parse_expression_list(self, closing: str) -> tuple[ASTNode, ...]:
        """Parse ``expr, expr, ...`` up to and including *closing*."""
        items: list[ASTNode] = []
        with self._struct_literals(True):
            if not self._check(closing):
                items.append(self.parse_expression())
                while self._match(","):
                    if self._check(closing):
                        break  # trailing comma
                    items.append(self.parse_expression())
        self._expect(closing, f"'{closing}'")
        return tuple(items)


# ------------------------------------------------------------------
# Convenience functions
# ------------------------------------------------------------------


def parse(
    tokens: Sequence[Token],
    source: str | None = None,
    options: ParserOptions | None = None,
) -> tuple[ASTNode, list[Diagnostic]]:
    """Parse a token stream.

    Args:
        tokens: Tokens from :func:`minilang.parser.lexer.tokenize`.
        source: Optional source text, used only for diagnostic snippets.
        options: Grammar switches; defaults to :class:`ParserOptions`.

    Returns:
        A ``(block_statement, diagnostics)`` tuple.
    """
    parser = Parser(tokens, options=options, source=source)
    root = parser.parse_program()
    return root, parser.diagnostics.get_all()


def parse_source(
    source: str,
    keywords: Iterable[str] | None = None,
    filename: str = "<string>",
    options: ParserOptions | None = None,
) -> tuple[ASTNode, DiagnosticCollector]:
    """Tokenize and parse *source* on a single diagnostic collector.

    Keywords and options default to the packaged grammar.

    Returns:
        A ``(block_statement, diagnostics)`` tuple.
    """
    grammar = default_grammar()
    diag = DiagnosticCollector()
    tokens = Lexer(
        source,
        grammar.keywords if keywords is None else keywords,
        filename,
        diag,
    ).tokenize()
    parser = Parser(tokens, diag, options=grammar.options if options is None else options)
    return parser.parse_program(), diag
