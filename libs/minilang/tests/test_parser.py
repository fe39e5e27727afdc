"""Tests for the minilang parser."""

from __future__ import annotations

import pytest

from minilang.config import ParserOptions
from minilang.diagnostics.kinds import DiagnosticKind
from minilang.parser.ast_nodes import ASTNode, NodeType
from minilang.parser.lexer import tokenize
from minilang.parser.parser import MAX_NESTING_DEPTH, Parser, parse, parse_source
from minilang.parser.tokens import TokenKind

KEYWORDS = {"let", "const", "if", "else", "while", "for", "in", "break", "continue",
            "return", "struct", "impl", "fn"}

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def parse_ok(source: str, options: ParserOptions | None = None) -> ASTNode:
    """Parse *source* and assert no errors."""
    root, diag = parse_source(source, KEYWORDS, "<test>", options)
    assert not diag.has_errors(), diag.format_all()
    return root


def parse_expr(source: str) -> ASTNode:
    """Parse ``<source>;`` and return the expression node."""
    root = parse_ok(f"{source};")
    assert len(root.value) == 1
    stmt = root.value[0]
    assert stmt.type is NodeType.EXPRESSION
    return stmt.value


def num(value: int | float) -> dict:
    return {"type": "number literal", "value": value}


def ident(name: str) -> dict:
    return {"type": "identifier", "value": name}


def binary(left: dict, op: str, right: dict) -> dict:
    return {"type": "binary operation", "value": {"left": left, "operator": op, "right": right}}


# ---------------------------------------------------------------------------
# Program structure
# ---------------------------------------------------------------------------


class TestProgram:
    def test_empty_program(self) -> None:
        root = parse_ok("")
        assert root.type is NodeType.BLOCK
        assert root.value == ()

    def test_statements_in_source_order(self) -> None:
        root = parse_ok("let x = 1; let y = 2;")
        assert [s.type for s in root.value] == [NodeType.VARIABLE, NodeType.VARIABLE]
        assert [s.value["name"] for s in root.value] == ["x", "y"]

    def test_parse_takes_token_list(self) -> None:
        tokens, lex_diags = tokenize("let x = 1; let y = 2;", {"let"})
        root, diagnostics = parse(tokens)
        assert lex_diags == [] and diagnostics == []
        assert len(root.value) == 2

    def test_empty_token_list(self) -> None:
        root, diagnostics = parse([])
        assert root.type is NodeType.BLOCK
        assert root.value == ()
        assert diagnostics == []

    def test_missing_eof_token(self) -> None:
        tokens, _ = tokenize("x + 1;", KEYWORDS)
        root, diagnostics = parse(tokens[:-1])
        assert diagnostics == []
        assert root.value[0].type is NodeType.EXPRESSION

    def test_truncated_stream_reports_end_of_input(self) -> None:
        tokens, _ = tokenize("x +", KEYWORDS)
        root, diagnostics = parse(tokens[:-1])
        assert [d.kind for d in diagnostics] == [DiagnosticKind.UNEXPECTED_TOKEN] * 2
        assert "end of input" in diagnostics[0].message
        assert root.type is NodeType.BLOCK


# ---------------------------------------------------------------------------
# Expressions: literals and names
# ---------------------------------------------------------------------------


class TestExprLiterals:
    def test_int_literal(self) -> None:
        assert parse_expr("42").to_dict() == num(42)

    def test_float_literal(self) -> None:
        assert parse_expr("2.5").to_dict() == num(2.5)

    def test_string_literal(self) -> None:
        expr = parse_expr('"hi there"')
        assert expr.type is NodeType.STRING
        assert expr.value == "hi there"

    @pytest.mark.parametrize("word,value", [("true", True), ("false", False)])
    def test_boolean_literal(self, word: str, value: bool) -> None:
        expr = parse_expr(word)
        assert expr.type is NodeType.BOOLEAN
        assert expr.value is value

    def test_identifier(self) -> None:
        assert parse_expr("count").to_dict() == ident("count")

    def test_array_literal(self) -> None:
        expr = parse_expr("[1, 2, 3]")
        assert expr.type is NodeType.ARRAY
        assert [e.value for e in expr.value] == [1, 2, 3]

    def test_empty_array_and_trailing_comma(self) -> None:
        assert parse_expr("[]").value == ()
        assert len(parse_expr("[1,]").value) == 1


# ---------------------------------------------------------------------------
# Expressions: operators
# ---------------------------------------------------------------------------


class TestExprOperators:
    def test_subtraction_is_left_associative(self) -> None:
        assert parse_expr("1 - 2 - 3").to_dict() == binary(
            binary(num(1), "-", num(2)), "-", num(3)
        )

    def test_multiplication_binds_tighter(self) -> None:
        assert parse_expr("1 + 2 * 3").to_dict() == binary(
            num(1), "+", binary(num(2), "*", num(3))
        )

    def test_parentheses_override(self) -> None:
        assert parse_expr("(1 + 2) * 3").to_dict() == binary(
            binary(num(1), "+", num(2)), "*", num(3)
        )

    def test_full_precedence_ladder(self) -> None:
        expr = parse_expr("a = b || c && d == e < f + g * h")
        ops = []
        node = expr
        while node.type is NodeType.BINARY:
            ops.append(node.value["operator"])
            node = node.value["right"]
        assert ops == ["=", "||", "&&", "==", "<", "+", "*"]

    def test_assignment_chains_left(self) -> None:
        assert parse_expr("a = b = c").to_dict() == binary(
            binary(ident("a"), "=", ident("b")), "=", ident("c")
        )

    def test_comparison_operators(self) -> None:
        for op in ("<", "<=", ">", ">=", "==", "!="):
            assert parse_expr(f"a {op} b").value["operator"] == op

    def test_uppercase_constant_comparison(self) -> None:
        assert parse_expr("MAX < 10").to_dict() == binary(ident("MAX"), "<", num(10))

    def test_unary_minus_binds_operand_only(self) -> None:
        expr = parse_expr("-x * y")
        assert expr.type is NodeType.BINARY
        left = expr.value["left"]
        assert left.type is NodeType.UNARY
        assert left.value == {"operator": "-", "operand": ASTNode(NodeType.IDENTIFIER, "x")}

    def test_logical_not(self) -> None:
        expr = parse_expr("!done")
        assert expr.type is NodeType.UNARY
        assert expr.value["operator"] == "!"


# ---------------------------------------------------------------------------
# Expressions: namespaces, calls, struct literals, generics
# ---------------------------------------------------------------------------


class TestExprPostfix:
    def test_namespace_chain(self) -> None:
        assert parse_expr("a::b::c").to_dict() == {
            "type": "namespace access",
            "value": {
                "namespace": {
                    "type": "namespace access",
                    "value": {"namespace": ident("a"), "member": ident("b")},
                },
                "member": ident("c"),
            },
        }

    def test_namespace_member_call(self) -> None:
        expr = parse_expr("io::print(1)")
        member = expr.value["member"]
        assert member.type is NodeType.CALL
        assert member.value["callee"] == ASTNode(NodeType.IDENTIFIER, "print")

    def test_namespace_binds_tighter_than_arithmetic(self) -> None:
        expr = parse_expr("1 + a::b")
        assert expr.type is NodeType.BINARY
        assert expr.value["right"].type is NodeType.NAMESPACE

    def test_call(self) -> None:
        expr = parse_expr("f(1, x)")
        assert expr.type is NodeType.CALL
        assert expr.value["callee"] == ASTNode(NodeType.IDENTIFIER, "f")
        assert [a.type for a in expr.value["arguments"]] == [NodeType.NUMBER, NodeType.IDENTIFIER]

    def test_call_without_arguments(self) -> None:
        assert parse_expr("f()").value["arguments"] == ()

    def test_struct_initialization(self) -> None:
        expr = parse_expr("Point { x: 1 + 2, y }")
        assert expr.type is NodeType.STRUCT_INIT
        assert expr.value["name"] == "Point"
        fields = expr.value["fields"]
        assert list(fields) == ["x", "y"]
        assert fields["x"].type is NodeType.BINARY
        assert fields["y"] == ASTNode(NodeType.IDENTIFIER, "y")

    def test_generic_instantiation(self) -> None:
        expr = parse_expr("Vec<i32>::new()")
        assert expr.type is NodeType.NAMESPACE
        generic = expr.value["namespace"]
        assert generic.type is NodeType.GENERIC
        assert generic.value["name"] == "Vec"
        assert [t.value["name"] for t in generic.value["arguments"]] == ["i32"]

    def test_nested_generic_call(self) -> None:
        expr = parse_expr("Map<String, Vec<i32>>(x)")
        assert expr.type is NodeType.CALL
        generic = expr.value["callee"]
        assert [t.value["name"] for t in generic.value["arguments"]] == ["String", "Vec"]

    def test_zero_parameter_function_literal(self) -> None:
        expr = parse_expr("apply(() -> i32 { return 1; })")
        arg = expr.value["arguments"][0]
        assert arg.type is NodeType.FUNCTION_EXPR
        assert arg.value["parameters"] == ()
        assert arg.value["return_type"].value["name"] == "i32"


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------


class TestDeclarations:
    def test_let_with_annotation(self) -> None:
        decl = parse_ok("const PI: f64 = 3.14;").value[0]
        assert decl.type is NodeType.VARIABLE
        assert decl.value["kind"] == "const"
        assert decl.value["type"].to_dict() == {
            "type": "type",
            "value": {"name": "f64", "arguments": []},
        }
        assert decl.value["value"].value == 3.14

    def test_let_without_annotation(self) -> None:
        decl = parse_ok("let x = 1;").value[0]
        assert decl.value["type"] is None

    def test_function_expression_at_end_needs_no_terminator(self) -> None:
        decl = parse_ok("let f = () -> i32 { return 1; }").value[0]
        assert decl.value["value"].type is NodeType.FUNCTION_EXPR
        body = decl.value["value"].value["body"]
        assert body.type is NodeType.BLOCK
        assert body.value[0].type is NodeType.RETURN

    def test_function_expression_mid_program_needs_terminator(self) -> None:
        root, diag = parse_source("let f = () -> i32 { return 1; } let g = 2;", KEYWORDS)
        assert [d.kind for d in diag] == [DiagnosticKind.UNEXPECTED_TOKEN]
        assert [s.type for s in root.value] == [NodeType.ERROR, NodeType.VARIABLE]

    def test_function_expression_requires_arrow(self) -> None:
        _, diag = parse_source("let f = () { return 1; };", KEYWORDS)
        assert diag.has_errors()
        assert "'->'" in diag.get_all()[0].message

    def test_struct_declaration(self) -> None:
        decl = parse_ok("struct Pair { first: i32, rest: Vec<T>, }").value[0]
        assert decl.type is NodeType.STRUCT
        assert decl.value["name"] == "Pair"
        fields = decl.value["fields"]
        assert [f.value["name"] for f in fields] == ["first", "rest"]
        rest_type = fields[1].value["type"]
        assert rest_type.value["name"] == "Vec"
        assert rest_type.value["arguments"][0].value["name"] == "T"

    def test_impl_declaration(self) -> None:
        src = """
        impl Point {
            fn len(self) -> f64 { return 0; }
            origin() { return Point { x: 0, y: 0 }; }
        }
        """
        decl = parse_ok(src).value[0]
        assert decl.type is NodeType.IMPL
        methods = decl.value["methods"]
        assert [m.value["name"] for m in methods] == ["len", "origin"]
        assert methods[0].value["return_type"].value["name"] == "f64"
        assert methods[0].value["parameters"][0].value == {"name": "self", "type": None}
        assert methods[1].value["return_type"] is None
        returned = methods[1].value["body"].value[0].value
        assert returned.type is NodeType.STRUCT_INIT

    def test_method_return_type_can_be_required(self) -> None:
        options = ParserOptions(method_requires_return_type=True)
        root, diag = parse_source("impl P { origin() { return 0; } }", KEYWORDS, options=options)
        assert diag.has_errors()
        assert root.value[0].is_error

    def test_fn_declaration(self) -> None:
        decl = parse_ok("fn add(a: i32, b: i32) -> i32 { return a + b; }").value[0]
        assert decl.type is NodeType.FUNCTION
        assert decl.value["name"] == "add"
        params = decl.value["parameters"]
        assert [p.value["name"] for p in params] == ["a", "b"]
        assert decl.value["return_type"].value["name"] == "i32"

    def test_fn_colon_return_annotation(self) -> None:
        decl = parse_ok("fn one(): i32 { return 1; }").value[0]
        assert decl.value["return_type"].value["name"] == "i32"

    def test_fn_return_type_required_by_default(self) -> None:
        root, diag = parse_source("fn main() { }", KEYWORDS)
        assert diag.has_errors()
        assert root.value[0].is_error

    def test_fn_return_type_optional_when_configured(self) -> None:
        options = ParserOptions(fn_requires_return_type=False)
        decl = parse_ok("fn main() { }", options).value[0]
        assert decl.type is NodeType.FUNCTION
        assert decl.value["return_type"] is None


class TestControlFlow:
    def test_if_else_if_else(self) -> None:
        src = "if a { x; } else if b { y; } else { z; }"
        stmt = parse_ok(src).value[0]
        assert stmt.type is NodeType.IF
        assert stmt.value["condition"] == ASTNode(NodeType.IDENTIFIER, "a")
        nested = stmt.value["else"]
        assert nested.type is NodeType.IF
        assert nested.value["condition"] == ASTNode(NodeType.IDENTIFIER, "b")
        assert nested.value["else"].type is NodeType.BLOCK

    def test_if_without_else(self) -> None:
        stmt = parse_ok("if x == 1 { return; }").value[0]
        assert stmt.value["else"] is None
        assert stmt.value["condition"].type is NodeType.BINARY

    def test_while(self) -> None:
        stmt = parse_ok("while i < 10 { i = i + 1; continue; }").value[0]
        assert stmt.type is NodeType.WHILE
        body = stmt.value["body"].value
        assert [s.type for s in body] == [NodeType.EXPRESSION, NodeType.CONTINUE]

    def test_for_in(self) -> None:
        stmt = parse_ok("for let item in items { total = total + item; break; }").value[0]
        assert stmt.type is NodeType.FOR
        assert stmt.value["kind"] == "let"
        assert stmt.value["variable"] == "item"
        assert stmt.value["iterable"] == ASTNode(NodeType.IDENTIFIER, "items")
        assert stmt.value["body"].value[-1].type is NodeType.BREAK

    def test_for_without_in(self) -> None:
        root, diag = parse_source("for let x items { }", KEYWORDS)
        assert root.value[0].is_error
        assert any("'in'" in d.message for d in diag)

    def test_for_without_binding(self) -> None:
        root, diag = parse_source("for x in xs { }", KEYWORDS)
        assert root.value[0].is_error
        assert "'let' or 'const'" in diag.get_all()[0].message

    def test_return_forms(self) -> None:
        root = parse_ok("return; return x + 1;")
        assert root.value[0].value is None
        assert root.value[1].value.type is NodeType.BINARY

    def test_break_needs_terminator(self) -> None:
        _, diag = parse_source("while x { break }", KEYWORDS)
        assert diag.has_errors()


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------


class TestParseErrors:
    def test_missing_identifier(self) -> None:
        root, diag = parse_source("let = 5;", KEYWORDS)
        assert diag.has_errors()
        assert all(d.kind == DiagnosticKind.UNEXPECTED_TOKEN for d in diag)
        assert root.type is NodeType.BLOCK
        assert root.value[0].is_error

    def test_missing_terminator(self) -> None:
        _, diag = parse_source("let x = 1", KEYWORDS)
        assert "';'" in diag.get_all()[0].message

    def test_error_recovery_continues(self) -> None:
        """After a broken declaration, later statements still parse."""
        root, diag = parse_source("let = 5; let y = 2;", KEYWORDS)
        assert diag.has_errors()
        last = root.value[-1]
        assert last.type is NodeType.VARIABLE
        assert last.value["name"] == "y"

    def test_unclosed_block(self) -> None:
        root, diag = parse_source("fn f() -> i32 { return 1;", KEYWORDS)
        assert diag.has_errors()
        assert root.value[0].is_error

    def test_stray_closers_terminate(self) -> None:
        root, diag = parse_source(") ) ;", KEYWORDS)
        assert diag.has_errors()
        assert len(root.value) == 2

    def test_unexpected_keyword_in_expression(self) -> None:
        root, diag = parse_source("else;", KEYWORDS)
        assert root.value[0].value.is_error
        assert "keyword 'else'" in diag.get_all()[0].message

    def test_duplicate_struct_literal_field(self) -> None:
        root, diag = parse_source("let p = P { x: 1, x: 2 };", KEYWORDS)
        first = diag.get_all()[0]
        assert first.kind == DiagnosticKind.UNEXPECTED_TOKEN
        assert "identifier 'x'" in first.message
        assert "not already set" in first.message
        assert root.value[0].is_error

    def test_pointer_without_source(self) -> None:
        tokens, _ = tokenize("let = 5;", KEYWORDS)
        _, diagnostics = parse(tokens)
        assert diagnostics[0].snippet == ""
        assert diagnostics[0].pointer == "    ^"

    def test_snippet_from_source(self) -> None:
        src = "let = 5;"
        tokens, _ = tokenize(src, KEYWORDS)
        _, diagnostics = parse(tokens, source=src)
        first = diagnostics[0]
        assert first.snippet == src
        assert first.pointer == "    ^"
        assert (first.line, first.column) == (1, 5)

    def test_parser_reports_through_shared_collector(self) -> None:
        tokens, _ = tokenize("let = 5;", KEYWORDS)
        parser = Parser(tokens)
        parser.parse_program()
        assert len(parser.diagnostics) == len(parser.diagnostics.get_all()) > 0

    def test_eof_kind_is_never_consumed(self) -> None:
        tokens, _ = tokenize("let x =", KEYWORDS)
        root, diagnostics = parse(tokens)
        assert tokens[-1].kind == TokenKind.EOF
        assert "end of input" in diagnostics[0].message
        assert root.value[0].is_error


# ---------------------------------------------------------------------------
# Nesting limit
# ---------------------------------------------------------------------------


class TestNesting:
    def test_deep_blocks_report_once(self) -> None:
        src = "if a { " * 1000 + "x;" + " }" * 1000
        tokens, _ = tokenize(src, KEYWORDS)
        root, diagnostics = parse(tokens)
        assert len(diagnostics) == 1
        assert diagnostics[0].kind == DiagnosticKind.UNEXPECTED_TOKEN
        assert "nesting too deep" in diagnostics[0].message
        assert [s.type for s in root.value] == [NodeType.IF]
        assert any(n.is_error for n in root.walk())

    @pytest.mark.parametrize(
        "src",
        [
            "(" * 1000 + "1" + ")" * 1000 + ";",
            "[" * 1000 + "]" * 1000 + ";",
            "-" * 1000 + "x;",
            "f(" * 1000 + ")" * 1000 + ";",
            "P { x: " * 1000 + "1" + " }" * 1000 + ";",
            "let v: " + "Vec<" * 1000 + "i32" + ">" * 1000 + " = 1;",
        ],
        ids=["parens", "arrays", "unary", "calls", "struct_literals", "type_arguments"],
    )
    def test_deep_expressions_do_not_abort(self, src: str) -> None:
        tokens, _ = tokenize(src, KEYWORDS)
        root, diagnostics = parse(tokens)
        assert root.type is NodeType.BLOCK
        assert root.value[0].is_error
        assert "nesting too deep" in diagnostics[0].message

    def test_nesting_within_limit(self) -> None:
        depth = MAX_NESTING_DEPTH - 1
        expr = parse_expr("(" * depth + "1" + ")" * depth)
        assert expr.to_dict() == num(1)

    def test_limit_counts_open_levels_only(self) -> None:
        # Many sibling groups never accumulate depth.
        parse_ok("let x = " + " + ".join(["(1)"] * 500) + ";")
