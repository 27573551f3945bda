"""Tests for the JavaScript parser."""

import pytest
from jsloop.parser import Parser, parse
from jsloop.ast_nodes import (
    Program, NumericLiteral, StringLiteral, BooleanLiteral, NullLiteral,
    Identifier, ObjectExpression, UnaryExpression, BinaryExpression,
    LogicalExpression, ConditionalExpression, AssignmentExpression,
    MemberExpression, CallExpression, FunctionExpression,
    ArrowFunctionExpression, ExpressionStatement, BlockStatement,
    EmptyStatement, VariableDeclaration, FunctionDeclaration,
    ReturnStatement, IfStatement, WhileStatement, ForStatement, TryStatement,
    NewExpression,
)
from jsloop.errors import JSSyntaxError


def expression(source):
    """Parse a single expression statement and return its expression."""
    program = parse(source)
    assert isinstance(program.body[0], ExpressionStatement)
    return program.body[0].expression


class TestParserBasics:
    """Basic parser tests."""

    def test_empty_program(self):
        """Empty program."""
        assert parse("") == Program([])

    def test_empty_statement(self):
        """Lone semicolons are empty statements."""
        assert parse(";;").body == [EmptyStatement(), EmptyStatement()]

    def test_parser_class(self):
        """The Parser class can be used directly."""
        assert isinstance(Parser("1;").parse(), Program)

    def test_literals(self):
        """Literal expressions."""
        assert expression("42") == NumericLiteral(42)
        assert expression("'hi'") == StringLiteral("hi")
        assert expression("true") == BooleanLiteral(True)
        assert expression("null") == NullLiteral()
        assert expression("undefined") == Identifier("undefined")


class TestParserExpressions:
    """Operators and precedence."""

    def test_precedence(self):
        """* binds tighter than +."""
        assert expression("1 + 2 * 3") == BinaryExpression(
            "+", NumericLiteral(1), BinaryExpression("*", NumericLiteral(2), NumericLiteral(3))
        )

    def test_left_associative(self):
        """Same-precedence operators associate left."""
        assert expression("a - b - c") == BinaryExpression(
            "-", BinaryExpression("-", Identifier("a"), Identifier("b")), Identifier("c")
        )

    def test_parentheses(self):
        """Parentheses override precedence."""
        assert expression("(1 + 2) * 3") == BinaryExpression(
            "*", BinaryExpression("+", NumericLiteral(1), NumericLiteral(2)), NumericLiteral(3)
        )

    def test_logical_expression(self):
        """&& and || parse to LogicalExpression."""
        assert isinstance(expression("a && b || c"), LogicalExpression)

    def test_loose_equality_parses(self):
        """== parses even though it is not evaluated."""
        assert expression("a == b") == BinaryExpression("==", Identifier("a"), Identifier("b"))

    def test_unary(self):
        """Unary operators."""
        assert expression("-5") == UnaryExpression("-", NumericLiteral(5))
        assert expression("typeof x") == UnaryExpression("typeof", Identifier("x"))

    def test_conditional(self):
        """Ternary expressions."""
        assert isinstance(expression("a ? b : c"), ConditionalExpression)

    def test_assignment(self):
        """Assignment is right associative."""
        assert expression("a = b = 1") == AssignmentExpression(
            "=", Identifier("a"), AssignmentExpression("=", Identifier("b"), NumericLiteral(1))
        )

    def test_compound_assignment(self):
        """+= keeps its operator."""
        assert expression("n += 2").operator == "+="

    def test_invalid_assignment_target(self):
        """Only identifiers and members can be assigned."""
        with pytest.raises(JSSyntaxError, match="Invalid assignment target"):
            parse("1 = 2;")

    def test_member_call_chain(self):
        """Promise.resolve().then(f) nests calls and members."""
        expr = expression("Promise.resolve().then(f)")
        assert isinstance(expr, CallExpression)
        assert isinstance(expr.callee, MemberExpression)
        assert expr.callee.property == Identifier("then")
        assert expr.callee.object == CallExpression(
            MemberExpression(Identifier("Promise"), Identifier("resolve"), computed=False), []
        )
        assert expr.arguments == [Identifier("f")]

    def test_computed_member(self):
        """Bracket access is computed."""
        assert expression("a['b']").computed is True

    def test_object_literal(self):
        """Object literals including shorthand properties."""
        expr = expression("({a: 1, b})")
        assert isinstance(expr, ObjectExpression)
        assert [p.key.name for p in expr.properties] == ["a", "b"]
        assert expr.properties[1].value == Identifier("b")

    def test_keyword_property_names(self):
        """Reserved words are allowed after a dot and as object keys."""
        assert expression("p.finally(f)").callee.property == Identifier("finally")
        assert expression("Promise.resolve(1).catch(h)").callee.property == Identifier("catch")
        expr = expression("new a.catch()")
        assert isinstance(expr, NewExpression)
        assert expr.callee.property == Identifier("catch")
        expr = expression("({if: 1, new: 2})")
        assert [p.key.name for p in expr.properties] == ["if", "new"]

    def test_keyword_key_needs_value(self):
        """A reserved word cannot be a shorthand property."""
        with pytest.raises(JSSyntaxError, match="Expected ':'"):
            parse("({this});")


class TestParserFunctions:
    """Function declarations, expressions and arrows."""

    def test_function_declaration(self):
        """Named declaration with parameters."""
        program = parse("function add(a, b) { return a + b; }")
        decl = program.body[0]
        assert isinstance(decl, FunctionDeclaration)
        assert decl.id == Identifier("add")
        assert decl.params == [Identifier("a"), Identifier("b")]
        assert decl.body.body == [
            ReturnStatement(BinaryExpression("+", Identifier("a"), Identifier("b")))
        ]

    def test_anonymous_function_expression(self):
        """Function expression as an argument."""
        call = expression("setTimeout(function() {}, 10)")
        callback = call.arguments[0]
        assert isinstance(callback, FunctionExpression)
        assert callback.id is None
        assert call.arguments[1] == NumericLiteral(10)

    def test_named_function_expression(self):
        """Function expressions keep their own name."""
        assert expression("(function tick() {})").id == Identifier("tick")

    def test_arrow_single_param(self):
        """x => x + 1 has an expression body."""
        arrow = expression("x => x + 1")
        assert isinstance(arrow, ArrowFunctionExpression)
        assert arrow.params == [Identifier("x")]
        assert arrow.expression is True
        assert arrow.body == BinaryExpression("+", Identifier("x"), NumericLiteral(1))

    def test_arrow_no_params_block_body(self):
        """() => { ... } has a block body."""
        arrow = expression("() => { log(); }")
        assert arrow.params == []
        assert arrow.expression is False
        assert isinstance(arrow.body, BlockStatement)

    def test_arrow_several_params(self):
        """(a, b) => a."""
        assert expression("(a, b) => a").params == [Identifier("a"), Identifier("b")]

    def test_parenthesised_expression_is_not_arrow(self):
        """(a + b) without => stays a plain expression."""
        assert isinstance(expression("(a + b) * 2"), BinaryExpression)

    def test_arrow_as_argument(self):
        """Arrows can be passed straight to scheduling APIs."""
        call = expression("queueMicrotask(() => console.log('m'))")
        assert isinstance(call.arguments[0], ArrowFunctionExpression)

    def test_return_in_arrow_body(self):
        """Block-bodied arrows may return."""
        arrow = expression("() => { return 1; }")
        assert arrow.body.body == [ReturnStatement(NumericLiteral(1))]

    def test_top_level_return(self):
        """return outside a function is a syntax error."""
        with pytest.raises(JSSyntaxError, match="Illegal return statement"):
            parse("return 1;")


class TestParserStatements:
    """Declarations and control flow."""

    @pytest.mark.parametrize("keyword", ["var", "let", "const"])
    def test_declaration_kinds(self, keyword):
        """var, let and const record their kind."""
        decl = parse(f"{keyword} x = 1;").body[0]
        assert isinstance(decl, VariableDeclaration)
        assert decl.kind == keyword
        assert decl.declarations[0].id == Identifier("x")
        assert decl.declarations[0].init == NumericLiteral(1)

    def test_multiple_declarators(self):
        """var a = 1, b;"""
        decl = parse("var a = 1, b;").body[0]
        assert [d.id.name for d in decl.declarations] == ["a", "b"]
        assert decl.declarations[1].init is None

    def test_const_requires_initializer(self):
        """const without a value is rejected."""
        with pytest.raises(JSSyntaxError, match="Missing initializer"):
            parse("const x;")

    def test_if_else(self):
        """if / else."""
        stmt = parse("if (a) b(); else c();").body[0]
        assert isinstance(stmt, IfStatement)
        assert stmt.alternate is not None

    def test_control_flow_parses(self):
        """Statements the evaluator skips still parse."""
        program = parse("""
            while (x) {}
            for (var i = 0; i < 3; i++) {}
            try { a(); } catch (e) {} finally {}
        """)
        assert [type(s) for s in program.body] == [WhileStatement, ForStatement, TryStatement]

    def test_try_requires_handler(self):
        """try needs catch or finally."""
        with pytest.raises(JSSyntaxError, match="Missing catch or finally"):
            parse("try {}")

    def test_automatic_semicolons(self):
        """Semicolons are optional between statements."""
        assert len(parse("a()\nb()").body) == 2


class TestParserErrors:
    """Syntax errors."""

    def test_unexpected_end(self):
        """Truncated input."""
        with pytest.raises(JSSyntaxError, match="Unexpected end of input"):
            parse("var x = ")

    def test_unexpected_token(self):
        """A token that cannot start an expression."""
        with pytest.raises(JSSyntaxError, match="Unexpected token"):
            parse("var x = );")

    def test_missing_function_name(self):
        """Declarations need a name."""
        with pytest.raises(JSSyntaxError):
            parse("function (")

    def test_error_message_has_position(self):
        """The message names the line and column."""
        with pytest.raises(JSSyntaxError) as exc_info:
            parse("a();\nvar = 1;")
        assert exc_info.value.line == 2
        assert str(exc_info.value).startswith("SyntaxError: line 2, column 5")


class TestParserPositions:
    """Nodes carry source positions."""

    def test_statement_positions(self):
        """Statements are stamped with their first token."""
        program = parse("a();\n  setTimeout(f, 0);")
        second = program.body[1]
        assert (second.line, second.column) == (2, 3)
        assert (second.expression.line, second.expression.column) == (2, 3)

    def test_argument_positions(self):
        """Nested nodes have their own positions."""
        call = expression("log(x, 10)")
        assert call.arguments[1].column == 8

    def test_positions_do_not_affect_equality(self):
        """The same code on different lines compares equal."""
        assert parse("f();").body[0] == parse("\n\n  f();").body[0]

    def test_to_dict(self):
        """Nodes serialise with their ESTree type names."""
        data = parse("f(1);").to_dict()
        assert data["type"] == "Program"
        call = data["body"][0]["expression"]
        assert call["type"] == "CallExpression"
        assert call["arguments"][0] == {"type": "NumericLiteral", "value": 1, "line": 1, "column": 3}
