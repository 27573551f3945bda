"""JavaScript parser - produces an AST from tokens.

The parser accepts a somewhat larger language than the evaluator runs:
control flow such as ``if``/``while``/``try`` parses into ordinary nodes so
the evaluator can report them as unhandled instead of the whole run failing
with a syntax error.
"""

from typing import List, Optional, TypeVar
from .lexer import Lexer
from .tokens import Token, TokenType, BINARY_OPERATORS, KEYWORDS
from .errors import JSSyntaxError
from .ast_nodes import (
    Node, Program, NumericLiteral, StringLiteral, BooleanLiteral, NullLiteral,
    Identifier, ThisExpression, ArrayExpression, ObjectExpression, Property,
    UnaryExpression, UpdateExpression, BinaryExpression, LogicalExpression,
    ConditionalExpression, AssignmentExpression,
    MemberExpression, CallExpression, NewExpression,
    FunctionExpression, ArrowFunctionExpression,
    ExpressionStatement, BlockStatement, EmptyStatement,
    VariableDeclaration, VariableDeclarator, FunctionDeclaration,
    ReturnStatement, IfStatement, WhileStatement, ForStatement,
    BreakStatement, ContinueStatement, ThrowStatement, TryStatement, CatchClause,
)


# Operator precedence (higher = binds tighter)
PRECEDENCE = {
    "||": 1,
    "&&": 2,
    "==": 6, "!=": 6, "===": 6, "!==": 6,
    "<": 7, ">": 7, "<=": 7, ">=": 7,
    "+": 9, "-": 9,
    "*": 10, "/": 10, "%": 10,
}

DECLARATION_KEYWORDS = (TokenType.VAR, TokenType.LET, TokenType.CONST)

# Reserved words are still valid property names: p.finally, {default: 1}
PROPERTY_NAME_TOKENS = (TokenType.IDENTIFIER,) + tuple(KEYWORDS.values())

N = TypeVar("N", bound=Node)


def parse(source: str) -> Program:
    """Parse source text into a Program, raising JSSyntaxError on failure."""
    return Parser(source).parse()


class Parser:
    """Recursive descent parser for the JavaScript subset."""

    def __init__(self, source: str):
        self.lexer = Lexer(source)
        self.current: Token = self.lexer.next_token()
        self.previous: Optional[Token] = None
        self._function_depth = 0

    @staticmethod
    def _at(node: N, token: Token) -> N:
        """Stamp a node with the source position of ``token``."""
        node.line = token.line
        node.column = token.column
        return node

    def _error(self, message: str) -> JSSyntaxError:
        """Create a syntax error at current position."""
        return JSSyntaxError(message, self.current.line, self.current.column)

    def _advance(self) -> Token:
        """Advance to next token and return previous."""
        self.previous = self.current
        self.current = self.lexer.next_token()
        return self.previous

    def _check(self, *types: TokenType) -> bool:
        """Check if current token is one of the given types."""
        return self.current.type in types

    def _match(self, *types: TokenType) -> bool:
        """If current token matches, advance and return True."""
        if self._check(*types):
            self._advance()
            return True
        return False

    def _expect(self, token_type: TokenType, message: str) -> Token:
        """Expect a specific token type or raise error."""
        if self.current.type != token_type:
            raise self._error(message)
        return self._advance()

    def _expect_property_name(self) -> Identifier:
        """Expect a name after '.', keywords included."""
        if not self._check(*PROPERTY_NAME_TOKENS):
            raise self._error("Expected property name")
        token = self._advance()
        return self._at(Identifier(token.value), token)

    def _is_at_end(self) -> bool:
        """Check if we've reached the end of input."""
        return self.current.type == TokenType.EOF

    def _peek_next(self) -> Token:
        """Peek at the token after the current one without consuming it."""
        state = self.lexer.save()
        try:
            return self.lexer.next_token()
        finally:
            self.lexer.restore(state)

    def _arrow_ahead(self) -> bool:
        """With the current token on '(', report whether it opens arrow params."""
        state = self.lexer.save()
        try:
            depth = 1
            while depth:
                token = self.lexer.next_token()
                if token.type == TokenType.EOF:
                    return False
                if token.type == TokenType.LPAREN:
                    depth += 1
                elif token.type == TokenType.RPAREN:
                    depth -= 1
            return self.lexer.next_token().type == TokenType.ARROW
        except JSSyntaxError:
            return False
        finally:
            self.lexer.restore(state)

    def parse(self) -> Program:
        """Parse the entire program."""
        start = self.current
        body: List[Node] = []
        while not self._is_at_end():
            body.append(self._parse_statement())
        return self._at(Program(body), start)

    # ---- Statements ----

    def _parse_statement(self) -> Node:
        """Parse a statement."""
        start = self.current

        if self._match(TokenType.SEMICOLON):
            return self._at(EmptyStatement(), start)

        if self._check(TokenType.LBRACE):
            return self._parse_block_statement()

        if self._match(*DECLARATION_KEYWORDS):
            return self._parse_variable_declaration(start)

        if self._match(TokenType.FUNCTION):
            return self._parse_function_declaration(start)

        if self._match(TokenType.RETURN):
            if self._function_depth == 0:
                raise JSSyntaxError("Illegal return statement", start.line, start.column)
            argument = None
            if not self._check(TokenType.SEMICOLON, TokenType.RBRACE, TokenType.EOF):
                argument = self._parse_expression()
            self._consume_semicolon()
            return self._at(ReturnStatement(argument), start)

        if self._match(TokenType.IF):
            return self._parse_if_statement(start)

        if self._match(TokenType.WHILE):
            self._expect(TokenType.LPAREN, "Expected '(' after 'while'")
            test = self._parse_expression()
            self._expect(TokenType.RPAREN, "Expected ')' after condition")
            return self._at(WhileStatement(test, self._parse_statement()), start)

        if self._match(TokenType.FOR):
            return self._parse_for_statement(start)

        if self._match(TokenType.BREAK):
            self._consume_semicolon()
            return self._at(BreakStatement(), start)

        if self._match(TokenType.CONTINUE):
            self._consume_semicolon()
            return self._at(ContinueStatement(), start)

        if self._match(TokenType.THROW):
            argument = self._parse_expression()
            self._consume_semicolon()
            return self._at(ThrowStatement(argument), start)

        if self._match(TokenType.TRY):
            return self._parse_try_statement(start)

        expr = self._parse_expression()
        self._consume_semicolon()
        return self._at(ExpressionStatement(expr), start)

    def _parse_block_statement(self) -> BlockStatement:
        """Parse a block statement: { ... }"""
        start = self._expect(TokenType.LBRACE, "Expected '{'")
        body: List[Node] = []
        while not self._check(TokenType.RBRACE) and not self._is_at_end():
            body.append(self._parse_statement())
        self._expect(TokenType.RBRACE, "Expected '}'")
        return self._at(BlockStatement(body), start)

    def _parse_variable_declaration(self, start: Token, consume_semicolon: bool = True) -> VariableDeclaration:
        """Parse variable declaration: var a = 1, b = 2;"""
        declarations: List[VariableDeclarator] = []

        while True:
            name = self._expect(TokenType.IDENTIFIER, "Expected variable name")
            init = None
            if self._match(TokenType.ASSIGN):
                init = self._parse_assignment_expression()
            elif start.type == TokenType.CONST:
                raise self._error("Missing initializer in const declaration")
            declarator = VariableDeclarator(self._at(Identifier(name.value), name), init)
            declarations.append(self._at(declarator, name))

            if not self._match(TokenType.COMMA):
                break

        if consume_semicolon:
            self._consume_semicolon()
        return self._at(VariableDeclaration(declarations, start.value), start)

    def _parse_function_declaration(self, start: Token) -> FunctionDeclaration:
        """Parse function declaration."""
        name = self._expect(TokenType.IDENTIFIER, "Expected function name")
        params = self._parse_function_params()
        body = self._parse_function_body()
        return self._at(
            FunctionDeclaration(self._at(Identifier(name.value), name), params, body), start
        )

    def _parse_function_body(self) -> BlockStatement:
        """Parse a function body block, where `return` is allowed."""
        self._function_depth += 1
        try:
            return self._parse_block_statement()
        finally:
            self._function_depth -= 1

    def _parse_function_params(self) -> List[Identifier]:
        """Parse a parenthesised parameter list."""
        self._expect(TokenType.LPAREN, "Expected '(' before parameters")
        params: List[Identifier] = []
        if not self._check(TokenType.RPAREN):
            while True:
                param = self._expect(TokenType.IDENTIFIER, "Expected parameter name")
                params.append(self._at(Identifier(param.value), param))
                if not self._match(TokenType.COMMA):
                    break
        self._expect(TokenType.RPAREN, "Expected ')' after parameters")
        return params

    def _parse_if_statement(self, start: Token) -> IfStatement:
        """Parse if statement: if (test) consequent else alternate"""
        self._expect(TokenType.LPAREN, "Expected '(' after 'if'")
        test = self._parse_expression()
        self._expect(TokenType.RPAREN, "Expected ')' after condition")
        consequent = self._parse_statement()
        alternate = None
        if self._match(TokenType.ELSE):
            alternate = self._parse_statement()
        return self._at(IfStatement(test, consequent, alternate), start)

    def _parse_for_statement(self, start: Token) -> ForStatement:
        """Parse a classic three-clause for statement."""
        self._expect(TokenType.LPAREN, "Expected '(' after 'for'")

        init = None
        if self._check(*DECLARATION_KEYWORDS):
            keyword = self._advance()
            init = self._parse_variable_declaration(keyword, consume_semicolon=False)
        elif not self._check(TokenType.SEMICOLON):
            init = self._parse_expression()
        self._expect(TokenType.SEMICOLON, "Expected ';' after for init")

        test = None
        if not self._check(TokenType.SEMICOLON):
            test = self._parse_expression()
        self._expect(TokenType.SEMICOLON, "Expected ';' after for condition")

        update = None
        if not self._check(TokenType.RPAREN):
            update = self._parse_expression()
        self._expect(TokenType.RPAREN, "Expected ')' after for update")

        body = self._parse_statement()
        return self._at(ForStatement(init, test, update, body), start)

    def _parse_try_statement(self, start: Token) -> TryStatement:
        """Parse try statement."""
        block = self._parse_block_statement()
        handler = None
        finalizer = None

        catch_token = self.current
        if self._match(TokenType.CATCH):
            param = None
            if self._match(TokenType.LPAREN):
                name = self._expect(TokenType.IDENTIFIER, "Expected catch parameter")
                param = self._at(Identifier(name.value), name)
                self._expect(TokenType.RPAREN, "Expected ')' after catch parameter")
            handler = self._at(CatchClause(param, self._parse_block_statement()), catch_token)

        if self._match(TokenType.FINALLY):
            finalizer = self._parse_block_statement()

        if handler is None and finalizer is None:
            raise self._error("Missing catch or finally clause")

        return self._at(TryStatement(block, handler, finalizer), start)

    def _consume_semicolon(self) -> None:
        """Consume a semicolon if present (ASI simulation)."""
        self._match(TokenType.SEMICOLON)

    # ---- Expressions ----

    def _parse_expression(self) -> Node:
        """Parse an expression."""
        return self._parse_assignment_expression()

    def _parse_assignment_expression(self) -> Node:
        """Parse assignment expression (including arrow functions)."""
        start = self.current

        # x => body
        if self._check(TokenType.IDENTIFIER) and self._peek_next().type == TokenType.ARROW:
            param = self._advance()
            self._advance()  # =>
            return self._parse_arrow_body([self._at(Identifier(param.value), param)], start)

        # (a, b) => body
        if self._check(TokenType.LPAREN) and self._arrow_ahead():
            params = self._parse_function_params()
            self._expect(TokenType.ARROW, "Expected '=>'")
            return self._parse_arrow_body(params, start)

        expr = self._parse_conditional_expression()

        if self._check(TokenType.ASSIGN, TokenType.PLUS_ASSIGN, TokenType.MINUS_ASSIGN):
            if not isinstance(expr, (Identifier, MemberExpression)):
                raise self._error("Invalid assignment target")
            op = self._advance().value
            right = self._parse_assignment_expression()
            return self._at(AssignmentExpression(op, expr, right), start)

        return expr

    def _parse_arrow_body(self, params: List[Identifier], start: Token) -> ArrowFunctionExpression:
        """Parse the body after '=>'."""
        if self._check(TokenType.LBRACE):
            body: Node = self._parse_function_body()
            return self._at(ArrowFunctionExpression(params, body), start)
        body = self._parse_assignment_expression()
        return self._at(ArrowFunctionExpression(params, body, expression=True), start)

    def _parse_conditional_expression(self) -> Node:
        """Parse conditional (ternary) expression."""
        start = self.current
        expr = self._parse_binary_expression(0)

        if self._match(TokenType.QUESTION):
            consequent = self._parse_assignment_expression()
            self._expect(TokenType.COLON, "Expected ':' in conditional expression")
            alternate = self._parse_assignment_expression()
            return self._at(ConditionalExpression(expr, consequent, alternate), start)

        return expr

    def _parse_binary_expression(self, min_precedence: int = 0) -> Node:
        """Parse binary expression with operator precedence."""
        start = self.current
        left = self._parse_unary_expression()

        while True:
            op = BINARY_OPERATORS.get(self.current.type)
            if op is None:
                break

            precedence = PRECEDENCE[op]
            if precedence < min_precedence:
                break

            self._advance()
            right = self._parse_binary_expression(precedence + 1)

            if op in ("&&", "||"):
                left = self._at(LogicalExpression(op, left, right), start)
            else:
                left = self._at(BinaryExpression(op, left, right), start)

        return left

    def _parse_unary_expression(self) -> Node:
        """Parse unary expression."""
        start = self.current
        if self._match(TokenType.MINUS, TokenType.PLUS, TokenType.NOT, TokenType.TYPEOF):
            argument = self._parse_unary_expression()
            return self._at(UnaryExpression(start.value, argument), start)

        if self._match(TokenType.PLUSPLUS, TokenType.MINUSMINUS):
            argument = self._parse_unary_expression()
            return self._at(UpdateExpression(start.value, argument, prefix=True), start)

        return self._parse_postfix_expression()

    def _parse_postfix_expression(self) -> Node:
        """Parse postfix expression (member access, calls, postfix ++/--)."""
        start = self.current
        expr = self._parse_new_expression()

        while True:
            if self._match(TokenType.DOT):
                member = MemberExpression(expr, self._expect_property_name(), computed=False)
                expr = self._at(member, start)
            elif self._match(TokenType.LBRACKET):
                prop = self._parse_expression()
                self._expect(TokenType.RBRACKET, "Expected ']' after index")
                expr = self._at(MemberExpression(expr, prop, computed=True), start)
            elif self._match(TokenType.LPAREN):
                args = self._parse_arguments()
                expr = self._at(CallExpression(expr, args), start)
            elif self._check(TokenType.PLUSPLUS, TokenType.MINUSMINUS):
                op = self._advance().value
                expr = self._at(UpdateExpression(op, expr, prefix=False), start)
            else:
                break

        return expr

    def _parse_new_expression(self) -> Node:
        """Parse new expression."""
        start = self.current
        if self._match(TokenType.NEW):
            callee = self._parse_primary_expression()
            while self._match(TokenType.DOT):
                callee = self._at(MemberExpression(callee, self._expect_property_name(), computed=False), start)
            args: List[Node] = []
            if self._match(TokenType.LPAREN):
                args = self._parse_arguments()
            return self._at(NewExpression(callee, args), start)

        return self._parse_primary_expression()

    def _parse_arguments(self) -> List[Node]:
        """Parse call arguments after '(' up to and including ')'."""
        args: List[Node] = []
        if not self._check(TokenType.RPAREN):
            while True:
                args.append(self._parse_assignment_expression())
                if not self._match(TokenType.COMMA):
                    break
        self._expect(TokenType.RPAREN, "Expected ')' after arguments")
        return args

    def _parse_primary_expression(self) -> Node:
        """Parse primary expression (literals, identifiers, grouped)."""
        start = self.current

        if self._match(TokenType.NUMBER):
            return self._at(NumericLiteral(start.value), start)

        if self._match(TokenType.STRING):
            return self._at(StringLiteral(start.value), start)

        if self._match(TokenType.TRUE, TokenType.FALSE):
            return self._at(BooleanLiteral(start.type == TokenType.TRUE), start)

        if self._match(TokenType.NULL):
            return self._at(NullLiteral(), start)

        if self._match(TokenType.THIS):
            return self._at(ThisExpression(), start)

        if self._match(TokenType.IDENTIFIER):
            return self._at(Identifier(start.value), start)

        if self._match(TokenType.LPAREN):
            expr = self._parse_expression()
            self._expect(TokenType.RPAREN, "Expected ')' after expression")
            return expr

        if self._match(TokenType.LBRACKET):
            elements: List[Node] = []
            while not self._check(TokenType.RBRACKET):
                elements.append(self._parse_assignment_expression())
                if not self._match(TokenType.COMMA):
                    break
            self._expect(TokenType.RBRACKET, "Expected ']' after array elements")
            return self._at(ArrayExpression(elements), start)

        if self._match(TokenType.LBRACE):
            return self._parse_object_literal(start)

        if self._match(TokenType.FUNCTION):
            name = None
            if self._check(TokenType.IDENTIFIER):
                token = self._advance()
                name = self._at(Identifier(token.value), token)
            params = self._parse_function_params()
            body = self._parse_function_body()
            return self._at(FunctionExpression(name, params, body), start)

        if self._is_at_end():
            raise self._error("Unexpected end of input")
        raise self._error(f"Unexpected token: {self.current.type.name}")

    def _parse_object_literal(self, start: Token) -> ObjectExpression:
        """Parse object literal: {a: 1, 'b': 2}"""
        properties: List[Property] = []
        while not self._check(TokenType.RBRACE):
            key_token = self.current
            if self._check(*PROPERTY_NAME_TOKENS):
                key: Node = self._expect_property_name()
            elif self._match(TokenType.STRING):
                key = self._at(StringLiteral(key_token.value), key_token)
            elif self._match(TokenType.NUMBER):
                key = self._at(NumericLiteral(key_token.value), key_token)
            else:
                raise self._error("Expected property name")

            if self._match(TokenType.COLON):
                value = self._parse_assignment_expression()
            elif key_token.type == TokenType.IDENTIFIER:
                # Shorthand property: {x} means {x: x}
                value = key
            else:
                raise self._error("Expected ':' after property name")

            properties.append(self._at(Property(key, value), key_token))
            if not self._match(TokenType.COMMA):
                break
        self._expect(TokenType.RBRACE, "Expected '}' after object properties")
        return self._at(ObjectExpression(properties), start)
