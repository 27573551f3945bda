"""AST node types produced by the parser.

Node and field names follow the ESTree shapes that browser-side JavaScript
tooling (acorn, esprima) emits, so a trace's ``current_node`` can be matched
against editor positions with ``line``/``column``.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union


@dataclass
class Node:
    """Base class for all AST nodes."""

    line: int = field(default=0, kw_only=True, compare=False, repr=False)
    column: int = field(default=0, kw_only=True, compare=False, repr=False)

    @property
    def type(self) -> str:
        """ESTree node type name."""
        return self.__class__.__name__

    def to_dict(self) -> dict:
        """Convert node to dictionary for testing/serialization."""
        result = {"type": self.type}
        for key, value in self.__dict__.items():
            if isinstance(value, Node):
                result[key] = value.to_dict()
            elif isinstance(value, list):
                result[key] = [
                    v.to_dict() if isinstance(v, Node) else v
                    for v in value
                ]
            else:
                result[key] = value
        return result


# Literals
@dataclass
class NumericLiteral(Node):
    """Numeric literal: 42, 3.14, etc."""
    value: Union[int, float]


@dataclass
class StringLiteral(Node):
    """String literal: "hello", 'world'"""
    value: str


@dataclass
class BooleanLiteral(Node):
    """Boolean literal: true, false"""
    value: bool


@dataclass
class NullLiteral(Node):
    """Null literal: null"""
    pass


@dataclass
class Identifier(Node):
    """Identifier: variable names, property names"""
    name: str


@dataclass
class ThisExpression(Node):
    """The 'this' keyword."""
    pass


# Expressions
@dataclass
class ArrayExpression(Node):
    """Array literal: [1, 2, 3]"""
    elements: List[Node]


@dataclass
class ObjectExpression(Node):
    """Object literal: {a: 1, b: 2}"""
    properties: List["Property"]


@dataclass
class Property(Node):
    """Object property: key: value"""
    key: Node
    value: Node


@dataclass
class UnaryExpression(Node):
    """Unary expression: -x, !x, typeof x"""
    operator: str
    argument: Node


@dataclass
class UpdateExpression(Node):
    """Update expression: ++x, x++, --x, x--"""
    operator: str
    argument: Node
    prefix: bool


@dataclass
class BinaryExpression(Node):
    """Binary expression: a + b, a < b, etc."""
    operator: str
    left: Node
    right: Node


@dataclass
class LogicalExpression(Node):
    """Logical expression: a && b, a || b"""
    operator: str
    left: Node
    right: Node


@dataclass
class ConditionalExpression(Node):
    """Conditional (ternary) expression: a ? b : c"""
    test: Node
    consequent: Node
    alternate: Node


@dataclass
class AssignmentExpression(Node):
    """Assignment expression: a = b, a += b"""
    operator: str
    left: Node
    right: Node


@dataclass
class MemberExpression(Node):
    """Member expression: a.b, a[b]"""
    object: Node
    property: Node
    computed: bool


@dataclass
class CallExpression(Node):
    """Call expression: f(a, b)"""
    callee: Node
    arguments: List[Node]


@dataclass
class NewExpression(Node):
    """New expression: new Foo(a, b)"""
    callee: Node
    arguments: List[Node]


@dataclass
class FunctionExpression(Node):
    """Function expression: function name(params) { body }"""
    id: Optional[Identifier]
    params: List[Identifier]
    body: "BlockStatement"


@dataclass
class ArrowFunctionExpression(Node):
    """Arrow function: (params) => body"""
    params: List[Identifier]
    body: Node  # BlockStatement, or an expression when ``expression`` is set
    expression: bool = False


# Statements
@dataclass
class Program(Node):
    """Program node - root of AST."""
    body: List[Node]


@dataclass
class ExpressionStatement(Node):
    """Expression statement: expression;"""
    expression: Node


@dataclass
class BlockStatement(Node):
    """Block statement: { ... }"""
    body: List[Node]


@dataclass
class EmptyStatement(Node):
    """Empty statement: ;"""
    pass


@dataclass
class VariableDeclaration(Node):
    """Variable declaration: var a = 1, b = 2;"""
    declarations: List["VariableDeclarator"]
    kind: str = "var"


@dataclass
class VariableDeclarator(Node):
    """Variable declarator: a = 1"""
    id: Identifier
    init: Optional[Node]


@dataclass
class FunctionDeclaration(Node):
    """Function declaration: function name(params) { body }"""
    id: Identifier
    params: List[Identifier]
    body: BlockStatement


@dataclass
class ReturnStatement(Node):
    """Return statement: return; or return expr;"""
    argument: Optional[Node]


@dataclass
class IfStatement(Node):
    """If statement: if (test) consequent else alternate"""
    test: Node
    consequent: Node
    alternate: Optional[Node]


@dataclass
class WhileStatement(Node):
    """While statement: while (test) body"""
    test: Node
    body: Node


@dataclass
class ForStatement(Node):
    """For statement: for (init; test; update) body"""
    init: Optional[Node]
    test: Optional[Node]
    update: Optional[Node]
    body: Node


@dataclass
class BreakStatement(Node):
    """Break statement: break;"""
    pass


@dataclass
class ContinueStatement(Node):
    """Continue statement: continue;"""
    pass


@dataclass
class ThrowStatement(Node):
    """Throw statement: throw expr;"""
    argument: Node


@dataclass
class TryStatement(Node):
    """Try statement: try { } catch (e) { } finally { }"""
    block: BlockStatement
    handler: Optional["CatchClause"]
    finalizer: Optional[BlockStatement]


@dataclass
class CatchClause(Node):
    """Catch clause: catch (param) { body }"""
    param: Optional[Identifier]
    body: BlockStatement


FunctionNode = Union[FunctionDeclaration, FunctionExpression, ArrowFunctionExpression]
