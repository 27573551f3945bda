"""Tree-walking evaluator for the JavaScript subset.

The evaluator runs the synchronous part of a program and turns every
asynchronous API call into queued work instead of running it:
``setTimeout`` schedules a macrotask, ``queueMicrotask`` and promise
reactions schedule microtasks. The event loop (see ``event_loop.py``) later
drains those queues through ``invoke_task`` and ``invoke_microtask``.

Every state change that a viewer should be able to see (a frame pushed or
popped, a queue growing, a line printed) records a snapshot on the trace.

Problems that a real engine would throw for, such as calling an unknown
function, become diagnostics: the node is skipped and the run continues.
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Type, Union

from . import ast_nodes as ast
from .context import ExecutionContext
from .diagnostics import Diagnostic, DiagnosticKind
from .environment import Environment
from .errors import JSRangeError
from .queues import Microtask, Task
from .trace import ExecutionStep, ExecutionTrace, StepKind, TraceRecorder
from .values import (
    UNDEFINED, NULL, FULFILLED, JSFunction, JSObject, JSPromise, NativeFunction,
    PromiseReaction, display, is_callable, is_nan, js_add, js_divide,
    js_less_equal, js_less_than, js_multiply, js_remainder, js_subtract,
    js_typeof, strict_equals, to_boolean,
)

logger = logging.getLogger(__name__)

ANONYMOUS = "anonymous"

Callback = Union[JSFunction, NativeFunction]

BINARY_OPERATORS: Dict[str, Callable[[Any, Any], Any]] = {
    "+": js_add,
    "-": js_subtract,
    "*": js_multiply,
    "/": js_divide,
    "%": js_remainder,
    "<": js_less_than,
    ">": lambda a, b: js_less_than(b, a),
    "<=": js_less_equal,
    ">=": lambda a, b: js_less_equal(b, a),
    "===": strict_equals,
    "!==": lambda a, b: not strict_equals(a, b),
}


class _Return(Exception):
    """Unwinds a function body when a ``return`` statement runs."""

    def __init__(self, value: Any):
        super().__init__()
        self.value = value


def describe(node: ast.Node) -> str:
    """Short source-like text for a callee expression."""
    if isinstance(node, ast.Identifier):
        return node.name
    if isinstance(node, ast.MemberExpression) and not node.computed:
        return f"{describe(node.object)}.{describe(node.property)}"
    if isinstance(node, ast.CallExpression):
        return f"{describe(node.callee)}(...)"
    return node.type


class Evaluator:
    """Evaluates a Program against one ExecutionContext and records its trace."""

    def __init__(
        self,
        max_call_depth: Optional[int] = 100,
        max_steps: Optional[int] = 10000,
    ):
        """Create an evaluator with a fresh context.

        Args:
            max_call_depth: Maximum number of simulated frames, or None
            max_steps: Maximum number of trace steps, or None
        """
        self.max_call_depth = max_call_depth
        self.context = ExecutionContext()
        self.recorder = TraceRecorder(max_steps)
        self.diagnostics: List[Diagnostic] = []
        self._setup_globals()

        self._statements: Dict[Type[ast.Node], Callable[[Any, Environment], None]] = {
            ast.Program: self._execute_program,
            ast.VariableDeclaration: self._execute_variable_declaration,
            ast.FunctionDeclaration: self._execute_function_declaration,
            ast.ExpressionStatement: self._execute_expression_statement,
            ast.BlockStatement: self._execute_block,
            ast.EmptyStatement: self._execute_empty,
            ast.ReturnStatement: self._execute_return,
            ast.IfStatement: self._execute_if,
        }
        self._expressions: Dict[Type[ast.Node], Callable[[Any, Environment], Any]] = {
            ast.NumericLiteral: self._evaluate_literal,
            ast.StringLiteral: self._evaluate_literal,
            ast.BooleanLiteral: self._evaluate_literal,
            ast.NullLiteral: lambda node, env: NULL,
            ast.Identifier: self._evaluate_identifier,
            ast.BinaryExpression: self._evaluate_binary,
            ast.UnaryExpression: self._evaluate_unary,
            ast.AssignmentExpression: self._evaluate_assignment,
            ast.MemberExpression: self._evaluate_member,
            ast.CallExpression: self._evaluate_call,
            ast.FunctionExpression: self._evaluate_function,
            ast.ArrowFunctionExpression: self._evaluate_function,
        }

    @property
    def trace(self) -> ExecutionTrace:
        return self.recorder.trace

    @property
    def globals(self) -> Environment:
        return self.context.globals

    def _setup_globals(self) -> None:
        """Install the host functions the simulated programs can call."""
        env = self.context.globals
        env.declare("undefined", UNDEFINED)
        env.declare("NaN", float("nan"))
        env.declare("Infinity", float("inf"))
        env.declare("setTimeout", NativeFunction("setTimeout", self._set_timeout))
        env.declare("queueMicrotask", NativeFunction("queueMicrotask", self._queue_microtask))

        console = JSObject()
        for method in ("log", "info", "warn", "error"):
            console.set(method, NativeFunction(f"console.{method}", self._console_log))
        env.declare("console", console)

        env.declare("Promise", JSObject({
            "resolve": NativeFunction("Promise.resolve", self._promise_resolve),
        }))

    # ---- Recording and diagnostics ----

    def record(self, node: Optional[ast.Node], kind: StepKind, label: str) -> ExecutionStep:
        """Append a snapshot of the current context to the trace."""
        return self.recorder.record(self.context, node, kind, label)

    def diagnose(self, kind: DiagnosticKind, message: str, node: Optional[ast.Node]) -> None:
        """Report a recoverable problem and keep going."""
        diagnostic = Diagnostic.at(kind, message, node)
        self.diagnostics.append(diagnostic)
        logger.warning("%s", diagnostic)

    # ---- Entry points ----

    def run_program(self, program: ast.Program) -> None:
        """Record the initial state and run the synchronous part of a program."""
        self.record(None, StepKind.INITIAL, "program start")
        with self.host_stack_guard():
            self.execute(program, self.context.globals)

    @contextmanager
    def host_stack_guard(self) -> Iterator[None]:
        """Report Python running out of stack as a RangeError.

        Each simulated call costs several interpreter frames, so deep
        recursion can exhaust Python's own limit before ``max_call_depth``.
        """
        try:
            yield
        except RecursionError:
            raise JSRangeError("Maximum call stack size exceeded (interpreter stack exhausted)") from None

    def execute(self, node: ast.Node, env: Environment) -> None:
        """Execute a statement node."""
        handler = self._statements.get(type(node))
        if handler is None:
            self.diagnose(
                DiagnosticKind.UNHANDLED_NODE_KIND,
                f"{node.type} is not supported; skipped",
                node,
            )
            return
        handler(node, env)

    def evaluate(self, node: ast.Node, env: Environment) -> Any:
        """Evaluate an expression node to a value."""
        handler = self._expressions.get(type(node))
        if handler is None:
            self.diagnose(
                DiagnosticKind.UNHANDLED_NODE_KIND,
                f"{node.type} is not supported; evaluates to undefined",
                node,
            )
            return UNDEFINED
        return handler(node, env)

    # ---- Statements ----

    def _execute_program(self, node: ast.Program, env: Environment) -> None:
        for stmt in node.body:
            self.execute(stmt, env)

    def _execute_variable_declaration(self, node: ast.VariableDeclaration, env: Environment) -> None:
        for declarator in node.declarations:
            name = declarator.id.name
            if declarator.init is None:
                value = UNDEFINED
            elif isinstance(declarator.init, (ast.FunctionExpression, ast.ArrowFunctionExpression)):
                value = self._make_function(declarator.init, env, name_hint=name)
            else:
                value = self.evaluate(declarator.init, env)
            env.declare(name, value)

    def _execute_function_declaration(self, node: ast.FunctionDeclaration, env: Environment) -> None:
        env.declare(node.id.name, self._make_function(node, env))

    def _execute_expression_statement(self, node: ast.ExpressionStatement, env: Environment) -> None:
        self.evaluate(node.expression, env)

    def _execute_block(self, node: ast.BlockStatement, env: Environment) -> None:
        # No block scoping: declarations land in the enclosing function scope
        for stmt in node.body:
            self.execute(stmt, env)

    def _execute_empty(self, node: ast.EmptyStatement, env: Environment) -> None:
        pass

    def _execute_return(self, node: ast.ReturnStatement, env: Environment) -> None:
        value = UNDEFINED if node.argument is None else self.evaluate(node.argument, env)
        raise _Return(value)

    def _execute_if(self, node: ast.IfStatement, env: Environment) -> None:
        if to_boolean(self.evaluate(node.test, env)):
            self.execute(node.consequent, env)
        elif node.alternate is not None:
            self.execute(node.alternate, env)

    # ---- Expressions ----

    def _evaluate_literal(self, node: ast.Node, env: Environment) -> Any:
        return node.value

    def _evaluate_identifier(self, node: ast.Identifier, env: Environment) -> Any:
        return env.get(node.name)

    def _evaluate_binary(self, node: ast.BinaryExpression, env: Environment) -> Any:
        left = self.evaluate(node.left, env)
        right = self.evaluate(node.right, env)
        operator = BINARY_OPERATORS.get(node.operator)
        if operator is None:
            self.diagnose(
                DiagnosticKind.UNSUPPORTED_OPERATOR,
                f"operator {node.operator!r} is not supported; evaluates to undefined",
                node,
            )
            return UNDEFINED
        return operator(left, right)

    def _evaluate_unary(self, node: ast.UnaryExpression, env: Environment) -> Any:
        value = self.evaluate(node.argument, env)
        if node.operator == "-":
            return js_subtract(0, value)
        if node.operator == "+":
            return js_subtract(value, 0)
        if node.operator == "!":
            return not to_boolean(value)
        if node.operator == "typeof":
            return js_typeof(value)
        self.diagnose(
            DiagnosticKind.UNSUPPORTED_OPERATOR,
            f"operator {node.operator!r} is not supported; evaluates to undefined",
            node,
        )
        return UNDEFINED

    def _evaluate_assignment(self, node: ast.AssignmentExpression, env: Environment) -> Any:
        if not isinstance(node.left, ast.Identifier):
            self.diagnose(
                DiagnosticKind.UNHANDLED_NODE_KIND,
                f"assignment to {node.left.type} is not supported; skipped",
                node,
            )
            return UNDEFINED
        name = node.left.name
        if node.operator == "=" and isinstance(node.right, (ast.FunctionExpression, ast.ArrowFunctionExpression)):
            value = self._make_function(node.right, env, name_hint=name)
        else:
            value = self.evaluate(node.right, env)
        if node.operator == "+=":
            value = js_add(env.get(name), value)
        elif node.operator == "-=":
            value = js_subtract(env.get(name), value)
        env.assign(name, value)
        return value

    def _evaluate_member(self, node: ast.MemberExpression, env: Environment) -> Any:
        target = self.evaluate(node.object, env)
        if node.computed:
            key = display(self.evaluate(node.property, env))
        else:
            key = node.property.name
        if isinstance(target, JSObject):
            return target.get(key)
        if isinstance(target, JSPromise) and key == "then":
            return NativeFunction(
                "then", lambda args, call: self._promise_then(target, args, call)
            )
        return UNDEFINED

    def _evaluate_function(self, node: ast.Node, env: Environment) -> JSFunction:
        return self._make_function(node, env)

    def _make_function(self, node: ast.FunctionNode, env: Environment, name_hint: Optional[str] = None) -> JSFunction:
        """Build the callable record for a function node, closing over ``env``."""
        if isinstance(node, ast.ArrowFunctionExpression):
            name = name_hint or ANONYMOUS
            expression_body = node.expression
        else:
            name = node.id.name if node.id is not None else (name_hint or ANONYMOUS)
            expression_body = False
        return JSFunction(
            name=name,
            params=[param.name for param in node.params],
            body=node.body,
            closure=env,
            node=node,
            expression_body=expression_body,
        )

    # ---- Calls ----

    def _evaluate_call(self, node: ast.CallExpression, env: Environment) -> Any:
        callee = self.evaluate(node.callee, env)
        args = [self.evaluate(arg, env) for arg in node.arguments]
        if not is_callable(callee):
            self.diagnose(
                DiagnosticKind.UNRESOLVED_CALLEE,
                f"{describe(node.callee)} is not a function",
                node,
            )
            return UNDEFINED
        return self.call(callee, args, node)

    def call(self, callee: Callback, args: List[Any], node: Optional[ast.Node] = None) -> Any:
        """Invoke a callable: host functions directly, user functions in a frame."""
        if isinstance(callee, NativeFunction):
            return callee.fn(args, node)
        return self._invoke(callee, args)

    def _invoke(self, function: JSFunction, args: List[Any]) -> Any:
        """Run a user function: push, record, run the body, pop, record."""
        stack = self.context.call_stack
        if self.max_call_depth is not None and len(stack) >= self.max_call_depth:
            raise JSRangeError(
                f"Maximum call stack size exceeded ({self.max_call_depth} frames) in {function.name}"
            )

        scope = function.closure.child()
        for index, param in enumerate(function.params):
            scope.declare(param, args[index] if index < len(args) else UNDEFINED)

        stack.append(function.name)
        try:
            self.record(function.node, StepKind.CALL, f"call {function.name}")
            result = UNDEFINED
            try:
                if function.expression_body:
                    result = self.evaluate(function.body, scope)
                else:
                    for stmt in function.body.body:
                        self.execute(stmt, scope)
            except _Return as ret:
                result = ret.value
        finally:
            stack.pop()
        self.record(function.node, StepKind.RETURN, f"return from {function.name}")
        return result

    # ---- Host functions ----

    def _callback_argument(self, api: str, args: List[Any], node: ast.Node) -> Optional[Callback]:
        """First argument of a scheduling API, if it is callable."""
        callback = args[0] if args else UNDEFINED
        if is_callable(callback):
            return callback
        self.diagnose(
            DiagnosticKind.UNRESOLVED_CALLEE,
            f"{api} callback is not a function",
            node,
        )
        return None

    @staticmethod
    def _literal_delay(node: Optional[ast.Node]) -> Union[int, float]:
        """Delay from a numeric literal argument; anything else means 0."""
        if isinstance(node, ast.NumericLiteral):
            delay = node.value
        elif (
            isinstance(node, ast.UnaryExpression)
            and node.operator in ("-", "+")
            and isinstance(node.argument, ast.NumericLiteral)
        ):
            delay = -node.argument.value if node.operator == "-" else node.argument.value
        else:
            return 0
        if is_nan(delay) or delay < 0:
            return 0
        return delay

    def _set_timeout(self, args: List[Any], node: ast.CallExpression) -> Any:
        callback = self._callback_argument("setTimeout", args, node)
        if callback is None:
            return UNDEFINED
        delay_node = None
        if node is not None and len(node.arguments) > 1:
            delay_node = node.arguments[1]
        delay = self._literal_delay(delay_node)

        context = self.context
        task = Task(
            name=callback.name,
            callback=callback,
            delay=delay,
            timer_id=context.allocate_timer_id(),
            args=tuple(args[2:]),
        )
        context.tasks.push(task)
        logger.debug("scheduled task %s at t=%s", task, context.clock)
        self.record(node, StepKind.TIMER_SCHEDULED, f"setTimeout {task}")
        return task.timer_id

    def _queue_microtask(self, args: List[Any], node: ast.CallExpression) -> Any:
        callback = self._callback_argument("queueMicrotask", args, node)
        if callback is not None:
            self._enqueue_microtask(Microtask(callback.name, callback), node)
        return UNDEFINED

    def _enqueue_microtask(self, microtask: Microtask, node: Optional[ast.Node]) -> None:
        self.context.microtasks.push(microtask)
        logger.debug("queued microtask %s (%s)", microtask.name, microtask.source)
        self.record(node, StepKind.MICROTASK_QUEUED, f"{microtask.source} {microtask.name}")

    def _console_log(self, args: List[Any], node: ast.CallExpression) -> Any:
        line = " ".join(display(arg) for arg in args)
        self.context.output.append(line)
        self.record(node, StepKind.LOG, f"console.log {line}")
        return UNDEFINED

    # ---- Promises ----

    def _promise_resolve(self, args: List[Any], node: ast.CallExpression) -> JSPromise:
        value = args[0] if args else UNDEFINED
        if isinstance(value, JSPromise):
            return value
        return JSPromise(state=FULFILLED, value=value)

    def _promise_then(self, promise: JSPromise, args: List[Any], node: ast.CallExpression) -> JSPromise:
        handler = args[0] if args and is_callable(args[0]) else None
        reaction = PromiseReaction(handler, JSPromise())
        if promise.state == FULFILLED:
            self._enqueue_reaction(reaction, promise.value, node)
        else:
            promise.reactions.append(reaction)
        return reaction.derived

    def _enqueue_reaction(self, reaction: PromiseReaction, value: Any, node: Optional[ast.Node]) -> None:
        name = reaction.handler.name if reaction.handler is not None else "then"
        microtask = Microtask(name, reaction.handler, (value,), source="then", derived=reaction.derived)
        self._enqueue_microtask(microtask, node)

    def _settle(self, promise: JSPromise, value: Any, node: Optional[ast.Node]) -> None:
        """Resolve ``promise`` with ``value``, adopting it if it is a promise."""
        if promise.state == FULFILLED:
            return
        if isinstance(value, JSPromise):
            # Adopting a promise costs an extra job before its reactions run
            job = Microtask("PromiseResolveThenableJob", None, (value,), source="thenable", derived=promise)
            self._enqueue_microtask(job, node)
            return
        promise.state = FULFILLED
        promise.value = value
        reactions, promise.reactions = promise.reactions, []
        for reaction in reactions:
            self._enqueue_reaction(reaction, value, node)

    # ---- Event loop callbacks ----

    def invoke_task(self, task: Task) -> None:
        """Run a dequeued macrotask's callback to completion."""
        self.call(task.callback, list(task.args), getattr(task.callback, "node", None))

    def invoke_microtask(self, microtask: Microtask) -> None:
        """Run a dequeued microtask to completion and settle any derived promise."""
        node = getattr(microtask.callback, "node", None)
        if microtask.source == "thenable":
            adopted = microtask.args[0]
            reaction = PromiseReaction(None, microtask.derived)
            if adopted.state == FULFILLED:
                self._enqueue_reaction(reaction, adopted.value, node)
            else:
                adopted.reactions.append(reaction)
            return

        if microtask.callback is None:
            result = microtask.args[0] if microtask.args else UNDEFINED
        else:
            result = self.call(microtask.callback, list(microtask.args), node)

        if microtask.derived is not None:
            self._settle(microtask.derived, result, node)
