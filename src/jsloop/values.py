"""JavaScript value types used by the simulator."""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union, TYPE_CHECKING
import math

if TYPE_CHECKING:
    from .ast_nodes import Node, FunctionNode
    from .environment import Environment


class JSUndefined:
    """JavaScript undefined value (singleton)."""

    _instance: Optional["JSUndefined"] = None

    def __new__(cls) -> "JSUndefined":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "undefined"

    def __str__(self) -> str:
        return "undefined"

    def __bool__(self) -> bool:
        return False


class JSNull:
    """JavaScript null value (singleton)."""

    _instance: Optional["JSNull"] = None

    def __new__(cls) -> "JSNull":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "null"

    def __str__(self) -> str:
        return "null"

    def __bool__(self) -> bool:
        return False


# Singleton instances
UNDEFINED = JSUndefined()
NULL = JSNull()


@dataclass(eq=False)
class JSFunction:
    """A user-defined function: its AST plus the environment it closes over.

    ``body`` is a BlockStatement, or a bare expression for arrow functions
    written as ``x => expr`` (``expression_body`` is then set).
    """

    name: str
    params: List[str]
    body: "Node"
    closure: "Environment"
    node: "FunctionNode"
    expression_body: bool = False

    def __repr__(self) -> str:
        return f"<function {self.name}>"


@dataclass(eq=False)
class NativeFunction:
    """A host-provided function such as ``setTimeout`` or ``console.log``.

    ``fn`` receives the evaluated arguments and the CallExpression node.
    """

    name: str
    fn: Callable[[List[Any], "Node"], Any]

    def __repr__(self) -> str:
        return f"<native function {self.name}>"


class JSObject:
    """A plain property bag (host namespaces like ``console``)."""

    def __init__(self, properties: Optional[Dict[str, Any]] = None):
        self._properties: Dict[str, Any] = dict(properties or {})

    def get(self, key: str) -> Any:
        """Get a property value."""
        return self._properties.get(key, UNDEFINED)

    def set(self, key: str, value: Any) -> None:
        """Set a property value."""
        self._properties[key] = value

    def __repr__(self) -> str:
        return f"JSObject({list(self._properties)})"


PENDING = "pending"
FULFILLED = "fulfilled"


@dataclass(eq=False)
class PromiseReaction:
    """A ``then`` callback waiting on a promise, and the promise it settles."""

    handler: Optional[Union[JSFunction, NativeFunction]]
    derived: "JSPromise"


@dataclass(eq=False)
class JSPromise:
    """A promise that is either pending or fulfilled.

    Rejection is not modelled; there are no exceptions in the simulated
    language.
    """

    state: str = PENDING
    value: Any = UNDEFINED
    reactions: List[PromiseReaction] = field(default_factory=list)

    def __repr__(self) -> str:
        if self.state == FULFILLED:
            return f"Promise {{ {to_string(self.value)} }}"
        return "Promise { <pending> }"


JSValue = Union[
    JSUndefined,
    JSNull,
    bool,
    int,
    float,
    str,
    JSObject,
    JSFunction,
    NativeFunction,
    JSPromise,
]


def is_callable(value: Any) -> bool:
    """Check whether a value can be invoked from JavaScript."""
    return isinstance(value, (JSFunction, NativeFunction))


def is_nan(value: Any) -> bool:
    """Check if value is NaN."""
    return isinstance(value, float) and math.isnan(value)


def js_typeof(value: JSValue) -> str:
    """Return the JavaScript typeof for a value."""
    if value is UNDEFINED:
        return "undefined"
    if value is NULL:
        return "object"  # JavaScript quirk
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if is_callable(value):
        return "function"
    return "object"


def to_number(value: JSValue) -> Union[int, float]:
    """Convert a JavaScript value to number."""
    if value is UNDEFINED:
        return float("nan")
    if value is NULL:
        return 0
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        s = value.strip()
        if s == "":
            return 0
        try:
            if "." in s or "e" in s.lower():
                return float(s)
            if s.startswith("0x") or s.startswith("0X"):
                return int(s, 16)
            return int(s)
        except ValueError:
            return float("nan")
    return float("nan")


def to_string(value: JSValue) -> str:
    """Convert a JavaScript value to string."""
    if value is UNDEFINED:
        return "undefined"
    if value is NULL:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if is_nan(value):
            return "NaN"
        if value == float("inf"):
            return "Infinity"
        if value == float("-inf"):
            return "-Infinity"
        if value == 0:
            return "0"
        s = repr(value)
        if s.endswith(".0"):
            return s[:-2]
        return s
    if isinstance(value, str):
        return value
    if isinstance(value, JSFunction):
        params = ", ".join(value.params)
        return f"function {value.name}({params}) {{ ... }}"
    if isinstance(value, NativeFunction):
        return f"function {value.name}() {{ [native code] }}"
    if isinstance(value, JSPromise):
        return "[object Promise]"
    return "[object Object]"


def js_add(left: JSValue, right: JSValue) -> JSValue:
    """The ``+`` operator: string concatenation if either side is a string."""
    left = _to_primitive(left)
    right = _to_primitive(right)
    if isinstance(left, str) or isinstance(right, str):
        return to_string(left) + to_string(right)
    return _normalize(to_number(left) + to_number(right))


def js_subtract(left: JSValue, right: JSValue) -> JSValue:
    """The ``-`` operator."""
    return _normalize(to_number(left) - to_number(right))


def _to_primitive(value: JSValue) -> JSValue:
    """Objects and functions become their string form; primitives pass through."""
    if isinstance(value, (JSObject, JSFunction, NativeFunction, JSPromise)):
        return to_string(value)
    return value


def _normalize(number: Union[int, float]) -> Union[int, float]:
    """Keep integral results as ints so they print without a fraction."""
    if isinstance(number, float) and number.is_integer() and abs(number) < 2 ** 53:
        return int(number)
    return number


def display(value: JSValue) -> str:
    """Format a value the way ``console.log`` prints it."""
    if isinstance(value, str):
        return value
    if isinstance(value, (JSFunction, NativeFunction)):
        return f"[Function: {value.name}]"
    if isinstance(value, (JSObject, JSPromise)):
        return repr(value)
    return to_string(value)


def to_boolean(value: JSValue) -> bool:
    """Convert a JavaScript value to boolean."""
    if value is UNDEFINED or value is NULL:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        if is_nan(value) or value == 0:
            return False
        return True
    if isinstance(value, str):
        return len(value) > 0
    # Objects are always truthy
    return True


def strict_equals(left: JSValue, right: JSValue) -> bool:
    """The ``===`` operator."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right  # NaN compares unequal, as in JavaScript
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    return left is right


def js_multiply(left: JSValue, right: JSValue) -> JSValue:
    """The ``*`` operator."""
    a, b = to_number(left), to_number(right)
    if is_nan(a) or is_nan(b):
        return float("nan")
    return _normalize(a * b)


def js_divide(left: JSValue, right: JSValue) -> JSValue:
    """The ``/`` operator, with IEEE results for division by zero."""
    a, b = to_number(left), to_number(right)
    if b == 0:
        if a == 0 or is_nan(a):
            return float("nan")
        negative = (a < 0) != (math.copysign(1, b) < 0)
        return float("-inf") if negative else float("inf")
    return _normalize(a / b)


def js_remainder(left: JSValue, right: JSValue) -> JSValue:
    """The ``%`` operator; the result takes the sign of the dividend."""
    a, b = to_number(left), to_number(right)
    if b == 0 or is_nan(a) or is_nan(b) or math.isinf(a):
        return float("nan")
    return _normalize(math.fmod(a, b))


def js_less_than(left: JSValue, right: JSValue) -> bool:
    """Abstract relational comparison ``left < right``."""
    if isinstance(left, str) and isinstance(right, str):
        return left < right
    a, b = to_number(left), to_number(right)
    if is_nan(a) or is_nan(b):
        return False
    return a < b


def js_less_equal(left: JSValue, right: JSValue) -> bool:
    """Abstract relational comparison ``left <= right``."""
    if isinstance(left, str) and isinstance(right, str):
        return left <= right
    a, b = to_number(left), to_number(right)
    if is_nan(a) or is_nan(b):
        return False
    return a <= b
