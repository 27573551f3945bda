"""Variable environments.

Each run owns one global environment. A user function call gets a child
environment for its parameters and ``var`` declarations whose parent is the
environment the function closed over; lookups walk outward from there.
"""

from typing import Any, Dict, Iterator, Optional, Tuple

from .values import UNDEFINED


class Environment:
    """A mapping from identifier name to value, chained to an outer scope."""

    def __init__(self, parent: Optional["Environment"] = None):
        self.parent = parent
        self._bindings: Dict[str, Any] = {}

    def child(self) -> "Environment":
        """Create a nested scope for a function invocation."""
        return Environment(self)

    def declare(self, name: str, value: Any = UNDEFINED) -> None:
        """Bind ``name`` in this scope, overwriting any earlier declaration."""
        self._bindings[name] = value

    def lookup(self, name: str) -> Tuple[bool, Any]:
        """Return ``(found, value)`` searching from this scope outward."""
        env: Optional[Environment] = self
        while env is not None:
            if name in env._bindings:
                return True, env._bindings[name]
            env = env.parent
        return False, UNDEFINED

    def get(self, name: str) -> Any:
        """Get the value bound to ``name``; unbound names are ``undefined``."""
        return self.lookup(name)[1]

    def assign(self, name: str, value: Any) -> None:
        """Update the nearest binding of ``name``.

        Assigning to an undeclared name creates a global, as sloppy-mode
        JavaScript does.
        """
        env: Optional[Environment] = self
        while env is not None:
            if name in env._bindings:
                env._bindings[name] = value
                return
            if env.parent is None:
                env._bindings[name] = value
                return
            env = env.parent

    def __contains__(self, name: str) -> bool:
        return self.lookup(name)[0]

    def __iter__(self) -> Iterator[str]:
        return iter(self._bindings)

    def __repr__(self) -> str:
        return f"Environment({list(self._bindings)}, parent={self.parent is not None})"
