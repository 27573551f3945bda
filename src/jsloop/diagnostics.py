"""Non-fatal problems reported while evaluating a program.

A diagnostic never unwinds evaluation: the offending node is skipped (or
evaluates to ``undefined``) and the run carries on, so partial programs still
produce a useful trace.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from .ast_nodes import Node


class DiagnosticKind(Enum):
    """Categories of recoverable evaluation problems."""

    UNHANDLED_NODE_KIND = auto()
    UNRESOLVED_CALLEE = auto()
    UNSUPPORTED_OPERATOR = auto()


@dataclass(frozen=True)
class Diagnostic:
    """A recoverable problem attached to a run."""

    kind: DiagnosticKind
    message: str
    line: int = 0
    column: int = 0

    @classmethod
    def at(cls, kind: DiagnosticKind, message: str, node: Optional[Node]) -> "Diagnostic":
        """Create a diagnostic positioned at ``node`` (if any)."""
        if node is None:
            return cls(kind, message)
        return cls(kind, message, node.line, node.column)

    def __str__(self) -> str:
        if self.line > 0:
            return f"{self.kind.name} (line {self.line}, column {self.column}): {self.message}"
        return f"{self.kind.name}: {self.message}"
