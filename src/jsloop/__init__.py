"""
jsloop - A step-by-step JavaScript event loop simulator

Runs a small subset of JavaScript and records how a real engine would
interleave synchronous code, microtasks and timer tasks, as a trace of
snapshots (call stack, task queue, microtask queue) that can be replayed
one step at a time. Implemented in pure Python.
"""

__version__ = "0.1.0"

from .diagnostics import Diagnostic, DiagnosticKind
from .errors import JSError, JSRangeError, JSSyntaxError, StepLimitError
from .evaluator import Evaluator
from .event_loop import EventLoop, run_event_loop
from .parser import Parser, parse
from .session import Session, SessionState, SimulationResult, Status, simulate
from .trace import ExecutionStep, ExecutionTrace, StepKind
from .values import UNDEFINED, NULL

__all__ = [
    "Diagnostic",
    "DiagnosticKind",
    "Evaluator",
    "EventLoop",
    "ExecutionStep",
    "ExecutionTrace",
    "JSError",
    "JSRangeError",
    "JSSyntaxError",
    "Parser",
    "Session",
    "SessionState",
    "SimulationResult",
    "Status",
    "StepKind",
    "StepLimitError",
    "UNDEFINED",
    "NULL",
    "parse",
    "run_event_loop",
    "simulate",
]
