"""Playback session: the command surface a front-end drives.

A run is computed eagerly. ``run`` parses the code, executes it and drains
the event loop in one pass, producing the whole trace; ``step`` then only
moves an index through the recorded steps. Replaying a recorded trace (rather
than re-evaluating node by node) keeps every ordering guarantee of the event
loop intact while the viewer scrubs back and forth.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .ast_nodes import Program
from .diagnostics import Diagnostic
from .errors import JSError, JSSyntaxError
from .evaluator import Evaluator
from .event_loop import run_event_loop
from .parser import parse
from .trace import ExecutionStep, ExecutionTrace

logger = logging.getLogger(__name__)


class Status(Enum):
    """Lifecycle of a session."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class SimulationResult:
    """Everything one complete simulation produced."""

    program: Program
    trace: ExecutionTrace
    diagnostics: Tuple[Diagnostic, ...]
    output: Tuple[str, ...]


def simulate(
    source: str,
    max_call_depth: Optional[int] = 100,
    max_steps: Optional[int] = 10000,
) -> SimulationResult:
    """Parse and run ``source`` to completion, event loop included.

    Raises:
        JSSyntaxError: If the source does not parse
        JSRangeError: If the call depth limit or the interpreter stack is exceeded
        StepLimitError: If the trace grows past ``max_steps``
    """
    program = parse(source)
    evaluator = Evaluator(max_call_depth=max_call_depth, max_steps=max_steps)
    evaluator.run_program(program)
    run_event_loop(evaluator)
    return SimulationResult(
        program=program,
        trace=evaluator.trace,
        diagnostics=tuple(evaluator.diagnostics),
        output=tuple(evaluator.context.output),
    )


@dataclass(frozen=True)
class SessionState:
    """An immutable view of a session, handed to the front-end after each command."""

    code: str
    status: Status
    running: bool
    step: int
    trace: Tuple[ExecutionStep, ...]
    diagnostics: Tuple[Diagnostic, ...]
    error: Optional[str]

    @property
    def current(self) -> Optional[ExecutionStep]:
        """The step at the current index, if a run exists."""
        return self.trace[self.step] if self.trace else None


class Session:
    """Holds the code, the recorded trace and the playback position.

    Commands are serialised: each one takes the session lock, so a step
    never interleaves with a run or a reset issued from another thread.
    """

    def __init__(
        self,
        code: str = "",
        max_call_depth: Optional[int] = 100,
        max_steps: Optional[int] = 10000,
    ):
        """Create an idle session.

        Args:
            code: Initial source text
            max_call_depth: Maximum number of simulated frames per run
            max_steps: Maximum number of trace steps per run
        """
        self.max_call_depth = max_call_depth
        self.max_steps = max_steps
        self._initial_code = code
        self._lock = threading.RLock()
        self.code = code
        self._clear()

    def _clear(self) -> None:
        self.status = Status.IDLE
        self.running = False
        self.index = 0
        self.program: Optional[Program] = None
        self.trace = ExecutionTrace()
        self.diagnostics: Tuple[Diagnostic, ...] = ()
        self.error: Optional[str] = None

    def state(self) -> SessionState:
        """Snapshot the session for rendering or comparison."""
        with self._lock:
            return SessionState(
                code=self.code,
                status=self.status,
                running=self.running,
                step=self.index,
                trace=tuple(self.trace),
                diagnostics=self.diagnostics,
                error=self.error,
            )

    @property
    def current(self) -> Optional[ExecutionStep]:
        """The step at the current index, if a run exists."""
        with self._lock:
            return self.trace[self.index] if len(self.trace) else None

    # ---- Commands ----

    def set_code(self, code: str) -> SessionState:
        """Replace the source text; an existing trace is left alone."""
        with self._lock:
            self.code = code
            return self.state()

    def run(self, code: Optional[str] = None) -> SessionState:
        """Simulate the code to completion and start playback at step 0.

        A syntax error leaves the session in ERROR with no trace. A run that
        hits the call depth or step limit keeps the steps recorded so far,
        also in ERROR.
        """
        with self._lock:
            if code is not None:
                self.code = code
            self._clear()
            try:
                program = parse(self.code)
            except JSSyntaxError as e:
                logger.info("run aborted: %s", e)
                self.status = Status.ERROR
                self.error = str(e)
                return self.state()

            evaluator = Evaluator(max_call_depth=self.max_call_depth, max_steps=self.max_steps)
            self.program = program
            self.trace = evaluator.trace
            try:
                evaluator.run_program(program)
                run_event_loop(evaluator)
            except JSError as e:
                logger.info("run aborted after %d steps: %s", len(self.trace), e)
                self.status = Status.ERROR
                self.error = str(e)
                self.diagnostics = tuple(evaluator.diagnostics)
                return self.state()

            self.diagnostics = tuple(evaluator.diagnostics)
            self.status = Status.RUNNING
            self.running = True
            logger.info(
                "run finished: %d steps, %d diagnostics",
                len(self.trace), len(self.diagnostics),
            )
            return self.state()

    def step(self) -> SessionState:
        """Advance one step; at the last step, stop playback instead."""
        with self._lock:
            if not len(self.trace):
                return self.state()
            if self.index < len(self.trace) - 1:
                self.index += 1
            else:
                self.running = False
                if self.status != Status.ERROR:
                    self.status = Status.COMPLETED
            logger.debug("step -> %d (%s)", self.index, self.status.value)
            return self.state()

    def pause(self) -> SessionState:
        """Stop playback, keeping the trace and position."""
        with self._lock:
            self.running = False
            if self.status == Status.RUNNING:
                self.status = Status.PAUSED
            return self.state()

    def resume(self) -> SessionState:
        """Continue playback after a pause."""
        with self._lock:
            if self.status == Status.PAUSED:
                self.status = Status.RUNNING
                self.running = True
            return self.state()

    def seek(self, index: int) -> SessionState:
        """Jump to a step, clamped into the trace."""
        with self._lock:
            if len(self.trace):
                self.index = max(0, min(index, len(self.trace) - 1))
            return self.state()

    def reset(self, clear_code: bool = False) -> SessionState:
        """Discard the run and return to IDLE.

        The code is kept unless ``clear_code`` is set, in which case it goes
        back to what the session was created with.
        """
        with self._lock:
            if clear_code:
                self.code = self._initial_code
            self._clear()
            return self.state()
