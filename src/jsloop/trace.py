"""Execution trace: immutable snapshots of the simulation state."""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, List, Optional, Tuple, Union

from .ast_nodes import Node
from .context import ExecutionContext, Phase
from .errors import StepLimitError
from .queues import Microtask, Task

logger = logging.getLogger(__name__)


class StepKind(Enum):
    """The state transition a step was recorded after."""

    INITIAL = auto()
    CALL = auto()
    RETURN = auto()
    TIMER_SCHEDULED = auto()
    MICROTASK_QUEUED = auto()
    LOG = auto()
    MICROTASK_DONE = auto()
    TASK_DONE = auto()


@dataclass(frozen=True)
class ExecutionStep:
    """The simulation state at one instant.

    All sequences are tuples copied from the live state, so later mutation
    of the run cannot alter a recorded step.
    """

    index: int
    kind: StepKind
    label: str
    call_stack: Tuple[str, ...]
    task_queue: Tuple[Task, ...]
    microtask_queue: Tuple[Microtask, ...]
    current_node: Optional[Node]
    phase: Phase
    time: Union[int, float]
    output: Tuple[str, ...]

    @property
    def task_names(self) -> Tuple[str, ...]:
        return tuple(task.name for task in self.task_queue)

    @property
    def microtask_names(self) -> Tuple[str, ...]:
        return tuple(microtask.name for microtask in self.microtask_queue)

    @property
    def line(self) -> int:
        """Source line of the active node, or 0 when there is none."""
        return self.current_node.line if self.current_node is not None else 0


class ExecutionTrace:
    """Append-only, indexable sequence of ExecutionSteps."""

    def __init__(self, steps: Optional[List[ExecutionStep]] = None):
        self._steps: List[ExecutionStep] = list(steps or [])

    def append(self, step: ExecutionStep) -> None:
        if step.index != len(self._steps):
            raise ValueError(
                f"step index {step.index} does not extend a trace of {len(self._steps)} steps"
            )
        self._steps.append(step)

    def __getitem__(self, index: int) -> ExecutionStep:
        return self._steps[index]

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[ExecutionStep]:
        return iter(self._steps)

    @property
    def last(self) -> Optional[ExecutionStep]:
        return self._steps[-1] if self._steps else None

    def kinds(self) -> List[StepKind]:
        return [step.kind for step in self._steps]


def snapshot(
    context: ExecutionContext,
    current_node: Optional[Node],
    kind: StepKind,
    label: str,
    index: int,
) -> ExecutionStep:
    """Capture the context as an immutable step."""
    return ExecutionStep(
        index=index,
        kind=kind,
        label=label,
        call_stack=tuple(context.call_stack),
        task_queue=context.tasks.snapshot(),
        microtask_queue=context.microtasks.snapshot(),
        current_node=current_node,
        phase=context.phase,
        time=context.clock,
        output=tuple(context.output),
    )


class TraceRecorder:
    """Appends a snapshot to the trace at every state-changing boundary."""

    def __init__(self, max_steps: Optional[int] = None):
        self.max_steps = max_steps
        self.trace = ExecutionTrace()

    def record(
        self,
        context: ExecutionContext,
        current_node: Optional[Node],
        kind: StepKind,
        label: str,
    ) -> ExecutionStep:
        """Snapshot the context and append it to the trace."""
        if self.max_steps is not None and len(self.trace) >= self.max_steps:
            raise StepLimitError(f"Step limit of {self.max_steps} exceeded")
        step = snapshot(context, current_node, kind, label, len(self.trace))
        self.trace.append(step)
        logger.debug("step %d %s: %s", step.index, kind.name, label)
        return step
