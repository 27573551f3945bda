"""Live simulation state shared by the evaluator, event loop and recorder."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Union

from .environment import Environment
from .queues import MicrotaskQueue, TaskQueue


class Phase(Enum):
    """Which part of the run is executing."""

    SYNC = "sync"
    MICROTASK = "microtask"
    TASK = "task"
    DONE = "done"


@dataclass
class ExecutionContext:
    """Call stack, queues and globals of one run.

    Owned by a single Evaluator; nothing outside the run mutates it.
    """

    globals: Environment = field(default_factory=Environment)
    call_stack: List[str] = field(default_factory=list)
    tasks: TaskQueue = field(default_factory=TaskQueue)
    microtasks: MicrotaskQueue = field(default_factory=MicrotaskQueue)
    output: List[str] = field(default_factory=list)
    clock: Union[int, float] = 0
    phase: Phase = Phase.SYNC
    next_timer_id: int = 1

    def allocate_timer_id(self) -> int:
        timer_id = self.next_timer_id
        self.next_timer_id += 1
        return timer_id
