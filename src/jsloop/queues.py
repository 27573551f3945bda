"""Macrotask and microtask queues."""

from collections import deque
from dataclasses import dataclass
from operator import attrgetter
from typing import Any, Deque, Iterator, List, Optional, Tuple, Union

from .values import JSFunction, JSPromise, NativeFunction

Callback = Union[JSFunction, NativeFunction]


@dataclass(frozen=True)
class Task:
    """A macrotask scheduled by a timer; ``delay`` is the queue's sort key."""

    name: str
    callback: Callback
    delay: Union[int, float]
    timer_id: int
    args: Tuple[Any, ...] = ()

    def __str__(self) -> str:
        return f"{self.name} ({self.delay}ms)"


@dataclass(frozen=True)
class Microtask:
    """A callback queued with no delay.

    ``source`` says where it came from: ``queueMicrotask``, a promise
    reaction (``then``) or the extra job that adopts a returned promise
    (``thenable``). Promise jobs carry the ``derived`` promise that the
    callback's result settles.
    """

    name: str
    callback: Optional[Callback]
    args: Tuple[Any, ...] = ()
    source: str = "queueMicrotask"
    derived: Optional[JSPromise] = None

    def __str__(self) -> str:
        return self.name


class TaskQueue:
    """Timer tasks ordered by delay, ties kept in insertion order."""

    def __init__(self) -> None:
        self._tasks: List[Task] = []

    def push(self, task: Task) -> None:
        """Append a task and restore delay order.

        ``list.sort`` is stable, so tasks with the same delay keep the order
        they were scheduled in.
        """
        self._tasks.append(task)
        self._tasks.sort(key=attrgetter("delay"))

    def pop(self) -> Task:
        """Remove and return the earliest task."""
        if not self._tasks:
            raise IndexError("pop from empty task queue")
        return self._tasks.pop(0)

    def peek(self) -> Optional[Task]:
        """Return the earliest task without removing it."""
        return self._tasks[0] if self._tasks else None

    def snapshot(self) -> Tuple[Task, ...]:
        """Copy of the queue contents, head first."""
        return tuple(self._tasks)

    def clear(self) -> None:
        self._tasks.clear()

    def __len__(self) -> int:
        return len(self._tasks)

    def __bool__(self) -> bool:
        return bool(self._tasks)

    def __iter__(self) -> Iterator[Task]:
        return iter(self._tasks)


class MicrotaskQueue:
    """Strict FIFO of microtasks."""

    def __init__(self) -> None:
        self._items: Deque[Microtask] = deque()

    def push(self, microtask: Microtask) -> None:
        self._items.append(microtask)

    def pop(self) -> Microtask:
        """Remove and return the oldest microtask."""
        if not self._items:
            raise IndexError("pop from empty microtask queue")
        return self._items.popleft()

    def snapshot(self) -> Tuple[Microtask, ...]:
        """Copy of the queue contents, head first."""
        return tuple(self._items)

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __iter__(self) -> Iterator[Microtask]:
        return iter(self._items)
