"""
Data Layer for the measurement library

This module provides the command queue the rest of the library listens to.
A page (or any host) pushes commands such as ``config``, ``set`` and
``event``; processors registered for a command name receive its arguments.

The data layer is loaded independently of the snippet that pushes commands,
so commands frequently arrive before anything can handle them. Such
commands are buffered and replayed in their original order as soon as a
processor for their name is registered. The data layer also carries a keyed
page model that processors read and write through a ModelInterface.
"""

import asyncio
import heapq
import inspect
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Deque, Dict, Iterable, Optional, Sequence, Set, Tuple

from loguru import logger


# Bounds for a long-lived data layer
DEFAULT_HISTORY_SIZE = 1000
DEFAULT_MAX_PENDING = 1000


@dataclass(frozen=True)
class Command:
    """
    A single command pushed to the data layer.

    Attributes:
        name (str): Command name, e.g. 'config', 'set' or 'event'
        args (Tuple[Any, ...]): Positional arguments passed to the processor
        sequence (int): Arrival position assigned by the data layer, used to
            keep replayed commands in order. Not part of equality.

    Examples:
        >>> command = Command("event", ("page_view", {"page_title": "Home"}))
        >>> command.name
        'event'
    """

    name: str
    args: Tuple[Any, ...] = ()
    sequence: int = field(default=0, compare=False)

    def __post_init__(self):
        """
        Validate the command name and normalise args to a tuple.

        Raises:
            TypeError: If name is not a string
            ValueError: If name is empty
        """
        if not isinstance(self.name, str):
            raise TypeError(
                f"command name must be str, got {type(self.name).__name__}"
            )
        if not self.name:
            raise ValueError("command name must be non-empty string")

        if not isinstance(self.args, tuple):
            object.__setattr__(self, "args", tuple(self.args))

    def __str__(self) -> str:
        """Return human-readable command description."""
        return f"Command({self.name}, {len(self.args)} arg(s))"


@dataclass(frozen=True)
class ModelInterface:
    """
    Read/write view of a data layer's page model handed to processors.

    Attributes:
        get (Callable[[str], Any]): Read a value, dot notation for nesting
        set (Callable[[str, Any], None]): Write a value, dot notation for nesting
    """

    get: Callable[[str], Any]
    set: Callable[[str, Any], None]


class DataLayer:
    """
    FIFO command queue with buffering, replay and a keyed page model.

    Commands are handled strictly in arrival order. Processing one command
    (including any synchronous work its processor does) completes before
    the next command is handled.

    Features:
        - One processor per command name; registering again replaces it
        - Commands without a processor are buffered and replayed in order
        - Processors registered while a command is being handled are
          replayed once that handler returns
        - Processor exceptions are logged and never propagate to the caller
        - History and the pending buffer are bounded for long-lived hosts
        - Awaitables returned by processors are scheduled on the running
          event loop, or run to completion when no loop is running

    Examples:
        >>> data_layer = DataLayer()
        >>> data_layer.push("greet", "world")       # buffered, no processor yet
        >>> data_layer.register_processor("greet", lambda who: print(f"hello {who}"))
        hello world
        >>> data_layer.set("user.name", "ada")
        >>> data_layer.get("user")
        {'name': 'ada'}
    """

    def __init__(
        self,
        commands: Optional[Iterable[Sequence[Any]]] = None,
        model: Optional[Dict[str, Any]] = None,
        history_size: int = DEFAULT_HISTORY_SIZE,
        max_pending: int = DEFAULT_MAX_PENDING
    ):
        """
        Initialize the data layer.

        Args:
            commands (Iterable[Sequence], optional): Commands pushed before the
                data layer existed, each a sequence of (name, *args). They are
                buffered in order until processors are registered.
            model (Dict[str, Any], optional): Initial page model contents
            history_size (int): Number of recent commands kept in history.
                Older entries are discarded automatically.
            max_pending (int): Maximum buffered commands without a processor.
                When full, the oldest buffered command is dropped with a warning.

        Raises:
            ValueError: If history_size or max_pending is not positive
        """
        if history_size <= 0 or max_pending <= 0:
            raise ValueError("history_size and max_pending must be positive")

        self._processors: Dict[str, Callable[..., Any]] = {}
        self._queue: Deque[Command] = deque()
        self._unhandled: Deque[Command] = deque()
        self._history: Deque[Command] = deque(maxlen=history_size)
        self._max_pending = max_pending
        self._next_sequence: int = 0
        self._model: Dict[str, Any] = dict(model or {})
        self._draining: bool = False
        self._replay_requested: bool = False
        self._tasks: Set[asyncio.Task] = set()

        for command in commands or ():
            self.push(*command)

    def push(self, name: str, *args: Any) -> None:
        """
        Append a command and process the queue.

        Args:
            name (str): Command name
            *args: Arguments passed to the command's processor

        Raises:
            TypeError: If name is not a string
            ValueError: If name is empty
        """
        command = Command(name, args, self._next_sequence)
        self._next_sequence += 1
        self._history.append(command)
        self._queue.append(command)
        self._drain()

    def register_processor(self, name: str, processor: Callable[..., Any]) -> None:
        """
        Register the processor for a command name, replacing any previous one.

        Buffered commands with this name are replayed immediately (or after
        the current command when called from inside a processor).

        Args:
            name (str): Command name
            processor (Callable): Called with the command's arguments
        """
        self.register_processors({name: processor})

    def register_processors(self, processors: Dict[str, Callable[..., Any]]) -> None:
        """
        Register several processors at once.

        Buffered commands for any of the names are replayed together in
        their original arrival order, so commands of different names keep
        their relative order.

        Args:
            processors (Dict[str, Callable]): Mapping of command name to processor

        Raises:
            TypeError: If a processor is not callable
        """
        for name, processor in processors.items():
            if not callable(processor):
                raise TypeError(
                    f"processor for {name!r} must be callable, got {type(processor).__name__}"
                )

        for name, processor in processors.items():
            if name in self._processors:
                logger.debug(f"Replacing processor for command {name!r}")
            else:
                logger.debug(f"Registering processor for command {name!r}")
            self._processors[name] = processor

        self._replay_requested = True
        self._drain()

    def has_processor(self, name: str) -> bool:
        """Return True if a processor is registered for the command name."""
        return name in self._processors

    def pending(self) -> Tuple[Command, ...]:
        """Return buffered commands that have no processor yet, oldest first."""
        return tuple(self._unhandled)

    @property
    def history(self) -> Tuple[Command, ...]:
        """The most recent commands pushed, in arrival order."""
        return tuple(self._history)

    def get(self, key: str) -> Any:
        """
        Read a value from the page model.

        Dot notation reads nested mappings: 'employees.jim' is the key 'jim'
        inside the 'employees' mapping.

        Args:
            key (str): Model key

        Returns:
            The stored value, or None if any part of the path is missing
        """
        value: Any = self._model
        for part in key.split("."):
            if not isinstance(value, Mapping) or part not in value:
                return None
            value = value[part]
        return value

    def set(self, key: str, value: Any) -> None:
        """
        Write a value to the page model.

        Dot notation writes into nested mappings, creating them as needed.

        Args:
            key (str): Model key
            value: Value to store
        """
        parts = key.split(".")
        target = self._model
        for part in parts[:-1]:
            child = target.get(part)
            if not isinstance(child, dict):
                child = {}
                target[part] = child
            target = child
        target[parts[-1]] = value

    @property
    def model(self) -> ModelInterface:
        """Model interface bound to this data layer."""
        return ModelInterface(get=self.get, set=self.set)

    async def flush(self) -> None:
        """
        Wait for asynchronous work started by processors to finish.

        Examples:
            >>> data_layer.push("set", "client_id", "abc")   # async storage
            >>> await data_layer.flush()
        """
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def task_count(self) -> int:
        """Number of asynchronous processor results still running."""
        return len(self._tasks)

    def _drain(self) -> None:
        """
        Process queued commands until the queue is empty.

        Re-entrant calls (a processor pushing or registering while handling a
        command) return immediately; the outer loop picks up their work.
        """
        if self._draining:
            return

        self._draining = True
        try:
            while True:
                if self._replay_requested:
                    self._replay_requested = False
                    self._requeue_unhandled()

                if not self._queue:
                    break

                self._dispatch(self._queue.popleft())
        finally:
            self._draining = False

    def _requeue_unhandled(self) -> None:
        """Merge buffered commands that now have a processor back into the queue."""
        ready = [c for c in self._unhandled if c.name in self._processors]
        if not ready:
            return

        self._unhandled = deque(c for c in self._unhandled if c.name not in self._processors)
        logger.debug(f"Replaying {len(ready)} buffered command(s)")

        # Queue and buffer are each in arrival order; merging keeps it global
        self._queue = deque(heapq.merge(ready, self._queue, key=lambda c: c.sequence))

    def _dispatch(self, command: Command) -> None:
        """
        Hand a command to its processor.

        Args:
            command (Command): The command to process
        """
        processor = self._processors.get(command.name)
        if processor is None:
            logger.debug(f"No processor for command {command.name!r}, buffering")
            if len(self._unhandled) >= self._max_pending:
                dropped = self._unhandled.popleft()
                logger.warning(f"Pending buffer full, dropping oldest command {dropped}")
            self._unhandled.append(command)
            return

        try:
            result = processor(*command.args)
        except Exception as e:
            logger.error(f"Error in processor for command {command.name!r}: {e}")
            return

        if inspect.isawaitable(result):
            self._schedule(command, result)

    def _schedule(self, command: Command, awaitable: Awaitable[Any]) -> None:
        """
        Run an awaitable returned by a processor.

        With a running event loop the awaitable becomes a task, so its
        completion is not ordered with later commands. Without one it is run
        to completion before the next command.

        Args:
            command (Command): The command whose processor returned the awaitable
            awaitable (Awaitable): The processor's result
        """
        async def _run() -> Any:
            return await awaitable

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is None:
            try:
                asyncio.run(_run())
            except Exception as e:
                logger.error(f"Error in async processor for command {command.name!r}: {e}")
            return

        task = loop.create_task(_run(), name=f"measurement-{command.name}")
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._on_task_done(command, t))

    def _on_task_done(self, command: Command, task: asyncio.Task) -> None:
        """Forget a finished task and log its failure, if any."""
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(f"Async processor for command {command.name!r} was cancelled")
            return

        error = task.exception()
        if error is not None:
            logger.error(f"Error in async processor for command {command.name!r}: {error}")
