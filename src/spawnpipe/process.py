"""Running-process handles.

spawnpipe.process
~~~~~~~~~~~~~~~~~

Wraps :class:`subprocess.Popen` in a small lifecycle state machine so that a
pipeline can react to process events without polling.

States
------
``SPAWNED``
    Handle created, the spawn primitive has not answered yet.
``RUNNING``
    The OS process exists.
``FAILED_TO_START``
    The spawn primitive raised (executable not found, permission denied,
    bad working directory). Terminal.
``EXITED``
    The OS process terminated and was reaped. Terminal.

Events
------
:attr:`ProcessEvent.ERROR` fires on entering ``FAILED_TO_START``.
:attr:`ProcessEvent.EXIT` fires once the handle is terminal, also after a
failed start, with a synthetic exit code. Both are dispatched from the
handle's watcher thread once :meth:`ProcessHandle.watch` is called.
"""

from __future__ import annotations

import enum
import logging
import subprocess
import threading
import typing as t

from . import exc
from .constants import EXIT_CODE_CANNOT_EXECUTE, EXIT_CODE_NOT_FOUND

if t.TYPE_CHECKING:
    from collections.abc import Callable

    from ._internal.types import FileArg
    from .options import ExecutionOptions
    from .validation import CommandSpec

    Observer = Callable[["ProcessHandle"], t.Any]

logger = logging.getLogger(__name__)


class ProcessState(enum.Enum):
    """Lifecycle state of a :class:`ProcessHandle`."""

    SPAWNED = "spawned"
    RUNNING = "running"
    FAILED_TO_START = "failed-to-start"
    EXITED = "exited"


class ProcessEvent(enum.Enum):
    """Events observers can subscribe to."""

    ERROR = "error"
    EXIT = "exit"


def start_failure_exit_code(error: BaseException) -> int:
    """Return the exit code reported for a command that failed to start.

    >>> start_failure_exit_code(FileNotFoundError(2, "No such file"))
    127
    >>> start_failure_exit_code(PermissionError(13, "Permission denied"))
    126
    """
    if isinstance(error, FileNotFoundError):
        return EXIT_CODE_NOT_FOUND
    return EXIT_CODE_CANNOT_EXECUTE


class ProcessHandle:
    """One command of a pipeline, running or failed to start.

    Parameters
    ----------
    name : str
        Command name used in diagnostics, usually the executable.
    argv : list[str]
        Argument vector, executable first.

    Examples
    --------
    >>> from spawnpipe.options import resolve_options
    >>> from spawnpipe.validation import CommandSpec
    >>> handle = ProcessHandle.spawn(
    ...     CommandSpec("true"), resolve_options(), stdout=None, stderr=None,
    ... )
    >>> handle.watch()
    >>> handle.wait(timeout=5)
    0
    >>> handle.state
    <ProcessState.EXITED: 'exited'>
    """

    def __init__(self, name: str, argv: list[str]) -> None:
        self.name = name
        self.argv = argv
        self.state = ProcessState.SPAWNED
        self.process: subprocess.Popen[bytes] | None = None
        self.error: BaseException | None = None
        self.returncode: int | None = None

        self._lock = threading.RLock()
        self._observers: dict[ProcessEvent, list[Observer]] = {
            event: [] for event in ProcessEvent
        }
        self._fired: set[ProcessEvent] = set()
        self._exited = threading.Event()
        self._watcher: threading.Thread | None = None

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}({self.name!r}, state={self.state.value}, "
            f"pid={self.pid})"
        )

    @classmethod
    def spawn(
        cls,
        spec: CommandSpec,
        options: ExecutionOptions,
        *,
        stdin: FileArg = subprocess.DEVNULL,
        stdout: FileArg = subprocess.PIPE,
        stderr: FileArg = subprocess.PIPE,
    ) -> ProcessHandle:
        """Start ``spec`` and return its handle.

        Never raises for start failures: the handle is returned in
        ``FAILED_TO_START`` state with :attr:`error` set instead.
        """
        handle = cls(spec.executable, spec.argv)
        try:
            handle.process = subprocess.Popen(
                handle.argv,
                stdin=stdin,
                stdout=stdout,
                stderr=stderr,
                **options.popen_kwargs(),
            )
        except (OSError, ValueError) as e:
            logger.warning(
                f"failed to start {subprocess.list2cmdline(handle.argv)}: {e}",
            )
            handle._transition(ProcessState.FAILED_TO_START, error=e)
            return handle

        logger.debug(
            f"spawned {subprocess.list2cmdline(handle.argv)} "
            f"(pid {handle.process.pid}, cwd {options.cwd})",
        )
        handle._transition(ProcessState.RUNNING)
        return handle

    @property
    def pid(self) -> int | None:
        """OS process id, ``None`` if the command failed to start."""
        return self.process.pid if self.process is not None else None

    @property
    def stdin(self) -> t.IO[bytes] | None:
        """Input byte sink, when spawned with ``stdin=PIPE``."""
        return self.process.stdin if self.process is not None else None

    @property
    def stdout(self) -> t.IO[bytes] | None:
        """Output byte source, when spawned with ``stdout=PIPE``."""
        return self.process.stdout if self.process is not None else None

    @property
    def stderr(self) -> t.IO[bytes] | None:
        """Error byte source, when spawned with ``stderr=PIPE``."""
        return self.process.stderr if self.process is not None else None

    @property
    def failed(self) -> bool:
        """Whether the command failed to start."""
        return self.state is ProcessState.FAILED_TO_START

    @property
    def running(self) -> bool:
        """Whether the OS process exists and was not reaped yet."""
        return self.state is ProcessState.RUNNING

    def on(self, event: ProcessEvent, observer: Observer) -> None:
        """Register ``observer`` for ``event``.

        An observer registered after its event already fired is called
        immediately, in the calling thread.
        """
        with self._lock:
            if event not in self._fired:
                self._observers[event].append(observer)
                return
        self._notify(observer, event)

    def watch(self) -> None:
        """Start dispatching lifecycle events from a watcher thread.

        Calling it more than once has no effect.
        """
        with self._lock:
            if self._watcher is not None:
                return
            self._watcher = threading.Thread(
                target=self._watch,
                name=f"spawnpipe-watch-{self.name}",
                daemon=True,
            )
        self._watcher.start()

    def terminate(self) -> None:
        """Request termination (SIGTERM).

        A no-op unless the process is running, so it is safe to call any
        number of times.
        """
        with self._lock:
            if self.state is not ProcessState.RUNNING or self.process is None:
                return
            process = self.process
        logger.debug(f"terminating {self.name} (pid {process.pid})")
        process.terminate()

    def wait(self, timeout: float | None = None) -> int:
        """Block until the handle is terminal and return its exit code.

        Raises
        ------
        :exc:`exc.WaitTimeout`
            If ``timeout`` seconds pass first.
        """
        if not self._exited.wait(timeout):
            raise exc.WaitTimeout
        assert self.returncode is not None
        return self.returncode

    def _transition(
        self,
        state: ProcessState,
        *,
        error: BaseException | None = None,
        returncode: int | None = None,
    ) -> None:
        with self._lock:
            logger.debug(f"{self.name}: {self.state.value} -> {state.value}")
            self.state = state
            if error is not None:
                self.error = error
                self.returncode = start_failure_exit_code(error)
            if returncode is not None:
                self.returncode = returncode

    def _watch(self) -> None:
        if self.process is None:
            self._fire(ProcessEvent.ERROR)
        else:
            returncode = self.process.wait()
            logger.debug(f"{self.name} (pid {self.process.pid}) exited {returncode}")
            self._transition(ProcessState.EXITED, returncode=returncode)
        self._exited.set()
        self._fire(ProcessEvent.EXIT)

    def _fire(self, event: ProcessEvent) -> None:
        with self._lock:
            self._fired.add(event)
            observers = self._observers[event]
            self._observers[event] = []
        for observer in observers:
            self._notify(observer, event)

    def _notify(self, observer: Observer, event: ProcessEvent) -> None:
        try:
            observer(self)
        except Exception:
            logger.exception(f"{event.value} observer failed for {self.name}")
