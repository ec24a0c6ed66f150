"""Spawn commands and pipe them together.

spawnpipe.pipeline
~~~~~~~~~~~~~~~~~~

Equivalent of ``cmd1 | cmd2 | ... | cmdN`` without a shell. Every command's
output is connected to the next command's input through an OS pipe, so
never-ending producers can be piped too (``yes | tr '\\n' ','``). Error
streams of all commands go to the error sink, tagged with the command name.
The last command's output goes to the output sink.

Examples
--------
>>> import io
>>> out = io.BytesIO()
>>> codes = []
>>> pipeline = run(
...     [{"cmd": "printf", "args": ["a\\nb\\nc\\n"]}, {"cmd": "grep", "args": ["b"]}],
...     codes.append,
...     stdout=out,
... )
>>> pipeline.wait(timeout=10)
0
>>> out.getvalue()
b'b\\n'
>>> codes
[0]
"""

from __future__ import annotations

import codecs
import io
import logging
import subprocess
import sys
import threading
import typing as t

from . import exc
from .constants import CHUNK_SIZE, DRAIN_TIMEOUT_SECONDS, SPAWN_FAILURE_PREFIXES
from .options import resolve_options
from .otel import end_pipeline_span, record_spawn_failure, start_pipeline_span
from .process import ProcessEvent, ProcessHandle
from .validation import to_command_specs

if t.TYPE_CHECKING:
    from ._internal.types import CompletionCallback, FileArg
    from .options import ExecutionOptions
    from .validation import CommandSpec

logger = logging.getLogger(__name__)


def get_fileno(stream: t.Any) -> int | None:
    """Return the OS file descriptor behind ``stream``, if it has a usable one."""
    try:
        fd = stream.fileno()
    except (AttributeError, OSError, ValueError):
        return None
    return fd if isinstance(fd, int) and fd >= 0 else None


def _emit(
    sink: t.Any,
    data: bytes,
    decoder: codecs.IncrementalDecoder | None = None,
    *,
    final: bool = False,
) -> None:
    """Write ``data`` to a text or binary sink and flush it.

    Text sinks get UTF-8 decoded text, ``decoder`` keeps multi-byte
    sequences split across chunks intact.
    """
    if isinstance(sink, io.TextIOBase):
        if decoder is not None:
            text = decoder.decode(data, final=final)
        else:
            text = data.decode("utf-8", errors="backslashreplace")
        if not text:
            return
        sink.write(text)
    else:
        if not data:
            return
        sink.write(data)
    sink.flush()


class Pipeline:
    """One invocation of the executor: a chain of running commands.

    All state, including the first handle that is terminated on failure, is
    scoped to the instance, so pipelines may run concurrently.

    Parameters
    ----------
    commands : list[CommandSpec]
        Validated, non-empty command list.
    options : ExecutionOptions
        Working directory and environment for every command.
    on_complete : callable
        Called exactly once with the final command's exit code.
    stdout, stderr : file object, optional
        Output and error sinks, default :data:`sys.stdout` and
        :data:`sys.stderr` at construction time.
    stdin : file argument, optional
        Input of the first command, anything :class:`subprocess.Popen`
        accepts. Default :data:`subprocess.DEVNULL`.
    """

    def __init__(
        self,
        commands: list[CommandSpec],
        options: ExecutionOptions,
        on_complete: CompletionCallback,
        *,
        stdout: t.Any = None,
        stderr: t.Any = None,
        stdin: FileArg = subprocess.DEVNULL,
    ) -> None:
        self.commands = commands
        self.options = options
        self.on_complete = on_complete
        self.stdout = stdout if stdout is not None else sys.stdout
        self.stderr = stderr if stderr is not None else sys.stderr
        self.stdin = stdin

        self.handles: list[ProcessHandle] = []
        self.first: ProcessHandle | None = None
        self.exit_code: int | None = None

        self._readers: dict[int, list[threading.Thread]] = {}
        self._sink_lock = threading.Lock()
        self._complete_lock = threading.Lock()
        self._completed = False
        self._done = threading.Event()
        self._span: t.Any = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.chain!r}, exit_code={self.exit_code})"

    @property
    def chain(self) -> str:
        """The chain as a shell would spell it, for diagnostics."""
        return " | ".join(
            subprocess.list2cmdline(spec.argv) for spec in self.commands
        )

    @property
    def done(self) -> bool:
        """Whether the completion callback has run."""
        return self._done.is_set()

    def start(self) -> Pipeline:
        """Spawn and wire the whole chain, return without waiting."""
        logger.debug(f"starting {self!r} in {self.options.cwd}")
        self._span = start_pipeline_span(self.chain, len(self.commands))
        last_index = len(self.commands) - 1
        output_fd = get_fileno(self.stdout)

        previous: ProcessHandle | None = None
        current: ProcessHandle | None = None
        for index, spec in enumerate(self.commands):
            if index == last_index:
                if output_fd is not None:
                    self.stdout.flush()
                target: FileArg = (
                    output_fd if output_fd is not None else subprocess.PIPE
                )
            else:
                target = subprocess.PIPE

            if previous is None:
                source = self.stdin
            elif previous.stdout is not None:
                source = previous.stdout
            else:
                source = subprocess.DEVNULL

            current = ProcessHandle.spawn(
                spec,
                self.options,
                stdin=source,
                stdout=target,
                stderr=subprocess.PIPE,
            )
            self.handles.append(current)

            if previous is None:
                self.first = current
            else:
                # the child holds its own copy of the read end now
                if previous.stdout is not None:
                    previous.stdout.close()
                self._wire(previous)
            previous = current

        assert current is not None
        self._wire(current)
        if current.stdout is not None:
            self._start_reader(current, self._pump_output, "output")
        current.on(ProcessEvent.EXIT, self._on_final_exit)

        for handle in self.handles:
            handle.watch()
        return self

    def wait(self, timeout: float | None = None) -> int:
        """Block until the completion callback has run, return the exit code.

        Must not be called from inside the completion callback.

        Raises
        ------
        :exc:`exc.WaitTimeout`
            If ``timeout`` seconds pass first.
        """
        if not self._done.wait(timeout):
            raise exc.WaitTimeout
        assert self.exit_code is not None
        return self.exit_code

    def terminate(self) -> None:
        """Request termination of every command still running.

        The pipeline then completes as usual, with the last command's exit
        code, typically ``-SIGTERM``.
        """
        for handle in self.handles:
            handle.terminate()

    def _wire(self, handle: ProcessHandle) -> None:
        if handle.stderr is not None:
            self._start_reader(handle, self._forward_errors, "errors")
        handle.on(ProcessEvent.ERROR, self._on_spawn_failure)

    def _start_reader(
        self,
        handle: ProcessHandle,
        target: t.Callable[[ProcessHandle], None],
        kind: str,
    ) -> None:
        thread = threading.Thread(
            target=target,
            args=(handle,),
            name=f"spawnpipe-{kind}-{handle.name}",
            daemon=True,
        )
        self._readers.setdefault(id(handle), []).append(thread)
        thread.start()

    def _report(self, message: str) -> None:
        """Write one diagnostic line to the error sink."""
        with self._sink_lock:
            try:
                _emit(self.stderr, f"{message}\n".encode())
            except (OSError, ValueError):
                logger.warning(f"could not report to error sink: {message}")

    def _forward_errors(self, handle: ProcessHandle) -> None:
        stream = handle.stderr
        assert stream is not None
        tag = f"{handle.name}: ".encode()
        with stream:
            for line in iter(stream.readline, b""):
                if line.startswith(SPAWN_FAILURE_PREFIXES):
                    continue
                if not line.endswith(b"\n"):
                    line += b"\n"
                with self._sink_lock:
                    try:
                        _emit(self.stderr, tag + line)
                    except (OSError, ValueError) as e:
                        logger.warning(f"dropped error output of {handle.name}: {e}")

    def _pump_output(self, handle: ProcessHandle) -> None:
        stream = handle.stdout
        assert stream is not None
        decoder = codecs.getincrementaldecoder("utf-8")(errors="backslashreplace")
        with stream:
            try:
                for chunk in iter(lambda: stream.read1(CHUNK_SIZE), b""):
                    _emit(self.stdout, chunk, decoder)
                _emit(self.stdout, b"", decoder, final=True)
            except (OSError, ValueError) as e:
                self._report(f"Output error for `{handle.name}` command. {e}")

    def _on_spawn_failure(self, handle: ProcessHandle) -> None:
        assert handle.error is not None
        record_spawn_failure(self._span, handle)
        self._report(str(exc.SpawnFailure(handle.name, handle.error)))
        # `yes | missing` would leave `yes` running forever otherwise
        self._terminate_first()

    def _terminate_first(self) -> None:
        if self.first is not None:
            self.first.terminate()

    def _on_final_exit(self, handle: ProcessHandle) -> None:
        # `yes | grep n | grep -A` ends with `grep -A` but `yes` keeps running
        self._terminate_first()
        for thread in self._readers.get(id(handle), []):
            thread.join(DRAIN_TIMEOUT_SECONDS)
        assert handle.returncode is not None
        self._complete(handle.returncode)

    def _complete(self, exit_code: int) -> None:
        with self._complete_lock:
            if self._completed:
                return
            self._completed = True
            self.exit_code = exit_code
        logger.debug(f"{self!r} completed")
        end_pipeline_span(self._span, exit_code)
        try:
            self.on_complete(exit_code)
        except Exception:
            logger.exception(f"completion callback failed for {self!r}")
        finally:
            self._done.set()


def run(
    commands: t.Any,
    options: t.Any = None,
    on_complete: CompletionCallback | None = None,
    *,
    stdout: t.Any = None,
    stderr: t.Any = None,
    stdin: FileArg = subprocess.DEVNULL,
) -> Pipeline:
    """Spawn ``commands`` piped together and return immediately.

    Parameters
    ----------
    commands : sequence
        Command records, see :func:`spawnpipe.validation.validate_commands`.
    options : mapping, optional
        ``cwd`` / ``env`` overrides, see
        :func:`spawnpipe.options.resolve_options`. May be omitted, in which
        case the completion callback can take its position.
    on_complete : callable
        Called exactly once, from a background thread, with the final
        command's exit code (negative signal number if it was killed).
    stdout, stderr, stdin :
        See :class:`Pipeline`.

    Returns
    -------
    :class:`Pipeline`

    Raises
    ------
    :exc:`exc.CallbackNotCallable`
        If no callable completion handler was given.
    :exc:`exc.InvalidCommands`
        If ``commands`` is malformed. Nothing is spawned in that case.

    Examples
    --------
    >>> run([{"cmd": "echo"}], {"cwd": "/"}, "not callable")
    Traceback (most recent call last):
    ...
    spawnpipe.exc.CallbackNotCallable: Completion callback must be callable, got str

    >>> run([], lambda code: None)
    Traceback (most recent call last):
    ...
    spawnpipe.exc.InvalidCommands: Invalid command list: Commands must not be an empty sequence
    """
    if on_complete is None and callable(options):
        on_complete, options = options, None
    if not callable(on_complete):
        raise exc.CallbackNotCallable(on_complete)

    specs = to_command_specs(commands)
    resolved = resolve_options(options)

    pipeline = Pipeline(
        specs,
        resolved,
        on_complete,
        stdout=stdout,
        stderr=stderr,
        stdin=stdin,
    )
    return pipeline.start()
