"""spawnpipe pytest plugin."""

from __future__ import annotations

import io
import logging
import threading
import typing as t

import pytest

from spawnpipe import exc
from spawnpipe.pipeline import Pipeline, run
from spawnpipe.test.constants import RETRY_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class CompletionRecorder:
    """Completion callback that records every exit code it receives.

    >>> recorder = CompletionRecorder()
    >>> recorder(3)
    >>> recorder.calls
    [3]
    >>> recorder.wait(timeout=1)
    3
    """

    def __init__(self) -> None:
        self.calls: list[int] = []
        self.threads: list[threading.Thread] = []
        self._called = threading.Event()

    def __call__(self, exit_code: int) -> None:
        self.calls.append(exit_code)
        self.threads.append(threading.current_thread())
        self._called.set()

    def wait(self, timeout: float | None = RETRY_TIMEOUT_SECONDS) -> int:
        """Block until called, return the first exit code received."""
        if not self._called.wait(timeout):
            raise exc.WaitTimeout
        return self.calls[0]


@pytest.fixture
def output_sink() -> io.BytesIO:
    """Binary output sink for the last command of a pipeline."""
    return io.BytesIO()


@pytest.fixture
def error_sink() -> io.BytesIO:
    """Binary error sink for diagnostics and forwarded error streams."""
    return io.BytesIO()


@pytest.fixture
def completion() -> CompletionRecorder:
    """Return a :class:`CompletionRecorder`."""
    return CompletionRecorder()


@pytest.fixture
def run_pipeline(
    output_sink: io.BytesIO,
    error_sink: io.BytesIO,
    completion: CompletionRecorder,
) -> t.Iterator[t.Callable[..., Pipeline]]:
    """Return a factory running pipelines against the test sinks.

    Any command still running at teardown is killed.

    >>> def test_example(run_pipeline, output_sink):
    ...     run_pipeline([{"cmd": "echo", "args": ["hi"]}]).wait(timeout=5)
    ...     assert output_sink.getvalue() == b"hi\\n"
    """
    pipelines: list[Pipeline] = []

    def fn(
        commands: t.Any,
        options: t.Any = None,
        on_complete: t.Callable[[int], t.Any] | None = None,
        **kwargs: t.Any,
    ) -> Pipeline:
        kwargs.setdefault("stdout", output_sink)
        kwargs.setdefault("stderr", error_sink)
        pipeline = run(
            commands,
            options,
            on_complete if on_complete is not None else completion,
            **kwargs,
        )
        pipelines.append(pipeline)
        return pipeline

    yield fn

    for pipeline in pipelines:
        for handle in pipeline.handles:
            if handle.running and handle.process is not None:
                logger.debug(f"killing leftover {handle!r}")
                handle.process.kill()
