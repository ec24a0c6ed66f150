"""Tests for spawnpipe pytest plugin."""

from __future__ import annotations

import importlib.metadata
import textwrap
import typing as t

from spawnpipe.pytest_plugin import CompletionRecorder

if t.TYPE_CHECKING:
    import io

    import pytest

    from spawnpipe.pipeline import Pipeline


def test_plugin(
    pytester: pytest.Pytester,
) -> None:
    """Fixtures are available to any suite through the pytest11 entry point."""
    pytester.makefile(
        ".ini",
        pytest=textwrap.dedent(
            """
[pytest]
addopts=-vv
        """.strip(),
        ),
    )
    tests_path = pytester.path / "tests"
    files = {
        "example.py": textwrap.dedent(
            """
def test_pipe_through_fixtures(run_pipeline, output_sink, completion) -> None:
    pipeline = run_pipeline(
        [{"cmd": "echo", "args": ["plugged"]}, {"cmd": "tr", "args": ["a-z", "A-Z"]}],
    )
    assert pipeline.wait(timeout=10) == 0
    assert output_sink.getvalue() == b"PLUGGED\\n"
    assert completion.calls == [0]
        """,
        ),
    }
    first_test_key = next(iter(files.keys()))
    first_test_filename = str(tests_path / first_test_key)

    tests_path.mkdir()
    for file_name, text in files.items():
        test_file = tests_path / file_name
        test_file.write_text(
            text,
            encoding="utf-8",
        )

    result = pytester.runpytest(str(first_test_filename))
    result.assert_outcomes(passed=1)


def test_plugin_entry_point() -> None:
    """The plugin is registered for pytest auto-discovery."""
    entry_points = importlib.metadata.distribution("spawnpipe").entry_points
    assert any(
        entry_point.group == "pytest11"
        and entry_point.value == "spawnpipe.pytest_plugin"
        for entry_point in entry_points
    )


def test_completion_recorder() -> None:
    """CompletionRecorder keeps every call and the calling thread."""
    recorder = CompletionRecorder()
    recorder(0)
    recorder(1)
    assert recorder.calls == [0, 1]
    assert len(recorder.threads) == 2
    assert recorder.wait(timeout=0) == 0


def test_run_pipeline_defaults(
    run_pipeline: t.Callable[..., Pipeline],
    output_sink: io.BytesIO,
    error_sink: io.BytesIO,
    completion: CompletionRecorder,
) -> None:
    """run_pipeline() wires the sinks and the recorder by default."""
    pipeline = run_pipeline([{"cmd": "sh", "args": ["-c", "echo o; echo e >&2"]}])
    assert pipeline.stdout is output_sink
    assert pipeline.stderr is error_sink
    assert pipeline.on_complete is completion
    assert completion.wait() == 0
    assert output_sink.getvalue() == b"o\n"
    assert error_sink.getvalue() == b"sh: e\n"
