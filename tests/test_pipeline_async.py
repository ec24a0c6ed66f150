"""Tests for the asyncio facade."""

from __future__ import annotations

import asyncio
import io
import typing as t

import pytest

from spawnpipe import exc, pipeline_async
from spawnpipe.pipeline import Pipeline, run
from spawnpipe.pipeline_async import arun
from spawnpipe.test.retry import retry_until


@pytest.mark.asyncio
async def test_arun() -> None:
    """arun() resolves with the final exit code."""
    out = io.BytesIO()
    exit_code = await arun(
        [{"cmd": "printf", "args": ["x\ny\n"]}, {"cmd": "grep", "args": ["y"]}],
        stdout=out,
    )
    assert exit_code == 0
    assert out.getvalue() == b"y\n"


@pytest.mark.asyncio
async def test_arun_options() -> None:
    """Options are passed through to run()."""
    out = io.BytesIO()
    exit_code = await arun(
        [{"cmd": "sh", "args": ["-c", "echo $SPAWNPIPE_VAR; exit 2"]}],
        {"env": {"SPAWNPIPE_VAR": "async"}},
        stdout=out,
    )
    assert exit_code == 2
    assert out.getvalue() == b"async\n"


@pytest.mark.asyncio
async def test_arun_spawn_failure() -> None:
    """Start failures resolve, they don't raise."""
    err = io.BytesIO()
    exit_code = await arun(
        [{"cmd": "yes"}, {"cmd": "spawnpipe-does-not-exist"}],
        stdout=io.BytesIO(),
        stderr=err,
    )
    assert exit_code == 127
    assert b"Failed to execute" in err.getvalue()


@pytest.mark.asyncio
async def test_arun_invalid_commands() -> None:
    """Validation errors are raised when the coroutine runs."""
    with pytest.raises(exc.InvalidCommands):
        await arun([])


@pytest.mark.asyncio
async def test_arun_gather() -> None:
    """Pipelines run concurrently under asyncio.gather()."""
    results = await asyncio.wait_for(
        asyncio.gather(
            arun([{"cmd": "sleep", "args": ["0.5"]}], stdout=io.BytesIO()),
            arun([{"cmd": "sleep", "args": ["0.5"]}], stdout=io.BytesIO()),
            arun([{"cmd": "false"}], stdout=io.BytesIO()),
        ),
        timeout=5,
    )
    assert results == [0, 0, 1]


@pytest.mark.asyncio
async def test_arun_cancel_terminates_chain(monkeypatch: pytest.MonkeyPatch) -> None:
    """Cancelling arun(), here via wait_for(), terminates the whole chain."""
    pipelines: list[Pipeline] = []

    def recording_run(*args: t.Any, **kwargs: t.Any) -> Pipeline:
        pipeline = run(*args, **kwargs)
        pipelines.append(pipeline)
        return pipeline

    monkeypatch.setattr(pipeline_async, "run", recording_run)

    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(
            arun(
                [{"cmd": "sleep", "args": ["30"]}, {"cmd": "cat"}],
                stdout=io.BytesIO(),
            ),
            timeout=0.5,
        )

    (pipeline,) = pipelines
    assert retry_until(
        lambda: not any(handle.running for handle in pipeline.handles),
        5,
    )
    assert pipeline.wait(timeout=5) != 0
