"""Async facade for :mod:`spawnpipe.pipeline`.

spawnpipe.pipeline_async
~~~~~~~~~~~~~~~~~~~~~~~~

Await a pipeline's exit code from a running event loop:

>>> import asyncio
>>> import io
>>> out = io.BytesIO()
>>> asyncio.run(arun([{"cmd": "echo", "args": ["hi"]}], stdout=out))
0
>>> out.getvalue()
b'hi\\n'

Pipelines run concurrently with :func:`asyncio.gather`:

>>> async def both():
...     return await asyncio.gather(
...         arun([{"cmd": "true"}], stdout=io.BytesIO()),
...         arun([{"cmd": "false"}], stdout=io.BytesIO()),
...     )
>>> asyncio.run(both())
[0, 1]
"""

from __future__ import annotations

import asyncio
import logging
import typing as t

from .pipeline import run

if t.TYPE_CHECKING:
    from .pipeline import Pipeline

logger = logging.getLogger(__name__)


async def arun(
    commands: t.Any,
    options: t.Any = None,
    **kwargs: t.Any,
) -> int:
    """Run ``commands`` piped together and return the final exit code.

    Validation errors are raised before anything is spawned, exactly like
    :func:`spawnpipe.pipeline.run`. Keyword arguments are passed through to
    it (``stdout``, ``stderr``, ``stdin``).

    Cancelling the awaiting task, for example through
    :func:`asyncio.wait_for`, terminates every command still running.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[int] = loop.create_future()

    def resolve(exit_code: int) -> None:
        if not future.done():
            future.set_result(exit_code)

    def on_complete(exit_code: int) -> None:
        try:
            loop.call_soon_threadsafe(resolve, exit_code)
        except RuntimeError:
            logger.debug(f"event loop closed before {pipeline!r} completed")

    pipeline: Pipeline = run(commands, options, on_complete, **kwargs)
    logger.debug(f"awaiting {pipeline!r}")
    try:
        return await future
    except asyncio.CancelledError:
        logger.debug(f"cancelled, terminating {pipeline!r}")
        pipeline.terminate()
        raise
