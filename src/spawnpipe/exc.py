"""Provide exceptions used by spawnpipe.

spawnpipe.exc
~~~~~~~~~~~~~

Notes
-----
Exceptions in this module inherit from :exc:`SpawnPipeException`.
Configuration errors are raised synchronously from
:func:`spawnpipe.pipeline.run`, before any process exists. Errors of running
processes are never raised, they are narrated on the error sink instead.
"""

from __future__ import annotations

import typing as t


class SpawnPipeException(Exception):
    """Base exception for all spawnpipe errors."""


class ConfigurationError(SpawnPipeException, TypeError):
    """Raised if a pipeline is requested with malformed input."""


class InvalidCommands(ConfigurationError):
    """Raised if a command list fails validation."""

    def __init__(self, reason: str, *args: object) -> None:
        self.reason = reason
        super().__init__(f"Invalid command list: {reason}")


class CallbackNotCallable(ConfigurationError):
    """Raised if the completion handler is not callable."""

    def __init__(self, callback: t.Any | None = None, *args: object) -> None:
        super().__init__(
            f"Completion callback must be callable, got {type(callback).__name__}",
        )


class SpawnFailure(SpawnPipeException):
    """A command that could not be started.

    Never raised by the executor, it is recorded on the failing
    :class:`~spawnpipe.process.ProcessHandle` and reported on the error sink.
    """

    def __init__(self, command: str, error: BaseException, *args: object) -> None:
        self.command = command
        self.error = error
        super().__init__(f"Failed to execute `{command}` command. {error}")


class TaskError(SpawnPipeException):
    """Base exception for task runner configuration errors."""


class TaskConfigNotFound(TaskError):
    """Raised if the task runner configuration file does not exist."""

    def __init__(self, path: str, *args: object) -> None:
        super().__init__(f"Config file not found: {path}")


class UnknownTarget(TaskError):
    """Raised if a requested target is not present in the configuration."""

    def __init__(self, target: str, *args: object) -> None:
        super().__init__(f"Unknown target: {target}")


class WaitTimeout(SpawnPipeException):
    """Raised when a function times out waiting for a condition."""
