"""spawnpipe, run external commands piped together without a shell."""

from .__about__ import (
    __author__,
    __copyright__,
    __description__,
    __email__,
    __license__,
    __package_name__,
    __title__,
    __version__,
)
from .options import ExecutionOptions, resolve_options
from .pipeline import Pipeline, run
from .pipeline_async import arun
from .process import ProcessEvent, ProcessHandle, ProcessState
from .validation import CommandSpec, to_command_specs, validate_commands

__all__ = (
    "CommandSpec",
    "ExecutionOptions",
    "Pipeline",
    "ProcessEvent",
    "ProcessHandle",
    "ProcessState",
    "__author__",
    "__copyright__",
    "__description__",
    "__email__",
    "__license__",
    "__package_name__",
    "__title__",
    "__version__",
    "arun",
    "resolve_options",
    "run",
    "to_command_specs",
    "validate_commands",
)
