"""Command list validation.

spawnpipe.validation
~~~~~~~~~~~~~~~~~~~~

A command list is checked once, as a whole, before anything is spawned.

Examples
--------
>>> validate_commands([{"cmd": "ls", "args": ["-la", "/"]}, {"cmd": "grep"}])

>>> validate_commands("ls -la")
'Commands must be a sequence (list or tuple), got str'

>>> validate_commands([{"args": ["-la"]}])
'Command #0 must contain an `executable` (or `cmd`) string'

>>> to_command_specs([{"cmd": "echo", "args": ["hi"]}])
[CommandSpec(executable='echo', arguments=('hi',))]
"""

from __future__ import annotations

import dataclasses
import logging
import typing as t
from collections.abc import Mapping, Sequence

from . import exc

logger = logging.getLogger(__name__)

#: Record keys holding the executable, in lookup order
EXECUTABLE_KEYS = ("executable", "cmd")

#: Record keys holding the argument list, in lookup order
ARGUMENT_KEYS = ("arguments", "args")

_MISSING = object()


@dataclasses.dataclass(frozen=True)
class CommandSpec:
    """A literal executable name plus a pre-tokenized argument list.

    Examples
    --------
    >>> CommandSpec("grep", ["-v", "tmp"])
    CommandSpec(executable='grep', arguments=('-v', 'tmp'))

    >>> CommandSpec("yes").argv
    ['yes']
    """

    executable: str
    arguments: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "arguments", tuple(self.arguments))

    @property
    def argv(self) -> list[str]:
        """Return the argument vector handed to the spawn primitive."""
        return [self.executable, *self.arguments]


def _is_sequence(value: t.Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def _lookup(record: Mapping[str, t.Any], keys: tuple[str, ...]) -> t.Any:
    for key in keys:
        if key in record:
            return record[key]
    return _MISSING


def _fields(item: t.Any) -> tuple[t.Any, t.Any]:
    if isinstance(item, CommandSpec):
        return item.executable, item.arguments
    return _lookup(item, EXECUTABLE_KEYS), _lookup(item, ARGUMENT_KEYS)


def validate_commands(commands: t.Any) -> str | None:
    """Check a command list before it is handed to the executor.

    Rules are checked in order and the first failure wins.

    Parameters
    ----------
    commands : Any
        Proposed command list. Each element is a :class:`CommandSpec` or a
        mapping with ``executable`` (alias ``cmd``) and optional ``arguments``
        (alias ``args``) keys.

    Returns
    -------
    str or None
        Description of the first problem found, ``None`` if the list is valid.
    """
    if not _is_sequence(commands):
        return (
            "Commands must be a sequence (list or tuple), "
            f"got {type(commands).__name__}"
        )
    if len(commands) == 0:
        return "Commands must not be an empty sequence"

    for index, item in enumerate(commands):
        if not isinstance(item, (Mapping, CommandSpec)):
            return (
                f"Command #{index} must be a record (mapping or CommandSpec), "
                f"got {type(item).__name__}"
            )

        executable, arguments = _fields(item)
        if not isinstance(executable, str) or not executable:
            return (
                f"Command #{index} must contain an `executable` (or `cmd`) string"
            )

        if arguments is _MISSING:
            continue
        if not _is_sequence(arguments):
            return (
                f"Command #{index} `arguments` (or `args`) must be a sequence, "
                f"got {type(arguments).__name__}"
            )
        for position, argument in enumerate(arguments):
            if not isinstance(argument, str):
                return (
                    f"Command #{index} argument #{position} must be a string, "
                    f"got {type(argument).__name__}"
                )

    return None


def to_command_specs(commands: t.Any) -> list[CommandSpec]:
    """Validate ``commands`` and normalize every record to :class:`CommandSpec`.

    Raises
    ------
    :exc:`exc.InvalidCommands`
        If :func:`validate_commands` reports a problem.
    """
    reason = validate_commands(commands)
    if reason is not None:
        logger.debug(f"rejected command list: {reason}")
        raise exc.InvalidCommands(reason)

    specs = []
    for item in commands:
        if isinstance(item, CommandSpec):
            specs.append(item)
            continue
        executable, arguments = _fields(item)
        specs.append(
            CommandSpec(executable, () if arguments is _MISSING else arguments),
        )
    return specs
