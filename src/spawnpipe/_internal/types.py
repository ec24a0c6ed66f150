"""Internal type annotations.

Notes
-----
:class:`StrPath` is based on `typeshed's`_.

.. _typeshed's: https://github.com/python/typeshed/blob/5ff32f3/stdlib/_typeshed/__init__.pyi#L176-L179
"""  # E501

from __future__ import annotations

import typing as t

from typing_extensions import TypeAlias

if t.TYPE_CHECKING:
    from os import PathLike

StrPath: TypeAlias = "str | PathLike[str]"

#: Anything :class:`subprocess.Popen` accepts for a standard stream
FileArg: TypeAlias = "int | t.IO[t.Any] | None"

#: Completion callback, receives the final command's exit code
CompletionCallback: TypeAlias = "t.Callable[[int], t.Any]"
