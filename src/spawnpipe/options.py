"""Execution options for spawned commands.

spawnpipe.options
~~~~~~~~~~~~~~~~~

Resolution never fails: overrides of the wrong shape are treated as absent.

Examples
--------
>>> opts = resolve_options({"cwd": "/tmp", "env": {"LANG": "C"}})
>>> opts.cwd, opts.env
('/tmp', {'LANG': 'C'})

>>> import os
>>> resolve_options("not a mapping").cwd == os.getcwd()
True
"""

from __future__ import annotations

import dataclasses
import os
import typing as t
from collections.abc import Mapping

#: Option keys holding the working directory, in lookup order
CWD_KEYS = ("cwd", "working_directory")

#: Option keys holding the environment, in lookup order
ENV_KEYS = ("env", "environment")


@dataclasses.dataclass(frozen=True)
class ExecutionOptions:
    """Working directory and environment shared by every command of a chain."""

    cwd: str
    env: dict[str, str] = dataclasses.field(repr=False)

    def popen_kwargs(self) -> dict[str, t.Any]:
        """Return keyword arguments for :class:`subprocess.Popen`."""
        return {"cwd": self.cwd, "env": dict(self.env)}


def _first(raw: Mapping[t.Any, t.Any], keys: tuple[str, ...]) -> t.Any:
    for key in keys:
        if key in raw:
            return raw[key]
    return None


def resolve_options(raw: t.Any = None) -> ExecutionOptions:
    """Resolve caller overrides against the current process defaults.

    Parameters
    ----------
    raw : Any, optional
        A mapping with ``cwd`` (alias ``working_directory``) and ``env``
        (alias ``environment``) keys, or an :class:`ExecutionOptions`.
        A string or path-like ``cwd`` overrides :func:`os.getcwd`, a mapping
        ``env`` replaces (does not merge with) :data:`os.environ`.

    Returns
    -------
    :class:`ExecutionOptions`
    """
    if isinstance(raw, ExecutionOptions):
        return raw

    cwd = os.getcwd()
    env = dict(os.environ)

    if isinstance(raw, Mapping):
        override_cwd = _first(raw, CWD_KEYS)
        if isinstance(override_cwd, (str, os.PathLike)):
            cwd = os.fspath(override_cwd)

        override_env = _first(raw, ENV_KEYS)
        if isinstance(override_env, Mapping):
            env = {str(key): str(value) for key, value in override_env.items()}

    return ExecutionOptions(cwd=cwd, env=env)
