"""Command-line task runner for spawnpipe.

Runs named pipeline targets from a JSON configuration file::

    {
      "options": {"cwd": "build"},
      "targets": {
        "count-todos": {
          "commands": [
            {"cmd": "grep", "args": ["-r", "TODO", "src"]},
            {"cmd": "wc", "args": ["-l"]}
          ]
        }
      }
    }

Target ``options`` are merged over the top-level ``options``.
"""

from __future__ import annotations

import argparse
import json
import logging
import pathlib
import subprocess
import sys
import typing as t
from collections.abc import Mapping

from . import exc
from .__about__ import __version__
from .constants import DEFAULT_CONFIG_FILE
from .pipeline import get_fileno, run
from .validation import validate_commands

if t.TYPE_CHECKING:
    from ._internal.types import StrPath

logger = logging.getLogger(__name__)

#: Exit status when every target succeeded
EXIT_OK = 0

#: Exit status when a target's final command exited non-zero
EXIT_TARGET_FAILED = 1

#: Exit status for configuration and usage errors
EXIT_CONFIG_ERROR = 2


class Target(t.NamedTuple):
    """A named pipeline from the configuration file."""

    name: str
    commands: list[t.Any]
    options: dict[str, t.Any]


def load_config(path: StrPath) -> dict[str, t.Any]:
    """Read the task configuration file.

    Raises
    ------
    :exc:`exc.TaskConfigNotFound`
        If ``path`` does not exist.
    :exc:`exc.TaskError`
        If the file is not a JSON object.
    """
    config_path = pathlib.Path(path)
    if not config_path.is_file():
        raise exc.TaskConfigNotFound(str(config_path))
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        msg = f"Invalid JSON in {config_path}: {e}"
        raise exc.TaskError(msg) from e
    if not isinstance(data, Mapping):
        msg = f"Config {config_path} must contain a JSON object"
        raise exc.TaskError(msg)
    return dict(data)


def merge_options(
    defaults: t.Any,
    overrides: t.Any,
) -> dict[str, t.Any]:
    """Merge target options over task options, target keys win.

    >>> merge_options({"cwd": "/", "env": {"A": "1"}}, {"cwd": "/tmp"})
    {'cwd': '/tmp', 'env': {'A': '1'}}
    >>> merge_options(None, "junk")
    {}
    """
    merged: dict[str, t.Any] = {}
    for layer in (defaults, overrides):
        if isinstance(layer, Mapping):
            merged.update(layer)
    return merged


def get_targets(
    config: Mapping[str, t.Any],
    names: t.Sequence[str] = (),
) -> list[Target]:
    """Resolve requested target names (all targets when empty).

    Raises
    ------
    :exc:`exc.UnknownTarget`
        If a requested target is not configured.
    :exc:`exc.InvalidCommands`
        If a target has a missing or invalid list of commands.
    """
    targets = config.get("targets")
    if not isinstance(targets, Mapping):
        targets = {}

    selected = list(names) if names else list(targets)
    resolved = []
    for name in selected:
        if name not in targets:
            raise exc.UnknownTarget(name)
        data = targets[name] if isinstance(targets[name], Mapping) else {}
        commands = data.get("commands")
        reason = validate_commands(commands)
        if reason is not None:
            raise exc.InvalidCommands(
                f"Missing or invalid list of commands for target `{name}`: {reason}",
            )
        resolved.append(
            Target(
                name=name,
                commands=list(commands),
                options=merge_options(config.get("options"), data.get("options")),
            ),
        )
    return resolved


def run_target(target: Target, **kwargs: t.Any) -> int:
    """Run one target to completion, return its final exit code."""
    logger.info(f"running target {target.name}")
    pipeline = run(target.commands, target.options, lambda exit_code: None, **kwargs)
    exit_code = pipeline.wait()
    logger.info(f"target {target.name} finished with exit code {exit_code}")
    return exit_code


def create_parser() -> argparse.ArgumentParser:
    """Return the argument parser for :func:`main`."""
    parser = argparse.ArgumentParser(
        prog="spawnpipe",
        description="Run and pipe commands without a shell.",
    )
    parser.add_argument(
        "targets",
        nargs="*",
        metavar="TARGET",
        help="targets to run, in order (default: all)",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=DEFAULT_CONFIG_FILE,
        help=f"configuration file (default: {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="logging level (default: WARNING)",
    )
    parser.add_argument("--version", action="version", version=__version__)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the task runner CLI.

    Parameters
    ----------
    argv : list[str] | None
        CLI arguments (excluding the program name).

    Returns
    -------
    int
        Exit status code.
    """
    args = create_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        targets = get_targets(load_config(args.config), args.targets)
    except exc.SpawnPipeException as e:
        sys.stderr.write(f"spawnpipe: {e}\n")
        return EXIT_CONFIG_ERROR

    stdin_fd = get_fileno(sys.stdin)
    for target in targets:
        exit_code = run_target(
            target,
            stdin=stdin_fd if stdin_fd is not None else subprocess.DEVNULL,
        )
        if exit_code != 0:
            sys.stderr.write(
                f"spawnpipe: target `{target.name}` failed "
                f"with exit code {exit_code}\n",
            )
            return EXIT_TARGET_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
