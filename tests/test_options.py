"""Tests for execution option resolution."""

from __future__ import annotations

import os
import pathlib
import typing as t

import pytest

from spawnpipe.options import ExecutionOptions, resolve_options


class IgnoredOptionsFixture(t.NamedTuple):
    """Test fixture for test_resolve_options_falls_back()."""

    test_id: str
    raw: t.Any


IGNORED_OPTIONS_FIXTURES: list[IgnoredOptionsFixture] = [
    IgnoredOptionsFixture(test_id="none", raw=None),
    IgnoredOptionsFixture(test_id="string", raw="/tmp"),
    IgnoredOptionsFixture(test_id="number", raw=3),
    IgnoredOptionsFixture(test_id="list", raw=[("cwd", "/tmp")]),
    IgnoredOptionsFixture(test_id="empty_mapping", raw={}),
    IgnoredOptionsFixture(test_id="cwd_not_string", raw={"cwd": 42}),
    IgnoredOptionsFixture(test_id="env_not_mapping", raw={"env": ["A=1"]}),
    IgnoredOptionsFixture(test_id="unknown_keys", raw={"shell": True}),
]


@pytest.mark.parametrize(
    list(IgnoredOptionsFixture._fields),
    IGNORED_OPTIONS_FIXTURES,
    ids=[test.test_id for test in IGNORED_OPTIONS_FIXTURES],
)
def test_resolve_options_falls_back(
    test_id: str,
    raw: t.Any,
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: pathlib.Path,
) -> None:
    """Malformed overrides are ignored, defaults come from this process."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SPAWNPIPE_TEST_VAR", "present")

    options = resolve_options(raw)

    assert options.cwd == os.getcwd()
    assert options.env == dict(os.environ)
    assert options.env["SPAWNPIPE_TEST_VAR"] == "present"


def test_resolve_options_cwd_override() -> None:
    """A string cwd overrides the default."""
    assert resolve_options({"cwd": "/tmp"}).cwd == "/tmp"
    assert resolve_options({"working_directory": "/var"}).cwd == "/var"


def test_resolve_options_path_cwd(tmp_path: pathlib.Path) -> None:
    """Path-like cwd values are accepted."""
    assert resolve_options({"cwd": tmp_path}).cwd == str(tmp_path)


def test_resolve_options_env_replaces(monkeypatch: pytest.MonkeyPatch) -> None:
    """A mapping env replaces the default environment, it is not merged."""
    monkeypatch.setenv("SPAWNPIPE_TEST_VAR", "present")

    options = resolve_options({"env": {"ONLY": "this"}})
    assert options.env == {"ONLY": "this"}

    options = resolve_options({"environment": {"ALIAS": "1"}})
    assert options.env == {"ALIAS": "1"}


def test_resolve_options_env_is_copied() -> None:
    """Later changes to the caller's mapping don't leak into resolved options."""
    env = {"A": "1"}
    options = resolve_options({"env": env})
    env["B"] = "2"
    assert options.env == {"A": "1"}


def test_resolve_options_passthrough() -> None:
    """Already resolved options are returned as they are."""
    options = ExecutionOptions(cwd="/", env={"A": "1"})
    assert resolve_options(options) is options


def test_popen_kwargs() -> None:
    """popen_kwargs() maps to subprocess.Popen arguments."""
    options = ExecutionOptions(cwd="/", env={"A": "1"})
    assert options.popen_kwargs() == {"cwd": "/", "env": {"A": "1"}}
    assert "env" not in repr(options)
