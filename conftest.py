"""Conftest.py (root-level).

We keep this in root so pytest fixtures are available to pytest's doctest
plugin, as well as avoiding conftest.py from being included in the wheel, in
addition to pytest_plugin for pytester only being available via the root
directory. The spawnpipe fixtures come from the ``pytest11`` entry point of
the installed package.

See "pytest_plugins in non-top-level conftest files" in
https://docs.pytest.org/en/stable/deprecations.html
"""

from __future__ import annotations

import io
import typing as t

import pytest
from _pytest.doctest import DoctestItem

from spawnpipe.pipeline import run

pytest_plugins = ["pytester"]


@pytest.fixture(autouse=True)
def add_doctest_fixtures(
    request: pytest.FixtureRequest,
    doctest_namespace: dict[str, t.Any],
) -> None:
    """Configure doctest fixtures for pytest-doctest."""
    if isinstance(request._pyfuncitem, DoctestItem):
        doctest_namespace["io"] = io
        doctest_namespace["run"] = run
        doctest_namespace["completion"] = request.getfixturevalue("completion")
