"""Tests for spawnpipe's test constants."""

from __future__ import annotations

from typing import TYPE_CHECKING

from spawnpipe.test.constants import (
    RETRY_INTERVAL_SECONDS,
    RETRY_TIMEOUT_SECONDS,
)

if TYPE_CHECKING:
    import pytest


def test_retry_timeout_seconds_default() -> None:
    """Test RETRY_TIMEOUT_SECONDS default value."""
    assert RETRY_TIMEOUT_SECONDS == 8


def test_retry_timeout_seconds_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test RETRY_TIMEOUT_SECONDS can be configured via environment variable."""
    monkeypatch.setenv("RETRY_TIMEOUT_SECONDS", "10")
    from importlib import reload

    import spawnpipe.test.constants

    reload(spawnpipe.test.constants)
    assert spawnpipe.test.constants.RETRY_TIMEOUT_SECONDS == 10


def test_retry_interval_seconds_default() -> None:
    """Test RETRY_INTERVAL_SECONDS default value."""
    assert RETRY_INTERVAL_SECONDS == 0.05


def test_retry_interval_seconds_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test RETRY_INTERVAL_SECONDS can be configured via environment variable."""
    monkeypatch.setenv("RETRY_INTERVAL_SECONDS", "0.1")
    from importlib import reload

    import spawnpipe.test.constants

    reload(spawnpipe.test.constants)
    assert spawnpipe.test.constants.RETRY_INTERVAL_SECONDS == 0.1
