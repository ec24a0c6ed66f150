"""Helper methods for spawnpipe and downstream libraries."""

from __future__ import annotations

from .retry import retry_until

__all__ = ("retry_until",)
