"""Metadata for spawnpipe package."""

from __future__ import annotations

__title__ = "spawnpipe"
__package_name__ = "spawnpipe"
__version__ = "0.1.0"
__description__ = "Spawn external commands and pipe them together, shell style"
__email__ = "maintainers@spawnpipe.invalid"
__author__ = "spawnpipe contributors"
__github__ = "https://github.com/spawnpipe/spawnpipe"
__docs__ = "https://github.com/spawnpipe/spawnpipe#readme"
__tracker__ = "https://github.com/spawnpipe/spawnpipe/issues"
__pypi__ = "https://pypi.org/project/spawnpipe/"
__license__ = "MIT"
__copyright__ = "Copyright 2026- spawnpipe contributors"
