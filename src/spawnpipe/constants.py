"""Constants for spawnpipe."""

from __future__ import annotations

import os

#: Seconds the completion observer waits for the final command's output and
#: error readers to drain after it exits.
#: Can be configured via :envvar:`SPAWNPIPE_DRAIN_TIMEOUT_SECONDS`
DRAIN_TIMEOUT_SECONDS = float(os.getenv("SPAWNPIPE_DRAIN_TIMEOUT_SECONDS", 5))

#: Bytes read per call by output pump threads.
#: Can be configured via :envvar:`SPAWNPIPE_CHUNK_SIZE`
CHUNK_SIZE = int(os.getenv("SPAWNPIPE_CHUNK_SIZE", 65536))

#: Exit code reported for a command whose executable could not be found
EXIT_CODE_NOT_FOUND = 127

#: Exit code reported for a command that could not be started otherwise
#: (permission denied, not executable)
EXIT_CODE_CANNOT_EXECUTE = 126

#: Error stream lines starting with any of these prefixes are the spawn
#: primitive's own start-failure diagnostics and are never forwarded
SPAWN_FAILURE_PREFIXES: tuple[bytes, ...] = (b"execvp(",)

#: Default task runner configuration file
DEFAULT_CONFIG_FILE = "spawnpipe.json"
