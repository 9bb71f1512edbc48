"""Unique temp file paths for generated media.

WHY: Several commands can run at the same time, and each writes one or
more files into the shared working directory. Names must never collide.

HOW: Each name combines a type prefix, the millisecond timestamp, a
process-wide sequence number and the payload index:
``imagen-1718000000000-7-1.png``. The directory is created on demand.

RULES:
- The sequence counter is shared by all flows in the process
- Index is 1-based, matching how users count attachments
"""

from __future__ import annotations

import itertools
import time
from pathlib import Path

_sequence = itertools.count(1)


class TempFiles:
    """Hands out collision-free paths inside one working directory."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def new_path(self, prefix: str, suffix: str, index: int = 1) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        timestamp_ms = int(time.time() * 1000)
        name = "{}-{}-{}-{}{}".format(prefix, timestamp_ms, next(_sequence), index, suffix)
        return self.directory / name
