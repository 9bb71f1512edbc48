"""Delivery adapter: attach files to the status message, then clean them up.

WHY: Both flows end the same way: replace the "processing" message with
the generated media, and remove the temp files afterwards. Deleting right
after the upload call returns can race with the chat platform still
reading the file, so removal is delayed and runs on its own.

HOW: DeliveryAdapter edits the status message in place with empty text
and the files attached. Every delivered path is handed to the
CleanupScheduler, which runs one fire-and-forget asyncio task per file:
sleep for the expiry delay, then unlink.

RULES:
- Files are scheduled for removal whether or not the upload succeeded
- Upload failures propagate as UploadError
- Cleanup failures are logged, never raised (the flow is already over)
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from genmedia_bot import messages
from genmedia_bot.core.chat import StatusMessage
from genmedia_bot.errors import UploadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingDelivery:
    """A delivered temp file waiting for its delayed removal."""

    path: Path
    expiry_delay_s: float
    created_at: float = field(default_factory=time.time)


class CleanupScheduler:
    """Runs delayed, fire-and-forget removal of delivered temp files."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def schedule(self, pending: PendingDelivery) -> None:
        """Queue removal of ``pending.path`` after its expiry delay.

        RULES:
        - Must be called from a running event loop
        - Returns immediately; the task holds its own reference
        """
        task = asyncio.get_running_loop().create_task(self._expire(pending))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    async def join(self) -> None:
        """Wait for every scheduled removal to finish (tests and shutdown)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _expire(self, pending: PendingDelivery) -> None:
        await asyncio.sleep(pending.expiry_delay_s)
        try:
            pending.path.unlink()
            logger.info("Temporary file cleaned up: %s", pending.path.name)
        except FileNotFoundError:
            logger.debug("Temporary file already gone: %s", pending.path.name)
        except OSError:
            logger.exception("File cleanup error for %s", pending.path.name)


class DeliveryAdapter:
    """Replaces a status message with attachments or a link."""

    def __init__(self, scheduler: CleanupScheduler) -> None:
        self._scheduler = scheduler

    async def deliver_files(
        self,
        status: StatusMessage,
        paths: Sequence[Path],
        expiry_delay_s: float,
    ) -> None:
        """Edit ``status`` in place to carry ``paths`` as attachments.

        RULES:
        - Text content of the edited message is empty
        - Every path is scheduled for removal, success or not
        - Raises UploadError if the edit/upload fails
        """
        try:
            await status.edit("", files=list(paths))
        except UploadError:
            raise
        except Exception as exc:
            raise UploadError(str(exc) or type(exc).__name__) from exc
        finally:
            self.discard(paths, expiry_delay_s)

    def discard(self, paths: Sequence[Path], expiry_delay_s: float) -> None:
        """Schedule removal of ``paths`` after the expiry delay."""
        for path in paths:
            self._scheduler.schedule(PendingDelivery(Path(path), expiry_delay_s))

    async def deliver_link(self, status: StatusMessage, uri: str) -> None:
        """Edit ``status`` to a direct download link instead of a file."""
        await status.edit(messages.video_link(uri))
