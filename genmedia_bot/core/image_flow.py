"""Image flow: prompt in, Imagen payloads out, attachments delivered.

WHY: Image generation is a single request/response call, but the bytes
come back base64-encoded inside JSON and have to become real files
before the chat platform can show them.

HOW: Validate the prompt, post a "processing" message, call the Media
Client, decode every payload into its own temp file, and hand the files
to the DeliveryAdapter which edits the processing message in place.

RULES:
- Empty prompts raise UsageError before any chat or network call
- Upstream failures are reported once, never retried
- Zero usable payloads is reported as a generic failure
- A failed file write is reported as unavailable; files already written
  are still scheduled for removal
"""

from __future__ import annotations

import base64
import binascii
import enum
import logging
from pathlib import Path

from genmedia_bot import messages
from genmedia_bot.api.client import MediaClient
from genmedia_bot.config import Settings
from genmedia_bot.core.chat import Conversation, GenerationRequest
from genmedia_bot.core.delivery import DeliveryAdapter
from genmedia_bot.core.files import TempFiles
from genmedia_bot.errors import UpstreamError, UploadError, UsageError

logger = logging.getLogger(__name__)


class ImageOutcome(str, enum.Enum):
    """How an image request ended."""

    DELIVERED = "delivered"
    NO_OUTPUT = "no_output"
    UNAVAILABLE = "unavailable"
    UPLOAD_FAILED = "upload_failed"


class ImageFlow:
    """Runs one image generation request end-to-end."""

    def __init__(
        self,
        settings: Settings,
        client: MediaClient,
        delivery: DeliveryAdapter,
        temp_files: TempFiles | None = None,
    ) -> None:
        self._settings = settings
        self._client = client
        self._delivery = delivery
        self._temp_files = temp_files or TempFiles(settings.temp_dir)

    async def run(self, request: GenerationRequest, conversation: Conversation) -> ImageOutcome:
        prompt = request.prompt.strip()
        if not prompt:
            raise UsageError("imagen")

        status = await conversation.reply(messages.IMAGE_PROCESSING)

        try:
            predictions = await self._client.submit_image(prompt)
        except UpstreamError:
            logger.exception("Imagen API request failed")
            await status.edit(messages.IMAGE_UNAVAILABLE)
            return ImageOutcome.UNAVAILABLE

        files: list[Path] = []
        try:
            for index, prediction in enumerate(predictions, start=1):
                if not prediction.bytes_base64:
                    if prediction.rai_filtered_reason:
                        logger.info("Image %d filtered: %s", index, prediction.rai_filtered_reason)
                    continue
                try:
                    payload = base64.b64decode(prediction.bytes_base64, validate=True)
                except (binascii.Error, ValueError):
                    logger.warning("Image %d payload is not valid base64, skipping", index)
                    continue
                path = self._temp_files.new_path("imagen", ".png", index)
                files.append(path)
                path.write_bytes(payload)
        except OSError:
            logger.exception("Failed to write image file")
            self._delivery.discard(files, self._settings.image_cleanup_delay_s)
            await status.edit(messages.IMAGE_UNAVAILABLE)
            return ImageOutcome.UNAVAILABLE

        if not files:
            await status.edit(messages.IMAGE_NO_OUTPUT)
            return ImageOutcome.NO_OUTPUT

        try:
            await self._delivery.deliver_files(status, files, self._settings.image_cleanup_delay_s)
        except UploadError:
            logger.exception("Image upload failed")
            await status.edit(messages.IMAGE_UPLOAD_FAILED)
            return ImageOutcome.UPLOAD_FAILED

        logger.info("Delivered %d image(s)", len(files))
        return ImageOutcome.DELIVERED
