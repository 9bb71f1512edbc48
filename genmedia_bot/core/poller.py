"""Video job poller: submit a Veo job, poll it, deliver the result.

WHY: Video generation is a long-running remote operation (minutes). The
bot has to submit it, check its status on a timer without blocking other
commands, classify how it ended (error, safety filter, no output, a
video), download the video under a size ceiling and deliver it, while
keeping the user informed by editing one status message.

HOW: VideoJobPoller.run() is a small state machine:

    SUBMITTING → POLLING → {SUCCEEDED, FAILED, FILTERED, TIMED_OUT, ERROR_UPLOAD}

POLLING is a bounded loop of get_operation + asyncio.sleep. Every
non-terminal iteration (not done, or a transient fetch error) increases
the attempt counter by exactly one. A finished operation is classified
and, on success, the first sample is downloaded and delivered.

RULES:
- Empty prompts raise UsageError before any network call
- At most max_attempts status fetches; one sleep per non-terminal fetch
- A "not done" status never triggers a download
- Filtered media wins over any samples in the same batch
- Only the first sample is delivered
- Progress edits are best-effort; a failed edit never stops polling
- There is no external cancellation; a run ends on its own
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass

from genmedia_bot import messages
from genmedia_bot.api.client import MediaClient
from genmedia_bot.api.models import Operation
from genmedia_bot.config import Settings
from genmedia_bot.core.chat import Conversation, GenerationRequest, StatusMessage
from genmedia_bot.core.delivery import DeliveryAdapter
from genmedia_bot.core.files import TempFiles
from genmedia_bot.errors import (
    DownloadError,
    GenerationTimeoutError,
    GenMediaError,
    SafetyFilteredError,
    TransientError,
    UpstreamError,
    UploadError,
    UsageError,
)

logger = logging.getLogger(__name__)

# Countdown display schedule (cosmetic only)
_DISPLAY_CEILING_S = 120
_DISPLAY_PHASE1_ATTEMPTS = 12
_DISPLAY_PHASE1_STEP_S = 10
_DISPLAY_PHASE2_STEP_S = 15
_DISPLAY_FLOOR_S = 10


class PollOutcome(str, enum.Enum):
    """Terminal states of a video job run."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    FILTERED = "filtered"
    TIMED_OUT = "timed_out"
    ERROR_UPLOAD = "error_upload"


@dataclass
class PollState:
    """Mutable counters for one polling loop."""

    max_attempts: int
    attempt: int = 0
    last_displayed_remaining: int | None = None
    last_error: str | None = None


@dataclass
class PollResult:
    """How a run ended, for callers, logs and tests.

    RULES:
    - operation_id is None when submission failed
    - video_uri is set once a finished operation yielded one
    - delivered_via_link is True when the link fallback was used
    """

    outcome: PollOutcome
    operation_id: str | None = None
    attempts: int = 0
    video_uri: str | None = None
    delivered_via_link: bool = False
    error: GenMediaError | None = None


def estimate_remaining(attempt: int) -> int:
    """Seconds of "remaining time" to show after ``attempt`` not-done polls.

    WHY: Users like a countdown, but the service gives no ETA. This is a
    display heuristic, not a prediction.

    HOW: Two phases. Attempts 1–12 count down from 120s by 10s each.
    From attempt 13 the value restarts near the ceiling and drops by 15s
    per attempt, floored at 10s and capped at 120s.

    RULES:
    - Pure function of attempt; affects only user-facing text
    - Not strictly monotonic: attempt 12 shows 0, attempt 13 shows 105
    """
    if attempt <= _DISPLAY_PHASE1_ATTEMPTS:
        return _DISPLAY_CEILING_S - attempt * _DISPLAY_PHASE1_STEP_S

    extra = max(
        _DISPLAY_FLOOR_S,
        _DISPLAY_CEILING_S - (attempt - _DISPLAY_PHASE1_ATTEMPTS) * _DISPLAY_PHASE2_STEP_S,
    )
    return min(_DISPLAY_CEILING_S, extra)


class VideoJobPoller:
    """Runs one video generation request end-to-end."""

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

    async def run(self, request: GenerationRequest, conversation: Conversation) -> PollResult:
        prompt = request.prompt.strip()
        if not prompt:
            raise UsageError("veo")

        # SUBMITTING
        status = await conversation.reply(messages.VIDEO_SUBMITTING)
        try:
            operation_id = await self._client.submit_video(prompt)
        except UpstreamError as exc:
            logger.error("Veo API request failed: %s", exc)
            await status.edit(messages.VIDEO_UNAVAILABLE)
            return PollResult(PollOutcome.ERROR_UPLOAD, error=exc)

        await self._report(status, messages.VIDEO_IN_PROGRESS)
        return await self._poll(status, operation_id)

    # ------------------------------------------------------------------
    # POLLING
    # ------------------------------------------------------------------

    async def _poll(self, status: StatusMessage, operation_id: str) -> PollResult:
        state = PollState(max_attempts=self._settings.max_poll_attempts)

        while state.attempt < state.max_attempts:
            try:
                operation = await self._client.get_operation(operation_id)
            except TransientError as exc:
                state.attempt += 1
                state.last_error = str(exc)
                logger.warning(
                    "Status poll %d/%d for %s failed: %s",
                    state.attempt, state.max_attempts, operation_id, exc,
                )
                if state.attempt >= state.max_attempts:
                    return await self._timed_out(status, operation_id, state)
                await self._report(
                    status,
                    messages.video_retrying(state.attempt, state.max_attempts, state.last_error),
                )
                await asyncio.sleep(self._settings.poll_interval_s)
                continue

            if operation.done:
                logger.info("Video operation %s finished after %d polls", operation_id, state.attempt + 1)
                return await self._finish(status, operation, state)

            state.attempt += 1
            remaining = estimate_remaining(state.attempt)
            state.last_displayed_remaining = remaining
            await self._report(status, messages.video_progress(messages.format_remaining(remaining)))
            await asyncio.sleep(self._settings.poll_interval_s)

        return await self._timed_out(status, operation_id, state)

    async def _timed_out(self, status: StatusMessage, operation_id: str, state: PollState) -> PollResult:
        logger.error("Video operation %s timed out after %d attempts", operation_id, state.attempt)
        await status.edit(messages.video_timeout(state.last_error))
        return PollResult(
            PollOutcome.TIMED_OUT,
            operation_id=operation_id,
            attempts=state.attempt,
            error=GenerationTimeoutError(
                "Operation {} not done after {} attempts".format(operation_id, state.attempt)
            ),
        )

    # ------------------------------------------------------------------
    # Terminal classification
    # ------------------------------------------------------------------

    async def _finish(self, status: StatusMessage, operation: Operation, state: PollState) -> PollResult:
        result = PollResult(PollOutcome.FAILED, operation_id=operation.id, attempts=state.attempt)

        if operation.error is not None:
            logger.error("Veo API returned error: %s", operation.error.message)
            await status.edit(messages.video_failed(operation.error.message))
            result.error = UpstreamError(operation.error.code, operation.error.message)
            return result

        response = operation.response
        if response is None:
            logger.error("Invalid API response: generateVideoResponse missing")
            await status.edit(messages.VIDEO_INVALID_RESPONSE)
            result.outcome = PollOutcome.ERROR_UPLOAD
            return result

        # Intentional but unverified: any filtered sample stops the run even
        # when unfiltered samples came back in the same batch.
        if response.filtered_count > 0:
            reasons = response.filtered_reasons or [messages.DEFAULT_FILTER_REASON]
            logger.warning("Content filtered by safety systems: %s", reasons)
            await status.edit(messages.video_filtered(reasons))
            result.outcome = PollOutcome.FILTERED
            result.error = SafetyFilteredError(reasons)
            return result

        if not response.samples:
            logger.error("No generated samples found in API response")
            await status.edit(messages.VIDEO_NO_SAMPLES)
            return result

        uris = [sample.uri for sample in response.samples if sample.uri]
        if not uris:
            logger.error("No video URIs found in API response")
            await status.edit(messages.VIDEO_NO_URIS)
            return result

        # Intentional but unverified: single-result policy, extra samples
        # are ignored.
        result.video_uri = uris[0]
        await self._report(status, messages.VIDEO_PREPARING_UPLOAD)
        return await self._download_and_deliver(status, result)

    # ------------------------------------------------------------------
    # DOWNLOADING / DELIVERING
    # ------------------------------------------------------------------

    async def _download_and_deliver(self, status: StatusMessage, result: PollResult) -> PollResult:
        uri = result.video_uri or ""
        path = self._temp_files.new_path("veo-video", ".mp4")

        try:
            await self._client.download_asset(uri, path)
        except DownloadError as exc:
            logger.error("Video download failed: %s", exc)
            await status.edit(messages.video_download_failed(str(exc)))
            result.outcome = PollOutcome.FAILED
            result.error = exc
            return result

        try:
            await self._delivery.deliver_files(status, [path], self._settings.video_cleanup_delay_s)
        except UploadError as upload_error:
            logger.error("Video upload failed: %s", upload_error)
            result.outcome = PollOutcome.ERROR_UPLOAD
            result.error = upload_error
            try:
                await self._delivery.deliver_link(status, uri)
            except Exception:
                logger.exception("Failed to send download link")
                await status.edit(messages.video_upload_failed(str(upload_error)))
                return result
            logger.info("Video delivered via direct download link")
            result.delivered_via_link = True
            return result

        logger.info("Video uploaded for operation %s", result.operation_id)
        result.outcome = PollOutcome.SUCCEEDED
        return result

    async def _report(self, status: StatusMessage, text: str) -> None:
        """Best-effort progress edit."""
        try:
            await status.edit(text)
        except Exception:
            logger.exception("Failed to update progress message")
