"""User-facing message text for every step of the image and video flows.

WHY: The flows post and edit a single status message many times. Keeping
all text here keeps the flows focused on control flow and keeps the user
messages consistent (and separate from internal log detail).

HOW: Constants for fixed messages, small functions for messages that
embed a value. Text uses Slack mrkdwn (*bold*, ```code```), which also
reads fine in a terminal.

RULES:
- Internal exception detail only appears where noted (upstream error
  text, transient error text, upload error text)
- format_remaining renders estimate output, it does not compute it
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Generic
# ---------------------------------------------------------------------------

SERVICE_ERROR = (
    ":x: *Service Error*\n"
    "An unexpected error occurred while processing your request. "
    "Please try again in a moment."
)

DELIVERED = ":white_check_mark: Delivered."

_USAGE_DESCRIPTIONS = {
    "imagen": "image generation",
    "veo": "video generation",
}


def usage(command: str, prefix: str = "!") -> str:
    """Usage hint for a command given without a prompt."""
    what = _USAGE_DESCRIPTIONS.get(command, "generation")
    return (
        ":x: *Invalid Command Usage*\n"
        "Please provide a description for {what}.\n\n"
        "*Correct usage:* `{prefix}{command} <your {noun} description>`".format(
            what=what,
            prefix=prefix,
            command=command,
            noun=what.split()[0],
        )
    )


# ---------------------------------------------------------------------------
# Image flow
# ---------------------------------------------------------------------------

IMAGE_PROCESSING = (
    ":art: *Imagen Processing*\n"
    "Generating high-quality image based on your description."
)
IMAGE_UNAVAILABLE = (
    ":x: *Image Generation Failed*\n"
    "The Imagen service is currently unavailable. Please try again in a few moments."
)
IMAGE_NO_OUTPUT = (
    ":x: *Image Generation Failed*\n"
    "No image was produced for this description. "
    "Please try rephrasing your prompt."
)
IMAGE_UPLOAD_FAILED = (
    ":x: *Upload Failed*\n"
    "The image was generated but could not be delivered. Please try again."
)

# ---------------------------------------------------------------------------
# Video flow
# ---------------------------------------------------------------------------

VIDEO_SUBMITTING = (
    ":tv: *Veo Processing*\n"
    "Initializing text-to-video generation."
)
VIDEO_IN_PROGRESS = (
    ":tv: *Video Generation In Progress*\n"
    "Veo is processing your request."
)
VIDEO_UNAVAILABLE = (
    ":x: *Video Generation Failed*\n"
    "The Veo service is currently unavailable. Please try again in a few moments."
)
VIDEO_INVALID_RESPONSE = (
    ":x: *Service Error*\n"
    "Received invalid response from video generation service. Please try again."
)
VIDEO_NO_SAMPLES = (
    ":x: *Service Error*\n"
    "Video generation completed but no output samples were produced. Please try again."
)
VIDEO_NO_URIS = (
    ":x: *Service Error*\n"
    "Video generation completed but download links are unavailable. Please try again."
)
VIDEO_PREPARING_UPLOAD = (
    ":tv: *Video Generation Complete*\n"
    "Preparing video for upload."
)
VIDEO_TIMEOUT = (
    ":x: *Generation Timeout*\n"
    "Video generation process exceeded the maximum time limit. "
    "Please try again with a simpler prompt."
)
DEFAULT_FILTER_REASON = "Content filtered by safety systems"


def video_failed(upstream_message: str) -> str:
    """Upstream error, shown verbatim, plus a remediation hint."""
    return (
        ":x: *Video Generation Failed*\n\n"
        "*Error Details:*\n"
        "• {}\n\n"
        ":bulb: *Suggestion:* Please try rephrasing your prompt or use different keywords."
    ).format(upstream_message)


def video_filtered(reasons: list[str]) -> str:
    reason_text = "\n• ".join(reasons or [DEFAULT_FILTER_REASON])
    return (
        ":x: *Content Policy Violation*\n\n"
        "*Filtered Content:*\n"
        "• {}\n\n"
        ":bulb: *Suggestion:* Please modify your prompt to comply with content "
        "guidelines and try again."
    ).format(reason_text)


def video_progress(remaining_text: str) -> str:
    return (
        ":tv: *Video Generation In Progress*\n"
        "Processing your request... :hourglass_flowing_sand: {}"
    ).format(remaining_text)


def video_retrying(attempt: int, max_attempts: int, error: str) -> str:
    return (
        ":warning: *Temporary Service Issue* (Attempt {}/{})\n"
        "Experiencing connectivity issues. Retrying automatically...\n"
        "```{}```"
    ).format(attempt, max_attempts, error)


def video_timeout(last_error: str | None = None) -> str:
    """Timeout text; the last transient error is appended when there was one."""
    if not last_error:
        return VIDEO_TIMEOUT
    return "{}\n```{}```".format(VIDEO_TIMEOUT, last_error)


def video_download_failed(error: str) -> str:
    return (
        ":x: *Download Failed*\n"
        "The video was generated but could not be retrieved.\n"
        "```{}```"
    ).format(error)


def video_link(uri: str) -> str:
    return (
        ":tv: *Video Generation Complete*\n\n"
        ":arrow_down: *Direct Download Link:*\n"
        "{}\n\n"
        ":bulb: *Note:* The video file could not be uploaded here. "
        "Use the link above to download your video."
    ).format(uri)


def video_upload_failed(error: str) -> str:
    return (
        ":x: *Upload Failed*\n"
        "Unable to deliver video file. Please try generating a shorter video.\n"
        "```{}```"
    ).format(error)


def format_remaining(seconds: int) -> str:
    """Render a remaining-time estimate.

    RULES:
    - 0 or less renders "Final checks in progress..."
    - Units are pluralized ("1 minute", "2 minutes")
    """
    if seconds <= 0:
        return "Final checks in progress..."

    minutes, secs = divmod(int(seconds), 60)
    parts = []
    if minutes:
        parts.append("{} minute{}".format(minutes, "" if minutes == 1 else "s"))
    if secs:
        parts.append("{} second{}".format(secs, "" if secs == 1 else "s"))
    return "{} remaining".format(" ".join(parts))
