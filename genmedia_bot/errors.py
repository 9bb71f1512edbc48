"""Exception taxonomy shared by the client, the flows and the chat adapter.

WHY: Each failure class gets a different user-facing treatment: usage
errors get a syntax hint, transient errors are retried, safety filtering
lists the reasons, upload errors fall back to a link. Typed exceptions
make those branches explicit instead of string-matching messages.

HOW: A single GenMediaError base with one subclass per failure class.
The Media Client raises UpstreamError / TransientError / DownloadError;
the flows and delivery adapter raise the rest.

RULES:
- User-facing text is never built here (see genmedia_bot.messages)
- UpstreamError.message is safe to show verbatim to operators
"""

from __future__ import annotations


class GenMediaError(Exception):
    """Base class for all errors raised by genmedia_bot."""


class ConfigError(GenMediaError):
    """Raised when required runtime configuration is missing or invalid."""


class UsageError(GenMediaError):
    """Raised when a command is missing its prompt or is otherwise malformed.

    RULES:
    - Raised before any network or chat call is made
    - command names the command the user typed (for the usage hint)
    """

    def __init__(self, command: str, message: str = "A prompt is required.") -> None:
        self.command = command
        super().__init__(message)


class UpstreamError(GenMediaError):
    """Raised when the remote generation API rejects a request.

    WHY: Callers need to tell "the service said no" apart from a local bug.

    HOW: Wraps the HTTP status code (None for transport failures) and the
    response body or a summary.

    RULES:
    - Never retried by the client
    """

    def __init__(self, status_code: int | None, message: str) -> None:
        self.status_code = status_code
        self.message = message
        if status_code is None:
            super().__init__(f"Media API request failed: {message}")
        else:
            super().__init__(f"Media API error {status_code}: {message}")


class TransientError(GenMediaError):
    """Raised when an operation status fetch fails in a retryable way.

    RULES:
    - Covers network errors, timeouts, non-2xx and unparseable bodies
    - Distinct from a well-formed "not done yet" response
    """


class SafetyFilteredError(GenMediaError):
    """Raised when the remote service filtered the generated media."""

    def __init__(self, reasons: list[str]) -> None:
        self.reasons = list(reasons)
        super().__init__("Content filtered: " + "; ".join(self.reasons))


class DownloadError(GenMediaError):
    """Raised when a generated asset cannot be fetched within the limits.

    RULES:
    - No partial file is left behind when this is raised
    """


class UploadError(GenMediaError):
    """Raised when the chat platform rejects an attachment upload."""


class GenerationTimeoutError(GenMediaError, TimeoutError):
    """Raised when a video job exhausts its polling attempt budget."""
