"""Shared test fixtures for the genmedia_bot test suite.

WHY: Most test modules need the same Settings object, a fake chat thread
that records every message edit, and canned API payloads for the Imagen
and Veo endpoints.

HOW: FakeConversation / FakeStatusMessage implement the core chat
interface in memory. Payload helpers build the JSON shapes the remote
API returns. Settings points temp files at pytest's tmp_path and uses
zero-length waits so nothing sleeps for real.

RULES:
- No test talks to the network or to Slack
- Every fixture returns fresh objects (no shared state between tests)
"""

from __future__ import annotations

import base64
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from genmedia_bot.config import Settings

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-png-body"
MP4_BYTES = b"\x00\x00\x00\x18ftypmp42fake-mp4-body"


# ---------------------------------------------------------------------------
# Fake chat
# ---------------------------------------------------------------------------


class FakeStatusMessage:
    """Records edits. ``fail_if(text, files)`` may return an exception to raise."""

    def __init__(self, initial_text: str, fail_if: Optional[Callable[[str, list], Optional[Exception]]] = None):
        self.initial_text = initial_text
        self.fail_if = fail_if
        self.edits: List[Tuple[str, List[Path]]] = []
        self.existing_at_edit: List[bool] = []

    async def edit(self, text: str = "", files=()) -> None:
        files = [Path(f) for f in files]
        if self.fail_if is not None:
            error = self.fail_if(text, files)
            if error is not None:
                raise error
        self.edits.append((text, files))
        self.existing_at_edit.append(all(f.exists() for f in files))

    @property
    def last_text(self) -> str:
        return self.edits[-1][0] if self.edits else self.initial_text

    @property
    def last_files(self) -> List[Path]:
        return self.edits[-1][1] if self.edits else []


class FakeConversation:
    def __init__(self, fail_if=None):
        self.fail_if = fail_if
        self.replies: List[FakeStatusMessage] = []

    async def reply(self, text: str) -> FakeStatusMessage:
        message = FakeStatusMessage(text, self.fail_if)
        self.replies.append(message)
        return message

    @property
    def status(self) -> FakeStatusMessage:
        return self.replies[0]


@pytest.fixture
def conversation():
    return FakeConversation()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        api_key="test-key",
        proxy_url="https://proxy.test",
        slack_bot_token="xoxb-test",
        slack_app_token="xapp-test",
        allowed_channel_id="C123",
        poll_interval_s=0.0,
        max_poll_attempts=60,
        max_download_bytes=1024,
        image_cleanup_delay_s=0.01,
        video_cleanup_delay_s=0.01,
        temp_dir=tmp_path / "tmp",
    )


# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------


class ApiPayloads:
    """Builders for the JSON shapes returned by the media API."""

    png = PNG_BYTES
    mp4 = MP4_BYTES

    @staticmethod
    def image_response(*payloads: bytes) -> Dict[str, Any]:
        return {
            "predictions": [
                {"bytesBase64Encoded": base64.b64encode(p).decode("ascii"), "mimeType": "image/png"}
                for p in payloads
            ]
        }

    @staticmethod
    def pending(operation_id: str = "abc123") -> Dict[str, Any]:
        return {"name": "operations/{}".format(operation_id), "done": False}

    @staticmethod
    def done(
        uris: Optional[List[str]] = None,
        filtered_count: int = 0,
        reasons: Optional[List[str]] = None,
        operation_id: str = "abc123",
    ) -> Dict[str, Any]:
        video_response: Dict[str, Any] = {
            "raiMediaFilteredCount": filtered_count,
            "generatedSamples": [{"video": {"uri": uri}} for uri in (uris or [])],
        }
        if reasons is not None:
            video_response["raiMediaFilteredReasons"] = reasons
        return {
            "name": "operations/{}".format(operation_id),
            "done": True,
            "response": {"generateVideoResponse": video_response},
        }

    @staticmethod
    def failed(message: str, code: int = 400) -> Dict[str, Any]:
        return {"name": "operations/abc123", "done": True, "error": {"code": code, "message": message}}


@pytest.fixture
def payloads():
    """Builders for Imagen/Veo response JSON."""
    return ApiPayloads


@pytest.fixture
def make_conversation():
    """Factory for a FakeConversation with an optional failure hook."""
    return FakeConversation
