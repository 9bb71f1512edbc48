"""Tests for the async Media API client.

WHY: The client is the only place that knows endpoint paths, the auth
header and how HTTP failures map onto the error taxonomy. The poller's
retry rules depend on get_operation raising TransientError (and only
that), and delivery depends on download_asset never leaving a partial
file behind.

HOW: MediaClient gets an httpx.MockTransport whose handler inspects the
request and returns a canned response. Each test runs its coroutine with
asyncio.run().

RULES:
- No real network traffic
- Handlers record requests so tests can assert on paths and headers
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import replace

import httpx
import pytest

from genmedia_bot.api.client import MediaClient
from genmedia_bot.config import IMAGE_PARAMETERS, VIDEO_PARAMETERS
from genmedia_bot.errors import DownloadError, TransientError, UpstreamError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class _Recorder:
    """MockTransport handler that records requests and replays a response."""

    def __init__(self, responder):
        self.responder = responder
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)


def _call(settings, handler, method, *args):
    """Run ``client.<method>(*args)`` inside the async context manager."""

    async def _go():
        async with MediaClient(settings, transport=httpx.MockTransport(handler)) as client:
            return await getattr(client, method)(*args)

    return asyncio.run(_go())


async def _chunks(*parts: bytes):
    for part in parts:
        yield part


# ---------------------------------------------------------------------------
# Context manager
# ---------------------------------------------------------------------------


class TestContextManager:
    def test_requires_context_manager(self, settings):
        client = MediaClient(settings)
        with pytest.raises(RuntimeError, match="async context manager"):
            asyncio.run(client.get_operation("abc123"))


# ---------------------------------------------------------------------------
# submit_image
# ---------------------------------------------------------------------------


class TestSubmitImage:
    """Tests for the Imagen predict call."""

    def test_posts_prompt_and_parameters(self, settings, payloads):
        handler = _Recorder(lambda r: httpx.Response(200, json=payloads.image_response(payloads.png)))

        predictions = _call(settings, handler, "submit_image", "a red balloon over a city")

        request = handler.requests[0]
        assert request.method == "POST"
        assert request.url.path == (
            "/v1/projects/any-project-id/locations/any-location/publishers/google/"
            "models/imagen-3.0-generate-002:predict"
        )
        assert request.headers["x-goog-api-key"] == "test-key"
        body = json.loads(request.content)
        assert body["instances"] == [{"prompt": "a red balloon over a city"}]
        assert body["parameters"] == IMAGE_PARAMETERS
        assert len(predictions) == 1
        assert predictions[0].bytes_base64

    def test_missing_predictions_is_empty(self, settings):
        handler = _Recorder(lambda r: httpx.Response(200, json={}))

        assert _call(settings, handler, "submit_image", "x") == []

    def test_http_error_raises_upstream_error(self, settings):
        handler = _Recorder(lambda r: httpx.Response(500, text="internal"))

        with pytest.raises(UpstreamError) as exc_info:
            _call(settings, handler, "submit_image", "x")

        assert exc_info.value.status_code == 500

    def test_transport_error_raises_upstream_error(self, settings):
        def boom(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(UpstreamError) as exc_info:
            _call(settings, _Recorder(boom), "submit_image", "x")

        assert exc_info.value.status_code is None


# ---------------------------------------------------------------------------
# submit_video
# ---------------------------------------------------------------------------


class TestSubmitVideo:
    """Tests for the Veo long-running submit call."""

    def test_returns_last_segment_of_operation_name(self, settings):
        handler = _Recorder(
            lambda r: httpx.Response(200, json={"name": "models/veo/operations/abc123"})
        )

        operation_id = _call(settings, handler, "submit_video", "a cat surfing a wave")

        assert operation_id == "abc123"
        request = handler.requests[0]
        assert request.url.path == "/v1beta/models/veo-3.0-generate-preview:predictLongRunning"
        assert json.loads(request.content)["parameters"] == VIDEO_PARAMETERS

    def test_missing_name_raises(self, settings):
        handler = _Recorder(lambda r: httpx.Response(200, json={"done": False}))

        with pytest.raises(UpstreamError, match="operation name"):
            _call(settings, handler, "submit_video", "x")

    def test_rejected_submission(self, settings):
        handler = _Recorder(lambda r: httpx.Response(400, text="bad prompt"))

        with pytest.raises(UpstreamError) as exc_info:
            _call(settings, handler, "submit_video", "x")

        assert exc_info.value.status_code == 400


# ---------------------------------------------------------------------------
# get_operation
# ---------------------------------------------------------------------------


class TestGetOperation:
    """Tests for status polling and its failure mapping."""

    def test_pending_operation(self, settings, payloads):
        handler = _Recorder(lambda r: httpx.Response(200, json=payloads.pending()))

        operation = _call(settings, handler, "get_operation", "abc123")

        assert operation.id == "abc123"
        assert operation.done is False
        assert handler.requests[0].url.path == "/v1beta/operations/abc123"
        assert handler.requests[0].headers["x-goog-api-key"] == "test-key"

    def test_done_operation_parsed(self, settings, payloads):
        status = payloads.done(["https://x/a.mp4", "https://x/b.mp4"], filtered_count=0)
        handler = _Recorder(lambda r: httpx.Response(200, json=status))

        operation = _call(settings, handler, "get_operation", "abc123")

        assert operation.done is True
        assert operation.error is None
        assert [s.uri for s in operation.response.samples] == ["https://x/a.mp4", "https://x/b.mp4"]

    def test_missing_container_is_none(self, settings):
        handler = _Recorder(lambda r: httpx.Response(200, json={"done": True, "response": {}}))

        operation = _call(settings, handler, "get_operation", "abc123")

        assert operation.done is True
        assert operation.response is None

    def test_error_operation_parsed(self, settings, payloads):
        handler = _Recorder(lambda r: httpx.Response(200, json=payloads.failed("quota exceeded", 429)))

        operation = _call(settings, handler, "get_operation", "abc123")

        assert operation.error.message == "quota exceeded"
        assert operation.error.code == 429

    @pytest.mark.parametrize("status_code", [404, 500, 503])
    def test_non_200_is_transient(self, settings, status_code):
        handler = _Recorder(lambda r: httpx.Response(status_code, text="nope"))

        with pytest.raises(TransientError, match=str(status_code)):
            _call(settings, handler, "get_operation", "abc123")

    def test_timeout_is_transient(self, settings):
        def slow(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(TransientError, match="timed out"):
            _call(settings, _Recorder(slow), "get_operation", "abc123")

    def test_invalid_json_is_transient(self, settings):
        handler = _Recorder(lambda r: httpx.Response(200, text="<html>gateway</html>"))

        with pytest.raises(TransientError, match="JSON"):
            _call(settings, handler, "get_operation", "abc123")

    @pytest.mark.parametrize(
        "body",
        [
            {"done": True, "response": "oops"},
            {"done": True, "error": "quota exceeded"},
            {
                "done": True,
                "response": {"generateVideoResponse": {"raiMediaFilteredCount": "n/a"}},
            },
        ],
    )
    def test_wrong_shape_is_transient(self, settings, body):
        """A 200 with fields of the wrong type counts as a failed poll."""
        handler = _Recorder(lambda r: httpx.Response(200, json=body))

        with pytest.raises(TransientError, match="malformed"):
            _call(settings, handler, "get_operation", "abc123")


# ---------------------------------------------------------------------------
# download_asset
# ---------------------------------------------------------------------------


class TestDownloadAsset:
    """Tests for streamed downloads under the byte ceiling."""

    def test_writes_file_and_returns_size(self, settings, payloads, tmp_path):
        handler = _Recorder(lambda r: httpx.Response(200, content=payloads.mp4))
        destination = tmp_path / "video.mp4"

        size = _call(settings, handler, "download_asset", "https://cdn.test/v.mp4", destination)

        assert size == len(payloads.mp4)
        assert destination.read_bytes() == payloads.mp4

    def test_api_key_only_sent_to_api_host(self, settings, payloads, tmp_path):
        handler = _Recorder(lambda r: httpx.Response(200, content=payloads.mp4))

        _call(settings, handler, "download_asset", "https://cdn.test/v.mp4", tmp_path / "a.mp4")
        _call(settings, handler, "download_asset", "https://proxy.test/files/v.mp4", tmp_path / "b.mp4")

        assert "x-goog-api-key" not in handler.requests[0].headers
        assert handler.requests[1].headers["x-goog-api-key"] == "test-key"

    def test_declared_length_over_limit(self, settings, tmp_path):
        handler = _Recorder(lambda r: httpx.Response(200, content=b"x" * 2048))
        destination = tmp_path / "big.mp4"

        with pytest.raises(DownloadError, match="limit"):
            _call(settings, handler, "download_asset", "https://cdn.test/v.mp4", destination)

        assert not destination.exists()

    def test_streamed_body_over_limit(self, settings, tmp_path):
        """No Content-Length: the running total still stops the download."""
        handler = _Recorder(
            lambda r: httpx.Response(200, content=_chunks(b"x" * 600, b"x" * 600))
        )
        destination = tmp_path / "big.mp4"

        with pytest.raises(DownloadError, match="limit"):
            _call(settings, handler, "download_asset", "https://cdn.test/v.mp4", destination)

        assert not destination.exists()

    def test_http_error_status(self, settings, tmp_path):
        handler = _Recorder(lambda r: httpx.Response(403, text="forbidden"))
        destination = tmp_path / "v.mp4"

        with pytest.raises(DownloadError, match="403"):
            _call(settings, handler, "download_asset", "https://cdn.test/v.mp4", destination)

        assert not destination.exists()

    def test_connection_error(self, settings, tmp_path):
        def boom(request):
            raise httpx.ConnectError("connection reset", request=request)

        with pytest.raises(DownloadError, match="connection reset"):
            _call(settings, _Recorder(boom), "download_asset", "https://cdn.test/v.mp4", tmp_path / "v.mp4")

    def test_redirect_off_api_host_drops_api_key(self, settings, payloads, tmp_path):
        """A proxy URI redirecting to a signed CDN URL must not leak the key."""

        def respond(request):
            if request.url.host == "proxy.test":
                return httpx.Response(302, headers={"location": "https://cdn.other/v.mp4"})
            return httpx.Response(200, content=payloads.mp4)

        handler = _Recorder(respond)
        destination = tmp_path / "v.mp4"

        _call(settings, handler, "download_asset", "https://proxy.test/files/v.mp4", destination)

        assert [r.url.host for r in handler.requests] == ["proxy.test", "cdn.other"]
        assert handler.requests[0].headers["x-goog-api-key"] == "test-key"
        assert "x-goog-api-key" not in handler.requests[1].headers
        assert destination.read_bytes() == payloads.mp4

    def test_slow_body_hits_total_time_limit(self, settings, tmp_path):
        """Each read is quick but the transfer as a whole runs too long."""

        async def drip():
            for _ in range(20):
                yield b"x"
                await asyncio.sleep(0.05)

        settings = replace(settings, download_timeout_s=0.2)
        handler = _Recorder(lambda r: httpx.Response(200, content=drip()))
        destination = tmp_path / "v.mp4"

        with pytest.raises(DownloadError, match="time limit"):
            _call(settings, handler, "download_asset", "https://cdn.test/v.mp4", destination)

        assert not destination.exists()
