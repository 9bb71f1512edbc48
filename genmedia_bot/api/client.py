"""Async HTTP client for the Imagen / Veo generation API (via proxy).

WHY: The flows need to submit image jobs, submit long-running video jobs,
check operation status, and download generated assets. This module hides
the endpoints, auth header and failure mapping behind a single class so
the flows (and tests) never see HTTP details.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. MediaClient is an
async context manager. Enter it to get an authenticated client, exit to
close the connection pool. Each API call is a separate method:
submit_image, submit_video → get_operation (repeated) → download_asset.

RULES:
- Always use the async context manager (async with MediaClient(...) as client:)
- The API key goes in the x-goog-api-key header of every API call
- No retries here: the poller decides what to retry
- get_operation raises TransientError for anything but a parseable 2xx
- download_asset never leaves a truncated file behind
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from urllib.parse import urlsplit

import httpx

from genmedia_bot.api.models import ImagePrediction, Operation
from genmedia_bot.config import IMAGE_PARAMETERS, VIDEO_PARAMETERS, Settings
from genmedia_bot.errors import DownloadError, TransientError, UpstreamError

logger = logging.getLogger(__name__)

_API_KEY_HEADER = "x-goog-api-key"
_CHUNK_SIZE = 64 * 1024


class MediaClient:
    """Async client for the remote generative-media API.

    WHY: Provides a typed interface for the four calls the bot makes and
    maps every failure onto the error taxonomy in genmedia_bot.errors.

    HOW: Wraps httpx.AsyncClient with the proxy base URL from Settings
    and adds the API key header per request. Per-call timeouts come from Settings too.

    RULES:
    - Use as: async with MediaClient(settings) as client: ...
    - transport is for tests (httpx.MockTransport)
    - No state is kept between calls besides the connection pool
    """

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._base_url = settings.proxy_url.rstrip("/")
        self._transport = transport
        self._auth_headers = {_API_KEY_HEADER: settings.api_key}
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> MediaClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(self._settings.status_timeout_s, connect=30.0),
            transport=self._transport,
            event_hooks={"request": [self._strip_foreign_key]},
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "MediaClient must be used as an async context manager: "
                "async with MediaClient(settings) as client: ..."
            )
        return self._client

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    async def submit_image(
        self,
        prompt: str,
        parameters: dict | None = None,
    ) -> list[ImagePrediction]:
        """Generate images synchronously and return the predictions.

        HOW: POSTs to the Imagen :predict endpoint with the static image
        parameters (overridable per call) and parses ``predictions``.

        RULES:
        - Non-2xx or transport failure raises UpstreamError
        - A response without ``predictions`` returns an empty list
        """
        client = self._ensure_client()
        path = (
            "/v1/projects/any-project-id/locations/any-location/publishers/google/"
            "models/{}:predict".format(self._settings.imagen_model)
        )
        body = {
            "instances": [{"prompt": prompt}],
            "parameters": dict(parameters if parameters is not None else IMAGE_PARAMETERS),
        }

        data = await self._post_json(client, path, body, self._settings.image_timeout_s)
        return [ImagePrediction.from_dict(p or {}) for p in data.get("predictions") or []]

    # ------------------------------------------------------------------
    # Video
    # ------------------------------------------------------------------

    async def submit_video(
        self,
        prompt: str,
        parameters: dict | None = None,
    ) -> str:
        """Start a long-running video job and return its operation id.

        HOW: POSTs to the Veo :predictLongRunning endpoint. The response
        ``name`` looks like ``operations/<id>``; the last path segment is
        the id used for status polling.

        RULES:
        - Submission timeout is long (video_submit_timeout_s, ~320s)
        - A response without ``name`` raises UpstreamError
        """
        client = self._ensure_client()
        path = "/v1beta/models/{}:predictLongRunning".format(self._settings.veo_model)
        body = {
            "instances": [{"prompt": prompt}],
            "parameters": dict(parameters if parameters is not None else VIDEO_PARAMETERS),
        }

        data = await self._post_json(client, path, body, self._settings.video_submit_timeout_s)
        name = data.get("name")
        if not name:
            raise UpstreamError(None, "Response did not include an operation name")

        operation_id = str(name).rstrip("/").split("/")[-1]
        logger.info("Submitted video job, operation %s", operation_id)
        return operation_id

    async def get_operation(self, operation_id: str) -> Operation:
        """Fetch the current status of a video operation.

        RULES:
        - Network errors, timeouts, non-2xx responses, invalid JSON and
          bodies of the wrong shape all raise TransientError; the caller
          owns the retry budget
        - A well-formed "done": false response is returned, not raised
        """
        client = self._ensure_client()
        try:
            resp = await client.get(
                "/v1beta/operations/{}".format(operation_id),
                headers=self._auth_headers,
            )
        except httpx.HTTPError as exc:
            raise TransientError("Status request failed: {}".format(str(exc) or type(exc).__name__)) from exc

        if resp.status_code != 200:
            raise TransientError(
                "Status request returned HTTP {}: {}".format(resp.status_code, resp.text[:200])
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise TransientError("Status response was not valid JSON") from exc
        if not isinstance(data, dict):
            raise TransientError("Status response was not a JSON object")

        try:
            return Operation.from_dict(operation_id, data)
        except (AttributeError, TypeError, ValueError) as exc:
            raise TransientError("Status response was malformed: {}".format(exc)) from exc

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    async def download_asset(self, uri: str, destination: Path) -> int:
        """Stream a generated asset to ``destination`` and return its size.

        WHY: Generated videos can be large. Streaming with a hard byte
        ceiling keeps memory flat and refuses anything the chat platform
        could not accept anyway.

        HOW: Rejects a declared Content-Length above the ceiling before
        reading the body, then counts bytes while writing and aborts as
        soon as the running total passes the ceiling. The whole transfer
        runs under asyncio.wait_for, so a server that drips bytes slowly
        still hits the time limit.

        RULES:
        - Ceiling is Settings.max_download_bytes
        - download_timeout_s bounds the whole transfer, not each read
        - Any failure removes the partial file and raises DownloadError
        - The API key is only sent to the API host, redirects included
        """
        client = self._ensure_client()
        timeout = self._settings.download_timeout_s
        destination = Path(destination)

        try:
            written = await asyncio.wait_for(
                self._stream_to_file(client, uri, destination),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            destination.unlink(missing_ok=True)
            raise DownloadError(
                "Asset download exceeded the {:g}s time limit".format(timeout)
            ) from exc
        except DownloadError:
            destination.unlink(missing_ok=True)
            raise
        except (httpx.HTTPError, OSError) as exc:
            destination.unlink(missing_ok=True)
            raise DownloadError("Asset download failed: {}".format(str(exc) or type(exc).__name__)) from exc

        logger.info("Downloaded %s (%d bytes)", destination.name, written)
        return written

    async def _stream_to_file(self, client: httpx.AsyncClient, uri: str, destination: Path) -> int:
        limit = self._settings.max_download_bytes
        headers = self._auth_headers if self._is_api_host(uri) else {}
        written = 0

        async with client.stream(
            "GET",
            uri,
            headers=headers,
            timeout=self._settings.download_timeout_s,
            follow_redirects=True,
        ) as resp:
            if resp.status_code != 200:
                raise DownloadError("Asset download returned HTTP {}".format(resp.status_code))

            declared = resp.headers.get("content-length")
            if declared and declared.isdigit() and int(declared) > limit:
                raise DownloadError(
                    "Asset is {:,} bytes, over the {:,} byte limit".format(int(declared), limit)
                )

            with open(destination, "wb") as f:
                async for chunk in resp.aiter_bytes(_CHUNK_SIZE):
                    written += len(chunk)
                    if written > limit:
                        raise DownloadError(
                            "Asset exceeded the {:,} byte limit".format(limit)
                        )
                    f.write(chunk)

        return written

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _post_json(
        self,
        client: httpx.AsyncClient,
        path: str,
        body: dict,
        timeout: float,
    ) -> dict:
        """POST a JSON body and return the decoded object, mapping failures."""
        try:
            resp = await client.post(
                path, json=body, headers=self._auth_headers, timeout=timeout
            )
        except httpx.HTTPError as exc:
            raise UpstreamError(None, str(exc) or type(exc).__name__) from exc

        if resp.status_code not in (200, 201):
            raise UpstreamError(resp.status_code, resp.text)

        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamError(resp.status_code, "Response was not valid JSON") from exc
        if not isinstance(data, dict):
            raise UpstreamError(resp.status_code, "Response was not a JSON object")
        return data

    async def _strip_foreign_key(self, request: httpx.Request) -> None:
        """Request hook: drop the API key from requests leaving the API host.

        httpx only strips Authorization on cross-origin redirects, so a
        proxy URI that redirects to a signed CDN URL would otherwise carry
        the key along.
        """
        if request.url.host != httpx.URL(self._base_url).host:
            request.headers.pop(_API_KEY_HEADER, None)

    def _is_api_host(self, uri: str) -> bool:
        target = urlsplit(uri)
        if not target.scheme:
            return True  # relative path, resolved against the base URL
        return target.netloc == urlsplit(self._base_url).netloc
