"""Slack bot: Socket Mode message handler and the Slack chat adapter.

WHY: Users type ``!imagen ...`` / ``!veo ...`` in a Slack channel. This
module is the glue between Slack events and the platform-neutral core.
It turns message events into InboundMessage objects, and implements the
Conversation/StatusMessage interface on top of the Slack Web API so the
flows can post and keep editing one status message per request.

HOW: Uses slack-bolt's AsyncApp with the async Socket Mode adapter (no
public URL needed). Each message event runs the dispatcher as its own
coroutine, so a ten-minute video poll never blocks other commands.
Replies are threaded chat_postMessage calls; edits are chat_update.
Attachments are uploaded with files_upload_v2 into the same thread and
the status message is updated to point at them.

RULES:
- Uses files_upload_v2 (v1 is deprecated)
- Bot only reacts in ALLOWED_CHANNEL_ID (gating lives in the dispatcher)
- Requires SLACK_BOT_TOKEN, SLACK_APP_TOKEN, GENMEDIA_API_KEY,
  ALLOWED_CHANNEL_ID and PROXY_URL; exits with status 1 otherwise
- Runnable as: python -m genmedia_bot --slack
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Dict

from slack_bolt.adapter.socket_mode.async_handler import AsyncSocketModeHandler
from slack_bolt.async_app import AsyncApp
from slack_sdk.web.async_client import AsyncWebClient

from genmedia_bot import messages
from genmedia_bot.api.client import MediaClient
from genmedia_bot.config import Settings, load_settings
from genmedia_bot.core.chat import InboundMessage
from genmedia_bot.core.delivery import CleanupScheduler, DeliveryAdapter
from genmedia_bot.core.dispatcher import CommandDispatcher
from genmedia_bot.core.files import TempFiles
from genmedia_bot.core.image_flow import ImageFlow
from genmedia_bot.core.poller import VideoJobPoller
from genmedia_bot.errors import ConfigError, UploadError

logger = logging.getLogger(__name__)

# Slack escapes these three characters in message text
_SLACK_ESCAPES = (("&lt;", "<"), ("&gt;", ">"), ("&amp;", "&"))


# ---------------------------------------------------------------------------
# Chat adapter
# ---------------------------------------------------------------------------


class SlackStatusMessage:
    """A bot message in Slack that the flows keep editing."""

    def __init__(self, client: AsyncWebClient, channel: str, ts: str, thread_ts: str = "") -> None:
        self.client = client
        self.channel = channel
        self.ts = ts
        self.thread_ts = thread_ts

    async def edit(self, text: str = "", files: Sequence[Path] = ()) -> None:
        """Replace the message text, or turn it into the delivered files.

        WHY: Slack cannot add attachments to an existing message. To keep
        update-in-place semantics the files are uploaded to the same
        thread and the status message is rewritten to their permalinks,
        so the "processing" message becomes the result message.

        RULES:
        - Upload failures raise UploadError
        - Other Slack errors propagate unchanged
        """
        if files:
            try:
                upload = await self.client.files_upload_v2(
                    channel=self.channel,
                    thread_ts=self.thread_ts or None,
                    file_uploads=[
                        {"file": str(path), "filename": Path(path).name, "title": Path(path).name}
                        for path in files
                    ],
                )
            except Exception as exc:
                raise UploadError(str(exc) or type(exc).__name__) from exc

            links = [f.get("permalink") for f in upload.get("files") or [] if f.get("permalink")]
            if not text:
                text = "\n".join(links)

        await self.client.chat_update(
            channel=self.channel,
            ts=self.ts,
            text=text or messages.DELIVERED,
        )


class SlackConversation:
    """Threaded replies to one inbound Slack message."""

    def __init__(self, client: AsyncWebClient, channel: str, thread_ts: str = "") -> None:
        self.client = client
        self.channel = channel
        self.thread_ts = thread_ts

    async def reply(self, text: str) -> SlackStatusMessage:
        resp = await self.client.chat_postMessage(
            channel=self.channel,
            thread_ts=self.thread_ts or None,
            text=text,
        )
        return SlackStatusMessage(self.client, self.channel, resp.get("ts", ""), self.thread_ts)


# ---------------------------------------------------------------------------
# Event handling
# ---------------------------------------------------------------------------


def to_inbound_message(event: Dict[str, Any]) -> InboundMessage:
    """Convert a Slack ``message`` event into an InboundMessage.

    RULES:
    - bot_id or subtype "bot_message" marks the sender as a bot
    - Slack's &lt; &gt; &amp; escapes are undone in the text
    - Replies go to the message's thread, or start one on the message
    """
    text = event.get("text") or ""
    for escaped, raw in _SLACK_ESCAPES:
        text = text.replace(escaped, raw)

    ts = event.get("ts", "")
    return InboundMessage(
        text=text,
        channel_id=event.get("channel", ""),
        user_id=event.get("user", ""),
        is_bot=bool(event.get("bot_id")) or event.get("subtype") == "bot_message",
        ts=ts,
        thread_ts=event.get("thread_ts") or ts,
    )


async def handle_message(event: Dict[str, Any], client: AsyncWebClient, dispatcher: CommandDispatcher) -> Any:
    """Handle a Slack message event by passing it to the dispatcher."""
    message = to_inbound_message(event)
    if not dispatcher.accepts(message):
        return None

    conversation = SlackConversation(client, message.channel_id, message.thread_ts)
    return await dispatcher.dispatch(message, conversation)


# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------


def build_dispatcher(
    settings: Settings,
    client: MediaClient,
    scheduler: CleanupScheduler | None = None,
) -> CommandDispatcher:
    """Wire the flows and the delivery adapter around one MediaClient."""
    delivery = DeliveryAdapter(scheduler or CleanupScheduler())
    temp_files = TempFiles(settings.temp_dir)
    return CommandDispatcher(
        settings,
        ImageFlow(settings, client, delivery, temp_files),
        VideoJobPoller(settings, client, delivery, temp_files),
    )


def create_app(settings: Settings, dispatcher: CommandDispatcher) -> AsyncApp:
    """Create the Bolt app and register the message handler.

    WHY: Factory function so tests can build an app with their own
    dispatcher and no module-level side effects.
    """
    app = AsyncApp(token=settings.slack_bot_token)

    async def on_message(event: Dict[str, Any], client: AsyncWebClient) -> None:
        await handle_message(event, client, dispatcher)

    app.event("message")(on_message)
    return app


async def serve(settings: Settings) -> None:
    """Run the bot until the Socket Mode connection is closed."""
    scheduler = CleanupScheduler()
    async with MediaClient(settings) as media_client:
        dispatcher = build_dispatcher(settings, media_client, scheduler)
        app = create_app(settings, dispatcher)
        handler = AsyncSocketModeHandler(app, settings.slack_app_token)
        try:
            await handler.start_async()
        finally:
            await scheduler.join()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Start the Slack bot in Socket Mode.

    RULES:
    - Exits with status 1 and a descriptive log line on ConfigError
    - Blocks until the Socket Mode handler stops
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        settings = load_settings()
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        sys.exit(1)

    logging.getLogger().setLevel(settings.log_level)

    logger.info("Proxy service URL: %s", settings.proxy_url)
    logger.info("API key: %s", "configured" if settings.api_key else "missing")
    logger.info("Watching channel: %s", settings.allowed_channel_id)
    logger.info("Models: %s (images), %s (video)", settings.imagen_model, settings.veo_model)
    logger.info("Starting Slack bot in Socket Mode...")

    asyncio.run(serve(settings))


if __name__ == "__main__":
    main()
