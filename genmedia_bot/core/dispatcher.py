"""Command dispatcher: route chat messages to the image or video flow.

WHY: Every message in the channel reaches the bot; only a few are
commands for it. The dispatcher does the gating and is also the last
line of defence: nothing raised by a flow may escape to the chat SDK.

HOW: parse_command() splits prefixed text into (command, prompt). The
CommandDispatcher checks sender, channel and prefix, builds a
GenerationRequest, and runs the matching flow. UsageError becomes a
usage hint; anything else unexpected becomes a generic service error.

RULES:
- Bot messages, other channels and unprefixed text are ignored
- Command matching is case-insensitive; unknown commands are ignored
- The prompt is the remaining tokens joined with single spaces
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Tuple

from genmedia_bot import messages
from genmedia_bot.config import Settings
from genmedia_bot.core.chat import Conversation, GenerationRequest, InboundMessage, MediaKind
from genmedia_bot.core.image_flow import ImageFlow
from genmedia_bot.core.poller import VideoJobPoller
from genmedia_bot.errors import UsageError

logger = logging.getLogger(__name__)

COMMAND_KINDS = {
    "imagen": MediaKind.IMAGE,
    "veo": MediaKind.VIDEO,
}


def parse_command(text: str, prefix: str = "!") -> Optional[Tuple[str, str]]:
    """Split ``!command some prompt`` into ("command", "some prompt").

    RULES:
    - Returns None when text does not start with prefix or has no command
    - Command is lower-cased; prompt may be empty
    """
    if not prefix or not text.startswith(prefix):
        return None

    tokens = text[len(prefix):].split()
    if not tokens:
        return None

    return tokens[0].lower(), " ".join(tokens[1:])


class CommandDispatcher:
    """Gate inbound messages and run the matching generation flow."""

    def __init__(
        self,
        settings: Settings,
        image_flow: ImageFlow,
        video_poller: VideoJobPoller,
    ) -> None:
        self._settings = settings
        self._image_flow = image_flow
        self._video_poller = video_poller

    def accepts(self, message: InboundMessage) -> bool:
        if message.is_bot:
            return False
        if message.channel_id != self._settings.allowed_channel_id:
            return False
        return message.text.startswith(self._settings.command_prefix)

    async def dispatch(self, message: InboundMessage, conversation: Conversation) -> Any:
        """Handle one inbound message; returns the flow result or None.

        RULES:
        - Never raises; failures are reported in the conversation
        """
        if not self.accepts(message):
            return None

        parsed = parse_command(message.text, self._settings.command_prefix)
        if parsed is None:
            return None
        command, prompt = parsed

        kind = COMMAND_KINDS.get(command)
        if kind is None:
            return None

        request = GenerationRequest(prompt=prompt, kind=kind)
        logger.info("Dispatching %s request from %s", kind.value, message.user_id or "unknown user")

        try:
            if kind is MediaKind.IMAGE:
                return await self._image_flow.run(request, conversation)
            return await self._video_poller.run(request, conversation)
        except UsageError as exc:
            await self._safe_reply(conversation, messages.usage(exc.command, self._settings.command_prefix))
        except Exception:
            logger.exception("Command execution error")
            await self._safe_reply(conversation, messages.SERVICE_ERROR)
        return None

    async def _safe_reply(self, conversation: Conversation, text: str) -> None:
        try:
            await conversation.reply(text)
        except Exception:
            logger.exception("Failed to send reply")
