"""Chat-facing types shared by the flows and the chat adapters.

WHY: The flows only need three things from a chat platform: read an
inbound message, post a reply, and edit that reply (optionally with
attachments). Describing exactly that keeps the flows platform-neutral
and lets tests use simple fakes instead of a mocked Slack client.

HOW: InboundMessage is a plain dataclass filled in by the adapter.
Conversation and StatusMessage are typing Protocols implemented by
slack.bot (Slack) and cli (terminal).

RULES:
- StatusMessage.edit with files replaces the message content in place
- StatusMessage.edit raises on failure; callers decide whether to swallow
"""

from __future__ import annotations

import enum
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol


class MediaKind(str, enum.Enum):
    """What a request asks the remote service to generate."""

    IMAGE = "image"
    VIDEO = "video"


@dataclass(frozen=True)
class GenerationRequest:
    """A single user request, created on dispatch and never mutated."""

    prompt: str
    kind: MediaKind
    requested_at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class InboundMessage:
    """A chat message as seen by the dispatcher.

    RULES:
    - is_bot is True for messages from bots (including ourselves)
    - thread_ts is the thread the reply should go to, if any
    """

    text: str
    channel_id: str
    user_id: str = ""
    is_bot: bool = False
    ts: str = ""
    thread_ts: str = ""


class StatusMessage(Protocol):
    """A message the bot posted and can keep editing."""

    async def edit(self, text: str = "", files: Sequence[Path] = ()) -> None: ...


class Conversation(Protocol):
    """Where replies to one inbound message go."""

    async def reply(self, text: str) -> StatusMessage: ...
