"""Generation flows, delivery and dispatch: the platform-neutral core.

WHY: The interesting logic (gating, the image request/response flow, the
video polling state machine, delayed cleanup) does not depend on Slack.
Keeping it here makes it testable with fake conversations.

RULES:
- Nothing in core imports slack_bolt or slack_sdk
"""

from genmedia_bot.core.chat import GenerationRequest, InboundMessage, MediaKind
from genmedia_bot.core.delivery import CleanupScheduler, DeliveryAdapter, PendingDelivery
from genmedia_bot.core.dispatcher import CommandDispatcher, parse_command
from genmedia_bot.core.image_flow import ImageFlow, ImageOutcome
from genmedia_bot.core.poller import PollOutcome, PollResult, VideoJobPoller, estimate_remaining

__all__ = [
    "CleanupScheduler",
    "CommandDispatcher",
    "DeliveryAdapter",
    "GenerationRequest",
    "ImageFlow",
    "ImageOutcome",
    "InboundMessage",
    "MediaKind",
    "PendingDelivery",
    "PollOutcome",
    "PollResult",
    "VideoJobPoller",
    "estimate_remaining",
    "parse_command",
]
