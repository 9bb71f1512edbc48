"""Command-line interface: run one image or video generation from a terminal.

WHY: Operators want to check the API key, the proxy and the models
without going through Slack. The CLI runs exactly the same flows the bot
runs, with a terminal standing in for the chat thread.

HOW: argparse picks the command (imagen / veo) and prompt. A
TerminalConversation prints every status message to stderr and copies
delivered files into --output-dir before the delayed cleanup removes the
temp copies. The async flow runs via asyncio.run().

RULES:
- Needs GENMEDIA_API_KEY and PROXY_URL only (no Slack variables)
- Status output goes to stderr; saved file paths go to stdout
- Exit status 0 on delivery, 1 on any other outcome, 2 on usage errors
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import shutil
import sys
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from genmedia_bot import messages
from genmedia_bot.api.client import MediaClient
from genmedia_bot.config import Settings, load_settings
from genmedia_bot.core.chat import GenerationRequest, MediaKind
from genmedia_bot.core.delivery import CleanupScheduler, DeliveryAdapter
from genmedia_bot.core.dispatcher import COMMAND_KINDS
from genmedia_bot.core.files import TempFiles
from genmedia_bot.core.image_flow import ImageFlow, ImageOutcome
from genmedia_bot.core.poller import PollOutcome, VideoJobPoller
from genmedia_bot.errors import ConfigError, UsageError


def _status(msg: str) -> None:
    """Print a status message to stderr."""
    print(msg, file=sys.stderr, flush=True)


class TerminalStatusMessage:
    """Prints edits; saves attachments into the output directory."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = output_dir
        self.saved: List[Path] = []

    async def edit(self, text: str = "", files: Sequence[Path] = ()) -> None:
        if text:
            _status(text)
        if files:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            for path in files:
                target = self.output_dir / Path(path).name
                shutil.copy2(path, target)
                self.saved.append(target)
                print(target, flush=True)


class TerminalConversation:
    """Stands in for a chat thread: replies print to stderr."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = output_dir
        self.messages: List[TerminalStatusMessage] = []

    async def reply(self, text: str) -> TerminalStatusMessage:
        _status(text)
        message = TerminalStatusMessage(self.output_dir)
        self.messages.append(message)
        return message


async def _run(settings: Settings, kind: MediaKind, prompt: str, output_dir: Path) -> bool:
    scheduler = CleanupScheduler()
    delivery = DeliveryAdapter(scheduler)
    temp_files = TempFiles(settings.temp_dir)
    conversation = TerminalConversation(output_dir)
    request = GenerationRequest(prompt=prompt, kind=kind)

    async with MediaClient(settings) as client:
        if kind is MediaKind.IMAGE:
            outcome = await ImageFlow(settings, client, delivery, temp_files).run(request, conversation)
            ok = outcome is ImageOutcome.DELIVERED
        else:
            result = await VideoJobPoller(settings, client, delivery, temp_files).run(request, conversation)
            ok = result.outcome is PollOutcome.SUCCEEDED

    await scheduler.join()
    return ok


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="genmedia_bot",
        description="Generate an image (Imagen) or a video (Veo) from a text prompt.",
    )
    parser.add_argument(
        "command",
        choices=sorted(COMMAND_KINDS),
        help="imagen for an image, veo for a video",
    )
    parser.add_argument("prompt", nargs="+", help="Description of the media to generate")
    parser.add_argument(
        "-o", "--output-dir",
        type=Path,
        default=Path("."),
        help="Directory to save delivered files (default: current directory)",
    )
    parser.add_argument(
        "--max-attempts",
        type=int,
        default=None,
        help="Override MAX_POLL_ATTEMPTS for this run (veo only)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(require_slack=False)
    except ConfigError as exc:
        _status("Configuration error: {}".format(exc))
        sys.exit(1)

    if args.max_attempts is not None:
        if args.max_attempts < 1:
            _status("--max-attempts must be at least 1")
            sys.exit(2)
        settings = replace(settings, max_poll_attempts=args.max_attempts)

    prompt = " ".join(" ".join(args.prompt).split())
    try:
        ok = asyncio.run(_run(settings, COMMAND_KINDS[args.command], prompt, args.output_dir))
    except UsageError as exc:
        _status(messages.usage(exc.command, settings.command_prefix))
        sys.exit(2)

    sys.exit(0 if ok else 1)

