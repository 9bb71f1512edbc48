"""Configuration constants, request parameters, and .env loading.

WHY: Tokens, the API key, the allowed channel and the proxy URL come from
the environment; polling and download limits have sensible defaults that
operators occasionally tune. Keeping all of it in one place, and in one
immutable Settings object, means the client, flows and dispatcher never
read os.environ themselves.

HOW: python-dotenv loads the .env file on import. Static request
parameters (aspect ratio, safety level, person-generation policy) are
plain module-level dicts. load_settings() reads the environment once,
validates required values and returns a frozen Settings dataclass.

RULES:
- Secrets are loaded from .env / the environment, never hardcoded
- Missing required values raise ConfigError naming every missing variable
- Settings is frozen: treat it as read-only after startup
- Image/video request parameters are configuration, not user data
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from genmedia_bot.errors import ConfigError

# Load .env from the working directory (where the bot is started from)
load_dotenv()

# ---------------------------------------------------------------------------
# Static request parameters
# ---------------------------------------------------------------------------

IMAGE_PARAMETERS: dict = {
    "sampleCount": 1,
    "aspectRatio": "1:1",
    "personGeneration": "allow_all",  # allow_all, allow_adult, deny_all
    "safetySetting": "block_few",  # block_few, block_some, block_most
    "includeRaiReason": True,
    "addWatermark": False,
    "enhancePrompt": False,
    "language": "auto",
}

VIDEO_PARAMETERS: dict = {
    "aspectRatio": "16:9",
    "sampleCount": 1,
    "personGeneration": "allow_all",
}

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_IMAGEN_MODEL = "imagen-3.0-generate-002"
DEFAULT_VEO_MODEL = "veo-3.0-generate-preview"
DEFAULT_COMMAND_PREFIX = "!"

DEFAULT_POLL_INTERVAL_S = 10.0
DEFAULT_MAX_POLL_ATTEMPTS = 60  # 10 minutes at 10s per poll

DEFAULT_MAX_DOWNLOAD_BYTES = 50 * 1024 * 1024
DEFAULT_DOWNLOAD_TIMEOUT_S = 60.0
DEFAULT_IMAGE_TIMEOUT_S = 120.0
DEFAULT_VIDEO_SUBMIT_TIMEOUT_S = 320.0
DEFAULT_STATUS_TIMEOUT_S = 30.0

DEFAULT_IMAGE_CLEANUP_DELAY_S = 15.0
DEFAULT_VIDEO_CLEANUP_DELAY_S = 30.0

# Env var -> hint shown when it is missing
_REQUIRED_API_VARS = {
    "GENMEDIA_API_KEY": "Add GENMEDIA_API_KEY=your_api_key to the .env file",
    "PROXY_URL": "Add PROXY_URL=https://your-proxy.example to the .env file",
}
_REQUIRED_SLACK_VARS = {
    "SLACK_BOT_TOKEN": "Add SLACK_BOT_TOKEN=xoxb-... to the .env file",
    "SLACK_APP_TOKEN": "Add SLACK_APP_TOKEN=xapp-... to the .env file (Socket Mode)",
    "ALLOWED_CHANNEL_ID": "Add ALLOWED_CHANNEL_ID=C0123456789 to the .env file",
}


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, read once at startup.

    WHY: The Media Client, the flows and the dispatcher all need parts of
    the configuration. Passing one explicit object into their constructors
    keeps them free of ambient global state and easy to build in tests.

    RULES:
    - api_key and proxy_url are always present
    - Slack fields are empty strings when loaded with require_slack=False
    """

    api_key: str
    proxy_url: str
    slack_bot_token: str = ""
    slack_app_token: str = ""
    allowed_channel_id: str = ""
    command_prefix: str = DEFAULT_COMMAND_PREFIX
    imagen_model: str = DEFAULT_IMAGEN_MODEL
    veo_model: str = DEFAULT_VEO_MODEL
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S
    max_poll_attempts: int = DEFAULT_MAX_POLL_ATTEMPTS
    max_download_bytes: int = DEFAULT_MAX_DOWNLOAD_BYTES
    download_timeout_s: float = DEFAULT_DOWNLOAD_TIMEOUT_S
    image_timeout_s: float = DEFAULT_IMAGE_TIMEOUT_S
    video_submit_timeout_s: float = DEFAULT_VIDEO_SUBMIT_TIMEOUT_S
    status_timeout_s: float = DEFAULT_STATUS_TIMEOUT_S
    image_cleanup_delay_s: float = DEFAULT_IMAGE_CLEANUP_DELAY_S
    video_cleanup_delay_s: float = DEFAULT_VIDEO_CLEANUP_DELAY_S
    temp_dir: Path = Path("tmp")
    log_level: str = "INFO"


def load_settings(require_slack: bool = True) -> Settings:
    """Build Settings from the environment, validating required values.

    WHY: A bot that starts without its key or channel fails much later in
    confusing ways. Validating up front gives one clear message.

    HOW: Collects every missing required variable, then raises a single
    ConfigError listing them with a fix hint each. Optional values are
    parsed with their defaults.

    RULES:
    - require_slack=False skips the Slack-only variables (terminal CLI)
    - Numeric values that fail to parse raise ConfigError, not ValueError
    """
    required = dict(_REQUIRED_API_VARS)
    if require_slack:
        required.update(_REQUIRED_SLACK_VARS)

    missing = [name for name in required if not os.getenv(name, "").strip()]
    if missing:
        lines = ["Missing required environment variable(s): {}".format(", ".join(missing))]
        lines.extend("  - {}".format(required[name]) for name in missing)
        raise ConfigError("\n".join(lines))

    return Settings(
        api_key=os.environ["GENMEDIA_API_KEY"].strip(),
        proxy_url=os.environ["PROXY_URL"].strip().rstrip("/"),
        slack_bot_token=os.getenv("SLACK_BOT_TOKEN", "").strip(),
        slack_app_token=os.getenv("SLACK_APP_TOKEN", "").strip(),
        allowed_channel_id=os.getenv("ALLOWED_CHANNEL_ID", "").strip(),
        command_prefix=os.getenv("COMMAND_PREFIX", DEFAULT_COMMAND_PREFIX),
        imagen_model=os.getenv("IMAGEN_MODEL", DEFAULT_IMAGEN_MODEL),
        veo_model=os.getenv("VEO_MODEL", DEFAULT_VEO_MODEL),
        poll_interval_s=_get_float("POLL_INTERVAL_S", DEFAULT_POLL_INTERVAL_S),
        max_poll_attempts=_get_int("MAX_POLL_ATTEMPTS", DEFAULT_MAX_POLL_ATTEMPTS),
        max_download_bytes=_get_int("MAX_DOWNLOAD_BYTES", DEFAULT_MAX_DOWNLOAD_BYTES),
        download_timeout_s=_get_float("DOWNLOAD_TIMEOUT_S", DEFAULT_DOWNLOAD_TIMEOUT_S),
        image_cleanup_delay_s=_get_float("IMAGE_CLEANUP_DELAY_S", DEFAULT_IMAGE_CLEANUP_DELAY_S),
        video_cleanup_delay_s=_get_float("VIDEO_CLEANUP_DELAY_S", DEFAULT_VIDEO_CLEANUP_DELAY_S),
        temp_dir=Path(os.getenv("TEMP_DIR", "tmp")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigError("{} must be an integer, got {!r}".format(name, value)) from None


def _get_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigError("{} must be a number, got {!r}".format(name, value)) from None
