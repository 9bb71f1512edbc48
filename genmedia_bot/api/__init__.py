"""Media API client package: async HTTP interface to Imagen and Veo.

WHY: The flows need to submit generation requests, poll long-running
video operations and download the results. This package encapsulates
all remote API communication behind an async client class.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. MediaClient provides
one method per API call. Response data is parsed into typed dataclasses
defined in models.py.

RULES:
- All HTTP calls to the media API go through MediaClient
- Authentication is the static API key header from Settings
"""

from genmedia_bot.api.client import MediaClient
from genmedia_bot.api.models import ImagePrediction, Operation, VideoResponse, VideoSample

__all__ = ["ImagePrediction", "MediaClient", "Operation", "VideoResponse", "VideoSample"]
