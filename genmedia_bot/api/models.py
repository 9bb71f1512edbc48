"""Media API response dataclasses.

WHY: The Imagen predict endpoint and the Veo operations endpoint return
nested JSON. Typed dataclasses make the few fields we rely on explicit
and keep the poller's branching readable.

HOW: Each dataclass maps to one JSON object. Factory methods (from_dict)
parse raw API responses and tolerate absent optional fields.

RULES:
- Operation.response is None when the API omitted generateVideoResponse
- VideoSample.uri is None when a sample carries no video URI
- Objects are re-parsed on every status fetch; nothing is cached
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ImagePrediction:
    """One entry of the Imagen predict response ``predictions`` array.

    RULES:
    - bytes_base64 is None for entries that were filtered
    - rai_filtered_reason is only set when includeRaiReason was requested
    """

    bytes_base64: str | None
    mime_type: str = "image/png"
    rai_filtered_reason: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> ImagePrediction:
        return cls(
            bytes_base64=data.get("bytesBase64Encoded"),
            mime_type=data.get("mimeType", "image/png"),
            rai_filtered_reason=data.get("raiFilteredReason"),
        )


@dataclass
class VideoSample:
    """A generated video inside a finished operation."""

    uri: str | None
    filtered: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> VideoSample:
        video = data.get("video") or {}
        return cls(uri=video.get("uri") or None, filtered=bool(data.get("filtered", False)))


@dataclass
class OperationError:
    """The ``error`` object of a failed operation."""

    message: str
    code: int | None = None

    @classmethod
    def from_dict(cls, data: dict) -> OperationError:
        return cls(message=str(data.get("message", "Unknown error")), code=data.get("code"))


@dataclass
class VideoResponse:
    """The ``response.generateVideoResponse`` container of a done operation.

    WHY: The poller classifies a finished job by three fields: how many
    samples were safety-filtered, why, and which samples were produced.

    RULES:
    - filtered_count defaults to 0 when absent
    - filtered_reasons is empty when the API gave no reasons
    """

    filtered_count: int = 0
    filtered_reasons: list[str] = field(default_factory=list)
    samples: list[VideoSample] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> VideoResponse:
        return cls(
            filtered_count=int(data.get("raiMediaFilteredCount") or 0),
            filtered_reasons=[str(r) for r in data.get("raiMediaFilteredReasons") or []],
            samples=[VideoSample.from_dict(s or {}) for s in data.get("generatedSamples") or []],
        )


@dataclass
class Operation:
    """Status of a long-running video operation.

    WHY: GET /v1beta/operations/{id} is the only view the bot has of the
    remote job. This object is what the poller's state machine inspects.

    HOW: Parses ``done``, the optional ``error``, and the optional
    ``response.generateVideoResponse`` container.

    RULES:
    - done defaults to False when absent
    - error is None unless the API reported one
    - response is None when the result container is missing
    """

    id: str
    done: bool = False
    error: OperationError | None = None
    response: VideoResponse | None = None

    @classmethod
    def from_dict(cls, operation_id: str, data: dict) -> Operation:
        error = data.get("error")
        container = (data.get("response") or {}).get("generateVideoResponse")
        return cls(
            id=operation_id,
            done=data.get("done") is True,
            error=OperationError.from_dict(error) if error else None,
            response=VideoResponse.from_dict(container) if container is not None else None,
        )
