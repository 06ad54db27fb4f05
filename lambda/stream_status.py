from __future__ import annotations

import math
from typing import Any

STATUS_READY = "ready"
STATUS_PROCESSING = "processing"
STATUS_ERROR = "error"
VALID_STATUSES = {STATUS_READY, STATUS_PROCESSING, STATUS_ERROR}


def _dict(val: Any) -> dict[str, Any]:
    return val if isinstance(val, dict) else {}


def normalize_status(video: dict[str, Any] | None) -> str:
    video = _dict(video)
    if video.get("readyToStream") is True:
        return STATUS_READY
    if _dict(video.get("status")).get("state") == "error":
        return STATUS_ERROR
    return STATUS_PROCESSING


def _positive_number(val: Any) -> float | None:
    if isinstance(val, bool) or not isinstance(val, (int, float)):
        return None
    # Stream reports -1 until the value is known.
    if not math.isfinite(val) or val <= 0:
        return None
    return float(val)


def _whole_seconds(val: Any) -> int | None:
    n = _positive_number(val)
    if n is None:
        return None
    return int(math.floor(n + 0.5))


def _dimension(val: Any) -> int | None:
    n = _positive_number(val)
    return int(n) if n is not None else None


def _text(val: Any) -> str | None:
    if not isinstance(val, str) or not val:
        return None
    return val


def video_status_payload(video: dict[str, Any] | None, video_uid: str) -> dict[str, Any]:
    video = _dict(video)
    source = _dict(video.get("input"))
    return {
        "videoUid": _text(video.get("uid")) or video_uid,
        "status": normalize_status(video),
        "thumbnailUrl": _text(video.get("thumbnail")),
        "playbackUrl": _text(_dict(video.get("playback")).get("hls")),
        "duration": _whole_seconds(video.get("duration")),
        "width": _dimension(source.get("width")),
        "height": _dimension(source.get("height")),
    }
