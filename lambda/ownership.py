from __future__ import annotations

from typing import Any

from gateway_errors import Forbidden, InvalidRequest
from object_keys import has_unsafe_segments, owner_prefix

OWNER_CHECK_MATCHED = "matched"
OWNER_CHECK_MISSING_METADATA = "missing_metadata"


def ensure_owns_path(identity: str, path: Any) -> str:
    if not isinstance(path, str) or not path.strip():
        raise InvalidRequest("storagePath must be a non-empty string")
    if not path.startswith(owner_prefix(identity)):
        raise Forbidden(
            "Unauthorized: Cannot delete files owned by other users",
            storage_path=path,
        )
    if has_unsafe_segments(path[len(owner_prefix(identity)):]):
        raise InvalidRequest(
            "storagePath must not contain empty, '.' or '..' path segments",
            storage_path=path,
        )
    return path


def video_owner(video: dict[str, Any] | None) -> str:
    if not isinstance(video, dict):
        return ""
    meta = video.get("meta")
    if not isinstance(meta, dict):
        return ""
    return str(meta.get("userId") or "").strip()


def ensure_owns_video(
    identity: str,
    video: dict[str, Any] | None,
    *,
    require_metadata: bool = False,
    message: str = "Unauthorized: Cannot delete videos owned by other users",
) -> str:
    """Returns the owner-check outcome for logging, or raises Forbidden.

    Videos without owner metadata (lookup failed, or no ``meta.userId``) are
    let through unless ``require_metadata`` is set.
    """

    owner = video_owner(video)
    if not owner:
        if require_metadata:
            raise Forbidden(message)
        return OWNER_CHECK_MISSING_METADATA
    if owner != identity:
        raise Forbidden(message)
    return OWNER_CHECK_MATCHED
