from __future__ import annotations

import uuid

from gateway_errors import InvalidRequest

DEFAULT_CONTENT_TYPE = "image/jpeg"
DEFAULT_EXTENSION = "jpg"

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


def extension_for(content_type: str | None) -> str:
    # Unknown types fall back to jpg instead of failing.
    mime = str(content_type or "").split(";", 1)[0].strip().lower()
    return _EXTENSIONS.get(mime, DEFAULT_EXTENSION)


def owner_prefix(identity: str) -> str:
    return f"{identity}/"


def has_unsafe_segments(path: str) -> bool:
    # Keys never carry empty, "." or ".." segments.
    return any(seg in {"", ".", ".."} for seg in path.split("/"))


def new_unique_id() -> str:
    # Random (os.urandom), never derived from request fields.
    return str(uuid.uuid4())


def derive_object_key(identity: str, resource_id: str, content_type: str | None) -> str:
    resource_id = str(resource_id or "").strip()
    if not resource_id:
        raise InvalidRequest("postId is required for each file")
    if has_unsafe_segments(resource_id):
        raise InvalidRequest("postId must not contain empty, '.' or '..' path segments")
    return f"{owner_prefix(identity)}{resource_id}/{new_unique_id()}.{extension_for(content_type)}"
