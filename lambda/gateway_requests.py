from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from gateway_errors import InvalidRequest
from object_keys import DEFAULT_CONTENT_TYPE

ACTION_UPLOAD = "upload"
ACTION_DELETE = "delete"
ACTION_CREATE_UPLOAD = "create-upload"
ACTION_GET_STATUS = "get-status"


@dataclass(frozen=True)
class UploadItem:
    resource_id: str
    content_type: str
    # Set when the entry itself is malformed; reported for this item only.
    invalid_reason: str | None = None


@dataclass(frozen=True)
class UploadObjectsRequest:
    items: tuple[UploadItem, ...]
    action: str = ACTION_UPLOAD


@dataclass(frozen=True)
class DeleteObjectsRequest:
    # Raw values; each path is validated on its own so one bad entry
    # cannot fail the whole batch.
    storage_paths: tuple[Any, ...]
    action: str = ACTION_DELETE


@dataclass(frozen=True)
class CreateVideoUploadRequest:
    action: str = ACTION_CREATE_UPLOAD


@dataclass(frozen=True)
class VideoStatusRequest:
    video_uid: str
    action: str = ACTION_GET_STATUS


@dataclass(frozen=True)
class DeleteVideoRequest:
    video_uid: str
    action: str = ACTION_DELETE


StorageRequest = Union[UploadObjectsRequest, DeleteObjectsRequest]
StreamRequest = Union[CreateVideoUploadRequest, VideoStatusRequest, DeleteVideoRequest]


def _text(val: Any) -> str:
    return val.strip() if isinstance(val, str) else ""


def _action(body: dict[str, Any]) -> str:
    return _text(body.get("action")).lower()


def _upload_items(body: dict[str, Any]) -> tuple[UploadItem, ...]:
    default_post_id = _text(body.get("postId"))
    default_content_type = _text(body.get("contentType")) or DEFAULT_CONTENT_TYPE
    files = body.get("files")
    if files is None:
        # Legacy single-file shape.
        files = [{}]
    if not isinstance(files, list):
        raise InvalidRequest("files must be an array")
    items: list[UploadItem] = []
    for entry in files:
        if not isinstance(entry, dict):
            items.append(
                UploadItem(
                    resource_id="",
                    content_type=default_content_type,
                    invalid_reason="Each file must be an object",
                )
            )
            continue
        items.append(
            UploadItem(
                resource_id=_text(entry.get("postId")) or default_post_id,
                content_type=_text(entry.get("contentType")) or default_content_type,
            )
        )
    return tuple(items)


def _storage_paths(body: dict[str, Any]) -> tuple[Any, ...]:
    paths = body.get("storagePaths")
    if paths is None:
        single = body.get("storagePath")
        paths = [single] if single else []
    if not isinstance(paths, list):
        raise InvalidRequest("storagePaths must be an array")
    if not paths:
        raise InvalidRequest("storagePath or storagePaths is required")
    return tuple(paths)


def _video_uid(body: dict[str, Any]) -> str:
    uid = _text(body.get("videoUid"))
    if not uid:
        raise InvalidRequest("videoUid is required")
    return uid


def parse_storage_request(body: dict[str, Any]) -> StorageRequest:
    action = _action(body)
    if action == ACTION_UPLOAD:
        return UploadObjectsRequest(items=_upload_items(body))
    if action == ACTION_DELETE:
        return DeleteObjectsRequest(storage_paths=_storage_paths(body))
    raise InvalidRequest("Invalid action. Use 'upload' or 'delete'")


def parse_stream_request(body: dict[str, Any]) -> StreamRequest:
    action = _action(body)
    if action == ACTION_CREATE_UPLOAD:
        return CreateVideoUploadRequest()
    if action == ACTION_GET_STATUS:
        return VideoStatusRequest(video_uid=_video_uid(body))
    if action == ACTION_DELETE:
        return DeleteVideoRequest(video_uid=_video_uid(body))
    raise InvalidRequest("Invalid action. Use 'create-upload', 'get-status', or 'delete'")
