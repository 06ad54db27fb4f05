"""Cloudflare Stream direct uploads on behalf of an authenticated user.

Actions (POST body ``action``):

  create-upload -> one-time direct creator upload URL, tagged with the
                   caller's user id in the video metadata
  get-status    -> processing state normalized to ready/processing/error
  delete        -> deletes the video after checking its owner metadata
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from gateway_config import MAX_VIDEO_DURATION_SECONDS, SCHEMA_VERSION, GatewayConfig
from gateway_errors import GatewayError
from gateway_requests import (
    CreateVideoUploadRequest,
    DeleteVideoRequest,
    VideoStatusRequest,
    parse_stream_request,
)
from http_events import (
    emit_wide_event,
    error_response,
    internal_error_response,
    is_preflight,
    new_wide_event,
    parse_json_body,
    preflight_response,
    request_id as _request_id,
    response,
)
from identity import IdentityVerifier, SupabaseIdentityProvider
from ownership import ensure_owns_video
from stream_api import StreamClient
from stream_status import video_status_payload

WIDE_EVENT_NAME = "media_gateway_stream_upload"


@dataclass(frozen=True)
class StreamGateway:
    identity: IdentityVerifier
    stream: StreamClient
    require_owner_metadata: bool = False

    @classmethod
    def from_config(cls, config: GatewayConfig) -> "StreamGateway":
        settings = config.stream()
        return cls(
            identity=IdentityVerifier(
                SupabaseIdentityProvider(
                    config.identity(),
                    timeout_seconds=config.upstream_timeout_seconds,
                )
            ),
            stream=StreamClient(settings, timeout_seconds=config.upstream_timeout_seconds),
            require_owner_metadata=settings.require_owner_metadata,
        )


_gateway: StreamGateway | None = None


def _default_gateway() -> StreamGateway:
    global _gateway
    if _gateway is None:
        _gateway = StreamGateway.from_config(GatewayConfig.from_env())
    return _gateway


def _create_upload(gateway: StreamGateway, identity: str) -> dict[str, Any]:
    return gateway.stream.create_direct_upload(
        identity, max_duration_seconds=MAX_VIDEO_DURATION_SECONDS
    )


def _get_status(
    gateway: StreamGateway, identity: str, req: VideoStatusRequest, wide_event: dict[str, Any]
) -> dict[str, Any]:
    video = gateway.stream.get_video(req.video_uid)
    wide_event["owner_check"] = ensure_owns_video(
        identity,
        video,
        require_metadata=gateway.require_owner_metadata,
        message="Unauthorized: Cannot view videos owned by other users",
    )
    return video_status_payload(video, req.video_uid)


def _delete_video(
    gateway: StreamGateway, identity: str, req: DeleteVideoRequest, wide_event: dict[str, Any]
) -> dict[str, Any]:
    video = gateway.stream.find_video(req.video_uid)
    wide_event["owner_check"] = ensure_owns_video(
        identity,
        video,
        require_metadata=gateway.require_owner_metadata,
    )
    gateway.stream.delete_video(req.video_uid)
    return {"success": True}


def handle(event: dict[str, Any], gateway: StreamGateway) -> dict[str, Any]:
    start = time.time()
    request_id = _request_id(event)
    wide_event = new_wide_event(WIDE_EVENT_NAME, schema_version=SCHEMA_VERSION, request_id=request_id)
    status_code = 500
    try:
        if is_preflight(event):
            status_code = 204
            wide_event["outcome"] = "preflight"
            return preflight_response()

        identity = gateway.identity.verify(event)
        wide_event["principal"] = {"sub": identity}

        req = parse_stream_request(parse_json_body(event))
        wide_event["action"] = req.action
        if isinstance(req, CreateVideoUploadRequest):
            body = _create_upload(gateway, identity)
            wide_event["video_uid"] = body["videoUid"]
        elif isinstance(req, VideoStatusRequest):
            wide_event["video_uid"] = req.video_uid
            body = _get_status(gateway, identity, req, wide_event)
            wide_event["video_status"] = body["status"]
        else:
            wide_event["video_uid"] = req.video_uid
            body = _delete_video(gateway, identity, req, wide_event)

        wide_event["outcome"] = "success"
        status_code = 200
        return response(status_code, body)
    except GatewayError as exc:
        status_code = exc.status_code
        wide_event["outcome"] = exc.error_code.lower()
        wide_event["error"] = {"type": type(exc).__name__, "message": exc.message}
        return error_response(exc, request_id)
    except Exception as exc:
        status_code = 500
        wide_event["outcome"] = "error"
        wide_event["error"] = {"type": type(exc).__name__, "message": str(exc)}
        return internal_error_response(exc, request_id)
    finally:
        wide_event["status_code"] = status_code
        wide_event["duration_ms"] = int((time.time() - start) * 1000)
        emit_wide_event(wide_event)


def handler(event: dict[str, Any], _context: Any) -> dict[str, Any]:
    if is_preflight(event):
        return preflight_response()
    try:
        gateway = _default_gateway()
    except GatewayError as exc:
        request_id = _request_id(event)
        wide_event = new_wide_event(WIDE_EVENT_NAME, schema_version=SCHEMA_VERSION, request_id=request_id)
        wide_event["outcome"] = exc.error_code.lower()
        wide_event["status_code"] = exc.status_code
        wide_event["error"] = {"type": type(exc).__name__, "message": exc.message}
        emit_wide_event(wide_event)
        return error_response(exc, request_id)
    return handle(event, gateway)
