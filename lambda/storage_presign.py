"""Presigned R2 URLs for uploading and deleting a caller's own objects.

Actions (POST body ``action``):

  upload  -> one presigned PUT URL + public URL per requested file, keyed
             under ``<userId>/<postId>/<uuid>.<ext>``
  delete  -> one presigned DELETE URL per path, only for paths under
             ``<userId>/``

Per-file failures are reported inside ``files`` with a 200 response; only
authentication and malformed bodies fail the whole request.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable

from batch import error_count, run_batch
from gateway_config import SCHEMA_VERSION, GatewayConfig
from gateway_errors import GatewayError, InternalFailure, InvalidRequest
from gateway_requests import UploadItem, UploadObjectsRequest, parse_storage_request
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
from object_keys import derive_object_key
from object_signer import DelegatedCredential, ObjectSigner
from ownership import ensure_owns_path

WIDE_EVENT_NAME = "media_gateway_storage_presign"


@dataclass(frozen=True)
class StorageGateway:
    identity: IdentityVerifier
    signer: ObjectSigner

    @classmethod
    def from_config(cls, config: GatewayConfig) -> "StorageGateway":
        return cls(
            identity=IdentityVerifier(
                SupabaseIdentityProvider(
                    config.identity(),
                    timeout_seconds=config.upstream_timeout_seconds,
                )
            ),
            signer=ObjectSigner.from_settings(config.storage()),
        )


_gateway: StorageGateway | None = None


def _default_gateway() -> StorageGateway:
    global _gateway
    if _gateway is None:
        _gateway = StorageGateway.from_config(GatewayConfig.from_env())
    return _gateway


def _signed(storage_path: str, sign: Callable[[], DelegatedCredential]) -> DelegatedCredential:
    try:
        return sign()
    except GatewayError:
        raise
    except Exception as e:
        raise InternalFailure(str(e) or type(e).__name__, storage_path=storage_path) from e


def _upload_one(gateway: StorageGateway, identity: str, item: UploadItem) -> dict[str, Any]:
    if item.invalid_reason:
        raise InvalidRequest(item.invalid_reason)
    storage_path = derive_object_key(identity, item.resource_id, item.content_type)
    cred = _signed(storage_path, lambda: gateway.signer.presign_put(storage_path, item.content_type))
    return {
        "presignedUrl": cred.url,
        "publicUrl": gateway.signer.public_url(storage_path),
        "storagePath": storage_path,
        "contentType": item.content_type,
        "expiresAt": cred.expires_at,
    }


def _delete_one(gateway: StorageGateway, identity: str, path: Any) -> dict[str, Any]:
    storage_path = ensure_owns_path(identity, path)
    cred = _signed(storage_path, lambda: gateway.signer.presign_delete(storage_path))
    return {
        "presignedUrl": cred.url,
        "storagePath": storage_path,
        "expiresAt": cred.expires_at,
    }


def handle(event: dict[str, Any], gateway: StorageGateway) -> dict[str, Any]:
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

        req = parse_storage_request(parse_json_body(event))
        wide_event["action"] = req.action
        if isinstance(req, UploadObjectsRequest):
            results = run_batch(req.items, lambda item: _upload_one(gateway, identity, item))
        else:
            results = run_batch(req.storage_paths, lambda path: _delete_one(gateway, identity, path))

        wide_event["item_count"] = len(results)
        wide_event["item_error_count"] = error_count(results)
        wide_event["outcome"] = "success" if not wide_event["item_error_count"] else "partial"
        status_code = 200
        return response(status_code, {"files": results})
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
