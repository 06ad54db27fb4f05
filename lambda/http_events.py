from __future__ import annotations

import base64
import json
import uuid
from datetime import datetime, timezone
from typing import Any

from gateway_errors import GatewayError, InvalidRequest

CORS_HEADERS = {
    "access-control-allow-origin": "*",
    "access-control-allow-headers": "authorization, x-client-info, apikey, content-type",
    "access-control-allow-methods": "POST, OPTIONS",
}


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def response(status_code: int, body: dict[str, Any]) -> dict[str, Any]:
    return {
        "statusCode": int(status_code),
        "headers": {
            "content-type": "application/json",
            "cache-control": "no-store",
            **CORS_HEADERS,
        },
        "body": json.dumps(body),
    }


def preflight_response() -> dict[str, Any]:
    return {"statusCode": 204, "headers": dict(CORS_HEADERS), "body": ""}


def error_response(exc: GatewayError, request_id: str) -> dict[str, Any]:
    return response(
        exc.status_code,
        {"error": exc.message, "errorCode": exc.error_code, "requestId": request_id},
    )


def internal_error_response(exc: Exception, request_id: str) -> dict[str, Any]:
    return response(
        500,
        {"error": str(exc) or type(exc).__name__, "errorCode": "INTERNAL_ERROR", "requestId": request_id},
    )


def request_id(event: dict[str, Any]) -> str:
    rc = event.get("requestContext") or {}
    if isinstance(rc, dict):
        rid = str(rc.get("requestId") or "").strip()
        if rid:
            return rid
    return uuid.uuid4().hex


def http_method(event: dict[str, Any]) -> str:
    method = str(event.get("httpMethod") or "").strip()
    if not method:
        # HTTP API (payload v2) puts the method under requestContext.http.
        rc = event.get("requestContext") or {}
        http = rc.get("http") if isinstance(rc, dict) else None
        if isinstance(http, dict):
            method = str(http.get("method") or "").strip()
    return method.upper()


def is_preflight(event: dict[str, Any]) -> bool:
    return http_method(event) == "OPTIONS"


def get_header(event: dict[str, Any], name: str) -> str:
    headers = event.get("headers") or {}
    if not isinstance(headers, dict):
        return ""
    # API Gateway can canonicalize headers; treat them case-insensitively.
    for k, v in headers.items():
        if isinstance(k, str) and k.lower() == name.lower():
            return str(v) if v is not None else ""
    return ""


def parse_json_body(event: dict[str, Any]) -> dict[str, Any]:
    raw = event.get("body")
    if raw is None:
        raise InvalidRequest("Request body must be a JSON object")
    if event.get("isBase64Encoded"):
        try:
            raw = base64.b64decode(raw).decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            raise InvalidRequest("Request body base64 decode failed") from e
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidRequest("Request body must be a JSON object")
    try:
        parsed = json.loads(raw)
    except ValueError as e:
        raise InvalidRequest("Request body must be valid JSON") from e
    if not isinstance(parsed, dict):
        raise InvalidRequest("Request body must be a JSON object")
    return parsed


def new_wide_event(name: str, *, schema_version: str, request_id: str) -> dict[str, Any]:
    return {
        "event": name,
        "schema_version": schema_version,
        "request_id": request_id,
        "ts": now_iso(),
    }


def emit_wide_event(wide_event: dict[str, Any]) -> None:
    # Never log presigned URLs, bearer tokens or API keys.
    print(json.dumps(wide_event, separators=(",", ":"), sort_keys=True, default=str))
