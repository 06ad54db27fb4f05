from __future__ import annotations

import json
from http.client import HTTPException
from typing import Any, Callable
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from gateway_errors import UpstreamFailure

# (method, url, headers, payload, timeout_seconds) -> (status, decoded JSON object)
HttpJson = Callable[..., tuple[int, dict[str, Any]]]


def _decode_object(data: bytes) -> dict[str, Any]:
    if not data:
        return {}
    try:
        parsed = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return {}
    return parsed if isinstance(parsed, dict) else {}


def http_json(
    method: str,
    url: str,
    *,
    headers: dict[str, str],
    payload: dict[str, Any] | None = None,
    timeout_seconds: int = 10,
) -> tuple[int, dict[str, Any]]:
    """Single JSON request; non-2xx answers are returned, transport failures raise."""

    body = None
    if payload is not None:
        body = json.dumps(payload).encode("utf-8")
    req = Request(url, data=body, method=str(method).upper())
    for k, v in headers.items():
        req.add_header(k, v)
    if body is not None:
        req.add_header("Content-Type", "application/json")
    try:
        with urlopen(req, timeout=timeout_seconds) as resp:
            status = getattr(resp, "status", 200)
            return int(status), _decode_object(resp.read())
    except HTTPError as e:
        try:
            data = e.read() if hasattr(e, "read") else b""
        except (OSError, HTTPException):
            data = b""
        return int(getattr(e, "code", 0) or 0), _decode_object(data)
    except (URLError, OSError, HTTPException) as e:
        # getresponse() and read() raise timeouts and disconnects unwrapped.
        reason = getattr(e, "reason", None) or str(e) or type(e).__name__
        raise UpstreamFailure(f"upstream request failed: {reason}") from e
