from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from rich.console import Console


class GatewayCliError(Exception):
    pass


class UsageError(GatewayCliError):
    pass


class OpError(GatewayCliError):
    pass


MEDIA_GATEWAY_URL = "MEDIA_GATEWAY_URL"
MEDIA_GATEWAY_TOKEN = "MEDIA_GATEWAY_TOKEN"

STORAGE_PRESIGN_PATH = "r2-presign"
STREAM_UPLOAD_PATH = "stream-upload"

_ERROR_CONSOLE = Console(stderr=True)


def _rich_error(msg: str) -> None:
    _ERROR_CONSOLE.print(f"[bold red]error:[/bold red] {msg}")


@dataclass(frozen=True)
class GlobalOpts:
    base_url: str
    token: str
    pretty: bool = True
    timeout_seconds: int = 30


def _env_or_none(*names: str) -> str | None:
    for n in names:
        v = (os.environ.get(n) or "").strip()
        if v:
            return v
    return None


def _require_str(val: str | None, name: str, *, hint: str) -> str:
    v = (val or "").strip()
    if not v:
        raise UsageError(f"missing {name} ({hint})")
    return v


def _join_url(base: str, path: str) -> str:
    return base.rstrip("/") + "/" + path.lstrip("/")


def _print_json(obj: Any, *, pretty: bool) -> None:
    if pretty:
        sys.stdout.write(json.dumps(obj, indent=2, sort_keys=True) + "\n")
    else:
        sys.stdout.write(json.dumps(obj, separators=(",", ":"), sort_keys=True) + "\n")


def _http_request(
    *,
    method: str,
    url: str,
    headers: dict[str, str],
    body: bytes | None = None,
    timeout_seconds: int = 30,
) -> tuple[int, dict[str, str], bytes]:
    req = Request(url, data=body, method=str(method).upper())
    for k, v in headers.items():
        req.add_header(k, v)
    try:
        with urlopen(req, timeout=timeout_seconds) as resp:
            status = getattr(resp, "status", 200)
            hdrs = {k.lower(): v for k, v in dict(resp.headers).items()}
            data = resp.read()
            return int(status), hdrs, data
    except HTTPError as e:
        hdrs = {k.lower(): v for k, v in dict(e.headers or {}).items()}
        data = e.read() if hasattr(e, "read") else b""
        return int(getattr(e, "code", 0) or 0), hdrs, data
    except URLError as e:
        raise OpError(f"http request failed: {e}") from e


def _gateway_call(g: GlobalOpts, path: str, payload: dict[str, Any]) -> dict[str, Any]:
    """POST an action to the gateway and return the decoded JSON object.

    Non-200 answers raise OpError carrying the gateway's ``error`` message.
    """

    status, _, data = _http_request(
        method="POST",
        url=_join_url(g.base_url, path),
        headers={
            "Authorization": f"Bearer {g.token}",
            "Content-Type": "application/json",
        },
        body=json.dumps(payload).encode("utf-8"),
        timeout_seconds=g.timeout_seconds,
    )
    try:
        doc = json.loads(data.decode("utf-8")) if data else {}
    except (UnicodeDecodeError, ValueError) as e:
        raise OpError(f"gateway returned non-JSON response (HTTP {status})") from e
    if not isinstance(doc, dict):
        raise OpError(f"gateway returned unexpected JSON (HTTP {status})")
    if status != 200:
        raise OpError(f"gateway error (HTTP {status}): {doc.get('error') or 'unknown error'}")
    return doc
