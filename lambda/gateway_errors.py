from __future__ import annotations

from typing import Any


class GatewayError(Exception):
    """Base for failures that map onto a client-visible status and error code.

    Raised at request level they abort the request; raised inside a batch item
    they are captured by ``batch.run_batch`` and reported next to that item.
    """

    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str, *, storage_path: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.storage_path = storage_path

    def item_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message, "errorCode": self.error_code}
        if self.storage_path:
            body["storagePath"] = self.storage_path
        return body


class Unauthenticated(GatewayError):
    status_code = 401
    error_code = "UNAUTHENTICATED"


class InvalidRequest(GatewayError):
    status_code = 400
    error_code = "INVALID_REQUEST"


class Forbidden(GatewayError):
    status_code = 403
    error_code = "FORBIDDEN"


class UpstreamFailure(GatewayError):
    status_code = 500
    error_code = "UPSTREAM_FAILURE"


class Misconfigured(GatewayError):
    status_code = 500
    error_code = "MISCONFIGURED"


class InternalFailure(GatewayError):
    status_code = 500
    error_code = "INTERNAL_ERROR"
