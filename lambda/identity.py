from __future__ import annotations

from typing import Any, Protocol

from gateway_config import IdentitySettings
from gateway_errors import Unauthenticated, UpstreamFailure
from http_events import get_header
from upstream_http import HttpJson, http_json


class IdentityProvider(Protocol):
    def user_id(self, token: str) -> str | None: ...


def bearer_token(event: dict[str, Any]) -> str:
    auth = get_header(event, "authorization").strip()
    if not auth:
        raise Unauthenticated("Missing authorization header")
    scheme, _, token = auth.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthenticated("Missing bearer token")
    return token.strip()


class SupabaseIdentityProvider:
    """Resolves a Supabase access token to the user id via ``/auth/v1/user``."""

    def __init__(
        self,
        settings: IdentitySettings,
        *,
        http: HttpJson = http_json,
        timeout_seconds: int = 10,
    ) -> None:
        self.settings = settings
        self._http = http
        self._timeout_seconds = timeout_seconds

    def user_id(self, token: str) -> str | None:
        try:
            status, data = self._http(
                "GET",
                f"{self.settings.supabase_url}/auth/v1/user",
                headers={
                    "apikey": self.settings.anon_key,
                    "Authorization": f"Bearer {token}",
                },
                timeout_seconds=self._timeout_seconds,
            )
        except UpstreamFailure:
            return None
        if status != 200:
            return None
        uid = str(data.get("id") or "").strip()
        return uid or None


class IdentityVerifier:
    def __init__(self, provider: IdentityProvider) -> None:
        self.provider = provider

    def verify(self, event: dict[str, Any]) -> str:
        token = bearer_token(event)
        uid = self.provider.user_id(token)
        if not uid:
            raise Unauthenticated("Invalid or expired token")
        return uid
