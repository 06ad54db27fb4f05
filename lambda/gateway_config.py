from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from gateway_errors import Misconfigured

SIGNED_URL_TTL_SECONDS = 300
MAX_VIDEO_DURATION_SECONDS = 300
DEFAULT_UPSTREAM_TIMEOUT_SECONDS = 10
SCHEMA_VERSION = os.environ.get("SCHEMA_VERSION", "2026-10-01")


def _env(environ: Mapping[str, str], name: str, default: str = "") -> str:
    return str(environ.get(name, default) or "").strip()


def _truthy(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _require(values: dict[str, str]) -> None:
    missing = sorted(name for name, value in values.items() if not value)
    if missing:
        raise Misconfigured(f"Server misconfigured: missing {', '.join(missing)}")


@dataclass(frozen=True)
class IdentitySettings:
    supabase_url: str
    anon_key: str


@dataclass(frozen=True)
class StorageSettings:
    account_id: str
    access_key_id: str
    secret_access_key: str
    bucket: str
    public_base_url: str

    @property
    def endpoint_url(self) -> str:
        return f"https://{self.account_id}.r2.cloudflarestorage.com"


@dataclass(frozen=True)
class StreamSettings:
    account_id: str
    api_token: str
    require_owner_metadata: bool = False


@dataclass(frozen=True)
class GatewayConfig:
    """Deployment configuration, read once per Lambda container."""

    environ: Mapping[str, str]
    upstream_timeout_seconds: int = DEFAULT_UPSTREAM_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "GatewayConfig":
        env = dict(os.environ if environ is None else environ)
        try:
            timeout = int(_env(env, "UPSTREAM_TIMEOUT_SECONDS") or DEFAULT_UPSTREAM_TIMEOUT_SECONDS)
        except ValueError:
            timeout = DEFAULT_UPSTREAM_TIMEOUT_SECONDS
        return cls(environ=env, upstream_timeout_seconds=max(1, timeout))

    def identity(self) -> IdentitySettings:
        values = {
            "SUPABASE_URL": _env(self.environ, "SUPABASE_URL"),
            "SUPABASE_ANON_KEY": _env(self.environ, "SUPABASE_ANON_KEY"),
        }
        _require(values)
        return IdentitySettings(
            supabase_url=values["SUPABASE_URL"].rstrip("/"),
            anon_key=values["SUPABASE_ANON_KEY"],
        )

    def storage(self) -> StorageSettings:
        values = {
            "R2_ACCOUNT_ID": _env(self.environ, "R2_ACCOUNT_ID"),
            "R2_ACCESS_KEY_ID": _env(self.environ, "R2_ACCESS_KEY_ID"),
            "R2_SECRET_ACCESS_KEY": _env(self.environ, "R2_SECRET_ACCESS_KEY"),
            "R2_BUCKET_NAME": _env(self.environ, "R2_BUCKET_NAME"),
            "R2_PUBLIC_URL": _env(self.environ, "R2_PUBLIC_URL"),
        }
        _require(values)
        return StorageSettings(
            account_id=values["R2_ACCOUNT_ID"],
            access_key_id=values["R2_ACCESS_KEY_ID"],
            secret_access_key=values["R2_SECRET_ACCESS_KEY"],
            bucket=values["R2_BUCKET_NAME"],
            public_base_url=values["R2_PUBLIC_URL"].rstrip("/"),
        )

    def stream(self) -> StreamSettings:
        values = {
            "CLOUDFLARE_ACCOUNT_ID": _env(self.environ, "CLOUDFLARE_ACCOUNT_ID"),
            "CLOUDFLARE_API_TOKEN": _env(self.environ, "CLOUDFLARE_API_TOKEN"),
        }
        _require(values)
        return StreamSettings(
            account_id=values["CLOUDFLARE_ACCOUNT_ID"],
            api_token=values["CLOUDFLARE_API_TOKEN"],
            require_owner_metadata=_truthy(_env(self.environ, "STREAM_REQUIRE_OWNER_METADATA")),
        )
