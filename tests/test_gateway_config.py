import importlib
import sys

import pytest


def _load_module():
    if "lambda" not in sys.path:
        sys.path.insert(0, "lambda")
    import gateway_config as module

    return importlib.reload(module)


FULL_ENV = {
    "SUPABASE_URL": "https://proj.supabase.co/",
    "SUPABASE_ANON_KEY": "anon",
    "R2_ACCOUNT_ID": "r2acct",
    "R2_ACCESS_KEY_ID": "AKIA",
    "R2_SECRET_ACCESS_KEY": "secret",
    "R2_BUCKET_NAME": "media",
    "R2_PUBLIC_URL": "https://cdn.example.com/",
    "CLOUDFLARE_ACCOUNT_ID": "cfacct",
    "CLOUDFLARE_API_TOKEN": "cf-token",
}


def test_full_environment_builds_all_settings():
    m = _load_module()
    cfg = m.GatewayConfig.from_env(FULL_ENV)

    ident = cfg.identity()
    assert ident.supabase_url == "https://proj.supabase.co"
    assert ident.anon_key == "anon"

    storage = cfg.storage()
    assert storage.bucket == "media"
    assert storage.public_base_url == "https://cdn.example.com"
    assert storage.endpoint_url == "https://r2acct.r2.cloudflarestorage.com"

    stream = cfg.stream()
    assert stream.account_id == "cfacct"
    assert stream.api_token == "cf-token"
    assert stream.require_owner_metadata is False
    assert cfg.upstream_timeout_seconds == 10


def test_missing_values_are_named_in_the_error():
    m = _load_module()
    from gateway_errors import Misconfigured

    env = dict(FULL_ENV)
    del env["R2_BUCKET_NAME"]
    env["R2_PUBLIC_URL"] = "  "
    cfg = m.GatewayConfig.from_env(env)

    with pytest.raises(Misconfigured) as exc_info:
        cfg.storage()
    assert exc_info.value.message == "Server misconfigured: missing R2_BUCKET_NAME, R2_PUBLIC_URL"
    assert exc_info.value.status_code == 500
    # Other integrations stay usable.
    assert cfg.stream().account_id == "cfacct"


@pytest.mark.parametrize("raw,expected", [("true", True), ("1", True), ("YES", True), ("0", False), ("", False)])
def test_strict_owner_metadata_flag(raw, expected):
    m = _load_module()
    cfg = m.GatewayConfig.from_env({**FULL_ENV, "STREAM_REQUIRE_OWNER_METADATA": raw})
    assert cfg.stream().require_owner_metadata is expected


@pytest.mark.parametrize("raw,expected", [("3", 3), ("0", 1), ("abc", 10)])
def test_upstream_timeout_parsing(raw, expected):
    m = _load_module()
    cfg = m.GatewayConfig.from_env({**FULL_ENV, "UPSTREAM_TIMEOUT_SECONDS": raw})
    assert cfg.upstream_timeout_seconds == expected


def test_schema_version_comes_from_environment(monkeypatch):
    monkeypatch.setenv("SCHEMA_VERSION", "test-schema")
    m = _load_module()
    assert m.SCHEMA_VERSION == "test-schema"
