import sys
from pathlib import Path

import pytest
from aws_cdk import App
from aws_cdk import assertions

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from stacks.media_gateway_stack import MediaGatewayStack


def _synth_template(monkeypatch, mode: str | None = None) -> dict:
    monkeypatch.setenv("STAGE", "test")
    monkeypatch.setenv("R2_BUCKET_NAME", "media")
    monkeypatch.setenv("STREAM_REQUIRE_OWNER_METADATA", "true")
    monkeypatch.delenv("CLOUDFLARE_API_TOKEN", raising=False)
    if mode is None:
        monkeypatch.delenv("DATA_RETENTION_MODE", raising=False)
    else:
        monkeypatch.setenv("DATA_RETENTION_MODE", mode)
    app = App()
    stack = MediaGatewayStack(app, "MediaGatewayTestStack")
    return assertions.Template.from_stack(stack).to_json()


def _resources(template: dict, resource_type: str) -> list[dict]:
    return [r for r in template["Resources"].values() if r.get("Type") == resource_type]


def _function(template: dict, handler: str) -> dict:
    for fn in _resources(template, "AWS::Lambda::Function"):
        if (fn.get("Properties") or {}).get("Handler") == handler:
            return fn["Properties"]
    raise AssertionError(f"function with handler {handler} not found")


def test_two_python_handlers_with_scoped_environment(monkeypatch):
    template = _synth_template(monkeypatch)

    storage = _function(template, "storage_presign.handler")
    stream = _function(template, "stream_upload.handler")

    assert storage["Runtime"] == "python3.12"
    assert stream["Runtime"] == "python3.12"
    assert storage["Timeout"] == 15
    assert stream["Timeout"] == 30

    storage_env = storage["Environment"]["Variables"]
    stream_env = stream["Environment"]["Variables"]
    assert storage_env["R2_BUCKET_NAME"] == "media"
    assert storage_env["SCHEMA_VERSION"] == "2026-10-01"
    assert "SUPABASE_URL" in storage_env
    assert "CLOUDFLARE_API_TOKEN" not in storage_env

    assert stream_env["STREAM_REQUIRE_OWNER_METADATA"] == "true"
    assert stream_env["CLOUDFLARE_API_TOKEN"] == ""
    assert stream_env["UPSTREAM_TIMEOUT_SECONDS"] == "10"
    assert "R2_SECRET_ACCESS_KEY" not in stream_env


def test_api_exposes_post_and_options_per_route(monkeypatch):
    template = _synth_template(monkeypatch)

    paths = sorted(r["Properties"]["PathPart"] for r in _resources(template, "AWS::ApiGateway::Resource"))
    assert paths == ["r2-presign", "stream-upload"]

    methods = sorted(m["Properties"]["HttpMethod"] for m in _resources(template, "AWS::ApiGateway::Method"))
    assert methods == ["OPTIONS", "OPTIONS", "POST", "POST"]

    outputs = template["Outputs"]
    for key in ("StoragePresignInvokeUrl", "StreamUploadInvokeUrl", "MediaGatewayBaseUrl"):
        assert key in outputs


def test_log_groups_default_to_one_week_and_destroy(monkeypatch):
    template = _synth_template(monkeypatch)

    log_groups = _resources(template, "AWS::Logs::LogGroup")
    assert len(log_groups) == 3
    assert {lg["Properties"]["RetentionInDays"] for lg in log_groups} == {7}
    assert {lg.get("DeletionPolicy") for lg in log_groups} == {"Delete"}


def test_data_retention_mode_retain(monkeypatch):
    template = _synth_template(monkeypatch, mode="retain")

    log_groups = _resources(template, "AWS::Logs::LogGroup")
    assert {lg.get("DeletionPolicy") for lg in log_groups} == {"Retain"}


def test_invalid_data_retention_mode_fails_fast(monkeypatch):
    monkeypatch.setenv("STAGE", "test")
    monkeypatch.setenv("DATA_RETENTION_MODE", "keep-forever")

    app = App()
    with pytest.raises(ValueError, match="DATA_RETENTION_MODE"):
        MediaGatewayStack(app, "MediaGatewayInvalidStack")
