from __future__ import annotations

import mimetypes
import sys
from pathlib import Path
from typing import Any

import click
import typer

from . import __version__
from .cli_shared import (
    MEDIA_GATEWAY_TOKEN,
    MEDIA_GATEWAY_URL,
    STORAGE_PRESIGN_PATH,
    STREAM_UPLOAD_PATH,
    GlobalOpts,
    OpError,
    UsageError,
    _env_or_none,
    _gateway_call,
    _http_request,
    _print_json,
    _require_str,
    _rich_error,
)

DEFAULT_CONTENT_TYPE = "image/jpeg"

app = typer.Typer(
    name="media-gateway",
    help="Request scoped upload/delete URLs from a deployed media gateway.",
    no_args_is_help=True,
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"media-gateway {__version__}")
        raise typer.Exit(code=0)


@app.callback()
def app_callback(
    ctx: typer.Context,
    base_url: str | None = typer.Option(
        None,
        "--base-url",
        help=f"Gateway base URL, e.g. the stack's MediaGatewayBaseUrl output (env: {MEDIA_GATEWAY_URL})",
    ),
    token: str | None = typer.Option(
        None,
        "--token",
        help=f"Supabase access token sent as the bearer credential (env: {MEDIA_GATEWAY_TOKEN})",
    ),
    plain_json: bool = typer.Option(False, "--plain-json", help="Emit compact JSON output"),
    timeout_seconds: int = typer.Option(30, "--timeout", min=1, help="HTTP timeout in seconds"),
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True),
) -> None:
    del version
    ctx.obj = {
        "base_url": base_url,
        "token": token,
        "pretty": not plain_json,
        "timeout_seconds": timeout_seconds,
    }


def _ctx_global(ctx: typer.Context) -> GlobalOpts:
    raw = ctx.obj if isinstance(ctx.obj, dict) else {}
    base_url = _require_str(
        raw.get("base_url") or _env_or_none(MEDIA_GATEWAY_URL),
        "gateway base URL",
        hint=f"pass --base-url or set {MEDIA_GATEWAY_URL}",
    )
    token = _require_str(
        raw.get("token") or _env_or_none(MEDIA_GATEWAY_TOKEN),
        "access token",
        hint=f"pass --token or set {MEDIA_GATEWAY_TOKEN}",
    )
    return GlobalOpts(
        base_url=base_url,
        token=token,
        pretty=bool(raw.get("pretty", True)),
        timeout_seconds=int(raw.get("timeout_seconds") or 30),
    )


def _content_type_for(path: Path, override: str | None) -> str:
    if override:
        return override
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or DEFAULT_CONTENT_TYPE


def _files_from(doc: dict[str, Any], expected: int) -> list[dict[str, Any]]:
    files = doc.get("files")
    if not isinstance(files, list) or len(files) != expected:
        raise OpError(f"gateway returned {len(files) if isinstance(files, list) else 'no'} results for {expected} items")
    return [f if isinstance(f, dict) else {"error": "malformed result"} for f in files]


@app.command("upload")
def upload_cmd(
    ctx: typer.Context,
    files: list[Path] = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    post_id: str = typer.Option(..., "--post-id", help="Resource id the files belong to"),
    content_type: str | None = typer.Option(
        None, "--content-type", help="Override the content type guessed from each file name"
    ),
    no_put: bool = typer.Option(False, "--no-put", help="Only print presigned URLs; do not upload"),
) -> None:
    """Request presigned PUT URLs and upload each file."""

    g = _ctx_global(ctx)
    types = [_content_type_for(f, content_type) for f in files]
    doc = _gateway_call(
        g,
        STORAGE_PRESIGN_PATH,
        {
            "action": "upload",
            "files": [{"postId": post_id, "contentType": t} for t in types],
        },
    )
    out: list[dict[str, Any]] = []
    failed = False
    for path, ctype, result in zip(files, types, _files_from(doc, len(files))):
        entry: dict[str, Any] = {"file": str(path), **result}
        if "error" in result:
            failed = True
        elif not no_put:
            status, _, _ = _http_request(
                method="PUT",
                url=str(result.get("presignedUrl") or ""),
                headers={"Content-Type": ctype},
                body=path.read_bytes(),
                timeout_seconds=g.timeout_seconds,
            )
            entry["uploaded"] = 200 <= status < 300
            entry["uploadStatus"] = status
            failed = failed or not entry["uploaded"]
        if not no_put:
            # The URL is a bearer secret and is spent once used.
            entry.pop("presignedUrl", None)
        out.append(entry)
    _print_json({"files": out}, pretty=g.pretty)
    if failed:
        raise typer.Exit(code=1)


@app.command("delete")
def delete_cmd(
    ctx: typer.Context,
    storage_paths: list[str] = typer.Argument(..., help="Storage paths returned by upload"),
    no_execute: bool = typer.Option(False, "--no-execute", help="Only print presigned DELETE URLs"),
) -> None:
    """Request presigned DELETE URLs and delete each object."""

    g = _ctx_global(ctx)
    doc = _gateway_call(g, STORAGE_PRESIGN_PATH, {"action": "delete", "storagePaths": storage_paths})
    out: list[dict[str, Any]] = []
    failed = False
    for result in _files_from(doc, len(storage_paths)):
        entry = dict(result)
        if "error" in result:
            failed = True
        elif not no_execute:
            status, _, _ = _http_request(
                method="DELETE",
                url=str(result.get("presignedUrl") or ""),
                headers={},
                timeout_seconds=g.timeout_seconds,
            )
            entry["deleted"] = 200 <= status < 300
            entry["deleteStatus"] = status
            entry.pop("presignedUrl", None)
            failed = failed or not entry["deleted"]
        out.append(entry)
    _print_json({"files": out}, pretty=g.pretty)
    if failed:
        raise typer.Exit(code=1)


@app.command("video-create")
def video_create_cmd(ctx: typer.Context) -> None:
    """Create a one-time direct upload URL for a video."""

    g = _ctx_global(ctx)
    _print_json(_gateway_call(g, STREAM_UPLOAD_PATH, {"action": "create-upload"}), pretty=g.pretty)


@app.command("video-status")
def video_status_cmd(ctx: typer.Context, video_uid: str = typer.Argument(...)) -> None:
    """Show the processing status of a video."""

    g = _ctx_global(ctx)
    _print_json(
        _gateway_call(g, STREAM_UPLOAD_PATH, {"action": "get-status", "videoUid": video_uid}),
        pretty=g.pretty,
    )


@app.command("video-delete")
def video_delete_cmd(ctx: typer.Context, video_uid: str = typer.Argument(...)) -> None:
    """Delete one of your videos."""

    g = _ctx_global(ctx)
    _print_json(
        _gateway_call(g, STREAM_UPLOAD_PATH, {"action": "delete", "videoUid": video_uid}),
        pretty=g.pretty,
    )


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    try:
        result = app(args=argv, prog_name="media-gateway", standalone_mode=False)
        if result is None:
            return 0
        return int(result)
    except typer.Exit as e:
        return int(e.exit_code)
    except click.exceptions.Abort:
        return 1
    except click.ClickException as e:
        _rich_error(e.format_message())
        return int(e.exit_code)
    except UsageError as e:
        _rich_error(str(e))
        return 2
    except OpError as e:
        _rich_error(str(e))
        return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
