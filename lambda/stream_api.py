from __future__ import annotations

from typing import Any
from urllib.parse import quote

from gateway_config import MAX_VIDEO_DURATION_SECONDS, StreamSettings
from gateway_errors import InvalidRequest, UpstreamFailure
from http_events import now_iso
from upstream_http import HttpJson, http_json

STREAM_API_ROOT = "https://api.cloudflare.com/client/v4"


def _first_error(data: dict[str, Any], fallback: str) -> str:
    errors = data.get("errors")
    if isinstance(errors, list) and errors:
        first = errors[0]
        if isinstance(first, dict):
            msg = str(first.get("message") or "").strip()
            if msg:
                return msg
    return fallback


class StreamClient:
    """Thin client for the Cloudflare Stream v4 API (one call per method, no retries)."""

    def __init__(
        self,
        settings: StreamSettings,
        *,
        http: HttpJson = http_json,
        timeout_seconds: int = 10,
        api_root: str = STREAM_API_ROOT,
    ) -> None:
        self.settings = settings
        self.base_url = f"{api_root.rstrip('/')}/accounts/{settings.account_id}/stream"
        self._http = http
        self._timeout_seconds = timeout_seconds

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.settings.api_token}"}

    def _video_url(self, video_uid: str) -> str:
        uid = str(video_uid or "").strip()
        if not uid:
            raise InvalidRequest("videoUid is required")
        return f"{self.base_url}/{quote(uid, safe='')}"

    def create_direct_upload(
        self,
        owner: str,
        *,
        max_duration_seconds: int = MAX_VIDEO_DURATION_SECONDS,
    ) -> dict[str, str]:
        _, data = self._http(
            "POST",
            f"{self.base_url}/direct_upload",
            headers=self._headers(),
            payload={
                "maxDurationSeconds": max_duration_seconds,
                "requireSignedURLs": False,
                "meta": {"userId": owner, "uploadedAt": now_iso()},
            },
            timeout_seconds=self._timeout_seconds,
        )
        if data.get("success") is not True:
            raise UpstreamFailure(_first_error(data, "Failed to create upload URL"))
        result = data.get("result") or {}
        upload_url = str(result.get("uploadURL") or "") if isinstance(result, dict) else ""
        video_uid = str(result.get("uid") or "") if isinstance(result, dict) else ""
        if not upload_url or not video_uid:
            raise UpstreamFailure("Failed to create upload URL")
        return {"uploadUrl": upload_url, "videoUid": video_uid}

    def _lookup(self, video_uid: str) -> tuple[dict[str, Any] | None, dict[str, Any]]:
        _, data = self._http(
            "GET",
            self._video_url(video_uid),
            headers=self._headers(),
            timeout_seconds=self._timeout_seconds,
        )
        result = data.get("result")
        if data.get("success") is not True or not isinstance(result, dict):
            return None, data
        return result, data

    def get_video(self, video_uid: str) -> dict[str, Any]:
        video, data = self._lookup(video_uid)
        if video is None:
            raise UpstreamFailure(_first_error(data, "Failed to get video status"))
        return video

    def find_video(self, video_uid: str) -> dict[str, Any] | None:
        """Like get_video, but an unsuccessful lookup (e.g. unknown uid) yields None.

        Transport failures still raise UpstreamFailure.
        """

        video, _ = self._lookup(video_uid)
        return video

    def delete_video(self, video_uid: str) -> None:
        status, _ = self._http(
            "DELETE",
            self._video_url(video_uid),
            headers=self._headers(),
            timeout_seconds=self._timeout_seconds,
        )
        if status != 200:
            raise UpstreamFailure("Failed to delete video")
