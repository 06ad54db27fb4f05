from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from gateway_config import SIGNED_URL_TTL_SECONDS, StorageSettings
from gateway_errors import UpstreamFailure

VERB_PUT = "put"
VERB_DELETE = "delete"


@dataclass(frozen=True)
class DelegatedCredential:
    url: str
    verb: str
    key: str
    expires_in: int
    expires_at: str


class ObjectSigner:
    """Presigns single-object operations against an R2 bucket.

    Signing happens locally with the account's S3 API keys; the expiry is
    enforced by R2 when the URL is used.
    """

    def __init__(
        self,
        s3_client: Any,
        *,
        bucket: str,
        public_base_url: str,
        ttl_seconds: int = SIGNED_URL_TTL_SECONDS,
    ) -> None:
        self.s3 = s3_client
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_settings(cls, settings: StorageSettings) -> "ObjectSigner":
        client = boto3.client(
            "s3",
            endpoint_url=settings.endpoint_url,
            region_name="auto",
            aws_access_key_id=settings.access_key_id,
            aws_secret_access_key=settings.secret_access_key,
            config=Config(signature_version="s3v4", retries={"max_attempts": 1}),
        )
        return cls(client, bucket=settings.bucket, public_base_url=settings.public_base_url)

    def _sign(self, client_method: str, verb: str, key: str, params: dict[str, Any]) -> DelegatedCredential:
        issued = datetime.now(timezone.utc)
        try:
            url = self.s3.generate_presigned_url(
                client_method,
                Params={"Bucket": self.bucket, "Key": key, **params},
                ExpiresIn=self.ttl_seconds,
            )
        except (BotoCoreError, ClientError) as e:
            raise UpstreamFailure(str(e), storage_path=key) from e
        return DelegatedCredential(
            url=url,
            verb=verb,
            key=key,
            expires_in=self.ttl_seconds,
            expires_at=(issued + timedelta(seconds=self.ttl_seconds)).isoformat(),
        )

    def presign_put(self, key: str, content_type: str) -> DelegatedCredential:
        return self._sign("put_object", VERB_PUT, key, {"ContentType": content_type})

    def presign_delete(self, key: str) -> DelegatedCredential:
        return self._sign("delete_object", VERB_DELETE, key, {})

    def public_url(self, key: str) -> str:
        # Only resolvable once the caller has actually uploaded with the PUT URL.
        return f"{self.public_base_url}/{key}"
