"""
Blob storage for Cloudflare R2 (S3-compatible) and in-memory testing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class StoredObject:
    body: bytes
    content_type: str = DEFAULT_CONTENT_TYPE


class BlobStore(Protocol):
    """Defines the operations the proxy needs from object storage."""

    def get_object(self, key: str) -> Optional[StoredObject]:
        ...

    def put_object(self, key: str, body: bytes, content_type: Optional[str]) -> None:
        ...


@dataclass
class InMemoryBlobStore:
    """Test double for storage interactions."""

    stored_objects: dict[str, StoredObject] = field(default_factory=dict)

    def get_object(self, key: str) -> Optional[StoredObject]:
        return self.stored_objects.get(key)

    def put_object(self, key: str, body: bytes, content_type: Optional[str]) -> None:
        self.stored_objects[key] = StoredObject(
            body=bytes(body), content_type=content_type or DEFAULT_CONTENT_TYPE
        )


@dataclass
class R2BlobStore:
    """
    S3-compatible blob store for Cloudflare R2.
    """

    bucket: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    region: str = "auto"

    def __post_init__(self):
        config = Config(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint,
            region_name=self.region,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def get_object(self, key: str) -> Optional[StoredObject]:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code in ("NoSuchKey", "404", "NotFound"):
                return None
            raise
        return StoredObject(
            body=response["Body"].read(),
            content_type=response.get("ContentType") or DEFAULT_CONTENT_TYPE,
        )

    def put_object(self, key: str, body: bytes, content_type: Optional[str]) -> None:
        self._client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=body,
            ContentType=content_type or DEFAULT_CONTENT_TYPE,
        )
