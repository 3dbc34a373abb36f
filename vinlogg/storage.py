"""
Storage abstraction for S3-compatible buckets (Supabase Storage, COS, S3)
and in-memory testing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError


class StorageError(Exception):
    """The storage backend rejected or failed an operation."""


class StorageClient(Protocol):
    """Where uploaded wine photos go."""

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> None:
        ...

    def public_url(self, path: str) -> str:
        ...


@dataclass
class InMemoryStorageClient:
    """Keeps uploaded photos in a dict; used by tests and local runs."""

    base_url: str = "https://example.test/storage/wine-images"
    stored_objects: dict = field(default_factory=dict)

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> None:
        self.stored_objects[path] = (data, content_type)

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/{path}"

    def get_bytes(self, path: str) -> bytes:
        stored = self.stored_objects.get(path)
        if stored is None:
            raise FileNotFoundError(path)
        return stored[0]


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client. Objects are served from a public bucket, so
    the public URL is the configured base URL plus the object key.
    """

    bucket: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    public_base_url: str
    region: Optional[str] = None

    def __post_init__(self):
        # Supabase Storage and most S3 clones require path-style addressing.
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
        self.public_base_url = self.public_base_url.rstrip("/")

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> None:
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=path,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"upload of {path} failed: {e}") from e

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url}/{path}"
