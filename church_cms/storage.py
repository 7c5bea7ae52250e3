"""
Object storage for uploaded media: S3 (boto3) and an in-memory test double.

Blobs have no record of their own. The public URL returned by ``upload`` is
the only handle, so ``delete`` has to recover the object key from it.
"""

from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass, field
from typing import Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from church_cms.errors import (
    InvalidReference,
    StorageDeleteError,
    StorageReadError,
    StorageUploadError,
)

logger = logging.getLogger(__name__)

S3_DOMAIN = ".s3.amazonaws.com/"

CONTENT_TYPES = {
    # Images
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    # Audio
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".wave": "audio/wav",
    ".m4a": "audio/m4a",
    ".mp4": "audio/mp4",
    ".aac": "audio/aac",
    ".ogg": "audio/ogg",
    ".oga": "audio/ogg",
    ".flac": "audio/flac",
    ".opus": "audio/opus",
    ".webm": "audio/webm",
    ".3gp": "audio/3gpp",
    ".3g2": "audio/3gpp2",
    ".amr": "audio/amr",
    ".mid": "audio/midi",
    ".midi": "audio/midi",
    ".wma": "audio/wma",
}


class ObjectStore(Protocol):
    """Defines the operations the API needs from object storage."""

    def upload(self, data: bytes, original_filename: str, folder: str) -> str:
        ...

    def delete(self, url: str) -> None:
        ...

    def get_bytes(self, url: str) -> bytes:
        ...


def content_type_for(filename: str) -> str:
    extension = os.path.splitext(filename)[1].lower()
    return CONTENT_TYPES.get(extension, "application/octet-stream")


def build_object_key(original_filename: str, folder: str) -> str:
    """``<folder>/<random-id><original-extension>``"""
    extension = os.path.splitext(original_filename)[1]
    return f"{folder}/{uuid.uuid4()}{extension}"


def public_url(key: str, bucket: str, cdn_base_url: str = "") -> str:
    if cdn_base_url:
        return f"{cdn_base_url.rstrip('/')}/{key}"
    return f"https://{bucket}{S3_DOMAIN}{key}"


def key_from_url(url: str, bucket: str, cdn_base_url: str = "") -> Optional[str]:
    """
    Recover the object key from a URL produced by ``public_url``.

    Tries the CDN prefix, then the bucket domain, then a raw ``s3://`` URL.
    Returns None when the URL has none of these shapes.
    """
    if not url:
        return None
    cdn = cdn_base_url.rstrip("/")
    if cdn and url.startswith(f"{cdn}/"):
        key = url[len(cdn) + 1 :]
    elif S3_DOMAIN in url:
        key = url.split(S3_DOMAIN, 1)[1]
    elif url.startswith(f"s3://{bucket}/"):
        key = url[len(f"s3://{bucket}/") :]
    else:
        return None
    return key or None


@dataclass
class InMemoryObjectStore:
    """Test double for object storage."""

    bucket: str = "church-cms-media"
    cdn_base_url: str = ""
    objects: dict = field(default_factory=dict)

    def upload(self, data: bytes, original_filename: str, folder: str) -> str:
        key = build_object_key(original_filename, folder)
        self.objects[key] = (bytes(data), content_type_for(original_filename))
        return public_url(key, self.bucket, self.cdn_base_url)

    def delete(self, url: str) -> None:
        key = key_from_url(url, self.bucket, self.cdn_base_url)
        if key is None:
            raise InvalidReference(url)
        # S3 deletes are idempotent; mirror that.
        self.objects.pop(key, None)

    def get_bytes(self, url: str) -> bytes:
        key = key_from_url(url, self.bucket, self.cdn_base_url)
        if key is None or key not in self.objects:
            raise FileNotFoundError(url)
        return self.objects[key][0]

    def content_type(self, url: str) -> Optional[str]:
        key = key_from_url(url, self.bucket, self.cdn_base_url)
        stored = self.objects.get(key)
        return stored[1] if stored else None

    def reset(self) -> None:
        self.objects.clear()


@dataclass
class S3ObjectStore:
    """
    S3 storage client. ``endpoint`` allows S3-compatible providers.
    """

    bucket: str
    region: str
    access_key_id: str = ""
    secret_access_key: str = ""
    endpoint: Optional[str] = None
    cdn_base_url: str = ""

    def __post_init__(self):
        config = Config(signature_version="s3v4")
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )

    def upload(self, data: bytes, original_filename: str, folder: str) -> str:
        key = build_object_key(original_filename, folder)
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type_for(original_filename),
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("S3 upload failed for %s: %s", key, e)
            raise StorageUploadError(key, str(e)) from e
        logger.info("Uploaded %s (%d bytes)", key, len(data))
        return public_url(key, self.bucket, self.cdn_base_url)

    def delete(self, url: str) -> None:
        key = key_from_url(url, self.bucket, self.cdn_base_url)
        if key is None:
            raise InvalidReference(url)
        try:
            self._client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise StorageDeleteError(url, str(e)) from e
        logger.info("Deleted %s", key)

    def get_bytes(self, url: str) -> bytes:
        key = key_from_url(url, self.bucket, self.cdn_base_url)
        if key is None:
            raise FileNotFoundError(url)
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                raise FileNotFoundError(url) from e
            raise StorageReadError(url, str(e)) from e
        except BotoCoreError as e:
            raise StorageReadError(url, str(e)) from e
        return response["Body"].read()
