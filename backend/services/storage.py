"""MinIO-backed object storage for avatar images."""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from datetime import datetime
from functools import lru_cache
from io import BytesIO
from typing import Protocol
from urllib.parse import quote

from minio import Minio
from minio.error import S3Error

from core import settings

MISSING_OBJECT_CODES = frozenset({"NoSuchKey", "NoSuchObject", "ResourceNotFound"})


class ObjectStore(Protocol):
    """Blob storage the avatar workflow writes to."""

    async def put(self, object_key: str, data: bytes, content_type: str) -> None: ...

    async def delete(self, object_key: str) -> None: ...

    def public_url(self, object_key: str) -> str: ...


@lru_cache
def get_minio_client() -> Minio:
    """Return a cached MinIO client configured from settings."""
    return Minio(
        settings.minio_endpoint,
        access_key=settings.minio_access_key,
        secret_key=settings.minio_secret_key,
        secure=settings.minio_secure,
    )


def ensure_bucket(client: Minio | None = None, bucket_name: str | None = None) -> None:
    """Ensure the bucket exists."""
    client = client or get_minio_client()
    bucket_name = bucket_name or settings.minio_bucket

    if client.bucket_exists(bucket_name):  # pragma: no cover - network call
        return

    try:
        client.make_bucket(bucket_name)  # pragma: no cover - network call
    except S3Error as exc:  # pragma: no cover - handle race conditions
        allowed_codes = {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}
        if exc.code not in allowed_codes:
            raise


def delete_object(
    object_key: str,
    client: Minio | None = None,
    bucket_name: str | None = None,
) -> None:
    """Delete an object from the bucket when it exists."""
    client = client or get_minio_client()
    try:
        client.remove_object(bucket_name or settings.minio_bucket, object_key)  # pragma: no cover - network call
    except S3Error as exc:  # pragma: no cover - network call
        if exc.code not in MISSING_OBJECT_CODES:
            raise


def build_public_url(object_key: str, *, base_url: str, bucket_name: str) -> str:
    """Return the publicly resolvable URL of an object."""
    normalized_key = object_key.strip().lstrip("/")
    if not normalized_key:
        raise ValueError("object_key must not be empty")
    return f"{base_url.rstrip('/')}/{bucket_name}/{quote(normalized_key)}"


def iter_objects(
    prefix: str,
    client: Minio | None = None,
    bucket_name: str | None = None,
) -> Iterator[tuple[str, datetime | None]]:
    """Yield ``(object_key, last_modified)`` for every object under ``prefix``."""
    client = client or get_minio_client()
    for item in client.list_objects(
        bucket_name or settings.minio_bucket,
        prefix=prefix,
        recursive=True,
    ):  # pragma: no cover - network call
        if item.is_dir or item.object_name is None:
            continue
        yield item.object_name, item.last_modified


class MinioObjectStore:
    """Async facade over the blocking MinIO client."""

    def __init__(
        self,
        client: Minio,
        *,
        bucket_name: str,
        public_base_url: str,
    ) -> None:
        self.client = client
        self.bucket_name = bucket_name
        self.public_base_url = public_base_url
        self._bucket_ready = False

    def _put_blocking(self, object_key: str, data: bytes, content_type: str) -> None:
        if not self._bucket_ready:
            ensure_bucket(self.client, self.bucket_name)
            self._bucket_ready = True
        # put_object replaces any existing object with the same key.
        self.client.put_object(
            self.bucket_name,
            object_key,
            data=BytesIO(data),
            length=len(data),
            content_type=content_type,
        )

    async def put(self, object_key: str, data: bytes, content_type: str) -> None:
        await asyncio.to_thread(self._put_blocking, object_key, data, content_type)

    async def delete(self, object_key: str) -> None:
        await asyncio.to_thread(delete_object, object_key, self.client, self.bucket_name)

    def public_url(self, object_key: str) -> str:
        return build_public_url(
            object_key,
            base_url=self.public_base_url,
            bucket_name=self.bucket_name,
        )


@lru_cache
def get_object_store() -> MinioObjectStore:
    """Return the shared store; the bucket check runs once per process."""
    return MinioObjectStore(
        get_minio_client(),
        bucket_name=settings.minio_bucket,
        public_base_url=settings.public_object_base_url,
    )


__all__ = [
    "MinioObjectStore",
    "ObjectStore",
    "build_public_url",
    "delete_object",
    "ensure_bucket",
    "get_minio_client",
    "get_object_store",
    "iter_objects",
]
