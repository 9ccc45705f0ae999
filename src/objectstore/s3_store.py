"""Amazon S3 object storage backend.

Works against AWS S3 and S3-compatible services (MinIO, Cloudflare R2, ...)
through a boto3 client. boto3 is synchronous, so every SDK call runs in a
worker thread via ``asyncio.to_thread`` and the event loop is never blocked.

Retry, backoff and credential resolution belong to boto3/botocore; the store
only builds requests, maps "not found" responses to ``None`` and drains every
paginated listing it starts.

Environment Variables:
    See objectstore.config (OBJECTSTORE_S3_*).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable, Iterator
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from objectstore.config import DEFAULT_MAX_CONCURRENCY, S3StoreSettings
from objectstore.errors import (
    BatchOperationError,
    ObjectNotFoundError,
    StorageBackendError,
    StoreConfigError,
)
from objectstore.models import ObjectInfo
from objectstore.object_store import ObjectStore, rewrite_prefix, validate_chunk_size
from objectstore.tracing import traced_storage_operation

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = frozenset({"NoSuchKey", "NotFound", "404"})

# S3 DeleteObjects accepts at most 1000 keys per request
DELETE_BATCH_LIMIT = 1000

DEFAULT_STORAGE_CLASS = "STANDARD"

# Matches the ListObjectsV2 page size
COPY_GROUP_SIZE = 1000


def _is_not_found(error: ClientError) -> bool:
    """Check whether a ClientError is S3's "no such key" signal."""
    code = str(error.response.get("Error", {}).get("Code", ""))
    return code in _NOT_FOUND_CODES


def _batched(items: list[dict[str, str]], size: int) -> Iterator[list[dict[str, str]]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class _BodyChunks:
    """Async iterator re-chunking a botocore StreamingBody to fixed-size chunks.

    Unlike an async generator, ``aclose()`` closes the body even when
    iteration never started.
    """

    def __init__(self, body: Any, chunk_size: int) -> None:
        self._body = body
        self._chunk_size = chunk_size
        self._pending = b""
        self._emitted = False
        self._exhausted = False
        self._closed = False

    def __aiter__(self) -> _BodyChunks:
        return self

    async def __anext__(self) -> bytes:
        if self._closed:
            raise StopAsyncIteration
        try:
            while not self._exhausted and len(self._pending) < self._chunk_size:
                data = await asyncio.to_thread(self._body.read, self._chunk_size)
                if not data:
                    self._exhausted = True
                else:
                    self._pending += data
        except BaseException:
            await self.aclose()
            raise

        if len(self._pending) >= self._chunk_size:
            chunk = self._pending[: self._chunk_size]
            self._pending = self._pending[self._chunk_size :]
        elif self._pending or not self._emitted:
            chunk, self._pending = self._pending, b""
        else:
            await self.aclose()
            raise StopAsyncIteration

        self._emitted = True
        return chunk

    async def aclose(self) -> None:
        if not self._closed:
            self._closed = True
            self._body.close()


def create_s3_client(settings: S3StoreSettings) -> Any:
    """Create a boto3 S3 client for the given settings.

    Args:
        settings: Store settings (region, endpoint, retry attempts).

    Returns:
        A boto3 S3 client.
    """
    cfg = Config(
        retries={"max_attempts": settings.max_attempts, "mode": "standard"},
        region_name=settings.region,
    )
    return boto3.client("s3", config=cfg, endpoint_url=settings.endpoint_url)


class S3ObjectStore(ObjectStore):
    """S3-backed object store holding one bucket's objects.

    Overrides the generic defaults wherever S3 has a native operation:
    existence checks by listing, metadata lookup by HEAD, streaming reads,
    batch deletes, versioned recursive deletes and server-side copies.
    """

    def __init__(
        self,
        bucket: str,
        client: Any,
        *,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        """Initialize the store.

        Args:
            bucket: Bucket holding the store's objects.
            client: A boto3 S3 client (or compatible object).
            max_concurrency: Upper bound on concurrent copies during copy_recursive.

        Raises:
            StoreConfigError: If the bucket is empty or max_concurrency is below 1.
        """
        bucket = (bucket or "").strip()
        if not bucket:
            raise StoreConfigError("S3 bucket name is required")
        if max_concurrency < 1:
            raise StoreConfigError("max_concurrency must be at least 1")

        self._bucket = bucket
        self._client = client
        self._max_concurrency = max_concurrency
        logger.debug("S3ObjectStore initialized with bucket=%s", bucket)

    @classmethod
    def from_settings(cls, settings: S3StoreSettings) -> S3ObjectStore:
        """Build a store and its boto3 client from settings."""
        return cls(
            settings.bucket,
            create_s3_client(settings),
            max_concurrency=settings.max_concurrency,
        )

    @classmethod
    def from_env(cls) -> S3ObjectStore:
        """Build a store from OBJECTSTORE_S3_* environment variables.

        Raises:
            StoreConfigError: If the configuration is missing or invalid.
        """
        return cls.from_settings(S3StoreSettings.from_env())

    @property
    def backend_name(self) -> str:
        """Return the backend identifier."""
        return "s3"

    @property
    def bucket(self) -> str:
        """Return the bucket name."""
        return self._bucket

    async def _call(self, operation: str, **params: Any) -> Any:
        method = getattr(self._client, operation)
        return await asyncio.to_thread(method, Bucket=self._bucket, **params)

    async def _iter_pages(self, operation: str, **params: Any) -> AsyncIterator[dict[str, Any]]:
        """Yield every page of a paginated listing, fetching each in a worker thread."""
        paginator = self._client.get_paginator(operation)
        pages = iter(paginator.paginate(Bucket=self._bucket, **params))
        while True:
            page = await asyncio.to_thread(next, pages, None)
            if page is None:
                return
            yield page

    @traced_storage_operation("exists_under_prefix", key_arg="prefix")
    async def exists_under_prefix(self, prefix: str) -> bool:
        response = await self._call("list_objects_v2", Prefix=prefix, MaxKeys=1)
        return int(response.get("KeyCount", 0)) != 0

    @traced_storage_operation("get")
    async def get(self, key: str) -> bytes | None:
        logger.debug("Loading S3 object from s3://%s/%s", self._bucket, key)
        try:
            response = await self._call("get_object", Key=key)
        except ClientError as e:
            if _is_not_found(e):
                return None
            raise

        body = response["Body"]
        try:
            return await asyncio.to_thread(body.read)
        finally:
            body.close()

    @traced_storage_operation("get_as_chunks")
    async def get_as_chunks(self, key: str, chunk_size: int) -> AsyncIterator[bytes] | None:
        """Stream the object at ``key`` without buffering it whole.

        Chunk boundaries match the generic default: every chunk holds exactly
        ``chunk_size`` bytes except the last, and an empty object yields one
        empty chunk.

        The returned iterator holds the HTTP response open. It is released
        once the iterator is exhausted or fails; callers that stop early must
        ``await chunks.aclose()``, which is safe even before the first chunk.
        """
        validate_chunk_size(chunk_size)
        try:
            response = await self._call("get_object", Key=key)
        except ClientError as e:
            if _is_not_found(e):
                return None
            raise
        return _BodyChunks(response["Body"], chunk_size)

    @traced_storage_operation("head")
    async def head(self, key: str) -> ObjectInfo | None:
        try:
            response = await self._call("head_object", Key=key)
        except ClientError as e:
            if _is_not_found(e):
                logger.debug("HeadObject for s3://%s/%s found nothing: %s", self._bucket, key, e)
                return None
            raise
        return ObjectInfo(size=int(response.get("ContentLength", 0)))

    @traced_storage_operation("put")
    async def put(self, key: str, data: bytes) -> None:
        logger.debug("Putting S3 object at s3://%s/%s", self._bucket, key)
        await self._call("put_object", Key=key, Body=bytes(data))

    @traced_storage_operation("delete")
    async def delete(self, key: str) -> None:
        logger.debug("Deleting S3 object at s3://%s/%s", self._bucket, key)
        await self._call("delete_object", Key=key)

    @traced_storage_operation("delete_many", key_arg=None)
    async def delete_many(self, keys: Iterable[str]) -> None:
        identifiers = [{"Key": key} for key in keys]
        logger.debug("Deleting %d S3 objects", len(identifiers))
        for batch in _batched(identifiers, DELETE_BATCH_LIMIT):
            await self._delete_objects(batch)

    async def _delete_objects(self, identifiers: list[dict[str, str]]) -> None:
        """Issue one DeleteObjects request and surface its in-band errors."""
        response = await self._call(
            "delete_objects",
            Delete={"Objects": identifiers, "Quiet": True},
        )
        errors = response.get("Errors") or []
        if errors:
            first = errors[0]
            logger.warning(
                "DeleteObjects in bucket %s reported %d failures (first: %s %s)",
                self._bucket,
                len(errors),
                first.get("Code"),
                first.get("Message"),
            )
            raise StorageBackendError(
                message=f"Failed to delete {len(errors)} objects: {first.get('Code')}",
                key=first.get("Key"),
                errors=errors,
            )

    @traced_storage_operation("delete_recursive", key_arg="prefix")
    async def delete_recursive(self, prefix: str) -> None:
        """Delete every version and delete marker under ``prefix``.

        Removing all versions keeps "deleted" objects from staying recoverable
        in versioned buckets. Unversioned buckets list each object once with
        version id "null", which S3 accepts.
        """
        logger.debug(
            "Recursively deleting everything in S3 bucket '%s' under path: '%s'",
            self._bucket,
            prefix,
        )

        deleted = 0
        async for page in self._iter_pages("list_object_versions", Prefix=prefix):
            identifiers = [
                {"Key": entry["Key"], "VersionId": entry["VersionId"]}
                for entry in [*page.get("Versions", []), *page.get("DeleteMarkers", [])]
            ]
            if not identifiers:
                continue
            logger.debug("Deleting a page of %d object versions", len(identifiers))
            for batch in _batched(identifiers, DELETE_BATCH_LIMIT):
                await self._delete_objects(batch)
                deleted += len(batch)

        logger.info(
            "Recursive deletion completed: bucket=%s prefix=%s versions=%d",
            self._bucket,
            prefix,
            deleted,
        )

    @traced_storage_operation("copy_from", key_arg="destination_key")
    async def copy_from(
        self,
        source_store: ObjectStore,
        source_key: str,
        destination_key: str,
    ) -> None:
        """Copy one object, server-side when the source is also an S3 store.

        The native copy replaces metadata instead of copying it and resets the
        storage class, so custom metadata, website redirects and archive tiers
        of the source are not carried over. Other sources fall back to the
        generic read-then-write path.

        Raises:
            ObjectNotFoundError: If the source object does not exist.
        """
        if not isinstance(source_store, S3ObjectStore):
            await super().copy_from(source_store, source_key, destination_key)
            return

        logger.debug(
            "Copying s3://%s/%s to s3://%s/%s",
            source_store.bucket,
            source_key,
            self._bucket,
            destination_key,
        )
        try:
            await self._call(
                "copy_object",
                Key=destination_key,
                CopySource={"Bucket": source_store.bucket, "Key": source_key},
                MetadataDirective="REPLACE",
                StorageClass=DEFAULT_STORAGE_CLASS,
            )
        except ClientError as e:
            if _is_not_found(e):
                raise ObjectNotFoundError(key=source_key) from e
            raise

    @traced_storage_operation("copy_recursive", key_arg="source_prefix")
    async def copy_recursive(self, source_prefix: str, destination_prefix: str) -> None:
        """Copy every object under ``source_prefix`` to ``destination_prefix``.

        The listing is drained before the first copy is issued, so objects
        written under a destination nested inside ``source_prefix`` are never
        copied again. Keys are then copied in groups of COPY_GROUP_SIZE, each
        fanned out concurrently (bounded by max_concurrency) and fully awaited
        before the next. A failed copy does not stop the others; any failures
        are raised together at the end.

        Raises:
            BatchOperationError: If one or more copies failed.
        """
        logger.debug(
            "Recursively copying everything in S3 bucket '%s' under path '%s' to '%s'",
            self._bucket,
            source_prefix,
            destination_prefix,
        )

        semaphore = asyncio.Semaphore(self._max_concurrency)
        failures: list[tuple[str, BaseException]] = []
        copied = 0

        async def copy_one(source_key: str) -> None:
            async with semaphore:
                destination_key = rewrite_prefix(source_key, source_prefix, destination_prefix)
                await self.copy_from(self, source_key, destination_key)

        source_keys = [
            entry["Key"]
            async for page in self._iter_pages("list_objects_v2", Prefix=source_prefix)
            for entry in page.get("Contents", [])
        ]

        for start in range(0, len(source_keys), COPY_GROUP_SIZE):
            keys = source_keys[start : start + COPY_GROUP_SIZE]
            logger.debug("Copying a group of %d objects", len(keys))
            results = await asyncio.gather(*(copy_one(key) for key in keys), return_exceptions=True)
            for key, result in zip(keys, results, strict=True):
                if isinstance(result, Exception):
                    logger.warning("Failed to copy s3://%s/%s: %s", self._bucket, key, result)
                    failures.append((key, result))
                elif isinstance(result, BaseException):
                    raise result
                else:
                    copied += 1

        if failures:
            raise BatchOperationError(
                message=f"Failed to copy {len(failures)} of {len(failures) + copied} objects",
                key=source_prefix,
                failures=failures,
            )

        logger.info(
            "Recursive copy completed: bucket=%s from=%s to=%s objects=%d",
            self._bucket,
            source_prefix,
            destination_prefix,
            copied,
        )
