"""Object storage interface definition.

Provides the ObjectStore base class that all storage backends implement.

A backend must supply six primitives natively: ``exists_under_prefix``,
``get``, ``put``, ``delete``, ``delete_recursive`` and ``copy_recursive``.
Every other operation has a default built only from those primitives (or from
each other), so a minimal backend needs nothing more. Backends override the
defaults where their storage system offers a cheaper native operation.

Keys are opaque strings. They may contain ``/`` but the store attaches no
hierarchy to them: prefix operations are plain ``str.startswith`` tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterable, AsyncIterator, Iterable

from objectstore.errors import ObjectNotFoundError
from objectstore.models import ObjectInfo


def validate_chunk_size(chunk_size: int) -> None:
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")


async def iter_chunks(data: bytes, chunk_size: int) -> AsyncIterator[bytes]:
    """Yield ``data`` in slices of ``chunk_size`` bytes.

    Every chunk except the last holds exactly ``chunk_size`` bytes. An empty
    payload yields a single empty chunk.
    """
    validate_chunk_size(chunk_size)
    position = 0
    while True:
        end = min(position + chunk_size, len(data))
        yield data[position:end]
        position = end
        if position >= len(data):
            break


class ObjectStore(ABC):
    """Abstract base class for object storage backends.

    All operations are coroutines. Single-key operations may be issued
    concurrently against one store; concurrent puts to the same key race and
    the last write to complete wins. Recursive operations are not atomic.

    Implementations:
    - MemoryObjectStore: in-process dict (tests, embedded use)
    - S3ObjectStore: Amazon S3 and S3-compatible services
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend identifier for logging and tracing.

        Returns:
            Backend name string (e.g., "memory", "s3").
        """
        ...

    async def exists(self, key: str) -> bool:
        """Check whether an object exists at ``key``.

        Args:
            key: Key identifying the object.

        Returns:
            True if the object exists, False otherwise.
        """
        return await self.head(key) is not None

    @abstractmethod
    async def exists_under_prefix(self, prefix: str) -> bool:
        """Check whether at least one object key starts with ``prefix``.

        Args:
            prefix: Plain string prefix (e.g. "reports/2024/" or "rep").

        Returns:
            True if any key starts with ``prefix``, False otherwise.
        """
        ...

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Retrieve the object at ``key``.

        Args:
            key: Key identifying the object.

        Returns:
            The object's content, or None if it does not exist.
        """
        ...

    async def get_or_fail(self, key: str) -> bytes:
        """Retrieve the object at ``key``, failing if it does not exist.

        Raises:
            ObjectNotFoundError: If the object does not exist.
        """
        data = await self.get(key)
        if data is None:
            raise ObjectNotFoundError(key=key)
        return data

    async def get_as_chunks(self, key: str, chunk_size: int) -> AsyncIterator[bytes] | None:
        """Return the object at ``key`` as an async iterator of byte chunks.

        The default loads the whole object first and then slices it, so it
        saves no memory; streaming backends override it.

        Args:
            key: Key identifying the object.
            chunk_size: Size of each chunk in bytes (at least 1). The final
                chunk holds the remainder; an empty object yields one empty chunk.

        Returns:
            An async iterator of chunks, or None if the object does not exist.

        Raises:
            ValueError: If ``chunk_size`` is less than 1.
        """
        validate_chunk_size(chunk_size)
        data = await self.get(key)
        if data is None:
            return None
        return iter_chunks(data, chunk_size)

    async def get_as_chunks_or_fail(self, key: str, chunk_size: int) -> AsyncIterator[bytes]:
        """Return the object at ``key`` as chunks, failing if it does not exist.

        Raises:
            ObjectNotFoundError: If the object does not exist.
            ValueError: If ``chunk_size`` is less than 1.
        """
        chunks = await self.get_as_chunks(key, chunk_size)
        if chunks is None:
            raise ObjectNotFoundError(key=key)
        return chunks

    async def head(self, key: str) -> ObjectInfo | None:
        """Return metadata for the object at ``key``.

        The default loads the full object to measure it. Backends with a
        native metadata lookup override this.

        Returns:
            ObjectInfo for the object, or None if it does not exist.
        """
        data = await self.get(key)
        if data is None:
            return None
        return ObjectInfo(size=len(data))

    @abstractmethod
    async def put(self, key: str, data: bytes) -> None:
        """Store ``data`` at ``key``, fully replacing any existing object.

        Args:
            key: Key under which to store the data.
            data: Object content.
        """
        ...

    async def put_chunks(self, key: str, chunks: AsyncIterable[bytes] | Iterable[bytes]) -> None:
        """Store an object supplied as a stream of byte chunks.

        Chunks are concatenated in arrival order and written with a single
        ``put``. The whole stream is consumed into memory first.

        Args:
            key: Key under which to store the data.
            chunks: Async or plain iterable of byte chunks.
        """
        buffer = bytearray()
        if isinstance(chunks, AsyncIterable):
            async for chunk in chunks:
                buffer += chunk
        else:
            for chunk in chunks:
                buffer += chunk
        await self.put(key, bytes(buffer))

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete the object at ``key``. Missing keys are a no-op."""
        ...

    async def delete_many(self, keys: Iterable[str]) -> None:
        """Delete every key in ``keys``, in order. Missing keys are a no-op."""
        for key in keys:
            await self.delete(key)

    @abstractmethod
    async def delete_recursive(self, prefix: str) -> None:
        """Delete every object whose key starts with ``prefix``.

        No matching objects is a no-op.
        """
        ...

    async def copy_from(
        self,
        source_store: ObjectStore,
        source_key: str,
        destination_key: str,
    ) -> None:
        """Copy one object from ``source_store`` into this store.

        The default reads the source object and writes it here. Backends may
        override this with a native copy when ``source_store`` is the same
        kind of backend. Only content is copied, never source metadata.

        Args:
            source_store: Store to read from (may be this store).
            source_key: Key of the object in ``source_store``.
            destination_key: Key to write in this store.

        Raises:
            ObjectNotFoundError: If the source object does not exist.
        """
        data = await source_store.get_or_fail(source_key)
        await self.put(destination_key, data)

    @abstractmethod
    async def copy_recursive(self, source_prefix: str, destination_prefix: str) -> None:
        """Copy every object under ``source_prefix`` within this store.

        Each key ``k`` starting with ``source_prefix`` is copied to
        ``destination_prefix + k[len(source_prefix):]``. No matching objects
        is a no-op.
        """
        ...


def rewrite_prefix(key: str, source_prefix: str, destination_prefix: str) -> str:
    """Map ``key`` from under ``source_prefix`` to under ``destination_prefix``."""
    return destination_prefix + key[len(source_prefix) :]
