"""In-memory object storage backend.

Intended for tests and small embedded use. Prefix operations scan every key.
"""

from __future__ import annotations

import logging
import threading

from objectstore.models import ObjectInfo
from objectstore.object_store import ObjectStore, rewrite_prefix
from objectstore.tracing import traced_storage_operation

logger = logging.getLogger(__name__)


class MemoryObjectStore(ObjectStore):
    """Thread-safe in-memory object storage backend.

    Objects live in a dict guarded by a lock. Each single-key read, write or
    removal is atomic; nothing spans more than one key atomically.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._objects: dict[str, bytes] = {}

    @property
    def backend_name(self) -> str:
        """Return the backend identifier."""
        return "memory"

    def __len__(self) -> int:
        with self._lock:
            return len(self._objects)

    @traced_storage_operation("exists")
    async def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._objects

    @traced_storage_operation("exists_under_prefix", key_arg="prefix")
    async def exists_under_prefix(self, prefix: str) -> bool:
        with self._lock:
            return any(key.startswith(prefix) for key in self._objects)

    @traced_storage_operation("get")
    async def get(self, key: str) -> bytes | None:
        with self._lock:
            return self._objects.get(key)

    @traced_storage_operation("head")
    async def head(self, key: str) -> ObjectInfo | None:
        with self._lock:
            data = self._objects.get(key)
        if data is None:
            return None
        return ObjectInfo(size=len(data))

    @traced_storage_operation("put")
    async def put(self, key: str, data: bytes) -> None:
        # Copy so later mutation of a bytearray/memoryview cannot alter the object
        stored = bytes(data)
        with self._lock:
            self._objects[key] = stored
        logger.debug("Stored object: key=%s size=%d", key, len(stored))

    @traced_storage_operation("delete")
    async def delete(self, key: str) -> None:
        with self._lock:
            removed = self._objects.pop(key, None)
        if removed is not None:
            logger.debug("Deleted object: key=%s", key)

    @traced_storage_operation("delete_recursive", key_arg="prefix")
    async def delete_recursive(self, prefix: str) -> None:
        with self._lock:
            matched = [key for key in self._objects if key.startswith(prefix)]
            for key in matched:
                del self._objects[key]
        logger.debug("Recursively deleted %d objects under prefix=%s", len(matched), prefix)

    @traced_storage_operation("copy_recursive", key_arg="source_prefix")
    async def copy_recursive(self, source_prefix: str, destination_prefix: str) -> None:
        with self._lock:
            snapshot = dict(self._objects)

        copied = 0
        for key, data in snapshot.items():
            if not key.startswith(source_prefix):
                continue
            destination_key = rewrite_prefix(key, source_prefix, destination_prefix)
            with self._lock:
                self._objects[destination_key] = data
            copied += 1

        logger.debug(
            "Recursively copied %d objects from prefix=%s to prefix=%s",
            copied,
            source_prefix,
            destination_prefix,
        )

    def clear(self) -> None:
        """Remove every object from the store."""
        with self._lock:
            count = len(self._objects)
            self._objects.clear()
        if count:
            logger.info("Cleared %d objects from memory store", count)
