"""Backend selection from configuration."""

from __future__ import annotations

import logging

from objectstore.config import OBJECTSTORE_BACKEND_ENV, get_backend_name
from objectstore.errors import StoreConfigError
from objectstore.memory_store import MemoryObjectStore
from objectstore.object_store import ObjectStore

logger = logging.getLogger(__name__)


def get_object_store(backend: str | None = None) -> ObjectStore:
    """Create the configured object store.

    Args:
        backend: "memory" or "s3". If None, uses OBJECTSTORE_BACKEND
            (default: "memory").

    Returns:
        A new ObjectStore instance.

    Raises:
        StoreConfigError: If the backend is unknown or its settings are incomplete.
    """
    if backend is None:
        backend = get_backend_name()
        logger.debug("Object store backend from %s: %s", OBJECTSTORE_BACKEND_ENV, backend)

    if backend == "s3":
        from objectstore.s3_store import S3ObjectStore

        return S3ObjectStore.from_env()

    if backend == "memory":
        return MemoryObjectStore()

    raise StoreConfigError(f"Unsupported object store backend: {backend!r}")
