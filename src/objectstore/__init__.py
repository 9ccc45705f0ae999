"""Key-addressed binary object storage.

Provides one asynchronous ObjectStore interface over interchangeable backends.

Backends:
- MemoryObjectStore: in-process dict (tests, embedded use)
- S3ObjectStore: Amazon S3 and S3-compatible services (requires boto3)

Environment Variables:
    OBJECTSTORE_BACKEND: "memory" or "s3" (default: "memory")
    OBJECTSTORE_S3_*: S3 settings, see objectstore.config
"""

from objectstore.errors import (
    BatchOperationError,
    ObjectNotFoundError,
    ObjectStorageError,
    StorageBackendError,
    StoreConfigError,
)
from objectstore.factory import get_object_store
from objectstore.memory_store import MemoryObjectStore
from objectstore.models import ObjectInfo
from objectstore.object_store import ObjectStore

__all__ = [
    "ObjectStore",
    "ObjectInfo",
    "MemoryObjectStore",
    "get_object_store",
    "ObjectStorageError",
    "ObjectNotFoundError",
    "StorageBackendError",
    "BatchOperationError",
    "StoreConfigError",
]
