"""Object storage error types.

Absence of an object is a normal result for check operations (``get``,
``head``, ``exists``) and is reported as ``None``/``False``. Only the
"-or-fail" variants raise ObjectNotFoundError.
"""

from __future__ import annotations


class ObjectStorageError(Exception):
    """Base exception for object storage operations.

    Attributes:
        message: Human-readable error message.
        key: Object key or key prefix associated with the operation (if applicable).
    """

    def __init__(self, message: str, *, key: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.key = key

    def __str__(self) -> str:
        parts = [self.message]
        if self.key:
            parts.append(f"key={self.key}")
        return " ".join(parts)


class ObjectNotFoundError(ObjectStorageError):
    """Raised when a required object does not exist in the store."""

    def __init__(self, message: str = "Object not found", *, key: str | None = None) -> None:
        super().__init__(message, key=key)


class StorageBackendError(ObjectStorageError):
    """Raised when the backend reports a failure it did not raise itself.

    S3 batch deletes report per-key failures inside a successful response;
    those are surfaced through this error rather than dropped.

    Attributes:
        errors: The backend's per-key error entries (e.g. S3 ``Errors`` items
            with ``Key``, ``Code`` and ``Message``).
    """

    def __init__(
        self,
        message: str = "Storage backend error",
        *,
        key: str | None = None,
        errors: list[dict[str, str]] | None = None,
    ) -> None:
        super().__init__(message, key=key)
        self.errors = list(errors or [])


class BatchOperationError(ObjectStorageError):
    """Raised after a concurrent bulk operation in which some items failed.

    Every item is attempted before this is raised.

    Attributes:
        failures: (key, exception) pairs for every failed item, in completion order.
    """

    def __init__(
        self,
        message: str = "Batch operation failed",
        *,
        key: str | None = None,
        failures: list[tuple[str, BaseException]] | None = None,
    ) -> None:
        super().__init__(message, key=key)
        self.failures = list(failures or [])

    def __str__(self) -> str:
        base = super().__str__()
        if not self.failures:
            return base
        return f"{base} failed={len(self.failures)} first_failed_key={self.failures[0][0]}"


class StoreConfigError(ObjectStorageError):
    """Raised when store configuration is missing or invalid.

    This is fail-closed: no store is constructed from partial configuration.
    """

    def __init__(self, message: str = "Invalid object store configuration") -> None:
        super().__init__(message)
