"""Environment-driven configuration for object stores.

Values are read from the environment at call time, never at import time.

Environment Variables:
    OBJECTSTORE_BACKEND: "memory" or "s3" (default: "memory")
    OBJECTSTORE_S3_BUCKET: Bucket name (required for the s3 backend)
    OBJECTSTORE_S3_REGION: Region name; falls back to AWS_REGION, then AWS_DEFAULT_REGION
    OBJECTSTORE_S3_ENDPOINT_URL: Endpoint for S3-compatible services (MinIO, R2, ...)
    OBJECTSTORE_S3_MAX_CONCURRENCY: Concurrent copies per listing page in
        copy_recursive (default: 16)
    OBJECTSTORE_S3_MAX_ATTEMPTS: Passed through to botocore's retry config (default: 8)
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from objectstore.errors import StoreConfigError

OBJECTSTORE_BACKEND_ENV = "OBJECTSTORE_BACKEND"
OBJECTSTORE_S3_BUCKET_ENV = "OBJECTSTORE_S3_BUCKET"
OBJECTSTORE_S3_REGION_ENV = "OBJECTSTORE_S3_REGION"
OBJECTSTORE_S3_ENDPOINT_URL_ENV = "OBJECTSTORE_S3_ENDPOINT_URL"
OBJECTSTORE_S3_MAX_CONCURRENCY_ENV = "OBJECTSTORE_S3_MAX_CONCURRENCY"
OBJECTSTORE_S3_MAX_ATTEMPTS_ENV = "OBJECTSTORE_S3_MAX_ATTEMPTS"

DEFAULT_BACKEND = "memory"
SUPPORTED_BACKENDS = ("memory", "s3")
DEFAULT_MAX_CONCURRENCY = 16
DEFAULT_MAX_ATTEMPTS = 8


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    val = os.environ.get(key, "").strip().lower()
    if val in ("1", "true", "yes"):
        return True
    if val in ("0", "false", "no", ""):
        return default
    return default


def get_env_str(key: str, default: str = "") -> str:
    """Get string from environment variable."""
    return os.environ.get(key, default).strip()


def _get_env_positive_int(key: str, default: int) -> int:
    raw = get_env_str(key)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise StoreConfigError(f"{key} must be an integer, got {raw!r}") from e
    if value < 1:
        raise StoreConfigError(f"{key} must be at least 1, got {value}")
    return value


def get_backend_name() -> str:
    """Return the configured backend name.

    Raises:
        StoreConfigError: If the configured backend is not supported.
    """
    backend = get_env_str(OBJECTSTORE_BACKEND_ENV, DEFAULT_BACKEND).lower() or DEFAULT_BACKEND
    if backend not in SUPPORTED_BACKENDS:
        raise StoreConfigError(
            f"Unsupported {OBJECTSTORE_BACKEND_ENV}={backend!r}; "
            f"expected one of {', '.join(SUPPORTED_BACKENDS)}"
        )
    return backend


@dataclass(frozen=True)
class S3StoreSettings:
    """Settings for an S3-backed store.

    Attributes:
        bucket: Bucket holding the store's objects.
        region: AWS region name, or None to use boto3's resolution chain.
        endpoint_url: Custom endpoint for S3-compatible services.
        max_concurrency: Upper bound on concurrent copies during copy_recursive.
        max_attempts: botocore retry attempts (retry policy itself stays in botocore).
    """

    bucket: str
    region: str | None = None
    endpoint_url: str | None = None
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    max_attempts: int = DEFAULT_MAX_ATTEMPTS

    def __post_init__(self) -> None:
        if not self.bucket.strip():
            raise StoreConfigError("S3 bucket name is required")
        if self.max_concurrency < 1:
            raise StoreConfigError("max_concurrency must be at least 1")
        if self.max_attempts < 1:
            raise StoreConfigError("max_attempts must be at least 1")

    @classmethod
    def from_env(cls) -> S3StoreSettings:
        """Build settings from OBJECTSTORE_S3_* environment variables.

        Raises:
            StoreConfigError: If the bucket is missing or a value is invalid.
        """
        bucket = get_env_str(OBJECTSTORE_S3_BUCKET_ENV)
        if not bucket:
            raise StoreConfigError(f"{OBJECTSTORE_S3_BUCKET_ENV} is required for the s3 backend")

        region = (
            get_env_str(OBJECTSTORE_S3_REGION_ENV)
            or get_env_str("AWS_REGION")
            or get_env_str("AWS_DEFAULT_REGION")
        )
        endpoint_url = get_env_str(OBJECTSTORE_S3_ENDPOINT_URL_ENV)

        return cls(
            bucket=bucket,
            region=region or None,
            endpoint_url=endpoint_url or None,
            max_concurrency=_get_env_positive_int(
                OBJECTSTORE_S3_MAX_CONCURRENCY_ENV, DEFAULT_MAX_CONCURRENCY
            ),
            max_attempts=_get_env_positive_int(
                OBJECTSTORE_S3_MAX_ATTEMPTS_ENV, DEFAULT_MAX_ATTEMPTS
            ),
        )
