"""Pytest configuration and fixtures for objectstore tests.

The S3 backend runs against a fake boto3 client so the same contract tests
cover both backends without network access.
"""

from __future__ import annotations

import pytest

from objectstore.memory_store import MemoryObjectStore
from objectstore.object_store import ObjectStore
from objectstore.s3_store import S3ObjectStore
from tests.fixtures.fake_s3 import TEST_BUCKET, FakeS3Client

_OBJECTSTORE_ENV_VARS = [
    "OBJECTSTORE_BACKEND",
    "OBJECTSTORE_S3_BUCKET",
    "OBJECTSTORE_S3_REGION",
    "OBJECTSTORE_S3_ENDPOINT_URL",
    "OBJECTSTORE_S3_MAX_CONCURRENCY",
    "OBJECTSTORE_S3_MAX_ATTEMPTS",
    "OBJECTSTORE_OTEL_ENABLED",
    "OBJECTSTORE_OTEL_TEST_CAPTURE",
    "AWS_REGION",
    "AWS_DEFAULT_REGION",
]


@pytest.fixture(autouse=True)
def clean_objectstore_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test without objectstore or AWS region configuration."""
    for name in _OBJECTSTORE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_s3() -> FakeS3Client:
    """Return an empty unversioned fake S3 client."""
    return FakeS3Client()


@pytest.fixture
def s3_store(fake_s3: FakeS3Client) -> S3ObjectStore:
    """Return an S3ObjectStore backed by the fake client."""
    return S3ObjectStore(TEST_BUCKET, fake_s3)


@pytest.fixture(params=["memory", "s3"])
def store(request: pytest.FixtureRequest, fake_s3: FakeS3Client) -> ObjectStore:
    """Return each backend in turn for contract tests."""
    if request.param == "memory":
        return MemoryObjectStore()
    return S3ObjectStore(TEST_BUCKET, fake_s3)
