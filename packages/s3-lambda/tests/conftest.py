from __future__ import annotations

import pytest

from s3_lambda import S3Lambda
from s3_lambda.providers.memory import MemoryProvider


@pytest.fixture
def store() -> MemoryProvider:
    """Bucket "b" holding files/file1..file4, each containing its own name."""
    return MemoryProvider(
        {"b": {f"files/file{i}": f"file{i}".encode() for i in range(1, 5)}},
        page_size=2,
    )


@pytest.fixture
def client(store: MemoryProvider) -> S3Lambda:
    return S3Lambda(store)
