"""In-memory object store with S3 listing semantics.

Keys are kept per bucket and listed in lexicographic order, `page_size` keys at
a time, so pagination behaves like a real bucket. Every call is recorded in
`ops` for inspection.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from s3_lambda.datatypes import ListPage, ObjectEntry
from s3_lambda.errors import ErrorKind, StoreError


@dataclass(frozen=True)
class StoreOp:
    name: str
    args: tuple[object, ...]


class MemoryProvider:
    """Object store that keeps every bucket in a dict."""

    def __init__(
        self,
        objects: Mapping[str, Mapping[str, bytes]] | None = None,
        *,
        page_size: int = 1000,
    ) -> None:
        if page_size < 1:
            msg = "page_size must be positive"
            raise ValueError(msg)
        self.page_size = page_size
        self.buckets: dict[str, dict[str, bytes]] = {
            bucket: dict(contents) for bucket, contents in (objects or {}).items()
        }
        self.ops: list[StoreOp] = []

    async def disconnect(self) -> None:
        """Nothing to release."""

    def calls(self, name: str) -> list[tuple[object, ...]]:
        """Arguments of every recorded call to `name`."""
        return [op.args for op in self.ops if op.name == name]

    def _bucket(self, bucket: str) -> dict[str, bytes]:
        try:
            return self.buckets[bucket]
        except KeyError:
            msg = f"Bucket '{bucket}' not found"
            raise StoreError(msg, kind=ErrorKind.NOT_FOUND, bucket=bucket) from None

    async def list_objects(
        self,
        bucket: str,
        prefix: str,
        marker: str | None = None,
    ) -> ListPage:
        self.ops.append(StoreOp("list_objects", (bucket, prefix, marker)))
        keys = sorted(
            key
            for key in self._bucket(bucket)
            if key.startswith(prefix) and (not marker or key > marker)
        )
        page = keys[: self.page_size]
        return ListPage(
            entries=[ObjectEntry(key=key, size=len(self.buckets[bucket][key])) for key in page],
            truncated=len(keys) > self.page_size,
        )

    def _read(self, bucket: str, key: str) -> bytes:
        try:
            return self._bucket(bucket)[key]
        except KeyError:
            msg = f"Object 's3://{bucket}/{key}' not found"
            raise StoreError(msg, kind=ErrorKind.NOT_FOUND, bucket=bucket, key=key) from None

    async def get_object(self, bucket: str, key: str) -> bytes:
        self.ops.append(StoreOp("get_object", (bucket, key)))
        return self._read(bucket, key)

    async def put_object(self, bucket: str, key: str, body: bytes) -> None:
        self.ops.append(StoreOp("put_object", (bucket, key)))
        self.buckets.setdefault(bucket, {})[key] = bytes(body)

    async def copy_object(
        self,
        bucket: str,
        key: str,
        dst_bucket: str,
        dst_key: str,
    ) -> None:
        self.ops.append(StoreOp("copy_object", (bucket, key, dst_bucket, dst_key)))
        body = self._read(bucket, key)
        self.buckets.setdefault(dst_bucket, {})[dst_key] = body

    async def delete_object(self, bucket: str, key: str) -> None:
        self.ops.append(StoreOp("delete_object", (bucket, key)))
        self._bucket(bucket).pop(key, None)

    async def delete_objects(self, bucket: str, keys: Sequence[str]) -> None:
        self.ops.append(StoreOp("delete_objects", (bucket, list(keys))))
        contents = self._bucket(bucket)
        for key in keys:
            contents.pop(key, None)


Provider = MemoryProvider
