"""Core protocols for object stores."""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from s3_lambda.datatypes import ListPage


@runtime_checkable
class ObjectStore(Protocol):
    """Protocol for the object store a batch request runs against.

    Implementations raise `s3_lambda.errors.StoreError` for failed calls.
    """

    async def list_objects(
        self,
        bucket: str,
        prefix: str,
        marker: str | None = None,
    ) -> ListPage:
        """Return one page of keys under `prefix`, strictly after `marker`."""
        ...

    async def get_object(self, bucket: str, key: str) -> bytes:
        """Return the raw payload of an object."""
        ...

    async def put_object(self, bucket: str, key: str, body: bytes) -> None:
        """Create or overwrite an object."""
        ...

    async def copy_object(
        self,
        bucket: str,
        key: str,
        dst_bucket: str,
        dst_key: str,
    ) -> None:
        """Copy an object, server-side when the store supports it."""
        ...

    async def delete_object(self, bucket: str, key: str) -> None:
        """Delete a single object."""
        ...

    async def delete_objects(self, bucket: str, keys: Sequence[str]) -> None:
        """Delete several objects of one bucket."""
        ...

