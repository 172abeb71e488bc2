"""S3 provider using boto3."""

import asyncio
import logging
import os
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, ClassVar, Literal, Self

from pydantic import BaseModel, Field

from s3_lambda.datatypes import ListPage, ObjectEntry
from s3_lambda.errors import ErrorKind, StoreError
from s3_lambda.observability import log_event

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

try:
    import boto3
    from botocore.config import Config
    from botocore.exceptions import BotoCoreError, ClientError
except ImportError as e:
    _msg = "boto3 is required for S3 support. Install with: uv add 's3-lambda[s3]'"
    raise ImportError(_msg) from e

logger = logging.getLogger(__name__)

# S3 accepts at most this many keys per DeleteObjects call.
DELETE_BATCH_SIZE = 1000

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NoSuchBucket", "NotFound"})


class S3Credentials(BaseModel, frozen=True):
    """Credentials for S3 connection.

    When the key pair is left out, boto3 falls back to its default credential
    chain (environment, shared config, instance profile).
    """

    access_key_id: str | None = None
    secret_access_key: str | None = None
    session_token: str | None = None
    region: str = "us-east-1"
    endpoint_url: str | None = None

    @classmethod
    def from_env(cls) -> Self:
        """Read credentials from the standard AWS environment variables."""
        return cls(
            access_key_id=_env("AWS_ACCESS_KEY_ID"),
            secret_access_key=_env("AWS_SECRET_ACCESS_KEY"),
            session_token=_env("AWS_SESSION_TOKEN"),
            region=_env("AWS_REGION") or "us-east-1",
            endpoint_url=_env("S3_ENDPOINT_URL"),
        )


class S3Params(BaseModel, frozen=True):
    """Parameters for the S3 client."""

    page_size: int = Field(default=1000, ge=1, le=1000)
    """Keys requested per listing call."""

    max_retries: int = Field(default=10, ge=0)
    """Retry attempts handled by botocore."""

    timeout: float = Field(default=10.0, gt=0)
    """Connect and read timeout in seconds."""

    addressing_style: Literal["auto", "path", "virtual"] = "auto"
    """Bucket addressing style, "path" for most MinIO setups."""


def _env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", "Unknown"))


class S3Provider:
    """S3 provider for batch request object access.

    boto3 clients are blocking, so every call runs in a worker thread and
    concurrent batch tasks overlap their network waits.
    """

    __slots__: ClassVar[tuple[str, str]] = ("_client", "_params")

    _client: "S3Client"
    _params: S3Params

    def __init__(self, client: "S3Client", params: S3Params | None = None) -> None:
        self._client = client
        self._params = params or S3Params()

    @classmethod
    async def connect(cls, credentials: S3Credentials, params: S3Params | None = None) -> Self:
        """Create S3 client."""
        params = params or S3Params()
        config = Config(
            retries={"max_attempts": params.max_retries, "mode": "standard"},
            connect_timeout=params.timeout,
            read_timeout=params.timeout,
            s3={"addressing_style": params.addressing_style},
        )
        try:
            client: S3Client = boto3.client(  # pyright: ignore[reportUnknownMemberType]
                "s3",
                aws_access_key_id=credentials.access_key_id,
                aws_secret_access_key=credentials.secret_access_key,
                aws_session_token=credentials.session_token,
                region_name=credentials.region,
                endpoint_url=credentials.endpoint_url,
                config=config,
            )
        except BotoCoreError as e:
            msg = f"Failed to create S3 client: {e}"
            raise StoreError(msg, kind=ErrorKind.CONNECTION, source=e) from e

        return cls(client, params)

    async def disconnect(self) -> None:
        """Close the underlying HTTP connections."""
        await asyncio.to_thread(self._client.close)

    async def _call[T](
        self,
        action: str,
        fn: Callable[[], T],
        *,
        bucket: str,
        key: str | None = None,
    ) -> T:
        """Run a blocking client call off the event loop, translating errors."""
        try:
            result = await asyncio.to_thread(fn)
        except ClientError as e:
            code = _error_code(e)
            kind = ErrorKind.NOT_FOUND if code in _NOT_FOUND_CODES else ErrorKind.STORE
            msg = f"Failed to {action} s3://{bucket}/{key or ''}: {e}"
            raise StoreError(msg, kind=kind, source=e, bucket=bucket, key=key) from e
        except BotoCoreError as e:
            msg = f"Failed to {action} s3://{bucket}/{key or ''}: {e}"
            raise StoreError(msg, kind=ErrorKind.CONNECTION, source=e, bucket=bucket, key=key) from e
        log_event(logger, f"{action.upper()} OBJECT", logging.DEBUG, bucket=bucket, key=key)
        return result

    async def list_objects(
        self,
        bucket: str,
        prefix: str,
        marker: str | None = None,
    ) -> ListPage:
        """List one page of objects.

        Uses the v1 listing call so `marker` keeps its "strictly after" meaning.
        """

        def _list() -> dict[str, object]:
            if marker:
                return self._client.list_objects(
                    Bucket=bucket,
                    Prefix=prefix,
                    Marker=marker,
                    MaxKeys=self._params.page_size,
                )
            return self._client.list_objects(
                Bucket=bucket,
                Prefix=prefix,
                MaxKeys=self._params.page_size,
            )

        response = await self._call("list", _list, bucket=bucket, key=marker or prefix)
        entries = [
            ObjectEntry(key=obj["Key"], size=obj.get("Size", 0))
            for obj in response.get("Contents", []) or []
            if obj.get("Key")
        ]
        return ListPage(
            entries=entries,
            truncated=bool(response.get("IsTruncated")),
            next_marker=response.get("NextMarker"),
        )

    async def get_object(self, bucket: str, key: str) -> bytes:
        """Get object content by key."""

        def _get() -> bytes:
            response = self._client.get_object(Bucket=bucket, Key=key)
            return response["Body"].read()

        return await self._call("get", _get, bucket=bucket, key=key)

    async def put_object(self, bucket: str, key: str, body: bytes) -> None:
        """Put object content by key."""
        await self._call(
            "put",
            lambda: self._client.put_object(Bucket=bucket, Key=key, Body=body),
            bucket=bucket,
            key=key,
        )

    async def copy_object(
        self,
        bucket: str,
        key: str,
        dst_bucket: str,
        dst_key: str,
    ) -> None:
        """Copy an object server-side."""
        await self._call(
            "copy",
            lambda: self._client.copy_object(
                Bucket=dst_bucket,
                Key=dst_key,
                CopySource={"Bucket": bucket, "Key": key},
            ),
            bucket=bucket,
            key=key,
        )

    async def delete_object(self, bucket: str, key: str) -> None:
        """Delete object by key."""
        await self._call(
            "delete",
            lambda: self._client.delete_object(Bucket=bucket, Key=key),
            bucket=bucket,
            key=key,
        )

    async def delete_objects(self, bucket: str, keys: Sequence[str]) -> None:
        """Delete objects in chunks of at most `DELETE_BATCH_SIZE` keys."""
        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            chunk = list(keys[start : start + DELETE_BATCH_SIZE])
            response = await self._call(
                "delete",
                lambda chunk=chunk: self._client.delete_objects(
                    Bucket=bucket,
                    Delete={"Objects": [{"Key": key} for key in chunk], "Quiet": True},
                ),
                bucket=bucket,
                key=chunk[0],
            )
            errors = response.get("Errors") or []
            if errors:
                failed = errors[0]
                msg = (
                    f"Failed to delete {len(errors)} object(s) in s3://{bucket}: "
                    f"{failed.get('Key')}: {failed.get('Message')}"
                )
                raise StoreError(msg, bucket=bucket, key=failed.get("Key"))


Provider = S3Provider
