"""Where map and filter results go, and the guard against silent in-place edits."""

import logging
from collections.abc import Sequence

from s3_lambda.contexts import ObjectRef
from s3_lambda.errors import ConfigurationError
from s3_lambda.executor import ConcurrentExecutor
from s3_lambda.fetch import invoke
from s3_lambda.observability import log_event
from s3_lambda.params import RequestOptions
from s3_lambda.protocols import ObjectStore

logger = logging.getLogger(__name__)


class OutputResolver:
    """Writes map results and applies filter decisions for one request."""

    __slots__ = ("_options", "_store")

    def __init__(self, store: ObjectStore, options: RequestOptions) -> None:
        self._store = store
        self._options = options

    @staticmethod
    def check_destructive(options: RequestOptions, operation: str) -> None:
        """Refuse destructive operations without a target or in-place opt-in."""
        if options.target is None and not options.destructive:
            msg = f"{operation} needs output() or inplace(); refusing to modify source objects"
            raise ConfigurationError(msg)

    async def output_key(self, ref: ObjectRef) -> str:
        """Map a source key into the target prefix, renaming when configured.

        The source context prefix is replaced by the target prefix; `rename`
        sees and returns the part of the key after the target prefix.
        """
        target = self._options.target
        if target is None:
            return ref.key
        name = ref.name
        if target.rename is not None:
            renamed = await invoke(target.rename, name, key=ref.key)
            if not isinstance(renamed, str):
                msg = f"rename must return a str, got {type(renamed).__name__} for {ref.key!r}"
                raise ConfigurationError(msg)
            name = renamed
        return f"{target.prefix}{name}"

    def encode(self, ref: ObjectRef, value: object) -> bytes:
        """Turn a mapper result into an object body."""
        if value is None:
            msg = f"mapper function must return a value (got None for {ref.key!r})"
            raise ConfigurationError(msg)
        if isinstance(value, bytes | bytearray | memoryview):
            return bytes(value)
        if isinstance(value, str):
            return value.encode(self._options.encoding)
        msg = f"mapper function must return str or bytes, got {type(value).__name__} for {ref.key!r}"
        raise ConfigurationError(msg)

    async def write(self, ref: ObjectRef, value: object) -> None:
        """Store a mapper result, in place or under the target."""
        body = self.encode(ref, value)
        target = self._options.target
        if target is None:
            bucket, key = ref.bucket, ref.key
        else:
            bucket, key = target.bucket, await self.output_key(ref)
        await self._store.put_object(bucket, key, body)
        log_event(logger, "map output", logging.DEBUG, source=ref, bucket=bucket, key=key)

    async def apply_filter(
        self,
        keep: Sequence[ObjectRef],
        remove: Sequence[ObjectRef],
        executor: ConcurrentExecutor,
    ) -> None:
        """Copy kept objects to the target, or delete removed ones in place."""
        target = self._options.target
        if target is not None:

            async def copy(ref: ObjectRef) -> None:
                dst_key = await self.output_key(ref)
                await self._store.copy_object(ref.bucket, ref.key, target.bucket, dst_key)

            await executor.run(keep, copy)
            log_event(logger, "filter copied", kept=len(keep), bucket=target.bucket, prefix=target.prefix)
            return

        by_bucket: dict[str, list[str]] = {}
        for ref in remove:
            by_bucket.setdefault(ref.bucket, []).append(ref.key)
        for bucket, keys in by_bucket.items():
            await self._store.delete_objects(bucket, keys)
            log_event(logger, "filter removed", bucket=bucket, removed=len(keys))
