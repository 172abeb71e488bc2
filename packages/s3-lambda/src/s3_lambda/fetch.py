"""Fetch an object and turn its payload into the value seen by callbacks."""

import inspect
from collections.abc import Callable

from s3_lambda.contexts import ObjectRef
from s3_lambda.errors import BatchError, CallbackError, ErrorKind, StoreError
from s3_lambda.params import RequestOptions
from s3_lambda.protocols import ObjectStore


async def invoke(fn: Callable[..., object], *args: object, key: str | None = None) -> object:
    """Call a user function and await its result when it returns an awaitable.

    Exceptions other than `BatchError` are wrapped in `CallbackError`.
    """
    try:
        result = fn(*args)
        if inspect.isawaitable(result):
            result = await result
    except BatchError:
        raise
    except Exception as e:
        name = getattr(fn, "__name__", type(fn).__name__)
        msg = f"Callback {name} failed for key {key!r}: {e}"
        raise CallbackError(msg, source=e, key=key) from e
    return result


class FetchPipeline:
    """Gets an object from the store, then transforms or decodes it."""

    __slots__ = ("_options", "_store")

    def __init__(self, store: ObjectStore, options: RequestOptions) -> None:
        self._store = store
        self._options = options

    async def fetch(self, ref: ObjectRef) -> object:
        raw = await self._store.get_object(ref.bucket, ref.key)
        if self._options.transform is not None:
            return await invoke(self._options.transform, raw, ref.key, key=ref.key)
        try:
            return raw.decode(self._options.encoding)
        except (UnicodeError, LookupError) as e:
            msg = f"Failed to decode {ref} as {self._options.encoding}: {e}"
            raise StoreError(
                msg,
                kind=ErrorKind.DECODE,
                source=e,
                bucket=ref.bucket,
                key=ref.key,
            ) from e
