"""Error types for batch requests and store operations."""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Classification of batch errors."""

    CONFIGURATION = "configuration"
    CONNECTION = "connection"
    NOT_FOUND = "not_found"
    DECODE = "decode"
    STORE = "store"
    CALLBACK = "callback"


class BatchError(Exception):
    """Base error for all batch request failures."""

    __slots__ = ("kind", "message", "source")

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.STORE,
        source: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.source = source

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, kind={self.kind!r})"


class ConfigurationError(BatchError):
    """A request was set up or used incorrectly.

    Raised for a missing output target on destructive operations, callbacks
    that are not callable or that break their return contract, invalid option
    values, and reuse of an executed request.
    """

    __slots__ = ()

    def __init__(self, message: str, source: BaseException | None = None) -> None:
        super().__init__(message, kind=ErrorKind.CONFIGURATION, source=source)


class StoreError(BatchError):
    """A store call (list, get, put, copy, delete) or payload decode failed."""

    __slots__ = ("bucket", "key")

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.STORE,
        source: BaseException | None = None,
        *,
        bucket: str | None = None,
        key: str | None = None,
    ) -> None:
        super().__init__(message, kind=kind, source=source)
        self.bucket = bucket
        self.key = key


class CallbackError(BatchError):
    """A user supplied callback or transform raised."""

    __slots__ = ("key",)

    def __init__(
        self,
        message: str,
        source: BaseException | None = None,
        *,
        key: str | None = None,
    ) -> None:
        super().__init__(message, kind=ErrorKind.CALLBACK, source=source)
        self.key = key
