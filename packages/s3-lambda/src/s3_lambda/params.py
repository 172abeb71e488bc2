"""Parameter types for batch requests.

Params define how a request processes its objects (decoding, concurrency,
output), while contexts in `s3_lambda.contexts` describe where they live.
"""

import codecs
from collections.abc import Callable
from typing import Self

from pydantic import BaseModel, Field, ValidationError, field_validator

from s3_lambda.errors import ConfigurationError

type Transformer = Callable[[bytes, str], object]
"""Turns a raw payload and its key into the value seen by callbacks."""

type KeyPredicate = Callable[[str], bool]
"""Returns True for keys that should be skipped."""

type Renamer = Callable[[str], str]
"""Maps an output name (after the target prefix) to a new name."""


class Target(BaseModel, frozen=True):
    """Alternate destination for map and filter output."""

    bucket: str = Field(min_length=1)
    """Bucket receiving the output."""

    prefix: str = ""
    """Prefix replacing the source context prefix."""

    rename: Renamer | None = None
    """Optional rename applied to the part of the key after `prefix`."""


class RequestOptions(BaseModel, frozen=True):
    """Options owned by a single request.

    Instances are immutable; use `replace` to derive an updated copy.
    """

    concurrency: int | None = Field(default=None, ge=1)
    """Maximum tasks in flight. None means unbounded."""

    encoding: str = "utf-8"
    """Codec used to decode payloads when no transform is set."""

    transform: Transformer | None = None
    """Takes precedence over `encoding` when set."""

    exclude: KeyPredicate | None = None
    """Keys for which this returns True are dropped before fetching."""

    reverse: bool = False
    """Iterate the source set in reverse order."""

    limit: int | None = Field(default=None, ge=1)
    """Process at most this many objects."""

    target: Target | None = None
    """Output destination for map and filter."""

    destructive: bool = False
    """Allow map and filter to modify the source objects in place."""

    @field_validator("encoding")
    @classmethod
    def _known_codec(cls, value: str) -> str:
        try:
            codecs.lookup(value)
        except LookupError as e:
            msg = f"unknown encoding: {value}"
            raise ValueError(msg) from e
        return value

    def replace(self, **changes: object) -> Self:
        """Return a validated copy with `changes` applied."""
        try:
            return type(self).model_validate({**dict(self), **changes})
        except ValidationError as e:
            msg = f"Invalid request options: {e}"
            raise ConfigurationError(msg, source=e) from e
