"""Entry point that creates batch requests against an object store."""

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Self
from urllib.parse import urlparse

from pydantic import BaseModel, ValidationError

from s3_lambda.contexts import ContextSpec
from s3_lambda.errors import ConfigurationError
from s3_lambda.observability import log_event
from s3_lambda.params import RequestOptions
from s3_lambda.protocols import ObjectStore
from s3_lambda.request import Request, ResolvedKeys
from s3_lambda.resolver import KeyResolver

if TYPE_CHECKING:
    from s3_lambda.providers.s3 import S3Credentials, S3Params

logger = logging.getLogger(__name__)

type ContextInput = ContextSpec | Mapping[str, object] | str
"""A context spec, its fields as a mapping, or an ``s3://bucket/prefix`` URI."""


class S3LambdaConfig(BaseModel, frozen=True):
    """Defaults applied to every request created by a client."""

    encoding: str = "utf-8"
    """Default payload encoding for new requests."""

    show_progress: bool = False
    """Show a progress bar while batch operations run."""


def parse_s3_uri(uri: str) -> ContextSpec:
    """Turn ``s3://bucket/prefix`` into a context spec."""
    parsed = urlparse(uri)
    if parsed.scheme != "s3" or not parsed.netloc:
        msg = f"Invalid S3 URI: {uri!r}"
        raise ConfigurationError(msg)
    return ContextSpec(bucket=parsed.netloc, prefix=parsed.path.lstrip("/"))


def _to_spec(context: ContextInput) -> ContextSpec:
    if isinstance(context, ContextSpec):
        return context
    if isinstance(context, str):
        return parse_s3_uri(context)
    if isinstance(context, Mapping):
        try:
            return ContextSpec.model_validate(dict(context))
        except ValidationError as e:
            msg = f"Invalid context: {e}"
            raise ConfigurationError(msg, source=e) from e
    msg = f"context expects a ContextSpec, mapping or s3:// URI, got {type(context).__name__}"
    raise ConfigurationError(msg)


class S3Lambda:
    """Runs batch requests (each, map, reduce, filter, join) over stored objects."""

    __slots__ = ("_config", "_resolver", "_store")

    def __init__(self, store: ObjectStore, config: S3LambdaConfig | None = None) -> None:
        self._store = store
        self._config = config or S3LambdaConfig()
        self._resolver = KeyResolver(store)

    @classmethod
    async def connect(
        cls,
        credentials: "S3Credentials | None" = None,
        params: "S3Params | None" = None,
        config: S3LambdaConfig | None = None,
    ) -> Self:
        """Create a client backed by `S3Provider`."""
        from s3_lambda.providers.s3 import S3Credentials, S3Provider

        store = await S3Provider.connect(credentials or S3Credentials.from_env(), params)
        return cls(store, config)

    async def disconnect(self) -> None:
        disconnect = getattr(self._store, "disconnect", None)
        if disconnect is not None:
            await disconnect()

    @property
    def store(self) -> ObjectStore:
        return self._store

    @property
    def config(self) -> S3LambdaConfig:
        return self._config

    def context(self, context: ContextInput | Sequence[ContextInput]) -> Request:
        """Create a request over one context or a list of contexts.

        Contexts are listed lazily, on the request's first terminal call, and
        their keys are concatenated in the order given here.
        """
        if isinstance(context, ContextSpec | Mapping | str):
            specs = [_to_spec(context)]
        elif isinstance(context, Sequence):
            specs = [_to_spec(item) for item in context]
        else:
            msg = "context expects a context spec or a list of context specs"
            raise ConfigurationError(msg)

        log_event(
            logger,
            "new request",
            logging.DEBUG,
            contexts=",".join(f"s3://{spec.bucket}/{spec.prefix}" for spec in specs),
        )
        options = RequestOptions().replace(encoding=self._config.encoding)
        return Request(
            self._store,
            ResolvedKeys(self._resolver, specs),
            options,
            show_progress=self._config.show_progress,
        )
