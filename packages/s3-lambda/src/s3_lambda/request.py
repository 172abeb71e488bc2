"""Configure and run a batch request over a resolved set of objects."""

import logging
from collections.abc import Callable, Coroutine, Sequence
from typing import Any, Self

from s3_lambda.contexts import ContextSpec, ObjectRef
from s3_lambda.errors import ConfigurationError
from s3_lambda.executor import ConcurrentExecutor
from s3_lambda.fetch import FetchPipeline, invoke
from s3_lambda.observability import log_event
from s3_lambda.output import OutputResolver
from s3_lambda.params import KeyPredicate, Renamer, RequestOptions, Target, Transformer
from s3_lambda.protocols import ObjectStore
from s3_lambda.resolver import KeyResolver
from s3_lambda.sources import SourceSet

logger = logging.getLogger(__name__)

type Callback = Callable[..., object]


class ResolvedKeys:
    """Lazily resolved object references shared by requests of one context call.

    The listing runs on first use and is kept afterwards; a failed listing is
    not cached.
    """

    __slots__ = ("_contexts", "_refs", "_resolver")

    def __init__(self, resolver: KeyResolver, contexts: Sequence[ContextSpec]) -> None:
        self._resolver = resolver
        self._contexts = tuple(contexts)
        self._refs: tuple[ObjectRef, ...] | None = None

    @property
    def contexts(self) -> tuple[ContextSpec, ...]:
        return self._contexts

    @property
    def resolved(self) -> bool:
        return self._refs is not None

    async def get(self) -> tuple[ObjectRef, ...]:
        if self._refs is None:
            self._refs = tuple(await self._resolver.resolve(self._contexts))
        return self._refs


class Request:
    """A batch request over the objects of one or more contexts.

    Settings methods return a new `Request` and leave the receiver unchanged,
    so partially configured requests can be shared and specialised. Each
    request runs at most one terminal operation (`for_each`, `each`, `map`,
    `reduce`, `filter`, `join`); once it has, further settings or terminal
    calls raise `ConfigurationError`.

    Callbacks may be plain functions or coroutine functions; an awaitable
    result is awaited before the task's concurrency slot is released.
    """

    __slots__ = ("_executed", "_keys", "_options", "_show_progress", "_store")

    def __init__(
        self,
        store: ObjectStore,
        keys: ResolvedKeys,
        options: RequestOptions | None = None,
        *,
        show_progress: bool = False,
    ) -> None:
        self._store = store
        self._keys = keys
        self._options = options or RequestOptions()
        self._show_progress = show_progress
        self._executed = False

    @property
    def options(self) -> RequestOptions:
        return self._options

    @property
    def executed(self) -> bool:
        return self._executed

    def _ensure_unused(self) -> None:
        if self._executed:
            msg = "request has already run; configure a new request from the context instead"
            raise ConfigurationError(msg)

    def _with(self, **changes: object) -> Self:
        self._ensure_unused()
        return type(self)(
            self._store,
            self._keys,
            self._options.replace(**changes),
            show_progress=self._show_progress,
        )

    # Settings

    def encode(self, encoding: str) -> Self:
        """Decode payloads with `encoding` (default utf-8)."""
        return self._with(encoding=encoding)

    def transform(self, transformer: Transformer) -> Self:
        """Use `transformer(raw_bytes, key)` instead of decoding. Takes precedence over `encode`."""
        return self._with(transform=transformer)

    def exclude(self, predicate: KeyPredicate) -> Self:
        """Skip keys for which `predicate(key)` is true; skipped objects are never fetched."""
        return self._with(exclude=predicate)

    def concurrency(self, concurrency: int) -> Self:
        """Run at most `concurrency` tasks at once. Has no effect on `for_each` and `reduce`."""
        return self._with(concurrency=concurrency)

    def limit(self, limit: int) -> Self:
        return self._with(limit=limit)

    def reverse(self) -> Self:
        return self._with(reverse=True)

    def output(self, bucket: str, prefix: str = "", rename: Renamer | None = None) -> Self:
        """Send map/filter output to `bucket`/`prefix` instead of modifying sources.

        `rename`, if given, receives the key part after `prefix` and returns
        its replacement.
        """
        return self._with(target=Target(bucket=bucket, prefix=prefix, rename=rename))

    def inplace(self) -> Self:
        """Allow map and filter to overwrite or delete the source objects."""
        return self._with(destructive=True)

    # Execution helpers

    def _start(self, operation: str, fn: object) -> None:
        self._ensure_unused()
        if not callable(fn):
            msg = f"{operation} expects a callable, got {type(fn).__name__}"
            raise ConfigurationError(msg)
        self._executed = True

    def _executor(self, operation: str, concurrency: int | None) -> ConcurrentExecutor:
        return ConcurrentExecutor(concurrency, name=operation, show_progress=self._show_progress)

    async def sources(self) -> SourceSet:
        """Resolve (once) and return the objects this request iterates over."""
        refs = await self._keys.get()
        source_set = SourceSet.derive(refs, self._options)
        log_event(
            logger,
            "source set ready",
            contexts=len(self._keys.contexts),
            resolved=len(refs),
            selected=len(source_set),
        )
        return source_set

    # Terminal operations

    def for_each(self, fn: Callback) -> Coroutine[Any, Any, ObjectRef | None]:
        """Call `fn(value, key)` for each object, strictly one after another.

        Resolves to the last object reference processed.
        """
        self._start("for_each", fn)
        return self._each("for_each", fn, 1)

    def each(self, fn: Callback) -> Coroutine[Any, Any, ObjectRef | None]:
        """Call `fn(value, key)` for each object with the configured concurrency.

        Resolves to the last object reference of the source set.
        """
        self._start("each", fn)
        return self._each("each", fn, self._options.concurrency)

    async def _each(self, operation: str, fn: Callback, concurrency: int | None) -> ObjectRef | None:
        source_set = await self.sources()
        fetcher = FetchPipeline(self._store, self._options)

        async def task(ref: ObjectRef) -> None:
            value = await fetcher.fetch(ref)
            await invoke(fn, value, ref.key, key=ref.key)

        await self._executor(operation, concurrency).run(source_set.refs, task)
        return source_set.last

    def map(self, fn: Callback) -> Coroutine[Any, Any, ObjectRef | None]:
        """Replace each object with `fn(value, key)`, or write it under the output target.

        `fn` must return `str` (encoded with the request encoding) or `bytes`.
        Raises `ConfigurationError` immediately unless `output()` or
        `inplace()` was configured.
        """
        OutputResolver.check_destructive(self._options, "map")
        self._start("map", fn)
        return self._map(fn)

    async def _map(self, fn: Callback) -> ObjectRef | None:
        source_set = await self.sources()
        fetcher = FetchPipeline(self._store, self._options)
        output = OutputResolver(self._store, self._options)

        async def task(ref: ObjectRef) -> None:
            value = await fetcher.fetch(ref)
            result = await invoke(fn, value, ref.key, key=ref.key)
            await output.write(ref, result)

        await self._executor("map", self._options.concurrency).run(source_set.refs, task)
        return source_set.last

    def reduce(self, fn: Callback, initial: object = None) -> Coroutine[Any, Any, object]:
        """Fold the objects into one value with `acc = fn(acc, value, key)`.

        Always sequential, in source set order. When `initial` is None the
        first object's value seeds the accumulator.
        """
        self._start("reduce", fn)
        return self._reduce(fn, initial)

    async def _reduce(self, fn: Callback, initial: object) -> object:
        source_set = await self.sources()
        fetcher = FetchPipeline(self._store, self._options)
        accumulator = initial
        seeded = initial is not None

        async def task(ref: ObjectRef) -> None:
            nonlocal accumulator, seeded
            value = await fetcher.fetch(ref)
            if not seeded:
                accumulator = value
                seeded = True
                return
            accumulator = await invoke(fn, accumulator, value, ref.key, key=ref.key)

        await self._executor("reduce", 1).run(source_set.refs, task)
        return accumulator

    def filter(self, fn: Callback) -> Coroutine[Any, Any, ObjectRef | None]:
        """Keep objects for which `fn(value, key)` is True.

        Without a target, rejected objects are deleted. With a target, kept
        objects are copied there and sources are left alone. Nothing is copied
        or deleted until every object has been evaluated.
        """
        OutputResolver.check_destructive(self._options, "filter")
        self._start("filter", fn)
        return self._filter(fn)

    async def _filter(self, fn: Callback) -> ObjectRef | None:
        source_set = await self.sources()
        fetcher = FetchPipeline(self._store, self._options)
        decisions: list[bool] = [False] * len(source_set)

        async def task(item: tuple[int, ObjectRef]) -> None:
            index, ref = item
            value = await fetcher.fetch(ref)
            result = await invoke(fn, value, ref.key, key=ref.key)
            if not isinstance(result, bool):
                msg = f"filter function must return a bool, got {type(result).__name__} for {ref.key!r}"
                raise ConfigurationError(msg)
            decisions[index] = result

        items = list(enumerate(source_set))
        await self._executor("filter", self._options.concurrency).run(items, task)

        keep = [ref for ref, kept in zip(source_set, decisions, strict=True) if kept]
        remove = [ref for ref, kept in zip(source_set, decisions, strict=True) if not kept]
        output = OutputResolver(self._store, self._options)
        await output.apply_filter(keep, remove, self._executor("filter output", self._options.concurrency))
        return source_set.last

    def join(self, delimiter: str = "\n") -> Coroutine[Any, Any, str]:
        """Fetch every object and join the values in source set order."""
        self._ensure_unused()
        self._executed = True
        return self._join(delimiter)

    async def _join(self, delimiter: str) -> str:
        source_set = await self.sources()
        fetcher = FetchPipeline(self._store, self._options)
        values: list[str] = [""] * len(source_set)

        async def task(item: tuple[int, ObjectRef]) -> None:
            index, ref = item
            value = await fetcher.fetch(ref)
            if not isinstance(value, str):
                msg = f"join needs str values, got {type(value).__name__} for {ref.key!r}"
                raise ConfigurationError(msg)
            values[index] = value

        await self._executor("join", self._options.concurrency).run(list(enumerate(source_set)), task)
        return delimiter.join(values)
