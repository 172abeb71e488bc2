"""Resolve context descriptors into a flat, ordered list of object references."""

import asyncio
import logging
import re
from collections.abc import Sequence

from s3_lambda.contexts import ContextSpec, ObjectRef
from s3_lambda.datatypes import ObjectEntry
from s3_lambda.observability import log_event
from s3_lambda.protocols import ObjectStore

logger = logging.getLogger(__name__)


def _is_placeholder(entry: ObjectEntry, prefix: str) -> bool:
    if not entry.key:
        return True
    return entry.size == 0 and (entry.key == prefix or entry.is_folder_marker)


class KeyResolver:
    """Lists every key of one or more contexts, following store pagination."""

    __slots__ = ("_store",)

    def __init__(self, store: ObjectStore) -> None:
        self._store = store

    async def resolve(self, contexts: Sequence[ContextSpec]) -> list[ObjectRef]:
        """Resolve all contexts concurrently and concatenate them in given order.

        Fails as a whole if any context fails; no partial list is returned.
        """
        per_context = await asyncio.gather(*(self.resolve_context(ctx) for ctx in contexts))
        return [ref for refs in per_context for ref in refs]

    async def resolve_context(self, context: ContextSpec) -> list[ObjectRef]:
        """List one context, then apply its match, reverse and limit modifiers."""
        keys = await self.list_keys(
            context.bucket,
            context.prefix,
            end_prefix=context.end_prefix,
            marker=context.marker,
        )
        if context.match:
            pattern = re.compile(context.match)
            keys = [key for key in keys if pattern.search(key)]
        if context.reverse:
            keys.reverse()
        if context.limit:
            keys = keys[: context.limit]

        log_event(
            logger,
            "resolved context",
            bucket=context.bucket,
            prefix=context.prefix,
            keys=len(keys),
        )
        return [ObjectRef(bucket=context.bucket, prefix=context.prefix, key=key) for key in keys]

    async def list_keys(
        self,
        bucket: str,
        prefix: str,
        *,
        end_prefix: str | None = None,
        marker: str | None = None,
    ) -> list[str]:
        """List all keys under `prefix` in lexicographic order.

        Pages are requested until the store reports no truncation, or until a
        key containing `end_prefix` is seen; that key and everything after it
        are dropped.
        """
        keys: list[str] = []
        while True:
            page = await self._store.list_objects(bucket, prefix, marker)
            log_event(
                logger,
                "listed page",
                logging.DEBUG,
                bucket=bucket,
                prefix=prefix,
                marker=marker,
                entries=len(page.entries),
                truncated=page.truncated,
            )
            if not page.entries:
                break

            page_keys = [e.key for e in page.entries if not _is_placeholder(e, prefix)]

            stopped = False
            if end_prefix:
                for index, key in enumerate(page_keys):
                    if end_prefix in key:
                        page_keys = page_keys[:index]
                        stopped = True
                        break

            keys.extend(page_keys)

            if stopped or not page.truncated:
                break
            marker = page.continuation
        return keys
