"""The ordered, immutable set of objects a request operates over."""

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Self

from s3_lambda.contexts import ObjectRef
from s3_lambda.params import RequestOptions


@dataclass(frozen=True, slots=True)
class SourceSet:
    """Resolved object references after exclude, reverse and limit."""

    refs: tuple[ObjectRef, ...] = ()

    @classmethod
    def derive(cls, refs: Sequence[ObjectRef], options: RequestOptions) -> Self:
        """Apply `exclude`, then `reverse`, then `limit` to resolved references.

        Excluded objects are dropped here, before anything is fetched.
        """
        selected = list(refs)
        if options.exclude is not None:
            exclude = options.exclude
            selected = [ref for ref in selected if not exclude(ref.key)]
        if options.reverse:
            selected.reverse()
        if options.limit is not None:
            selected = selected[: options.limit]
        return cls(refs=tuple(selected))

    @property
    def last(self) -> ObjectRef | None:
        """The final reference in iteration order, if any."""
        return self.refs[-1] if self.refs else None

    @property
    def keys(self) -> list[str]:
        return [ref.key for ref in self.refs]

    def __iter__(self) -> Iterator[ObjectRef]:
        return iter(self.refs)

    def __len__(self) -> int:
        return len(self.refs)

    def __getitem__(self, index: int) -> ObjectRef:
        return self.refs[index]
