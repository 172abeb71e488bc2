"""Context types for batch requests.

A context names *where* objects live (bucket, prefix, listing window), while
request options in `s3_lambda.params` describe *how* they are processed.
"""

from pydantic import BaseModel, Field


class ContextSpec(BaseModel, frozen=True):
    """A bucket/prefix window of objects to operate over.

    Uses marker-based pagination (listing resumes strictly after `marker`).
    """

    bucket: str = Field(min_length=1)
    """Bucket to list."""

    prefix: str = ""
    """Key prefix that selects the objects."""

    marker: str | None = None
    """Key to start listing after."""

    end_prefix: str | None = None
    """Stop listing at the first key containing this substring."""

    match: str | None = None
    """Regular expression a key must match (searched, not anchored)."""

    reverse: bool = False
    """Reverse the keys of this context before concatenation."""

    limit: int | None = Field(default=None, ge=1)
    """Keep at most this many keys of this context."""


class ObjectRef(BaseModel, frozen=True):
    """A fully-qualified reference to one object in the store."""

    bucket: str
    """Bucket holding the object."""

    prefix: str
    """Prefix of the context the object was found under."""

    key: str
    """Full object key."""

    @property
    def name(self) -> str:
        """Key relative to the context prefix."""
        if self.prefix and self.key.startswith(self.prefix):
            return self.key[len(self.prefix) :]
        return self.key

    def __str__(self) -> str:
        return f"s3://{self.bucket}/{self.key}"
