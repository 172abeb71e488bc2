"""Data types returned by object stores.

- `ObjectEntry` for a single listing entry
- `ListPage` for one page of a paginated listing
"""

from pydantic import BaseModel, Field


class ObjectEntry(BaseModel, frozen=True):
    """One object as reported by a listing call."""

    key: str
    """Full object key."""

    size: int = 0
    """Object size in bytes."""

    @property
    def is_folder_marker(self) -> bool:
        """Zero-length keys ending in "/" are directory placeholders."""
        return self.size == 0 and self.key.endswith("/")


class ListPage(BaseModel, frozen=True):
    """A single page of a listing, in lexicographic key order."""

    entries: list[ObjectEntry] = Field(default_factory=list)
    """Objects on this page."""

    truncated: bool = False
    """More keys remain after this page."""

    next_marker: str | None = None
    """Marker to continue from. Defaults to the last key of the page."""

    @property
    def continuation(self) -> str | None:
        """Marker for the next page, if the listing continues."""
        if self.next_marker:
            return self.next_marker
        if self.entries:
            return self.entries[-1].key
        return None
