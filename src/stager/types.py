"""
Core types for the blob stager.

This module defines:
- ContentSource protocol and the concrete sources hosts usually need
- StoredEntry, the immutable description of one backing file
- Helper functions for ID generation and timestamps
"""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Protocol, runtime_checkable

from uuid6 import uuid7


def generate_id(prefix: str = "") -> str:
    """Generate a time-ordered unique ID using UUID7.

    Args:
        prefix: Optional prefix for the ID (e.g., "sess").

    Returns:
        A unique ID string, optionally prefixed.
    """
    uid = uuid7().hex
    return f"{prefix}_{uid}" if prefix else uid


def utc_now() -> datetime:
    """Get current UTC time with timezone info."""
    return datetime.now(timezone.utc)


@runtime_checkable
class ContentSource(Protocol):
    """Something that may carry new bytes for a slot.

    ``available()`` must answer truthfully without reading: False means
    opening the source would not yield fresh data (already consumed or
    unchanged since the last render).
    """

    content_type: str | None

    def available(self) -> bool:
        ...

    def open(self) -> BinaryIO:
        ...


class BytesSource:
    """In-memory content that is available until it has been opened once."""

    def __init__(self, data: bytes, content_type: str | None = None) -> None:
        self._data = bytes(data)
        self.content_type = content_type
        self._consumed = False

    def available(self) -> bool:
        return not self._consumed

    def open(self) -> BinaryIO:
        self._consumed = True
        return io.BytesIO(self._data)

    def __repr__(self) -> str:
        return f"BytesSource(size={len(self._data)}, consumed={self._consumed})"


class FileSource:
    """Content read from a file on disk, available once while the file exists."""

    def __init__(self, path: Path | str, content_type: str | None = None) -> None:
        self.path = Path(path)
        self.content_type = content_type
        self._consumed = False

    def available(self) -> bool:
        return not self._consumed and self.path.is_file()

    def open(self) -> BinaryIO:
        self._consumed = True
        return self.path.open("rb")

    def __repr__(self) -> str:
        return f"FileSource({str(self.path)!r}, consumed={self._consumed})"


class UnchangedSource:
    """Signals a refresh: nothing new to stage for this slot."""

    content_type: str | None = None

    def available(self) -> bool:
        return False

    def open(self) -> BinaryIO:
        raise OSError("UnchangedSource carries no bytes")


@dataclass(frozen=True)
class StoredEntry:
    """One backing file owned by a ContentStore.

    Attributes:
        identifier: Resource identifier the file is stored under.
        path: Absolute path of the backing file.
        size: Number of bytes written.
        content_type: MIME type supplied at stage time, if any.
        created_at: When the file was fully written (UTC).
    """

    identifier: str
    path: Path
    size: int
    content_type: str | None = None
    created_at: datetime = field(default_factory=utc_now)
