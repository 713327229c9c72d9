"""
Tests for content sources, stored entries and exceptions.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from stager.exceptions import ReclaimFailure, StageFailure, StagerError
from stager.types import (
    BytesSource,
    ContentSource,
    FileSource,
    UnchangedSource,
    generate_id,
)


class TestSources:
    """Tests for the bundled ContentSource implementations."""

    def test_sources_satisfy_protocol(self, temp_dir: Path) -> None:
        """All bundled sources are ContentSources."""
        for source in (BytesSource(b""), FileSource(temp_dir / "x"), UnchangedSource()):
            assert isinstance(source, ContentSource)

    def test_bytes_source_available_once(self) -> None:
        """BytesSource reports availability until it has been opened."""
        source = BytesSource(b"abc", content_type="image/png")
        assert source.available()

        with source.open() as stream:
            assert stream.read() == b"abc"

        assert not source.available()
        assert source.content_type == "image/png"

    def test_file_source(self, temp_dir: Path) -> None:
        """FileSource is available while its file exists and was not read."""
        path = temp_dir / "pic.png"
        source = FileSource(path)
        assert not source.available()

        path.write_bytes(b"png")
        assert source.available()
        with source.open() as stream:
            assert stream.read() == b"png"
        assert not source.available()

    def test_unchanged_source(self) -> None:
        """UnchangedSource never has content."""
        source = UnchangedSource()
        assert not source.available()
        with pytest.raises(OSError):
            source.open()


class TestGenerateId:
    """Tests for ID generation."""

    def test_prefix_and_uniqueness(self) -> None:
        """IDs are unique and carry the prefix."""
        ids = {generate_id("sess") for _ in range(100)}
        assert len(ids) == 100
        assert all(i.startswith("sess_") for i in ids)


class TestExceptions:
    """Tests for the exception hierarchy."""

    def test_context_in_str(self) -> None:
        """Structured context is rendered after the message."""
        error = StageFailure("Copy failed", context={"identifier": "abc-1"})
        assert str(error) == "Copy failed (identifier='abc-1')"
        assert isinstance(error, StagerError)

    def test_without_context(self) -> None:
        """Without context only the message is shown."""
        error = ReclaimFailure("Delete failed")
        assert str(error) == "Delete failed"
        assert error.context == {}
        assert repr(error) == "ReclaimFailure('Delete failed', context={})"
