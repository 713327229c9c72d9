"""
Content store: identifier -> backing file.

Every staged blob lives in its own temporary file. The store owns those
files for their whole life: it creates them on put, hands out read handles
on get, and deletes them on remove / remove_all. Deletes are best-effort;
an entry whose file could not be deleted stays mapped so a later remove can
retry.
"""

from __future__ import annotations

import os
import tempfile
import threading
from pathlib import Path
from typing import BinaryIO

from stager.config import Settings, get_settings
from stager.exceptions import ConfigurationError, ReclaimFailure, StageFailure
from stager.logging import get_logger
from stager.types import StoredEntry

logger = get_logger(__name__)

DEFAULT_BUFFER_SIZE = 16 * 1024


def copy_stream(source: BinaryIO, destination: BinaryIO, buffer_size: int = DEFAULT_BUFFER_SIZE) -> int:
    """Copy source to destination in fixed-size blocks.

    Each block is fully drained into the destination before the next one is
    read, so short writes from raw file objects are retried.

    Returns:
        Number of bytes copied.
    """
    total = 0
    while True:
        chunk = source.read(buffer_size)
        if not chunk:
            break
        view = memoryview(chunk)
        while view:
            written = destination.write(view)
            if written is None:
                raise BlockingIOError("Destination refused to accept bytes")
            view = view[written:]
        total += len(chunk)
    return total


class ContentStore:
    """Temp-file backed blob store keyed by resource identifier.

    Thread-safe: the index is guarded by a lock, file copies happen outside
    it and the new mapping is published only after the file is complete.
    """

    def __init__(
        self,
        directory: Path | str | None = None,
        *,
        prefix: str = "stager-",
        suffix: str = ".blob",
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ) -> None:
        """Initialize content store.

        Args:
            directory: Where backing files are created. Defaults to the
                platform temp directory.
            prefix: Filename prefix for backing files.
            suffix: Filename suffix for backing files.
            buffer_size: Copy block size in bytes.
        """
        self.directory = Path(directory) if directory is not None else Path(tempfile.gettempdir())
        self.prefix = prefix
        self.suffix = suffix
        self.buffer_size = buffer_size
        self._entries: dict[str, StoredEntry] = {}
        self._pending: set[str] = set()
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> ContentStore:
        """Build a store from configuration.

        Raises:
            ConfigurationError: If the backing directory cannot be created.
        """
        settings = settings or get_settings()
        try:
            settings.ensure_directories()
        except OSError as e:
            raise ConfigurationError(
                "Backing directory is not usable",
                context={"temp_dir": str(settings.temp_dir), "error": str(e)},
            ) from e
        return cls(
            settings.temp_dir,
            prefix=settings.FILE_PREFIX,
            suffix=settings.FILE_SUFFIX,
            buffer_size=settings.COPY_BUFFER_SIZE,
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, identifier: object) -> bool:
        with self._lock:
            return identifier in self._entries

    def identifiers(self) -> list[str]:
        """Snapshot of currently mapped identifiers."""
        with self._lock:
            return list(self._entries)

    def describe(self, identifier: str) -> StoredEntry | None:
        """Get the stored entry for an identifier, or None if unmapped."""
        with self._lock:
            return self._entries.get(identifier)

    def put(
        self,
        identifier: str,
        stream: BinaryIO,
        content_type: str | None = None,
    ) -> StoredEntry:
        """Copy a stream into a new backing file stored under identifier.

        The stream is closed on every exit path. On failure the partial file
        is deleted and the identifier stays unmapped.

        Args:
            identifier: Resource identifier to store under.
            stream: Readable binary stream; consumed and closed.
            content_type: Optional MIME type recorded with the entry.

        Returns:
            The new StoredEntry.

        Raises:
            ValueError: If identifier is already stored or being stored.
            StageFailure: If the backing file could not be written.
        """
        try:
            with self._lock:
                if identifier in self._entries or identifier in self._pending:
                    raise ValueError(f"Identifier already stored: {identifier}")
                self._pending.add(identifier)

            try:
                entry = self._write(identifier, stream, content_type)
                with self._lock:
                    self._entries[identifier] = entry
            finally:
                with self._lock:
                    self._pending.discard(identifier)
        finally:
            self._close_source(stream, identifier)

        logger.debug(
            "Stored content",
            identifier=identifier,
            size=entry.size,
            path=str(entry.path),
        )
        return entry

    def _write(self, identifier: str, stream: BinaryIO, content_type: str | None) -> StoredEntry:
        path: Path | None = None
        try:
            fd, raw_path = tempfile.mkstemp(
                prefix=self.prefix, suffix=self.suffix, dir=self.directory
            )
            path = Path(raw_path).resolve()
            with os.fdopen(fd, "wb") as destination:
                size = copy_stream(stream, destination, self.buffer_size)
        except (OSError, ValueError) as e:
            # ValueError covers reads from a source that was already closed.
            if path is not None:
                self._discard_partial(path, identifier)
            raise StageFailure(
                "Failed to copy content into backing file",
                context={
                    "identifier": identifier,
                    "path": str(path) if path else None,
                    "error": str(e),
                },
            ) from e

        return StoredEntry(
            identifier=identifier,
            path=path,
            size=size,
            content_type=content_type,
        )

    def _discard_partial(self, path: Path, identifier: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(
                "Could not delete partial backing file",
                identifier=identifier,
                path=str(path),
                error=str(e),
            )

    def _close_source(self, stream: BinaryIO, identifier: str) -> None:
        try:
            stream.close()
        except OSError:
            logger.exception("Failed to close source stream", identifier=identifier)

    def get(self, identifier: str) -> BinaryIO | None:
        """Open the backing file for reading.

        Returns:
            A binary read handle the caller must close, or None when the
            identifier is unmapped or its file is gone.
        """
        entry = self.describe(identifier)
        if entry is None:
            return None

        try:
            return entry.path.open("rb")
        except FileNotFoundError:
            logger.warning("Backing file missing", identifier=identifier, path=str(entry.path))
            return None
        except OSError as e:
            logger.error(
                "Could not open backing file",
                identifier=identifier,
                path=str(entry.path),
                error=str(e),
            )
            return None

    def remove(self, identifier: str) -> bool:
        """Delete the backing file for identifier and drop its entry.

        A file that is already gone counts as deleted. A failed delete keeps
        the entry so it can be retried, and is only logged.

        Returns:
            True if the file was deleted, False if the identifier was
            unmapped or the delete failed.
        """
        with self._lock:
            entry = self._entries.get(identifier)
            if entry is None:
                return False
            failure = self._delete(entry)
            if failure is None:
                del self._entries[identifier]

        if failure is not None:
            logger.warning(failure.message, **failure.context)
            return False

        logger.debug("Removed backing file", identifier=identifier, path=str(entry.path))
        return True

    def _delete(self, entry: StoredEntry) -> ReclaimFailure | None:
        try:
            os.remove(entry.path)
        except FileNotFoundError:
            return None
        except OSError as e:
            return ReclaimFailure(
                "Could not delete backing file",
                context={
                    "identifier": entry.identifier,
                    "path": str(entry.path),
                    "error": str(e),
                },
            )
        return None

    def remove_all(self) -> int:
        """Delete every mapped backing file.

        Each entry is handled independently; failures are logged and the
        sweep carries on.

        Returns:
            Number of files deleted.
        """
        removed = 0
        failed = 0
        for identifier in self.identifiers():
            if self.remove(identifier):
                removed += 1
            elif identifier in self:
                failed += 1

        if removed or failed:
            logger.info("Reclaimed backing files", removed=removed, failed=failed)
        return removed

