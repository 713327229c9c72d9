"""
Slot cache controller.

Maps a slot key (the stable identity of a content-producing site) to a
generation counter and derives the resource identifier from both plus a
per-instance nonce. A refresh with no new bytes keeps the identifier, so
browsers keep their cached copy; new bytes advance the generation, so the
URL changes and the previous backing file is reclaimed.
"""

from __future__ import annotations

import hashlib
import threading
from typing import BinaryIO

from stager.config import Settings
from stager.exceptions import StageFailure
from stager.logging import get_logger, log_context
from stager.store.content_store import ContentStore
from stager.types import ContentSource, StoredEntry, generate_id

logger = get_logger(__name__)

_DIGEST_CHARS = 32


class SlotCacheController:
    """Per-session stager: decides reuse vs refresh and drives the store.

    One controller belongs to one session. ``stage`` is serialized end to
    end by a single lock; ``fetch`` only touches the store and never waits
    on a running stage.
    """

    def __init__(self, store: ContentStore, nonce: str | None = None) -> None:
        """Initialize controller.

        Args:
            store: Content store owned by this controller.
            nonce: Instance nonce mixed into every identifier. A fresh
                random value is used when omitted.
        """
        self.store = store
        self.nonce = nonce if nonce is not None else generate_id()
        self._generations: dict[str, int] = {}
        self._lock = threading.Lock()
        self._closed = False

    @classmethod
    def from_settings(
        cls, settings: Settings | None = None, nonce: str | None = None
    ) -> SlotCacheController:
        """Build a controller with a store configured from settings."""
        return cls(ContentStore.from_settings(settings), nonce=nonce)

    def identifier_for(self, slot_key: str, generation: int) -> str:
        """Derive the resource identifier for (slot_key, generation).

        Deterministic for this instance; differs across instances because
        the nonce is part of the digest. Hex digits and a dash only, so it
        is URL safe.
        """
        material = "\x00".join((self.nonce, slot_key, str(generation))).encode("utf-8")
        digest = hashlib.sha256(material).hexdigest()[:_DIGEST_CHARS]
        return f"{digest}-{generation}"

    def generation(self, slot_key: str) -> int:
        """Current generation of a slot; 0 if never staged."""
        return self._generations.get(slot_key, 0)

    def current_identifier(self, slot_key: str) -> str:
        """Identifier the slot currently resolves to."""
        return self.identifier_for(slot_key, self.generation(slot_key))

    def stage(self, slot_key: str, source: ContentSource) -> str:
        """Stage content for a slot and return the identifier to embed.

        If the source reports no new bytes, the current identifier is
        returned and nothing is touched. Otherwise the old backing file is
        reclaimed (best effort), the generation advances and the new bytes
        are stored under the new identifier.

        Never raises for storage trouble: a failed copy is logged and the
        new identifier is still returned; it simply misses on fetch. A torn
        down controller stores nothing.
        """
        with self._lock, log_context(slot_key=slot_key):
            old_id = self.current_identifier(slot_key)

            if not source.available():
                logger.debug("No new content, reusing identifier", identifier=old_id)
                return old_id

            if self._closed:
                logger.warning("Controller torn down, not staging", identifier=old_id)
                return old_id

            self.store.remove(old_id)

            generation = self.generation(slot_key) + 1
            self._generations[slot_key] = generation
            new_id = self.identifier_for(slot_key, generation)

            try:
                stream = source.open()
            except (OSError, ValueError) as e:
                logger.error(
                    "Could not open content source",
                    identifier=new_id,
                    error=str(e),
                    exc_info=True,
                )
                return new_id

            try:
                entry = self.store.put(new_id, stream, getattr(source, "content_type", None))
            except StageFailure as e:
                logger.error(e.message, exc_info=True, **e.context)
                return new_id

            logger.info(
                "Staged new content",
                identifier=new_id,
                generation=generation,
                size=entry.size,
            )
            return new_id

    def fetch(self, identifier: str) -> BinaryIO | None:
        """Open staged bytes for identifier; None means render nothing."""
        return self.store.get(identifier)

    def describe(self, identifier: str) -> StoredEntry | None:
        """Metadata of the backing file for identifier, if any."""
        return self.store.describe(identifier)

    def teardown(self) -> int:
        """Reclaim every backing file of this controller.

        Safe to call more than once. Waits for a running stage to finish so
        its file is reclaimed too. Afterwards stage stores nothing and
        returns the slot's current identifier, which misses on fetch.

        Returns:
            Number of backing files deleted.
        """
        with self._lock:
            self._closed = True
            removed = self.store.remove_all()
        logger.info("Controller torn down", nonce=self.nonce, removed=removed)
        return removed
