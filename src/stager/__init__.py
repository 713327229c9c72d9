"""
Session-scoped, cache-coherent blob staging.

A host calls ``SlotCacheController.stage`` with a stable slot key and a
content source, embeds the returned identifier in a fetch URL, and later
resolves that identifier through ``SlotCacheController.fetch``.
"""

from __future__ import annotations

__version__ = "0.1.0"

from stager.controller import SlotCacheController
from stager.exceptions import ReclaimFailure, StageFailure, StagerError
from stager.sessions import SessionRegistry
from stager.store.content_store import ContentStore
from stager.types import BytesSource, ContentSource, FileSource, StoredEntry, UnchangedSource

__all__ = [
    "__version__",
    "BytesSource",
    "ContentSource",
    "ContentStore",
    "FileSource",
    "ReclaimFailure",
    "SessionRegistry",
    "SlotCacheController",
    "StageFailure",
    "StagerError",
    "StoredEntry",
    "UnchangedSource",
]
