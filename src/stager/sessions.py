"""
Session registry: one SlotCacheController per host session.

Hosts call ``controller_for`` while handling a request and ``end_session``
from their session-invalidation hook. Every controller gets its own nonce,
so identifiers never collide across sessions.
"""

from __future__ import annotations

import threading
from collections.abc import Callable

from stager.config import Settings
from stager.controller import SlotCacheController
from stager.logging import get_logger, log_context

logger = get_logger(__name__)


class SessionRegistry:
    """Thread-safe map of session id -> controller."""

    def __init__(
        self,
        factory: Callable[[], SlotCacheController] | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize registry.

        Args:
            factory: Builds a controller for a new session. Defaults to
                ``SlotCacheController.from_settings(settings)``.
            settings: Settings used by the default factory.
        """
        self._factory = factory or (lambda: SlotCacheController.from_settings(settings))
        self._controllers: dict[str, SlotCacheController] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._controllers)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._controllers

    def controller_for(self, session_id: str) -> SlotCacheController:
        """Get the session's controller, creating it on first use."""
        with self._lock:
            controller = self._controllers.get(session_id)
            if controller is None:
                controller = self._factory()
                self._controllers[session_id] = controller
                with log_context(session_id=session_id):
                    logger.debug("Created controller", nonce=controller.nonce)
            return controller

    def end_session(self, session_id: str) -> int:
        """Tear down and forget a session's controller.

        Unknown or already-ended sessions are a no-op.

        Returns:
            Number of backing files deleted.
        """
        with self._lock:
            controller = self._controllers.pop(session_id, None)
        if controller is None:
            return 0
        with log_context(session_id=session_id):
            return controller.teardown()

    def end_all(self) -> int:
        """Tear down every session (process shutdown)."""
        with self._lock:
            session_ids = list(self._controllers)
        return sum(self.end_session(session_id) for session_id in session_ids)
