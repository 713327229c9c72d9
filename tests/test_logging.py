"""
Tests for structured logging.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from stager.logging import (
    JSONFormatter,
    get_logger,
    get_session_id,
    get_slot_key,
    log_context,
    setup_logging,
)


class TestLogContext:
    """Tests for scoped context."""

    def test_context_is_scoped(self) -> None:
        """Context values apply inside the block and are restored after."""
        assert get_session_id() is None
        with log_context(session_id="sess-1", slot_key="img1"):
            assert get_session_id() == "sess-1"
            assert get_slot_key() == "img1"
            with log_context(slot_key="img2"):
                assert get_session_id() == "sess-1"
                assert get_slot_key() == "img2"
            assert get_slot_key() == "img1"
        assert get_session_id() is None
        assert get_slot_key() is None


class TestJSONFormatter:
    """Tests for the JSON Lines formatter."""

    def test_includes_context_and_extra(self) -> None:
        """Records carry context variables and structured fields."""
        record = logging.LogRecord(
            "stager.test", logging.INFO, __file__, 1, "Staged %s", ("x",), None
        )
        record.extra = {"identifier": "abc-1"}

        with log_context(session_id="sess-1", slot_key="img1"):
            payload = json.loads(JSONFormatter().format(record))

        assert payload["message"] == "Staged x"
        assert payload["level"] == "INFO"
        assert payload["session_id"] == "sess-1"
        assert payload["slot_key"] == "img1"
        assert payload["extra"] == {"identifier": "abc-1"}


class TestSetupLogging:
    """Tests for logger setup."""

    def test_file_logging(self, temp_dir: Path) -> None:
        """Keyword fields end up in the JSON log file."""
        log_file = temp_dir / "logs" / "stager.jsonl"
        setup_logging("DEBUG", log_file=log_file, console_output=False)
        try:
            logger = get_logger("tests.logging")
            with log_context(slot_key="img1"):
                logger.info("Staged new content", identifier="abc-1", size=3)
        finally:
            for handler in logging.getLogger("stager").handlers:
                handler.close()
            setup_logging()

        lines = log_file.read_text().strip().splitlines()
        payload = json.loads(lines[-1])
        assert payload["logger"] == "stager.tests.logging"
        assert payload["message"] == "Staged new content"
        assert payload["extra"]["identifier"] == "abc-1"
        assert payload["extra"]["size"] == 3
        assert payload["extra"]["slot_key"] == "img1"

    def test_logger_namespace(self) -> None:
        """Loggers live under the stager namespace."""
        assert get_logger("stager.controller").name == "stager.controller"
        assert get_logger("elsewhere").name == "stager.elsewhere"

    def test_exception_carries_traceback(self, temp_dir: Path) -> None:
        """logger.exception writes the traceback next to the structured fields."""
        log_file = temp_dir / "logs" / "errors.jsonl"
        setup_logging("DEBUG", log_file=log_file, console_output=False)
        try:
            logger = get_logger("tests.logging")
            try:
                raise OSError("disk full")
            except OSError:
                logger.exception("Failed to close source stream", identifier="abc-1")
        finally:
            for handler in logging.getLogger("stager").handlers:
                handler.close()
            setup_logging()

        payload = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert payload["level"] == "ERROR"
        assert payload["extra"]["identifier"] == "abc-1"
        assert "OSError: disk full" in payload["exception"]
