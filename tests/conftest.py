"""
Pytest configuration and fixtures for stager tests.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Generator
from unittest.mock import patch

import pytest

from stager.config import Settings, clear_settings_cache
from stager.controller import SlotCacheController
from stager.store.content_store import ContentStore


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def blob_dir(temp_dir: Path) -> Path:
    """Directory that receives backing files."""
    path = temp_dir / "blobs"
    path.mkdir()
    return path


@pytest.fixture
def mock_env_vars(temp_dir: Path) -> Generator[dict[str, str], None, None]:
    """Provide mock environment variables for testing."""
    env_vars = {
        "STAGER_TEMP_DIR": str(temp_dir / "stage"),
        "STAGER_FILE_PREFIX": "test-",
        "STAGER_FILE_SUFFIX": ".bin",
        "STAGER_COPY_BUFFER_SIZE": "4096",
        "STAGER_FETCH_PARAM": "img",
        "STAGER_ORPHAN_MAX_AGE_HOURS": "2",
        "STAGER_LOG_LEVEL": "DEBUG",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture
def mock_settings(mock_env_vars: dict[str, str]) -> Generator[Settings, None, None]:
    """Provide a Settings instance with mock configuration."""
    from stager.config import get_settings

    settings = get_settings()
    settings.ensure_directories()
    yield settings
    clear_settings_cache()


@pytest.fixture
def content_store(blob_dir: Path) -> ContentStore:
    """Content store writing into blob_dir."""
    return ContentStore(blob_dir, prefix="t-", suffix=".blob")


@pytest.fixture
def controller(content_store: ContentStore) -> Generator[SlotCacheController, None, None]:
    """Controller over content_store, torn down after the test."""
    ctrl = SlotCacheController(content_store)
    yield ctrl
    ctrl.teardown()


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
