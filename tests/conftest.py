"""Shared test fixtures."""

from pathlib import Path

import pytest

from src.coordination import ConflictDetector, LockManager
from src.workspace.config import Settings


@pytest.fixture
def settings() -> Settings:
    """Default settings, independent of the caller's environment."""
    return Settings(_env_file=None)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Empty workspace root."""
    return tmp_path


@pytest.fixture
def locks(workspace: Path, settings: Settings) -> LockManager:
    return LockManager(workspace, settings)


@pytest.fixture
def detector(locks: LockManager) -> ConflictDetector:
    return ConflictDetector(locks)
