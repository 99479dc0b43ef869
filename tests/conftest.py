"""Pytest configuration and fixtures."""
import logging

import pytest

from producer.config import settings
from producer.core.agent import reset_conversation_manager


def pytest_configure(config):
    logging.getLogger("httpcore").setLevel(logging.CRITICAL)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path, monkeypatch):
    """Point the persisted agent settings at a per-test file."""
    monkeypatch.setattr(settings, "config_path", tmp_path / "config.toml")
    yield


@pytest.fixture(autouse=True)
def _reset_conversation_manager():
    """Reset the singleton manager between tests to prevent cross-test pollution."""
    yield
    reset_conversation_manager()
