"""Shared fixtures for services.api test package."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from adnotate.core.state import MemoryStateStore
from adnotate.services.api.service import Api, ApiConfig
from adnotate.services.syncer import SyncResult


@pytest.fixture
def api_config() -> ApiConfig:
    """Minimal API config for testing."""
    return ApiConfig(interval=60.0, host="127.0.0.1", port=9999)


@pytest.fixture
def mock_syncer() -> MagicMock:
    """Syncer stand-in whose sync() returns an empty result."""
    syncer = MagicMock()
    syncer.sync = AsyncMock(return_value=SyncResult())
    return syncer


@pytest.fixture
def api_service(api_config: ApiConfig, mock_syncer: MagicMock) -> Api:
    return Api(state=MemoryStateStore(), config=api_config, syncer=mock_syncer)


@pytest.fixture
def test_client(api_service: Api) -> TestClient:
    """FastAPI TestClient from the Api service."""
    return TestClient(api_service._build_app())
