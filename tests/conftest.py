"""
Pytest configuration and shared fixtures for adnotate tests.

Provides:
- Environment isolation for every credential variable the configs read
- Credential fixtures for the source and destination APIs
- A factory for raw activity records as returned by the activity log
- In-memory state store fixture
"""

import datetime
import logging
from collections.abc import Callable
from typing import Any

import pytest

from adnotate.core.state import MemoryStateStore


CREDENTIAL_ENV_VARS = (
    "META_ACCESS_TOKEN",
    "META_AD_ACCOUNT_ID",
    "META_API_VERSION",
    "POSTHOG_API_KEY",
    "POSTHOG_PROJECT_ID",
    "POSTHOG_HOST",
    "ALLOW_ALL_EVENTS",
    "ADNOTATE_DB_PASSWORD",
)

# 2024-05-01T10:20:30+0000
BASE_TS = 1_714_558_830


def event_time(ts: int) -> str:
    """Render Unix seconds the way the activity log does."""
    return datetime.datetime.fromtimestamp(ts, datetime.UTC).strftime("%Y-%m-%dT%H:%M:%S+0000")


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove every credential variable so tests never see the host's values."""
    for name in CREDENTIAL_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def source_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Activity log credentials."""
    monkeypatch.setenv("META_ACCESS_TOKEN", "test-token")
    monkeypatch.setenv("META_AD_ACCOUNT_ID", "act_123")
    monkeypatch.setenv("META_API_VERSION", "v19.0")


@pytest.fixture
def destination_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Annotation endpoint credentials."""
    monkeypatch.setenv("POSTHOG_API_KEY", "phx_test")
    monkeypatch.setenv("POSTHOG_PROJECT_ID", "42")
    monkeypatch.setenv("POSTHOG_HOST", "https://eu.posthog.com")


@pytest.fixture
def credentials_env(source_env: None, destination_env: None) -> None:
    """Both sets of credentials."""


# ============================================================================
# Data Fixtures
# ============================================================================


@pytest.fixture
def make_record() -> Callable[..., dict[str, Any]]:
    """Factory for raw activity records.

    ``offset`` is added to ``BASE_TS``; any keyword overrides a field.
    """

    def _make(offset: int = 0, **overrides: Any) -> dict[str, Any]:
        record: dict[str, Any] = {
            "event_time": event_time(BASE_TS + offset),
            "event_type": "update_ad_set_budget",
            "translated_event_type": "Ad set budget updated",
            "object_id": "238000001",
            "object_name": "Summer Promo",
            "object_type": "AD_SET",
            "actor_name": "Jane Doe",
            "extra_data": '{"old_value": {"old_value": 100}, "new_value": {"new_value": 150}}',
        }
        record.update(overrides)
        return record

    return _make


@pytest.fixture
def memory_state() -> MemoryStateStore:
    """Empty in-memory state store."""
    return MemoryStateStore()


@pytest.fixture
def base_ts() -> int:
    """Unix seconds of the record built by ``make_record()`` with no offset."""
    return BASE_TS
