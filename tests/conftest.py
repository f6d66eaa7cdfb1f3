"""Pytest configuration and fixtures."""

import os

import pytest

# Set before any roibrain import so module-level loggers can read settings
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key")
os.environ.setdefault("ROI_BRAIN_ENV", "test")
os.environ.setdefault("CACHE_L2_ENABLED", "false")


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["SUPABASE_URL"] = "https://test.supabase.co"
    os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-key"
    os.environ["ANTHROPIC_API_KEY"] = "test-anthropic-key"
    os.environ["ROI_BRAIN_ENV"] = "test"
    os.environ["CACHE_L2_ENABLED"] = "false"


@pytest.fixture
def response_cache():
    """Fresh in-process cache with the persistent tier disabled."""
    from roibrain.core.cache import init_response_cache

    cache = init_response_cache(max_size=50, ttl_seconds=600, negative_ttl_seconds=60, l2_enabled=False)
    yield cache
    cache.clear()


@pytest.fixture
def dental_request() -> dict:
    """Typical dental audit body in the camelCase wire format."""
    return {
        "vertical": "dental",
        "auditAnswers": {
            "dailyUnansweredCalls": "11_20",
            "weeklyNoShows": "7_10",
            "dental_chairs_active_choice": "3_4",
        },
        "scoreSummary": {"overall": 62, "sections": [{"id": "calls", "name": "Calls", "score": 40}]},
        "lossSummary": {
            "total": {"monthly": 30000},
            "areas": [
                {"key": "missed_calls", "title": "Missed Calls", "monthly": 18000},
                {"key": "appointment_no_shows", "title": "No-Shows", "monthly": 12000},
            ],
        },
        "language": "en",
    }
