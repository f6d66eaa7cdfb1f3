"""Tests for the ROI Brain HTTP endpoints via FastAPI TestClient."""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from roibrain.chains.generate_roi_report import ReportGeneration
from roibrain.main import app
from tests.fixtures_roi_brain import model_text


@pytest.fixture
def client(response_cache):
    return TestClient(app)


@pytest.fixture
def mock_generate():
    generation = ReportGeneration(
        text=model_text(), model="claude-sonnet-4-5-20250929", input_tokens=10, output_tokens=20
    )
    with patch(
        "roibrain.core.roi_brain.generate_roi_report", new=AsyncMock(return_value=generation)
    ) as mock:
        yield mock


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_generate_then_cached(client, mock_generate, dental_request):
    first = client.post("/v1/roi-brain", json=dental_request)
    second = client.post("/v1/roi-brain", json=dental_request)

    assert first.status_code == 200
    assert first.json()["success"] is True
    assert first.json()["cacheHit"] is False
    assert second.json()["cacheHit"] is True
    assert mock_generate.await_count == 1


def test_invalid_body_is_400(client, mock_generate):
    response = client.post("/v1/roi-brain", json={"auditAnswers": {}})

    assert response.status_code == 400
    assert response.json()["error"]["type"] == "InputValidationError"
    mock_generate.assert_not_awaited()


def test_malformed_json_is_400(client, mock_generate):
    response = client.post(
        "/v1/roi-brain", content=b"{not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400


def test_cache_metrics_and_clear(client, mock_generate, dental_request):
    client.post("/v1/roi-brain", json=dental_request)

    metrics = client.get("/v1/roi-brain/cache/metrics").json()
    assert metrics["cache"]["l1"]["size"] == 1
    assert metrics["cache"]["counters"]["computations"] == 1

    cleared = client.post("/v1/roi-brain/cache/clear")
    assert cleared.json() == {"cleared": 1}
    assert client.get("/v1/roi-brain/cache/metrics").json()["cache"]["l1"]["size"] == 0


def test_signal_debug_endpoint(client):
    response = client.post(
        "/v1/roi-brain/signals",
        json={"vertical": "dental", "auditAnswers": {"dailyUnansweredCalls": "11_20"}},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["signalTags"] == ["dental.missed_calls_high"]
    assert "skills.call_handling" in body["kbSections"]


def test_signal_debug_rejects_unknown_vertical(client):
    response = client.post("/v1/roi-brain/signals", json={"vertical": "legal"})

    assert response.status_code == 422


def test_cache_cleanup_endpoint(client):
    response = client.post("/v1/roi-brain/cache/cleanup")

    assert response.status_code == 200
    assert response.json() == {"removed": {"l1": 0, "l2": 0}}
