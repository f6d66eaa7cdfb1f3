"""Tests for business intelligence extraction."""

import pytest

from roibrain.core.business_intelligence import classify_urgency, extract_intelligence
from roibrain.core.normalization import normalize_request
from roibrain.core.schemas_roi_brain import ROIBrainRequest


def _context(answers=None, overall=50, monthly=20000, areas=None, vertical="dental"):
    return normalize_request(
        ROIBrainRequest.model_validate(
            {
                "vertical": vertical,
                "auditAnswers": answers or {},
                "scoreSummary": {"overall": overall},
                "lossSummary": {"total": {"monthly": monthly}, "areas": areas or []},
            }
        )
    )


def test_sixty_thousand_monthly_loss_is_critical():
    intel = extract_intelligence(_context(monthly=60000))

    assert intel.urgency_level == "critical"


@pytest.mark.parametrize(
    "monthly,expected",
    [(0, "low"), (10000, "low"), (10001, "medium"), (25001, "high"), (50000, "high"), (50001, "critical")],
)
def test_urgency_thresholds(monthly, expected):
    assert classify_urgency(monthly) == expected


def test_urgency_is_monotonic():
    order = ["low", "medium", "high", "critical"]
    levels = [order.index(classify_urgency(m)) for m in range(0, 80000, 2500)]

    assert levels == sorted(levels)


def test_business_size_from_vertical_question():
    assert extract_intelligence(_context({"dental_chairs_active_choice": "1_2"})).business_size == "small"
    assert extract_intelligence(_context({"dental_chairs_active_choice": "9_plus"})).business_size == "large"
    assert extract_intelligence(_context({})).business_size == "medium"
    hvac = _context({"field_technicians_count_choice": "gt_10"}, vertical="hvac")
    assert extract_intelligence(hvac).business_size == "large"


def test_pain_points_ranked_by_monthly_loss_with_stable_ties():
    areas = [
        {"key": "first", "title": "First", "monthly": 1000},
        {"key": "second", "title": "Second", "monthly": 5000},
        {"key": "third", "title": "Third", "monthly": 1000},
        {"key": "fourth", "title": "Fourth", "monthly": 500},
    ]
    intel = extract_intelligence(_context(areas=areas))

    assert intel.primary_pain_points == ["second", "first", "third"]


def test_readiness_is_clamped_and_drives_complexity():
    small_ready = extract_intelligence(_context({"dental_chairs_active_choice": "1_2"}, overall=85))
    assert small_ready.technical_readiness == 85
    assert small_ready.implementation_complexity == "simple"

    low = extract_intelligence(_context(overall=30))
    assert low.implementation_complexity == "complex"

    mid = extract_intelligence(_context(overall=55))
    assert mid.implementation_complexity == "moderate"

    clamped = extract_intelligence(_context(overall=150))
    assert clamped.technical_readiness == 100
