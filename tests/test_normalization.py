"""Tests for request normalization and loss-summary merging."""

import pytest
from pydantic import ValidationError

from roibrain.core.normalization import (
    DEFAULT_MONTHLY_LOSS,
    calculate_recovery_ranges,
    merge_loss_data,
    normalize_request,
)
from roibrain.core.schemas_roi_brain import LossSummary, ROIBrainRequest


def _request(**kwargs) -> ROIBrainRequest:
    return ROIBrainRequest.model_validate({"vertical": "dental", "auditAnswers": {}, **kwargs})


def test_missing_data_gets_deterministic_defaults():
    context = normalize_request(_request())

    assert context.score_summary.overall == 50
    assert len(context.score_summary.sections) == 1
    assert context.loss_summary.total.monthly == DEFAULT_MONTHLY_LOSS
    assert [a.key for a in context.loss_summary.areas] == [
        "missed_calls",
        "appointment_no_shows",
        "follow_up_delays",
    ]


def test_total_is_summed_from_areas_when_missing():
    loss = merge_loss_data(
        _request(
            lossSummary={
                "areas": [
                    {"key": "missed_calls", "title": "Missed", "monthly": 4000},
                    {"key": "no_shows", "title": "No-shows", "monthly": 2000},
                ]
            }
        )
    )

    assert loss.total.monthly == 6000
    assert loss.total.annual == 72000
    assert loss.total.daily == 200


def test_money_lost_summary_usd_shape_is_converted():
    loss = merge_loss_data(
        _request(
            moneyLostSummary={
                "total": {"monthlyUsd": 12000},
                "areas": [
                    {
                        "key": "missed_calls",
                        "title": "Missed Calls",
                        "monthlyUsd": 12000,
                        "recoverablePctRange": {"min": 60, "max": 85},
                    }
                ],
            }
        )
    )

    assert loss.total.monthly == 12000
    assert loss.areas[0].recoverable_range.min == 60
    assert loss.areas[0].recoverable_range.max == 85


def test_legacy_moneylost_shape_is_accepted():
    loss = merge_loss_data(_request(moneylost={"monthlyUsd": 9000, "areas": []}))

    assert loss.total.monthly == 9000
    # No areas supplied: the vertical's synthetic areas fill in
    assert len(loss.areas) == 3


def test_loss_summary_takes_precedence_over_older_shapes():
    loss = merge_loss_data(
        _request(
            lossSummary={"total": {"monthly": 1000}, "areas": [{"key": "a", "title": "A", "monthly": 1000}]},
            moneylost={"monthlyUsd": 99999},
        )
    )

    assert loss.total.monthly == 1000


def test_unknown_vertical_is_rejected():
    with pytest.raises(ValidationError):
        ROIBrainRequest.model_validate({"vertical": "legal", "auditAnswers": {}})


def test_recovery_ranges_per_area_and_total():
    loss = LossSummary.model_validate(
        {
            "total": {"monthly": 15000},
            "areas": [
                {"key": "a", "title": "A", "monthly": 10000, "recoverableRange": {"min": 50, "max": 80}},
                {"key": "b", "title": "B", "monthly": 5000, "recoverableRange": {"min": 20, "max": 40}},
            ],
        }
    )
    ranges = calculate_recovery_ranges(loss)

    assert ranges["totalRecoveryRange"] == {"min": 6000, "max": 10000}
    assert ranges["areaRecoveries"][1]["monthlyRecoveryRange"] == {"min": 1000, "max": 2000}


def test_context_answers_are_read_only_and_detached():
    request = _request(auditAnswers={"weeklyNoShows": "7_10", "services": ["cleaning"]})
    context = normalize_request(request)

    with pytest.raises(TypeError):
        context.audit_answers["weeklyNoShows"] = "0_2"

    request.audit_answers["services"].append("implants")
    assert context.audit_answers["services"] == ["cleaning"]
    assert context.model_dump(by_alias=True)["auditAnswers"]["weeklyNoShows"] == "7_10"
