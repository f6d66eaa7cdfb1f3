"""Request normalization: loss-summary merging and deterministic defaults.

Accepts the three loss shapes clients send (``lossSummary``, the older
``moneyLostSummary`` with ``*Usd`` field names, and the flat legacy
``moneylost``) and produces a NormalizedContext whose score sections and
loss areas are never empty.
"""

import copy
from typing import Any

from roibrain.core.logging import get_logger
from roibrain.core.schemas_roi_brain import (
    LossArea,
    LossSummary,
    LossTotal,
    NormalizedContext,
    ROIBrainRequest,
    ScoreSummary,
    SectionScore,
)

logger = get_logger(__name__)

DAYS_PER_MONTH = 30
MONTHS_PER_YEAR = 12

DEFAULT_MONTHLY_LOSS = 30_000
DEFAULT_OVERALL_SCORE = 50

# Per-vertical synthetic loss areas used when the client sends none
DEFAULT_LOSS_AREAS: dict[str, list[dict[str, Any]]] = {
    "dental": [
        {
            "key": "missed_calls",
            "title": "Missed Patient Calls",
            "monthly": 15_000,
            "recoverable_range": {"min": 70, "max": 90},
            "rationale": ["AI reception can answer calls 24/7, capturing missed appointments"],
        },
        {
            "key": "appointment_no_shows",
            "title": "No-Show Appointments",
            "monthly": 9_000,
            "recoverable_range": {"min": 60, "max": 80},
            "rationale": ["Automated reminders and rescheduling reduce no-shows significantly"],
        },
        {
            "key": "follow_up_delays",
            "title": "Follow-up Communication Delays",
            "monthly": 6_000,
            "recoverable_range": {"min": 50, "max": 70},
            "rationale": ["AI-driven follow-up systems ensure timely patient communication"],
        },
    ],
    "hvac": [
        {
            "key": "missed_calls",
            "title": "Missed Service Calls",
            "monthly": 18_000,
            "recoverable_range": {"min": 75, "max": 95},
            "rationale": ["24/7 AI reception captures emergency calls and service requests"],
        },
        {
            "key": "scheduling_inefficiency",
            "title": "Scheduling Inefficiencies",
            "monthly": 7_500,
            "recoverable_range": {"min": 60, "max": 80},
            "rationale": ["AI scheduling optimizes technician routes and appointment slots"],
        },
        {
            "key": "quote_follow_up",
            "title": "Quote Follow-up Delays",
            "monthly": 4_500,
            "recoverable_range": {"min": 50, "max": 70},
            "rationale": ["Automated quote follow-up increases conversion rates"],
        },
    ],
}

DEFAULT_SECTION = {"id": "general", "name": "General Readiness"}


def _fill_periods(monthly: float, daily: float = 0, annual: float = 0) -> dict[str, float]:
    """Derive missing daily/annual figures from the monthly amount."""
    return {
        "daily": daily or round(monthly / DAYS_PER_MONTH, 2),
        "monthly": monthly,
        "annual": annual or monthly * MONTHS_PER_YEAR,
    }


def _default_areas(vertical: str) -> list[LossArea]:
    areas = []
    for area in DEFAULT_LOSS_AREAS[vertical]:
        data = dict(area)
        data.update(_fill_periods(area["monthly"]))
        areas.append(LossArea.model_validate(data))
    return areas


def _area_from_usd_shape(raw: dict[str, Any]) -> dict[str, Any]:
    """Convert an area using the ``*Usd`` field names to the canonical shape."""
    pct = raw.get("recoverablePctRange") or raw.get("recoverableRange") or {}
    monthly = float(raw.get("monthlyUsd", raw.get("monthly", 0)) or 0)
    periods = _fill_periods(
        monthly,
        float(raw.get("dailyUsd", raw.get("daily", 0)) or 0),
        float(raw.get("annualUsd", raw.get("annual", 0)) or 0),
    )
    key = raw.get("key") or raw.get("area") or "operational_efficiency"
    return {
        "key": key,
        "title": raw.get("title") or str(key).replace("_", " ").title(),
        **periods,
        "recoverable_range": {"min": pct.get("min", 50), "max": pct.get("max", 80)},
        "rationale": list(raw.get("rationale") or []),
    }


def _from_money_lost_summary(raw: dict[str, Any]) -> LossSummary:
    total = raw.get("total") or {}
    monthly = float(total.get("monthlyUsd", total.get("monthly", 0)) or 0)
    return LossSummary.model_validate(
        {
            "total": _fill_periods(
                monthly,
                float(total.get("dailyUsd", total.get("daily", 0)) or 0),
                float(total.get("annualUsd", total.get("annual", 0)) or 0),
            ),
            "areas": [_area_from_usd_shape(a) for a in raw.get("areas") or []],
        }
    )


def _from_legacy_moneylost(raw: dict[str, Any]) -> LossSummary:
    monthly = float(raw.get("monthlyUsd") or 0)
    return LossSummary.model_validate(
        {
            "total": _fill_periods(monthly),
            "areas": [_area_from_usd_shape(a) for a in raw.get("areas") or []],
        }
    )


def merge_loss_data(request: ROIBrainRequest) -> LossSummary:
    """
    Merge whichever loss shape the request carries into one LossSummary.

    Precedence: lossSummary, moneyLostSummary, moneylost, then vertical
    defaults. Missing totals are summed from areas; missing areas are replaced
    by the vertical's synthetic areas.

    Args:
        request: Validated inbound request

    Returns:
        LossSummary with a positive monthly total and at least one area
    """
    if request.loss_summary is not None:
        summary = request.loss_summary
        source = "loss_summary"
    elif request.money_lost_summary is not None:
        summary = _from_money_lost_summary(request.money_lost_summary)
        source = "money_lost_summary"
    elif request.moneylost is not None:
        summary = _from_legacy_moneylost(request.moneylost)
        source = "legacy_moneylost"
    else:
        summary = LossSummary()
        source = "defaults"

    areas = list(summary.areas) or _default_areas(request.vertical)

    monthly = summary.total.monthly or sum(a.monthly for a in areas) or DEFAULT_MONTHLY_LOSS
    total = LossTotal(**_fill_periods(monthly, summary.total.daily, summary.total.annual))

    if source != "loss_summary" or not summary.areas:
        logger.debug(f"Loss summary normalized from {source} ({len(areas)} areas)")

    return LossSummary(total=total, areas=areas)


def normalize_score_summary(score_summary: ScoreSummary | None) -> ScoreSummary:
    """Fill in a default overall score and a synthetic section when absent."""
    if score_summary is None:
        score_summary = ScoreSummary(overall=DEFAULT_OVERALL_SCORE)
    sections = list(score_summary.sections) or [
        SectionScore(score=score_summary.overall, **DEFAULT_SECTION)
    ]
    return ScoreSummary(overall=score_summary.overall, sections=sections)


def normalize_request(request: ROIBrainRequest) -> NormalizedContext:
    """
    Build the immutable per-request context.

    Args:
        request: Validated inbound request

    Returns:
        NormalizedContext with non-empty sections and loss areas
    """
    return NormalizedContext(
        vertical=request.vertical,
        audit_answers=copy.deepcopy(request.audit_answers),
        score_summary=normalize_score_summary(request.score_summary),
        loss_summary=merge_loss_data(request),
        language=request.language,
    )


def calculate_recovery_ranges(loss_summary: LossSummary) -> dict[str, Any]:
    """
    Compute the monthly recoverable range for each loss area and in total.

    Returns:
        Dict with ``totalRecoveryRange`` and ``areaRecoveries``
    """
    area_recoveries = [
        {
            "key": area.key,
            "title": area.title,
            "monthlyRecoveryRange": {
                "min": round(area.monthly * area.recoverable_range.min / 100),
                "max": round(area.monthly * area.recoverable_range.max / 100),
            },
        }
        for area in loss_summary.areas
    ]
    return {
        "totalRecoveryRange": {
            "min": sum(a["monthlyRecoveryRange"]["min"] for a in area_recoveries),
            "max": sum(a["monthlyRecoveryRange"]["max"] for a in area_recoveries),
        },
        "areaRecoveries": area_recoveries,
    }
