"""Business intelligence extraction.

Pure function over a NormalizedContext. Every threshold lives in a table so
the profile can be tuned without touching control flow.
"""

from roibrain.core.schemas_roi_brain import (
    BusinessIntelligence,
    BusinessSize,
    Complexity,
    NormalizedContext,
    UrgencyLevel,
)
from roibrain.core.signal_rules import answer

# =============================================================================
# Tables
# =============================================================================

# Audit question that sizes the business, per vertical
SIZE_QUESTION: dict[str, str] = {
    "dental": "dental_chairs_active_choice",
    "hvac": "field_technicians_count_choice",
}

SIZE_BY_CHOICE: dict[str, dict[str, BusinessSize]] = {
    "dental": {"1_2": "small", "5_8": "large", "9_plus": "large"},
    "hvac": {"1_2": "small", "6_10": "large", "gt_10": "large"},
}

# Checked in order: first threshold strictly exceeded wins
URGENCY_THRESHOLDS: list[tuple[float, UrgencyLevel]] = [
    (50_000, "critical"),
    (25_000, "high"),
    (10_000, "medium"),
]

SIMPLE_MIN_READINESS = 70
COMPLEX_MAX_READINESS = 40

TOP_PAIN_POINTS = 3
FALLBACK_PAIN_POINT = "operational_efficiency"


# =============================================================================
# Extraction
# =============================================================================


def _business_size(context: NormalizedContext) -> BusinessSize:
    question = SIZE_QUESTION[context.vertical]
    choice = answer(context.audit_answers, question)
    return SIZE_BY_CHOICE[context.vertical].get(str(choice), "medium")


def classify_urgency(monthly_loss: float) -> UrgencyLevel:
    """Map a monthly loss to an urgency level (monotonic non-decreasing)."""
    for threshold, level in URGENCY_THRESHOLDS:
        if monthly_loss > threshold:
            return level
    return "low"


def _complexity(size: BusinessSize, readiness: int) -> Complexity:
    if size == "small" and readiness > SIMPLE_MIN_READINESS:
        return "simple"
    if size == "large" or readiness < COMPLEX_MAX_READINESS:
        return "complex"
    return "moderate"


def extract_intelligence(context: NormalizedContext) -> BusinessIntelligence:
    """
    Derive a qualitative business profile from a normalized context.

    Args:
        context: Normalized request context

    Returns:
        BusinessIntelligence (never fails for a valid context)
    """
    size = _business_size(context)
    readiness = max(0, min(100, int(round(context.score_summary.overall))))

    # sorted() is stable, so equal amounts keep their input order
    ranked = sorted(context.loss_summary.areas, key=lambda a: a.monthly, reverse=True)
    pain_points = [a.key for a in ranked[:TOP_PAIN_POINTS] if a.key] or [FALLBACK_PAIN_POINT]

    return BusinessIntelligence(
        business_size=size,
        urgency_level=classify_urgency(context.loss_summary.total.monthly),
        primary_pain_points=pain_points,
        technical_readiness=readiness,
        implementation_complexity=_complexity(size, readiness),
    )
