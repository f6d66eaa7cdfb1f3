"""Deterministic mapping from signals, pain points and loss areas to voice skills.

Each mapper turns one kind of evidence into SkillInsight objects with a
monthly impact of ``round(loss basis x mean recovery rate)``. Insights for the
same skill are merged by taking the strongest value of every field, so adding
evidence can only raise a skill's standing.
"""

import re
from collections.abc import Iterable, Mapping
from typing import Any

from roibrain.core.kb_corpus import VOICE_SKILLS
from roibrain.core.logging import get_logger
from roibrain.core.schemas_roi_brain import LossSummary
from roibrain.core.schemas_skills import Priority, SkillInsight, SkillInsightMetadata, UsdRange

logger = get_logger(__name__)

SKILL_MAPPING_VERSION = "v1.0"

# ============================================================================
# Tables
# ============================================================================

SKILL_DETAILS: dict[str, dict[str, Any]] = {skill["id"]: skill for skill in VOICE_SKILLS}

SIGNAL_TO_SKILLS: dict[str, list[str]] = {
    "dental.missed_calls_medium": ["reception-24-7"],
    "dental.missed_calls_high": ["reception-24-7", "follow-up-agent"],
    "dental.no_shows_high": ["prevention-no-show"],
    "dental.no_shows_critical": ["prevention-no-show", "recall-reactivation"],
    "dental.treatment_plans_high": ["treatment-plan-closer", "follow-up-agent"],
    "dental.treatment_conversion_low": ["treatment-plan-closer", "follow-up-agent"],
    "dental.no_online_booking": ["prevention-no-show", "reception-24-7"],
    "hvac.missed_calls_medium": ["hvac-reception-24-7"],
    "hvac.missed_calls_high": ["hvac-reception-24-7", "quote-follow-up"],
    "hvac.job_cancellations_high": ["hvac-no-show-reminder"],
    "hvac.quotes_pending_high": ["quote-follow-up", "contract-closer"],
    "hvac.quote_conversion_low": ["quote-follow-up", "contract-closer"],
    "hvac.no_online_booking": ["hvac-no-show-reminder", "hvac-reception-24-7"],
}

# Loss-area keys whose amount is the basis for a signal, by bare tag
SIGNAL_LOSS_AREAS: dict[str, tuple[str, ...]] = {
    "missed_calls_medium": ("missed_calls",),
    "missed_calls_high": ("missed_calls",),
    "no_shows_high": ("appointment_no_shows", "no_shows"),
    "no_shows_critical": ("appointment_no_shows", "no_shows"),
    "job_cancellations_high": ("job_cancellations", "scheduling_inefficiency"),
    "treatment_plans_high": ("treatment_plans", "follow_up_delays"),
    "treatment_conversion_low": ("treatment_plans", "follow_up_delays"),
    "quotes_pending_high": ("pending_quotes", "quote_follow_up"),
    "quote_conversion_low": ("pending_quotes", "quote_follow_up"),
}

PAINPOINT_TO_SKILLS: dict[str, list[str]] = {
    # Dental
    "missed-calls": ["reception-24-7"],
    "after-hours-calls": ["reception-24-7"],
    "no-shows": ["prevention-no-show"],
    "inactive-patients": ["recall-reactivation"],
    "pending-treatment-plans": ["treatment-plan-closer", "follow-up-agent"],
    "unconfirmed-treatments": ["follow-up-agent"],
    "low-reviews": ["review-booster"],
    # HVAC
    "missed-service-calls": ["hvac-reception-24-7"],
    "emergency-response": ["hvac-reception-24-7"],
    "job-cancellations": ["hvac-no-show-reminder"],
    "unconfirmed-estimates": ["quote-follow-up"],
    "inactive-customers": ["hvac-recall-reactivation"],
    "recurring-contracts": ["contract-closer"],
    "few-reviews": ["hvac-review-booster"],
}

# Keyed by loss-area key, plus the area titles older clients send
LOSS_AREA_TO_SKILLS: dict[str, list[str]] = {
    "missed_calls": ["reception-24-7", "hvac-reception-24-7"],
    "appointment_no_shows": ["prevention-no-show"],
    "no_shows": ["prevention-no-show"],
    "follow_up_delays": ["follow-up-agent"],
    "treatment_plans": ["treatment-plan-closer", "follow-up-agent"],
    "scheduling_inefficiency": ["hvac-no-show-reminder"],
    "job_cancellations": ["hvac-no-show-reminder"],
    "quote_follow_up": ["quote-follow-up"],
    "pending_quotes": ["quote-follow-up"],
    # Legacy titles
    "Missed Calls Revenue Loss": ["reception-24-7"],
    "No-Shows Revenue Loss": ["prevention-no-show"],
    "Treatment Plans Revenue Loss": ["treatment-plan-closer", "follow-up-agent"],
    "Missed Service Calls Loss": ["hvac-reception-24-7"],
    "Last-Minute Cancellations Loss": ["hvac-no-show-reminder"],
    "Pending Quotes Revenue Loss": ["quote-follow-up"],
}

PRIORITY_WEIGHTS = {
    "IMPACT_HIGH_THRESHOLD": 5000,
    "IMPACT_MEDIUM_THRESHOLD": 2000,
    "BASE_CONFIDENCE": 70,
    "LOSS_DATA_BONUS": 10,
    "SIZE_MATCH_BONUS": 5,
    "GENERIC_PENALTY": 10,
}

DEFAULT_LOSS_BASIS = 5000
MAX_INSIGHTS = 6

PRIORITY_ORDER: dict[str, int] = {"high": 3, "medium": 2, "low": 1}


# ============================================================================
# Helpers
# ============================================================================


def _mean_recovery(skill: Mapping[str, Any]) -> float:
    rate = skill["recovery_rate_range"]
    return (rate["min"] + rate["max"]) / 2


def compute_monthly_impact(loss_basis: float, skill: Mapping[str, Any]) -> int:
    return int(round(max(loss_basis, 0) * _mean_recovery(skill)))


def calculate_priority(monthly_impact: float, signal_tag: str | None = None) -> Priority:
    severe = signal_tag is not None and ("high" in signal_tag or "critical" in signal_tag)
    if severe or monthly_impact >= PRIORITY_WEIGHTS["IMPACT_HIGH_THRESHOLD"]:
        return "high"
    if monthly_impact >= PRIORITY_WEIGHTS["IMPACT_MEDIUM_THRESHOLD"]:
        return "medium"
    return "low"


def calculate_confidence(
    has_loss_data: bool,
    business_size: str | None,
    skill_target: str | None,
    generic: bool = False,
) -> int:
    confidence = PRIORITY_WEIGHTS["BASE_CONFIDENCE"]
    if has_loss_data:
        confidence += PRIORITY_WEIGHTS["LOSS_DATA_BONUS"]
    if business_size and skill_target and business_size == skill_target:
        confidence += PRIORITY_WEIGHTS["SIZE_MATCH_BONUS"]
    if generic:
        confidence -= PRIORITY_WEIGHTS["GENERIC_PENALTY"]
    return max(0, min(100, confidence))


def _insight_key(vertical: str, source: str, skill_id: str) -> str:
    return re.sub(r"[^a-zA-Z0-9_]", "_", f"{vertical}_{source}_{skill_id}").lower()


def _mean_loss(loss_by_area: Mapping[str, float]) -> float:
    known = [v for v in loss_by_area.values() if v > 0]
    return sum(known) / len(known) if known else DEFAULT_LOSS_BASIS


def _rate_label(skill: Mapping[str, Any]) -> str:
    rate = skill["recovery_rate_range"]
    return f"{round(rate['min'] * 100)}-{round(rate['max'] * 100)}%"


def _skills_for(skill_ids: Iterable[str], vertical: str) -> list[tuple[str, dict[str, Any]]]:
    found = []
    for skill_id in skill_ids:
        skill = SKILL_DETAILS.get(skill_id)
        if skill is None or skill["vertical"] != vertical:
            continue
        found.append((skill_id, skill))
    return found


def _build(
    *,
    key: str,
    skill_id: str,
    skill: Mapping[str, Any],
    description: str,
    impact_text: str,
    monthly_impact: int,
    priority: Priority,
    confidence: int,
    vertical: str,
    source: str,
    signal_tag: str | None = None,
    pain_point_id: str | None = None,
) -> SkillInsight:
    return SkillInsight(
        key=key,
        title=skill["title"],
        description=description,
        impact_text=impact_text,
        category=skill["category"],
        monthly_impact_usd=monthly_impact,
        actionable=True,
        priority=priority,
        confidence=confidence,
        metadata=SkillInsightMetadata(
            vertical=vertical,
            skill_id=skill_id,
            signal_tag=signal_tag,
            pain_point_id=pain_point_id,
            recovery_rate=_mean_recovery(skill),
            sources=[source],
            roi_range=UsdRange(**skill["roi_usd_range"]),
        ),
    )


# ============================================================================
# Mappers
# ============================================================================


def map_signal_tags_to_skills(
    signal_tags: Iterable[str],
    loss_by_area: Mapping[str, float],
    vertical: str,
    business_size: str = "medium",
) -> list[SkillInsight]:
    """
    Map namespaced signal tags to skill insights.

    The loss basis is the amount of the loss area the signal points at, else
    the mean of the known area losses, else DEFAULT_LOSS_BASIS.
    """
    insights = []
    for tag in signal_tags:
        bare = tag.removeprefix(f"{vertical}.")
        area_amounts = [loss_by_area[a] for a in SIGNAL_LOSS_AREAS.get(bare, ()) if loss_by_area.get(a)]
        basis = area_amounts[0] if area_amounts else _mean_loss(loss_by_area)
        for skill_id, skill in _skills_for(SIGNAL_TO_SKILLS.get(tag, []), vertical):
            monthly = compute_monthly_impact(basis, skill)
            insights.append(
                _build(
                    key=_insight_key(vertical, bare, skill_id),
                    skill_id=skill_id,
                    skill=skill,
                    description=(
                        f"{skill['description']} - Specifically addresses "
                        f"{bare.replace('_', ' ')} signals in your audit."
                    ),
                    impact_text=(
                        f"Estimated monthly recovery: ${monthly:,} "
                        f"({_rate_label(skill)} of identified losses)"
                    ),
                    monthly_impact=monthly,
                    priority=calculate_priority(monthly, tag),
                    confidence=calculate_confidence(bool(loss_by_area), business_size, skill.get("target")),
                    vertical=vertical,
                    source=f"signal:{tag}",
                    signal_tag=tag,
                )
            )
    return insights


def map_pain_points_to_skills(
    pain_points: Iterable[Mapping[str, Any]],
    loss_by_area: Mapping[str, float],
    vertical: str,
    business_size: str = "medium",
) -> list[SkillInsight]:
    """Map pain points (``{id, monthly_impact?}``) to skill insights."""
    insights = []
    for pain in pain_points:
        pain_id = str(pain.get("id", ""))
        explicit = pain.get("monthly_impact") or pain.get("monthlyImpact")
        basis = float(explicit) if explicit else _mean_loss(loss_by_area)
        for skill_id, skill in _skills_for(PAINPOINT_TO_SKILLS.get(pain_id, []), vertical):
            monthly = compute_monthly_impact(basis, skill)
            label = pain_id.replace("-", " ")
            insights.append(
                _build(
                    key=_insight_key(vertical, pain_id, skill_id),
                    skill_id=skill_id,
                    skill=skill,
                    description=f'{skill["description"]} - Directly targets your "{label}" pain point.',
                    impact_text=f"Addresses {label} with estimated monthly value of ${monthly:,}",
                    monthly_impact=monthly,
                    priority=calculate_priority(monthly),
                    confidence=calculate_confidence(
                        bool(explicit), business_size, skill.get("target"), generic=True
                    ),
                    vertical=vertical,
                    source=f"pain:{pain_id}",
                    pain_point_id=pain_id,
                )
            )
    return insights


def map_loss_areas_to_skills(
    loss_by_area: Mapping[str, float],
    vertical: str,
    business_size: str = "medium",
) -> list[SkillInsight]:
    """Map money-lost areas (by key or legacy title) to skill insights."""
    insights = []
    for area, amount in loss_by_area.items():
        for skill_id, skill in _skills_for(LOSS_AREA_TO_SKILLS.get(area, []), vertical):
            monthly = compute_monthly_impact(amount, skill)
            insights.append(
                _build(
                    key=_insight_key(vertical, re.sub(r"\s+", "_", area), skill_id),
                    skill_id=skill_id,
                    skill=skill,
                    description=f'{skill["description"]} - Designed to recover losses in "{area}".',
                    impact_text=(
                        f"Target recovery from {area}: ${monthly:,} monthly "
                        f"({_rate_label(skill)} recovery rate)"
                    ),
                    monthly_impact=monthly,
                    priority=calculate_priority(monthly),
                    confidence=calculate_confidence(True, business_size, skill.get("target")),
                    vertical=vertical,
                    source=f"area:{area}",
                )
            )
    return insights


# ============================================================================
# Merge
# ============================================================================


def merge_skill_insights(insights: Iterable[SkillInsight]) -> list[SkillInsight]:
    """
    Merge insights for the same skill and order them.

    Per skill: highest priority, confidence and impact; sources are unioned in
    first-seen order. Result is sorted by priority then impact (descending);
    ties keep first-seen order.
    """
    merged: dict[str, SkillInsight] = {}
    for insight in insights:
        skill_id = insight.metadata.skill_id
        existing = merged.get(skill_id)
        if existing is None:
            merged[skill_id] = insight.model_copy(deep=True)
            continue

        priority = max(existing.priority, insight.priority, key=PRIORITY_ORDER.__getitem__)
        monthly = max(existing.monthly_impact_usd, insight.monthly_impact_usd)
        sources = list(existing.metadata.sources)
        sources.extend(s for s in insight.metadata.sources if s not in sources)
        metadata = existing.metadata.model_copy(update={"sources": sources})
        merged[skill_id] = existing.model_copy(
            update={
                "key": _insight_key(existing.metadata.vertical, "merged", skill_id),
                "priority": priority,
                "confidence": max(existing.confidence, insight.confidence),
                "monthly_impact_usd": monthly,
                "impact_text": f"Multi-source recovery potential: ${monthly:,} monthly",
                "metadata": metadata,
            }
        )

    return sorted(
        merged.values(),
        key=lambda i: (-PRIORITY_ORDER[i.priority], -i.monthly_impact_usd),
    )


def losses_by_area(loss_summary: LossSummary) -> dict[str, float]:
    """Positive monthly loss per area key."""
    return {area.key: area.monthly for area in loss_summary.areas if area.monthly > 0}


def build_skill_insights(
    signal_tags: list[str],
    loss_summary: LossSummary,
    vertical: str,
    business_size: str = "medium",
    pain_points: Iterable[Mapping[str, Any]] = (),
) -> list[SkillInsight]:
    """
    Build the merged, capped skill insights for a request.

    Args:
        signal_tags: Namespaced signal tags
        loss_summary: Normalized loss summary
        vertical: Business vertical
        business_size: Derived business size
        pain_points: Pain points from the knowledge slice

    Returns:
        At most MAX_INSIGHTS insights, strongest first
    """
    losses = losses_by_area(loss_summary)
    collected: list[SkillInsight] = []
    collected.extend(map_signal_tags_to_skills(signal_tags, losses, vertical, business_size))
    collected.extend(map_pain_points_to_skills(pain_points, losses, vertical, business_size))
    collected.extend(map_loss_areas_to_skills(losses, vertical, business_size))
    merged = merge_skill_insights(collected)
    logger.debug(f"Skill mapping: {len(collected)} raw insights, {len(merged)} skills after merge")
    return merged[:MAX_INSIGHTS]


def validate_skill_mapping() -> dict[str, Any]:
    """Report mapping-table entries that reference unknown skills."""
    missing: set[str] = set()
    warnings: list[str] = []
    tables = {
        "Signal": SIGNAL_TO_SKILLS,
        "Pain point": PAINPOINT_TO_SKILLS,
        "Loss area": LOSS_AREA_TO_SKILLS,
    }
    for label, table in tables.items():
        for skill_ids in table.values():
            for skill_id in skill_ids:
                if skill_id not in SKILL_DETAILS:
                    missing.add(skill_id)
                    warnings.append(f"{label} mapping references unknown skill: {skill_id}")
    return {"isValid": not missing, "warnings": warnings, "missingSkills": sorted(missing)}
