"""Model output parsing, per-part validation and response distribution."""

from typing import Any

from pydantic import BaseModel, ValidationError

from roibrain.core.errors import OutputParseError
from roibrain.core.llm import parse_llm_json_dict
from roibrain.core.logging import get_logger
from roibrain.core.schemas_ai_output import AIInsight, ModelOutput, ReportPart, SkillContextPart
from roibrain.core.schemas_roi_brain import (
    BusinessIntelligence,
    Costs,
    LossSummary,
    NormalizedContext,
    PartsStatus,
    ProcessingTime,
    ROIBrainResponse,
)

logger = get_logger(__name__)

# Share of the monthly loss promised by the fallback insight
FALLBACK_RECOVERY_SHARE = 0.4

URGENCY_TO_PRIORITY = {"critical": "high", "high": "high", "medium": "medium", "low": "low"}

MIN_DIAGNOSIS = 2
MIN_CONSEQUENCES = 2
MIN_FAQ = 2


# =============================================================================
# Parsing and validation
# =============================================================================


def parse_model_output(raw: str) -> dict[str, Any]:
    """
    Recover the JSON object from raw model text.

    Raises:
        OutputParseError: If no JSON object can be recovered
    """
    try:
        return parse_llm_json_dict(raw)
    except ValueError as e:
        preview = (raw or "")[:200]
        raise OutputParseError(str(e), details={"preview": preview}) from e


def _validate_part(model: type[BaseModel], data: Any, name: str) -> BaseModel | None:
    if data is None:
        return None
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Model output part '{name}' failed validation: {e.error_count()} errors")
        return None


def validate_model_output(data: dict[str, Any]) -> ModelOutput:
    """
    Validate each output part on its own.

    A malformed part becomes None without affecting the others. Malformed
    entries of the insight list are dropped; the list is None if none survive.
    """
    insights: list[AIInsight] | None = None
    raw_insights = data.get("insights")
    if isinstance(raw_insights, list):
        valid = [
            item
            for item in (_validate_part(AIInsight, raw, "insights") for raw in raw_insights)
            if item is not None
        ]
        insights = valid or None

    return ModelOutput(
        insights=insights,
        report=_validate_part(ReportPart, data.get("report"), "report"),
        skill_context=_validate_part(
            SkillContextPart, data.get("skillContext", data.get("skill_context")), "skillContext"
        ),
    )


def _insight_complete(insight: AIInsight) -> bool:
    return bool(
        insight.title and insight.description and insight.category and insight.rationale
    )


def compute_parts(output: ModelOutput) -> PartsStatus:
    """
    Structural completeness of each output part.

    iq: at least one insight, and every insight complete. report: score, band,
    two diagnoses, two consequences, one solution, two FAQ entries and a priced plan.
    skills: at least one complete skill and a context summary.
    """
    iq = bool(output.insights) and all(_insight_complete(i) for i in output.insights)

    report = output.report
    report_ok = bool(
        report is not None
        and report.score
        and report.band
        and len(report.diagnosis) >= MIN_DIAGNOSIS
        and len(report.consequences) >= MIN_CONSEQUENCES
        and len(report.solutions) >= 1
        and len(report.faq) >= MIN_FAQ
        and report.plan is not None
        and report.plan.name
        and report.plan.price_monthly_usd
    )

    ctx = output.skill_context
    skills_ok = bool(
        ctx is not None
        and ctx.recommended_skills
        and ctx.context_summary
        and all(s.id and s.name and s.rationale for s in ctx.recommended_skills)
    )

    return PartsStatus(iq=iq, report=report_ok, skills=skills_ok)


# =============================================================================
# Fallback and distribution
# =============================================================================


def _impact_level(monthly: float) -> str:
    if monthly > 5000:
        return "high"
    if monthly >= 1000:
        return "medium"
    return "low"


def generate_fallback_insights(
    intelligence: BusinessIntelligence, loss_summary: LossSummary
) -> list[dict[str, Any]]:
    """
    One deterministic insight derived only from the business profile and losses.

    Returns:
        Single-item list in the insight wire shape
    """
    monthly_loss = loss_summary.total.monthly
    recovery = round(monthly_loss * FALLBACK_RECOVERY_SHARE)
    focus = " and ".join(intelligence.primary_pain_points).replace("_", " ")
    magnitude = "significant" if intelligence.urgency_level in ("high", "critical") else "moderate"

    insight = AIInsight(
        title="Business Intelligence Analysis",
        description=(
            f"Based on your {intelligence.business_size} business profile, immediate focus on "
            f"{focus} could yield {magnitude} ROI improvements."
        ),
        impact=_impact_level(recovery),
        priority=URGENCY_TO_PRIORITY[intelligence.urgency_level],
        category=intelligence.primary_pain_points[0],
        rationale=[
            f"Current monthly loss: ${monthly_loss:,.0f}",
            f"Technical readiness score: {intelligence.technical_readiness}%",
            f"Implementation complexity: {intelligence.implementation_complexity}",
        ],
        monthly_impact_usd=recovery,
        actionable=True,
    )
    return [insight.model_dump(by_alias=True)]


def _data_quality(report: ReportPart | None) -> tuple[str, dict[str, Any]]:
    diagnosis_length = len(" ".join(report.diagnosis)) if report else 0
    consequences = len(report.consequences) if report else 0
    if diagnosis_length > 200 and consequences > 3:
        quality = "high"
    elif diagnosis_length > 100 and consequences > 2:
        quality = "medium"
    else:
        quality = "low"
    return quality, {
        "diagnosisLength": diagnosis_length,
        "consequencesCount": consequences,
        "solutionsCount": len(report.solutions) if report else 0,
    }


def distribute_output(
    output: ModelOutput,
    parts: PartsStatus,
    context: NormalizedContext,
    intelligence: BusinessIntelligence,
    *,
    session_id: str,
    costs: Costs,
    processing_time: ProcessingTime,
    metadata: dict[str, Any] | None = None,
) -> ROIBrainResponse:
    """
    Build the response body from a validated output.

    Invalid parts are returned as null, except the insight list which falls
    back to a deterministic insight. ``success`` is true when any part is valid.

    Args:
        output: Validated model output
        parts: Parts status computed for this output
        context: Normalized request context
        intelligence: Derived business profile
        session_id: Session identifier echoed to the caller
        costs: Token usage and cost
        processing_time: Stage timings
        metadata: Extra metadata (versions, tags, skill recommendations)

    Returns:
        ROIBrainResponse
    """
    if parts.iq:
        insights = [i.model_dump(by_alias=True) for i in output.insights]
    else:
        insights = generate_fallback_insights(intelligence, context.loss_summary)

    quality, quality_metrics = _data_quality(output.report)
    if output.report is not None:
        quality_metrics["verticalPersonalization"] = any(
            context.vertical in d.lower() for d in output.report.diagnosis
        )

    return ROIBrainResponse(
        success=parts.any_valid,
        parts=parts,
        session_id=session_id,
        report=output.report.model_dump(by_alias=True) if parts.report else None,
        insights=insights,
        skill_context=output.skill_context.model_dump(by_alias=True) if parts.skills else None,
        business_intelligence=intelligence,
        loss_summary=context.loss_summary,
        processing_time=processing_time,
        costs=costs,
        cache_hit=False,
        metadata={
            **(metadata or {}),
            "dataQuality": quality,
            "qualityMetrics": quality_metrics,
            "fallbackInsights": not parts.iq,
            "businessContext": {
                "vertical": context.vertical,
                "businessSize": intelligence.business_size,
                "urgencyLevel": intelligence.urgency_level,
                "technicalReadiness": intelligence.technical_readiness,
            },
        },
    )
