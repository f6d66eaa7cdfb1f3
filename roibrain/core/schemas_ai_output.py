"""Pydantic schemas for the generative model's JSON output.

The output has three independently useful parts: the insight list, the report
body and the skill-scope context. Each part is validated on its own.
"""

from typing import Literal

from pydantic import Field

from roibrain.core.schemas_roi_brain import CamelModel

Level = Literal["high", "medium", "low"]


# =============================================================================
# Insights part
# =============================================================================


class AIInsight(CamelModel):
    """One consultative insight."""

    title: str
    description: str
    impact: Level
    priority: Level
    category: str
    rationale: list[str] = Field(default_factory=list)
    monthly_impact_usd: float = Field(default=0, ge=0)
    actionable: bool = True


# =============================================================================
# Report part
# =============================================================================


class Solution(CamelModel):
    skill_id: str
    title: str
    rationale: str
    estimated_recovery_pct: list[float] = Field(..., min_length=2, max_length=2)


class FAQEntry(CamelModel):
    q: str
    a: str


class Plan(CamelModel):
    name: str
    price_monthly_usd: float = Field(..., ge=0)
    inclusions: list[str] = Field(default_factory=list)


class ReportPart(CamelModel):
    """Readiness report body."""

    score: float = Field(..., ge=0, le=100)
    band: str
    diagnosis: list[str] = Field(default_factory=list)
    consequences: list[str] = Field(default_factory=list)
    solutions: list[Solution] = Field(default_factory=list)
    benchmarks: list[str] = Field(default_factory=list)
    faq: list[FAQEntry] = Field(default_factory=list)
    plan: Plan | None = None


# =============================================================================
# Skill-scope part
# =============================================================================


class Implementation(CamelModel):
    time_weeks: float | None = None
    phases: list[str] = Field(default_factory=list)


class RecommendedSkill(CamelModel):
    id: str
    name: str
    target: str | None = None
    problem: str = ""
    how: str = ""
    roi_range_monthly: list[float] | None = None
    implementation: Implementation | None = None
    integrations: list[str] = Field(default_factory=list)
    priority: Level
    rationale: str


class SkillContextPart(CamelModel):
    """Context for the skill-scope view."""

    recommended_skills: list[RecommendedSkill] = Field(default_factory=list)
    context_summary: str = ""
    implementation_readiness: float = Field(default=0, ge=0, le=100)


# =============================================================================
# Whole output
# =============================================================================


class ModelOutput(CamelModel):
    """Validated model output; a part that failed validation is None."""

    insights: list[AIInsight] | None = None
    report: ReportPart | None = None
    skill_context: SkillContextPart | None = None
