"""Pydantic schemas for ROI Brain requests, normalized context and responses."""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

Vertical = Literal["dental", "hvac"]
Language = Literal["en", "it"]
BusinessSize = Literal["small", "medium", "large"]
UrgencyLevel = Literal["low", "medium", "high", "critical"]
Complexity = Literal["simple", "moderate", "complex"]


class CamelModel(BaseModel):
    """Base model serializing to the camelCase wire format."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenCamelModel(CamelModel):
    """Immutable camelCase model for per-request value objects."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# =============================================================================
# Inbound request
# =============================================================================


class SectionScore(CamelModel):
    """Score of a single audit section."""

    id: str | None = Field(default=None, description="Section identifier")
    name: str = Field(default="General", description="Section display name")
    score: float = Field(default=0, description="Section score 0-100")


class ScoreSummary(CamelModel):
    """Overall audit score with per-section breakdown."""

    overall: int = Field(default=50, description="Overall readiness score 0-100")
    sections: list[SectionScore] = Field(default_factory=list, description="Section scores")


class RecoverableRange(CamelModel):
    """Recoverable share of a loss, in percent."""

    min: float = Field(default=50, description="Lower bound (percent)")
    max: float = Field(default=80, description="Upper bound (percent)")


class LossArea(CamelModel):
    """Revenue loss attributed to one business area."""

    key: str = Field(..., description="Stable loss-area key (e.g. missed_calls)")
    title: str = Field(..., description="Human-readable area title")
    daily: float = Field(default=0, ge=0)
    monthly: float = Field(default=0, ge=0)
    annual: float = Field(default=0, ge=0)
    recoverable_range: RecoverableRange = Field(default_factory=RecoverableRange)
    rationale: list[str] = Field(default_factory=list)


class LossTotal(CamelModel):
    """Aggregate revenue loss."""

    daily: float = Field(default=0, ge=0)
    monthly: float = Field(default=0, ge=0)
    annual: float = Field(default=0, ge=0)


class LossSummary(CamelModel):
    """Money-lost summary: totals plus per-area breakdown."""

    total: LossTotal = Field(default_factory=LossTotal)
    areas: list[LossArea] = Field(default_factory=list)


class ROIBrainRequest(CamelModel):
    """Inbound request body for the ROI Brain endpoint."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    vertical: Vertical = Field(..., description="Business vertical")
    audit_answers: dict[str, Any] = Field(..., description="Raw audit answers keyed by question")
    score_summary: ScoreSummary | None = Field(default=None)
    loss_summary: LossSummary | None = Field(default=None)
    # Accepted spelling used by older clients for the same shape
    money_lost_summary: dict[str, Any] | None = Field(default=None)
    # Legacy flat shape: {monthlyUsd, areas: [...]}
    moneylost: dict[str, Any] | None = Field(default=None, alias="moneylost")
    session_id: str | None = Field(default=None)
    language: Language = Field(default="en")


# =============================================================================
# Normalized context and derived intelligence
# =============================================================================


class NormalizedContext(FrozenCamelModel):
    """Request context after defaults are applied. Sections and areas are never empty."""

    vertical: Vertical
    audit_answers: Mapping[str, Any]
    score_summary: ScoreSummary
    loss_summary: LossSummary
    language: Language = "en"

    @field_validator("audit_answers", mode="after")
    @classmethod
    def _read_only_answers(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(value))

    @field_serializer("audit_answers")
    def _dump_answers(self, value: Mapping[str, Any]) -> dict[str, Any]:
        return dict(value)


class BusinessIntelligence(FrozenCamelModel):
    """Qualitative business profile derived from a normalized context."""

    business_size: BusinessSize
    urgency_level: UrgencyLevel
    primary_pain_points: list[str] = Field(..., min_length=1)
    technical_readiness: int = Field(..., ge=0, le=100)
    implementation_complexity: Complexity


# =============================================================================
# Knowledge filtering
# =============================================================================


class KBMaxItems(CamelModel):
    """Per-collection item caps."""

    skills: int | None = None
    claims: int | None = None
    benchmarks: int | None = None
    faq: int | None = None
    pain_points: int | None = None


class KBFilter(CamelModel):
    """Optional knowledge filter applied by the KB loader."""

    signal_tags: list[str] | None = None
    exclude_categories: list[str] | None = None
    section_ids: list[str] | None = None
    max_items: KBMaxItems | None = None
    max_total_items: int | None = None


class KnowledgePayload(CamelModel):
    """Bounded knowledge slice handed to the prompt assembler."""

    brand: dict[str, Any] = Field(default_factory=dict)
    response_models: dict[str, Any] = Field(default_factory=dict)
    skills: list[dict[str, Any]] = Field(default_factory=list)
    pain_points: list[dict[str, Any]] = Field(default_factory=list)
    claims: list[dict[str, Any]] = Field(default_factory=list)
    benchmarks: list[dict[str, Any]] = Field(default_factory=list)
    faq: list[dict[str, Any]] = Field(default_factory=list)
    pricing: list[dict[str, Any]] = Field(default_factory=list)
    sections: list[str] = Field(default_factory=list)


# =============================================================================
# Output
# =============================================================================


class PartsStatus(FrozenCamelModel):
    """Which of the three output parts passed structural validation."""

    iq: bool
    report: bool
    skills: bool

    @property
    def any_valid(self) -> bool:
        return self.iq or self.report or self.skills


class ProcessingTime(CamelModel):
    """Elapsed milliseconds per stage."""

    total: int = 0
    ai: int = 0
    cache: int = 0


class Costs(CamelModel):
    """Token usage and estimated USD cost of the generative call."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_cost: float = 0.0


class ROIBrainResponse(CamelModel):
    """Response body for the ROI Brain endpoint."""

    success: bool
    parts: PartsStatus
    session_id: str
    report: dict[str, Any] | None = None
    insights: list[dict[str, Any]] = Field(default_factory=list)
    skill_context: dict[str, Any] | None = None
    business_intelligence: BusinessIntelligence
    loss_summary: LossSummary
    processing_time: ProcessingTime = Field(default_factory=ProcessingTime)
    costs: Costs = Field(default_factory=Costs)
    cache_hit: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)
