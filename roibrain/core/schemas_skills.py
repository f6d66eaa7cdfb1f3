"""Pydantic schemas for deterministic voice-skill insights."""

from typing import Literal

from pydantic import Field

from roibrain.core.schemas_roi_brain import CamelModel, Vertical

Priority = Literal["high", "medium", "low"]


class UsdRange(CamelModel):
    min: float = 0
    max: float = 0


class SkillInsightMetadata(CamelModel):
    """Provenance of a skill insight."""

    vertical: Vertical
    skill_id: str
    pain_point_id: str | None = None
    signal_tag: str | None = None
    recovery_rate: float = Field(..., ge=0, le=1, description="Mean recovery rate 0..1")
    sources: list[str] = Field(default_factory=list, description="signal:/pain:/area: origins")
    roi_range: UsdRange = Field(default_factory=UsdRange)


class SkillInsight(CamelModel):
    """A voice skill recommendation with a deterministic monthly impact."""

    key: str
    title: str
    description: str
    impact_text: str
    category: str
    monthly_impact_usd: int = Field(..., ge=0)
    actionable: bool = True
    priority: Priority
    confidence: int = Field(..., ge=0, le=100)
    metadata: SkillInsightMetadata
