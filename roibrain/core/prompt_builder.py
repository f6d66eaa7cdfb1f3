"""Prompt assembly for ROI report generation.

Section order is fixed. Language only changes the instructions' content, so
prompts for ``en`` and ``it`` share the same structure.
"""

import json

from roibrain.core.normalization import calculate_recovery_ranges
from roibrain.core.schemas_roi_brain import BusinessIntelligence, KnowledgePayload, NormalizedContext
from roibrain.core.schemas_skills import SkillInsight

LANGUAGE_NAMES = {"en": "English", "it": "Italian"}

SIZE_LABELS = {"small": "<3 staff", "medium": "3-8 staff", "large": ">8 staff"}

TARGET_LABELS = {"dental": "Dental", "hvac": "HVAC"}

MAX_LOSS_AREAS = 3


def _readiness_note(readiness: int) -> str:
    if readiness > 70:
        return "high adoption potential"
    if readiness > 40:
        return "moderate training needed"
    return "extensive onboarding required"


def generate_contextual_prompt(
    context: NormalizedContext,
    intelligence: BusinessIntelligence,
    skill_insights: list[SkillInsight],
) -> str:
    """
    Build the business-context half of the prompt.

    Args:
        context: Normalized request context
        intelligence: Derived business profile
        skill_insights: Deterministic skill recommendations, strongest first

    Returns:
        Prompt text
    """
    loss = context.loss_summary
    recovery = calculate_recovery_ranges(loss)["totalRecoveryRange"]
    top_areas = sorted(loss.areas, key=lambda a: a.monthly, reverse=True)[:MAX_LOSS_AREAS]

    area_lines = "\n".join(
        f"{i}. {area.title}: ${area.monthly:,.0f}/month "
        f"(recoverable {area.recoverable_range.min:.0f}-{area.recoverable_range.max:.0f}%)"
        for i, area in enumerate(top_areas, start=1)
    )
    if skill_insights:
        skill_lines = "\n".join(
            f"- {s.title} [{s.metadata.skill_id}] priority={s.priority} "
            f"est. ${s.monthly_impact_usd:,}/month, sources: {', '.join(s.metadata.sources)}"
            for s in skill_insights
        )
    else:
        skill_lines = "- No deterministic skill match; recommend from the knowledge base"

    return f"""BUSINESS ANALYSIS CONTEXT:
- Vertical: {context.vertical.upper()}
- Size: {intelligence.business_size} ({SIZE_LABELS[intelligence.business_size]})
- Monthly Revenue at Risk: ${loss.total.monthly:,.0f}
- Urgency Level: {intelligence.urgency_level.upper()}
- Technical Readiness: {intelligence.technical_readiness}%
- Implementation Complexity: {intelligence.implementation_complexity}
- Audit Score: {context.score_summary.overall}/100

TOP LOSS AREAS:
{area_lines}

STRATEGIC FOCUS:
- Primary Pain Points: {", ".join(intelligence.primary_pain_points)}
- Recovery Potential: ${recovery["min"]:,}-${recovery["max"]:,}/month
- Focus on {intelligence.primary_pain_points[0]} as primary area
- Technical readiness {intelligence.technical_readiness}%: {_readiness_note(intelligence.technical_readiness)}

DETERMINISTIC SKILL RECOMMENDATIONS:
{skill_lines}

INSIGHT REQUIREMENTS:
- Confirm or refine the recommendations above; do not invent skills, pain points or ROI ranges outside the knowledge base
- Do not recommend the same skill in more than one insight; consolidate combined impact instead
- Each insight: title, description, impact (exactly high, medium or low), priority, category, rationale list, monthlyImpactUsd, actionable
- impact is high above $5,000/month, medium from $1,000 to $5,000, low below $1,000
- Generate 2-3 benchmark notes comparing the audit score to {context.vertical} industry standards"""


def build_system_prompt(vertical: str) -> str:
    """System prompt: consultant persona for the vertical."""
    return (
        f"You are a senior AI consultant with deep understanding of {vertical} business operations. "
        "You analyze audit results, expose revenue leaks and recommend exact voice skills with "
        "realistic ROI taken from the provided knowledge base. Be sharp, consultative and clear; "
        "focus on money lost and money recovered. Respond with a single JSON object only."
    )


def build_prompt(
    contextual_prompt: str,
    kb_payload: KnowledgePayload,
    language: str,
    vertical: str,
) -> str:
    """
    Assemble the user prompt: context, language rules, output schema, knowledge data.

    Args:
        contextual_prompt: Output of generate_contextual_prompt
        kb_payload: Filtered knowledge slice
        language: Response language code (en or it)
        vertical: Business vertical

    Returns:
        Complete prompt text
    """
    language_name = LANGUAGE_NAMES.get(language, "English")
    kb_json = json.dumps(kb_payload.model_dump(by_alias=True), indent=2, ensure_ascii=False)
    target = TARGET_LABELS.get(vertical, vertical)

    return f"""{contextual_prompt}

LANGUAGE INSTRUCTIONS:
- Respond in {language_name}
- All text content (titles, descriptions, diagnoses, answers) must be in {language_name}
- Keep JSON keys and enum values exactly as specified, untranslated

OUTPUT FORMAT:
Return ONLY raw JSON, no markdown fences and no text before or after it, matching:

{{
  "insights": [
    {{
      "title": "<insight title>",
      "description": "<what is happening and what to do>",
      "impact": "<high|medium|low>",
      "priority": "<high|medium|low>",
      "category": "<pain point category>",
      "rationale": ["<reason 1>", "<reason 2>"],
      "monthlyImpactUsd": <number>,
      "actionable": true
    }}
  ],
  "report": {{
    "score": <number 1-100>,
    "band": "<Crisis|Optimization Needed|Growth Ready|AI-Optimized>",
    "diagnosis": ["<issue>", "<issue>"],
    "consequences": ["<business impact>", "<business impact>"],
    "solutions": [
      {{"skillId": "<skill id>", "title": "<name>", "rationale": "<why>", "estimatedRecoveryPct": [<min>, <max>]}}
    ],
    "benchmarks": ["<positioning note>", "<peer comparison>", "<strength or weakness>"],
    "faq": [{{"q": "<question>", "a": "<answer>"}}, {{"q": "<question>", "a": "<answer>"}}],
    "plan": {{"name": "<plan name>", "priceMonthlyUsd": <number>, "inclusions": ["<feature>"]}}
  }},
  "skillContext": {{
    "recommendedSkills": [
      {{
        "id": "<skill id>",
        "name": "<skill name>",
        "target": "{target}",
        "problem": "<problem solved>",
        "how": "<how it works>",
        "roiRangeMonthly": [<min>, <max>],
        "implementation": {{"timeWeeks": <number>, "phases": ["<phase>"]}},
        "integrations": ["<integration>"],
        "priority": "<high|medium|low>",
        "rationale": "<why for this business>"
      }}
    ],
    "contextSummary": "<why these skills>",
    "implementationReadiness": <number 1-100>
  }}
}}

KNOWLEDGE BASE:
{kb_json}"""
